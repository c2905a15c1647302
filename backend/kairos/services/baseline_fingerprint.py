"""Baseline drift detection.

The fingerprint is a SHA-256 digest of the canonical JSON form of the baseline.
Pool order is part of the digest: reordering anchors or wishes is a real
baseline edit and marks the day plan as stale.
"""
from __future__ import annotations

import hashlib
import json
from typing import Optional

from kairos.api.schemas.plan import Baseline


def canonical_baseline(baseline: Baseline) -> str:
    payload = baseline.model_dump(mode="json", by_alias=True)
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def fingerprint(baseline: Baseline) -> str:
    return hashlib.sha256(canonical_baseline(baseline).encode("utf-8")).hexdigest()


def is_dirty(baseline: Baseline, last_synced: Optional[str]) -> bool:
    """True when the baseline no longer matches the one the day plan was built from."""
    return fingerprint(baseline) != last_synced

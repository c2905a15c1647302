"""Housekeeping jobs shared by the API and the scheduler worker."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta

from kairos.services.planner_store import PlannerStore

logger = logging.getLogger(__name__)


@dataclass
class RetentionRunResult:
    cutoff: date
    records_purged: int


def run_retention_sweep(store: PlannerStore, *, today: date, retention_days: int = 7) -> RetentionRunResult:
    """Delete daily records older than ``retention_days`` before ``today``."""
    cutoff = today - timedelta(days=retention_days)
    purged = store.purge_records_before(cutoff)
    logger.info("Retention sweep removed %s daily record(s) before %s", purged, cutoff.isoformat())
    return RetentionRunResult(cutoff=cutoff, records_purged=purged)

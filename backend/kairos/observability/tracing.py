"""Opik tracing for planner steps (synthesis, chat, reports, metrics)."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Dict, Iterator, Optional

from kairos.core.context import get_plan_day, get_request_id
from kairos.observability.client import get_opik_client

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from opik.api_objects.trace.trace_client import Trace
else:  # pragma: no cover - typing helper
    Trace = object  # type: ignore[assignment]

logger = logging.getLogger(__name__)

TRACE_COMPONENT = "kairos-planner"


def planner_trace_metadata(metadata: Optional[Dict[str, Any]], request_id: Optional[str] = None) -> Dict[str, Any]:
    merged: Dict[str, Any] = {"component": TRACE_COMPONENT}
    bound = {"request_id": request_id or get_request_id(), "plan_day": get_plan_day()}
    merged.update({key: value for key, value in bound.items() if value})
    merged.update(metadata or {})
    return merged


@contextmanager
def trace(
    name: str,
    metadata: Optional[Dict[str, Any]] = None,
    request_id: Optional[str] = None,
) -> Iterator[Optional["Trace"]]:
    """
    Open an Opik trace around a planner step.

    Every trace carries the component name, and the request id and plan day
    when they are bound (explicit metadata wins). Yields None when Opik is
    disabled so callers can guard ``update`` calls. Exceptions raised inside
    the block are attached to the trace and re-raised.
    """
    client = get_opik_client()
    opik_trace: Optional["Trace"] = None

    if client:
        trace_metadata = planner_trace_metadata(metadata, request_id)
        try:
            opik_trace = client.trace(name=name, metadata=trace_metadata)
        except Exception as exc:  # pragma: no cover - SDK failure
            logger.debug("Unable to start Opik trace %s: %s", name, exc)
            opik_trace = None

    try:
        yield opik_trace
    except Exception as exc:
        if opik_trace:
            try:
                opik_trace.update(error_info={"message": str(exc)})
            except Exception:  # pragma: no cover
                logger.debug("Failed to attach error info to Opik trace %s", name, exc_info=True)
        raise
    finally:
        if opik_trace:
            try:
                opik_trace.end()
            except Exception:  # pragma: no cover
                logger.debug("Failed to close Opik trace %s cleanly", name, exc_info=True)

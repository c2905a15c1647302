"""Per-request and per-plan context carried into logs and traces."""
from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from datetime import date
from typing import Iterator

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
plan_day_ctx_var: ContextVar[str | None] = ContextVar("plan_day", default=None)


def get_request_id() -> str | None:
    """Return the id of the request currently being served, if any."""
    return request_id_ctx_var.get()


def get_plan_day() -> str | None:
    """ISO date of the day plan being synthesized, if any."""
    return plan_day_ctx_var.get()


@contextmanager
def bind_plan_day(day: date) -> Iterator[str]:
    token = plan_day_ctx_var.set(day.isoformat())
    try:
        yield day.isoformat()
    finally:
        plan_day_ctx_var.reset(token)

"""Logging setup for the planner API, ticker and worker."""
from __future__ import annotations

import logging
from logging.config import dictConfig

from kairos.core.context import get_plan_day, get_request_id

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | req=%(request_id)s day=%(plan_day)s | %(message)s"

# Chatty third-party loggers; the oracle client logs every HTTP round trip at INFO.
QUIET_LOGGERS = ("apscheduler", "openai", "httpx", "httpcore", "opik")


class PlannerContextFilter(logging.Filter):
    """Stamp records with the request id and the plan day ("-" when unbound)."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - minimal logic
        record.request_id = get_request_id() or "-"
        record.plan_day = get_plan_day() or "-"
        return True


def configure_logging(*, log_level: str = "INFO", third_party_log_level: str = "WARNING") -> None:
    """Configure process logging once; later calls are ignored."""
    if getattr(configure_logging, "_configured", False):
        return

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"planner": {"format": LOG_FORMAT}},
            "filters": {"planner_context": {"()": "kairos.core.logging.PlannerContextFilter"}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "planner",
                    "level": log_level,
                    "filters": ["planner_context"],
                }
            },
            "loggers": {
                "kairos": {"level": log_level},
                **{name: {"level": third_party_log_level} for name in QUIET_LOGGERS},
            },
            "root": {"handlers": ["console"], "level": log_level},
        }
    )

    logging.getLogger(__name__).debug("Logging configured (planner=%s, third-party=%s)", log_level, third_party_log_level)
    setattr(configure_logging, "_configured", True)

"""FastAPI dependencies wiring the planner services to settings."""
from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from kairos.api.schemas.plan import ActiveHours
from kairos.core.config import get_settings
from kairos.db import Base
from kairos.db.session import SessionLocal, engine
from kairos.services.chat_assistant import ChatAssistant
from kairos.services.day_planner import DayPlanner
from kairos.services.kv_store import SqlKeyValueStore
from kairos.services.planner_store import PlannerStore
from kairos.services.schedule_oracle import OpenAIOracle, PacingRules
from kairos.services.schedule_synthesizer import ScheduleSynthesizer
from kairos.services.weekly_report import WeeklyReporter


@lru_cache
def get_oracle() -> OpenAIOracle:
    settings = get_settings()
    return OpenAIOracle(
        api_key=settings.openai_api_key,
        model=settings.oracle_model,
        timeout_seconds=settings.oracle_timeout_seconds,
    )


@lru_cache
def get_day_planner() -> DayPlanner:
    """Build the process-wide planner backed by the configured database."""
    settings = get_settings()
    Base.metadata.create_all(bind=engine)
    store = PlannerStore(
        SqlKeyValueStore(SessionLocal),
        default_active_hours=ActiveHours(start=settings.default_active_start, end=settings.default_active_end),
    )
    synthesizer = ScheduleSynthesizer(
        get_oracle(),
        rules=PacingRules(cap_minutes=settings.task_cap_minutes, buffer_minutes=settings.recovery_buffer_minutes),
        timeout_seconds=settings.oracle_timeout_seconds,
    )
    return DayPlanner(store, synthesizer, retention_days=settings.retention_days)


def get_chat_assistant(
    planner: DayPlanner = Depends(get_day_planner),
    oracle: OpenAIOracle = Depends(get_oracle),
) -> ChatAssistant:
    return ChatAssistant(planner, oracle, timeout_seconds=get_settings().oracle_timeout_seconds)


def get_weekly_reporter(
    planner: DayPlanner = Depends(get_day_planner),
    oracle: OpenAIOracle = Depends(get_oracle),
) -> WeeklyReporter:
    return WeeklyReporter(
        planner.store,
        oracle,
        clock=planner.clock,
        timeout_seconds=get_settings().oracle_timeout_seconds,
    )

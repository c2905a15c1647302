from __future__ import annotations

import asyncio
import json
from datetime import datetime
from typing import Any, Iterable, List, Optional

import pytest

from kairos.api.schemas.chat import FunctionCall
from kairos.api.schemas.plan import ActiveHours
from kairos.services.clock import ManualClock
from kairos.services.day_planner import DayPlanner
from kairos.services.kv_store import InMemoryKeyValueStore
from kairos.services.planner_store import PlannerStore
from kairos.services.schedule_oracle import OracleReply
from kairos.services.schedule_synthesizer import ScheduleSynthesizer

# Monday
MONDAY_9_10 = datetime(2026, 10, 19, 9, 10)


class ScriptedOracle:
    """In-process stand-in for the OpenAI oracle."""

    def __init__(
        self,
        schedule: Any = None,
        *,
        error: Optional[Exception] = None,
        delays: Iterable[float] = (),
        reply: Optional[OracleReply] = None,
        insight: str = "Nice steady week.",
    ) -> None:
        self.schedule = schedule
        self.error = error
        self.delays: List[float] = list(delays)
        self.reply = reply or OracleReply(text="")
        self.insight = insight
        self.schedule_requests: list = []
        self.messages: List[str] = []

    async def _pause(self) -> None:
        if self.delays:
            await asyncio.sleep(self.delays.pop(0))

    async def propose_schedule(self, request) -> str:
        self.schedule_requests.append(request)
        await self._pause()
        if self.error is not None:
            raise self.error
        if isinstance(self.schedule, str):
            return self.schedule
        return json.dumps(self.schedule)

    async def converse(self, message, history, context) -> OracleReply:
        self.messages.append(message)
        await self._pause()
        if self.error is not None:
            raise self.error
        return self.reply

    async def weekly_insight(self, request) -> str:
        await self._pause()
        if self.error is not None:
            raise self.error
        return self.insight


def proposed(task_id: str, title: str, start: str, duration: int, energy: str = "medium", **flags: bool) -> dict:
    return {
        "id": task_id,
        "title": title,
        "duration": duration,
        "energyCost": energy,
        "isHardBlock": flags.get("hard", False),
        "isWish": flags.get("wish", False),
        "startTime": start,
    }


def call(name: str, **args: Any) -> FunctionCall:
    return FunctionCall(name=name, args=args)


@pytest.fixture()
def scripted_oracle():
    return ScriptedOracle


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock(MONDAY_9_10)


@pytest.fixture()
def store() -> PlannerStore:
    return PlannerStore(InMemoryKeyValueStore(), default_active_hours=ActiveHours(start="08:00", end="23:00"))


@pytest.fixture()
def make_planner(store, clock):
    def factory(oracle: ScriptedOracle, *, timeout_seconds: float = 1.0) -> DayPlanner:
        synthesizer = ScheduleSynthesizer(oracle, timeout_seconds=timeout_seconds)
        return DayPlanner(store, synthesizer, clock=clock)

    return factory


@pytest.fixture()
def default_day_proposal() -> list:
    """A valid proposal for the default baseline on a Monday."""
    return [
        proposed("f-0", "Breakfast", "09:00", 30, "low", hard=True),
        proposed("w-1", "Personal finance study", "09:30", 45, "high", wish=True),
        proposed("w-2", "Creative writing", "10:15", 60, "high", wish=True),
        proposed("f-1", "Pilates class", "12:00", 120, "medium", hard=True),
    ]

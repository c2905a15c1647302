"""Baseline and daily record schemas."""
from __future__ import annotations

import datetime as dt
from typing import List, Literal, Optional

from pydantic import Field

from kairos.api.schemas.task import HHMM_PATTERN, CamelModel, Task


class ActiveHours(CamelModel):
    start: str = Field(..., pattern=HHMM_PATTERN)
    end: str = Field(..., pattern=HHMM_PATTERN)


class ActiveHoursUpdate(CamelModel):
    start: Optional[str] = Field(default=None, pattern=HHMM_PATTERN)
    end: Optional[str] = Field(default=None, pattern=HHMM_PATTERN)


class Baseline(CamelModel):
    active_hours: ActiveHours
    fixed_anchors: List[Task] = Field(default_factory=list)
    wish_pool: List[Task] = Field(default_factory=list)


class DailyRecord(CamelModel):
    date: dt.date
    energy: int = Field(..., ge=1, le=5)
    tasks: List[Task] = Field(default_factory=list)


class BaselineStatus(CamelModel):
    dirty: bool
    fingerprint: str
    last_synced_fingerprint: Optional[str]


class CheckinRequest(CamelModel):
    energy: int = Field(..., ge=1, le=5)


class TodayResponse(CamelModel):
    date: dt.date
    energy: Optional[int]
    tasks: List[Task]
    active_task_id: Optional[str] = None
    remaining_seconds: Optional[int] = None
    dirty: bool
    completion_rate: int = 0


class CheckinResponse(CamelModel):
    date: dt.date
    energy: int
    tasks: List[Task]
    source: Literal["oracle", "fallback"]
    reason: Optional[str] = None
    adopted: bool
    dirty: bool
    request_id: str


class OnboardingStatus(CamelModel):
    needs_onboarding: bool
    week: str
    completed_week: Optional[str]
    purged_records: int = 0

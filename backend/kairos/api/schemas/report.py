"""Schemas for the weekly report."""
from __future__ import annotations

import datetime as dt
from typing import List, Optional

from kairos.api.schemas.task import CamelModel


class DaySummary(CamelModel):
    date: dt.date
    energy: Optional[int]
    tasks_total: int
    tasks_completed: int
    focus_minutes: int
    completion_rate: int = 0


class WeeklyStats(CamelModel):
    completion_rate: int
    focus_minutes: int
    top_tasks: List[str]


class WeeklyReportResponse(CamelModel):
    start: dt.date
    end: dt.date
    days: List[DaySummary]
    stats: WeeklyStats
    insight: str
    request_id: str

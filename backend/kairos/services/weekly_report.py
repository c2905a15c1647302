"""Seven-day aggregation of daily records plus an encouraging insight."""
from __future__ import annotations

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence, Tuple

from kairos.api.schemas.plan import DailyRecord
from kairos.api.schemas.report import DaySummary, WeeklyStats
from kairos.core.errors import OracleMalformed, OracleUnavailable
from kairos.observability.tracing import trace
from kairos.services.clock import Clock, SystemClock
from kairos.services.planner_store import PlannerStore
from kairos.services.schedule_oracle import InsightOracle, WeeklyInsightRequest
from kairos.services.schedule_validator import OPEN_TITLE, RECOVERY_TITLE

logger = logging.getLogger(__name__)

REPORT_DAYS = 7
TOP_TASK_LIMIT = 3
GENERIC_INSIGHT = "Every small step counts. Keep listening to your energy this week and be kind to yourself."

_FILLER_TITLES = {OPEN_TITLE, RECOVERY_TITLE}


@dataclass
class WeeklyReport:
    start: date
    end: date
    days: List[DaySummary]
    stats: WeeklyStats
    insight: str


def completion_rate(completed: int, total: int) -> int:
    """Whole-number percentage; an empty day counts as 0."""
    return round(completed * 100 / total) if total else 0


def summarize_day(day: date, record: Optional[DailyRecord]) -> DaySummary:
    if record is None:
        return DaySummary(date=day, energy=None, tasks_total=0, tasks_completed=0, focus_minutes=0)
    completed = [task for task in record.tasks if task.is_completed]
    return DaySummary(
        date=day,
        energy=record.energy,
        tasks_total=len(record.tasks),
        tasks_completed=len(completed),
        focus_minutes=sum(task.duration for task in completed),
        completion_rate=completion_rate(len(completed), len(record.tasks)),
    )


def summarize_week(records: Sequence[Tuple[date, Optional[DailyRecord]]]) -> Tuple[List[DaySummary], WeeklyStats]:
    """Completion rate, focused minutes and most-finished titles; missing days count as empty."""
    days = [summarize_day(day, record) for day, record in records]
    total = sum(summary.tasks_total for summary in days)
    completed = sum(summary.tasks_completed for summary in days)

    titles: Counter = Counter()
    for _, record in records:
        if record is None:
            continue
        titles.update(task.title for task in record.tasks if task.is_completed and task.title not in _FILLER_TITLES)

    stats = WeeklyStats(
        completion_rate=completion_rate(completed, total),
        focus_minutes=sum(summary.focus_minutes for summary in days),
        top_tasks=[title for title, _ in titles.most_common(TOP_TASK_LIMIT)],
    )
    return days, stats


class WeeklyReporter:
    def __init__(
        self,
        store: PlannerStore,
        oracle: InsightOracle,
        *,
        clock: Optional[Clock] = None,
        timeout_seconds: float = 20.0,
    ) -> None:
        self._store = store
        self._oracle = oracle
        self._clock = clock or SystemClock()
        self._timeout_seconds = timeout_seconds

    async def build(self, *, request_id: Optional[str] = None) -> WeeklyReport:
        end = self._clock.now().date()
        records = self._store.load_recent_records(end, days=REPORT_DAYS)
        days, stats = summarize_week(records)

        with trace(
            "report.weekly",
            metadata={"completion_rate": stats.completion_rate, "focus_minutes": stats.focus_minutes},
            request_id=request_id,
        ):
            try:
                insight = await asyncio.wait_for(
                    self._oracle.weekly_insight(
                        WeeklyInsightRequest(
                            completion_rate=stats.completion_rate,
                            focus_minutes=stats.focus_minutes,
                            top_tasks=stats.top_tasks,
                        )
                    ),
                    timeout=self._timeout_seconds,
                )
            except (asyncio.TimeoutError, OracleUnavailable, OracleMalformed) as exc:
                logger.info("Weekly insight unavailable, using generic text: %s", exc or type(exc).__name__)
                insight = GENERIC_INSIGHT

        return WeeklyReport(start=records[0][0], end=end, days=days, stats=stats, insight=insight)

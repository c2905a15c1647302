"""Coordinates the store, synthesizer, mutation engine and focus session for one user."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, List, Optional

from kairos.api.schemas.plan import (
    ActiveHours,
    ActiveHoursUpdate,
    Baseline,
    BaselineStatus,
    DailyRecord,
    OnboardingStatus,
)
from kairos.api.schemas.task import FixedTaskCreate, Task, TodayTaskCreate, TodayTaskEdit, WishTaskCreate
from kairos.core.context import bind_plan_day
from kairos.core.errors import CheckinRequired, NotFound
from kairos.services import plan_mutations
from kairos.services.baseline_fingerprint import fingerprint, is_dirty
from kairos.services.clock import Clock, SystemClock
from kairos.services.focus_session import CHECKIN, IDLE, ActiveTask, FocusSession, find_active_task
from kairos.services.job_runner import run_retention_sweep
from kairos.services.plan_mutations import PlanState
from kairos.services.planner_store import PlannerStore
from kairos.services.schedule_synthesizer import ScheduleSynthesizer, SynthesisOutcome
from kairos.services.time_utils import iso_week_label

logger = logging.getLogger(__name__)


@dataclass
class CheckinResult:
    day: date
    energy: int
    outcome: SynthesisOutcome
    adopted: bool
    dirty: bool


@dataclass
class TodayView:
    day: date
    record: Optional[DailyRecord]
    active: Optional[ActiveTask]
    dirty: bool


@dataclass
class RemovalCounts:
    today: int
    fixed: int
    wishes: int


@dataclass
class SessionView:
    state: str
    focused_task_id: Optional[str]
    countdown_seconds: Optional[int]
    active: Optional[ActiveTask]


class DayPlanner:
    """Single logical owner of planner state.

    Every change is computed as a whole new ``PlanState`` and the changed
    collections are written back in one atomic store write, so a failed write
    leaves every collection as it was.
    """

    def __init__(
        self,
        store: PlannerStore,
        synthesizer: ScheduleSynthesizer,
        *,
        clock: Optional[Clock] = None,
        session: Optional[FocusSession] = None,
        retention_days: int = 7,
    ) -> None:
        self.store = store
        self.synthesizer = synthesizer
        self.clock = clock or SystemClock()
        self.session = session or FocusSession()
        self.session.set_completion_handler(self.complete_task)
        self.retention_days = retention_days
        self._generations: Dict[date, int] = {}

    def current_day(self) -> date:
        return self.clock.now().date()

    def generation(self, day: date) -> int:
        """Number of check-ins started for ``day``; a change means a newer synthesis began."""
        return self._generations.get(day, 0)

    # -- baseline -------------------------------------------------------------

    def baseline(self) -> Baseline:
        return self.store.load_baseline()

    def baseline_status(self) -> BaselineStatus:
        current = fingerprint(self.store.load_baseline())
        synced = self.store.load_synced_fingerprint()
        return BaselineStatus(dirty=current != synced, fingerprint=current, last_synced_fingerprint=synced)

    def is_dirty(self) -> bool:
        return is_dirty(self.store.load_baseline(), self.store.load_synced_fingerprint())

    def add_fixed(self, partial: FixedTaskCreate) -> Task:
        _, after = self._apply(lambda state: plan_mutations.add_fixed_anchor(state, partial))
        return after.fixed[-1]

    def add_wish(self, partial: WishTaskCreate) -> Task:
        _, after = self._apply(lambda state: plan_mutations.add_wish(state, partial))
        return after.wishes[-1]

    def remove_fixed(self, task_id: str) -> bool:
        before, after = self._apply(lambda state: plan_mutations.remove_fixed(state, task_id))
        return len(after.fixed) < len(before.fixed)

    def remove_wish(self, task_id: str) -> bool:
        before, after = self._apply(lambda state: plan_mutations.remove_wish(state, task_id))
        return len(after.wishes) < len(before.wishes)

    def set_active_hours(self, update: ActiveHoursUpdate) -> ActiveHours:
        _, after = self._apply(lambda state: plan_mutations.modify_active_hours(state, update))
        return after.active_hours

    def remove_by_title(self, fragment: str) -> RemovalCounts:
        before, after = self._apply(lambda state: plan_mutations.remove_by_title(state, fragment))
        return RemovalCounts(
            today=len(before.today) - len(after.today),
            fixed=len(before.fixed) - len(after.fixed),
            wishes=len(before.wishes) - len(after.wishes),
        )

    # -- today ------------------------------------------------------------------

    async def check_in(self, energy: int, *, request_id: Optional[str] = None) -> CheckinResult:
        """Synthesize today's plan; only the latest request for a date is adopted."""
        day = self.current_day()
        generation = self._generations.get(day, 0) + 1
        self._generations[day] = generation

        with bind_plan_day(day):
            baseline = self.store.load_baseline()
            outcome = await self.synthesizer.synthesize(
                energy=energy,
                fixed=baseline.fixed_anchors,
                wishes=baseline.wish_pool,
                active_hours=baseline.active_hours,
                day=day,
                request_id=request_id,
            )

        adopted = self.generation(day) == generation
        if adopted:
            self.store.save_changes(
                record=DailyRecord(date=day, energy=energy, tasks=outcome.tasks),
                synced_fingerprint=fingerprint(baseline),
            )
            if self.session.state == IDLE:
                self.session.begin_checkin()
            if self.session.state == CHECKIN:
                self.session.synthesis_resolved()
        else:
            logger.info("Discarding stale synthesis for %s (generation %s)", day.isoformat(), generation)

        return CheckinResult(day=day, energy=energy, outcome=outcome, adopted=adopted, dirty=self.is_dirty())

    def today(self) -> TodayView:
        day = self.current_day()
        record = self.store.load_record(day)
        active = find_active_task(record.tasks, self.clock.now()) if record else None
        return TodayView(day=day, record=record, active=active, dirty=self.is_dirty())

    def insert_today(self, partial: TodayTaskCreate) -> Task:
        before, after = self._apply(lambda state: plan_mutations.insert_today(state, partial), needs_record=True)
        existing = {task.id for task in before.today}
        return next(task for task in after.today if task.id not in existing)

    def edit_today(self, task_id: str, fields: TodayTaskEdit) -> Optional[Task]:
        _, after = self._apply(lambda state: plan_mutations.edit_today(state, task_id, fields), needs_record=True)
        return _by_id(after.today, task_id)

    def toggle_today(self, task_id: str) -> Optional[Task]:
        _, after = self._apply(lambda state: plan_mutations.toggle_completion(state, task_id), needs_record=True)
        return _by_id(after.today, task_id)

    def remove_today(self, task_id: str) -> bool:
        before, after = self._apply(lambda state: plan_mutations.remove_today(state, task_id), needs_record=True)
        return len(after.today) < len(before.today)

    def complete_task(self, task_id: str) -> None:
        if self.store.load_record(self.current_day()) is None:
            logger.warning("Focus finished on %s but today has no plan to update", task_id)
            return
        self._apply(lambda state: plan_mutations.mark_completed(state, task_id), needs_record=True)

    # -- focus session ----------------------------------------------------------

    def session_view(self) -> SessionView:
        countdown = self.session.countdown
        view = self.today()
        return SessionView(
            state=self.session.state,
            focused_task_id=self.session.focused_task_id,
            countdown_seconds=countdown.remaining_seconds if countdown else None,
            active=view.active,
        )

    def start_focus(self, task_id: str) -> None:
        record = self.store.load_record(self.current_day())
        if record is None:
            raise CheckinRequired("check in before starting a focus block")
        task = _by_id(record.tasks, task_id)
        if task is None:
            raise NotFound(f"task {task_id} is not in today's plan")
        self.session.enter_focus(task, self.clock.now())

    # -- onboarding -------------------------------------------------------------

    def onboarding_status(self, purged_records: int = 0) -> OnboardingStatus:
        week = iso_week_label(self.current_day())
        completed = self.store.load_onboarding_week()
        return OnboardingStatus(
            needs_onboarding=completed != week,
            week=week,
            completed_week=completed,
            purged_records=purged_records,
        )

    def start_onboarding(self) -> OnboardingStatus:
        result = run_retention_sweep(self.store, today=self.current_day(), retention_days=self.retention_days)
        return self.onboarding_status(purged_records=result.records_purged)

    def complete_onboarding(self) -> OnboardingStatus:
        self.store.save_onboarding_week(iso_week_label(self.current_day()))
        return self.onboarding_status()

    # -- helpers ------------------------------------------------------------------

    def _apply(
        self,
        operation: Callable[[PlanState], PlanState],
        *,
        needs_record: bool = False,
    ) -> tuple[PlanState, PlanState]:
        record = self.store.load_record(self.current_day())
        if needs_record and record is None:
            raise CheckinRequired("check in before editing today's plan")

        before = PlanState(
            active_hours=self.store.load_active_hours(),
            today=list(record.tasks) if record else [],
            fixed=self.store.load_fixed_tasks(),
            wishes=self.store.load_wishes(),
        )
        after = operation(before)

        self.store.save_changes(
            active_hours=after.active_hours if after.active_hours != before.active_hours else None,
            fixed=after.fixed if after.fixed != before.fixed else None,
            wishes=after.wishes if after.wishes != before.wishes else None,
            record=(
                record.model_copy(update={"tasks": after.today})
                if record is not None and after.today != before.today
                else None
            ),
        )
        return before, after


def _by_id(tasks: List[Task], task_id: str) -> Optional[Task]:
    return next((task for task in tasks if task.id == task_id), None)

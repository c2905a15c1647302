"""Focus-session state machine, countdown and active-task derivation."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Sequence

from kairos.api.schemas.task import Task
from kairos.core.errors import InvalidTransition
from kairos.services.time_utils import parse_hhmm, seconds_since_midnight

logger = logging.getLogger(__name__)

IDLE = "idle"
CHECKIN = "checkin"
DASHBOARD = "dashboard"
FOCUSED = "focused"
COOLDOWN = "cooldown"


@dataclass(frozen=True)
class ActiveTask:
    task: Task
    remaining_seconds: int


def task_bounds(task: Task) -> Optional[tuple[int, int]]:
    """``(start, end)`` of a task in seconds since midnight, or None if it has no start time."""
    start = parse_hhmm(task.start_time)
    if start is None:
        return None
    return start * 60, (start + task.duration) * 60


def find_active_task(tasks: Sequence[Task], now: datetime) -> Optional[ActiveTask]:
    """First incomplete task whose interval contains ``now``."""
    moment = seconds_since_midnight(now)
    for task in tasks:
        if task.is_completed:
            continue
        bounds = task_bounds(task)
        if bounds is None:
            continue
        start, end = bounds
        if start <= moment < end:
            return ActiveTask(task=task, remaining_seconds=max(1, end - moment))
    return None


class Countdown:
    """Whole-second countdown that reports reaching zero exactly once."""

    def __init__(self, seconds: int) -> None:
        self.initial_seconds = max(1, int(seconds))
        self.remaining_seconds = self.initial_seconds
        self._fired = False

    @property
    def finished(self) -> bool:
        return self._fired

    def tick(self) -> bool:
        if self._fired:
            return False
        self.remaining_seconds = max(0, self.remaining_seconds - 1)
        if self.remaining_seconds == 0:
            self._fired = True
            return True
        return False


class FocusSession:
    """Owns the idle/checkin/dashboard/focused/cooldown states for the single user.

    ``on_complete`` receives the focused task id when a focus block finishes
    (countdown or confirmation) and is responsible for persisting completion.
    """

    def __init__(self, *, on_complete: Optional[Callable[[str], None]] = None) -> None:
        self.state = IDLE
        self.focused_task_id: Optional[str] = None
        self.countdown: Optional[Countdown] = None
        self._on_complete = on_complete

    def set_completion_handler(self, handler: Callable[[str], None]) -> None:
        self._on_complete = handler

    def begin_checkin(self) -> None:
        self._require(IDLE, DASHBOARD, action="begin check-in")
        self.state = CHECKIN

    def synthesis_resolved(self) -> None:
        self._require(CHECKIN, action="resolve check-in")
        self.state = DASHBOARD

    def enter_focus(self, task: Task, now: datetime) -> Countdown:
        self._require(DASHBOARD, action="start focus")
        if task.is_completed:
            raise InvalidTransition(f"'{task.title}' is already completed")

        seconds = task.duration * 60
        bounds = task_bounds(task)
        if bounds is not None:
            start, end = bounds
            moment = seconds_since_midnight(now)
            if moment >= end:
                raise InvalidTransition(f"'{task.title}' has already ended")
            if moment >= start:
                seconds = max(1, end - moment)

        self.countdown = Countdown(seconds)
        self.focused_task_id = task.id
        self.state = FOCUSED
        logger.info("Focus started on %s (%ss)", task.id, self.countdown.initial_seconds)
        return self.countdown

    def tick(self) -> None:
        """Advance the countdown by one second; completes the focus block at zero."""
        if self.state != FOCUSED or self.countdown is None:
            return
        if self.countdown.tick():
            self._complete()

    def confirm_completion(self) -> None:
        self._require(FOCUSED, action="confirm completion")
        self._complete()

    def cancel_focus(self) -> None:
        self._require(FOCUSED, action="cancel focus")
        logger.info("Focus on %s cancelled", self.focused_task_id)
        self.state = DASHBOARD
        self.focused_task_id = None
        self.countdown = None

    def dismiss_cooldown(self) -> None:
        self._require(COOLDOWN, action="dismiss cooldown")
        self.state = DASHBOARD
        self.focused_task_id = None
        self.countdown = None

    def _complete(self) -> None:
        task_id = self.focused_task_id
        self.state = COOLDOWN
        logger.info("Focus on %s completed", task_id)
        if task_id is not None and self._on_complete is not None:
            self._on_complete(task_id)

    def _require(self, *allowed: str, action: str) -> None:
        if self.state not in allowed:
            raise InvalidTransition(f"cannot {action} while {self.state}")

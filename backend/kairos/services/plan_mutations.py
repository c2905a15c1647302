"""Structured edit operations over the live day plan and the baseline pools.

Every operation takes a ``PlanState`` and returns a new one. Inputs are never
modified in place, so a failed precondition leaves the caller's state exactly
as it was and a successful one can be swapped in as a whole.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Collection, Iterable, List, Optional
from uuid import uuid4

from kairos.api.schemas.plan import ActiveHours, ActiveHoursUpdate
from kairos.api.schemas.task import FixedTaskCreate, Task, TodayTaskCreate, TodayTaskEdit, WishTaskCreate
from kairos.core.errors import InvalidMutation
from kairos.services.time_utils import end_time_for, minutes_between

DEFAULT_ANCHOR_MINUTES = 60


@dataclass(frozen=True)
class PlanState:
    active_hours: ActiveHours
    today: List[Task] = field(default_factory=list)
    fixed: List[Task] = field(default_factory=list)
    wishes: List[Task] = field(default_factory=list)


def new_task_id(taken: Collection[str] = ()) -> str:
    while True:
        candidate = uuid4().hex[:12]
        if candidate not in taken:
            return candidate


def sort_by_start(tasks: Iterable[Task]) -> List[Task]:
    return sorted(tasks, key=lambda task: task.start_time or "")


def add_fixed_anchor(state: PlanState, partial: FixedTaskCreate) -> PlanState:
    title = _require_title(partial.title)
    if partial.end_time:
        duration = minutes_between(partial.start_time, partial.end_time)
    else:
        duration = partial.duration or DEFAULT_ANCHOR_MINUTES
    anchor = Task(
        id=new_task_id({task.id for task in state.fixed}),
        title=title,
        duration=duration,
        energy_cost=partial.energy_cost,
        is_hard_block=True,
        start_time=partial.start_time,
        end_time=end_time_for(partial.start_time, duration),
        recurring_days=list(partial.recurring_days),
        description=partial.description,
    )
    return replace(state, fixed=[*state.fixed, anchor])


def add_wish(state: PlanState, partial: WishTaskCreate) -> PlanState:
    title = _require_title(partial.title)
    wish = Task(
        id=new_task_id({task.id for task in state.wishes}),
        title=title,
        duration=partial.duration,
        energy_cost=partial.energy_cost,
        is_wish=True,
        description=partial.description,
    )
    return replace(state, wishes=[*state.wishes, wish])


def insert_today(state: PlanState, partial: TodayTaskCreate) -> PlanState:
    title = _require_title(partial.title)
    task = Task(
        id=new_task_id({task.id for task in state.today}),
        title=title,
        duration=partial.duration,
        energy_cost=partial.energy_cost,
        is_completed=False,
        start_time=partial.start_time,
        end_time=end_time_for(partial.start_time, partial.duration),
        description=partial.description,
    )
    return replace(state, today=sort_by_start([*state.today, task]))


def edit_today(state: PlanState, task_id: str, fields: TodayTaskEdit) -> PlanState:
    """Merge ``fields`` into the matching task; an unknown id leaves the state untouched."""
    target = _find(state.today, task_id)
    if target is None:
        return state

    changes = fields.model_dump(exclude_unset=True)
    if "title" in changes:
        if changes["title"] is None:
            del changes["title"]
        else:
            changes["title"] = _require_title(changes["title"])
    for key in ("duration", "energy_cost", "start_time", "is_completed"):
        if key in changes and changes[key] is None:
            del changes[key]

    merged = target.model_copy(update=changes)
    if "start_time" in changes or "duration" in changes:
        merged = merged.model_copy(update={"end_time": end_time_for(merged.start_time, merged.duration)})
    today = [merged if task.id == task_id else task for task in state.today]
    return replace(state, today=sort_by_start(today))


def toggle_completion(state: PlanState, task_id: str) -> PlanState:
    target = _find(state.today, task_id)
    if target is None:
        return state
    flipped = target.model_copy(update={"is_completed": not target.is_completed})
    return replace(state, today=[flipped if task.id == task_id else task for task in state.today])


def mark_completed(state: PlanState, task_id: str) -> PlanState:
    target = _find(state.today, task_id)
    if target is None or target.is_completed:
        return state
    done = target.model_copy(update={"is_completed": True})
    return replace(state, today=[done if task.id == task_id else task for task in state.today])


def remove_by_title(state: PlanState, fragment: str) -> PlanState:
    """Drop every task whose title contains ``fragment`` (case-insensitive) from all three collections.

    Substring matching is broad on purpose: "Reading" also removes "Reading II".
    A blank fragment matches nothing.
    """
    needle = (fragment or "").strip().casefold()
    if not needle:
        return state

    def keep(task: Task) -> bool:
        return needle not in task.title.casefold()

    return replace(
        state,
        today=[task for task in state.today if keep(task)],
        fixed=[task for task in state.fixed if keep(task)],
        wishes=[task for task in state.wishes if keep(task)],
    )


def remove_today(state: PlanState, task_id: str) -> PlanState:
    return replace(state, today=[task for task in state.today if task.id != task_id])


def remove_fixed(state: PlanState, task_id: str) -> PlanState:
    return replace(state, fixed=[task for task in state.fixed if task.id != task_id])


def remove_wish(state: PlanState, task_id: str) -> PlanState:
    return replace(state, wishes=[task for task in state.wishes if task.id != task_id])


def modify_active_hours(state: PlanState, partial: ActiveHoursUpdate) -> PlanState:
    changes = {key: value for key, value in partial.model_dump(exclude_unset=True).items() if value is not None}
    return replace(state, active_hours=state.active_hours.model_copy(update=changes))


def _require_title(title: Optional[str]) -> str:
    cleaned = (title or "").strip()
    if not cleaned:
        raise InvalidMutation("title must not be empty")
    return cleaned


def _find(tasks: Iterable[Task], task_id: str) -> Optional[Task]:
    for task in tasks:
        if task.id == task_id:
            return task
    return None

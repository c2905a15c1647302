"""Schema boundary, hard-constraint checks and deterministic layout for oracle proposals.

An oracle answer goes through three gates before it can become a day plan:

1. ``parse_proposal`` turns raw text into ``ValidSchedule`` or ``MalformedSchedule``.
2. ``assemble_schedule`` rejects hard violations (moved or missing anchors,
   renamed user tasks, overlaps, window breaches) with ``ConstraintViolation``.
3. The surviving proposal is re-laid out around the anchors: over-long tasks
   are chunked, wish time is scaled to the energy score, recovery breaks are
   put between back-to-back high-energy tasks and every gap is filled, then
   ``find_violations`` re-checks the result.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple, Union

from pydantic import Field, TypeAdapter, ValidationError

from kairos.api.schemas.plan import ActiveHours
from kairos.api.schemas.task import HHMM_PATTERN, CamelModel, EnergyCost, Task
from kairos.core.errors import ConstraintViolation, InvalidWindow
from kairos.services.plan_mutations import new_task_id
from kairos.services.schedule_oracle import PacingRules
from kairos.services.time_utils import format_hhmm, parse_hhmm

logger = logging.getLogger(__name__)

ENERGY_WISH_FACTORS: Dict[int, float] = {1: 0.5, 2: 0.75, 3: 1.0, 4: 1.0, 5: 1.25}

RECOVERY_TITLE = "Recovery break"
RECOVERY_NOTE = "Step away from the screen, take five slow breaths and drink some water."
OPEN_TITLE = "Open time"
OPEN_NOTE = "Unplanned time. Rest, tidy up or catch up on something small."


class ProposedTask(CamelModel):
    id: str
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    duration: int = Field(..., gt=0)
    energy_cost: EnergyCost
    is_hard_block: bool
    is_wish: bool
    start_time: str = Field(..., pattern=HHMM_PATTERN)


_PROPOSAL_LIST = TypeAdapter(List[ProposedTask])


@dataclass(frozen=True)
class ValidSchedule:
    tasks: List[ProposedTask]


@dataclass(frozen=True)
class MalformedSchedule:
    reason: str


ParsedSchedule = Union[ValidSchedule, MalformedSchedule]


@dataclass(frozen=True)
class Window:
    start: int
    end: int


@dataclass
class _Slot:
    kind: str  # anchor | wish | filler | recovery | open
    title: str
    duration: int
    energy_cost: str
    start: int = 0
    description: Optional[str] = None
    anchor: Optional[Task] = None
    wish: Optional[Task] = None
    group: Optional[str] = None

    @property
    def end(self) -> int:
        return self.start + self.duration


def resolve_window(hours: ActiveHours) -> Window:
    start = parse_hhmm(hours.start)
    end = parse_hhmm(hours.end)
    if start is None or end is None:
        raise InvalidWindow(f"active hours {hours.start}-{hours.end} are not valid HH:mm times")
    if start >= end:
        raise InvalidWindow(f"active hours start {hours.start} must be before end {hours.end}")
    return Window(start=start, end=end)


def wish_allowance(wish: Task, energy: int) -> int:
    """Minutes of a wish worth scheduling at the given energy score."""
    factor = ENERGY_WISH_FACTORS.get(energy, 1.0)
    return max(1, int(round(wish.duration * factor)))


def parse_proposal(raw: Any) -> ParsedSchedule:
    payload = raw
    if isinstance(raw, (str, bytes)):
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            return MalformedSchedule(f"invalid JSON: {exc.msg}")
    if isinstance(payload, dict):
        payload = payload.get("tasks")
    if not isinstance(payload, list):
        return MalformedSchedule("expected a list of tasks")
    if not payload:
        return MalformedSchedule("empty schedule")
    try:
        tasks = _PROPOSAL_LIST.validate_python(payload)
    except ValidationError as exc:
        return MalformedSchedule(f"{exc.error_count()} invalid task field(s)")
    return ValidSchedule(tasks=tasks)


def assemble_schedule(
    proposal: ValidSchedule,
    anchors: Sequence[Task],
    wishes: Sequence[Task],
    window: Window,
    energy: int,
    rules: PacingRules,
) -> List[Task]:
    """Turn a parsed proposal into a plan that tiles the window, or raise ``ConstraintViolation``."""
    flexible = _classify(proposal.tasks, anchors, wishes, window)
    timeline = _lay_out(flexible, anchors, window, energy, rules)
    tasks = _materialize(timeline)
    violations = find_violations(tasks, anchors, window, rules)
    if violations:
        raise ConstraintViolation("; ".join(violations))
    return tasks


def find_violations(
    tasks: Sequence[Task],
    anchors: Sequence[Task],
    window: Window,
    rules: PacingRules,
) -> List[str]:
    """List every hard-constraint breach in a finished plan (empty when the plan is acceptable)."""
    if not tasks:
        return ["plan is empty"]

    problems: List[str] = []
    anchor_ids = {anchor.id for anchor in anchors}
    cursor = window.start
    previous: Optional[Task] = None
    for task in tasks:
        start = parse_hhmm(task.start_time)
        if start is None:
            problems.append(f"'{task.title}' has no start time")
            return problems
        if start != cursor:
            problems.append(f"'{task.title}' starts at {task.start_time}, expected {format_hhmm(cursor)}")
        if task.end_time != format_hhmm(start + task.duration):
            problems.append(f"'{task.title}' end time does not match its duration")
        if task.id not in anchor_ids and task.duration > rules.cap_minutes:
            problems.append(f"'{task.title}' runs {task.duration} min, over the {rules.cap_minutes} min cap")
        if (
            previous is not None
            and previous.energy_cost == "high"
            and task.energy_cost == "high"
            and not (previous.id in anchor_ids and task.id in anchor_ids)
        ):
            problems.append(f"'{previous.title}' and '{task.title}' are back-to-back high-energy tasks")
        cursor = start + task.duration
        previous = task
    if cursor != window.end:
        problems.append(f"plan ends at {format_hhmm(cursor)}, expected {format_hhmm(window.end)}")

    by_id = {task.id: task for task in tasks}
    for anchor in anchors:
        placed = by_id.get(anchor.id)
        if placed is None:
            problems.append(f"anchor '{anchor.title}' is missing")
            continue
        if (placed.title, placed.start_time, placed.end_time, placed.duration) != (
            anchor.title,
            anchor.start_time,
            anchor.end_time,
            anchor.duration,
        ):
            problems.append(f"anchor '{anchor.title}' was altered")
    return problems


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _classify(
    proposed: Sequence[ProposedTask],
    anchors: Sequence[Task],
    wishes: Sequence[Task],
    window: Window,
) -> List[_Slot]:
    """Reject hard violations and return the non-anchor items in proposed order."""
    ordered = sorted(proposed, key=lambda task: parse_hhmm(task.start_time) or 0)

    previous_end: Optional[int] = None
    previous_title = ""
    for task in ordered:
        start = parse_hhmm(task.start_time) or 0
        if start < window.start or start + task.duration > window.end:
            raise ConstraintViolation(f"'{task.title}' falls outside the active window")
        if previous_end is not None and start < previous_end:
            raise ConstraintViolation(f"'{task.title}' overlaps '{previous_title}'")
        previous_end = start + task.duration
        previous_title = task.title

    anchors_by_id = {anchor.id: anchor for anchor in anchors}
    anchors_by_title: Dict[str, Task] = {}
    for anchor in anchors:
        anchors_by_title.setdefault(anchor.title, anchor)
    wishes_by_id = {wish.id: wish for wish in wishes}
    wishes_by_title: Dict[str, Task] = {}
    for wish in wishes:
        wishes_by_title.setdefault(wish.title, wish)

    seen_anchors: Set[str] = set()
    flexible: List[_Slot] = []
    for task in ordered:
        start = parse_hhmm(task.start_time) or 0
        anchor = anchors_by_id.get(task.id) or anchors_by_title.get(task.title)
        if anchor is not None:
            if task.title != anchor.title:
                raise ConstraintViolation(f"anchor '{anchor.title}' was renamed to '{task.title}'")
            if task.start_time != anchor.start_time or task.duration != anchor.duration:
                raise ConstraintViolation(f"anchor '{anchor.title}' was moved or resized")
            if anchor.id in seen_anchors:
                raise ConstraintViolation(f"anchor '{anchor.title}' appears twice")
            seen_anchors.add(anchor.id)
            continue
        if task.is_hard_block:
            raise ConstraintViolation(f"'{task.title}' is not one of today's fixed tasks")

        wish = wishes_by_id.get(task.id) or wishes_by_title.get(task.title)
        if wish is not None:
            if task.title != wish.title:
                raise ConstraintViolation(f"wish '{wish.title}' was renamed to '{task.title}'")
            flexible.append(
                _Slot(
                    kind="wish",
                    title=wish.title,
                    duration=task.duration,
                    energy_cost=wish.energy_cost,
                    start=start,
                    description=task.description or wish.description,
                    wish=wish,
                    group=f"wish:{wish.id}",
                )
            )
            continue
        if task.is_wish:
            raise ConstraintViolation(f"'{task.title}' does not match any wish")

        flexible.append(
            _Slot(
                kind="filler",
                title=task.title,
                duration=task.duration,
                energy_cost=task.energy_cost,
                start=start,
                description=task.description,
            )
        )

    missing = [anchor.title for anchor in anchors if anchor.id not in seen_anchors]
    if missing:
        raise ConstraintViolation(f"missing fixed task(s): {', '.join(missing)}")
    return flexible


def _lay_out(
    flexible: List[_Slot],
    anchors: Sequence[Task],
    window: Window,
    energy: int,
    rules: PacingRules,
) -> List[_Slot]:
    fixed = sorted((_anchor_slot(anchor) for anchor in anchors), key=lambda slot: slot.start)
    items = _split_long(_apply_wish_allowance(flexible, energy), rules.cap_minutes)

    placed: List[_Slot] = []
    cursor = window.start
    for slot in items:
        position = _find_position(slot, max(cursor, slot.start), fixed, placed, window, rules)
        if position is None:
            logger.debug("No room left for '%s' (%s min); dropping it", slot.title, slot.duration)
            continue
        break_start, begin = position
        if break_start is not None:
            placed.append(_recovery_slot(break_start, rules.buffer_minutes))
        placed.append(replace(slot, start=begin))
        cursor = begin + slot.duration

    timeline = sorted(fixed + placed, key=lambda slot: slot.start)
    return _fill_gaps(timeline, window, rules.cap_minutes)


def _apply_wish_allowance(flexible: List[_Slot], energy: int) -> List[_Slot]:
    remaining: Dict[str, int] = {}
    trimmed: List[_Slot] = []
    for slot in flexible:
        if slot.wish is None:
            trimmed.append(slot)
            continue
        left = remaining.get(slot.wish.id)
        if left is None:
            left = wish_allowance(slot.wish, energy)
        granted = min(slot.duration, left)
        remaining[slot.wish.id] = left - granted
        if granted > 0:
            trimmed.append(replace(slot, duration=granted))
    return trimmed


def _split_long(items: List[_Slot], cap: int) -> List[_Slot]:
    chunked: List[_Slot] = []
    for index, slot in enumerate(items):
        if slot.duration <= cap:
            chunked.append(slot)
            continue
        group = slot.group or f"split:{index}"
        remaining = slot.duration
        while remaining > 0:
            part = min(cap, remaining)
            chunked.append(replace(slot, duration=part, group=group))
            remaining -= part
    return chunked


def _find_position(
    slot: _Slot,
    earliest: int,
    fixed: List[_Slot],
    placed: List[_Slot],
    window: Window,
    rules: PacingRules,
) -> Optional[Tuple[Optional[int], int]]:
    """Return ``(recovery_break_start or None, start)`` for the first spot that fits, or None."""
    candidate = earliest
    while True:
        previous = _ending_at(candidate, fixed, placed)
        lead = rules.buffer_minutes if previous is not None and _needs_break(previous, slot) else 0
        begin = candidate + lead
        end = begin + slot.duration
        if end > window.end:
            return None
        blocker = next((anchor for anchor in fixed if anchor.start < end and anchor.end > candidate), None)
        if blocker is not None:
            candidate = blocker.end
            continue
        following = next((anchor for anchor in fixed if anchor.start == end), None)
        if following is not None and _needs_break(slot, following):
            candidate = following.end
            continue
        return (candidate if lead else None, begin)


def _ending_at(moment: int, fixed: List[_Slot], placed: List[_Slot]) -> Optional[_Slot]:
    if placed and placed[-1].end == moment:
        return placed[-1]
    return next((anchor for anchor in fixed if anchor.end == moment), None)


def _needs_break(before: _Slot, after: _Slot) -> bool:
    if before.energy_cost == "high" and after.energy_cost == "high":
        return True
    return before.group is not None and before.group == after.group


def _fill_gaps(timeline: List[_Slot], window: Window, cap: int) -> List[_Slot]:
    filled: List[_Slot] = []
    cursor = window.start
    for slot in timeline:
        if slot.start > cursor:
            filled.extend(_open_slots(cursor, slot.start, cap))
        filled.append(slot)
        cursor = slot.end
    if cursor < window.end:
        filled.extend(_open_slots(cursor, window.end, cap))
    return filled


def _open_slots(start: int, end: int, cap: int) -> List[_Slot]:
    slots: List[_Slot] = []
    cursor = start
    while cursor < end:
        length = min(cap, end - cursor)
        slots.append(
            _Slot(kind="open", title=OPEN_TITLE, duration=length, energy_cost="low", start=cursor, description=OPEN_NOTE)
        )
        cursor += length
    return slots


def _anchor_slot(anchor: Task) -> _Slot:
    return _Slot(
        kind="anchor",
        title=anchor.title,
        duration=anchor.duration,
        energy_cost=anchor.energy_cost,
        start=parse_hhmm(anchor.start_time) or 0,
        anchor=anchor,
    )


def _recovery_slot(start: int, minutes: int) -> _Slot:
    return _Slot(
        kind="recovery",
        title=RECOVERY_TITLE,
        duration=minutes,
        energy_cost="low",
        start=start,
        description=RECOVERY_NOTE,
    )


def _materialize(timeline: List[_Slot]) -> List[Task]:
    taken = {slot.anchor.id for slot in timeline if slot.anchor is not None}
    tasks: List[Task] = []
    for slot in timeline:
        if slot.anchor is not None:
            tasks.append(slot.anchor.model_copy(update={"is_completed": False}))
            continue
        task_id = new_task_id(taken)
        taken.add(task_id)
        tasks.append(
            Task(
                id=task_id,
                title=slot.title,
                duration=slot.duration,
                energy_cost=slot.energy_cost,
                is_hard_block=False,
                is_wish=slot.kind == "wish",
                is_completed=False,
                start_time=format_hhmm(slot.start),
                end_time=format_hhmm(slot.end),
                description=slot.description,
            )
        )
    return tasks

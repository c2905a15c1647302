from __future__ import annotations

import pytest

from kairos.api.schemas.plan import ActiveHours, ActiveHoursUpdate
from kairos.api.schemas.task import FixedTaskCreate, Task, TodayTaskCreate, TodayTaskEdit, WishTaskCreate
from kairos.core.errors import InvalidMutation
from kairos.services import plan_mutations as ops


def _state() -> ops.PlanState:
    return ops.PlanState(
        active_hours=ActiveHours(start="08:00", end="23:00"),
        today=[
            Task(id="t1", title="Meditation", duration=15, start_time="08:00", end_time="08:15"),
            Task(id="t2", title="Emails", duration=30, start_time="09:00", end_time="09:30"),
        ],
        fixed=[
            Task(
                id="f1",
                title="Morning meditation",
                duration=20,
                is_hard_block=True,
                start_time="07:30",
                end_time="07:50",
                recurring_days=[1, 2],
            )
        ],
        wishes=[Task(id="w1", title="MEDITATION retreat planning", duration=60, is_wish=True)],
    )


def test_add_fixed_anchor_derives_duration_from_end_time() -> None:
    state = ops.add_fixed_anchor(
        _state(), FixedTaskCreate(title="  Team standup ", start_time="10:00", end_time="10:45", energy_cost="low")
    )

    anchor = state.fixed[-1]
    assert anchor.title == "Team standup"
    assert anchor.duration == 45
    assert anchor.end_time == "10:45"
    assert anchor.is_hard_block is True
    assert anchor.recurring_days == [0, 1, 2, 3, 4, 5, 6]


def test_add_fixed_anchor_without_end_time_uses_duration() -> None:
    state = ops.add_fixed_anchor(_state(), FixedTaskCreate(title="Lunch", start_time="12:00", duration=40))
    assert state.fixed[-1].end_time == "12:40"

    state = ops.add_fixed_anchor(_state(), FixedTaskCreate(title="Nap", start_time="14:00"))
    assert state.fixed[-1].duration == 60


def test_add_fixed_anchor_with_inverted_times_falls_back_to_an_hour() -> None:
    state = ops.add_fixed_anchor(_state(), FixedTaskCreate(title="Odd", start_time="10:00", end_time="09:00"))
    assert state.fixed[-1].duration == 60
    assert state.fixed[-1].end_time == "11:00"


def test_empty_title_is_rejected_without_touching_state() -> None:
    original = _state()

    with pytest.raises(InvalidMutation):
        ops.add_wish(original, WishTaskCreate(title="   "))
    with pytest.raises(InvalidMutation):
        ops.edit_today(original, "t1", TodayTaskEdit(title=""))

    assert len(original.wishes) == 1
    assert original.today[0].title == "Meditation"


def test_insert_today_keeps_plan_sorted() -> None:
    state = ops.insert_today(_state(), TodayTaskCreate(title="Walk", start_time="08:30", duration=20))

    assert [task.title for task in state.today] == ["Meditation", "Walk", "Emails"]
    assert state.today[1].end_time == "08:50"
    assert state.today[1].is_completed is False


def test_edit_today_recomputes_end_and_resorts() -> None:
    state = ops.edit_today(_state(), "t1", TodayTaskEdit(start_time="10:00", duration=25))

    assert [task.id for task in state.today] == ["t2", "t1"]
    assert state.today[1].end_time == "10:25"


def test_edit_and_toggle_unknown_id_are_noops() -> None:
    state = _state()

    assert ops.edit_today(state, "missing", TodayTaskEdit(title="x")) is state
    assert ops.toggle_completion(state, "missing") is state
    assert ops.mark_completed(state, "missing") is state


def test_toggle_and_mark_completed() -> None:
    state = ops.toggle_completion(_state(), "t2")
    assert state.today[1].is_completed is True

    state = ops.toggle_completion(state, "t2")
    assert state.today[1].is_completed is False

    done = ops.mark_completed(state, "t2")
    assert ops.mark_completed(done, "t2") is done


def test_remove_by_title_hits_all_collections_case_insensitively() -> None:
    state = ops.remove_by_title(_state(), "Meditation")

    assert [task.id for task in state.today] == ["t2"]
    assert state.fixed == []
    assert state.wishes == []


def test_remove_by_title_blank_fragment_matches_nothing() -> None:
    state = _state()
    assert ops.remove_by_title(state, "  ") is state


def test_remove_by_id_and_active_hours() -> None:
    state = ops.remove_fixed(ops.remove_wish(ops.remove_today(_state(), "t1"), "w1"), "f1")
    assert ([t.id for t in state.today], state.fixed, state.wishes) == (["t2"], [], [])

    state = ops.modify_active_hours(state, ActiveHoursUpdate(end="21:30"))
    assert (state.active_hours.start, state.active_hours.end) == ("08:00", "21:30")


def test_new_task_id_avoids_taken_ids() -> None:
    taken = {ops.new_task_id() for _ in range(20)}
    assert ops.new_task_id(taken) not in taken

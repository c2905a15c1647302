from __future__ import annotations

import asyncio

from conftest import ScriptedOracle, call
from kairos.core.errors import OracleMalformed, OracleUnavailable
from kairos.services.chat_assistant import APOLOGY_REPLY, DONE_REPLY, SUPERSEDED_REPLY, ChatAssistant
from kairos.services.schedule_oracle import OracleReply


def _assistant(make_planner, oracle):
    planner = make_planner(oracle)
    return planner, ChatAssistant(planner, oracle, timeout_seconds=0.5)


def test_function_calls_run_through_the_mutation_engine(make_planner) -> None:
    oracle = ScriptedOracle(
        reply=OracleReply(
            text="Added yoga and cleared writing.",
            function_calls=[
                call("add_wish_task", title="Yoga", energyCost="low", duration=30),
                call(
                    "add_fixed_task",
                    title="Dentist",
                    startTime="15:00",
                    endTime="16:00",
                    energyCost="medium",
                    recurringDays=[2],
                ),
                call("remove_task", title="creative"),
                call("modify_active_window", start="07:30"),
            ],
        )
    )
    planner, assistant = _assistant(make_planner, oracle)

    result = asyncio.run(assistant.handle("add yoga please"))

    assert result.reply == "Added yoga and cleared writing."
    assert [command.applied for command in result.commands] == [True, True, True, True]
    baseline = planner.baseline()
    assert [wish.title for wish in baseline.wish_pool] == ["Personal finance study", "Yoga"]
    dentist = baseline.fixed_anchors[-1]
    assert (dentist.title, dentist.end_time, dentist.recurring_days) == ("Dentist", "16:00", [2])
    assert baseline.active_hours.start == "07:30"


def test_invalid_arguments_skip_only_that_call(make_planner) -> None:
    oracle = ScriptedOracle(
        reply=OracleReply(
            text="",
            function_calls=[
                call("add_fixed_task", title="Gym"),
                call("add_wish_task", title="", energyCost="low"),
                call("launch_rocket", target="moon"),
                call("add_wish_task", title="Sketching", energyCost="medium"),
            ],
        )
    )
    planner, assistant = _assistant(make_planner, oracle)

    result = asyncio.run(assistant.handle("do stuff"))

    assert [command.applied for command in result.commands] == [False, False, False, True]
    assert result.commands[0].error == "invalid arguments"
    assert result.commands[1].error == "title must not be empty"
    assert result.commands[2].error == "unknown command"
    assert result.reply == DONE_REPLY
    assert planner.baseline().wish_pool[-1].duration == 60


def test_today_insert_before_checkin_is_reported(make_planner) -> None:
    oracle = ScriptedOracle(
        reply=OracleReply(
            text="ok",
            function_calls=[call("modify_today_plan", title="Nap", startTime="14:00", duration=20)],
        )
    )
    _, assistant = _assistant(make_planner, oracle)

    result = asyncio.run(assistant.handle("nap at two"))

    assert result.commands[0].applied is False
    assert "check in" in result.commands[0].error


def test_oracle_failure_returns_apology_and_runs_nothing(make_planner) -> None:
    for error in (OracleUnavailable("no key"), OracleMalformed("bad args")):
        oracle = ScriptedOracle(error=error, reply=OracleReply(text="x", function_calls=[call("remove_task", title="a")]))
        planner, assistant = _assistant(make_planner, oracle)
        before = planner.baseline()

        result = asyncio.run(assistant.handle("remove everything"))

        assert result.reply == APOLOGY_REPLY
        assert result.commands == []
        assert planner.baseline() == before


def test_slow_oracle_times_out_to_apology(make_planner) -> None:
    oracle = ScriptedOracle(delays=[2.0])
    _, assistant = _assistant(make_planner, oracle)

    result = asyncio.run(assistant.handle("hello"))

    assert result.reply == APOLOGY_REPLY


def test_commands_from_a_reply_overtaken_by_a_checkin_are_not_applied(make_planner, default_day_proposal) -> None:
    oracle = ScriptedOracle(
        schedule=default_day_proposal,
        delays=[0.2, 0.0],
        reply=OracleReply(text="Added it.", function_calls=[call("add_wish_task", title="Old", energyCost="low")]),
    )
    planner, assistant = _assistant(make_planner, oracle)

    async def run_both():
        return await asyncio.gather(assistant.handle("add Old to my wishes"), planner.check_in(4))

    result, checkin = asyncio.run(run_both())

    assert checkin.adopted is True
    assert [command.applied for command in result.commands] == [False]
    assert result.commands[0].error == "superseded by a newer check-in"
    assert result.reply == SUPERSEDED_REPLY
    assert "Old" not in [wish.title for wish in planner.baseline().wish_pool]

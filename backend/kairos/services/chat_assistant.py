"""Conversational command source: oracle function calls executed through the mutation engine."""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Type

from pydantic import BaseModel, ValidationError

from kairos.api.schemas.chat import ChatMessage, ExecutedCommand, FunctionCall
from kairos.api.schemas.plan import ActiveHoursUpdate
from kairos.api.schemas.task import FixedTaskCreate, RemoveByTitleRequest, TodayTaskCreate, WishTaskCreate
from kairos.core.errors import CheckinRequired, InvalidMutation, OracleMalformed, OracleUnavailable
from kairos.observability.metrics import log_metric
from kairos.observability.tracing import trace
from kairos.services.day_planner import DayPlanner
from kairos.services.schedule_oracle import ChatContext, ConversationOracle

logger = logging.getLogger(__name__)

APOLOGY_REPLY = "Sorry, I lost my train of thought for a moment. Please check that the API key is configured."
DONE_REPLY = "Done. I've updated your plan."
SUPERSEDED_REPLY = "Your plan was rebuilt while I was thinking, so I left it as it is. Please ask again."


@dataclass
class ChatResult:
    reply: str
    commands: List[ExecutedCommand]


def _add_fixed(planner: DayPlanner, args: FixedTaskCreate) -> str:
    task = planner.add_fixed(args)
    return f"Added fixed task '{task.title}' at {task.start_time}-{task.end_time}"


def _add_wish(planner: DayPlanner, args: WishTaskCreate) -> str:
    task = planner.add_wish(args)
    return f"Added '{task.title}' ({task.duration} min) to the wish pool"


def _modify_today(planner: DayPlanner, args: TodayTaskCreate) -> str:
    task = planner.insert_today(args)
    return f"Inserted '{task.title}' at {task.start_time} today"


def _remove_task(planner: DayPlanner, args: RemoveByTitleRequest) -> str:
    counts = planner.remove_by_title(args.title)
    removed = counts.today + counts.fixed + counts.wishes
    return f"Removed {removed} task(s) matching '{args.title}'"


def _modify_window(planner: DayPlanner, args: ActiveHoursUpdate) -> str:
    hours = planner.set_active_hours(args)
    return f"Active hours are now {hours.start}-{hours.end}"


COMMANDS: Dict[str, Tuple[Type[BaseModel], Callable[[DayPlanner, BaseModel], str]]] = {
    "add_fixed_task": (FixedTaskCreate, _add_fixed),
    "add_wish_task": (WishTaskCreate, _add_wish),
    "modify_today_plan": (TodayTaskCreate, _modify_today),
    "remove_task": (RemoveByTitleRequest, _remove_task),
    "modify_active_window": (ActiveHoursUpdate, _modify_window),
}


def _superseded(call: FunctionCall) -> ExecutedCommand:
    return ExecutedCommand(name=call.name, applied=False, summary="Skipped", error="superseded by a newer check-in")


class ChatAssistant:
    def __init__(self, planner: DayPlanner, oracle: ConversationOracle, *, timeout_seconds: float = 20.0) -> None:
        self._planner = planner
        self._oracle = oracle
        self._timeout_seconds = timeout_seconds

    async def handle(
        self,
        message: str,
        history: Sequence[ChatMessage] = (),
        *,
        request_id: Optional[str] = None,
    ) -> ChatResult:
        """Ask the oracle, then run each returned command in order.

        An oracle failure returns the apology reply and runs nothing. When a
        check-in for today starts while the oracle is thinking, the reply is
        stale and none of its commands run. A command with unusable arguments
        is reported and skipped; the rest still run.
        """
        day = self._planner.current_day()
        generation = self._planner.generation(day)
        record = self._planner.today().record
        context = ChatContext(
            energy=record.energy if record else None,
            tasks=list(record.tasks) if record else [],
        )
        started = time.perf_counter()

        with trace(
            "chat.converse",
            metadata={"message_chars": len(message), "history": len(history)},
            request_id=request_id,
        ) as chat_trace:
            try:
                reply = await asyncio.wait_for(
                    self._oracle.converse(message, history, context),
                    timeout=self._timeout_seconds,
                )
            except (asyncio.TimeoutError, OracleUnavailable, OracleMalformed) as exc:
                logger.warning("Chat oracle failed, replying with apology: %s", exc or type(exc).__name__)
                return ChatResult(reply=APOLOGY_REPLY, commands=[])

            superseded = self._planner.generation(day) != generation
            if superseded:
                logger.info("Dropping %s chat command(s): a newer check-in started", len(reply.function_calls))
                commands = [_superseded(call) for call in reply.function_calls]
            else:
                commands = [self._execute(call) for call in reply.function_calls]
            if chat_trace:
                chat_trace.update(metadata={"commands": [command.name for command in commands]})

        applied = sum(1 for command in commands if command.applied)
        log_metric(
            "chat_commands_applied",
            applied,
            metadata={"requested": len(commands), "latency_ms": int((time.perf_counter() - started) * 1000)},
        )

        if superseded and commands:
            return ChatResult(reply=SUPERSEDED_REPLY, commands=commands)

        text = reply.text.strip()
        if not text:
            text = DONE_REPLY if applied else "Okay."
        return ChatResult(reply=text, commands=commands)

    def _execute(self, call: FunctionCall) -> ExecutedCommand:
        entry = COMMANDS.get(call.name)
        if entry is None:
            logger.warning("Ignoring unknown chat command %s", call.name)
            return ExecutedCommand(name=call.name, applied=False, summary="Unknown command", error="unknown command")

        model, handler = entry
        try:
            arguments = model.model_validate(call.args)
        except ValidationError as exc:
            logger.info("Skipping %s with invalid arguments (%s error(s))", call.name, exc.error_count())
            return ExecutedCommand(name=call.name, applied=False, summary="Skipped", error="invalid arguments")

        try:
            summary = handler(self._planner, arguments)
        except (InvalidMutation, CheckinRequired) as exc:
            logger.info("Chat command %s not applied: %s", call.name, exc)
            return ExecutedCommand(name=call.name, applied=False, summary="Skipped", error=str(exc))
        return ExecutedCommand(name=call.name, applied=True, summary=summary)

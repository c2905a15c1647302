"""Generative oracle clients (OpenAI) for schedules, chat commands and weekly insights."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

import openai

from kairos.api.schemas.chat import ChatMessage, FunctionCall
from kairos.api.schemas.plan import ActiveHours
from kairos.api.schemas.task import Task
from kairos.core.errors import OracleMalformed, OracleUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PacingRules:
    cap_minutes: int = 60
    buffer_minutes: int = 15


@dataclass(frozen=True)
class ScheduleRequest:
    energy: int
    candidate_tasks: List[Task]
    window: ActiveHours
    rules: PacingRules = PacingRules()


@dataclass(frozen=True)
class ChatContext:
    energy: Optional[int]
    tasks: List[Task]


@dataclass
class OracleReply:
    text: str
    function_calls: List[FunctionCall] = field(default_factory=list)


@dataclass(frozen=True)
class WeeklyInsightRequest:
    completion_rate: int
    focus_minutes: int
    top_tasks: List[str]


class ScheduleOracle(Protocol):
    async def propose_schedule(self, request: ScheduleRequest) -> str:
        ...


class ConversationOracle(Protocol):
    async def converse(self, message: str, history: Sequence[ChatMessage], context: ChatContext) -> OracleReply:
        ...


class InsightOracle(Protocol):
    async def weekly_insight(self, request: WeeklyInsightRequest) -> str:
        ...


SCHEDULE_SYSTEM_PROMPT = (
    "You are Kairos, a daily-flow coach for people with ADHD or irregular sleep. "
    "Turn the user's task pool into a seamless, comfortable timetable for one day."
)

CHAT_SYSTEM_PROMPT = (
    "You are Kairos, a calm and efficient life assistant.\n"
    "1. Never rename a task the user wrote.\n"
    "2. Filler tasks you invent must have clear, tidy titles (e.g. 'Stretch break', 'Mindful breathing') "
    "with concrete advice in the description.\n"
    "3. Always respect the time of fixed tasks.\n"
    "4. Every change must be made through a tool call."
)

CHAT_TOOLS: List[Dict[str, Any]] = [
    {
        "type": "function",
        "function": {
            "name": "add_fixed_task",
            "description": "Add a new weekly recurring fixed commitment (anchor task).",
            "parameters": {
                "type": "object",
                "properties": {
                    "title": {"type": "string", "description": "Task title"},
                    "startTime": {"type": "string", "description": "Start time HH:mm"},
                    "endTime": {"type": "string", "description": "End time HH:mm"},
                    "energyCost": {"type": "string", "enum": ["low", "medium", "high"]},
                    "recurringDays": {
                        "type": "array",
                        "items": {"type": "integer"},
                        "description": "Weekdays it repeats on (0=Sunday, 1=Monday ...)",
                    },
                },
                "required": ["title", "startTime", "endTime", "energyCost"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "add_wish_task",
            "description": "Put a flexible goal with no fixed time into the wish pool.",
            "parameters": {
                "type": "object",
                "properties": {
                    "title": {"type": "string", "description": "Task title"},
                    "energyCost": {"type": "string", "enum": ["low", "medium", "high"]},
                    "duration": {"type": "number", "description": "Target minutes"},
                },
                "required": ["title", "energyCost"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "modify_today_plan",
            "description": "Insert a one-off task into today's live plan.",
            "parameters": {
                "type": "object",
                "properties": {
                    "title": {"type": "string", "description": "Task title"},
                    "startTime": {"type": "string", "description": "Start time HH:mm"},
                    "duration": {"type": "number", "description": "Minutes"},
                    "energyCost": {"type": "string", "enum": ["low", "medium", "high"]},
                    "description": {"type": "string", "description": "A short friendly tip"},
                },
                "required": ["title", "startTime", "duration"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "remove_task",
            "description": "Delete a task. Use the exact title shown in today's plan.",
            "parameters": {
                "type": "object",
                "properties": {"title": {"type": "string", "description": "Title of the task to delete"}},
                "required": ["title"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "modify_active_window",
            "description": "Change the user's daily active hours.",
            "parameters": {
                "type": "object",
                "properties": {
                    "start": {"type": "string", "description": "Wake time HH:mm"},
                    "end": {"type": "string", "description": "Wind-down time HH:mm"},
                },
            },
        },
    },
]


def build_schedule_prompt(request: ScheduleRequest) -> str:
    """Render the instruction set the oracle must follow for one synthesis."""
    window = request.window
    rules = request.rules
    pool = json.dumps(
        [task.model_dump(mode="json", by_alias=True, exclude={"is_completed"}) for task in request.candidate_tasks],
        ensure_ascii=False,
    )
    return (
        f"Build a gap-free plan from {window.start} to {window.end}.\n"
        "Hard rules:\n"
        f"1. The first task starts at {window.start}; nothing ends after {window.end}.\n"
        "2. Tasks with isHardBlock=true keep their startTime, duration and title exactly.\n"
        "3. Copy every user task title verbatim. Only tasks you invent may get new titles; "
        "give them tidy names and concrete advice in 'description'.\n"
        "4. Tasks must not overlap and must cover the whole window.\n"
        f"5. No non-fixed task may exceed {rules.cap_minutes} minutes; split longer wishes into "
        f"same-titled parts separated by a {rules.buffer_minutes}-minute recovery break.\n"
        f"6. Never put two high-energy tasks back to back; insert a {rules.buffer_minutes}-minute "
        "low-energy recovery break between them.\n"
        "7. Scale wish time with energy: at 1-2 schedule well under each wish's duration, "
        "at 4-5 schedule about its full duration.\n"
        f"Energy score: {request.energy}/5\n"
        f"Task pool: {pool}\n"
        'Reply with a JSON object {"tasks": [...]} where each task has id, title, description, '
        "duration (minutes), energyCost (low|medium|high), isHardBlock, isWish and startTime (HH:mm)."
    )


def build_chat_context(context: ChatContext) -> str:
    energy = f"{context.energy}/5" if context.energy else "not checked in"
    flow = ", ".join(f"{task.start_time or '--:--'} {task.title}" for task in context.tasks) or "empty"
    return f"Current energy: {energy}\nToday's flow: {flow}"


class OpenAIOracle:
    """Async OpenAI client implementing every oracle protocol.

    Without an API key each call raises ``OracleUnavailable`` so callers take
    their deterministic fallback path.
    """

    def __init__(self, *, api_key: Optional[str], model: str = "gpt-4o", timeout_seconds: float = 20.0) -> None:
        self._model = model
        self._client = openai.AsyncOpenAI(api_key=api_key, timeout=timeout_seconds) if api_key else None

    def _require_client(self) -> "openai.AsyncOpenAI":
        if self._client is None:
            raise OracleUnavailable("OPENAI_API_KEY is not configured")
        return self._client

    async def propose_schedule(self, request: ScheduleRequest) -> str:
        client = self._require_client()
        try:
            completion = await client.chat.completions.create(
                model=self._model,
                response_format={"type": "json_object"},
                temperature=0.4,
                messages=[
                    {"role": "system", "content": SCHEDULE_SYSTEM_PROMPT},
                    {"role": "user", "content": build_schedule_prompt(request)},
                ],
            )
        except openai.OpenAIError as exc:
            raise OracleUnavailable(str(exc)) from exc
        return completion.choices[0].message.content or ""

    async def converse(self, message: str, history: Sequence[ChatMessage], context: ChatContext) -> OracleReply:
        client = self._require_client()
        messages: List[Dict[str, Any]] = [
            {"role": "system", "content": f"{CHAT_SYSTEM_PROMPT}\n{build_chat_context(context)}"}
        ]
        for entry in history:
            messages.append({"role": "assistant" if entry.role == "model" else "user", "content": entry.text})
        messages.append({"role": "user", "content": message})

        try:
            completion = await client.chat.completions.create(
                model=self._model,
                temperature=0.6,
                messages=messages,
                tools=CHAT_TOOLS,
            )
        except openai.OpenAIError as exc:
            raise OracleUnavailable(str(exc)) from exc

        reply = completion.choices[0].message
        calls: List[FunctionCall] = []
        for tool_call in reply.tool_calls or []:
            try:
                arguments = json.loads(tool_call.function.arguments or "{}")
            except json.JSONDecodeError as exc:
                raise OracleMalformed(f"tool call {tool_call.function.name} has invalid arguments") from exc
            if not isinstance(arguments, dict):
                raise OracleMalformed(f"tool call {tool_call.function.name} arguments are not an object")
            calls.append(FunctionCall(name=tool_call.function.name, args=arguments))
        return OracleReply(text=reply.content or "", function_calls=calls)

    async def weekly_insight(self, request: WeeklyInsightRequest) -> str:
        client = self._require_client()
        hours = round(request.focus_minutes / 60)
        prompt = (
            "You are Kairos, an energy-management coach. Write a short, warm weekly summary for an ADHD user: "
            f"completion rate {request.completion_rate}%, focused {hours}h, frequent tasks: "
            f"{', '.join(request.top_tasks) or 'none yet'}. Be encouraging and avoid medical terms."
        )
        try:
            completion = await client.chat.completions.create(
                model=self._model,
                temperature=0.7,
                messages=[{"role": "user", "content": prompt}],
            )
        except openai.OpenAIError as exc:
            raise OracleUnavailable(str(exc)) from exc
        text = (completion.choices[0].message.content or "").strip()
        if not text:
            raise OracleMalformed("empty insight")
        return text

"""Schemas for the conversational command endpoint."""
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import Field

from kairos.api.schemas.task import CamelModel, Task


class ChatMessage(CamelModel):
    role: Literal["user", "model"]
    text: str


class ChatRequest(CamelModel):
    message: str = Field(..., min_length=1, max_length=2000)
    history: List[ChatMessage] = Field(default_factory=list)


class FunctionCall(CamelModel):
    name: str
    args: Dict[str, Any] = Field(default_factory=dict)


class ExecutedCommand(CamelModel):
    name: str
    applied: bool
    summary: str
    error: Optional[str] = None


class ChatResponse(CamelModel):
    reply: str
    commands: List[ExecutedCommand]
    today: List[Task]
    request_id: str

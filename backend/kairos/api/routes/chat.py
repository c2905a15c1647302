"""Conversational command endpoint."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from kairos.api.deps import get_chat_assistant, get_day_planner
from kairos.api.schemas.chat import ChatRequest, ChatResponse
from kairos.observability.tracing import trace
from kairos.services.chat_assistant import ChatAssistant
from kairos.services.day_planner import DayPlanner

router = APIRouter(tags=["chat"])


@router.post("/chat", response_model=ChatResponse)
async def chat(
    payload: ChatRequest,
    http_request: Request,
    assistant: ChatAssistant = Depends(get_chat_assistant),
    planner: DayPlanner = Depends(get_day_planner),
) -> ChatResponse:
    request_id = getattr(http_request.state, "request_id", None)
    with trace("http.chat", metadata={"route": "/chat"}, request_id=request_id):
        result = await assistant.handle(payload.message, payload.history, request_id=request_id)

    record = planner.today().record
    return ChatResponse(
        reply=result.reply,
        commands=result.commands,
        today=record.tasks if record else [],
        request_id=request_id or "",
    )

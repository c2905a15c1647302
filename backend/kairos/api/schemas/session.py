"""Focus session schemas."""
from __future__ import annotations

from typing import Literal, Optional

from kairos.api.schemas.task import CamelModel

SessionStateName = Literal["idle", "checkin", "dashboard", "focused", "cooldown"]


class FocusRequest(CamelModel):
    task_id: str


class ActiveTaskPayload(CamelModel):
    id: str
    title: str
    start_time: Optional[str]
    end_time: Optional[str]
    remaining_seconds: int


class SessionStateResponse(CamelModel):
    state: SessionStateName
    focused_task_id: Optional[str] = None
    countdown_seconds: Optional[int] = None
    active_task: Optional[ActiveTaskPayload] = None

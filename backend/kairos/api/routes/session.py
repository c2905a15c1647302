"""Focus-session API routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from kairos.api.deps import get_day_planner
from kairos.api.schemas.session import ActiveTaskPayload, FocusRequest, SessionStateResponse
from kairos.core.errors import NotFound
from kairos.observability.metrics import log_metric
from kairos.services.day_planner import DayPlanner

router = APIRouter(prefix="/session", tags=["session"])


def _session_payload(planner: DayPlanner) -> SessionStateResponse:
    view = planner.session_view()
    active = None
    if view.active is not None:
        active = ActiveTaskPayload(
            id=view.active.task.id,
            title=view.active.task.title,
            start_time=view.active.task.start_time,
            end_time=view.active.task.end_time,
            remaining_seconds=view.active.remaining_seconds,
        )
    return SessionStateResponse(
        state=view.state,
        focused_task_id=view.focused_task_id,
        countdown_seconds=view.countdown_seconds,
        active_task=active,
    )


@router.get("", response_model=SessionStateResponse)
async def get_session(planner: DayPlanner = Depends(get_day_planner)) -> SessionStateResponse:
    """Current state, countdown and the task active right now (recomputed on every read)."""
    return _session_payload(planner)


@router.post("/checkin", response_model=SessionStateResponse)
async def begin_checkin(planner: DayPlanner = Depends(get_day_planner)) -> SessionStateResponse:
    planner.session.begin_checkin()
    return _session_payload(planner)


@router.post("/focus", response_model=SessionStateResponse)
async def start_focus(payload: FocusRequest, planner: DayPlanner = Depends(get_day_planner)) -> SessionStateResponse:
    try:
        planner.start_focus(payload.task_id)
    except NotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    log_metric("session.focus.started", 1)
    return _session_payload(planner)


@router.post("/complete", response_model=SessionStateResponse)
async def confirm_completion(planner: DayPlanner = Depends(get_day_planner)) -> SessionStateResponse:
    planner.session.confirm_completion()
    log_metric("session.focus.completed", 1, metadata={"trigger": "confirm"})
    return _session_payload(planner)


@router.post("/cancel", response_model=SessionStateResponse)
async def cancel_focus(planner: DayPlanner = Depends(get_day_planner)) -> SessionStateResponse:
    planner.session.cancel_focus()
    return _session_payload(planner)


@router.post("/dismiss", response_model=SessionStateResponse)
async def dismiss_cooldown(planner: DayPlanner = Depends(get_day_planner)) -> SessionStateResponse:
    planner.session.dismiss_cooldown()
    return _session_payload(planner)

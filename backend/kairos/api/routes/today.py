"""Today's plan: check-in synthesis and direct edits."""
from __future__ import annotations

import time

from fastapi import APIRouter, Depends, HTTPException, Request, status

from kairos.api.deps import get_day_planner
from kairos.api.schemas.plan import CheckinRequest, CheckinResponse, TodayResponse
from kairos.api.schemas.task import RemoveByTitleRequest, RemoveByTitleResponse, Task, TodayTaskCreate, TodayTaskEdit
from kairos.observability.metrics import log_metric
from kairos.observability.tracing import trace
from kairos.services.day_planner import DayPlanner, TodayView
from kairos.services.weekly_report import summarize_day

router = APIRouter(tags=["today"])


def _today_payload(view: TodayView) -> TodayResponse:
    summary = summarize_day(view.day, view.record)
    return TodayResponse(
        date=view.day,
        energy=view.record.energy if view.record else None,
        tasks=view.record.tasks if view.record else [],
        active_task_id=view.active.task.id if view.active else None,
        remaining_seconds=view.active.remaining_seconds if view.active else None,
        dirty=view.dirty,
        completion_rate=summary.completion_rate,
    )


@router.get("/today", response_model=TodayResponse)
async def get_today(planner: DayPlanner = Depends(get_day_planner)) -> TodayResponse:
    return _today_payload(planner.today())


@router.post("/today/checkin", response_model=CheckinResponse)
async def check_in(
    payload: CheckinRequest,
    http_request: Request,
    planner: DayPlanner = Depends(get_day_planner),
) -> CheckinResponse:
    """Record today's energy and synthesize the day plan.

    The call always produces a plan; when the oracle is unavailable or its
    proposal is rejected the response carries ``source="fallback"`` and the reason.
    """
    request_id = getattr(http_request.state, "request_id", None)
    started = time.perf_counter()
    with trace("http.today.checkin", metadata={"energy": payload.energy}, request_id=request_id):
        result = await planner.check_in(payload.energy, request_id=request_id)

    log_metric(
        "today.checkin.latency_ms",
        int((time.perf_counter() - started) * 1000),
        metadata={"source": result.outcome.source, "adopted": result.adopted},
    )
    return CheckinResponse(
        date=result.day,
        energy=result.energy,
        tasks=result.outcome.tasks,
        source=result.outcome.source,
        reason=result.outcome.reason,
        adopted=result.adopted,
        dirty=result.dirty,
        request_id=request_id or "",
    )


@router.post("/today/tasks", response_model=Task, status_code=status.HTTP_201_CREATED)
async def create_today_task(
    payload: TodayTaskCreate,
    http_request: Request,
    planner: DayPlanner = Depends(get_day_planner),
) -> Task:
    request_id = getattr(http_request.state, "request_id", None)
    with trace("today.task.insert", metadata={"start_time": payload.start_time}, request_id=request_id):
        task = planner.insert_today(payload)
    log_metric("today.task.inserted", 1)
    return task


@router.patch("/today/tasks/{task_id}", response_model=Task)
async def edit_today_task(
    task_id: str,
    payload: TodayTaskEdit,
    planner: DayPlanner = Depends(get_day_planner),
) -> Task:
    task = planner.edit_today(task_id, payload)
    if task is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return task


@router.post("/today/tasks/{task_id}/toggle", response_model=Task)
async def toggle_today_task(task_id: str, planner: DayPlanner = Depends(get_day_planner)) -> Task:
    task = planner.toggle_today(task_id)
    if task is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    log_metric("today.task.toggled", 1, metadata={"completed": task.is_completed})
    return task


@router.delete("/today/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_today_task(task_id: str, planner: DayPlanner = Depends(get_day_planner)) -> None:
    if not planner.remove_today(task_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")


@router.post("/tasks/remove-by-title", response_model=RemoveByTitleResponse)
async def remove_by_title(
    payload: RemoveByTitleRequest,
    http_request: Request,
    planner: DayPlanner = Depends(get_day_planner),
) -> RemoveByTitleResponse:
    """Remove every task whose title contains the fragment, across today and both pools."""
    request_id = getattr(http_request.state, "request_id", None)
    with trace("tasks.remove_by_title", metadata={"fragment": payload.title}, request_id=request_id):
        counts = planner.remove_by_title(payload.title)
    log_metric("tasks.removed_by_title", counts.today + counts.fixed + counts.wishes)
    return RemoveByTitleResponse(
        removed_today=counts.today,
        removed_fixed=counts.fixed,
        removed_wishes=counts.wishes,
        request_id=request_id or "",
    )

"""Baseline (active hours, fixed anchors, wish pool) API routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status

from kairos.api.deps import get_day_planner
from kairos.api.schemas.plan import ActiveHours, ActiveHoursUpdate, Baseline, BaselineStatus
from kairos.api.schemas.task import FixedTaskCreate, Task, WishTaskCreate
from kairos.observability.metrics import log_metric
from kairos.observability.tracing import trace
from kairos.services.day_planner import DayPlanner

router = APIRouter(prefix="/baseline", tags=["baseline"])


@router.get("", response_model=Baseline)
async def get_baseline(planner: DayPlanner = Depends(get_day_planner)) -> Baseline:
    return planner.baseline()


@router.get("/status", response_model=BaselineStatus)
async def get_baseline_status(planner: DayPlanner = Depends(get_day_planner)) -> BaselineStatus:
    """Report whether the baseline changed since today's plan was synthesized."""
    return planner.baseline_status()


@router.patch("/active-hours", response_model=ActiveHours)
async def update_active_hours(
    payload: ActiveHoursUpdate,
    http_request: Request,
    planner: DayPlanner = Depends(get_day_planner),
) -> ActiveHours:
    request_id = getattr(http_request.state, "request_id", None)
    with trace("baseline.active_hours", metadata=payload.model_dump(exclude_none=True), request_id=request_id):
        hours = planner.set_active_hours(payload)
    log_metric("baseline.active_hours.updated", 1)
    return hours


@router.post("/fixed", response_model=Task, status_code=status.HTTP_201_CREATED)
async def create_fixed_task(
    payload: FixedTaskCreate,
    http_request: Request,
    planner: DayPlanner = Depends(get_day_planner),
) -> Task:
    request_id = getattr(http_request.state, "request_id", None)
    with trace("baseline.fixed.create", metadata={"start_time": payload.start_time}, request_id=request_id):
        task = planner.add_fixed(payload)
    log_metric("baseline.fixed.created", 1, metadata={"energy_cost": task.energy_cost})
    return task


@router.post("/wishes", response_model=Task, status_code=status.HTTP_201_CREATED)
async def create_wish(
    payload: WishTaskCreate,
    http_request: Request,
    planner: DayPlanner = Depends(get_day_planner),
) -> Task:
    request_id = getattr(http_request.state, "request_id", None)
    with trace("baseline.wish.create", metadata={"duration": payload.duration}, request_id=request_id):
        task = planner.add_wish(payload)
    log_metric("baseline.wish.created", 1, metadata={"energy_cost": task.energy_cost})
    return task


@router.delete("/fixed/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_fixed_task(task_id: str, planner: DayPlanner = Depends(get_day_planner)) -> None:
    if not planner.remove_fixed(task_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Fixed task not found")


@router.delete("/wishes/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_wish(task_id: str, planner: DayPlanner = Depends(get_day_planner)) -> None:
    if not planner.remove_wish(task_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Wish not found")

"""Daily review and weekly report API routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from kairos.api.deps import get_day_planner, get_weekly_reporter
from kairos.api.schemas.report import DaySummary, WeeklyReportResponse
from kairos.observability.metrics import log_metric
from kairos.services.day_planner import DayPlanner
from kairos.services.weekly_report import WeeklyReporter, summarize_day

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/daily", response_model=DaySummary)
async def daily_review(planner: DayPlanner = Depends(get_day_planner)) -> DaySummary:
    """End-of-day review: how much of today's plan got done."""
    view = planner.today()
    summary = summarize_day(view.day, view.record)
    log_metric("reports.daily.completion_rate", summary.completion_rate)
    return summary


@router.get("/weekly", response_model=WeeklyReportResponse)
async def weekly_report(
    http_request: Request,
    reporter: WeeklyReporter = Depends(get_weekly_reporter),
) -> WeeklyReportResponse:
    """Completion rate and focused minutes for the last seven days, with a short insight."""
    request_id = getattr(http_request.state, "request_id", None)
    report = await reporter.build(request_id=request_id)
    log_metric("reports.weekly.completion_rate", report.stats.completion_rate)
    return WeeklyReportResponse(
        start=report.start,
        end=report.end,
        days=report.days,
        stats=report.stats,
        insight=report.insight,
        request_id=request_id or "",
    )

"""Main FastAPI application for the Kairos planner backend."""
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from kairos.api.deps import get_day_planner
from kairos.api.routes.baseline import router as baseline_router
from kairos.api.routes.chat import router as chat_router
from kairos.api.routes.onboarding import router as onboarding_router
from kairos.api.routes.reports import router as reports_router
from kairos.api.routes.session import router as session_router
from kairos.api.routes.today import router as today_router
from kairos.core.config import settings
from kairos.core.errors import CheckinRequired, InvalidMutation, InvalidTransition, InvalidWindow
from kairos.core.logging import configure_logging
from kairos.core.middleware import RequestIDMiddleware
from kairos.observability.client import init_opik
from kairos.observability.tracing import trace
from kairos.services.session_ticker import SessionTicker

configure_logging(log_level=settings.log_level, third_party_log_level=settings.third_party_log_level)

app = FastAPI(title=settings.app_name, version="0.1.0")
app.add_middleware(RequestIDMiddleware)
app.include_router(baseline_router)
app.include_router(today_router)
app.include_router(session_router)
app.include_router(chat_router)
app.include_router(reports_router)
app.include_router(onboarding_router)

_ticker: Optional[SessionTicker] = None


def _error_response(request: Request, status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "request_id": getattr(request.state, "request_id", None)},
    )


@app.exception_handler(InvalidWindow)
async def invalid_window_handler(request: Request, exc: InvalidWindow) -> JSONResponse:
    return _error_response(request, status.HTTP_422_UNPROCESSABLE_ENTITY, exc)


@app.exception_handler(InvalidMutation)
async def invalid_mutation_handler(request: Request, exc: InvalidMutation) -> JSONResponse:
    return _error_response(request, status.HTTP_422_UNPROCESSABLE_ENTITY, exc)


@app.exception_handler(InvalidTransition)
async def invalid_transition_handler(request: Request, exc: InvalidTransition) -> JSONResponse:
    return _error_response(request, status.HTTP_409_CONFLICT, exc)


@app.exception_handler(CheckinRequired)
async def checkin_required_handler(request: Request, exc: CheckinRequired) -> JSONResponse:
    return _error_response(request, status.HTTP_409_CONFLICT, exc)


@app.on_event("startup")
async def startup() -> None:
    """Initialize observability and start the one-second focus tick."""
    global _ticker
    init_opik()
    if settings.session_ticker_enabled:
        planner_factory = app.dependency_overrides.get(get_day_planner, get_day_planner)
        _ticker = SessionTicker(planner_factory().session)
        _ticker.start()


@app.on_event("shutdown")
async def shutdown() -> None:
    global _ticker
    if _ticker is not None:
        await _ticker.stop()
        _ticker = None


@app.get("/health", tags=["health"], summary="Readiness probe")
async def health_check(request: Request) -> dict[str, str]:
    """Return a simple status payload so automation can probe the API."""
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
        return {"status": "ok"}

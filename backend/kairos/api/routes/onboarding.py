"""Weekly onboarding cycle routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from kairos.api.deps import get_day_planner
from kairos.api.schemas.plan import OnboardingStatus
from kairos.services.day_planner import DayPlanner

router = APIRouter(prefix="/onboarding", tags=["onboarding"])


@router.get("", response_model=OnboardingStatus)
async def get_onboarding(planner: DayPlanner = Depends(get_day_planner)) -> OnboardingStatus:
    return planner.onboarding_status()


@router.post("/start", response_model=OnboardingStatus)
async def start_onboarding(planner: DayPlanner = Depends(get_day_planner)) -> OnboardingStatus:
    """Begin this week's onboarding; sweeps daily records past the retention horizon."""
    return planner.start_onboarding()


@router.post("/complete", response_model=OnboardingStatus)
async def complete_onboarding(planner: DayPlanner = Depends(get_day_planner)) -> OnboardingStatus:
    return planner.complete_onboarding()

"""Task schemas shared by the planner core and the HTTP layer."""
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

EnergyCost = Literal["low", "medium", "high"]

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"
ALL_WEEKDAYS = [0, 1, 2, 3, 4, 5, 6]


class CamelModel(BaseModel):
    """Base model speaking the camelCase wire format of stored records."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _check_weekdays(value: Optional[List[int]]) -> Optional[List[int]]:
    if value is None:
        return value
    for day in value:
        if day < 0 or day > 6:
            raise ValueError("recurringDays entries must be between 0 (Sunday) and 6 (Saturday)")
    return sorted(set(value))


class Task(CamelModel):
    id: str
    title: str
    duration: int = Field(..., gt=0, description="Minutes.")
    energy_cost: EnergyCost = "medium"
    is_hard_block: bool = False
    is_wish: bool = False
    is_completed: bool = False
    start_time: Optional[str] = Field(default=None, pattern=HHMM_PATTERN)
    end_time: Optional[str] = Field(default=None, pattern=HHMM_PATTERN)
    recurring_days: Optional[List[int]] = None
    description: Optional[str] = None

    @field_validator("recurring_days")
    @classmethod
    def check_recurring_days(cls, value: Optional[List[int]]) -> Optional[List[int]]:
        return _check_weekdays(value)


class FixedTaskCreate(CamelModel):
    title: str
    start_time: str = Field(..., pattern=HHMM_PATTERN)
    end_time: Optional[str] = Field(default=None, pattern=HHMM_PATTERN)
    duration: Optional[int] = Field(default=None, gt=0)
    energy_cost: EnergyCost = "medium"
    recurring_days: List[int] = Field(default_factory=lambda: list(ALL_WEEKDAYS))
    description: Optional[str] = None

    @field_validator("recurring_days")
    @classmethod
    def check_recurring_days(cls, value: Optional[List[int]]) -> Optional[List[int]]:
        return _check_weekdays(value)


class WishTaskCreate(CamelModel):
    title: str
    duration: int = Field(default=60, gt=0, description="Target minutes for the day.")
    energy_cost: EnergyCost = "medium"
    description: Optional[str] = None


class TodayTaskCreate(CamelModel):
    title: str
    start_time: str = Field(..., pattern=HHMM_PATTERN)
    duration: int = Field(..., gt=0)
    energy_cost: EnergyCost = "medium"
    description: Optional[str] = None


class TodayTaskEdit(CamelModel):
    title: Optional[str] = None
    start_time: Optional[str] = Field(default=None, pattern=HHMM_PATTERN)
    duration: Optional[int] = Field(default=None, gt=0)
    energy_cost: Optional[EnergyCost] = None
    description: Optional[str] = None
    is_completed: Optional[bool] = None


class RemoveByTitleRequest(CamelModel):
    title: str


class RemoveByTitleResponse(CamelModel):
    removed_today: int
    removed_fixed: int
    removed_wishes: int
    request_id: str

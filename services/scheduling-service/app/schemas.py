from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime

from shared.config import (
    DEFAULT_JOB_DURATION_MINUTES,
    DISPLAY_HOURS_END,
    DISPLAY_HOURS_START,
    PLATFORM_TIMEZONE,
)


class Slot(BaseModel):
    start: datetime
    end: datetime


class MatchRequest(BaseModel):
    case_id: str
    contractor_id: str
    exclude_job_id: Optional[str] = None  # the appointment being rescheduled
    job_duration_minutes: int = Field(default=DEFAULT_JOB_DURATION_MINUTES, gt=0)
    timezone: str = PLATFORM_TIMEZONE
    proposed_slots: List[Slot] = Field(default_factory=list)


class GridRequest(MatchRequest):
    week_start: Optional[date] = None
    hours_start: int = Field(default=DISPLAY_HOURS_START, ge=0, le=23)
    hours_end: int = Field(default=DISPLAY_HOURS_END, ge=1, le=24)


class ValidateSelectionRequest(MatchRequest):
    selected: Slot


class AcceptRequest(MatchRequest):
    # either a contractor-drawn interval or a proposed slot taken as-is
    selected: Optional[Slot] = None
    proposed_slot_index: Optional[int] = None


class MatchResultOut(BaseModel):
    proposed_slot_index: int
    free_hours: int
    is_fully_free: bool
    start: datetime
    end: datetime


class RankResponse(BaseModel):
    results: List[MatchResultOut]
    top_match_index: Optional[int] = None


class GridCellOut(BaseModel):
    day: date
    hour: int
    label: str
    start: datetime
    end: datetime
    status: str
    tenant_slot_index: Optional[int] = None


class GridResponse(BaseModel):
    week_start: date
    timezone: str
    days: List[List[GridCellOut]]


class DurationMismatchOut(BaseModel):
    expected_minutes: int
    selected_minutes: int


class SelectionResponse(BaseModel):
    proposed_slot_index: int
    start: datetime
    end: datetime
    duration_mismatch: Optional[DurationMismatchOut] = None


class AcceptTopResponse(BaseModel):
    proposed_slot_index: int
    start: datetime
    end: datetime


class AcceptResponse(BaseModel):
    case_id: str
    proposed_slot_index: int
    start: datetime
    end: datetime
    duration_mismatch: Optional[DurationMismatchOut] = None

import logging
from datetime import datetime, tzinfo

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from shared.errors import NO_OVERLAPPING_PROPOSAL
from shared.events import build_decision_record, to_json
from shared.intervals import TimeInterval, format_hour_label, get_timezone
from shared.principals import Principal, Role
from shared.rbac import require_role
from shared.security import get_current_principal

from .clients import CaseAccess, fetch_case_access
from .db import SessionLocal
from .grid import build_week_grid, week_start_for
from .matching import AvailabilityMatcher, SelectionResult, proposed_slots_from
from .rabbitmq import publisher
from .repository import list_scheduled_jobs
from .schemas import (
    AcceptRequest,
    AcceptResponse,
    AcceptTopResponse,
    DurationMismatchOut,
    GridCellOut,
    GridRequest,
    GridResponse,
    MatchRequest,
    MatchResultOut,
    RankResponse,
    SelectionResponse,
    Slot,
    ValidateSelectionRequest,
)

router = APIRouter(prefix="/scheduling/match", tags=["Scheduling"])

logger = logging.getLogger(__name__)


async def get_db():
    async with SessionLocal() as session:
        yield session


class ScheduleSource:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_scheduled_jobs(self, contractor_id: str, exclude_job_id: str | None = None):
        return await list_scheduled_jobs(self.db, contractor_id, exclude_job_id)


def get_schedule_source(db: AsyncSession = Depends(get_db)) -> ScheduleSource:
    return ScheduleSource(db)


def get_case_access_checker():
    return fetch_case_access


def _timezone(name: str) -> tzinfo:
    try:
        return get_timezone(name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _localize(value: datetime, tz: tzinfo) -> datetime:
    # naive wall-clock input is read in the request's timezone
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value


def _interval(slot: Slot, tz: tzinfo) -> TimeInterval:
    return TimeInterval(_localize(slot.start, tz), _localize(slot.end, tz))


async def _prepare(
    data: MatchRequest,
    request: Request,
    principal: Principal,
    schedule_source,
    check_case_access,
) -> tuple[AvailabilityMatcher, tzinfo, CaseAccess]:
    require_role(principal, [Role.ORG_ADMIN, Role.CONTRACTOR])

    if principal.role is Role.CONTRACTOR and data.contractor_id != principal.user_id:
        raise HTTPException(status_code=403, detail="Contractors can only match against their own schedule")

    access = await check_case_access(
        data.case_id,
        getattr(request.state, "bearer_token", None),
        getattr(request.state, "request_id", None),
    )
    if not access.visible:
        raise HTTPException(status_code=403, detail="Case not visible")

    tz = _timezone(data.timezone)
    slots = proposed_slots_from(_interval(s, tz) for s in data.proposed_slots)
    jobs = await schedule_source.list_scheduled_jobs(data.contractor_id, data.exclude_job_id)

    matcher = AvailabilityMatcher(
        tenant_slots=slots,
        contractor_jobs=jobs,
        exclude_job_id=data.exclude_job_id,
        job_duration_minutes=data.job_duration_minutes,
    )
    return matcher, tz, access


def _mismatch_out(result: SelectionResult) -> DurationMismatchOut | None:
    if result.duration_warning is None:
        return None
    return DurationMismatchOut(**result.duration_warning.as_dict())


def _raise_for_selection(result: SelectionResult):
    if result.error == NO_OVERLAPPING_PROPOSAL:
        raise HTTPException(
            status_code=422,
            detail={
                "error": NO_OVERLAPPING_PROPOSAL,
                "message": "Selected time does not overlap with any tenant availability slot",
            },
        )


@router.post("/rank", response_model=RankResponse)
async def rank_slots(
    data: MatchRequest,
    request: Request,
    principal: Principal = Depends(get_current_principal),
    schedule_source=Depends(get_schedule_source),
    check_case_access=Depends(get_case_access_checker),
):
    matcher, _, _ = await _prepare(data, request, principal, schedule_source, check_case_access)

    results = []
    for r in matcher.rank_slots():
        interval = matcher.slot_interval(r.proposed_slot_index)
        results.append(
            MatchResultOut(
                proposed_slot_index=r.proposed_slot_index,
                free_hours=r.free_hours,
                is_fully_free=r.is_fully_free,
                start=interval.start,
                end=interval.end,
            )
        )

    return RankResponse(results=results, top_match_index=matcher.accept_top_match())


@router.post("/grid", response_model=GridResponse)
async def week_grid(
    data: GridRequest,
    request: Request,
    principal: Principal = Depends(get_current_principal),
    schedule_source=Depends(get_schedule_source),
    check_case_access=Depends(get_case_access_checker),
):
    if data.hours_end <= data.hours_start:
        raise HTTPException(status_code=400, detail="hours_end must be after hours_start")

    matcher, tz, _ = await _prepare(data, request, principal, schedule_source, check_case_access)
    week_start = data.week_start or week_start_for(matcher, tz)

    days = build_week_grid(matcher, week_start, tz, data.hours_start, data.hours_end)
    return GridResponse(
        week_start=week_start,
        timezone=data.timezone,
        days=[
            [
                GridCellOut(
                    day=cell.day,
                    hour=cell.hour,
                    label=format_hour_label(cell.hour),
                    start=cell.interval.start,
                    end=cell.interval.end,
                    status=cell.status,
                    tenant_slot_index=cell.tenant_slot_index,
                )
                for cell in row
            ]
            for row in days
        ],
    )


@router.post("/validate", response_model=SelectionResponse)
async def validate_selection(
    data: ValidateSelectionRequest,
    request: Request,
    principal: Principal = Depends(get_current_principal),
    schedule_source=Depends(get_schedule_source),
    check_case_access=Depends(get_case_access_checker),
):
    matcher, tz, _ = await _prepare(data, request, principal, schedule_source, check_case_access)

    result = matcher.validate_selection(_interval(data.selected, tz))
    _raise_for_selection(result)

    return SelectionResponse(
        proposed_slot_index=result.proposed_slot_index,
        start=result.selected.start,
        end=result.selected.end,
        duration_mismatch=_mismatch_out(result),
    )


@router.post("/accept-top", response_model=AcceptTopResponse)
async def accept_top_match(
    data: MatchRequest,
    request: Request,
    principal: Principal = Depends(get_current_principal),
    schedule_source=Depends(get_schedule_source),
    check_case_access=Depends(get_case_access_checker),
):
    matcher, _, _ = await _prepare(data, request, principal, schedule_source, check_case_access)

    index = matcher.accept_top_match()
    if index is None:
        raise HTTPException(status_code=409, detail="No completely free proposed slot; select a time manually")

    interval = matcher.slot_interval(index)
    return AcceptTopResponse(proposed_slot_index=index, start=interval.start, end=interval.end)


@router.post("/accept", response_model=AcceptResponse)
async def accept(
    data: AcceptRequest,
    request: Request,
    principal: Principal = Depends(get_current_principal),
    schedule_source=Depends(get_schedule_source),
    check_case_access=Depends(get_case_access_checker),
):
    matcher, tz, access = await _prepare(data, request, principal, schedule_source, check_case_access)

    mismatch = None
    if data.selected is not None:
        result = matcher.validate_selection(_interval(data.selected, tz))
        _raise_for_selection(result)
        index = result.proposed_slot_index
        interval = result.selected
        mismatch = _mismatch_out(result)
    else:
        index = data.proposed_slot_index
        if index is None:
            index = matcher.accept_top_match()
            if index is None:
                raise HTTPException(status_code=409, detail="No completely free proposed slot; select a time manually")
        try:
            interval = matcher.slot_interval(index)
        except KeyError:
            raise HTTPException(status_code=422, detail=f"Unknown proposed slot index: {index}")

    record = build_decision_record(
        "appointment.accepted",
        user_id=principal.user_id,
        org_id=access.org_id,
        data={
            "case_id": data.case_id,
            "contractor_id": data.contractor_id,
            "rescheduled_job_id": data.exclude_job_id,
            "proposed_slot_index": index,
            "start": interval.start.isoformat(),
            "end": interval.end.isoformat(),
            "duration_mismatch": mismatch.model_dump() if mismatch else None,
        },
    )
    await publisher.publish("appointment.accepted", to_json(record))
    logger.info("Appointment accepted for case %s at slot %s", data.case_id, index)

    return AcceptResponse(
        case_id=data.case_id,
        proposed_slot_index=index,
        start=interval.start,
        end=interval.end,
        duration_mismatch=mismatch,
    )

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .matching import ScheduledJob
from .models import Appointment

INACTIVE_STATUSES = ("Cancelled",)

logger = logging.getLogger(__name__)


def _aware(value: datetime) -> datetime:
    # some drivers hand back naive datetimes for timestamptz columns; they are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def list_scheduled_jobs(
    db: AsyncSession,
    contractor_id: str,
    exclude_job_id: str | None = None,
) -> list[ScheduledJob]:
    stmt = (
        select(Appointment)
        .where(
            Appointment.contractor_id == contractor_id,
            Appointment.scheduled_start_at.is_not(None),
            Appointment.scheduled_end_at.is_not(None),
            Appointment.status.not_in(INACTIVE_STATUSES),
        )
        .order_by(Appointment.scheduled_start_at)
    )
    if exclude_job_id:
        stmt = stmt.where(Appointment.id != exclude_job_id)

    res = await db.execute(stmt)
    jobs = []
    for row in res.scalars().all():
        start = _aware(row.scheduled_start_at)
        end = _aware(row.scheduled_end_at)
        if end <= start:
            logger.warning("Skipping appointment %s with non-positive duration", row.id)
            continue
        jobs.append(
            ScheduledJob(
                id=row.id,
                contractor_id=row.contractor_id,
                start=start,
                end=end,
                status=row.status,
                case_id=row.case_id,
            )
        )
    return jobs

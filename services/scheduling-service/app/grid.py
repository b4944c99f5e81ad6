from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo

from shared.intervals import TimeInterval, local_datetime, start_of_week, wall_clock_exists

from .matching import AvailabilityMatcher

CELL_MINUTES = 60

PERFECT_MATCH = "perfect_match"
BOOKED = "booked"
EMPTY = "empty"


@dataclass(frozen=True)
class GridCell:
    day: date
    hour: int
    interval: TimeInterval
    status: str
    tenant_slot_index: int | None


def classify_cell(matcher: AvailabilityMatcher, cell: TimeInterval) -> str:
    if matcher.is_perfect_match(cell):
        return PERFECT_MATCH
    # a tenant-available cell without a job is already a perfect match
    if matcher.has_existing_job(cell):
        return BOOKED
    return EMPTY


def week_start_for(matcher: AvailabilityMatcher, tz: tzinfo, now: datetime | None = None) -> date:
    """Sunday of the week holding the first proposed slot, or of the current week."""
    if matcher.tenant_slots:
        return start_of_week(matcher.tenant_slots[0].interval.start, tz)
    return start_of_week(now or datetime.now(timezone.utc), tz)


def build_week_grid(
    matcher: AvailabilityMatcher,
    week_start: date,
    tz: tzinfo,
    hours_start: int = 6,
    hours_end: int = 22,
) -> list[list[GridCell]]:
    """
    One row of hourly cells per day for the seven days from week_start.
    Hours are wall-clock hours in tz; the window only decides which cells
    are produced and never affects how a cell is classified. A wall-clock
    hour that does not exist on a day produces no cell, so that row is one
    cell shorter.
    """
    if not 0 <= hours_start < hours_end <= 24:
        raise ValueError("Display window must satisfy 0 <= hours_start < hours_end <= 24")

    days = []
    for offset in range(7):
        day = week_start + timedelta(days=offset)
        row = []
        for hour in range(hours_start, hours_end):
            # the hour skipped when DST starts has no cell
            if not wall_clock_exists(day, hour, 0, tz):
                continue
            cell = TimeInterval.starting_at(local_datetime(day, hour, 0, tz), CELL_MINUTES)
            row.append(
                GridCell(
                    day=day,
                    hour=hour,
                    interval=cell,
                    status=classify_cell(matcher, cell),
                    tenant_slot_index=matcher.tenant_slot_index_at(cell.start),
                )
            )
        days.append(row)
    return days

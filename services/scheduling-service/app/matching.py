"""
Availability matching between a tenant's proposed windows and a contractor's
existing schedule.

A matcher is built per request from immutable inputs. Cell predicates treat
intervals that merely touch as conflicting, so a job ending at 10:00 blocks
the 10:00 cell in the grid. Ranking counts whole free hours and therefore
uses strict overlap: a boundary touch does not consume an hour.
"""
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable

from shared.errors import NO_OVERLAPPING_PROPOSAL, DurationMismatch
from shared.intervals import (
    TimeInterval,
    duration_minutes,
    ensure_well_formed,
    overlaps,
    to_utc,
)

RANK_STEP_MINUTES = 60


@dataclass(frozen=True)
class ScheduledJob:
    id: str
    contractor_id: str
    start: datetime
    end: datetime
    status: str = "Scheduled"
    case_id: str | None = None

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(self.start, self.end)


@dataclass(frozen=True)
class ProposedSlot:
    index: int
    interval: TimeInterval


@dataclass(frozen=True)
class MatchResult:
    proposed_slot_index: int
    free_hours: int
    is_fully_free: bool


@dataclass(frozen=True)
class SelectionResult:
    selected: TimeInterval
    proposed_slot_index: int | None = None
    error: str | None = None
    duration_warning: DurationMismatch | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def proposed_slots_from(intervals: Iterable[TimeInterval]) -> list[ProposedSlot]:
    return [ProposedSlot(index=i, interval=interval) for i, interval in enumerate(intervals)]


class AvailabilityMatcher:
    def __init__(
        self,
        tenant_slots: Iterable[ProposedSlot],
        contractor_jobs: Iterable[ScheduledJob],
        exclude_job_id: str | None = None,
        job_duration_minutes: int = 120,
    ):
        self.tenant_slots = tuple(tenant_slots)
        self.contractor_jobs = tuple(contractor_jobs)
        self.exclude_job_id = exclude_job_id
        self.job_duration_minutes = job_duration_minutes

    def _busy_intervals(self):
        for job in self.contractor_jobs:
            # the job being rescheduled never blocks its own new time
            if self.exclude_job_id is not None and job.id == self.exclude_job_id:
                continue
            yield job.interval

    def _conflicts(self, cell: TimeInterval, inclusive: bool) -> bool:
        return any(overlaps(busy, cell, inclusive=inclusive) for busy in self._busy_intervals())

    def is_tenant_available(self, cell: TimeInterval) -> bool:
        return any(overlaps(slot.interval, cell, inclusive=True) for slot in self.tenant_slots)

    def has_existing_job(self, cell: TimeInterval) -> bool:
        return self._conflicts(cell, inclusive=True)

    def is_perfect_match(self, cell: TimeInterval) -> bool:
        return self.is_tenant_available(cell) and not self.has_existing_job(cell)

    def tenant_slot_index_at(self, instant: datetime) -> int | None:
        """Index of the first tenant slot whose closed range [start, end] holds instant."""
        instant = to_utc(instant)
        for slot in self.tenant_slots:
            if slot.interval.start <= instant <= slot.interval.end:
                return slot.index
        return None

    def _score(self, slot: ProposedSlot) -> MatchResult:
        step = timedelta(minutes=RANK_STEP_MINUTES)
        free_hours = 0
        current = slot.interval.start
        while current < slot.interval.end:
            if not self._conflicts(TimeInterval(current, current + step), inclusive=False):
                free_hours += 1
            current += step

        total_seconds = (slot.interval.end - slot.interval.start).total_seconds()
        required = math.ceil(total_seconds / step.total_seconds())

        return MatchResult(
            proposed_slot_index=slot.index,
            free_hours=free_hours,
            # empty slots are never fully free
            is_fully_free=required > 0 and free_hours == required,
        )

    def rank_slots(self) -> list[MatchResult]:
        results = [self._score(slot) for slot in self.tenant_slots]
        # sorted() is stable: equal scores keep proposal order
        return sorted(results, key=lambda r: -r.free_hours)

    def best_matches(self, limit: int = 3) -> list[MatchResult]:
        return [r for r in self.rank_slots() if r.free_hours > 0][:limit]

    def accept_top_match(self) -> int | None:
        """
        Best ranked slot that is completely free, or None when the contractor
        has to pick a time by hand.
        """
        for result in self.rank_slots():
            if result.is_fully_free:
                return result.proposed_slot_index
        return None

    def validate_selection(self, selected: TimeInterval) -> SelectionResult:
        ensure_well_formed(selected)

        matching = [
            slot.index
            for slot in self.tenant_slots
            if overlaps(slot.interval, selected, inclusive=True)
        ]
        if not matching:
            return SelectionResult(selected=selected, error=NO_OVERLAPPING_PROPOSAL)

        warning = None
        selected_minutes = duration_minutes(selected)
        if selected_minutes != self.job_duration_minutes:
            warning = DurationMismatch(self.job_duration_minutes, selected_minutes)

        return SelectionResult(
            selected=selected,
            proposed_slot_index=min(matching),
            duration_warning=warning,
        )

    def slot_interval(self, index: int) -> TimeInterval:
        for slot in self.tenant_slots:
            if slot.index == index:
                return slot.interval
        raise KeyError(index)

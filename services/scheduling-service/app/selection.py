"""
Click-drag selection on the match grid as a pure reducer.

The reducer only knows which cells may be picked; the matcher receives the
finished interval and validates it like any other selection.
"""
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Callable

from shared.intervals import TimeInterval, to_utc

from .matching import AvailabilityMatcher


@dataclass(frozen=True)
class DragState:
    dragging: bool = False
    anchor: datetime | None = None
    current: datetime | None = None
    selected: TimeInterval | None = None


@dataclass(frozen=True)
class PointerDown:
    cell_start: datetime


@dataclass(frozen=True)
class PointerEnter:
    cell_start: datetime


@dataclass(frozen=True)
class PointerUp:
    pass


@dataclass(frozen=True)
class Clear:
    pass


def perfect_match_cells(matcher: AvailabilityMatcher, cell_minutes: int = 60) -> Callable[[datetime], bool]:
    def is_selectable(cell_start: datetime) -> bool:
        return matcher.is_perfect_match(TimeInterval.starting_at(cell_start, cell_minutes))

    return is_selectable


def reduce_drag(
    state: DragState,
    event,
    is_selectable: Callable[[datetime], bool],
    cell_minutes: int = 60,
) -> DragState:
    if isinstance(event, PointerDown):
        if not is_selectable(event.cell_start):
            return state
        cell = to_utc(event.cell_start)
        return replace(state, dragging=True, anchor=cell, current=cell)

    if isinstance(event, PointerEnter):
        if not state.dragging or state.anchor is None:
            return state
        if not is_selectable(event.cell_start):
            return state
        return replace(state, current=to_utc(event.cell_start))

    if isinstance(event, PointerUp):
        if not state.dragging or state.anchor is None or state.current is None:
            return DragState(selected=state.selected)
        first = min(state.anchor, state.current)
        last = max(state.anchor, state.current)
        return DragState(selected=TimeInterval(first, last + timedelta(minutes=cell_minutes)))

    if isinstance(event, Clear):
        return DragState()

    raise TypeError(f"Unknown drag event: {event!r}")


def dragged_over(state: DragState, cell_start: datetime) -> bool:
    if not state.dragging or state.anchor is None or state.current is None:
        return False
    cell_start = to_utc(cell_start)
    return min(state.anchor, state.current) <= cell_start <= max(state.anchor, state.current)

"""
Drag editing of a department's start or end boundary.

The gesture state is an explicit value (Idle or Dragging): every handler
takes the current state and returns the next one. Moves only compute a
preview curve; the department is changed once, when the pointer is
released on a month column.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional, Tuple, Union

from config import TimelineModel
from model import fit_ramps, generate_curve, reconcile_ramps, round_half_up, set_timeframe

log = logging.getLogger(__name__)

START = "start"
END = "end"


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Dragging:
    department: int
    boundary: str
    origin_start: int
    origin_end: int
    month: int


DragState = Union[Idle, Dragging]
IDLE = Idle()


def _bounds(state: Dragging, month: int) -> Optional[Tuple[int, int]]:
    if state.boundary == START:
        return (month, state.origin_end) if month <= state.origin_end else None
    return (state.origin_start, month) if month >= state.origin_start else None


def _in_timeline(model: TimelineModel, month) -> bool:
    return month is not None and 0 <= month < model.month_count


def _moved_ramps(model: TimelineModel, state: Dragging, start: int, end: int) -> Tuple[int, int]:
    """Ramps after rescaling the moved side to the new timeframe length."""
    dept = model.departments[state.department]
    up, down = dept.ramp_up_duration, dept.ramp_down_duration
    old_len = state.origin_end - state.origin_start + 1
    new_len = end - start + 1
    if new_len != old_len:
        cap = new_len // 2
        if state.boundary == START:
            up = min(round_half_up(up * new_len / old_len), cap)
        else:
            down = min(round_half_up(down * new_len / old_len), cap)
    return up, down


# ---------------------------------------------------------------------------
# Gesture handlers
# ---------------------------------------------------------------------------

def pointer_down(state: DragState, model: TimelineModel, department: int, boundary: str) -> DragState:
    if isinstance(state, Dragging):
        log.debug("Drag already active on department %d; ignoring", state.department)
        return state
    if boundary not in (START, END):
        raise ValueError(f"Unknown boundary {boundary!r}")
    if not 0 <= department < len(model.departments):
        raise IndexError(f"No department at index {department}")

    dept = model.departments[department]
    month = dept.start_month if boundary == START else dept.end_month
    log.debug("Drag %s of %s from month %d", boundary, dept.name, month)
    return Dragging(department, boundary, dept.start_month, dept.end_month, month)


def preview_curve(model: TimelineModel, state: Dragging) -> List[int]:
    """Curve the department would have if released now; nothing is mutated."""
    start, end = _bounds(state, state.month)
    up, down = _moved_ramps(model, state, start, end)
    up, down = fit_ramps(up, down, end - start + 1)
    shadow = replace(
        model.departments[state.department],
        start_month=start, end_month=end,
        ramp_up_duration=up, ramp_down_duration=down, crew=[],
    )
    return generate_curve(shadow, model.month_count)


def pointer_move(state: DragState, model: TimelineModel, month) -> Tuple[DragState, Optional[List[int]]]:
    if not isinstance(state, Dragging):
        return state, None
    if not _in_timeline(model, month) or _bounds(state, month) is None:
        return state, None
    state = replace(state, month=month)
    return state, preview_curve(model, state)


def pointer_up(state: DragState, model: TimelineModel, month) -> DragState:
    """End the gesture: commit on a month column, cancel anywhere else."""
    if not isinstance(state, Dragging):
        return state
    if not _in_timeline(model, month):
        return cancel(state)

    start, end = _bounds(state, month) or _bounds(state, state.month)
    dept = model.departments[state.department]
    # no reconcile here, so an imported row stays authoritative
    if (start, end) == (state.origin_start, state.origin_end):
        log.debug("%s: released on its own %s; nothing to commit", dept.name, state.boundary)
        return IDLE

    dept.ramp_up_duration, dept.ramp_down_duration = _moved_ramps(model, state, start, end)
    dept.start_month, dept.end_month = start, end
    reconcile_ramps(dept, model.month_count)
    log.info(
        "%s: timeframe %d-%d -> %d-%d (ramps up=%d down=%d)",
        dept.name, state.origin_start, state.origin_end, start, end,
        dept.ramp_up_duration, dept.ramp_down_duration,
    )
    return IDLE


def cancel(state: DragState) -> DragState:
    if isinstance(state, Dragging):
        log.info("Drag on department %d cancelled", state.department)
    return IDLE


# ---------------------------------------------------------------------------
# Listener scope
# ---------------------------------------------------------------------------

class PointerEvents:
    """Listener registry for "move" and "up" pointer events."""

    def __init__(self):
        self._listeners: Dict[str, List[Callable]] = defaultdict(list)

    def subscribe(self, event: str, callback: Callable) -> None:
        self._listeners[event].append(callback)

    def unsubscribe(self, event: str, callback: Callable) -> None:
        if callback in self._listeners[event]:
            self._listeners[event].remove(callback)

    def emit(self, event: str, *args) -> None:
        for callback in list(self._listeners[event]):
            callback(*args)

    def listener_count(self, event: Optional[str] = None) -> int:
        if event is not None:
            return len(self._listeners[event])
        return sum(len(v) for v in self._listeners.values())


class DragSession:
    """Feeds pointer events of one gesture through the handlers."""

    def __init__(self, model: TimelineModel, state: DragState,
                 on_preview: Optional[Callable[[List[int]], None]] = None):
        self.model = model
        self.state = state
        self.on_preview = on_preview
        self.preview: Optional[List[int]] = None

    def on_move(self, month) -> None:
        self.state, preview = pointer_move(self.state, self.model, month)
        if preview is not None:
            self.preview = preview
            if self.on_preview:
                self.on_preview(preview)

    def on_up(self, month) -> None:
        self.state = pointer_up(self.state, self.model, month)

    @property
    def active(self) -> bool:
        return isinstance(self.state, Dragging)


@contextmanager
def drag_gesture(events: PointerEvents, model: TimelineModel, department: int, boundary: str,
                 on_preview: Optional[Callable[[List[int]], None]] = None):
    """Subscribe move/up listeners for one gesture; always unsubscribe on exit.

    A gesture still active when the block exits is cancelled.
    """
    if events.listener_count("up"):
        raise RuntimeError("A drag gesture is already active on this event source")

    session = DragSession(model, pointer_down(IDLE, model, department, boundary), on_preview)
    events.subscribe("move", session.on_move)
    events.subscribe("up", session.on_up)
    try:
        yield session
    finally:
        events.unsubscribe("move", session.on_move)
        events.unsubscribe("up", session.on_up)
        if session.active:
            session.state = cancel(session.state)


def drag_to(model: TimelineModel, department: int, boundary: str, month) -> bool:
    """Run a whole gesture that drops `boundary` on `month`; True if committed."""
    events = PointerEvents()
    dept = model.departments[department]
    before = (dept.start_month, dept.end_month)
    with drag_gesture(events, model, department, boundary):
        events.emit("move", month)
        events.emit("up", month)
    return (dept.start_month, dept.end_month) != before


def move_timeframe(model: TimelineModel, department: int, start: int, end: int) -> bool:
    """Apply a new timeframe with a single reconcile pass; True if it changed.

    One moved boundary goes through a drag gesture so its ramp is rescaled.
    Two moved boundaries are set directly, keeping the current ramps.
    """
    dept = model.departments[department]
    start_moved = start != dept.start_month
    end_moved = end != dept.end_month
    if start_moved and end_moved:
        set_timeframe(model, department, start, end)
        return True
    if start_moved:
        return drag_to(model, department, START, start)
    if end_moved:
        return drag_to(model, department, END, end)
    return False

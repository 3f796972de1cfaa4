"""
Crew Ramp Engine
Turns a department's ramp parameters into monthly crew counts and keeps
ramp durations consistent whenever a timeframe or ramp value is edited.
"""

from __future__ import annotations

import logging
import math
from typing import List, Optional, Tuple

import pandas as pd

from config import (
    DEPARTMENT, PHASE, Department, ItemRef, Phase, Provenance, TimelineModel,
)

log = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# ---------------------------------------------------------------------------
# Ramp curve
# ---------------------------------------------------------------------------

def generate_curve(dept: Department, month_count: int) -> List[int]:
    """Crew count per month for a department whose invariants already hold.

    Ramp-up climbs to max_crew over ramp_up_duration months, the plateau
    holds max_crew, ramp-down falls towards zero over ramp_down_duration
    months. Months outside the timeframe are 0.
    """
    crew = [0] * month_count
    up = dept.ramp_up_duration
    down = dept.ramp_down_duration
    plateau_start = dept.start_month + up
    plateau_end = dept.end_month - down

    for i in range(up):
        crew[dept.start_month + i] = round_half_up((i + 1) * dept.max_crew / up)

    for m in range(plateau_start, plateau_end + 1):
        crew[m] = dept.max_crew

    for i in range(down):
        crew[plateau_end + 1 + i] = round_half_up(dept.max_crew * (down - i - 1) / down)

    return crew


# ---------------------------------------------------------------------------
# Ramp reconciliation
# ---------------------------------------------------------------------------

def _clean_ramp(value) -> int:
    if value is None:
        return 0
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(value) or value < 0:
        return 0
    return int(value)


def fit_ramps(ramp_up, ramp_down, timeframe: int) -> Tuple[int, int]:
    """Ramp durations that leave at least one plateau month in `timeframe`.

    Both ramps shrink in proportion when both are set; a lone ramp takes
    the whole budget. The floors may leave part of the budget unused.
    """
    up = _clean_ramp(ramp_up)
    down = _clean_ramp(ramp_down)
    if up + down < timeframe:
        return up, down

    budget = timeframe - 1
    if up > 0 and down > 0:
        up_ratio = up / (up + down)
        down_ratio = 1 - up_ratio
        up = max(1, math.floor(budget * up_ratio))
        down = max(1, math.floor(budget * down_ratio))
        # ties shrink the ramp-down side
        while up + down > budget:
            if up > down:
                up -= 1
            else:
                down -= 1
    elif up > 0:
        up = budget
    elif down > 0:
        down = budget

    return up, down


def reconcile_ramps(dept: Department, month_count: int) -> Department:
    """Normalize ramp durations, then regenerate the crew row from them.

    The department is mutated in place and returned. Its crew row becomes
    derived even if it was imported verbatim before.
    """
    before = (dept.ramp_up_duration, dept.ramp_down_duration)
    up, down = fit_ramps(dept.ramp_up_duration, dept.ramp_down_duration, dept.timeframe)
    if (up, down) != before:
        log.info(
            "%s: ramps adjusted for %d-month timeframe: up %s -> %d, down %s -> %d",
            dept.name, dept.timeframe, before[0], up, before[1], down,
        )
    else:
        log.debug("%s: ramps up=%d down=%d already valid", dept.name, up, down)

    dept.ramp_up_duration = up
    dept.ramp_down_duration = down
    dept.crew = generate_curve(dept, month_count)
    dept.provenance = Provenance.DERIVED
    return dept


def fit_length(values: List[int], month_count: int) -> List[int]:
    """Pad with zeros or truncate to exactly `month_count` entries."""
    values = list(values[:month_count])
    return values + [0] * (month_count - len(values))


def refresh_crew(model: TimelineModel) -> None:
    """Regenerate derived rows; resize authoritative rows to the timeline."""
    for dept in model.departments:
        if dept.is_authoritative:
            dept.crew = fit_length(dept.crew, model.month_count)
        else:
            reconcile_ramps(dept, model.month_count)


def regenerate_curves(model: TimelineModel) -> None:
    """Replace every crew row, imported or not, by its reconciled ramp curve."""
    for dept in model.departments:
        reconcile_ramps(dept, model.month_count)


# ---------------------------------------------------------------------------
# Direct edits
# ---------------------------------------------------------------------------

def _department(model: TimelineModel, index: int) -> Department:
    if not 0 <= index < len(model.departments):
        raise IndexError(f"No department at index {index}")
    return model.departments[index]


def _clamp_month(model: TimelineModel, month) -> int:
    return max(0, min(int(month), model.month_count - 1))


def _timeframe(model: TimelineModel, start_month, end_month) -> Tuple[int, int]:
    start = _clamp_month(model, start_month)
    end = max(start, _clamp_month(model, end_month))
    return start, end


def set_timeframe(model: TimelineModel, index: int, start_month, end_month) -> Department:
    dept = _department(model, index)
    dept.start_month, dept.end_month = _timeframe(model, start_month, end_month)
    return reconcile_ramps(dept, model.month_count)


def set_ramps(model: TimelineModel, index: int, ramp_up, ramp_down) -> Department:
    dept = _department(model, index)
    dept.ramp_up_duration = ramp_up
    dept.ramp_down_duration = ramp_down
    return reconcile_ramps(dept, model.month_count)


def set_max_crew(model: TimelineModel, index: int, max_crew) -> Department:
    dept = _department(model, index)
    dept.max_crew = max(0, int(max_crew))
    return reconcile_ramps(dept, model.month_count)


def set_rate(model: TimelineModel, index: int, rate) -> Department:
    dept = _department(model, index)
    dept.rate = float(rate)
    return dept


def rename_department(model: TimelineModel, index: int, name: str) -> Department:
    dept = _department(model, index)
    dept.name = name.strip()
    return dept


def add_phase(model: TimelineModel, name: str, start_month, end_month) -> int:
    start, end = _timeframe(model, start_month, end_month)
    model.phases.append(Phase(name=name.strip(), start_month=start, end_month=end))
    index = len(model.phases) - 1
    model.item_order.append(ItemRef(PHASE, index))
    return index


def add_department(
    model: TimelineModel,
    name: str,
    max_crew: int,
    start_month,
    end_month,
    ramp_up: int = 0,
    ramp_down: int = 0,
    rate: float = 8000.0,
    phase_ref: Optional[int] = None,
) -> int:
    if phase_ref is not None and not 0 <= phase_ref < len(model.phases):
        raise IndexError(f"No phase at index {phase_ref}")
    start, end = _timeframe(model, start_month, end_month)
    dept = Department(
        name=name.strip(),
        max_crew=max(0, int(max_crew)),
        start_month=start,
        end_month=end,
        ramp_up_duration=ramp_up,
        ramp_down_duration=ramp_down,
        rate=float(rate),
        phase_ref=phase_ref,
    )
    reconcile_ramps(dept, model.month_count)
    model.departments.append(dept)
    index = len(model.departments) - 1
    model.item_order.append(ItemRef(DEPARTMENT, index))
    return index


# ---------------------------------------------------------------------------
# Tabular views
# ---------------------------------------------------------------------------

def crew_frame(model: TimelineModel) -> pd.DataFrame:
    """Crew matrix as a DataFrame: one row per department, one column per month."""
    return pd.DataFrame(
        [fit_length(d.crew, model.month_count) for d in model.departments],
        index=[d.name for d in model.departments],
        columns=model.months,
    )


def department_frame(model: TimelineModel) -> pd.DataFrame:
    rows = []
    for dept in model.departments:
        rows.append({
            "Department": dept.name,
            "Phase": model.phase_name(dept) or "",
            "Max crew": dept.max_crew,
            "Start": model.months[dept.start_month],
            "End": model.months[dept.end_month],
            "Ramp up": dept.ramp_up_duration,
            "Ramp down": dept.ramp_down_duration,
            "Rate": dept.rate,
            "Source": dept.provenance.value,
        })
    if not rows:
        return pd.DataFrame(
            columns=["Department", "Phase", "Max crew", "Start", "End",
                     "Ramp up", "Ramp down", "Rate", "Source"]
        )
    return pd.DataFrame(rows)

from dataclasses import replace

import pytest

from config import Department, Provenance, TimelineModel
from defaults import baseline_project, month_labels
from model import (
    add_department, add_phase, crew_frame, department_frame, fit_ramps,
    generate_curve, reconcile_ramps, refresh_crew, rename_department,
    round_half_up, set_max_crew, set_ramps, set_rate, set_timeframe,
)


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(6.66) == 7
    assert round_half_up(3.33) == 3


# ---------------------------------------------------------------------------
# Curve generation
# ---------------------------------------------------------------------------

def test_symmetric_ramp_over_a_year(scenario_a):
    assert generate_curve(scenario_a, 12) == [3, 7, 10, 10, 10, 10, 10, 10, 10, 7, 3, 0]


def test_ramp_up_rounds_half_up():
    dept = Department("Rig", max_crew=5, start_month=0, end_month=3, ramp_up_duration=2)
    assert generate_curve(dept, 4) == [3, 5, 5, 5]


def test_ramp_down_ends_at_zero_inside_timeframe():
    dept = Department("Comp", max_crew=4, start_month=1, end_month=3, ramp_down_duration=1)
    assert generate_curve(dept, 5) == [0, 4, 4, 0, 0]


def test_flat_department():
    dept = Department("Sup", max_crew=2, start_month=2, end_month=4)
    assert generate_curve(dept, 6) == [0, 0, 2, 2, 2, 0]


def test_curve_bounds_over_all_valid_shapes():
    n = 8
    for start in range(n):
        for end in range(start, n):
            timeframe = end - start + 1
            for up in range(timeframe):
                for down in range(timeframe - up):
                    for max_crew in (0, 1, 7, 10):
                        dept = Department("D", max_crew, start, end, up, down)
                        curve = generate_curve(dept, n)
                        assert len(curve) == n
                        assert all(0 <= c <= max_crew for c in curve)
                        assert max(curve) == max_crew
                        assert all(curve[m] == 0 for m in range(n) if m < start or m > end)


# ---------------------------------------------------------------------------
# Ramp fitting
# ---------------------------------------------------------------------------

def test_both_ramps_shrink_to_fit_short_timeframe():
    dept = Department("D", 10, start_month=0, end_month=3, ramp_up_duration=3, ramp_down_duration=3)
    reconcile_ramps(dept, 12)
    assert (dept.ramp_up_duration, dept.ramp_down_duration) == (1, 1)


def test_single_ramp_takes_whole_budget():
    dept = Department("D", 10, start_month=0, end_month=2, ramp_up_duration=5)
    reconcile_ramps(dept, 12)
    assert (dept.ramp_up_duration, dept.ramp_down_duration) == (2, 0)
    assert fit_ramps(0, 9, 5) == (0, 4)


def test_floors_may_leave_budget_unused():
    assert fit_ramps(3, 3, 4) == (1, 1)


def test_proportional_split():
    assert fit_ramps(6, 2, 5) == (3, 1)


def test_one_month_timeframe_drops_both_ramps():
    assert fit_ramps(2, 2, 1) == (0, 0)


def test_ties_shrink_ramp_down():
    assert fit_ramps(1, 1, 2) == (1, 0)


def test_valid_ramps_are_kept():
    assert fit_ramps(3, 3, 12) == (3, 3)


@pytest.mark.parametrize("up,down", [
    (float("nan"), -2),
    (None, "x"),
    (-1, float("inf")),
])
def test_unusable_ramp_values_become_zero(up, down):
    assert fit_ramps(up, down, 6) == (0, 0)


def test_fitted_ramps_leave_a_plateau_and_are_stable():
    for timeframe in range(1, 16):
        for up in range(21):
            for down in range(21):
                fitted = fit_ramps(up, down, timeframe)
                assert fitted[0] >= 0 and fitted[1] >= 0
                assert sum(fitted) < timeframe
                assert fit_ramps(*fitted, timeframe) == fitted


def test_reconcile_is_idempotent():
    dept = Department("D", 12, start_month=1, end_month=6, ramp_up_duration=8, ramp_down_duration=3)
    once = reconcile_ramps(replace(dept), 10)
    twice = reconcile_ramps(replace(once), 10)
    assert once == twice


def test_reconcile_replaces_imported_counts():
    dept = Department("D", 4, 0, 3, 1, 1, crew=[2, 4, 3, 1], provenance=Provenance.AUTHORITATIVE)
    reconcile_ramps(dept, 4)
    assert dept.provenance == Provenance.DERIVED
    assert dept.crew == [4, 4, 4, 0]


def test_refresh_keeps_imported_counts():
    model = TimelineModel(months=month_labels(2024, 1))
    model.departments.append(Department(
        "Imported", 4, 0, 3, 1, 1, crew=[2, 4, 3, 1], provenance=Provenance.AUTHORITATIVE,
    ))
    model.departments.append(Department("Derived", 10, 0, 2, 9, 0))
    refresh_crew(model)
    assert model.departments[0].crew == [2, 4, 3, 1] + [0] * 8
    assert model.departments[1].ramp_up_duration == 2
    assert len(model.departments[1].crew) == 12


# ---------------------------------------------------------------------------
# Edits
# ---------------------------------------------------------------------------

def test_set_timeframe_clamps_into_timeline(year_model):
    dept = set_timeframe(year_model, 0, -4, 100)
    assert (dept.start_month, dept.end_month) == (0, 11)


def test_set_timeframe_end_never_before_start(year_model):
    dept = set_timeframe(year_model, 0, 8, 3)
    assert (dept.start_month, dept.end_month) == (8, 8)
    assert (dept.ramp_up_duration, dept.ramp_down_duration) == (0, 0)
    assert dept.crew == [0] * 8 + [10] + [0] * 3


def test_set_ramps_reconciles(year_model):
    dept = set_ramps(year_model, 0, 10, 10)
    assert dept.ramp_up_duration + dept.ramp_down_duration < dept.timeframe
    assert dept.crew == generate_curve(dept, 12)


def test_set_max_crew_clamps_negative(year_model):
    dept = set_max_crew(year_model, 0, -5)
    assert dept.max_crew == 0
    assert dept.crew == [0] * 12


def test_set_rate_keeps_crew(year_model):
    before = list(year_model.departments[0].crew)
    dept = set_rate(year_model, 0, "9500")
    assert dept.rate == 9500.0
    assert dept.crew == before


def test_rename_department(year_model):
    assert rename_department(year_model, 0, "  Layout ").name == "Layout"


def test_edit_unknown_department(year_model):
    with pytest.raises(IndexError):
        set_rate(year_model, 5, 1000)


def test_add_department_checks_phase(year_model):
    with pytest.raises(IndexError):
        add_department(year_model, "Orphan", 3, 0, 5, phase_ref=0)

    phase = add_phase(year_model, "Build", 0, 5)
    index = add_department(year_model, "Builder", 3, 0, 5, 9, 9, phase_ref=phase)
    dept = year_model.departments[index]
    assert year_model.phase_name(dept) == "Build"
    assert dept.ramp_up_duration + dept.ramp_down_duration < dept.timeframe
    assert [(r.kind, r.index) for r in year_model.item_order] == [
        ("department", 0), ("phase", 0), ("department", 1),
    ]


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------

def test_crew_frame(year_model):
    frame = crew_frame(year_model)
    assert frame.shape == (1, 12)
    assert list(frame.index) == ["Artists"]
    assert frame.loc["Artists", "Jun 2024"] == 10


def test_department_frame():
    frame = department_frame(baseline_project())
    assert list(frame.columns) == [
        "Department", "Phase", "Max crew", "Start", "End",
        "Ramp up", "Ramp down", "Rate", "Source",
    ]
    assert frame.iloc[0]["Phase"] == "Concept Stage"
    assert set(frame["Source"]) == {"derived"}


def test_department_frame_empty():
    frame = department_frame(TimelineModel(months=month_labels(2024, 1)))
    assert frame.empty
    assert "Department" in frame.columns


def test_baseline_project():
    model = baseline_project()
    assert model.month_count == 48
    assert model.months[0] == "Jan 2022" and model.months[-1] == "Dec 2025"
    assert model.years == [2022, 2023, 2024, 2025]
    assert len(model.phases) == 2
    assert all(len(d.crew) == 48 for d in model.departments)
    assert all(not d.is_authoritative for d in model.departments)
    assert model.item_order[0].kind == "phase"

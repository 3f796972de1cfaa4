import pytest

from config import Department, TimelineModel
from defaults import MONTH_ABBR, month_labels
from model import add_department


@pytest.fixture
def make_table():
    """Year row with one cell per year, month row, then the given body rows."""

    def _make(body, start_year=2024, years=2, rate_column=True):
        n = 12 * years
        year_row = ["Department"] + [""] * n + (["Rate"] if rate_column else [])
        for y in range(years):
            year_row[1 + 12 * y] = str(start_year + y)
        label_row = [""] + MONTH_ABBR * years + ([""] if rate_column else [])
        return [year_row, label_row] + [list(r) for r in body]

    return _make


@pytest.fixture
def dept_row():
    def _row(name, crew, rate="", width=24):
        cells = [str(c) if c else "" for c in crew] + [""] * (width - len(crew))
        return [name] + cells + [rate]

    return _row


@pytest.fixture
def phase_row():
    def _row(name, start=None, end=None, width=24):
        marks = ["X" if start is not None and start <= m <= end else "" for m in range(width)]
        return [name] + marks + [""]

    return _row


@pytest.fixture
def sample_rows(make_table, dept_row, phase_row):
    animators = [0] * 6 + [5, 10, 20, 20, 20, 15, 5]
    return make_table([
        dept_row("Digital Supervision", [1] * 20, "15000"),
        phase_row("Concept:", 0, 9),
        dept_row("Concept Artists", [2, 4, 4, 4, 2]),
        ["Supervision:"] + [""] * 25,
        dept_row("Lighting Lead", [0, 0, 0, 1, 1, 1]),
        phase_row("Production Phase"),
        dept_row("Animators", animators, "7000"),
        dept_row("Empty Dept", [0] * 24),
    ])


@pytest.fixture
def year_model():
    """12-month model with one derived department (2-9, ramps 2/2, max 10)."""
    model = TimelineModel(months=month_labels(2024, 1))
    add_department(model, "Artists", 10, 2, 9, 2, 2)
    return model


@pytest.fixture
def scenario_a():
    return Department(
        name="Scenario A", max_crew=10, start_month=0, end_month=11,
        ramp_up_duration=3, ramp_down_duration=3,
    )

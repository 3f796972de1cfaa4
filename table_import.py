"""
Tabular import: rebuild a TimelineModel from a plain row/column table.

Row 0 holds years, row 1 month labels, rows 2+ phases and departments.
Timeframes, ramp durations and phase grouping are inferred from the
crew counts; the counts themselves are kept verbatim.
"""

from __future__ import annotations

import csv
import io
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

import openpyxl

from config import (
    DEPARTMENT, PHASE, Department, ItemRef, Phase, PlannerConfig, Provenance,
    TimelineModel,
)
from defaults import MONTH_ABBR, default_config
from model import round_half_up

log = logging.getLogger(__name__)

MONTH_NAMES = ["January", "February", "March", "April", "May", "June", "July",
               "August", "September", "October", "November", "December"]

MONTH_LOOKUP = {abbr: abbr for abbr in MONTH_ABBR}
MONTH_LOOKUP.update({full: abbr for full, abbr in zip(MONTH_NAMES, MONTH_ABBR)})
MONTH_LOOKUP["Fed"] = "Feb"  # known typo in exported sheets

STAGE_WORDS = ("Phase", "Stage")


class MalformedTableError(ValueError):
    """The table cannot be read as a crew timeline."""

    def __init__(self, message: str, row: Optional[int] = None, column: Optional[int] = None):
        if row is not None:
            where = f"row {row}" if column is None else f"row {row}, column {column}"
            message = f"{message} ({where})"
        super().__init__(message)
        self.row = row
        self.column = column


# ---------------------------------------------------------------------------
# Cells
# ---------------------------------------------------------------------------

def _cell(row: Sequence, col: int) -> str:
    if col >= len(row) or row[col] is None:
        return ""
    return str(row[col]).strip()


def _number(text: str) -> Optional[float]:
    if not text:
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _year(text: str) -> Optional[int]:
    value = _number(text)
    if value is None or value != int(value):
        return None
    return int(value)


def _crew_count(text: str) -> Optional[int]:
    value = _number(text)
    if value is None:
        return None
    return max(0, round_half_up(value))


def normalize_month(label: str) -> str:
    return MONTH_LOOKUP.get(label, label)


# ---------------------------------------------------------------------------
# Header rows
# ---------------------------------------------------------------------------

@dataclass
class TimelineHeader:
    """Month labels and the table column each month is read from."""

    months: List[str]
    columns: List[int]
    explicit_years: bool = False

    @property
    def last_column(self) -> int:
        return self.columns[-1] if self.columns else 0

    @property
    def rate_column(self) -> int:
        return self.last_column + 1


def _runs_fit_a_year(years: List[int]) -> bool:
    run = 0
    for i, year in enumerate(years):
        run = run + 1 if i and year == years[i - 1] else 1
        if run > 12:
            return False
    return True


def _explicit_years(year_cells, label_columns) -> Optional[List[int]]:
    """Years per label column from year cells spanning their columns, or None."""
    if not year_cells or year_cells[0][0] > label_columns[0]:
        return None
    label_set = set(label_columns)
    if any(col not in label_set for col, _ in year_cells):
        return None

    years = []
    cell = 0
    for col in label_columns:
        while cell + 1 < len(year_cells) and year_cells[cell + 1][0] <= col:
            cell += 1
        years.append(year_cells[cell][1])
    if not _runs_fit_a_year(years):
        return None
    return years


def _rollover_years(labels: List[str], year_list: List[int]) -> List[int]:
    """Years per label: advance on a Jan after the first month of a year, or after 12 months."""
    years = []
    index = 0
    current = year_list[0]
    in_year = 0
    for label in labels:
        if in_year and (label == "Jan" or in_year == 12):
            index += 1
            if index < len(year_list):
                current = year_list[index]
            else:
                current += 1
            in_year = 0
        years.append(current)
        in_year += 1
    return years


def parse_header(year_row: Sequence, label_row: Sequence, cfg: PlannerConfig) -> TimelineHeader:
    year_cells = []
    for col in range(len(year_row)):
        year = _year(_cell(year_row, col))
        if year is not None:
            year_cells.append((col, year))

    year_list: List[int] = []
    for _, year in year_cells:
        if year not in year_list:
            year_list.append(year)
    if not year_list:
        year_list = list(range(cfg.default_start_year, cfg.default_start_year + cfg.default_year_count))
        if not year_list:
            raise MalformedTableError("No year in header row and no default years configured", 0)
        log.info("No year in header row; assuming %d-%d", year_list[0], year_list[-1])

    label_columns = [col for col in range(1, len(label_row)) if _cell(label_row, col)]
    if not label_columns:
        months = [f"{m} {y}" for y in year_list for m in MONTH_ABBR]
        log.info("No month labels; synthesized %d months for %d year(s)", len(months), len(year_list))
        return TimelineHeader(months=months, columns=list(range(1, len(months) + 1)))

    labels = [normalize_month(_cell(label_row, col)) for col in label_columns]
    years = _explicit_years(year_cells, label_columns)
    explicit = years is not None
    if explicit:
        log.debug("Year boundaries taken from year header columns")
    else:
        if year_cells:
            log.warning("Year cells do not line up with month columns; inferring year rollover from labels")
        years = _rollover_years(labels, year_list)

    months = [f"{label} {year}" for label, year in zip(labels, years)]
    return TimelineHeader(months=months, columns=label_columns, explicit_years=explicit)


# ---------------------------------------------------------------------------
# Row classification
# ---------------------------------------------------------------------------

@dataclass
class PhaseRow:
    name: str
    start_month: int
    end_month: int


@dataclass
class DepartmentRow:
    name: str
    crew: List[int]
    rate: Optional[float] = None


@dataclass
class SeparatorRow:
    reason: str = ""


ClassifiedRow = Union[PhaseRow, DepartmentRow, SeparatorRow]


def _looks_like_phase(name: str) -> bool:
    return name.endswith(":") or any(word in name for word in STAGE_WORDS)


def classify_row(
    row: Sequence,
    header: TimelineHeader,
    cfg: Optional[PlannerConfig] = None,
    row_index: Optional[int] = None,
) -> ClassifiedRow:
    """Decide whether a body row is a phase, a department or a separator.

    A name containing "Phase"/"Stage" is always a phase; a name ending in
    ":" is a phase only when the row marks at least one month. Any other
    named row with a number in its month columns is a department.
    """
    cfg = cfg or default_config()
    name = _cell(row, 0)
    if not name:
        return SeparatorRow("no name")

    if _looks_like_phase(name):
        for col in range(header.rate_column, len(row)):
            if _cell(row, col) in cfg.marker_tokens:
                raise MalformedTableError(
                    f"Phase marker for {name!r} lies beyond the last month column", row_index, col,
                )
        marked = [m for m, col in enumerate(header.columns) if _cell(row, col) in cfg.marker_tokens]
        has_stage_word = any(word in name for word in STAGE_WORDS)
        if marked or has_stage_word:
            phase_name = name[:-1].strip() if name.endswith(":") else name
            if marked:
                return PhaseRow(phase_name, marked[0], marked[-1])
            return PhaseRow(phase_name, 0, len(header.months) - 1)

    counts = [_crew_count(_cell(row, col)) for col in header.columns]
    if all(c is None for c in counts):
        return SeparatorRow("no crew counts")

    rate = _number(_cell(row, header.rate_column))
    for col in range(header.rate_column + 1, len(row)):
        if _number(_cell(row, col)) is not None:
            raise MalformedTableError(
                f"Value for {name!r} lies beyond the rate column", row_index, col,
            )
    return DepartmentRow(name, [c or 0 for c in counts], rate)


# ---------------------------------------------------------------------------
# Departments
# ---------------------------------------------------------------------------

def department_from_counts(name: str, crew: List[int], rate: float) -> Optional[Department]:
    """Infer timeframe and ramps from a crew row; None when the row is all zeros."""
    max_crew = max(crew) if crew else 0
    if max_crew == 0:
        return None

    active = [i for i, c in enumerate(crew) if c > 0]
    start, end = active[0], active[-1]
    peaks = [i for i in range(start, end + 1) if crew[i] == max_crew]

    return Department(
        name=name,
        max_crew=max_crew,
        start_month=start,
        end_month=end,
        ramp_up_duration=peaks[0] - start,
        ramp_down_duration=end - peaks[-1],
        rate=rate,
        crew=list(crew),
        provenance=Provenance.AUTHORITATIVE,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_table(rows: Sequence[Sequence], cfg: Optional[PlannerConfig] = None) -> TimelineModel:
    cfg = cfg or default_config()
    rows = [list(r) for r in rows]
    if len(rows) < 2:
        raise MalformedTableError(
            f"Expected a year row and a month row, got {len(rows)} row(s)"
        )

    header = parse_header(rows[0], rows[1], cfg)
    model = TimelineModel(months=header.months)
    current_phase: Optional[int] = None

    for r in range(2, len(rows)):
        kind = classify_row(rows[r], header, cfg, row_index=r)
        log.debug("row %d: %s", r, type(kind).__name__)

        if isinstance(kind, PhaseRow):
            model.phases.append(Phase(kind.name, kind.start_month, kind.end_month))
            current_phase = len(model.phases) - 1
            model.item_order.append(ItemRef(PHASE, current_phase))

        elif isinstance(kind, DepartmentRow):
            rate = kind.rate if kind.rate is not None else cfg.rate_for(kind.name)
            dept = department_from_counts(kind.name, kind.crew, rate)
            if dept is None:
                log.info("Dropping %r: no crew in any month", kind.name)
                continue
            dept.phase_ref = current_phase
            model.departments.append(dept)
            model.item_order.append(ItemRef(DEPARTMENT, len(model.departments) - 1))

    log.info(
        "Imported %d month(s), %d phase(s), %d department(s)",
        model.month_count, len(model.phases), len(model.departments),
    )
    return model


def _cell_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def read_rows(source, suffix: Optional[str] = None) -> List[List[str]]:
    """Rows of text from a .csv or .xlsx file, given a path or a binary stream."""
    if isinstance(source, (str, Path)):
        suffix = suffix or Path(source).suffix
    suffix = (suffix or "").lower()

    if suffix in (".csv", ".txt"):
        if isinstance(source, (str, Path)):
            with open(source, newline="", encoding="utf-8-sig") as f:
                return [row for row in csv.reader(f)]
        text = io.TextIOWrapper(source, encoding="utf-8-sig", newline="")
        rows = [row for row in csv.reader(text)]
        text.detach()
        return rows

    if suffix in (".xlsx", ".xlsm"):
        wb = openpyxl.load_workbook(source, read_only=True, data_only=True)
        try:
            ws = wb.worksheets[0]
            return [[_cell_text(v) for v in row] for row in ws.iter_rows(values_only=True)]
        finally:
            wb.close()

    raise ValueError(f"Unsupported table format: {suffix or 'no suffix'}")


def rows_from_text(text: str) -> List[List[str]]:
    return [row for row in csv.reader(io.StringIO(text))]


def load_table(source, cfg: Optional[PlannerConfig] = None, suffix: Optional[str] = None) -> TimelineModel:
    return parse_table(read_rows(source, suffix), cfg)

"""
Tabular export: write a TimelineModel in the row grammar the importer reads,
plus JSON project files.
"""

from __future__ import annotations

import csv
import io
import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import openpyxl

from config import (
    DEPARTMENT, PHASE, Department, ItemRef, Phase, Provenance, TimelineModel,
)
from model import fit_length, refresh_crew

log = logging.getLogger(__name__)

PROJECT_VERSION = 1


def _split_label(label: str):
    head, _, tail = label.rpartition(" ")
    if head and tail.isdigit():
        return head, tail
    return label, ""


def _format_rate(rate: float) -> str:
    return str(int(rate)) if float(rate).is_integer() else str(rate)


def _ordered(model: TimelineModel, kind: str, count: int) -> List[int]:
    seen: List[int] = []
    for ref in model.item_order:
        if ref.kind == kind and 0 <= ref.index < count and ref.index not in seen:
            seen.append(ref.index)
    return seen + [i for i in range(count) if i not in seen]


# ---------------------------------------------------------------------------
# Row grammar
# ---------------------------------------------------------------------------

def render_table(model: TimelineModel) -> List[List[str]]:
    """Year row, month row, then departments grouped under their phase.

    Departments without a phase come first, before any phase row, so a
    re-import leaves them ungrouped. Groups follow the Item Order.
    """
    n = model.month_count
    year_row = ["Department"] + [""] * n + ["Rate"]
    label_row = [""] * (n + 2)
    previous = None
    for i, label in enumerate(model.months):
        month, year = _split_label(label)
        label_row[i + 1] = month
        if year != previous:
            year_row[i + 1] = year
            previous = year

    def dept_row(dept: Department) -> List[str]:
        crew = fit_length(dept.crew, n)
        return [dept.name] + [str(c) if c else "" for c in crew] + [_format_rate(dept.rate)]

    phase_order = _ordered(model, PHASE, len(model.phases))
    groups: Dict[Optional[int], List[int]] = {None: []}
    groups.update({p: [] for p in phase_order})
    for d in _ordered(model, DEPARTMENT, len(model.departments)):
        ref = model.departments[d].phase_ref
        groups[ref if ref in groups else None].append(d)

    rows = [year_row, label_row]
    for d in groups[None]:
        rows.append(dept_row(model.departments[d]))
    for p in phase_order:
        phase = model.phases[p]
        marks = ["X" if phase.start_month <= m <= phase.end_month else "" for m in range(n)]
        rows.append([f"{phase.name}:"] + marks + [""])
        for d in groups[p]:
            rows.append(dept_row(model.departments[d]))
        rows.append([""] * (n + 2))
    return rows


def render_csv(model: TimelineModel) -> str:
    buf = io.StringIO()
    csv.writer(buf, lineterminator="\n").writerows(render_table(model))
    return buf.getvalue()


def _xlsx_value(text: str):
    if text == "":
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return text


def render_xlsx(model: TimelineModel) -> bytes:
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Timeline"
    for row in render_table(model):
        ws.append([_xlsx_value(cell) for cell in row])
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def write_rows(rows: Sequence[Sequence[str]], path) -> Path:
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix in (".csv", ".txt"):
        with open(path, "w", newline="", encoding="utf-8") as f:
            csv.writer(f, lineterminator="\n").writerows(rows)
    elif suffix in (".xlsx", ".xlsm"):
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = "Timeline"
        for row in rows:
            ws.append([_xlsx_value(str(cell)) for cell in row])
        wb.save(path)
    else:
        raise ValueError(f"Unsupported table format: {path.suffix or 'no suffix'}")
    log.info("Wrote %d row(s) to %s", len(rows), path)
    return path


def write_table(model: TimelineModel, path) -> Path:
    return write_rows(render_table(model), path)


# ---------------------------------------------------------------------------
# JSON project files
# ---------------------------------------------------------------------------

def project_to_dict(model: TimelineModel) -> dict:
    departments = []
    for dept in model.departments:
        item = asdict(dept)
        item["provenance"] = dept.provenance.value
        departments.append(item)
    return {
        "version": PROJECT_VERSION,
        "months": list(model.months),
        "phases": [asdict(p) for p in model.phases],
        "departments": departments,
        "item_order": [{"type": ref.kind, "index": ref.index} for ref in model.item_order],
    }


def _check_ranges(model: TimelineModel) -> None:
    n = model.month_count
    for kind, items in (("phase", model.phases), ("department", model.departments)):
        for item in items:
            if not 0 <= item.start_month <= item.end_month < n:
                raise ValueError(
                    f"Invalid project data: {kind} {item.name!r} spans months "
                    f"{item.start_month}-{item.end_month} outside a {n}-month timeline"
                )
    for dept in model.departments:
        if dept.phase_ref is not None and not 0 <= dept.phase_ref < len(model.phases):
            raise ValueError(f"Invalid project data: {dept.name!r} refers to unknown phase {dept.phase_ref}")


def project_from_dict(data: dict) -> TimelineModel:
    try:
        model = TimelineModel(
            months=[str(m) for m in data["months"]],
            phases=[Phase(p["name"], int(p["start_month"]), int(p["end_month"]))
                    for p in data.get("phases", [])],
            item_order=[ItemRef(ref["type"], int(ref["index"]))
                        for ref in data.get("item_order", [])],
        )
        for item in data.get("departments", []):
            model.departments.append(Department(
                name=item["name"],
                max_crew=int(item["max_crew"]),
                start_month=int(item["start_month"]),
                end_month=int(item["end_month"]),
                ramp_up_duration=int(item.get("ramp_up_duration", 0)),
                ramp_down_duration=int(item.get("ramp_down_duration", 0)),
                rate=float(item.get("rate", 8000.0)),
                phase_ref=None if item.get("phase_ref") is None else int(item["phase_ref"]),
                crew=[int(c) for c in item.get("crew", [])],
                provenance=Provenance(item.get("provenance", Provenance.DERIVED.value)),
            ))
    except (KeyError, TypeError) as e:
        raise ValueError(f"Invalid project data: {e}") from e

    _check_ranges(model)
    refresh_crew(model)
    return model


def project_json(model: TimelineModel) -> str:
    return json.dumps(project_to_dict(model), indent=2)


def save_project(model: TimelineModel, path) -> Path:
    path = Path(path)
    path.write_text(project_json(model), encoding="utf-8")
    log.info("Saved project to %s", path)
    return path


def load_project(source) -> TimelineModel:
    """Load a JSON project from a path, or from the JSON text itself."""
    if isinstance(source, Path) or (isinstance(source, str) and not source.lstrip().startswith("{")):
        source = Path(source).read_text(encoding="utf-8")
    return project_from_dict(json.loads(source))

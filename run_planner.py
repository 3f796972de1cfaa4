#!/usr/bin/env python3
"""
Crew Ramp Planner CLI.

Usage:
  # Show the timeline, phases and inferred department ramps of a table
  python run_planner.py summary --table "crew plan.csv"

  # Convert between .csv, .xlsx and .json project files
  python run_planner.py convert --src "crew plan.csv" --out "crew plan.xlsx"

  # Replace imported crew counts by clean ramp curves
  python run_planner.py normalize --src "crew plan.csv" --out "crew plan - ramps.csv"

  # Write the baseline sample project
  python run_planner.py sample --out "sample.csv"
"""

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

from defaults import baseline_project
from model import department_frame, regenerate_curves
from table_export import load_project, save_project, write_table
from table_import import MalformedTableError, load_table

log = logging.getLogger("run_planner")


def _load(path: str):
    if Path(path).suffix.lower() == ".json":
        return load_project(Path(path))
    return load_table(path)


def _save(model, path: str):
    if Path(path).suffix.lower() == ".json":
        return save_project(model, path)
    return write_table(model, path)


def cmd_summary(args):
    model = _load(args.table)
    print(f"Timeline: {model.months[0]} - {model.months[-1]} ({model.month_count} months)")
    print(f"Phases: {len(model.phases)}")
    for phase in model.phases:
        print(f"  {phase.name}: {model.months[phase.start_month]} - {model.months[phase.end_month]}")
    print(f"Departments: {len(model.departments)}")
    if model.departments:
        print(department_frame(model).to_string(index=False))


def cmd_convert(args):
    model = _load(args.src)
    out = _save(model, args.out)
    print(f"Written: {out}")


def cmd_normalize(args):
    model = _load(args.src)
    regenerate_curves(model)
    out = _save(model, args.out)
    print(f"Written: {out}")


def cmd_sample(args):
    out = _save(baseline_project(), args.out)
    print(f"Written: {out}")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Crew Ramp Planner — department staffing timelines",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", help="Command")

    p_summary = sub.add_parser("summary", help="Describe a crew table")
    p_summary.add_argument("--table", required=True, help="Table path (.csv, .xlsx or .json)")

    p_convert = sub.add_parser("convert", help="Convert between table formats")
    p_convert.add_argument("--src", required=True, help="Source path")
    p_convert.add_argument("--out", required=True, help="Output path")

    p_norm = sub.add_parser("normalize", help="Regenerate crew counts from inferred ramps")
    p_norm.add_argument("--src", required=True, help="Source path")
    p_norm.add_argument("--out", required=True, help="Output path")

    p_sample = sub.add_parser("sample", help="Write the baseline project")
    p_sample.add_argument("--out", default="sample.csv")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s | %(name)s | %(message)s",
    )
    if not args.command:
        parser.print_help()
        return 1

    dispatch = {
        "summary": cmd_summary,
        "convert": cmd_convert,
        "normalize": cmd_normalize,
        "sample": cmd_sample,
    }
    try:
        dispatch[args.command](args)
    except (MalformedTableError, ValueError, OSError) as e:
        log.error("%s", e)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())

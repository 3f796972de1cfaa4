"""Baseline assumptions (animation production crew plan)."""

from config import PlannerConfig, TimelineModel
from model import add_department, add_phase

MONTH_ABBR = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

RATE_KEYWORDS = [
    (("Sup", "Director", "Lead"), 12000.0),
    (("Technical", "Developer"), 10000.0),
    (("Animator", "Animation"), 7000.0),
    (("Lighter", "Lighting"), 7500.0),
    (("VFX", "Effect"), 8000.0),
    (("Composite", "Comp"), 7800.0),
    (("Modeller", "Modeling"), 7500.0),
    (("Rigger", "Rigging"), 8500.0),
    (("Surfacing", "Surface"), 7500.0),
]


def default_config() -> PlannerConfig:
    return PlannerConfig(
        default_rate=8000.0,
        rate_keywords=list(RATE_KEYWORDS),
        default_start_year=2022,
        default_year_count=4,
        marker_tokens=("X", "x"),
    )


def month_labels(start_year: int, year_count: int):
    return [f"{m} {y}" for y in range(start_year, start_year + year_count) for m in MONTH_ABBR]


def baseline_project() -> TimelineModel:
    model = TimelineModel(months=month_labels(2022, 4))

    concept = add_phase(model, "Concept Stage", 0, 15)
    add_department(model, "Supervision", 1, 0, 36, rate=12000.0, phase_ref=concept)
    add_department(model, "Concept Artists", 4, 0, 14, 1, 1, rate=8000.0, phase_ref=concept)
    add_department(model, "Character Rigger", 6, 0, 14, 2, 2, rate=8500.0, phase_ref=concept)

    production = add_phase(model, "Production Stage", 12, 36)
    add_department(model, "Artists", 10, 3, 33, 3, 3, rate=8000.0, phase_ref=production)
    add_department(model, "Animators", 60, 11, 40, 4, 2, rate=7000.0, phase_ref=production)
    add_department(model, "Lighters", 80, 11, 40, 4, 2, rate=7500.0, phase_ref=production)
    add_department(model, "Composite", 40, 11, 40, 3, 2, rate=7800.0, phase_ref=production)

    return model

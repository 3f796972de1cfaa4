from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class Provenance(str, Enum):
    """Where a department's crew row came from."""

    DERIVED = "derived"
    AUTHORITATIVE = "authoritative"


@dataclass
class Phase:
    """A named sub-range of the timeline (e.g. a production stage)."""

    name: str
    start_month: int
    end_month: int


@dataclass
class Department:
    """One staffed department: ramp parameters plus its monthly crew row."""

    name: str
    max_crew: int
    start_month: int
    end_month: int
    ramp_up_duration: int = 0
    ramp_down_duration: int = 0
    rate: float = 8000.0
    phase_ref: Optional[int] = None
    crew: List[int] = field(default_factory=list)
    provenance: Provenance = Provenance.DERIVED

    @property
    def timeframe(self) -> int:
        return self.end_month - self.start_month + 1

    @property
    def is_authoritative(self) -> bool:
        return self.provenance == Provenance.AUTHORITATIVE


PHASE = "phase"
DEPARTMENT = "department"


@dataclass(frozen=True)
class ItemRef:
    """Entry of the Item Order: a phase or department index."""

    kind: str
    index: int


@dataclass
class TimelineModel:
    """Months, phases, departments and the order they are shown in."""

    months: List[str]
    phases: List[Phase] = field(default_factory=list)
    departments: List[Department] = field(default_factory=list)
    item_order: List[ItemRef] = field(default_factory=list)

    @property
    def month_count(self) -> int:
        return len(self.months)

    @property
    def years(self) -> List[int]:
        years: List[int] = []
        for label in self.months:
            tail = label.rsplit(" ", 1)[-1]
            if tail.isdigit() and int(tail) not in years:
                years.append(int(tail))
        return years

    @property
    def crew_matrix(self) -> List[List[int]]:
        return [list(d.crew) for d in self.departments]

    def phase_name(self, dept: Department) -> Optional[str]:
        if dept.phase_ref is None or not 0 <= dept.phase_ref < len(self.phases):
            return None
        return self.phases[dept.phase_ref].name


@dataclass
class PlannerConfig:
    """Import/export settings; see defaults.default_config() for the baseline."""

    default_rate: float = 8000.0
    # ordered (keywords, rate); first group with a keyword in the name wins
    rate_keywords: List[Tuple[Tuple[str, ...], float]] = field(default_factory=list)
    default_start_year: int = 2022
    default_year_count: int = 4
    marker_tokens: Tuple[str, ...] = ("X", "x")

    def rate_for(self, name: str) -> float:
        for keywords, rate in self.rate_keywords:
            if any(k in name for k in keywords):
                return rate
        return self.default_rate

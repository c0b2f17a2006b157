"""
Data schemas for the range-estimate engine.

Defines:
- WorkItem / WorkItemCalculated: a two-point (best, worst) estimate and its derived metrics
- EstimationConstants: the tunable parameters of the estimation model
- PortfolioResults: the aggregate forecast for a set of work items
- StaffingRow and the StaffingCell variant (HoursCell | AnnotationCell)
- Computed staffing, coordination and gap structures
- SessionState: everything a session file carries
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Union


@dataclass
class WorkItem:
    """
    A single unit of work estimated as a best case / worst case pair of hours.

    The invariant worst_case_hours >= best_case_hours >= 0 is checked by
    estimation.validate_work_item rather than here, so that invalid input
    can still be represented and reported back to the caller.

    multiplier stands for N identical, independent repeats of the item.
    """

    id: int
    best_case_hours: float
    worst_case_hours: float
    title: str = ""
    notes: str = ""
    enabled: bool = True
    multiplier: int = 1
    group_id: Optional[int] = None

    def __post_init__(self) -> None:
        self.best_case_hours = float(self.best_case_hours)
        self.worst_case_hours = float(self.worst_case_hours)
        self.multiplier = int(self.multiplier)


@dataclass
class WorkItemCalculated(WorkItem):
    """
    A WorkItem plus its single-instance expected hours, spread and variance.

    Never persisted; always recomputed from the source item.
    """

    expected_hours: float = 0.0
    range_spread_hours: float = 0.0
    variance: float = 0.0

    def _weighted(self, value: float) -> float:
        return self.multiplier * value if self.enabled else 0.0

    @property
    def weighted_expected_hours(self) -> float:
        return self._weighted(self.expected_hours)

    @property
    def weighted_variance(self) -> float:
        return self._weighted(self.variance)

    @property
    def weighted_range_spread(self) -> float:
        # Linear sum of N copies; only meaningful for the naive comparison
        return self._weighted(self.range_spread_hours)


@dataclass(frozen=True)
class EstimationConstants:
    """
    Tunable parameters of the estimation model.

    expected_case_position:   where the expected value sits between best (0) and worst (1)
    range_spread_divisor:     how many spreads fit into the best..worst range
    billable_hours_per_week:  productive hours per person per week
    duration_scaling_power:   k in duration = k * staff_weeks^(1/3)
    coordination_cost_per_pair: hours per communication channel per active week
    """

    expected_case_position: float = 0.4
    range_spread_divisor: float = 2.6
    billable_hours_per_week: float = 36.0
    duration_scaling_power: float = 3.5
    coordination_cost_per_pair: float = 1.0

    def replace(self, **changes: float) -> "EstimationConstants":
        return replace(self, **changes)


# Calibrated so the ten-item worked example lands on an 11 week duration.
DEFAULT_CONSTANTS = EstimationConstants()


@dataclass
class PortfolioResults:
    total_expected_hours: float = 0.0
    total_variance: float = 0.0
    portfolio_range_spread: float = 0.0
    total_effort_hours: float = 0.0
    total_effort_staff_weeks: float = 0.0
    duration_weeks: int = 0

    @property
    def implied_team_size(self) -> int:
        """People needed to fit the effort into the duration, rounded up."""
        if self.duration_weeks <= 0:
            return 0
        return math.ceil(self.total_effort_staff_weeks / self.duration_weeks)


# --- Staffing ----------------------------------------------------------------


@dataclass(frozen=True)
class HoursCell:
    """A staffing cell holding billable hours. text keeps the original spelling."""

    hours: float
    text: str = ""


@dataclass(frozen=True)
class AnnotationCell:
    """A staffing cell such as "PTO" or "PI Plan": zero billable hours, label kept."""

    label: str


StaffingCell = Union[HoursCell, AnnotationCell]


@dataclass
class StaffingRow:
    """
    One line of the staffing grid: a discipline, its rate and weekly hours.

    cells are strings at the boundary; see staffing.parse_cell for the
    typed view.
    """

    id: int
    discipline: str = ""
    hourly_rate: float = 0.0
    cells: List[str] = field(default_factory=list)
    enabled: bool = True
    multiplier: int = 1


@dataclass
class StaffingRowComputed:
    total_hours: float = 0.0
    total_cost: float = 0.0


@dataclass
class StaffingGridComputed:
    row_totals: List[StaffingRowComputed] = field(default_factory=list)
    week_totals: List[float] = field(default_factory=list)
    grand_total_hours: float = 0.0
    grand_total_cost: float = 0.0
    # grand_total_cost rounded up to the budgeting increment
    grand_total_cost_rounded: float = 0.0


@dataclass
class StaffingComparison:
    estimated_effort_hours: float
    staffed_hours: float
    delta_hours: float
    delta_percent: float


@dataclass
class StaffingState:
    rows: List[StaffingRow] = field(default_factory=list)
    week_count: int = 0
    next_row_id: int = 1


# --- Coordination --------------------------------------------------------------


class BufferStatus(str, Enum):
    BUFFERED = "buffered"
    TIGHT = "tight"
    SHORT = "short"


@dataclass
class CoordinationResult:
    active_people_per_week: List[int] = field(default_factory=list)
    coordination_hours_per_week: List[float] = field(default_factory=list)
    total_coordination_hours: float = 0.0
    average_active_people: float = 0.0


@dataclass
class GapDecomposition:
    """
    Where the staffed hours go: base effort, coordination tax and leftover slack.
    """

    base_effort_hours: float
    coordination_overhead_hours: float
    adjusted_effort_hours: float
    staffed_hours: float
    effective_productive_hours: float
    remaining_buffer_hours: float
    buffer_status: BufferStatus


# --- Session -------------------------------------------------------------------


@dataclass
class Group:
    id: int
    name: str = ""
    collapsed: bool = False


@dataclass
class SessionState:
    """Everything a session file carries. Owned by the caller."""

    work_items: List[WorkItem] = field(default_factory=list)
    constants: EstimationConstants = DEFAULT_CONSTANTS
    next_id: int = 1
    staffing: StaffingState = field(default_factory=StaffingState)
    groups: List[Group] = field(default_factory=list)
    next_group_id: int = 1

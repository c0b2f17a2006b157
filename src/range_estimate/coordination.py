"""
Coordination overhead from the staffing grid (Brooks's Law).

N people working in the same week open N * (N - 1) / 2 communication
channels, and each channel costs cost_per_pair hours that week. This
module totals that cost and reconciles it against the estimate.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from .schema import BufferStatus, CoordinationResult, GapDecomposition, StaffingRow
from .staffing import parse_cell_hours

logger = logging.getLogger(__name__)

TIGHT_BUFFER_FRACTION = 0.05


def get_active_people_per_week(rows: Sequence[StaffingRow], week_index: int) -> int:
    """
    People with productive hours in one week.

    Enabled rows whose cell parses to more than 0 hours, weighted by
    multiplier. Empty cells, zeros and annotations ("PTO") are inactive.
    """
    active = 0
    for row in rows:
        if not row.enabled or week_index >= len(row.cells):
            continue
        if parse_cell_hours(row.cells[week_index]) > 0:
            active += row.multiplier
    return active


def calculate_weekly_coordination(active_people: int, cost_per_pair: float) -> float:
    if active_people <= 1:
        return 0.0
    pairs = active_people * (active_people - 1) / 2
    return pairs * cost_per_pair


def calculate_coordination(
    rows: Sequence[StaffingRow],
    week_count: int,
    cost_per_pair: float,
    implied_team_size: int = 0,
) -> CoordinationResult:
    """
    Coordination hours for every week of the plan and their total.

    The cube-root duration already prices in coordination for the implied
    team size, so only channels beyond that team are charged each week.
    The default of 0 charges every channel.
    """
    baked_in = calculate_weekly_coordination(implied_team_size, cost_per_pair)

    active_people_per_week = [
        get_active_people_per_week(rows, w) for w in range(week_count)
    ]
    coordination_hours_per_week = [
        max(0.0, calculate_weekly_coordination(n, cost_per_pair) - baked_in)
        for n in active_people_per_week
    ]

    busy_weeks = [n for n in active_people_per_week if n > 0]
    average_active_people = sum(busy_weeks) / len(busy_weeks) if busy_weeks else 0.0

    return CoordinationResult(
        active_people_per_week=active_people_per_week,
        coordination_hours_per_week=coordination_hours_per_week,
        total_coordination_hours=sum(coordination_hours_per_week),
        average_active_people=average_active_people,
    )


def classify_buffer(
    remaining_buffer_hours: float,
    adjusted_effort_hours: float,
    tight_fraction: float = TIGHT_BUFFER_FRACTION,
) -> BufferStatus:
    if remaining_buffer_hours < 0:
        return BufferStatus.SHORT
    if remaining_buffer_hours < tight_fraction * adjusted_effort_hours:
        return BufferStatus.TIGHT
    return BufferStatus.BUFFERED


def calculate_gap_decomposition(
    base_effort_hours: float,
    rows: Sequence[StaffingRow],
    week_count: int,
    cost_per_pair: float,
    staffed_hours: float,
    implied_team_size: int = 0,
    tight_fraction: float = TIGHT_BUFFER_FRACTION,
    coordination: Optional[CoordinationResult] = None,
) -> GapDecomposition:
    """
    Split staffed hours into base effort, coordination tax and leftover slack.

    adjusted_effort = base_effort + coordination overhead
    remaining_buffer = staffed - adjusted_effort
    buffer_status: short below 0, tight below tight_fraction of the
    adjusted effort, buffered otherwise.

    Pass a coordination result already computed for the same grid to skip
    recomputing it; rows, week_count, cost_per_pair and implied_team_size
    are then not read.
    """
    if coordination is None:
        coordination = calculate_coordination(
            rows, week_count, cost_per_pair, implied_team_size
        )
    overhead = coordination.total_coordination_hours
    adjusted_effort_hours = base_effort_hours + overhead
    remaining_buffer_hours = staffed_hours - adjusted_effort_hours
    status = classify_buffer(remaining_buffer_hours, adjusted_effort_hours, tight_fraction)

    logger.debug(
        "Gap: base=%.1fh coordination=%.1fh staffed=%.1fh buffer=%.1fh (%s)",
        base_effort_hours,
        overhead,
        staffed_hours,
        remaining_buffer_hours,
        status.value,
    )

    return GapDecomposition(
        base_effort_hours=base_effort_hours,
        coordination_overhead_hours=overhead,
        adjusted_effort_hours=adjusted_effort_hours,
        staffed_hours=staffed_hours,
        effective_productive_hours=staffed_hours,
        remaining_buffer_hours=remaining_buffer_hours,
        buffer_status=status,
    )

"""
Pure math for two-point estimation.

No I/O. Just:
- Per-item expected hours, range spread and variance
- Validation of work items and constants
- Portfolio aggregation (root-sum-of-squares) and cube-root duration scaling
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict
from typing import Dict, Iterable, List, Optional, Sequence

from .errors import ValidationError
from .schema import (
    EstimationConstants,
    PortfolioResults,
    WorkItem,
    WorkItemCalculated,
)

logger = logging.getLogger(__name__)


# --- Validation ----------------------------------------------------------------


def validate_work_item(item: WorkItem) -> Optional[str]:
    """
    Return None if the item is valid, else a message for the first broken rule.

    best == worst is valid (a zero-range item).
    """
    if not math.isfinite(item.best_case_hours):
        return "Best case hours must be a finite number"
    if not math.isfinite(item.worst_case_hours):
        return "Worst case hours must be a finite number"
    if item.best_case_hours < 0:
        return "Best case hours cannot be negative"
    if item.worst_case_hours < item.best_case_hours:
        return "Worst case hours cannot be less than best case hours"
    if item.multiplier < 1:
        return "Multiplier must be at least 1"
    return None


def validate_constants(constants: EstimationConstants) -> Optional[str]:
    for name, value in asdict(constants).items():
        if not math.isfinite(value):
            return f"{name} must be a finite number"
    if not 0 <= constants.expected_case_position <= 1:
        return "Expected case position must be between 0 and 1"
    if constants.range_spread_divisor <= 0:
        return "Range spread divisor must be greater than 0"
    if constants.billable_hours_per_week <= 0:
        return "Billable hours per week must be greater than 0"
    if constants.duration_scaling_power <= 0:
        return "Duration scaling power must be greater than 0"
    if constants.coordination_cost_per_pair < 0:
        return "Coordination cost per pair cannot be negative"
    return None


# --- Individual work items -------------------------------------------------------


def calculate_expected_hours(
    best_case_hours: float,
    worst_case_hours: float,
    expected_case_position: float,
) -> float:
    """
    expected = best + position * (worst - best)

    position 0 gives best, position 1 gives worst.
    """
    return best_case_hours + expected_case_position * (
        worst_case_hours - best_case_hours
    )


def calculate_range_spread(
    best_case_hours: float,
    worst_case_hours: float,
    range_spread_divisor: float,
) -> float:
    """range_spread = (worst - best) / divisor. Zero for a zero-range item."""
    return (worst_case_hours - best_case_hours) / range_spread_divisor


def calculate_variance(range_spread_hours: float) -> float:
    return range_spread_hours * range_spread_hours


def calculate_work_item(
    item: WorkItem,
    constants: EstimationConstants,
) -> WorkItemCalculated:
    """
    Calculate single-instance metrics for one item.

    The returned values ignore multiplier and enabled; the weighted_*
    properties give the item's share of a portfolio sum.
    """
    expected_hours = calculate_expected_hours(
        item.best_case_hours,
        item.worst_case_hours,
        constants.expected_case_position,
    )
    range_spread_hours = calculate_range_spread(
        item.best_case_hours,
        item.worst_case_hours,
        constants.range_spread_divisor,
    )
    return WorkItemCalculated(
        id=item.id,
        best_case_hours=item.best_case_hours,
        worst_case_hours=item.worst_case_hours,
        title=item.title,
        notes=item.notes,
        enabled=item.enabled,
        multiplier=item.multiplier,
        group_id=item.group_id,
        expected_hours=expected_hours,
        range_spread_hours=range_spread_hours,
        variance=calculate_variance(range_spread_hours),
    )


def calculate_work_items(
    items: Iterable[WorkItem],
    constants: EstimationConstants,
) -> List[WorkItemCalculated]:
    return [calculate_work_item(item, constants) for item in items]


def weighted_contribution(item: WorkItem, value: float) -> float:
    """
    An item's contribution to a portfolio sum: multiplier * value, or 0 if disabled.

    A multiplier of N models N independent copies, so it is applied to
    expected hours and to variance alike (never to the spread itself).
    """
    if not item.enabled:
        return 0.0
    return item.multiplier * value


# --- Portfolio aggregation -------------------------------------------------------


def calculate_total_expected_hours(items: Iterable[WorkItemCalculated]) -> float:
    return sum(weighted_contribution(i, i.expected_hours) for i in items)


def calculate_total_variance(items: Iterable[WorkItemCalculated]) -> float:
    return sum(weighted_contribution(i, i.variance) for i in items)


def calculate_portfolio_range_spread(total_variance: float) -> float:
    """Variances add, spreads do not: sigma = sqrt(sum of variances)."""
    return math.sqrt(total_variance)


def calculate_total_effort_hours(
    total_expected_hours: float,
    portfolio_range_spread: float,
) -> float:
    """One sigma above expected: the planning number."""
    return total_expected_hours + portfolio_range_spread


def calculate_total_effort_staff_weeks(
    total_effort_hours: float,
    billable_hours_per_week: float,
) -> float:
    return total_effort_hours / billable_hours_per_week


def calculate_duration_weeks(
    total_effort_staff_weeks: float,
    duration_scaling_power: float,
) -> int:
    """
    Calendar weeks: min(ceil(k * E^(1/3)), ceil(E)).

    Cube-root scaling, capped at the time one person would need working
    through the effort sequentially.
    """
    if total_effort_staff_weeks <= 0:
        return 0
    scaled = duration_scaling_power * total_effort_staff_weeks ** (1.0 / 3.0)
    single_person = math.ceil(total_effort_staff_weeks)
    return min(math.ceil(scaled), single_person)


def _check_inputs(
    items: Sequence[WorkItem],
    constants: EstimationConstants,
) -> None:
    error = validate_constants(constants)
    if error:
        raise ValidationError(f"Invalid constants: {error}")
    for item in items:
        error = validate_work_item(item)
        if error:
            raise ValidationError(f"Invalid work item {item.id}: {error}")


def calculate_portfolio(
    items: Sequence[WorkItem],
    constants: EstimationConstants,
) -> PortfolioResults:
    """
    Aggregate work items into a portfolio forecast.

    Constants are validated first, then every item in input order (disabled
    ones included). The first failure raises ValidationError; no partial
    result is returned. Disabled items contribute nothing. An empty or
    all-disabled portfolio gives all zeros.
    """
    _check_inputs(items, constants)

    calculated = calculate_work_items(items, constants)

    total_expected_hours = calculate_total_expected_hours(calculated)
    total_variance = calculate_total_variance(calculated)
    portfolio_range_spread = calculate_portfolio_range_spread(total_variance)

    total_effort_hours = calculate_total_effort_hours(
        total_expected_hours,
        portfolio_range_spread,
    )
    total_effort_staff_weeks = calculate_total_effort_staff_weeks(
        total_effort_hours,
        constants.billable_hours_per_week,
    )
    if not math.isfinite(total_effort_staff_weeks):
        raise ValidationError("Portfolio totals are too large to compute")
    duration_weeks = calculate_duration_weeks(
        total_effort_staff_weeks,
        constants.duration_scaling_power,
    )

    logger.debug(
        "Portfolio of %d items: expected=%.2fh sigma=%.2fh effort=%.2fh duration=%dw",
        len(items),
        total_expected_hours,
        portfolio_range_spread,
        total_effort_hours,
        duration_weeks,
    )

    return PortfolioResults(
        total_expected_hours=total_expected_hours,
        total_variance=total_variance,
        portfolio_range_spread=portfolio_range_spread,
        total_effort_hours=total_effort_hours,
        total_effort_staff_weeks=total_effort_staff_weeks,
        duration_weeks=duration_weeks,
    )


def summarize_by_group(
    items: Sequence[WorkItem],
    constants: EstimationConstants,
) -> Dict[Optional[int], Dict[str, float]]:
    """
    Expected hours, variance and sigma per group_id (None for ungrouped items).

    Uses the same weighting as calculate_portfolio. Group sigmas do not add
    up to the portfolio sigma; their variances do.
    """
    _check_inputs(items, constants)

    summary: Dict[Optional[int], Dict[str, float]] = {}
    for calc in calculate_work_items(items, constants):
        entry = summary.setdefault(
            calc.group_id,
            {"expected_hours": 0.0, "variance": 0.0, "range_spread_hours": 0.0},
        )
        entry["expected_hours"] += weighted_contribution(calc, calc.expected_hours)
        entry["variance"] += weighted_contribution(calc, calc.variance)

    for entry in summary.values():
        entry["range_spread_hours"] = math.sqrt(entry["variance"])
    return summary

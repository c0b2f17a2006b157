"""
Chart-ready data built from estimation results.

Presentation-agnostic: nothing here knows about SVG or a UI toolkit.
None / empty inputs give None / empty outputs.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .gaussian import CurvePoint, confidence_at, generate_gaussian_curve_points
from .schema import EstimationConstants, PortfolioResults, WorkItemCalculated

MIN_SEGMENT_PCT = 0.03
OTHER_SEGMENT_ID = -1
CURVE_SIGMAS = 3.5


@dataclass
class DistributionMarker:
    x: float
    label: str
    confidence: str


@dataclass
class DistributionCurveData:
    mean: float
    sigma: float
    markers: List[DistributionMarker]
    x_min: float
    x_max: float
    points: List[CurvePoint] = field(default_factory=list)


@dataclass
class UncertaintyBarItem:
    id: int
    title: str
    best: float
    worst: float
    expected: float
    variance: float
    variance_pct: float


@dataclass
class RiskSegment:
    id: int
    title: str
    variance: float
    pct: float
    start_angle: float = 0.0
    end_angle: float = 0.0


@dataclass
class DiversificationData:
    naive_sum_sigma: float
    actual_portfolio_sigma: float
    benefit_pct: float


@dataclass
class DurationPoint:
    effort: float
    duration: float


@dataclass
class CurrentDurationPoint:
    effort: float
    duration: float
    duration_ceiled: int


@dataclass
class DurationCurveData:
    curve_points: List[DurationPoint]
    current_point: CurrentDurationPoint
    x_max: float
    y_max: float


def _display_title(item: WorkItemCalculated) -> str:
    return item.title or f"Item {item.id}"


# --- Distribution curve ----------------------------------------------------------


def compute_distribution_data(
    results: Optional[PortfolioResults],
) -> Optional[DistributionCurveData]:
    """
    Mean, sigma and p50 / p84 / p97 markers of the portfolio distribution.

    Marker confidence comes from the normal CDF. With zero sigma the
    portfolio is a point mass: all three markers sit on the mean, each
    with confidence "100%" (the whole mass is at or below it), and the
    curve has no points.
    """
    if results is None:
        return None

    mean = results.total_expected_hours
    sigma = results.portfolio_range_spread

    markers = []
    for k in (0, 1, 2):
        x = mean + k * sigma
        markers.append(
            DistributionMarker(
                x=x,
                label=f"{x:.0f}h",
                confidence=confidence_at(x, mean, sigma),
            )
        )

    return DistributionCurveData(
        mean=mean,
        sigma=sigma,
        markers=markers,
        x_min=mean - CURVE_SIGMAS * sigma,
        x_max=mean + CURVE_SIGMAS * sigma,
        points=generate_gaussian_curve_points(mean, sigma, num_sigma=CURVE_SIGMAS),
    )


# --- Uncertainty bars --------------------------------------------------------------


def compute_uncertainty_bars(
    items: Sequence[WorkItemCalculated],
    total_variance: float,
    limit: Optional[int] = None,
) -> List[UncertaintyBarItem]:
    """
    Rank enabled, non-zero-range items by their share of portfolio variance.

    Largest share first: the item to investigate first heads the list.
    expected and variance are multiplier-weighted contributions; best and
    worst stay per instance, as entered.
    """
    if total_variance <= 0:
        return []

    bars = []
    for item in items:
        if not item.enabled or item.worst_case_hours <= item.best_case_hours:
            continue
        variance = item.weighted_variance
        bars.append(
            UncertaintyBarItem(
                id=item.id,
                title=_display_title(item),
                best=item.best_case_hours,
                worst=item.worst_case_hours,
                expected=item.weighted_expected_hours,
                variance=variance,
                variance_pct=variance / total_variance * 100,
            )
        )

    bars.sort(key=lambda b: b.variance_pct, reverse=True)
    if limit is not None:
        bars = bars[:limit]
    return bars


# --- Risk donut ----------------------------------------------------------------------


def compute_risk_segments(
    bars: Sequence[UncertaintyBarItem],
    total_variance: float,
    min_segment_pct: float = MIN_SEGMENT_PCT,
) -> List[RiskSegment]:
    """
    Donut segments as fractions of total variance, largest first.

    Segments under min_segment_pct are folded into a single "Other" segment
    at the end. Angles start at the top of the circle (-pi/2) and run
    clockwise; pct values sum to 1 when bars cover the whole variance.
    """
    if total_variance <= 0:
        return []

    raw = sorted(
        (
            RiskSegment(
                id=bar.id,
                title=bar.title,
                variance=bar.variance,
                pct=bar.variance / total_variance,
            )
            for bar in bars
            if bar.variance > 0
        ),
        key=lambda s: s.pct,
        reverse=True,
    )

    segments = [s for s in raw if s.pct >= min_segment_pct]
    small = [s for s in raw if s.pct < min_segment_pct]
    if small:
        segments.append(
            RiskSegment(
                id=OTHER_SEGMENT_ID,
                title="Other",
                variance=sum(s.variance for s in small),
                pct=sum(s.pct for s in small),
            )
        )

    angle = -math.pi / 2
    for seg in segments:
        seg.start_angle = angle
        angle += seg.pct * 2 * math.pi
        seg.end_angle = angle
    return segments


# --- Diversification -----------------------------------------------------------------


def compute_diversification_data(
    items: Sequence[WorkItemCalculated],
    results: PortfolioResults,
) -> DiversificationData:
    """
    Naive linear sum of spreads vs the root-sum-of-squares portfolio sigma.

    A multiplied item counts its spread N times in the naive sum, while the
    portfolio sigma only grows by sqrt(N).
    """
    naive_sum_sigma = sum(item.weighted_range_spread for item in items)
    actual = results.portfolio_range_spread
    benefit_pct = (1 - actual / naive_sum_sigma) * 100 if naive_sum_sigma > 0 else 0.0
    return DiversificationData(
        naive_sum_sigma=naive_sum_sigma,
        actual_portfolio_sigma=actual,
        benefit_pct=benefit_pct,
    )


# --- Duration curve --------------------------------------------------------------------


def _continuous_duration(effort: float, power: float) -> float:
    return min(power * max(effort, 0.0) ** (1.0 / 3.0), effort)


def compute_duration_curve_data(
    results: PortfolioResults,
    constants: EstimationConstants,
    num_points: int = 60,
) -> Optional[DurationCurveData]:
    """
    Sample duration(E) = min(k * E^(1/3), E) from 0 to max(2 * E_now, 10).

    current_point carries the un-rounded duration at today's effort and the
    whole-week duration from the portfolio results.
    """
    effort = results.total_effort_staff_weeks
    if effort <= 0:
        return None

    k = constants.duration_scaling_power
    x_max = max(effort * 2, 10.0)
    curve_points = [
        DurationPoint(effort=x, duration=_continuous_duration(x, k))
        for x in (i / num_points * x_max for i in range(num_points + 1))
    ]

    return DurationCurveData(
        curve_points=curve_points,
        current_point=CurrentDurationPoint(
            effort=effort,
            duration=_continuous_duration(effort, k),
            duration_ceiled=results.duration_weeks,
        ),
        x_max=x_max,
        y_max=_continuous_duration(x_max, k),
    )

"""
Normal-distribution primitives used by the visualization builders.

A sigma of zero or less is treated everywhere as a point mass at the mean,
so degenerate portfolios never push NaN into chart data.
"""

from __future__ import annotations

import math
from typing import List, NamedTuple

SQRT_2PI = math.sqrt(2.0 * math.pi)

# Abramowitz & Stegun 26.2.17
_P = 0.2316419
_B = (0.319381530, -0.356563782, 1.781477937, -1.821255978, 1.330274429)


class CurvePoint(NamedTuple):
    x: float
    y: float


def _is_point_mass(sigma: float) -> bool:
    return sigma <= 0


def standard_normal_pdf(z: float) -> float:
    """phi(z) = e^(-z^2/2) / sqrt(2 pi)"""
    return math.exp(-0.5 * z * z) / SQRT_2PI


def normal_pdf(x: float, mean: float, sigma: float) -> float:
    if _is_point_mass(sigma):
        return math.inf if x == mean else 0.0
    return standard_normal_pdf((x - mean) / sigma) / sigma


def standard_normal_cdf(z: float) -> float:
    """
    Standard normal CDF, Abramowitz & Stegun 26.2.17, |error| < 7.5e-8.

    Exactly 0 below -8, exactly 1 above 8 and exactly 0.5 at 0. The
    approximation is evaluated on |z| and mirrored, so CDF(-z) + CDF(z) == 1.
    """
    if z < -8:
        return 0.0
    if z > 8:
        return 1.0
    if z == 0:
        return 0.5

    abs_z = abs(z)
    t = 1.0 / (1.0 + _P * abs_z)
    poly = 0.0
    for b in reversed(_B):
        poly = (poly + b) * t
    upper_tail = standard_normal_pdf(abs_z) * poly

    return upper_tail if z < 0 else 1.0 - upper_tail


def normal_cdf(x: float, mean: float, sigma: float) -> float:
    if _is_point_mass(sigma):
        return 1.0 if x >= mean else 0.0
    return standard_normal_cdf((x - mean) / sigma)


def confidence_at(x: float, mean: float, sigma: float) -> str:
    """P(X <= x) as a whole-percent label rounded down, e.g. "84%" at one sigma."""
    return f"{math.floor(normal_cdf(x, mean, sigma) * 100)}%"


def generate_gaussian_curve_points(
    mean: float,
    sigma: float,
    num_points: int = 120,
    num_sigma: float = 3.5,
) -> List[CurvePoint]:
    """
    Evenly spaced (x, pdf(x)) samples over mean +/- num_sigma * sigma.

    Empty for a point mass. Points are placed symmetrically about the mean,
    so points[i].y == points[n - 1 - i].y up to rounding.
    """
    if _is_point_mass(sigma) or num_points <= 0:
        return []
    if num_points == 1:
        return [CurvePoint(mean, normal_pdf(mean, mean, sigma))]

    half_width = num_sigma * sigma
    step = 2.0 * half_width / (num_points - 1)

    points: List[CurvePoint] = []
    for i in range(num_points):
        x = mean - half_width + i * step
        points.append(CurvePoint(x, normal_pdf(x, mean, sigma)))
    return points

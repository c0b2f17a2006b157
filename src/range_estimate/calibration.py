"""
Calibration of the cube-root duration model against past projects.

Responsibilities:
- Fit duration_scaling_power (k) from historical (staff_weeks, duration) pairs.
- Evaluate a given k on a dataset (MAE, RMSE, etc.).
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence

import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class ProjectActual:
    """A finished project: how much effort it took and how long it ran."""

    staff_weeks: float
    duration_weeks: float
    name: str = ""

    def __post_init__(self) -> None:
        self.staff_weeks = float(self.staff_weeks)
        self.duration_weeks = float(self.duration_weeks)


def _usable(history: Iterable[ProjectActual]) -> List[ProjectActual]:
    # Projects with no effort or no duration carry no information about k
    return [p for p in history if p.staff_weeks > 0 and p.duration_weeks > 0]


def fit_duration_scaling_power(history: Sequence[ProjectActual]) -> float:
    """
    Fit k in duration ~= k * staff_weeks^(1/3) by ordinary least squares.

    The single-person cap is left out of the fit: it only binds for very
    small projects, which say little about k.
    """
    usable = _usable(history)
    if not usable:
        raise ValueError("No valid projects for calibration (all had zero effort or duration).")

    X = np.cbrt(np.asarray([p.staff_weeks for p in usable], dtype=float)).reshape(-1, 1)
    y = np.asarray([p.duration_weeks for p in usable], dtype=float)

    beta, *_ = np.linalg.lstsq(X, y, rcond=None)
    k = float(beta[0])
    logger.info("Fitted duration scaling power %.3f from %d projects", k, len(usable))
    return k


def evaluate_duration_model(
    history: Iterable[ProjectActual],
    duration_scaling_power: float,
) -> Dict[str, float]:
    """
    Evaluate k = duration_scaling_power on a dataset of projects.

    Returns a dict with:
    - n:     number of projects used
    - mae:   mean absolute error (weeks)
    - mse:   mean squared error
    - rmse:  root mean squared error
    - mape:  mean absolute percentage error, as a fraction
    """
    usable = _usable(history)
    if not usable:
        raise ValueError("No valid projects for evaluation (all had zero effort or duration).")

    effort = np.asarray([p.staff_weeks for p in usable], dtype=float)
    y_true = np.asarray([p.duration_weeks for p in usable], dtype=float)
    y_pred = np.minimum(duration_scaling_power * np.cbrt(effort), effort)

    errors = y_pred - y_true
    abs_errors = np.abs(errors)
    mse = float((errors**2).mean())

    return {
        "n": float(len(usable)),
        "mae": float(abs_errors.mean()),
        "mse": mse,
        "rmse": float(np.sqrt(mse)),
        "mape": float((abs_errors / y_true).mean()),
    }


def load_project_actuals_from_csv(path: str) -> List[ProjectActual]:
    """
    Load past projects from a CSV file.

    Required columns: staff_weeks, duration_weeks. Optional: name.
    Rows with missing or non-numeric values are skipped.
    """
    projects: List[ProjectActual] = []
    with open(path, mode="r", newline="", encoding="utf-8") as f:
        for row in csv.DictReader(f):
            try:
                projects.append(
                    ProjectActual(
                        staff_weeks=row["staff_weeks"],
                        duration_weeks=row["duration_weeks"],
                        name=row.get("name") or "",
                    )
                )
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping unreadable project row: %r", row)
    return projects

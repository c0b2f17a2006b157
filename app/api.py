"""
FastAPI app for the range-estimate engine.

Endpoints:
- POST /portfolio
- POST /staffing
- POST /gap
- POST /insights
- POST /session/import

Every endpoint is a thin wrapper over the pure engine functions; nothing
is stored between requests.
"""

from __future__ import annotations

import sys
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional

# --- Make src/ importable ----------------------------------------------------

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel

from range_estimate.config import get_config
from range_estimate.coordination import calculate_coordination, calculate_gap_decomposition
from range_estimate.data_io import import_session, session_to_dict
from range_estimate.errors import EstimationError
from range_estimate.estimation import calculate_portfolio, calculate_work_items
from range_estimate.schema import EstimationConstants, StaffingRow, WorkItem
from range_estimate.staffing import calculate_staffing_comparison, calculate_staffing_grid
from range_estimate.visualization import (
    compute_distribution_data,
    compute_diversification_data,
    compute_duration_curve_data,
    compute_risk_segments,
    compute_uncertainty_bars,
)

app = FastAPI(title="Range Estimate API")


# --- Request / Response schemas ----------------------------------------------


class WorkItemPayload(BaseModel):
    id: int
    best_case_hours: float
    worst_case_hours: float
    title: str = ""
    notes: str = ""
    enabled: bool = True
    multiplier: int = 1
    group_id: Optional[int] = None


class ConstantsPayload(BaseModel):
    """Any field left out falls back to the configured default."""

    expected_case_position: Optional[float] = None
    range_spread_divisor: Optional[float] = None
    billable_hours_per_week: Optional[float] = None
    duration_scaling_power: Optional[float] = None
    coordination_cost_per_pair: Optional[float] = None


class StaffingRowPayload(BaseModel):
    id: int
    discipline: str = ""
    hourly_rate: float = 0.0
    cells: List[str] = []
    enabled: bool = True
    multiplier: int = 1


class PortfolioRequest(BaseModel):
    work_items: List[WorkItemPayload]
    constants: Optional[ConstantsPayload] = None


class StaffingRequest(BaseModel):
    rows: List[StaffingRowPayload]
    week_count: int
    estimated_effort_hours: Optional[float] = None


class GapRequest(BaseModel):
    base_effort_hours: float
    rows: List[StaffingRowPayload]
    week_count: int
    cost_per_pair: Optional[float] = None
    staffed_hours: Optional[float] = None
    implied_team_size: int = 0


class PortfolioResponse(BaseModel):
    total_expected_hours: float
    total_variance: float
    portfolio_range_spread: float
    total_effort_hours: float
    total_effort_staff_weeks: float
    duration_weeks: int
    implied_team_size: int


# --- Helpers -----------------------------------------------------------------


def _constants(payload: Optional[ConstantsPayload]) -> EstimationConstants:
    base = get_config().estimation_constants()
    if payload is None:
        return base
    overrides = {k: v for k, v in payload.model_dump().items() if v is not None}
    return base.replace(**overrides)


def _work_items(payloads: List[WorkItemPayload]) -> List[WorkItem]:
    return [WorkItem(**p.model_dump()) for p in payloads]


def _rows(payloads: List[StaffingRowPayload]) -> List[StaffingRow]:
    return [StaffingRow(**p.model_dump()) for p in payloads]


def _portfolio_response(work_items: List[WorkItem], constants: EstimationConstants) -> PortfolioResponse:
    try:
        results = calculate_portfolio(work_items, constants)
    except EstimationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return PortfolioResponse(
        implied_team_size=results.implied_team_size,
        **asdict(results),
    )


# --- Endpoints ---------------------------------------------------------------


@app.post("/portfolio", response_model=PortfolioResponse)
def portfolio(payload: PortfolioRequest) -> PortfolioResponse:
    """
    Aggregate work items into a portfolio forecast.

    Body example:
    {
      "work_items": [
        {"id": 1, "title": "Login page", "best_case_hours": 80, "worst_case_hours": 120}
      ],
      "constants": {"expected_case_position": 0.4}
    }
    """
    return _portfolio_response(_work_items(payload.work_items), _constants(payload.constants))


@app.post("/staffing")
def staffing(payload: StaffingRequest) -> dict:
    """
    Row, week and grand totals of a staffing grid, optionally compared
    with an estimated effort.
    """
    cfg = get_config()
    try:
        grid = calculate_staffing_grid(
            _rows(payload.rows), payload.week_count, cfg.cost_rounding_increment
        )
    except EstimationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    comparison = None
    if payload.estimated_effort_hours is not None:
        comparison = asdict(
            calculate_staffing_comparison(
                payload.estimated_effort_hours, grid.grand_total_hours
            )
        )
    return {"grid": asdict(grid), "comparison": comparison}


@app.post("/gap")
def gap(payload: GapRequest) -> dict:
    """
    Coordination overhead and remaining buffer for a staffing plan.

    staffed_hours defaults to the grid's grand total; cost_per_pair to the
    configured coordination cost.
    """
    cfg = get_config()
    rows = _rows(payload.rows)
    cost_per_pair = (
        payload.cost_per_pair
        if payload.cost_per_pair is not None
        else cfg.coordination_cost_per_pair
    )
    if cost_per_pair < 0:
        raise HTTPException(
            status_code=422, detail="Coordination cost per pair cannot be negative"
        )

    try:
        grid = calculate_staffing_grid(rows, payload.week_count, cfg.cost_rounding_increment)
    except EstimationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    staffed = (
        payload.staffed_hours
        if payload.staffed_hours is not None
        else grid.grand_total_hours
    )
    coordination = calculate_coordination(
        rows, payload.week_count, cost_per_pair, payload.implied_team_size
    )
    decomposition = calculate_gap_decomposition(
        payload.base_effort_hours,
        rows,
        payload.week_count,
        cost_per_pair,
        staffed,
        implied_team_size=payload.implied_team_size,
        tight_fraction=cfg.tight_buffer_fraction,
        coordination=coordination,
    )
    return {"gap": asdict(decomposition), "coordination": asdict(coordination)}


@app.post("/insights")
def insights(payload: PortfolioRequest) -> dict:
    """
    Chart data for a portfolio: distribution curve, uncertainty ranking,
    risk donut, diversification and duration curve.
    """
    constants = _constants(payload.constants)
    work_items = _work_items(payload.work_items)
    try:
        results = calculate_portfolio(work_items, constants)
    except EstimationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    calculated = calculate_work_items(work_items, constants)
    bars = compute_uncertainty_bars(calculated, results.total_variance)

    distribution = compute_distribution_data(results)
    distribution_data = None
    if distribution is not None:
        distribution_data = asdict(distribution)
        distribution_data["points"] = [p._asdict() for p in distribution.points]

    duration_curve = compute_duration_curve_data(results, constants)

    return {
        "distribution": distribution_data,
        "uncertainty_bars": [asdict(b) for b in bars],
        "risk_segments": [
            asdict(s) for s in compute_risk_segments(bars, results.total_variance)
        ],
        "diversification": asdict(compute_diversification_data(calculated, results)),
        "duration_curve": asdict(duration_curve) if duration_curve else None,
    }


@app.post("/session/import")
async def session_import(request: Request) -> dict:
    """
    Validate a session file and return it normalized, with its forecast.

    The body is the exported session JSON as-is.
    """
    body = await request.body()
    try:
        state = import_session(body.decode("utf-8"))
        results = calculate_portfolio(state.work_items, state.constants)
    except (EstimationError, UnicodeDecodeError) as e:
        raise HTTPException(status_code=422, detail=str(e))

    return {
        "state": session_to_dict(state),
        "results": asdict(results),
    }


# Convenience for local dev:
# uvicorn app.api:app --reload
if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.api:app", host="0.0.0.0", port=8000, reload=True)

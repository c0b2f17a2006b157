"""
CLI for the range-estimate engine.

Usage examples:

    # Portfolio forecast for a saved session
    python -m app.cli estimate session.json

    # Staffing grid, comparison with the estimate and coordination gap
    python -m app.cli staffing session.json

    # Seed the staffing grid from the estimate and write the session back
    python -m app.cli init-staffing session.json

    # Fit the duration scaling power from past projects
    python -m app.cli calibrate data/project_actuals.csv
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

# --- Make src/ importable ----------------------------------------------------

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from range_estimate.calibration import (
    evaluate_duration_model,
    fit_duration_scaling_power,
    load_project_actuals_from_csv,
)
from range_estimate.config import get_config
from range_estimate.coordination import calculate_gap_decomposition
from range_estimate.data_io import load_session_file, save_session_file
from range_estimate.errors import EstimationError
from range_estimate.estimation import calculate_portfolio, calculate_work_items
from range_estimate.schema import SessionState, StaffingState
from range_estimate.staffing import (
    calculate_staffing_comparison,
    calculate_staffing_grid,
    create_prepopulated_rows,
)
from range_estimate.visualization import (
    compute_diversification_data,
    compute_uncertainty_bars,
)


def _load(command: str, path: str) -> SessionState:
    session_path = Path(path).resolve()
    if not session_path.exists():
        raise SystemExit(f"[{command}] Session file not found: {session_path}")
    try:
        return load_session_file(str(session_path))
    except EstimationError as e:
        raise SystemExit(f"[{command}] {e}")


# --- Commands ----------------------------------------------------------------


def cmd_estimate(args: argparse.Namespace) -> None:
    """
    Print the portfolio forecast and the riskiest items.
    """
    state = _load("estimate", args.session_path)
    try:
        results = calculate_portfolio(state.work_items, state.constants)
    except EstimationError as e:
        raise SystemExit(f"[estimate] {e}")

    calculated = calculate_work_items(state.work_items, state.constants)
    diversification = compute_diversification_data(calculated, results)

    print(f"[estimate] Work items:        {len(state.work_items)}")
    print(f"[estimate] Expected hours:    {results.total_expected_hours:.1f}")
    print(f"[estimate] Portfolio sigma:   {results.portfolio_range_spread:.1f}")
    print(f"[estimate] Effort (hours):    {results.total_effort_hours:.1f}")
    print(f"[estimate] Effort (staff-wk): {results.total_effort_staff_weeks:.2f}")
    print(f"[estimate] Duration (weeks):  {results.duration_weeks}")
    print(f"[estimate] Implied team size: {results.implied_team_size}")
    print(
        f"[estimate] Diversification:   {diversification.benefit_pct:.1f}% "
        f"(naive sigma {diversification.naive_sum_sigma:.1f}h)"
    )

    bars = compute_uncertainty_bars(calculated, results.total_variance, limit=args.top)
    if bars:
        print()
        print("[estimate] Largest sources of uncertainty:")
        for bar in bars:
            print(f"  {bar.variance_pct:5.1f}%  {bar.title} ({bar.best:g}-{bar.worst:g}h)")


def cmd_staffing(args: argparse.Namespace) -> None:
    """
    Print staffing totals against the estimate, with the coordination gap.
    """
    cfg = get_config()
    state = _load("staffing", args.session_path)
    staffing = state.staffing
    try:
        results = calculate_portfolio(state.work_items, state.constants)
        grid = calculate_staffing_grid(
            staffing.rows, staffing.week_count, cfg.cost_rounding_increment
        )
    except EstimationError as e:
        raise SystemExit(f"[staffing] {e}")

    comparison = calculate_staffing_comparison(
        results.total_effort_hours, grid.grand_total_hours
    )
    gap = calculate_gap_decomposition(
        results.total_effort_hours,
        staffing.rows,
        staffing.week_count,
        state.constants.coordination_cost_per_pair,
        grid.grand_total_hours,
        implied_team_size=results.implied_team_size,
        tight_fraction=cfg.tight_buffer_fraction,
    )

    print(f"[staffing] Rows x weeks:       {len(staffing.rows)} x {staffing.week_count}")
    print(f"[staffing] Staffed hours:      {grid.grand_total_hours:.1f}")
    print(f"[staffing] Cost (rounded up):  {grid.grand_total_cost_rounded:,.0f}")
    print(
        f"[staffing] vs estimate:        {comparison.delta_hours:+.1f}h "
        f"({comparison.delta_percent:+.1f}%)"
    )
    print(f"[staffing] Coordination:       {gap.coordination_overhead_hours:.1f}h")
    print(f"[staffing] Remaining buffer:   {gap.remaining_buffer_hours:+.1f}h")
    print(f"[staffing] Status:             {gap.buffer_status.value}")


def cmd_init_staffing(args: argparse.Namespace) -> None:
    """
    Replace the staffing grid with rows seeded from the estimate.
    """
    state = _load("init-staffing", args.session_path)
    try:
        results = calculate_portfolio(state.work_items, state.constants)
    except EstimationError as e:
        raise SystemExit(f"[init-staffing] {e}")

    week_count = args.weeks or results.duration_weeks
    people = results.implied_team_size
    rows = create_prepopulated_rows(
        1,
        week_count,
        people,
        results.total_effort_hours,
        state.constants.billable_hours_per_week,
    )
    state = replace(
        state,
        staffing=StaffingState(rows=rows, week_count=week_count, next_row_id=1 + people),
    )
    save_session_file(state, str(Path(args.session_path).resolve()))
    print(f"[init-staffing] Seeded {people} people over {week_count} weeks.")


def cmd_calibrate(args: argparse.Namespace) -> None:
    """
    Fit the duration scaling power from a CSV of finished projects.
    """
    csv_path = Path(args.csv_path).resolve()
    if not csv_path.exists():
        raise SystemExit(f"[calibrate] CSV file not found: {csv_path}")

    print(f"[calibrate] Loading projects from {csv_path} ...")
    projects = load_project_actuals_from_csv(str(csv_path))
    print(f"[calibrate] Loaded {len(projects)} projects.")

    try:
        k = fit_duration_scaling_power(projects)
        metrics = evaluate_duration_model(projects, k)
    except ValueError as e:
        raise SystemExit(f"[calibrate] {e}")

    print(f"[calibrate] duration_scaling_power = {k:.3f}")
    print(f"[calibrate] MAE {metrics['mae']:.2f}w, RMSE {metrics['rmse']:.2f}w")


# --- Main --------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Range estimate CLI – portfolio forecast, staffing check, calibration."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    est_p = subparsers.add_parser(
        "estimate",
        help="Portfolio forecast for a session file.",
    )
    est_p.add_argument("session_path", help="Path to a session JSON file.")
    est_p.add_argument(
        "--top",
        type=int,
        default=5,
        help="How many uncertainty contributors to list (default: 5).",
    )
    est_p.set_defaults(func=cmd_estimate)

    st_p = subparsers.add_parser(
        "staffing",
        help="Compare the session's staffing grid with its estimate.",
    )
    st_p.add_argument("session_path", help="Path to a session JSON file.")
    st_p.set_defaults(func=cmd_staffing)

    init_p = subparsers.add_parser(
        "init-staffing",
        help="Seed the staffing grid from the estimate (overwrites the grid).",
    )
    init_p.add_argument("session_path", help="Path to a session JSON file.")
    init_p.add_argument(
        "--weeks",
        type=int,
        default=None,
        help="Week count (default: the estimated duration).",
    )
    init_p.set_defaults(func=cmd_init_staffing)

    cal_p = subparsers.add_parser(
        "calibrate",
        help="Fit duration_scaling_power from finished projects.",
    )
    cal_p.add_argument(
        "csv_path",
        help="CSV with staff_weeks and duration_weeks columns.",
    )
    cal_p.set_defaults(func=cmd_calibrate)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=get_config().log_level)
    args.func(args)


if __name__ == "__main__":
    main()

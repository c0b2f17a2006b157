"""
Pure functions for the weekly staffing grid.

Cells are strings at the boundary: a number of hours, an empty string, or
an annotation such as "PTO" / "PI Plan" / "Holiday" meaning zero billable
hours for that week. parse_cell / format_cell give the typed view.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import List, Optional, Sequence

from .errors import ValidationError
from .schema import (
    AnnotationCell,
    HoursCell,
    StaffingCell,
    StaffingComparison,
    StaffingGridComputed,
    StaffingRow,
    StaffingRowComputed,
)

logger = logging.getLogger(__name__)

COST_ROUNDING_INCREMENT = 5000.0


# --- Cell parsing ----------------------------------------------------------------


def _parse_hours(text: str) -> Optional[float]:
    """Finite, non-negative number or None."""
    try:
        value = float(text)
    except ValueError:
        return None
    if not math.isfinite(value) or value < 0:
        return None
    return value


def parse_cell(cell: str) -> StaffingCell:
    """
    Typed view of a cell string.

    ""      -> HoursCell(0.0, "")
    "36"    -> HoursCell(36.0, "36")
    "PTO"   -> AnnotationCell("PTO")
    """
    trimmed = cell.strip()
    if trimmed == "":
        return HoursCell(0.0, "")
    hours = _parse_hours(trimmed)
    if hours is None:
        return AnnotationCell(trimmed)
    return HoursCell(hours, trimmed)


def format_cell(cell: StaffingCell) -> str:
    if isinstance(cell, AnnotationCell):
        return cell.label
    if cell.text:
        return cell.text
    if cell.hours == 0:
        return ""
    return f"{cell.hours:g}"


def parse_cell_hours(cell: str) -> float:
    """Billable hours in a cell. Empty cells and annotations are 0."""
    parsed = parse_cell(cell)
    if isinstance(parsed, AnnotationCell):
        return 0.0
    return parsed.hours


def is_cell_annotation(cell: str) -> bool:
    return isinstance(parse_cell(cell), AnnotationCell)


def _cell_at(row: StaffingRow, week_index: int) -> str:
    if 0 <= week_index < len(row.cells):
        return row.cells[week_index]
    return ""


# --- Validation ------------------------------------------------------------------


def validate_staffing_row(
    row: StaffingRow,
    week_count: Optional[int] = None,
) -> Optional[str]:
    """
    Return None if the row is valid, else a message for the first broken rule.

    The cell count is only checked when week_count is given.
    """
    if not math.isfinite(row.hourly_rate):
        return "Hourly rate must be a finite number"
    if row.hourly_rate < 0:
        return "Hourly rate cannot be negative"
    if row.multiplier < 1:
        return "Multiplier must be at least 1"
    if week_count is not None and len(row.cells) != week_count:
        return f"Expected {week_count} cells, got {len(row.cells)}"
    return None


# --- Row / grid calculations -------------------------------------------------------


def calculate_row_totals(row: StaffingRow) -> StaffingRowComputed:
    """
    total_hours = multiplier * sum of cell hours; total_cost = hours * rate.

    A disabled row contributes nothing.
    """
    if not row.enabled:
        return StaffingRowComputed(total_hours=0.0, total_cost=0.0)
    total_hours = row.multiplier * sum(parse_cell_hours(c) for c in row.cells)
    return StaffingRowComputed(
        total_hours=total_hours,
        total_cost=total_hours * row.hourly_rate,
    )


def calculate_week_totals(rows: Sequence[StaffingRow], week_index: int) -> float:
    """Hours staffed in one week across enabled rows, weighted by multiplier."""
    return sum(
        row.multiplier * parse_cell_hours(_cell_at(row, week_index))
        for row in rows
        if row.enabled
    )


def round_up_to_cost(
    raw_cost: float,
    increment: float = COST_ROUNDING_INCREMENT,
) -> float:
    """ceil(raw / increment) * increment; 0 for non-positive costs."""
    if increment <= 0:
        raise ValueError("Cost rounding increment must be greater than 0")
    if raw_cost <= 0:
        return 0.0
    return math.ceil(raw_cost / increment) * increment


def calculate_staffing_grid(
    rows: Sequence[StaffingRow],
    week_count: int,
    cost_increment: float = COST_ROUNDING_INCREMENT,
) -> StaffingGridComputed:
    """
    Row totals, per-week totals and grand totals for the whole grid.

    Every row is validated against week_count first; the first invalid row
    raises ValidationError.
    """
    for row in rows:
        error = validate_staffing_row(row, week_count)
        if error:
            raise ValidationError(f"Invalid staffing row {row.id}: {error}")

    row_totals = [calculate_row_totals(row) for row in rows]
    week_totals = [calculate_week_totals(rows, w) for w in range(week_count)]
    grand_total_hours = sum(r.total_hours for r in row_totals)
    grand_total_cost = sum(r.total_cost for r in row_totals)

    logger.debug(
        "Staffing grid %d rows x %d weeks: %.1fh, cost %.2f",
        len(rows),
        week_count,
        grand_total_hours,
        grand_total_cost,
    )

    return StaffingGridComputed(
        row_totals=row_totals,
        week_totals=week_totals,
        grand_total_hours=grand_total_hours,
        grand_total_cost=grand_total_cost,
        grand_total_cost_rounded=round_up_to_cost(grand_total_cost, cost_increment),
    )


def calculate_staffing_comparison(
    estimated_effort_hours: float,
    staffed_hours: float,
) -> StaffingComparison:
    """delta = staffed - estimated; percent of the estimate (0 if estimate is 0)."""
    delta_hours = staffed_hours - estimated_effort_hours
    delta_percent = (
        delta_hours / estimated_effort_hours * 100 if estimated_effort_hours > 0 else 0.0
    )
    return StaffingComparison(
        estimated_effort_hours=estimated_effort_hours,
        staffed_hours=staffed_hours,
        delta_hours=delta_hours,
        delta_percent=delta_percent,
    )


# --- Row management ----------------------------------------------------------------


def create_staffing_row(row_id: int, week_count: int) -> StaffingRow:
    return StaffingRow(id=row_id, cells=[""] * week_count)


def duplicate_staffing_row(row: StaffingRow, new_id: int) -> StaffingRow:
    return replace(row, id=new_id, cells=list(row.cells))


def create_prepopulated_rows(
    start_id: int,
    week_count: int,
    implied_people: int,
    total_effort_hours: float,
    hours_per_week: float,
) -> List[StaffingRow]:
    """
    Seed implied_people rows so their hours roughly cover total_effort_hours.

    Fills week by week (everyone in week 1, then week 2, ...), giving each
    person hours_per_week until the remainder, which is rounded to whole
    hours. Stops when hours or weeks run out.
    """
    rows = [
        create_staffing_row(start_id + p, week_count) for p in range(implied_people)
    ]
    if hours_per_week <= 0:
        return rows

    remaining = total_effort_hours
    for w in range(week_count):
        if remaining <= 0:
            break
        for row in rows:
            if remaining <= 0:
                break
            if remaining >= hours_per_week:
                row.cells[w] = f"{hours_per_week:g}"
                remaining -= hours_per_week
            else:
                # half-up, not banker's rounding
                row.cells[w] = str(math.floor(remaining + 0.5))
                remaining = 0

    if remaining > 0:
        logger.debug(
            "Pre-populated grid ran out of weeks with %.1fh unallocated", remaining
        )
    return rows


def resize_row_cells(
    rows: Sequence[StaffingRow],
    new_week_count: int,
) -> List[StaffingRow]:
    """Pad with "" or truncate each row's cells; values at shared indices are kept."""
    resized: List[StaffingRow] = []
    for row in rows:
        cells = list(row.cells[:new_week_count])
        cells.extend([""] * (new_week_count - len(cells)))
        resized.append(replace(row, cells=cells))
    return resized

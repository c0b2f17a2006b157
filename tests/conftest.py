"""Pytest configuration and shared fixtures."""

import pytest

from range_estimate.schema import (
    DEFAULT_CONSTANTS,
    SessionState,
    StaffingRow,
    StaffingState,
    WorkItem,
)

# Ten-item worked example: (best, worst) hours
WORKED_PAIRS = [
    (80, 120),
    (70, 200),
    (100, 320),
    (40, 80),
    (60, 90),
    (80, 160),
    (4, 16),
    (80, 100),
    (40, 100),
    (16, 30),
]

WEEK_COUNT = 15


@pytest.fixture
def constants():
    return DEFAULT_CONSTANTS


@pytest.fixture
def worked_items():
    return [
        WorkItem(id=i, title=f"Item {i}", best_case_hours=best, worst_case_hours=worst)
        for i, (best, worst) in enumerate(WORKED_PAIRS, start=1)
    ]


@pytest.fixture
def staffing_rows():
    """Four people over fifteen weeks, with a PI Plan week, PTO and a QA ramp-up."""
    return [
        StaffingRow(
            id=1,
            discipline="Scrum Master",
            hourly_rate=100,
            cells=["6"] * 6 + ["PI Plan"] + ["6"] * 8,
        ),
        StaffingRow(
            id=2,
            discipline="Lead Dev",
            hourly_rate=175,
            cells=["36"] * 6 + ["PI Plan", "PTO", "PTO"] + ["36"] * 6,
        ),
        StaffingRow(
            id=3,
            discipline="Associate Dev",
            hourly_rate=125,
            cells=["36"] * 6 + ["PI Plan"] + ["36"] * 8,
        ),
        StaffingRow(
            id=4,
            discipline="QA",
            hourly_rate=125,
            cells=["8", "8", "0", "0", "0", "0", "PI Plan", "8", "8", "8"] + ["20"] * 5,
        ),
    ]


@pytest.fixture
def session_state(worked_items, staffing_rows):
    return SessionState(
        work_items=worked_items,
        constants=DEFAULT_CONSTANTS,
        next_id=len(worked_items) + 1,
        staffing=StaffingState(rows=staffing_rows, week_count=WEEK_COUNT, next_row_id=5),
    )

"""Tests for the Brooks's Law coordination model and gap decomposition."""

import pytest

from range_estimate.coordination import (
    calculate_coordination,
    calculate_gap_decomposition,
    calculate_weekly_coordination,
    classify_buffer,
    get_active_people_per_week,
)
from range_estimate.schema import BufferStatus, StaffingRow

WEEK_COUNT = 15


class TestActivePeople:
    def test_all_numeric_week(self, staffing_rows):
        assert get_active_people_per_week(staffing_rows, 0) == 4

    def test_annotation_only_week(self, staffing_rows):
        assert get_active_people_per_week(staffing_rows, 6) == 0

    def test_pto_is_inactive(self, staffing_rows):
        assert get_active_people_per_week(staffing_rows, 7) == 3

    def test_zero_hours_is_inactive(self, staffing_rows):
        assert get_active_people_per_week(staffing_rows, 2) == 3

    def test_weighted_by_multiplier(self):
        rows = [
            StaffingRow(id=1, cells=["36"], multiplier=3),
            StaffingRow(id=2, cells=["8"]),
            StaffingRow(id=3, cells=["36"], enabled=False),
        ]
        assert get_active_people_per_week(rows, 0) == 4

    def test_empty_rows(self):
        assert get_active_people_per_week([], 0) == 0


class TestWeeklyCoordination:
    @pytest.mark.parametrize("people", [0, 1])
    def test_no_channels_for_one_person_or_fewer(self, people):
        assert calculate_weekly_coordination(people, 1) == 0

    @pytest.mark.parametrize("people, hours", [(2, 1), (3, 3), (4, 6), (10, 45)])
    def test_pairs_times_cost(self, people, hours):
        assert calculate_weekly_coordination(people, 1) == hours

    def test_cost_per_pair(self):
        assert calculate_weekly_coordination(3, 4) == 12

    def test_zero_cost(self):
        assert calculate_weekly_coordination(5, 0) == 0


class TestCoordination:
    def test_worked_grid_total(self, staffing_rows):
        result = calculate_coordination(staffing_rows, WEEK_COUNT, 4)
        # 2 weeks x 4 people, 4 x 3, 1 x 0, 2 x 3, 6 x 4
        assert result.total_coordination_hours == 48 + 48 + 0 + 24 + 144

    def test_per_week_lists(self, staffing_rows):
        result = calculate_coordination(staffing_rows, WEEK_COUNT, 4)
        assert len(result.active_people_per_week) == WEEK_COUNT
        assert result.active_people_per_week[:8] == [4, 4, 3, 3, 3, 3, 0, 3]
        assert result.coordination_hours_per_week[0] == 24
        assert result.coordination_hours_per_week[6] == 0

    def test_average_ignores_idle_weeks(self, staffing_rows):
        result = calculate_coordination(staffing_rows, WEEK_COUNT, 4)
        assert result.average_active_people == pytest.approx(50 / 14)

    def test_empty_grid(self):
        result = calculate_coordination([], 5, 4)
        assert result.total_coordination_hours == 0
        assert result.average_active_people == 0
        assert result.active_people_per_week == [0] * 5

    def test_zero_weeks(self, staffing_rows):
        result = calculate_coordination(staffing_rows, 0, 4)
        assert result.total_coordination_hours == 0
        assert result.active_people_per_week == []

    def test_implied_team_already_priced_in(self, staffing_rows):
        # 3 people are baked into the duration; 4-person weeks pay 6 - 3 channels
        result = calculate_coordination(staffing_rows, WEEK_COUNT, 1, implied_team_size=3)
        assert result.coordination_hours_per_week[0] == 3
        assert result.coordination_hours_per_week[2] == 0
        assert result.total_coordination_hours == 8 * 3

    def test_implied_team_larger_than_grid(self, staffing_rows):
        result = calculate_coordination(staffing_rows, WEEK_COUNT, 1, implied_team_size=10)
        assert result.total_coordination_hours == 0


class TestGapDecomposition:
    def test_buffered(self, staffing_rows):
        gap = calculate_gap_decomposition(1000, staffing_rows, WEEK_COUNT, 1, 1160)
        assert gap.coordination_overhead_hours == 66
        assert gap.adjusted_effort_hours == 1066
        assert gap.remaining_buffer_hours == 94
        assert gap.effective_productive_hours == 1160
        assert gap.buffer_status is BufferStatus.BUFFERED

    def test_tight(self, staffing_rows):
        gap = calculate_gap_decomposition(1060, staffing_rows, WEEK_COUNT, 1, 1160)
        assert gap.remaining_buffer_hours == 34
        assert gap.buffer_status is BufferStatus.TIGHT

    def test_short(self, staffing_rows):
        gap = calculate_gap_decomposition(1000, staffing_rows, WEEK_COUNT, 4, 1160)
        assert gap.coordination_overhead_hours == 264
        assert gap.remaining_buffer_hours == -104
        assert gap.buffer_status is BufferStatus.SHORT

    def test_preserves_inputs(self, staffing_rows):
        gap = calculate_gap_decomposition(937.28, staffing_rows, WEEK_COUNT, 1, 1160)
        assert gap.base_effort_hours == 937.28
        assert gap.staffed_hours == 1160

    def test_uses_precomputed_coordination(self, staffing_rows):
        coordination = calculate_coordination(staffing_rows, WEEK_COUNT, 4)
        gap = calculate_gap_decomposition(
            1000, [], 0, 0, 1160, coordination=coordination
        )
        assert gap.coordination_overhead_hours == 264
        assert gap.buffer_status is BufferStatus.SHORT

    def test_no_staff(self):
        gap = calculate_gap_decomposition(0, [], 0, 1, 0)
        assert gap.coordination_overhead_hours == 0
        assert gap.remaining_buffer_hours == 0
        assert gap.buffer_status is BufferStatus.BUFFERED

    def test_status_serializes_as_string(self):
        assert BufferStatus.TIGHT == "tight"

    @pytest.mark.parametrize(
        "buffer, adjusted, status",
        [
            (-0.01, 100, BufferStatus.SHORT),
            (0, 100, BufferStatus.TIGHT),
            (4.99, 100, BufferStatus.TIGHT),
            (5, 100, BufferStatus.BUFFERED),
        ],
    )
    def test_classify_buffer(self, buffer, adjusted, status):
        assert classify_buffer(buffer, adjusted) is status

"""Tests for per-item estimation math and portfolio aggregation."""

import math

import pytest

from range_estimate.errors import ValidationError
from range_estimate.estimation import (
    calculate_duration_weeks,
    calculate_expected_hours,
    calculate_portfolio,
    calculate_range_spread,
    calculate_variance,
    calculate_work_item,
    calculate_work_items,
    summarize_by_group,
    validate_constants,
    validate_work_item,
    weighted_contribution,
)
from range_estimate.schema import DEFAULT_CONSTANTS, WorkItem


def _item(item_id=1, best=10.0, worst=20.0, **kwargs):
    return WorkItem(id=item_id, best_case_hours=best, worst_case_hours=worst, **kwargs)


class TestValidation:
    def test_accepts_valid_item(self):
        assert validate_work_item(_item()) is None

    def test_accepts_zero_range_item(self):
        assert validate_work_item(_item(best=10, worst=10)) is None

    def test_rejects_negative_best_case(self):
        assert validate_work_item(_item(best=-5, worst=20)) == (
            "Best case hours cannot be negative"
        )

    def test_rejects_worst_below_best(self):
        assert validate_work_item(_item(best=30, worst=20)) == (
            "Worst case hours cannot be less than best case hours"
        )

    def test_rejects_zero_multiplier(self):
        assert validate_work_item(_item(multiplier=0)) == "Multiplier must be at least 1"

    @pytest.mark.parametrize(
        "best, worst, message",
        [
            (math.nan, 20, "Best case hours must be a finite number"),
            (10, math.nan, "Worst case hours must be a finite number"),
            (10, math.inf, "Worst case hours must be a finite number"),
            (math.inf, math.inf, "Best case hours must be a finite number"),
        ],
    )
    def test_rejects_non_finite_hours(self, best, worst, message):
        assert validate_work_item(_item(best=best, worst=worst)) == message

    def test_accepts_default_constants(self):
        assert validate_constants(DEFAULT_CONSTANTS) is None

    @pytest.mark.parametrize(
        "changes, message",
        [
            ({"expected_case_position": -0.1}, "Expected case position must be between 0 and 1"),
            ({"expected_case_position": 1.1}, "Expected case position must be between 0 and 1"),
            ({"range_spread_divisor": 0}, "Range spread divisor must be greater than 0"),
            ({"billable_hours_per_week": 0}, "Billable hours per week must be greater than 0"),
            ({"duration_scaling_power": -1}, "Duration scaling power must be greater than 0"),
            ({"coordination_cost_per_pair": -0.5}, "Coordination cost per pair cannot be negative"),
        ],
    )
    def test_rejects_out_of_range_constants(self, changes, message):
        assert validate_constants(DEFAULT_CONSTANTS.replace(**changes)) == message

    def test_rejects_non_finite_constant(self):
        constants = DEFAULT_CONSTANTS.replace(range_spread_divisor=math.nan)
        assert validate_constants(constants) == "range_spread_divisor must be a finite number"

    def test_reports_first_failing_constant(self):
        constants = DEFAULT_CONSTANTS.replace(
            range_spread_divisor=0, billable_hours_per_week=0
        )
        assert validate_constants(constants) == "Range spread divisor must be greater than 0"


class TestItemMath:
    def test_expected_hours_interpolates(self):
        assert calculate_expected_hours(80, 120, 0.4) == pytest.approx(96)
        assert calculate_expected_hours(70, 200, 0.4) == pytest.approx(122)
        assert calculate_expected_hours(10, 20, 0.5) == 15

    def test_expected_hours_endpoints(self):
        assert calculate_expected_hours(10, 20, 0.0) == 10
        assert calculate_expected_hours(10, 20, 1.0) == 20

    def test_range_spread(self):
        assert calculate_range_spread(80, 120, 2.6) == pytest.approx(15.3846, abs=1e-4)
        assert calculate_range_spread(70, 200, 2.6) == pytest.approx(50)

    def test_range_spread_zero_for_equal_bounds(self):
        assert calculate_range_spread(100, 100, 2.6) == 0

    def test_variance_is_square_of_spread(self):
        assert calculate_variance(50) == 2500
        assert calculate_variance(0) == 0

    def test_calculate_work_item(self):
        calc = calculate_work_item(_item(best=100, worst=320, title="Reports"), DEFAULT_CONSTANTS)
        assert calc.title == "Reports"
        assert calc.expected_hours == pytest.approx(188)
        assert calc.range_spread_hours == pytest.approx(84.615, abs=1e-3)
        assert calc.variance == pytest.approx(7159.76, abs=0.1)

    def test_calculate_work_item_ignores_multiplier(self):
        single = calculate_work_item(_item(), DEFAULT_CONSTANTS)
        tripled = calculate_work_item(_item(multiplier=3), DEFAULT_CONSTANTS)
        assert tripled.expected_hours == single.expected_hours
        assert tripled.variance == single.variance

    def test_weighted_contribution(self):
        assert weighted_contribution(_item(multiplier=3), 2.0) == 6.0
        assert weighted_contribution(_item(multiplier=3, enabled=False), 2.0) == 0.0

    def test_weighted_properties(self):
        calc = calculate_work_item(_item(multiplier=3), DEFAULT_CONSTANTS)
        assert calc.weighted_expected_hours == pytest.approx(3 * calc.expected_hours)
        assert calc.weighted_variance == pytest.approx(3 * calc.variance)
        assert calc.weighted_range_spread == pytest.approx(3 * calc.range_spread_hours)

        disabled = calculate_work_item(_item(enabled=False), DEFAULT_CONSTANTS)
        assert disabled.weighted_expected_hours == 0
        assert disabled.weighted_variance == 0


class TestDuration:
    def test_zero_effort_is_zero_weeks(self):
        assert calculate_duration_weeks(0, 3.5) == 0

    def test_cube_root_scaling(self):
        # 3.5 * 27^(1/3) = 10.5
        assert calculate_duration_weeks(27, 3.5) == 11

    def test_capped_at_single_person_time(self):
        # 3.5 * 2^(1/3) ~= 4.4 but one person needs only 2 weeks
        assert calculate_duration_weeks(2, 3.5) == 2
        assert calculate_duration_weeks(0.5, 3.5) == 1


class TestPortfolio:
    def test_worked_example(self, worked_items, constants):
        results = calculate_portfolio(worked_items, constants)
        assert results.total_expected_hours == pytest.approx(828.4)
        assert results.portfolio_range_spread == pytest.approx(108.88, abs=0.01)
        assert results.total_effort_hours == pytest.approx(937.28, abs=0.01)
        assert results.total_effort_staff_weeks == pytest.approx(26.03, abs=0.01)
        assert results.duration_weeks == 11
        assert results.implied_team_size == 3

    def test_spread_is_root_sum_of_squares(self, worked_items, constants):
        results = calculate_portfolio(worked_items, constants)
        calculated = calculate_work_items(worked_items, constants)
        assert results.portfolio_range_spread == pytest.approx(
            math.sqrt(sum(c.variance for c in calculated))
        )
        assert results.portfolio_range_spread < sum(c.range_spread_hours for c in calculated)

    def test_single_risky_item_has_no_diversification(self, constants):
        items = [_item(1, 10, 50), _item(2, 20, 20), _item(3, 5, 5)]
        results = calculate_portfolio(items, constants)
        assert results.portfolio_range_spread == pytest.approx(40 / 2.6)

    def test_empty_portfolio_is_all_zero(self, constants):
        results = calculate_portfolio([], constants)
        assert results.total_expected_hours == 0
        assert results.total_variance == 0
        assert results.portfolio_range_spread == 0
        assert results.total_effort_hours == 0
        assert results.total_effort_staff_weeks == 0
        assert results.duration_weeks == 0
        assert results.implied_team_size == 0

    def test_disabled_items_are_excluded(self, worked_items, constants):
        baseline = calculate_portfolio(worked_items, constants)
        worked_items.append(_item(99, 500, 1000, enabled=False))
        assert calculate_portfolio(worked_items, constants) == baseline

    def test_multiplier_scales_variance_not_spread(self, constants):
        single = calculate_portfolio([_item(1, 10, 36)], constants)
        quad = calculate_portfolio([_item(1, 10, 36, multiplier=4)], constants)
        assert quad.total_expected_hours == pytest.approx(4 * single.total_expected_hours)
        assert quad.total_variance == pytest.approx(4 * single.total_variance)
        assert quad.portfolio_range_spread == pytest.approx(2 * single.portfolio_range_spread)

    def test_multiplier_matches_repeated_items(self, constants):
        repeated = [_item(i, 10, 36) for i in range(1, 4)]
        multiplied = [_item(1, 10, 36, multiplier=3)]
        a = calculate_portfolio(repeated, constants)
        b = calculate_portfolio(multiplied, constants)
        assert a.total_expected_hours == pytest.approx(b.total_expected_hours)
        assert a.portfolio_range_spread == pytest.approx(b.portfolio_range_spread)

    def test_invalid_item_fails_whole_portfolio(self, constants):
        with pytest.raises(ValidationError) as exc:
            calculate_portfolio([_item(1, -10, 20)], constants)
        assert "Invalid work item 1: Best case hours cannot be negative" in str(exc.value)

    def test_reports_first_invalid_item_in_order(self, constants):
        items = [_item(1), _item(7, 30, 20), _item(3, -1, 5)]
        with pytest.raises(ValidationError, match="Invalid work item 7"):
            calculate_portfolio(items, constants)

    def test_disabled_items_are_still_validated(self, constants):
        with pytest.raises(ValidationError, match="Invalid work item 2"):
            calculate_portfolio([_item(1), _item(2, 30, 20, enabled=False)], constants)

    def test_constants_checked_before_items(self):
        bad = DEFAULT_CONSTANTS.replace(range_spread_divisor=0)
        with pytest.raises(ValidationError) as exc:
            calculate_portfolio([_item(1, -10, 20)], bad)
        assert str(exc.value) == (
            "Invalid constants: Range spread divisor must be greater than 0"
        )

    def test_non_finite_item_is_a_validation_error(self, constants):
        items = [_item(1), _item(2, best=math.nan, worst=math.nan)]
        with pytest.raises(ValidationError) as exc:
            calculate_portfolio(items, constants)
        assert str(exc.value) == "Invalid work item 2: Best case hours must be a finite number"

    def test_overflowing_totals_are_a_validation_error(self, constants):
        items = [_item(1, best=0, worst=1e300)]
        with pytest.raises(ValidationError, match="too large"):
            calculate_portfolio(items, constants)

    def test_validation_error_is_a_value_error(self, constants):
        with pytest.raises(ValueError):
            calculate_portfolio([_item(1, 30, 20)], constants)


class TestGroups:
    def test_summarize_by_group(self, constants):
        items = [
            _item(1, 10, 36, group_id=1),
            _item(2, 10, 36, group_id=1),
            _item(3, 0, 26, group_id=2, multiplier=2),
            _item(4, 5, 5),
        ]
        summary = summarize_by_group(items, constants)
        assert set(summary) == {1, 2, None}
        assert summary[1]["variance"] == pytest.approx(200)
        assert summary[1]["range_spread_hours"] == pytest.approx(math.sqrt(200))
        assert summary[2]["expected_hours"] == pytest.approx(2 * 10.4)
        assert summary[None]["variance"] == 0

    def test_group_variances_add_up_to_portfolio(self, worked_items, constants):
        for item in worked_items:
            item.group_id = item.id % 3
        summary = summarize_by_group(worked_items, constants)
        results = calculate_portfolio(worked_items, constants)
        assert sum(g["variance"] for g in summary.values()) == pytest.approx(
            results.total_variance
        )

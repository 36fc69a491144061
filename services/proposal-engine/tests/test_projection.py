"""
Unit tests for Multi-Year Projector
===================================
"""

import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from proposal_sim.projection import (
    generation_ratios,
    project_20_years,
    split_operating_profit,
    yearly_profit_schedule,
)


def explicit_sum(first_year_profit, degradation_rate, years=20):
    r = 1 - degradation_rate / 100
    return sum(first_year_profit * r ** i for i in range(years))


class TestClosedForm:
    """Test the geometric series against the explicit sum"""

    @pytest.mark.parametrize("d", [0, 0.5, 5, 20])
    def test_matches_explicit_sum(self, d):
        result = project_20_years(80_000_000, d)
        assert result.total_profit_20 == pytest.approx(explicit_sum(80_000_000, d), rel=1e-6)

    def test_no_degradation(self):
        assert project_20_years(1_000_000, 0).total_profit_20 == 20_000_000

    def test_negative_profit(self):
        result = project_20_years(-1_000_000, 0.5)
        assert result.total_profit_20 == pytest.approx(explicit_sum(-1_000_000, 0.5))
        assert result.total_profit_20 < 0

    def test_zero_profit(self):
        assert project_20_years(0, 5).total_profit_20 == 0.0


class TestYearlySchedule:
    """Test the year-by-year schedule"""

    def test_first_and_second_year(self):
        schedule = yearly_profit_schedule(1_000_000, 0.5)
        assert len(schedule) == 20
        assert schedule[0].year == 1
        assert schedule[0].profit == pytest.approx(1_000_000)
        assert schedule[1].generation_ratio == pytest.approx(0.995)

    @pytest.mark.parametrize("d", [0, 0.5, 5, 20])
    def test_cumulative_matches_closed_form(self, d):
        schedule = yearly_profit_schedule(80_000_000, d)
        total = project_20_years(80_000_000, d).total_profit_20
        assert schedule[-1].cumulative_profit == pytest.approx(total, rel=1e-9)

    def test_ratios(self):
        ratios = generation_ratios(10, years=3)
        assert list(ratios) == pytest.approx([1.0, 0.9, 0.81])


class TestConstantComponents:
    """Rationalization and flat labour stay constant while generation degrades"""

    def test_split_operating_profit(self):
        degrading, fixed = split_operating_profit(100_000_000, 20_000_000, 10, 40_000_000)
        assert degrading == pytest.approx(90_000_000)
        assert fixed == pytest.approx(18_000_000 - 40_000_000)

    @pytest.mark.parametrize("d", [0, 0.5, 5, 20])
    def test_fixed_part_added_linearly(self, d):
        result = project_20_years(90_000_000, d, fixed_profit=-22_000_000)
        expected = explicit_sum(90_000_000, d) - 22_000_000 * 20
        assert result.total_profit_20 == pytest.approx(expected, rel=1e-9)
        assert result.first_year_profit == pytest.approx(68_000_000)

    def test_schedule_with_fixed_part(self):
        schedule = yearly_profit_schedule(90_000_000, 5, fixed_profit=-22_000_000)
        assert schedule[0].profit == pytest.approx(68_000_000)
        assert schedule[1].profit == pytest.approx(90_000_000 * 0.95 - 22_000_000)
        total = project_20_years(90_000_000, 5, fixed_profit=-22_000_000).total_profit_20
        assert schedule[-1].cumulative_profit == pytest.approx(total, rel=1e-9)

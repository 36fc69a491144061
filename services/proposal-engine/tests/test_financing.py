"""
Unit tests for Financing Comparator
===================================
Tests cover:
1. PMT including the zero-rate branch
2. RPS and factoring loan scenarios
3. Rental and subscription flat x 20 convention
4. ROI sentinels
5. Best model selection
"""

import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pydantic import ValidationError

from proposal_sim.models import FinancingModel, LoanStructure, PricingConfig
from proposal_sim.financing import (
    compare_financing_models,
    debt_service_schedule,
    pmt,
    rental_scenario,
    roi_years,
    subscription_scenario,
)

INVESTMENT = 1_000_000_000.0
SELF_20Y = 2_000_000_000.0
ANNUAL_PROFIT = 120_000_000.0


@pytest.fixture
def config():
    return PricingConfig()


@pytest.fixture
def comparison(config):
    return compare_financing_models(
        INVESTMENT, SELF_20Y, ANNUAL_PROFIT, config,
        capacity_kw=500,
        annual_self_consumption=360_000,
        annual_surplus=304_300,
        rec_average_price=70_000,
    )


class TestPmt:
    """Test the annuity formula"""

    def test_standard_annuity(self):
        assert pmt(0.05, 10, -1000) == pytest.approx(-129.5045750, rel=1e-6)

    def test_zero_rate(self):
        assert pmt(0, 10, -1000) == pytest.approx(100.0)

    def test_annuity_repays_loan(self):
        payment = abs(pmt(0.0175, 10, -800_000_000))
        balance = 800_000_000.0
        for _ in range(10):
            balance = balance * 1.0175 - payment
        assert balance == pytest.approx(0.0, abs=1e-3)


class TestRoiYears:
    """Test payback sentinels"""

    def test_regular(self):
        assert roi_years(1_000, 250) == 4.0

    def test_no_capital(self):
        assert roi_years(0, 100) == 0.0
        assert roi_years(0, -100) == 0.0

    def test_non_positive_profit(self):
        assert roi_years(1_000, 0) is None
        assert roi_years(1_000, -5) is None


class TestLoanScenarios:
    """Test RPS and factoring"""

    def test_rps_structure(self, comparison):
        rps = comparison.rps
        assert rps.principal == pytest.approx(800_000_000)
        assert rps.equity == pytest.approx(200_000_000)
        assert rps.interest_only == pytest.approx(800_000_000 * 0.0175)
        assert rps.annuity_payment == pytest.approx(pmt(0.0175, 10, -800_000_000))
        assert rps.annuity_payment < 0

    def test_rps_net_profit(self, comparison):
        rps = comparison.rps
        expected = SELF_20Y - rps.interest_only * 5 - abs(rps.annuity_payment) * 10
        assert rps.net_profit_20y == pytest.approx(expected)

    def test_rps_roi_uses_equity(self, comparison):
        rps = comparison.rps
        assert rps.roi_years == pytest.approx(200_000_000 / (ANNUAL_PROFIT - rps.interest_only))

    def test_rps_debt_service_schedule(self, comparison):
        schedule = comparison.rps.debt_service_schedule
        assert len(schedule) == 20
        assert schedule[:5] == [pytest.approx(comparison.rps.interest_only)] * 5
        assert schedule[5:15] == [pytest.approx(abs(comparison.rps.annuity_payment))] * 10
        assert schedule[15:] == [0.0] * 5

    def test_factoring(self, comparison):
        fac = comparison.factoring
        assert fac.principal == pytest.approx(INVESTMENT)
        assert fac.equity == 0.0
        assert fac.roi_years == 0.0
        assert fac.interest_only == pytest.approx(INVESTMENT * 0.051)
        expected = SELF_20Y - fac.interest_only * 1 - abs(fac.annuity_payment) * 9
        assert fac.net_profit_20y == pytest.approx(expected)

    def test_zero_rate_loan(self, config):
        config = config.updated(loan_rate_rps=0)
        result = compare_financing_models(
            INVESTMENT, SELF_20Y, ANNUAL_PROFIT, config,
            capacity_kw=500, annual_self_consumption=0, annual_surplus=0,
        )
        assert result.rps.interest_only == 0.0
        assert result.rps.net_profit_20y == pytest.approx(SELF_20Y - 800_000_000)

    def test_custom_structure(self, config):
        result = compare_financing_models(
            INVESTMENT, SELF_20Y, ANNUAL_PROFIT, config,
            capacity_kw=500, annual_self_consumption=0, annual_surplus=0,
            rps=LoanStructure(loan_ratio=50, grace_years=0, repayment_years=20),
        )
        assert result.rps.principal == pytest.approx(500_000_000)
        assert result.rps.roi_years == pytest.approx(
            500_000_000 / (ANNUAL_PROFIT - abs(result.rps.annuity_payment))
        )

    def test_structure_must_fit_horizon(self):
        with pytest.raises(ValidationError):
            LoanStructure(loan_ratio=80, grace_years=15, repayment_years=10)

    def test_debt_schedule_without_grace(self):
        structure = LoanStructure(loan_ratio=100, grace_years=0, repayment_years=5)
        schedule = debt_service_schedule(10.0, -50.0, structure)
        assert schedule[:5] == [50.0] * 5
        assert schedule[5:] == [0.0] * 15


class TestFlatRevenueModels:
    """Rental and subscription ignore degradation and cost: annual x 20"""

    def test_rental(self, config):
        rental = rental_scenario(500, config, 0)
        grid_kwh = 500 * 0.2 * 3.64 * 365
        expected = grid_kwh * 192.79 + 500 * 0.8 * 20_000
        assert rental.annual_revenue == pytest.approx(expected)
        assert rental.net_profit_20y == pytest.approx(expected * 20)
        assert rental.rec.rec_count == pytest.approx(grid_kwh / 1000)

    def test_subscription(self, config):
        sub = subscription_scenario(360_000, 304_300, config, 0)
        expected = 360_000 * (210.5 - 150) + 304_300 * 50
        assert sub.annual_revenue == pytest.approx(expected)
        assert sub.net_profit_20y == pytest.approx(expected * 20)

    def test_flat_models_ignore_degradation(self, comparison):
        assert comparison.rental.net_profit_20y == pytest.approx(comparison.rental.annual_revenue * 20)
        assert comparison.subscription.net_profit_20y == pytest.approx(
            comparison.subscription.annual_revenue * 20
        )


class TestComparison:
    """Test the overall comparison"""

    def test_self_funded(self, comparison):
        assert comparison.self_funded.net_profit_20y == SELF_20Y
        assert comparison.self_funded.roi_years == pytest.approx(INVESTMENT / ANNUAL_PROFIT)
        assert comparison.self_funded.debt_service_schedule == [0.0] * 20

    def test_best_model_is_max(self, comparison):
        profits = comparison.net_profits()
        assert len(profits) == 5
        assert profits[comparison.best_model] == max(profits.values())
        assert comparison.best_model == FinancingModel.SELF_FUNDED

    def test_best_no_investment_model(self, comparison):
        # Subscription (~740M) beats factoring (~677M) and rental (~672M)
        assert comparison.best_no_investment_model == FinancingModel.SUBSCRIPTION
        assert comparison.profit_advantage_over_no_investment == pytest.approx(
            SELF_20Y - comparison.subscription.net_profit_20y
        )
        assert comparison.recommendation.startswith("Self-funded")

    def test_full_loan_counts_as_no_investment(self, config):
        config = config.updated(loan_rate_factoring=0)
        result = compare_financing_models(
            INVESTMENT, SELF_20Y, ANNUAL_PROFIT, config,
            capacity_kw=500, annual_self_consumption=360_000, annual_surplus=304_300,
        )
        assert result.factoring.equity == 0.0
        assert result.best_no_investment_model == FinancingModel.FACTORING
        assert result.profit_advantage_over_no_investment == pytest.approx(SELF_20Y - (SELF_20Y - INVESTMENT))

    def test_rec_metrics(self, comparison):
        rec = comparison.self_funded.rec
        assert rec.rec_count == pytest.approx(ANNUAL_PROFIT / 80 / 1000)
        assert rec.rec_annual_revenue == pytest.approx(rec.rec_count * 70_000)

    def test_loss_making_project(self, config):
        result = compare_financing_models(
            INVESTMENT, -1_000_000, -50_000, config,
            capacity_kw=500, annual_self_consumption=0, annual_surplus=0,
        )
        assert result.self_funded.roi_years is None
        assert result.rps.roi_years is None
        assert result.best_model == FinancingModel.RENTAL
        assert result.best_no_investment_model == FinancingModel.RENTAL
        assert result.profit_advantage_over_no_investment == 0.0
        assert "needs no investment" in result.recommendation

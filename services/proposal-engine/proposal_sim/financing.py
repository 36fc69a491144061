"""
Financing Comparator
====================
Derives the five financing scenarios from the self-funded projection:

- Self-funded: full investment from equity
- RPS policy loan: interest-only grace years, then annuity repayment
- Factoring: same pattern with a full loan at a market rate
- Rental: no operator capital, flat annual revenue x 20
- Subscription: no operator capital, flat annual revenue x 20

Rental and subscription ignore degradation and cost on purpose.
"""

import logging
from typing import List, Optional

from .models import (
    FinancingComparison,
    FinancingModel,
    FlatRevenueScenario,
    LoanScenario,
    LoanStructure,
    PricingConfig,
    PROJECTION_YEARS,
    RecMetrics,
    default_factoring_structure,
    default_rps_structure,
)

logger = logging.getLogger(__name__)

# Rental: share of capacity sold to the grid, the rest is rented out
RENTAL_GRID_SHARE = 0.2
RENTAL_LEASED_SHARE = 0.8

# KRW of operating profit per kWh-equivalent used for REC counts
REC_PROFIT_PER_KWH = 80.0
KWH_PER_REC = 1000.0


def pmt(rate: float, nper: int, pv: float) -> float:
    """Annuity payment; PMT(r, n, -loan) is negative (an outflow)"""
    if rate == 0:
        return -pv / nper
    pvif = (1 + rate) ** nper
    return rate * pv * pvif / (pvif - 1)


def roi_years(capital: float, first_year_profit: float) -> Optional[float]:
    """
    Payback years. 0 when no capital is needed, None (shown as "-")
    when the first-year profit does not pay anything back.
    """
    if capital <= 0:
        return 0.0
    if first_year_profit <= 0:
        return None
    return capital / first_year_profit


def rec_from_profit(annual_profit: float, rec_average_price: float) -> RecMetrics:
    count = annual_profit / REC_PROFIT_PER_KWH / KWH_PER_REC
    return RecMetrics(rec_count=count, rec_annual_revenue=count * rec_average_price)


def debt_service_schedule(
    interest_only: float,
    annuity: float,
    structure: LoanStructure,
    years: int = PROJECTION_YEARS,
) -> List[float]:
    """Annual external debt service: grace interest, annuity, then nothing"""
    schedule = []
    for year in range(1, years + 1):
        if year <= structure.grace_years:
            schedule.append(interest_only)
        elif year <= structure.grace_years + structure.repayment_years:
            schedule.append(abs(annuity))
        else:
            schedule.append(0.0)
    return schedule


def loan_scenario(
    model: FinancingModel,
    total_investment: float,
    self_funded_profit_20y: float,
    annual_operating_profit: float,
    rate_pct: float,
    structure: LoanStructure,
    rec_average_price: float,
) -> LoanScenario:
    """Loan-financed scenario: grace interest then annuity repayment"""
    rate = rate_pct / 100
    principal = total_investment * structure.loan_ratio / 100
    equity = total_investment - principal

    interest_only = principal * rate
    annuity = pmt(rate, structure.repayment_years, -principal) if principal > 0 else 0.0

    net_grace = annual_operating_profit - interest_only
    # The zero-rate branch of pmt() is positive, so only the magnitude is used
    net_repayment = annual_operating_profit - abs(annuity)
    net_20y = (
        self_funded_profit_20y
        - interest_only * structure.grace_years
        - abs(annuity) * structure.repayment_years
    )
    first_year_net = net_grace if structure.grace_years > 0 else net_repayment

    return LoanScenario(
        model=model,
        principal=principal,
        equity=equity,
        interest_rate=rate_pct,
        grace_years=structure.grace_years,
        repayment_years=structure.repayment_years,
        interest_only=interest_only,
        annuity_payment=annuity,
        net_grace=net_grace,
        net_repayment=net_repayment,
        debt_service_schedule=debt_service_schedule(interest_only, annuity, structure),
        net_profit_20y=net_20y,
        roi_years=roi_years(equity, first_year_net),
        rec=rec_from_profit(annual_operating_profit, rec_average_price),
    )


def rental_scenario(capacity_kw: float, config: PricingConfig, rec_average_price: float) -> FlatRevenueScenario:
    grid_kwh = capacity_kw * RENTAL_GRID_SHARE * config.solar_radiation * 365
    annual = grid_kwh * config.unit_price_kepco + capacity_kw * RENTAL_LEASED_SHARE * config.rental_price_per_kw
    rec_count = grid_kwh / KWH_PER_REC
    return FlatRevenueScenario(
        model=FinancingModel.RENTAL,
        annual_revenue=annual,
        net_profit_20y=annual * PROJECTION_YEARS,
        rec=RecMetrics(rec_count=rec_count, rec_annual_revenue=rec_count * rec_average_price),
    )


def subscription_scenario(
    annual_self_consumption: float,
    annual_surplus: float,
    config: PricingConfig,
    rec_average_price: float,
) -> FlatRevenueScenario:
    annual = (
        annual_self_consumption * (config.standard_tariff_savings_price - config.sub_price_self)
        + annual_surplus * config.sub_price_surplus
    )
    return FlatRevenueScenario(
        model=FinancingModel.SUBSCRIPTION,
        annual_revenue=annual,
        net_profit_20y=annual * PROJECTION_YEARS,
        rec=rec_from_profit(annual, rec_average_price),
    )


def compare_financing_models(
    total_investment: float,
    self_funded_profit_20y: float,
    annual_operating_profit: float,
    config: PricingConfig,
    *,
    capacity_kw: float,
    annual_self_consumption: float,
    annual_surplus: float,
    rps: Optional[LoanStructure] = None,
    factoring: Optional[LoanStructure] = None,
    rec_average_price: float = 0.0,
) -> FinancingComparison:
    """Compare the five financing scenarios over the projection horizon"""
    rps = rps or default_rps_structure()
    factoring = factoring or default_factoring_structure()

    self_funded = LoanScenario(
        model=FinancingModel.SELF_FUNDED,
        principal=0.0,
        equity=total_investment,
        interest_rate=0.0,
        net_grace=annual_operating_profit,
        net_repayment=annual_operating_profit,
        debt_service_schedule=[0.0] * PROJECTION_YEARS,
        net_profit_20y=self_funded_profit_20y,
        roi_years=roi_years(total_investment, annual_operating_profit),
        rec=rec_from_profit(annual_operating_profit, rec_average_price),
    )
    rps_result = loan_scenario(
        FinancingModel.RPS, total_investment, self_funded_profit_20y,
        annual_operating_profit, config.loan_rate_rps, rps, rec_average_price,
    )
    factoring_result = loan_scenario(
        FinancingModel.FACTORING, total_investment, self_funded_profit_20y,
        annual_operating_profit, config.loan_rate_factoring, factoring, rec_average_price,
    )
    rental = rental_scenario(capacity_kw, config, rec_average_price)
    subscription = subscription_scenario(
        annual_self_consumption, annual_surplus, config, rec_average_price
    )

    # (scenario, operator equity); rental and subscription need none
    candidates = [
        (self_funded, self_funded.equity),
        (rps_result, rps_result.equity),
        (factoring_result, factoring_result.equity),
        (rental, 0.0),
        (subscription, 0.0),
    ]
    best, best_equity = max(candidates, key=lambda c: c[0].net_profit_20y)
    best_free, _ = max(
        (c for c in candidates if c[1] <= 0),
        key=lambda c: c[0].net_profit_20y,
    )
    logger.debug("Best financing model: %s (%.0f KRW)", best.model.value, best.net_profit_20y)

    return FinancingComparison(
        self_funded=self_funded,
        rps=rps_result,
        factoring=factoring_result,
        rental=rental,
        subscription=subscription,
        best_model=best.model,
        best_no_investment_model=best_free.model,
        profit_advantage_over_no_investment=best.net_profit_20y - best_free.net_profit_20y,
        recommendation=recommendation_text(best.model, best.net_profit_20y, best_equity),
    )


def recommendation_text(best_model: FinancingModel, net_profit_20y: float, equity: float) -> str:
    """One-line advice for the best scenario"""
    if best_model == FinancingModel.SELF_FUNDED:
        return f"Self-funded investment gives the highest 20-year profit ({net_profit_20y:,.0f} KRW)"
    if equity <= 0:
        return f"{best_model.value} needs no investment and gives the most stable profit"
    return f"Leveraged {best_model.value} gives the highest 20-year profit ({net_profit_20y:,.0f} KRW)"

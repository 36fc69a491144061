"""
Proposal Simulation Engine
==========================
Runs the full proposal calculation:

monthly records + config
  -> monthly metrics (generation, savings, bills)
  -> revenue (self / EC / grid volumes)
  -> maintenance-rate calibration and operating cost
  -> investment
  -> 20-year projection
  -> financing comparison

Every run builds a fresh SimulationResult; inputs are never modified.
"""

import logging
from typing import List, Optional

from .cost import calibrate_maintenance_rate, compute_cost, ec_labor_cost
from .financing import compare_financing_models
from .investment import compute_investment, module_count
from .models import (
    MonthlyRecord,
    PlanComparison,
    PlanScenario,
    PricingConfig,
    PROJECTION_YEARS,
    RationalizationInputs,
    SimulationRequest,
    SimulationResult,
    SimulationSettings,
)
from .monthly_metrics import compute_monthly_metrics, normalize_monthly_records
from .projection import project_20_years, split_operating_profit, yearly_profit_schedule
from .revenue import (
    compute_revenue,
    default_ec_fleet_size,
    is_higher_tariff_contract,
    rationalization_savings,
    recommend_ec_fleet,
)

logger = logging.getLogger(__name__)


class ProposalSimulator:
    """
    Stateless proposal simulator.

    The pricing config given at construction is used for requests that do
    not carry their own snapshot.
    """

    def __init__(self, config: Optional[PricingConfig] = None):
        self.config = config or PricingConfig()

    def simulate(self, request: SimulationRequest) -> SimulationResult:
        """Run every stage and assemble the flat result"""
        config = request.config or self.config
        settings = request.settings

        # Step 1: Monthly metrics over a normalized calendar year
        records = normalize_monthly_records(request.records)
        metrics = compute_monthly_metrics(
            records,
            capacity_kw=settings.capacity_kw,
            base_rate=settings.base_rate,
            unit_price_savings=settings.unit_price_savings,
            config=config,
            round_auto_generation=settings.round_auto_generation,
        )
        totals = metrics.totals

        # Step 2: Revenue
        fleet = (
            settings.ec_fleet_size
            if settings.ec_fleet_size is not None
            else default_ec_fleet_size(settings.capacity_kw)
        )
        rationalization = rationalization_savings(
            request.rationalization, is_higher_tariff_contract(settings.contract_type)
        )
        revenue = compute_revenue(
            annual_generation=totals.solar_generation,
            annual_self_consumption=totals.self_consumption,
            business_model=settings.business_model,
            use_ec=settings.use_ec,
            ec_fleet_size=fleet,
            config=config,
            rationalization=rationalization,
            unit_price_savings=settings.unit_price_savings,
        )

        # Step 3: Maintenance rate and operating cost
        labor = ec_labor_cost(fleet, settings.use_ec, settings.business_model, config.price_labor_ec)
        calibration = calibrate_maintenance_rate(
            gross_revenue=revenue.gross_revenue,
            labor_cost=labor,
            current_rate=settings.maintenance_rate,
            cost_ceiling=settings.cost_ceiling,
            auto_mode=settings.auto_maintenance,
        )
        cost = compute_cost(
            revenue.gross_revenue,
            calibration.rate,
            fleet,
            settings.use_ec,
            config.price_labor_ec,
            settings.business_model,
        )

        # Step 4: Investment
        investment = compute_investment(
            settings.capacity_kw,
            settings.module_tier,
            fleet,
            settings.use_ec,
            settings.business_model,
            config,
            annual_operating_cost=cost.total_cost,
        )

        # Step 5: 20-year projection; rationalization and labour do not degrade
        degrading, fixed = split_operating_profit(
            revenue.revenue_saving + revenue.revenue_ec + revenue.revenue_surplus,
            revenue.rationalization_savings,
            calibration.rate,
            cost.labor_cost,
        )
        projection = project_20_years(degrading, settings.degradation_rate, fixed_profit=fixed)
        schedule = yearly_profit_schedule(degrading, settings.degradation_rate, fixed_profit=fixed)

        # Step 6: Financing scenarios
        financing = compare_financing_models(
            investment.total_initial,
            projection.total_profit_20,
            cost.net_operating_profit,
            config,
            capacity_kw=settings.capacity_kw,
            annual_self_consumption=totals.self_consumption,
            annual_surplus=revenue.raw_surplus,
            rps=settings.rps,
            factoring=settings.factoring,
            rec_average_price=settings.rec_average_price,
        )

        self_roi_percent = (
            projection.total_profit_20 / investment.total_over_20_years * 100
            if investment.total_over_20_years > 0 else 0.0
        )
        re100_rate = (
            totals.solar_generation / totals.usage_kwh * 100
            if totals.usage_kwh > 0 else 0.0
        )

        logger.debug(
            "Simulated %s/%s %.0f kW: gross=%.0f cost=%.0f invest=%.0f",
            settings.business_model.value, settings.module_tier.value, settings.capacity_kw,
            revenue.gross_revenue, cost.total_cost, investment.total_initial,
        )

        return SimulationResult(
            business_model=settings.business_model,
            module_tier=settings.module_tier,
            capacity_kw=settings.capacity_kw,
            module_count=module_count(settings.capacity_kw, config.solar_panel_wattage),
            use_ec_effective=investment.ec_units > 0,
            ec_fleet_size=fleet,
            monthly=metrics.computed,
            monthly_totals=totals,
            saving_rate=metrics.saving_rate,
            custom_saving_rate=metrics.custom_saving_rate,
            max_load_ratio=metrics.max_load_ratio,
            total_benefit=metrics.total_benefit,
            dynamic_peak_ratio=metrics.dynamic_peak_ratio,
            annual_generation=totals.solar_generation,
            annual_usage=totals.usage_kwh,
            annual_self_consumption=totals.self_consumption,
            annual_surplus=revenue.raw_surplus,
            volume_self=revenue.volume_self,
            volume_ec=revenue.volume_ec,
            volume_surplus=revenue.volume_surplus,
            ec_capacity=revenue.ec_capacity,
            re100_rate=re100_rate,
            applied_savings_price=revenue.applied_savings_price,
            applied_ec_price=revenue.applied_ec_price,
            revenue_saving=revenue.revenue_saving,
            revenue_ec=revenue.revenue_ec,
            revenue_surplus=revenue.revenue_surplus,
            rationalization_savings=revenue.rationalization_savings,
            gross_revenue=revenue.gross_revenue,
            maintenance_rate_input=settings.maintenance_rate,
            maintenance_rate=calibration.rate,
            ideal_maintenance_rate=calibration.ideal_rate,
            maintenance_exceeds_ceiling=calibration.exceeds_ceiling,
            maintenance_cost=cost.maintenance_cost,
            labor_cost=cost.labor_cost,
            annual_cost=cost.total_cost,
            annual_operating_profit=cost.net_operating_profit,
            solar_unit_price=investment.solar_unit_price,
            solar_cost=investment.solar_cost,
            ec_cost=investment.ec_cost,
            tractor_cost=investment.tractor_cost,
            platform_cost=investment.platform_cost,
            total_investment=investment.total_initial,
            total_investment_20_years=investment.total_over_20_years,
            degradation_rate=settings.degradation_rate,
            first_year_profit=projection.first_year_profit,
            yearly_profits=schedule,
            self_roi_percent=self_roi_percent,
            self_final_profit=financing.self_funded.net_profit_20y,
            rps_final_profit=financing.rps.net_profit_20y,
            fac_final_profit=financing.factoring.net_profit_20y,
            rental_final_profit=financing.rental.net_profit_20y,
            sub_final_profit=financing.subscription.net_profit_20y,
            rps_interest_only=financing.rps.interest_only,
            rps_pmt=financing.rps.annuity_payment,
            fac_interest_only=financing.factoring.interest_only,
            fac_pmt=financing.factoring.annuity_payment,
            rental_revenue_yr=financing.rental.annual_revenue,
            sub_revenue_yr=financing.subscription.annual_revenue,
            self_roi_years=financing.self_funded.roi_years,
            rps_roi_years=financing.rps.roi_years,
            fac_roi_years=financing.factoring.roi_years,
            best_financing_model=financing.best_model,
            best_no_investment_model=financing.best_no_investment_model,
            profit_advantage_over_no_investment=financing.profit_advantage_over_no_investment,
            financing=financing,
            ec_advice=recommend_ec_fleet(revenue.raw_surplus, fleet),
        )


def run_simulation(
    records: List[MonthlyRecord],
    settings: Optional[SimulationSettings] = None,
    rationalization: Optional[RationalizationInputs] = None,
    config: Optional[PricingConfig] = None,
) -> SimulationResult:
    """Convenience wrapper around ProposalSimulator"""
    request = SimulationRequest(
        records=records,
        settings=settings or SimulationSettings(),
        rationalization=rationalization or RationalizationInputs(),
        config=config,
    )
    return ProposalSimulator(config).simulate(request)


def _plan_scenario(name: str, ec_price: float, result: SimulationResult, config: PricingConfig) -> PlanScenario:
    revenue_ec = result.volume_ec * ec_price
    revenue_surplus = result.volume_surplus * config.unit_price_kepco
    gross = result.revenue_saving + revenue_ec + revenue_surplus + result.rationalization_savings
    annual_cost = gross * result.maintenance_rate / 100 + result.labor_cost
    net = gross - annual_cost
    degrading, fixed = split_operating_profit(
        result.revenue_saving + revenue_ec + revenue_surplus,
        result.rationalization_savings,
        result.maintenance_rate,
        result.labor_cost,
    )
    total_20 = project_20_years(degrading, result.degradation_rate, fixed_profit=fixed).total_profit_20
    invest = result.total_investment
    total_cost_20 = invest + annual_cost * PROJECTION_YEARS

    return PlanScenario(
        name=name,
        ec_price=ec_price,
        gross_revenue=gross,
        annual_cost=annual_cost,
        annual_net_profit=net,
        total_profit_20=total_20,
        investment=invest,
        roi_years=invest / net if net > 0 else 0.0,
        profit_rate=total_20 / total_cost_20 * 100 if total_cost_20 > 0 else 0.0,
    )


def compare_ec_price_plans(result: SimulationResult, config: Optional[PricingConfig] = None) -> PlanComparison:
    """
    Standard (REC 1.5) vs premium (REC 5.0) EC price plans on the volumes
    of an existing simulation. KEPCO results have no EC volume, so both
    plans collapse to grid sale.
    """
    config = config or PricingConfig()
    return PlanComparison(
        standard=_plan_scenario("REC 1.5", config.unit_price_ec_1_5, result, config),
        premium=_plan_scenario("REC 5.0", config.unit_price_ec_5_0, result, config),
    )

"""
Revenue Model
=============
Partitions annual generation into self-consumption, EC-sold and
grid-surplus volumes and prices each one.

KEPCO model: everything is sold to the grid, no self-consumption,
no EC, no rationalization savings.
RE100 / REC5: self-consumption first, surplus to EC up to fleet capacity,
remainder to the grid.
"""

import logging
import math
from typing import Optional

from .models import (
    BusinessModel,
    EcAdvice,
    EC_CYCLES_PER_DAY,
    EC_MAX_FLEET,
    EC_UNIT_KW,
    HIGHER_TARIFF_MARKER,
    PricingConfig,
    RationalizationInputs,
    RevenueBreakdown,
)

logger = logging.getLogger(__name__)

DAYS_PER_YEAR = 365

# Daily surplus thresholds [kWh/day] for the fleet recommendation
EC_TWO_UNIT_THRESHOLD = 800.0
EC_THREE_UNIT_THRESHOLD = 1200.0


def is_higher_tariff_contract(contract_type: str) -> bool:
    """Rationalization only applies to the higher-tariff contract class"""
    return HIGHER_TARIFF_MARKER in (contract_type or "")


def rationalization_savings(inputs: RationalizationInputs, higher_tariff_contract: bool) -> float:
    """Annual savings from moving to the lower-tariff contract"""
    if not higher_tariff_contract:
        return 0.0
    base = inputs.base_savings_manual if inputs.base_savings_manual is not None else inputs.base.saving
    return base + inputs.light.saving + inputs.mid.saving + inputs.max.saving


def default_ec_fleet_size(capacity_kw: float) -> int:
    """One EC unit per 100 kW, capped at the fleet maximum"""
    return min(EC_MAX_FLEET, int(math.floor(max(0.0, capacity_kw) / EC_UNIT_KW)))


def ec_annual_capacity(fleet_size: int) -> float:
    """Annual EC transport capacity [kWh]"""
    return max(0, fleet_size) * EC_UNIT_KW * EC_CYCLES_PER_DAY * DAYS_PER_YEAR


def ec_sell_price(business_model: BusinessModel, config: PricingConfig) -> float:
    """EC sale price by business model (grid price for KEPCO)"""
    if business_model == BusinessModel.RE100:
        return config.unit_price_ec_1_5
    if business_model == BusinessModel.REC5:
        return config.unit_price_ec_5_0
    return config.unit_price_kepco


def compute_revenue(
    annual_generation: float,
    annual_self_consumption: float,
    business_model: BusinessModel,
    use_ec: bool,
    ec_fleet_size: int,
    config: PricingConfig,
    rationalization: float = 0.0,
    unit_price_savings: Optional[float] = None,
) -> RevenueBreakdown:
    """
    Annual volumes and gross revenue.

    rationalization is the already-resolved annual rationalization saving
    (0 unless the contract is the higher-tariff class).
    """
    generation = max(0.0, annual_generation)
    self_consumption = max(0.0, annual_self_consumption)
    savings_price = unit_price_savings if unit_price_savings is not None else config.unit_price_savings
    grid_price = config.unit_price_kepco
    ec_price = ec_sell_price(business_model, config)
    raw_surplus = max(0.0, generation - self_consumption)

    if business_model == BusinessModel.KEPCO:
        revenue_surplus = generation * grid_price
        return RevenueBreakdown(
            volume_self=0.0,
            volume_ec=0.0,
            volume_surplus=generation,
            raw_surplus=raw_surplus,
            ec_capacity=0.0,
            applied_savings_price=savings_price,
            applied_ec_price=ec_price,
            revenue_saving=0.0,
            revenue_ec=0.0,
            revenue_surplus=revenue_surplus,
            rationalization_savings=0.0,
            gross_revenue=revenue_surplus,
        )

    volume_self = min(generation, self_consumption)
    ec_capacity = ec_annual_capacity(ec_fleet_size) if use_ec else 0.0
    volume_ec = min(raw_surplus, ec_capacity) if use_ec else 0.0
    volume_surplus = raw_surplus - volume_ec

    revenue_saving = volume_self * savings_price
    revenue_ec = volume_ec * ec_price
    revenue_surplus = volume_surplus * grid_price
    gross = revenue_saving + revenue_ec + revenue_surplus + rationalization

    return RevenueBreakdown(
        volume_self=volume_self,
        volume_ec=volume_ec,
        volume_surplus=volume_surplus,
        raw_surplus=raw_surplus,
        ec_capacity=ec_capacity,
        applied_savings_price=savings_price,
        applied_ec_price=ec_price,
        revenue_saving=revenue_saving,
        revenue_ec=revenue_ec,
        revenue_surplus=revenue_surplus,
        rationalization_savings=rationalization,
        gross_revenue=gross,
    )


def recommend_ec_fleet(raw_surplus: float, ec_fleet_size: int) -> EcAdvice:
    """
    Recommend an EC fleet size for the annual surplus.

    1 unit below 800 kWh/day, 2 units up to 1200 kWh/day, 3 above.
    The fleet is capped at 3 units regardless of surplus.
    """
    raw_surplus = max(0.0, raw_surplus)
    daily_surplus = raw_surplus / DAYS_PER_YEAR

    if daily_surplus < EC_TWO_UNIT_THRESHOLD:
        recommended = 1
    elif daily_surplus <= EC_THREE_UNIT_THRESHOLD:
        recommended = 2
    else:
        recommended = EC_MAX_FLEET

    fleet_capacity = ec_annual_capacity(ec_fleet_size)
    over = fleet_capacity > 2 * raw_surplus
    under = raw_surplus > fleet_capacity

    if over:
        message = (
            f"Over-provisioned: {ec_fleet_size} EC unit(s) can carry "
            f"{fleet_capacity:,.0f} kWh/year, more than twice the surplus"
        )
    elif under:
        message = (
            f"Under-provisioned: surplus of {raw_surplus:,.0f} kWh/year exceeds "
            f"fleet capacity of {fleet_capacity:,.0f} kWh/year"
        )
    else:
        message = f"{ec_fleet_size} EC unit(s) match the surplus"

    return EcAdvice(
        daily_surplus_kwh=daily_surplus,
        recommended_units=recommended,
        fleet_size=ec_fleet_size,
        fleet_capacity_kwh=fleet_capacity,
        over_provisioned=over,
        under_provisioned=under,
        message=message,
    )

"""
Investment Model
================
Initial capital outlay and 20-year total cost of ownership.
"""

import math
from typing import Iterable

from .models import (
    BusinessModel,
    InvestmentBreakdown,
    ModuleTier,
    PricingConfig,
    PROJECTION_YEARS,
    SOLAR_BLOCK_KW,
)

# 1 m2 = 0.3025 pyeong; 1 kW needs 2 pyeong of roof
PYEONG_PER_M2 = 0.3025
PYEONG_PER_KW = 2.0


def solar_unit_price(module_tier: ModuleTier, config: PricingConfig) -> float:
    """Solar price per 100 kW block for the module tier"""
    if module_tier == ModuleTier.PREMIUM:
        return config.price_solar_premium
    if module_tier == ModuleTier.ECONOMY:
        return config.price_solar_economy
    return config.price_solar_standard


def capacity_from_roof_area(areas_m2: Iterable[float]) -> int:
    """Installable capacity [kW] for the given roof areas [m2]"""
    total_pyeong = sum(max(0.0, a) for a in areas_m2) * PYEONG_PER_M2
    return int(math.floor(total_pyeong / PYEONG_PER_KW))


def module_count(capacity_kw: float, panel_wattage: float) -> int:
    if capacity_kw <= 0 or panel_wattage <= 0:
        return 0
    return int(math.floor(capacity_kw * 1000 / panel_wattage + 0.5))


def compute_investment(
    capacity_kw: float,
    module_tier: ModuleTier,
    ec_fleet_size: int,
    use_ec: bool,
    business_model: BusinessModel,
    config: PricingConfig,
    annual_operating_cost: float = 0.0,
) -> InvestmentBreakdown:
    """
    Capital outlay [KRW].

    EC units, one tractor and one platform are bought only for an active
    EC fleet outside the KEPCO model. The 20-year total for KEPCO is built
    from per-year splits of the initial cost.
    """
    unit_price = solar_unit_price(module_tier, config)
    solar_cost = max(0.0, capacity_kw) / SOLAR_BLOCK_KW * unit_price

    ec_active = use_ec and business_model != BusinessModel.KEPCO and ec_fleet_size > 0
    ec_units = ec_fleet_size if ec_active else 0
    ec_cost = ec_units * config.price_ec_unit
    tractor_cost = config.price_tractor if ec_active else 0.0
    platform_cost = config.price_platform if ec_active else 0.0

    total_initial = solar_cost + ec_cost + tractor_cost + platform_cost

    if business_model == BusinessModel.KEPCO:
        total_20 = (total_initial / PROJECTION_YEARS + annual_operating_cost) * PROJECTION_YEARS
    else:
        total_20 = total_initial + annual_operating_cost * PROJECTION_YEARS

    return InvestmentBreakdown(
        solar_unit_price=unit_price,
        ec_units=ec_units,
        solar_cost=solar_cost,
        ec_cost=ec_cost,
        tractor_cost=tractor_cost,
        platform_cost=platform_cost,
        total_initial=total_initial,
        annual_operating_cost=annual_operating_cost,
        total_over_20_years=total_20,
        solar_split=solar_cost / PROJECTION_YEARS,
        ec_split=ec_cost / PROJECTION_YEARS,
        tractor_split=tractor_cost / PROJECTION_YEARS,
        platform_split=platform_cost / PROJECTION_YEARS,
        maintenance_split=annual_operating_cost,
    )

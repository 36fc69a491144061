"""
Cost Model
==========
Annual operating cost (maintenance share of revenue + flat EC labour)
and automatic maintenance-rate calibration against a cost ceiling.

Calibration steps:
1. ideal = min(25%, max(0, (ceiling - labour) / revenue * 100)), 2 dp half-up
2. business model just changed: auto mode -> ideal, manual mode -> keep
3. rate above ideal (+0.01): auto mode or alerts suppressed -> ideal,
   manual mode -> keep rate and ask the caller to confirm
4. auto mode, rate below ideal (-0.01) and below 25% -> ideal
5. otherwise keep
"""

import logging
from decimal import Decimal, ROUND_HALF_UP

from .models import (
    BusinessModel,
    CalibrationAction,
    CalibrationResult,
    CostBreakdown,
    DEFAULT_COST_CEILING,
    MAX_MAINTENANCE_RATE,
)

logger = logging.getLogger(__name__)

# Rates within this distance of the ideal are left alone
RATE_TOLERANCE = 0.01


def round_half_up(value: float, digits: int = 2) -> float:
    """Half-up rounding on the decimal representation (1.005 -> 1.01)"""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def ec_labor_cost(
    ec_fleet_size: int,
    use_ec: bool,
    business_model: BusinessModel,
    labor_cost_per_unit: float,
) -> float:
    """Flat annual EC labour, charged once for an active fleet"""
    if ec_fleet_size > 0 and use_ec and business_model != BusinessModel.KEPCO:
        return labor_cost_per_unit
    return 0.0


def compute_cost(
    gross_revenue: float,
    maintenance_rate: float,
    ec_fleet_size: int,
    use_ec: bool,
    labor_cost_per_unit: float,
    business_model: BusinessModel = BusinessModel.RE100,
) -> CostBreakdown:
    """Annual operating cost and net operating profit"""
    labor = ec_labor_cost(ec_fleet_size, use_ec, business_model, labor_cost_per_unit)
    maintenance = gross_revenue * maintenance_rate / 100
    total = maintenance + labor
    return CostBreakdown(
        maintenance_rate=maintenance_rate,
        maintenance_cost=maintenance,
        labor_cost=labor,
        total_cost=total,
        net_operating_profit=gross_revenue - total,
    )


def ideal_maintenance_rate(
    gross_revenue: float,
    labor_cost: float,
    cost_ceiling: float = DEFAULT_COST_CEILING,
) -> float:
    """Highest maintenance rate [%] keeping total cost within the ceiling"""
    if gross_revenue <= 0:
        return 0.0
    headroom_pct = (cost_ceiling - labor_cost) / gross_revenue * 100
    return round_half_up(min(MAX_MAINTENANCE_RATE, max(0.0, headroom_pct)))


def calibrate_maintenance_rate(
    gross_revenue: float,
    labor_cost: float,
    current_rate: float,
    cost_ceiling: float = DEFAULT_COST_CEILING,
    auto_mode: bool = True,
    model_changed: bool = False,
    suppress_alerts: bool = False,
) -> CalibrationResult:
    """
    One calibration pass. Feeding the returned rate back with the same
    inputs leaves it unchanged.
    """
    ideal = ideal_maintenance_rate(gross_revenue, labor_cost, cost_ceiling)
    exceeds = current_rate > ideal + RATE_TOLERANCE

    if model_changed:
        if auto_mode:
            rate, action = ideal, CalibrationAction.RESET_ON_MODEL_CHANGE
        else:
            rate, action = current_rate, CalibrationAction.KEPT_ON_MODEL_CHANGE
        return CalibrationResult(
            rate=rate,
            ideal_rate=ideal,
            exceeds_ceiling=exceeds,
            requires_confirmation=False,
            changed=rate != current_rate,
            action=action,
        )

    if exceeds:
        if auto_mode or suppress_alerts:
            logger.info(
                "Maintenance rate %.2f%% exceeds cost ceiling, lowered to %.2f%%",
                current_rate, ideal,
            )
            return CalibrationResult(
                rate=ideal,
                ideal_rate=ideal,
                exceeds_ceiling=True,
                requires_confirmation=False,
                changed=True,
                action=CalibrationAction.LOWERED_TO_CEILING,
            )
        return CalibrationResult(
            rate=current_rate,
            ideal_rate=ideal,
            exceeds_ceiling=True,
            requires_confirmation=True,
            changed=False,
            action=CalibrationAction.CONFIRMATION_REQUIRED,
        )

    if auto_mode and current_rate < ideal - RATE_TOLERANCE and current_rate < MAX_MAINTENANCE_RATE:
        return CalibrationResult(
            rate=ideal,
            ideal_rate=ideal,
            exceeds_ceiling=False,
            requires_confirmation=False,
            changed=True,
            action=CalibrationAction.RAISED_TO_CEILING,
        )

    return CalibrationResult(
        rate=current_rate,
        ideal_rate=ideal,
        exceeds_ceiling=False,
        requires_confirmation=False,
        changed=False,
        action=CalibrationAction.UNCHANGED,
    )

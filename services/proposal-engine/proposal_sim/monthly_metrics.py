"""
Monthly Energy Metrics
======================
Per-month solar generation, surplus, bill savings and post-installation
bill, aggregated into annual totals and ratios.

Demand-charge savings:
- measured peak (peak_kw > 0): base_bill - base_rate * peak_kw, floored at 0
- unmeasured peak: base_bill * dynamic_peak_ratio, where the ratio is
  annual self-consumption / annual usage (computed once for the year)
"""

import calendar
import logging
from typing import Iterable, List, Optional

import numpy as np

from .models import (
    MonthlyComputedRow,
    MonthlyMetrics,
    MonthlyRecord,
    MonthlyTotals,
    PricingConfig,
    REFERENCE_YEAR,
)

logger = logging.getLogger(__name__)

# Fields copied by copy_first_month_to_all
_COPIED_FIELDS = ("usage_kwh", "self_consumption", "total_bill", "base_bill", "peak_kw")


def days_in_month(month: int, year: Optional[int] = None) -> int:
    """Days in month; the non-leap reference year is used when year is None"""
    return calendar.monthrange(year if year is not None else REFERENCE_YEAR, month)[1]


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator > 0 else 0.0


def normalize_monthly_records(records: Iterable[MonthlyRecord]) -> List[MonthlyRecord]:
    """
    Return exactly 12 records ordered January..December.

    Missing months are zero-filled, a later record for the same month
    replaces an earlier one. Input records are not modified.
    Months outside 1..12 never get here: MonthlyRecord rejects them
    at validation (HTTP 422 at the service).
    """
    by_month = {}
    for record in records:
        by_month[record.month] = record

    normalized = []
    for month in range(1, 13):
        record = by_month.get(month)
        normalized.append(record.model_copy() if record is not None else MonthlyRecord(month=month))
    return normalized


def copy_first_month_to_all(records: List[MonthlyRecord]) -> List[MonthlyRecord]:
    """Copy January's usage, bills and peak to every other month"""
    if not records:
        return []
    first = records[0]
    values = {field: getattr(first, field) for field in _COPIED_FIELDS}
    return [records[0].model_copy()] + [r.model_copy(update=values) for r in records[1:]]


def compute_monthly_metrics(
    records: List[MonthlyRecord],
    capacity_kw: float,
    base_rate: float,
    unit_price_savings: Optional[float] = None,
    config: Optional[PricingConfig] = None,
    round_auto_generation: bool = False,
) -> MonthlyMetrics:
    """
    Compute monthly and annual energy/billing metrics.

    Parameters:
    -----------
    records : List[MonthlyRecord]
        Monthly utility records (twelve or more)
    capacity_kw : float
        Nameplate capacity [kW]
    base_rate : float
        Demand charge [KRW/kW]
    unit_price_savings : float, optional
        Savings price [KRW/kWh]; config.unit_price_savings when omitted
    config : PricingConfig
        Irradiance and grid sale price
    round_auto_generation : bool
        Round auto-computed generation to whole kWh

    Returns:
    --------
    MonthlyMetrics with per-month rows, totals and ratios
    """
    config = config or PricingConfig()
    capacity_kw = max(0.0, capacity_kw)
    savings_price = unit_price_savings if unit_price_savings is not None else config.unit_price_savings
    sell_price = config.unit_price_kepco

    if not records:
        return MonthlyMetrics(
            computed=[],
            totals=MonthlyTotals(),
            saving_rate=0.0,
            custom_saving_rate=0.0,
            max_load_ratio=0.0,
            total_benefit=0.0,
            dynamic_peak_ratio=0.0,
        )

    days = np.array([days_in_month(r.month, r.year) for r in records], dtype=float)
    usage = np.array([r.usage_kwh for r in records], dtype=float)
    self_cons = np.array([r.self_consumption for r in records], dtype=float)
    peak = np.array([r.peak_kw for r in records], dtype=float)
    total_bill = np.array([r.total_bill for r in records], dtype=float)
    base_bill = np.array([r.base_bill for r in records], dtype=float)
    override = np.array([r.solar_generation for r in records], dtype=float)

    total_usage_year = float(np.sum(usage))
    total_self_year = float(np.sum(self_cons))
    dynamic_peak_ratio = _ratio(total_self_year, total_usage_year)

    auto_gen = capacity_kw * config.solar_radiation * days
    if round_auto_generation:
        # Half-up rounding
        auto_gen = np.floor(auto_gen + 0.5)
    generation = np.where(override > 0, override, auto_gen)

    surplus = np.maximum(0.0, generation - self_cons)
    max_load_savings = np.minimum(generation, self_cons) * savings_price
    base_bill_savings = np.where(
        peak > 0,
        np.maximum(0.0, base_bill - base_rate * peak),
        base_bill * dynamic_peak_ratio,
    )
    total_savings = max_load_savings + base_bill_savings
    after_bill = np.maximum(0.0, total_bill - total_savings)
    surplus_revenue = surplus * sell_price

    computed = [
        MonthlyComputedRow(
            month=r.month,
            year=r.year,
            days=int(days[i]),
            usage_kwh=r.usage_kwh,
            self_consumption=r.self_consumption,
            peak_kw=r.peak_kw,
            total_bill=r.total_bill,
            base_bill=r.base_bill,
            auto_solar_generation=float(auto_gen[i]),
            solar_generation=float(generation[i]),
            surplus_power=float(surplus[i]),
            max_load_savings=float(max_load_savings[i]),
            base_bill_savings=float(base_bill_savings[i]),
            total_savings=float(total_savings[i]),
            after_bill=float(after_bill[i]),
            surplus_revenue=float(surplus_revenue[i]),
        )
        for i, r in enumerate(records)
    ]

    totals = MonthlyTotals(
        usage_kwh=total_usage_year,
        self_consumption=total_self_year,
        solar_generation=float(np.sum(generation)),
        surplus_power=float(np.sum(surplus)),
        total_bill=float(np.sum(total_bill)),
        base_bill=float(np.sum(base_bill)),
        max_load_savings=float(np.sum(max_load_savings)),
        base_bill_savings=float(np.sum(base_bill_savings)),
        total_savings=float(np.sum(total_savings)),
        after_bill=float(np.sum(after_bill)),
        surplus_revenue=float(np.sum(surplus_revenue)),
    )

    saving_rate = _ratio(totals.total_savings, totals.total_bill) * 100
    custom_saving_rate = _ratio(totals.total_bill - totals.total_savings, totals.total_bill) * 100
    max_load_ratio = dynamic_peak_ratio * 100

    logger.debug(
        "Monthly metrics: %d months, generation=%.0f kWh, saving_rate=%.2f%%",
        len(records), totals.solar_generation, saving_rate,
    )

    return MonthlyMetrics(
        computed=computed,
        totals=totals,
        saving_rate=saving_rate,
        custom_saving_rate=custom_saving_rate,
        max_load_ratio=max_load_ratio,
        total_benefit=totals.total_savings + totals.surplus_revenue,
        dynamic_peak_ratio=dynamic_peak_ratio,
    )

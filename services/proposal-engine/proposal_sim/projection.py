"""
Multi-Year Projector
====================
20-year cumulative profit under compounding generation degradation.

Only generation-driven profit degrades. Items that do not depend on output
(rationalization savings, flat EC labour) are carried as a constant
yearly amount:

    profit_n = P_gen * R^(n-1) + P_fixed,   R = 1 - d/100

Closed form: total = P_gen * (1 - R^n) / (1 - R) + P_fixed * n.
For d == 0 the series reduces to (P_gen + P_fixed) * n.
"""

from typing import List, Tuple

import numpy as np

from .models import PROJECTION_YEARS, ProjectionResult, YearlyProfit


def generation_ratios(degradation_rate: float, years: int = PROJECTION_YEARS) -> np.ndarray:
    """Output ratio per year: 1, R, R^2, ..."""
    r = 1 - degradation_rate / 100
    return r ** np.arange(years, dtype=float)


def split_operating_profit(
    generation_revenue: float,
    fixed_revenue: float,
    maintenance_rate: float,
    fixed_cost: float,
) -> Tuple[float, float]:
    """
    First-year operating profit as (degrading, constant) parts.

    Maintenance is a share of revenue, so it follows each revenue stream;
    fixed_cost is charged in full every year.
    """
    kept = 1 - maintenance_rate / 100
    return generation_revenue * kept, fixed_revenue * kept - fixed_cost


def project_20_years(
    first_year_profit: float,
    degradation_rate: float,
    years: int = PROJECTION_YEARS,
    fixed_profit: float = 0.0,
) -> ProjectionResult:
    """
    Cumulative profit over the horizon (geometric series).

    first_year_profit degrades with output; fixed_profit is added unchanged
    every year.
    """
    if degradation_rate == 0:
        total = first_year_profit * years
    else:
        r = 1 - degradation_rate / 100
        total = first_year_profit * (1 - r ** years) / (1 - r)

    return ProjectionResult(
        first_year_profit=first_year_profit + fixed_profit,
        total_profit_20=total + fixed_profit * years,
        degradation_rate=degradation_rate,
        years=years,
    )


def yearly_profit_schedule(
    first_year_profit: float,
    degradation_rate: float,
    years: int = PROJECTION_YEARS,
    fixed_profit: float = 0.0,
) -> List[YearlyProfit]:
    """Explicit year-by-year profits; their sum equals project_20_years"""
    ratios = generation_ratios(degradation_rate, years)
    profits = first_year_profit * ratios + fixed_profit
    cumulative = np.cumsum(profits)
    return [
        YearlyProfit(
            year=i + 1,
            generation_ratio=float(ratios[i]),
            profit=float(profits[i]),
            cumulative_profit=float(cumulative[i]),
        )
        for i in range(years)
    ]

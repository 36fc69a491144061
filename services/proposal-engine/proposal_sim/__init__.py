# Proposal Simulation Engine
# Revenue, cost, investment and financing figures for solar proposals

from .models import (
    BusinessModel,
    ModuleTier,
    FinancingModel,
    CalibrationAction,
    MonthlyRecord,
    PricingConfig,
    TariffPreset,
    DEFAULT_TARIFF_PRESETS,
    RationalizationRow,
    RationalizationInputs,
    LoanStructure,
    SimulationSettings,
    SimulationRequest,
    MonthlyMetrics,
    RevenueBreakdown,
    CostBreakdown,
    CalibrationResult,
    InvestmentBreakdown,
    ProjectionResult,
    FinancingComparison,
    PlanComparison,
    EcAdvice,
    SimulationResult,
    ENGINE_VERSION,
)
from .monthly_metrics import (
    compute_monthly_metrics,
    normalize_monthly_records,
    copy_first_month_to_all,
    days_in_month,
)
from .revenue import (
    compute_revenue,
    rationalization_savings,
    is_higher_tariff_contract,
    recommend_ec_fleet,
    default_ec_fleet_size,
)
from .cost import compute_cost, calibrate_maintenance_rate, ideal_maintenance_rate
from .investment import compute_investment, capacity_from_roof_area, module_count
from .projection import project_20_years, split_operating_profit, yearly_profit_schedule
from .financing import pmt, compare_financing_models
from .engine import ProposalSimulator, run_simulation, compare_ec_price_plans

__all__ = [
    "BusinessModel",
    "ModuleTier",
    "FinancingModel",
    "CalibrationAction",
    "MonthlyRecord",
    "PricingConfig",
    "TariffPreset",
    "DEFAULT_TARIFF_PRESETS",
    "RationalizationRow",
    "RationalizationInputs",
    "LoanStructure",
    "SimulationSettings",
    "SimulationRequest",
    "MonthlyMetrics",
    "RevenueBreakdown",
    "CostBreakdown",
    "CalibrationResult",
    "InvestmentBreakdown",
    "ProjectionResult",
    "FinancingComparison",
    "PlanComparison",
    "EcAdvice",
    "SimulationResult",
    "ENGINE_VERSION",
    "compute_monthly_metrics",
    "normalize_monthly_records",
    "copy_first_month_to_all",
    "days_in_month",
    "compute_revenue",
    "rationalization_savings",
    "is_higher_tariff_contract",
    "recommend_ec_fleet",
    "default_ec_fleet_size",
    "compute_cost",
    "calibrate_maintenance_rate",
    "ideal_maintenance_rate",
    "compute_investment",
    "capacity_from_roof_area",
    "module_count",
    "project_20_years",
    "yearly_profit_schedule",
    "split_operating_profit",
    "pmt",
    "compare_financing_models",
    "ProposalSimulator",
    "run_simulation",
    "compare_ec_price_plans",
]

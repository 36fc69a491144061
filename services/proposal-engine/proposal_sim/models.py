"""
Proposal Simulation Models
==========================
Data Transfer Objects for the solar proposal simulation engine.

Covers:
- Monthly utility records (usage, self-consumption, bills, peak demand)
- Process-wide pricing configuration (capital costs, kWh prices, loan rates)
- Rationalization (tariff re-classification) inputs
- Scalar simulation settings (capacity, tier, business model, EC fleet)
- Result structures for every engine stage and the flat SimulationResult

Currency is KRW throughout. Energy is kWh, capacity kW.

Version: 1.0.0
"""

import logging
from enum import Enum
from typing import List, Optional, Dict

from pydantic import BaseModel, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

# Engine version for audit trail
ENGINE_VERSION = "1.0.0"

# Projection horizon [years]
PROJECTION_YEARS = 20

# Reference (non-leap) year for days-per-month
REFERENCE_YEAR = 2025

# EC (Energy Carrier) unit: 100 kW-equivalent, 4 transport cycles per day
EC_UNIT_KW = 100.0
EC_CYCLES_PER_DAY = 4
EC_MAX_FLEET = 3

# Solar capital cost is quoted per 100 kW block
SOLAR_BLOCK_KW = 100.0

# Maintenance rate ceiling [%] and default annual cost ceiling [KRW]
MAX_MAINTENANCE_RATE = 25.0
DEFAULT_COST_CEILING = 80_000_000.0

# Tariff contracts marked with this token are the higher-tariff class
HIGHER_TARIFF_MARKER = "(을)"


class BusinessModel(str, Enum):
    """Revenue model of the installation"""
    KEPCO = "KEPCO"     # Grid sale only
    RE100 = "RE100"     # Self-consumption + EC sale, current REC pricing
    REC5 = "REC5"       # Self-consumption + EC sale, future REC pricing

    @classmethod
    def _missing_(cls, value):
        logger.warning("Unknown business model %r, falling back to RE100", value)
        return cls.RE100


class ModuleTier(str, Enum):
    """Solar module price tier"""
    PREMIUM = "PREMIUM"
    STANDARD = "STANDARD"
    ECONOMY = "ECONOMY"

    @classmethod
    def _missing_(cls, value):
        logger.warning("Unknown module tier %r, falling back to STANDARD", value)
        return cls.STANDARD


class FinancingModel(str, Enum):
    """Financing scenarios compared in the proposal"""
    SELF_FUNDED = "self_funded"
    RPS = "rps"
    FACTORING = "factoring"
    RENTAL = "rental"
    SUBSCRIPTION = "subscription"


class CalibrationAction(str, Enum):
    """What the maintenance-rate calibration did"""
    RESET_ON_MODEL_CHANGE = "reset_on_model_change"
    KEPT_ON_MODEL_CHANGE = "kept_on_model_change"
    LOWERED_TO_CEILING = "lowered_to_ceiling"
    CONFIRMATION_REQUIRED = "confirmation_required"
    RAISED_TO_CEILING = "raised_to_ceiling"
    UNCHANGED = "unchanged"


# =============================================================================
# Inputs
# =============================================================================

class MonthlyRecord(BaseModel):
    """One calendar month of utility data"""
    month: int = Field(..., ge=1, le=12, description="Calendar month (1-12)")
    year: Optional[int] = Field(None, description="Calendar year (reference year if omitted)")
    usage_kwh: float = Field(0.0, description="Total consumption [kWh]")
    self_consumption: float = Field(0.0, description="Consumption served on-site by solar [kWh]")
    peak_kw: float = Field(0.0, description="Measured demand peak [kW], 0 if unknown")
    total_bill: float = Field(0.0, description="Bill before installation [KRW]")
    base_bill: float = Field(0.0, description="Demand-charge portion of the bill [KRW]")
    solar_generation: float = Field(0.0, description="Generation override [kWh], 0 = auto")

    @field_validator(
        "usage_kwh", "self_consumption", "peak_kw",
        "total_bill", "base_bill", "solar_generation",
        mode="before",
    )
    @classmethod
    def clamp_non_negative(cls, v):
        if v is None:
            return 0.0
        return max(0.0, float(v))


class PricingConfig(BaseModel):
    """
    Pricing configuration snapshot.

    Capital prices are KRW; solar prices are per 100 kW block.
    Loan rates are percent per year.
    """
    # Capital costs
    price_solar_premium: float = Field(97_000_000.0, ge=0, description="Premium modules [KRW/100kW]")
    price_solar_standard: float = Field(90_000_000.0, ge=0, description="Standard modules [KRW/100kW]")
    price_solar_economy: float = Field(84_000_000.0, ge=0, description="Economy modules [KRW/100kW]")
    price_ec_unit: float = Field(70_000_000.0, ge=0, description="Energy Carrier unit [KRW]")
    price_tractor: float = Field(40_000_000.0, ge=0, description="Tractor (one per fleet) [KRW]")
    price_platform: float = Field(30_000_000.0, ge=0, description="Operating platform (one per fleet) [KRW]")
    price_labor_ec: float = Field(40_000_000.0, ge=0, description="EC operating labour [KRW/year]")

    # Energy prices
    unit_price_kepco: float = Field(192.79, ge=0, description="Grid feed-in price [KRW/kWh]")
    unit_price_savings: float = Field(136.47, ge=0, description="Self-consumption savings [KRW/kWh]")
    unit_price_ec_1_5: float = Field(261.45, ge=0, description="EC sale, current REC tier [KRW/kWh]")
    unit_price_ec_5_0: float = Field(441.15, ge=0, description="EC sale, future REC tier [KRW/kWh]")

    # Financing
    loan_rate_rps: float = Field(1.75, ge=0, description="RPS policy loan rate [%]")
    loan_rate_factoring: float = Field(5.1, ge=0, description="Factoring rate [%]")
    rental_price_per_kw: float = Field(20_000.0, ge=0, description="Rental price [KRW/kW/year]")
    sub_price_self: float = Field(150.0, ge=0, description="Subscription self-consumption price [KRW/kWh]")
    sub_price_surplus: float = Field(50.0, ge=0, description="Subscription surplus price [KRW/kWh]")
    standard_tariff_savings_price: float = Field(
        210.5, ge=0, description="Standard tariff savings price used by subscription [KRW/kWh]"
    )

    # Physical assumptions
    solar_radiation: float = Field(3.64, ge=0, description="Irradiance [kWh/kW/day]")
    solar_panel_wattage: float = Field(645.0, ge=0, description="Module nameplate [W]")

    def updated(self, **changes) -> "PricingConfig":
        """Return a re-validated copy with the given fields changed"""
        unknown = set(changes) - set(type(self).model_fields)
        if unknown:
            raise ValueError(f"Unknown config fields: {sorted(unknown)}")
        return type(self).model_validate({**self.model_dump(), **changes})


class TariffPreset(BaseModel):
    """Electricity contract preset"""
    name: str
    base_rate: float = Field(..., ge=0, description="Demand charge [KRW/kW]")
    savings_price: float = Field(..., ge=0, description="Energy savings price [KRW/kWh]")

    @property
    def higher_tariff(self) -> bool:
        return HIGHER_TARIFF_MARKER in self.name


DEFAULT_TARIFF_PRESETS: List[TariffPreset] = [
    TariffPreset(name="산업용(을) 고압A - 선택2", base_rate=8320, savings_price=210.5),
    TariffPreset(name="산업용(갑)2 고압A - 선택2", base_rate=7470, savings_price=136.47),
    TariffPreset(name="산업용(갑)I 저압", base_rate=5550, savings_price=108.4),
    TariffPreset(name="일반용(갑)I 저압", base_rate=6160, savings_price=114.4),
]


class RationalizationRow(BaseModel):
    """One billing-tier comparison row"""
    high_rate: float = Field(0.0, ge=0, description="Higher-tariff rate [KRW/kWh]")
    low_rate: float = Field(0.0, ge=0, description="Lower-tariff rate [KRW/kWh]")
    usage: float = Field(0.0, ge=0, description="Usage in this tier [kWh]")

    @property
    def saving(self) -> float:
        return (self.high_rate - self.low_rate) * self.usage


class RationalizationInputs(BaseModel):
    """Tariff re-classification comparison (higher-tariff contracts only)"""
    base: RationalizationRow = Field(default_factory=RationalizationRow)
    light: RationalizationRow = Field(default_factory=RationalizationRow)
    mid: RationalizationRow = Field(default_factory=RationalizationRow)
    max: RationalizationRow = Field(default_factory=RationalizationRow)
    base_savings_manual: Optional[float] = Field(
        None, description="Manual override of the base-tier saving [KRW]"
    )


class LoanStructure(BaseModel):
    """Loan share and grace/repayment periods of a financed scenario"""
    loan_ratio: float = Field(..., ge=0, le=100, description="Share of investment financed [%]")
    grace_years: int = Field(..., ge=0, description="Interest-only years")
    repayment_years: int = Field(..., ge=1, description="Annuity repayment years")

    @model_validator(mode="after")
    def check_horizon(self):
        if self.grace_years + self.repayment_years > PROJECTION_YEARS:
            raise ValueError(
                f"grace_years + repayment_years must not exceed {PROJECTION_YEARS}"
            )
        return self

    @property
    def equity_ratio(self) -> float:
        return 100.0 - self.loan_ratio


def default_rps_structure() -> LoanStructure:
    return LoanStructure(loan_ratio=80.0, grace_years=5, repayment_years=10)


def default_factoring_structure() -> LoanStructure:
    return LoanStructure(loan_ratio=100.0, grace_years=1, repayment_years=9)


class SimulationSettings(BaseModel):
    """Scalar settings of one proposal"""
    capacity_kw: float = Field(0.0, ge=0, description="Nameplate capacity [kW]")
    module_tier: ModuleTier = ModuleTier.STANDARD
    business_model: BusinessModel = BusinessModel.RE100
    use_ec: bool = True
    ec_fleet_size: Optional[int] = Field(
        None, ge=0, le=EC_MAX_FLEET,
        description="EC units (None = derived from capacity)"
    )
    maintenance_rate: float = Field(MAX_MAINTENANCE_RATE, ge=0, description="Maintenance [% of revenue]")
    degradation_rate: float = Field(0.5, ge=0, lt=100, description="Annual output decline [%]")
    rec_average_price: float = Field(70_000.0, ge=0, description="REC average price [KRW/REC]")

    contract_type: str = Field(DEFAULT_TARIFF_PRESETS[0].name, description="Tariff contract name")
    base_rate: float = Field(DEFAULT_TARIFF_PRESETS[0].base_rate, ge=0, description="Demand charge [KRW/kW]")
    unit_price_savings: Optional[float] = Field(
        None, ge=0, description="Tariff savings price override [KRW/kWh]"
    )

    auto_maintenance: bool = Field(True, description="Calibrate maintenance rate to the cost ceiling")
    cost_ceiling: float = Field(DEFAULT_COST_CEILING, ge=0, description="Annual operating cost ceiling [KRW]")
    round_auto_generation: bool = False

    rps: LoanStructure = Field(default_factory=default_rps_structure)
    factoring: LoanStructure = Field(default_factory=default_factoring_structure)


class SimulationRequest(BaseModel):
    """Full simulation input"""
    records: List[MonthlyRecord] = Field(default_factory=list)
    settings: SimulationSettings = Field(default_factory=SimulationSettings)
    rationalization: RationalizationInputs = Field(default_factory=RationalizationInputs)
    config: Optional[PricingConfig] = Field(
        None, description="Pricing snapshot (service active config if omitted)"
    )


# =============================================================================
# Stage results
# =============================================================================

class MonthlyComputedRow(BaseModel):
    """Monthly record with derived generation, savings and bills"""
    month: int
    year: Optional[int] = None
    days: int
    usage_kwh: float
    self_consumption: float
    peak_kw: float
    total_bill: float
    base_bill: float
    auto_solar_generation: float
    solar_generation: float
    surplus_power: float
    max_load_savings: float
    base_bill_savings: float
    total_savings: float
    after_bill: float
    surplus_revenue: float


class MonthlyTotals(BaseModel):
    usage_kwh: float = 0.0
    self_consumption: float = 0.0
    solar_generation: float = 0.0
    surplus_power: float = 0.0
    total_bill: float = 0.0
    base_bill: float = 0.0
    max_load_savings: float = 0.0
    base_bill_savings: float = 0.0
    total_savings: float = 0.0
    after_bill: float = 0.0
    surplus_revenue: float = 0.0


class MonthlyMetrics(BaseModel):
    computed: List[MonthlyComputedRow]
    totals: MonthlyTotals
    saving_rate: float
    custom_saving_rate: float
    max_load_ratio: float
    total_benefit: float
    dynamic_peak_ratio: float


class EcAdvice(BaseModel):
    """EC fleet sizing advice (non-blocking)"""
    daily_surplus_kwh: float
    recommended_units: int
    fleet_size: int
    fleet_capacity_kwh: float
    over_provisioned: bool
    under_provisioned: bool
    message: str


class RevenueBreakdown(BaseModel):
    volume_self: float
    volume_ec: float
    volume_surplus: float
    raw_surplus: float
    ec_capacity: float
    applied_savings_price: float
    applied_ec_price: float
    revenue_saving: float
    revenue_ec: float
    revenue_surplus: float
    rationalization_savings: float
    gross_revenue: float


class CostBreakdown(BaseModel):
    maintenance_rate: float
    maintenance_cost: float
    labor_cost: float
    total_cost: float
    net_operating_profit: float


class CalibrationResult(BaseModel):
    """Outcome of one maintenance-rate calibration pass"""
    rate: float = Field(..., description="Rate to apply [%]")
    ideal_rate: float = Field(..., description="Highest rate respecting the ceiling [%]")
    exceeds_ceiling: bool = Field(..., description="Input rate breaches the cost ceiling")
    requires_confirmation: bool = Field(False, description="Caller should confirm before lowering")
    changed: bool
    action: CalibrationAction


class InvestmentBreakdown(BaseModel):
    solar_unit_price: float
    ec_units: int
    solar_cost: float
    ec_cost: float
    tractor_cost: float
    platform_cost: float
    total_initial: float
    annual_operating_cost: float
    total_over_20_years: float
    # Per-year split over the projection horizon
    solar_split: float
    ec_split: float
    tractor_split: float
    platform_split: float
    maintenance_split: float


class ProjectionResult(BaseModel):
    first_year_profit: float
    total_profit_20: float
    degradation_rate: float
    years: int = PROJECTION_YEARS


class YearlyProfit(BaseModel):
    year: int
    generation_ratio: float
    profit: float
    cumulative_profit: float


class RecMetrics(BaseModel):
    """Renewable Energy Certificate equivalents per year"""
    rec_count: float
    rec_annual_revenue: float


class LoanScenario(BaseModel):
    """Self-funded or loan-financed scenario"""
    model: FinancingModel
    principal: float
    equity: float
    interest_rate: float = Field(..., description="Annual rate [%]")
    grace_years: int = 0
    repayment_years: int = 0
    interest_only: float = Field(0.0, description="Annual interest during grace [KRW]")
    annuity_payment: float = Field(0.0, description="PMT result (negative = outflow) [KRW]")
    net_grace: float = Field(0.0, description="Annual net profit during grace [KRW]")
    net_repayment: float = Field(0.0, description="Annual net profit during repayment [KRW]")
    debt_service_schedule: List[float] = Field(default_factory=list)
    net_profit_20y: float
    roi_years: Optional[float] = Field(..., description="Payback years, None when profit <= 0")
    rec: RecMetrics


class FlatRevenueScenario(BaseModel):
    """Rental / subscription scenario (no operator capital)"""
    model: FinancingModel
    annual_revenue: float
    net_profit_20y: float
    rec: RecMetrics


class FinancingComparison(BaseModel):
    self_funded: LoanScenario
    rps: LoanScenario
    factoring: LoanScenario
    rental: FlatRevenueScenario
    subscription: FlatRevenueScenario
    best_model: FinancingModel
    best_no_investment_model: FinancingModel = Field(
        ..., description="Best scenario needing no operator equity"
    )
    profit_advantage_over_no_investment: float = Field(
        ..., description="Best 20-year profit minus the best no-investment profit [KRW]"
    )
    recommendation: str = ""

    def net_profits(self) -> Dict[FinancingModel, float]:
        return {
            FinancingModel.SELF_FUNDED: self.self_funded.net_profit_20y,
            FinancingModel.RPS: self.rps.net_profit_20y,
            FinancingModel.FACTORING: self.factoring.net_profit_20y,
            FinancingModel.RENTAL: self.rental.net_profit_20y,
            FinancingModel.SUBSCRIPTION: self.subscription.net_profit_20y,
        }


class PlanScenario(BaseModel):
    """Standard (REC 1.5) or premium (REC 5.0) EC price plan"""
    name: str
    ec_price: float
    gross_revenue: float
    annual_cost: float
    annual_net_profit: float
    total_profit_20: float
    investment: float
    roi_years: float
    profit_rate: float


class PlanComparison(BaseModel):
    standard: PlanScenario
    premium: PlanScenario


# =============================================================================
# Flat simulation result
# =============================================================================

class SimulationResult(BaseModel):
    """Every intermediate and final figure of one simulation run"""
    engine_version: str = ENGINE_VERSION
    business_model: BusinessModel
    module_tier: ModuleTier
    capacity_kw: float
    module_count: int
    use_ec_effective: bool
    ec_fleet_size: int

    # Monthly metrics
    monthly: List[MonthlyComputedRow]
    monthly_totals: MonthlyTotals
    saving_rate: float
    custom_saving_rate: float
    max_load_ratio: float
    total_benefit: float
    dynamic_peak_ratio: float

    # Volumes [kWh]
    annual_generation: float
    annual_usage: float
    annual_self_consumption: float
    annual_surplus: float
    volume_self: float
    volume_ec: float
    volume_surplus: float
    ec_capacity: float
    re100_rate: float

    # Revenue [KRW/year]
    applied_savings_price: float
    applied_ec_price: float
    revenue_saving: float
    revenue_ec: float
    revenue_surplus: float
    rationalization_savings: float
    gross_revenue: float

    # Cost [KRW/year]
    maintenance_rate_input: float
    maintenance_rate: float
    ideal_maintenance_rate: float
    maintenance_exceeds_ceiling: bool
    maintenance_cost: float
    labor_cost: float
    annual_cost: float
    annual_operating_profit: float

    # Investment [KRW]
    solar_unit_price: float
    solar_cost: float
    ec_cost: float
    tractor_cost: float
    platform_cost: float
    total_investment: float
    total_investment_20_years: float

    # Projection
    degradation_rate: float
    first_year_profit: float
    yearly_profits: List[YearlyProfit]
    self_roi_percent: float

    # Financing [KRW over 20 years]
    self_final_profit: float
    rps_final_profit: float
    fac_final_profit: float
    rental_final_profit: float
    sub_final_profit: float
    rps_interest_only: float
    rps_pmt: float
    fac_interest_only: float
    fac_pmt: float
    rental_revenue_yr: float
    sub_revenue_yr: float
    self_roi_years: Optional[float]
    rps_roi_years: Optional[float]
    fac_roi_years: Optional[float]
    best_financing_model: FinancingModel
    best_no_investment_model: FinancingModel
    profit_advantage_over_no_investment: float
    financing: FinancingComparison

    ec_advice: EcAdvice

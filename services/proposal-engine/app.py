"""
Proposal Engine Service
=======================
FastAPI service around the proposal simulation engine.

Endpoints:
- POST /simulate - Full proposal simulation
- POST /simulate/plans - REC 1.5 vs REC 5.0 EC price plans
- POST /monthly-metrics - Monthly generation, savings and bills
- POST /maintenance/calibrate - Maintenance rate vs cost ceiling
- POST /ec/recommend - EC fleet recommendation
- POST /financing/compare - Financing scenarios for given totals
- POST /site/capacity - Capacity from roof areas
- GET/PATCH /config, POST /config/reset - Active pricing configuration
- GET /tariffs - Contract presets
- GET /health - Health check
- GET /info - Service info

Port: 8040
"""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from pydantic import BaseModel, Field

from proposal_sim import (
    BusinessModel,
    DEFAULT_TARIFF_PRESETS,
    ENGINE_VERSION,
    FinancingModel,
    MonthlyRecord,
    PricingConfig,
    ProposalSimulator,
    SimulationRequest,
    TariffPreset,
    calibrate_maintenance_rate,
    capacity_from_roof_area,
    compare_ec_price_plans,
    compare_financing_models,
    compute_monthly_metrics,
    module_count,
    normalize_monthly_records,
    recommend_ec_fleet,
)
from proposal_sim.models import (
    CalibrationResult,
    DEFAULT_COST_CEILING,
    EcAdvice,
    FinancingComparison,
    LoanStructure,
    MonthlyMetrics,
    PlanComparison,
    SimulationResult,
    default_factoring_structure,
    default_rps_structure,
)

# =============================================================================
# Configuration
# =============================================================================

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
CORS_ORIGINS = [o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()]
PRICING_CONFIG_FILE = os.environ.get("PRICING_CONFIG_FILE", "")
SERVICE_PORT = int(os.environ.get("SERVICE_PORT", "8040"))
SERVICE_VERSION = "1.0.0"

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("proposal-engine")


def load_pricing_config(path: str) -> PricingConfig:
    """Defaults, overridden by a JSON file when a path is given"""
    if not path:
        return PricingConfig()
    logger.info("Loading pricing config from %s", path)
    return PricingConfig.model_validate_json(Path(path).read_text(encoding="utf-8"))


# The single active pricing configuration. Replaced, never mutated.
_active_config: PricingConfig = PricingConfig()


def get_active_config() -> PricingConfig:
    return _active_config


def set_active_config(config: PricingConfig) -> PricingConfig:
    global _active_config
    _active_config = config
    return _active_config


# =============================================================================
# Application Setup
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    set_active_config(load_pricing_config(PRICING_CONFIG_FILE))
    logger.info("Proposal Engine Service starting (engine %s)...", ENGINE_VERSION)
    yield
    logger.info("Proposal Engine Service shutting down...")


app = FastAPI(
    title="Proposal Engine Service",
    description="Solar proposal revenue, cost, investment and financing simulation",
    version=SERVICE_VERSION,
    lifespan=lifespan,
)

# Prometheus metrics
Instrumentator().instrument(app).expose(app)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Health and Info Endpoints
# =============================================================================

class HealthResponse(BaseModel):
    status: str
    service: str
    version: str


class ServiceInfo(BaseModel):
    name: str
    version: str
    engine_version: str
    description: str
    business_models: List[str]
    financing_models: List[str]
    features: List[str]


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint"""
    return HealthResponse(
        status="healthy",
        service="proposal-engine",
        version=SERVICE_VERSION,
    )


@app.get("/info", response_model=ServiceInfo)
async def service_info():
    """Service information and capabilities"""
    return ServiceInfo(
        name="Proposal Engine Service",
        version=SERVICE_VERSION,
        engine_version=ENGINE_VERSION,
        description="Solar proposal simulation with financing comparison",
        business_models=[m.value for m in BusinessModel],
        financing_models=[m.value for m in FinancingModel],
        features=[
            "Monthly generation and bill savings",
            "Measured and estimated demand-charge savings",
            "Self-consumption / EC / grid volume split",
            "EC fleet recommendation",
            "Maintenance rate calibration to a cost ceiling",
            "20-year projection with degradation",
            "Self-funded, RPS, factoring, rental and subscription comparison",
            "REC 1.5 vs REC 5.0 plan comparison",
        ],
    )


# =============================================================================
# Configuration Endpoints
# =============================================================================

@app.get("/config", response_model=PricingConfig)
async def get_config():
    """Active pricing configuration"""
    return get_active_config()


@app.patch("/config", response_model=PricingConfig)
async def update_config(changes: Dict[str, float]):
    """Update fields of the active pricing configuration"""
    try:
        updated = get_active_config().updated(**changes)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info("Pricing config updated: %s", sorted(changes))
    return set_active_config(updated)


@app.post("/config/reset", response_model=PricingConfig)
async def reset_config():
    """Restore the startup pricing configuration"""
    logger.info("Pricing config reset")
    return set_active_config(load_pricing_config(PRICING_CONFIG_FILE))


@app.get("/tariffs", response_model=List[TariffPreset])
async def list_tariffs():
    """Electricity contract presets"""
    return DEFAULT_TARIFF_PRESETS


# =============================================================================
# Simulation Endpoints
# =============================================================================

@app.post("/simulate", response_model=SimulationResult)
async def simulate(request: SimulationRequest):
    """Run the full proposal simulation"""
    try:
        return ProposalSimulator(get_active_config()).simulate(request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Simulation failed")
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/simulate/plans", response_model=PlanComparison)
async def simulate_plans(request: SimulationRequest):
    """Compare REC 1.5 and REC 5.0 EC price plans for a proposal"""
    try:
        config = request.config or get_active_config()
        result = ProposalSimulator(config).simulate(request)
        return compare_ec_price_plans(result, config)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Plan comparison failed")
        raise HTTPException(status_code=500, detail=str(e))


class MonthlyMetricsRequest(BaseModel):
    records: List[MonthlyRecord]
    capacity_kw: float = Field(..., ge=0)
    base_rate: float = Field(..., ge=0)
    unit_price_savings: Optional[float] = Field(None, ge=0)
    round_auto_generation: bool = False
    normalize: bool = Field(True, description="Fill the calendar year to 12 months")


@app.post("/monthly-metrics", response_model=MonthlyMetrics)
async def monthly_metrics(request: MonthlyMetricsRequest):
    """Monthly generation, savings and post-installation bills"""
    records = normalize_monthly_records(request.records) if request.normalize else request.records
    return compute_monthly_metrics(
        records,
        capacity_kw=request.capacity_kw,
        base_rate=request.base_rate,
        unit_price_savings=request.unit_price_savings,
        config=get_active_config(),
        round_auto_generation=request.round_auto_generation,
    )


class CalibrationRequest(BaseModel):
    gross_revenue: float = Field(..., ge=0)
    labor_cost: float = Field(0.0, ge=0)
    current_rate: float = Field(..., ge=0)
    cost_ceiling: float = Field(DEFAULT_COST_CEILING, ge=0)
    auto_mode: bool = True
    model_changed: bool = False
    suppress_alerts: bool = False


@app.post("/maintenance/calibrate", response_model=CalibrationResult)
async def calibrate(request: CalibrationRequest):
    """Calibrate the maintenance rate against the annual cost ceiling"""
    return calibrate_maintenance_rate(**request.model_dump())


class EcRecommendRequest(BaseModel):
    annual_surplus_kwh: float = Field(..., ge=0)
    ec_fleet_size: int = Field(..., ge=0, le=3)


@app.post("/ec/recommend", response_model=EcAdvice)
async def ec_recommend(request: EcRecommendRequest):
    """EC fleet size recommendation for an annual surplus"""
    return recommend_ec_fleet(request.annual_surplus_kwh, request.ec_fleet_size)


class FinancingRequest(BaseModel):
    total_investment: float = Field(..., ge=0)
    self_funded_profit_20y: float
    annual_operating_profit: float
    capacity_kw: float = Field(..., ge=0)
    annual_self_consumption: float = Field(0.0, ge=0)
    annual_surplus: float = Field(0.0, ge=0)
    rps: LoanStructure = Field(default_factory=default_rps_structure)
    factoring: LoanStructure = Field(default_factory=default_factoring_structure)
    rec_average_price: float = Field(0.0, ge=0)


@app.post("/financing/compare", response_model=FinancingComparison)
async def financing_compare(request: FinancingRequest):
    """Compare financing scenarios for given investment and profit totals"""
    return compare_financing_models(
        request.total_investment,
        request.self_funded_profit_20y,
        request.annual_operating_profit,
        get_active_config(),
        capacity_kw=request.capacity_kw,
        annual_self_consumption=request.annual_self_consumption,
        annual_surplus=request.annual_surplus,
        rps=request.rps,
        factoring=request.factoring,
        rec_average_price=request.rec_average_price,
    )


class SiteCapacityRequest(BaseModel):
    roof_areas_m2: List[float] = Field(..., description="Roof areas [m2]")


@app.post("/site/capacity")
async def site_capacity(request: SiteCapacityRequest) -> Dict[str, Any]:
    """Installable capacity and module count for the roof areas"""
    capacity = capacity_from_roof_area(request.roof_areas_m2)
    total_m2 = sum(max(0.0, a) for a in request.roof_areas_m2)
    return {
        "total_area_m2": total_m2,
        "capacity_kw": capacity,
        "module_count": module_count(capacity, get_active_config().solar_panel_wattage),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=SERVICE_PORT)

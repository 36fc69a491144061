"""
Tests for the Proposal Engine API
=================================
Tests cover:
- Health and info
- Active pricing config (get / patch / reset)
- Simulation and plan endpoints
- Helper endpoints (calibration, EC advice, financing, site capacity)
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from fastapi.testclient import TestClient

import app as service
from proposal_sim.models import PricingConfig


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def client():
    service.set_active_config(PricingConfig())
    yield TestClient(service.app)
    service.set_active_config(PricingConfig())


@pytest.fixture
def reference_request():
    """500 kW site, flat monthly profile, RE100 without EC"""
    return {
        "records": [
            {
                "month": m,
                "usage_kwh": 50_000,
                "self_consumption": 30_000,
                "peak_kw": 0,
                "total_bill": 8_000_000,
                "base_bill": 1_000_000,
            }
            for m in range(1, 13)
        ],
        "settings": {"capacity_kw": 500, "business_model": "RE100", "use_ec": False},
    }


# =============================================================================
# Health / Info
# =============================================================================

class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_info(self, client):
        data = client.get("/info").json()
        assert data["business_models"] == ["KEPCO", "RE100", "REC5"]
        assert "subscription" in data["financing_models"]

    def test_tariffs(self, client):
        data = client.get("/tariffs").json()
        assert len(data) == 4
        assert data[0]["base_rate"] == 8320


# =============================================================================
# Config
# =============================================================================

class TestConfig:

    def test_defaults(self, client):
        data = client.get("/config").json()
        assert data["unit_price_kepco"] == 192.79
        assert data["solar_radiation"] == 3.64

    def test_patch(self, client):
        response = client.patch("/config", json={"unit_price_kepco": 200.0})
        assert response.status_code == 200
        assert response.json()["unit_price_kepco"] == 200.0
        assert client.get("/config").json()["unit_price_kepco"] == 200.0

    def test_patch_unknown_field(self, client):
        response = client.patch("/config", json={"no_such_price": 1.0})
        assert response.status_code == 400

    def test_patch_negative_value(self, client):
        response = client.patch("/config", json={"price_tractor": -1.0})
        assert response.status_code == 400
        assert client.get("/config").json()["price_tractor"] == 40_000_000

    def test_reset(self, client):
        client.patch("/config", json={"unit_price_kepco": 200.0})
        data = client.post("/config/reset").json()
        assert data["unit_price_kepco"] == 192.79

    def test_active_config_used_by_simulation(self, client, reference_request):
        client.patch("/config", json={"unit_price_kepco": 100.0})
        data = client.post("/simulate", json=reference_request).json()
        assert data["revenue_surplus"] == pytest.approx(304_300 * 100.0)


# =============================================================================
# Simulation
# =============================================================================

class TestSimulate:

    def test_reference_scenario(self, client, reference_request):
        response = client.post("/simulate", json=reference_request)
        assert response.status_code == 200
        data = response.json()
        assert data["annual_generation"] == pytest.approx(664_300)
        assert data["gross_revenue"] == pytest.approx(360_000 * 136.47 + 304_300 * 192.79)
        assert data["engine_version"] == "1.0.0"
        assert len(data["yearly_profits"]) == 20
        assert data["best_no_investment_model"] == data["financing"]["best_no_investment_model"]
        assert data["profit_advantage_over_no_investment"] >= 0

    def test_unknown_business_model_falls_back(self, client, reference_request):
        reference_request["settings"]["business_model"] = "SOMETHING"
        response = client.post("/simulate", json=reference_request)
        assert response.status_code == 200
        assert response.json()["business_model"] == "RE100"

    def test_invalid_month(self, client, reference_request):
        reference_request["records"][0]["month"] = 13
        response = client.post("/simulate", json=reference_request)
        assert response.status_code == 422

    def test_plans(self, client, reference_request):
        reference_request["settings"].update({"use_ec": True, "ec_fleet_size": 1})
        data = client.post("/simulate/plans", json=reference_request).json()
        assert data["premium"]["gross_revenue"] > data["standard"]["gross_revenue"]

    def test_monthly_metrics(self, client, reference_request):
        response = client.post("/monthly-metrics", json={
            "records": reference_request["records"][:3],
            "capacity_kw": 500,
            "base_rate": 8320,
        })
        assert response.status_code == 200
        data = response.json()
        assert len(data["computed"]) == 12
        assert data["computed"][3]["usage_kwh"] == 0.0


# =============================================================================
# Helpers
# =============================================================================

class TestHelpers:

    def test_calibrate(self, client):
        data = client.post("/maintenance/calibrate", json={
            "gross_revenue": 100_000_000,
            "labor_cost": 40_000_000,
            "current_rate": 25.0,
        }).json()
        assert data["ideal_rate"] == 25.0
        assert data["rate"] == 25.0
        assert data["changed"] is False

    def test_calibrate_manual_confirmation(self, client):
        data = client.post("/maintenance/calibrate", json={
            "gross_revenue": 500_000_000,
            "labor_cost": 40_000_000,
            "current_rate": 25.0,
            "auto_mode": False,
        }).json()
        assert data["requires_confirmation"] is True
        assert data["ideal_rate"] == 8.0

    def test_ec_recommend(self, client):
        data = client.post("/ec/recommend", json={
            "annual_surplus_kwh": 1000 * 365,
            "ec_fleet_size": 1,
        }).json()
        assert data["recommended_units"] == 2
        assert data["under_provisioned"] is True

    def test_financing_compare(self, client):
        data = client.post("/financing/compare", json={
            "total_investment": 1_000_000_000,
            "self_funded_profit_20y": 2_000_000_000,
            "annual_operating_profit": 120_000_000,
            "capacity_kw": 500,
        }).json()
        assert data["best_model"] == "self_funded"
        assert data["factoring"]["equity"] == 0.0

    def test_financing_rejects_bad_structure(self, client):
        response = client.post("/financing/compare", json={
            "total_investment": 1_000_000_000,
            "self_funded_profit_20y": 2_000_000_000,
            "annual_operating_profit": 120_000_000,
            "capacity_kw": 500,
            "rps": {"loan_ratio": 80, "grace_years": 15, "repayment_years": 10},
        })
        assert response.status_code == 422

    def test_site_capacity(self, client):
        data = client.post("/site/capacity", json={"roof_areas_m2": [500, 500]}).json()
        assert data["capacity_kw"] == 151
        assert data["module_count"] == 234

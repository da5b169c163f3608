"""
Proxy API tests: response envelopes, the /api prefix, live-only
requests and error status codes. The hosted service is replaced with
one built over scripted adapters.
"""

import pytest
from fastapi.testclient import TestClient

from api.main import app, get_service, live_only_flag
from forest_engine.errors import ProviderError
from forest_engine.facade import ForestDataService
from forest_engine.models import DataCategory, Route

from conftest import ScriptedAdapter, make_alert, make_weather


@pytest.fixture
def adapters():
    return {
        DataCategory.FIRE: ScriptedAdapter(
            DataCategory.FIRE, [make_alert("fire_1")], source="nasa-firms:modis_nrt"
        ),
        DataCategory.DEFORESTATION: ScriptedAdapter(
            DataCategory.DEFORESTATION,
            ProviderError(DataCategory.DEFORESTATION, Route.DIRECT, "HTTP 503: Service Unavailable"),
        ),
        DataCategory.WEATHER: ScriptedAdapter(DataCategory.WEATHER, [make_weather()], source="openweather"),
    }


@pytest.fixture
def client(capabilities, make_executor, adapters):
    service = ForestDataService(capabilities, make_executor(adapters=adapters), tracked_species=["Panthera onca"])
    app.dependency_overrides[get_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()
    service.close()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["live_only"] is False
    assert body["configured"] == {"nasa_firms": True, "openweather": True}


@pytest.mark.parametrize("path", ["/fire-alerts", "/api/fire-alerts"])
def test_fire_alerts_envelope(client, path):
    response = client.get(path, params={"region": "world", "days": 1})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["source"] == "nasa-firms:modis_nrt"
    assert [alert["id"] for alert in body["data"]] == ["fire_1"]
    assert body["data"][0]["category"] == "fire"


def test_failed_upstream_falls_back_to_mock(client):
    body = client.get("/deforestation-alerts").json()
    assert body["success"] is True
    assert body["source"] == "mock-fallback"
    assert all(alert["source"] == "mock-fallback" for alert in body["data"])


def test_no_mock_request_surfaces_failure(client):
    response = client.get("/deforestation-alerts", params={"no_mock": "1"})
    assert response.status_code == 502
    body = response.json()
    assert body["success"] is False
    assert "deforestation" in body["error"]


def test_weather_is_a_single_record(client):
    body = client.get("/api/weather", params={"lat": -3.1, "lng": -60.0}).json()
    assert body["source"] == "openweather"
    assert body["data"]["fire_weather_index"] == 40.0


@pytest.mark.parametrize("path", ["/weather", "/satellite-data"])
def test_missing_coordinates_are_rejected(client, path):
    response = client.get(path, params={"lat": 1.0})
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Latitude and longitude required"}


def test_invalid_parameters_are_rejected(client):
    response = client.get("/fire-alerts", params={"days": 0})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_regions_without_adapter_are_mocked(client):
    body = client.get("/forest-regions").json()
    assert body["source"] == "mock"
    assert len(body["data"]) == 6


def test_biodiversity_uses_tracked_species(client):
    body = client.get("/biodiversity", params={"limit": 3}).json()
    assert [s["scientific_name"] for s in body["data"]] == ["Panthera onca"]


def test_satellite_data(client):
    body = client.get("/satellite-data", params={"lat": -3.4, "lng": -62.2}).json()
    assert body["source"] == "mock"
    assert body["data"]["layer"] == "MODIS_Terra_CorrectedReflectance_TrueColor"


def test_sources(client):
    body = client.get("/sources").json()
    assert body["success"] is True
    assert {status["source"] for status in body["data"]} >= {"nasa-firms:modis_nrt", "openweather"}


def test_unknown_endpoint(client):
    response = client.get("/no-such-endpoint")
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Endpoint not found"}


def test_fire_alerts_dataset_is_passed_through(client, adapters):
    fire = adapters[DataCategory.FIRE]
    client.get("/fire-alerts", params={"dataset": "VIIRS_NOAA20_NRT"})
    assert fire.params == [{"region": "world", "days": 1, "dataset": "VIIRS_NOAA20_NRT"}]


@pytest.mark.parametrize("value,expected", [
    ("1", True), ("true", True), ("0", None), ("false", None), ("", None), (None, None),
])
def test_no_mock_can_only_tighten_the_server_setting(value, expected):
    assert live_only_flag(value) is expected


def test_no_mock_zero_does_not_lift_server_live_only(client, capabilities):
    capabilities.set_live_only(True)
    response = client.get("/deforestation-alerts", params={"no_mock": "0"})
    assert response.status_code == 502

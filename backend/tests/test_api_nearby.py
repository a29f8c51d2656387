from fastapi import FastAPI
from fastapi.testclient import TestClient
import pytest

from api.routes import nearby as nearby_router
from domain.errors import InvalidLocation, MalformedResponse, UpstreamUnavailable
from services.resolver import PoiResolver


class FakeClient:
    def __init__(self, features=None, error=None):
        self.features = features or []
        self.error = error
        self.calls = 0

    def fetch_features(self, location, category, radius_m=None):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.features


FEATURES = [
    {
        "type": "way",
        "id": 2001,
        "center": {"lat": 52.5641, "lon": 13.4050},
        "tags": {"amenity": "hospital", "name": "Vivantes Klinikum", "addr:street": "Landsberger Allee", "emergency": "yes"},
    },
    {
        "type": "node",
        "id": 1001,
        "lat": 52.5407,
        "lon": 13.4050,
        "tags": {"amenity": "hospital", "name": "St. Hedwig", "addr:street": "Große Hamburger Straße", "addr:housenumber": "5"},
    },
    {"type": "node", "id": 3001, "lat": 52.5210, "lon": 13.4050, "tags": {"amenity": "pharmacy", "name": "Apotheke am Markt"}},
]


@pytest.fixture
def make_client(monkeypatch):
    def _make(features=None, error=None):
        fake = FakeClient(features if features is not None else FEATURES, error)
        monkeypatch.setattr(nearby_router, "resolver", PoiResolver(client=fake))
        app = FastAPI()
        app.include_router(nearby_router.router)
        return TestClient(app), fake

    return _make


def test_get_nearby_hospitals_sorted(make_client):
    client, fake = make_client()
    resp = client.get("/nearby/hospital", params={"lat": 52.52, "lng": 13.405})
    assert resp.status_code == 200
    data = resp.json()
    assert data["category"] == "hospital"
    assert data["origin"] == {"lat": 52.52, "lng": 13.405}
    assert data["count"] == 2
    assert [r["name"] for r in data["results"]] == ["St. Hedwig", "Vivantes Klinikum"]
    assert [r["distance"] for r in data["results"]] == [2.3, 4.9]
    assert data["results"][0]["address"] == "Große Hamburger Straße 5"
    assert data["results"][1]["services"] == ["Emergency care"]
    assert data["message"] is None
    assert fake.calls == 1


def test_get_nearby_applies_radius_and_text_filters(make_client):
    client, _ = make_client()
    resp = client.get("/nearby/hospital", params={"lat": 52.52, "lng": 13.405, "radius_km": 3})
    assert [r["id"] for r in resp.json()["results"]] == ["1001"]

    resp = client.get("/nearby/hospital", params={"lat": 52.52, "lng": 13.405, "q": "landsberger"})
    assert [r["id"] for r in resp.json()["results"]] == ["2001"]


def test_get_nearby_pharmacies(make_client):
    client, _ = make_client()
    data = client.get("/nearby/pharmacy", params={"lat": 52.52, "lng": 13.405}).json()
    assert [r["name"] for r in data["results"]] == ["Apotheke am Markt"]
    assert data["results"][0]["opening_hours"] == "not specified"
    assert "emergency_unit" not in data["results"][0] or data["results"][0]["emergency_unit"] is None


def test_empty_results_suggest_larger_radius(make_client):
    client, _ = make_client(features=[])
    resp = client.get("/nearby/pharmacy", params={"lat": 52.52, "lng": 13.405})
    assert resp.status_code == 200
    assert resp.json()["results"] == []
    assert resp.json()["message"] == "No pharmacies found in your area. Try increasing the search radius."


def test_invalid_location_returns_422_without_fetch(make_client):
    client, fake = make_client()
    resp = client.get("/nearby/hospital", params={"lat": 123.0, "lng": 13.405})
    assert resp.status_code == 422
    assert resp.json()["detail"]["error"] == "invalid_location"
    assert fake.calls == 0


@pytest.mark.parametrize(
    "error, kind",
    [(UpstreamUnavailable("down", status_code=504), "upstream_unavailable"), (MalformedResponse("bad"), "malformed_response")],
)
def test_upstream_failures_return_502(make_client, error, kind):
    client, _ = make_client(error=error)
    resp = client.get("/nearby/hospital", params={"lat": 52.52, "lng": 13.405})
    assert resp.status_code == 502
    detail = resp.json()["detail"]
    assert detail["error"] == kind
    assert detail["permission"] is False


def test_unknown_category_returns_404(make_client):
    client, _ = make_client()
    resp = client.get("/nearby/dentist", params={"lat": 52.52, "lng": 13.405})
    assert resp.status_code == 404


def test_post_with_location_reading(make_client):
    client, _ = make_client()
    resp = client.post(
        "/nearby/hospital",
        json={"lat": 52.52, "lng": 13.405, "accuracy": 30.0, "timestamp": 1700000000000, "radius_km": 5},
    )
    assert resp.status_code == 200
    assert resp.json()["count"] == 2


def test_post_with_permission_denied(make_client):
    client, fake = make_client()
    resp = client.post("/nearby/hospital", json={"error": "permission_denied"})
    assert resp.status_code == 400
    detail = resp.json()["detail"]
    assert detail["error"] == "permission_denied"
    assert detail["permission"] is True
    assert "Settings > Location" in detail["message"]
    assert fake.calls == 0


def test_post_with_timeout_is_transient(make_client):
    client, _ = make_client()
    resp = client.post("/nearby/pharmacy", json={"error": "timeout"})
    assert resp.status_code == 503
    assert resp.json()["detail"]["permission"] is False


def test_post_with_unknown_error_kind(make_client):
    client, _ = make_client()
    resp = client.post("/nearby/pharmacy", json={"error": "gremlins"})
    assert resp.status_code == 422
    assert "Unknown location error kind" in resp.json()["detail"]


def test_post_with_missing_coordinates_is_invalid_location(make_client):
    client, fake = make_client()
    resp = client.post("/nearby/hospital", json={"accuracy": 30.0})
    assert resp.status_code == 422
    detail = resp.json()["detail"]
    assert detail["error"] == "invalid_location"
    assert fake.calls == 0


def test_post_with_malformed_reading_is_invalid_location(make_client, monkeypatch):
    def _reject(payload):
        raise InvalidLocation("Malformed location reading: bad timestamp")

    monkeypatch.setattr(nearby_router.LocationReading, "from_payload", staticmethod(_reject))
    client, fake = make_client()
    resp = client.post("/nearby/hospital", json={"lat": 52.52, "lng": 13.405, "timestamp": 1})
    assert resp.status_code == 422
    assert resp.json()["detail"]["error"] == "invalid_location"
    assert fake.calls == 0


def test_emergency_numbers(make_client):
    client, _ = make_client()
    resp = client.get("/emergency-numbers")
    assert resp.status_code == 200
    assert resp.json()["numbers"]["Police"] == "110"

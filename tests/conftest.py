import pytest
from fastapi.testclient import TestClient

from fleet_hub.config import Settings
from fleet_hub.main import create_app


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL="sqlite://",
        UPLOAD_DIR=str(tmp_path / "uploads"),
        ENABLE_METRICS=False,
        ENABLE_RATE_LIMIT=False,
        JWT_SECRET="test-secret-with-enough-bytes-for-hs256",
        IDENTITY_SECRET="directory-secret",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_vehicle(client):
    def _make(code="LT-001", **fields):
        body = {"code": code, "make": "Toyota", "model": "Hilux", "licensePlate": f"{code}-PL"}
        body.update(fields)
        r = client.post("/api/vehicles", json=body)
        assert r.status_code == 201, r.text
        return r.json()
    return _make


@pytest.fixture
def vehicle(make_vehicle):
    return make_vehicle()


@pytest.fixture
def make_work_order(client, vehicle):
    def _make(**fields):
        body = {"vehicleId": vehicle["id"], "title": "Brake pads worn", "reportedBy": "Thabo"}
        body.update(fields)
        r = client.post("/api/work-orders", json=body)
        assert r.status_code == 201, r.text
        return r.json()
    return _make


@pytest.fixture
def passing_inspection(client, vehicle):
    r = client.post("/api/inspections", json={
        "vehicleId": vehicle["id"],
        "inspectorName": "Lerato",
        "type": "detailed",
        "items": [{"category": "Brakes", "item": "Pads", "rating": "pass"}],
    })
    assert r.status_code == 201, r.text
    return r.json()

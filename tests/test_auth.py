import pytest
from fastapi.testclient import TestClient

from fleet_hub.config import Settings
from fleet_hub.main import create_app


DIRECTORY = {"X-Identity-Secret": "directory-secret"}


def _sync(client, headers=None, **fields):
    body = {"email": "ann@example.com", "firstName": "Ann", "lastName": "Moloi", "role": "mechanic"}
    body.update(fields)
    r = client.post("/api/users/sync", json=body, headers=headers or {})
    assert r.status_code == 200, r.text
    return r.json()


def _token(client, email="ann@example.com"):
    r = client.post("/api/auth/token", json={"email": email}, headers=DIRECTORY)
    assert r.status_code == 200, r.text
    return r.json()["token"]


def test_sync_upserts_without_token(client):
    user = _sync(client, organizationId="1PWR Zambia")
    assert user["name"] == "Ann Moloi"
    assert user["organization_id"] == "1pwr_zambia"
    assert "token" not in user

    again = _sync(client, firstName="Annie", organizationId="1pwr_zambia")
    assert again["id"] == user["id"]
    assert again["name"] == "Annie Moloi"

    mechanics = client.get("/api/users", params={"org": "1pwr_zambia", "role": "mechanic"}).json()
    assert [u["email"] for u in mechanics] == ["ann@example.com"]


def test_anonymous_resync_keeps_role(client):
    _sync(client, role="driver")
    again = _sync(client, role="admin", organizationId="1pwr_benin")
    assert again["role"] == "driver"
    assert again["organization_id"] == "1pwr_lesotho"

    promoted = _sync(client, headers=DIRECTORY, role="fleet_lead")
    assert promoted["role"] == "fleet_lead"


def test_token_requires_directory_secret(client):
    _sync(client)
    assert client.post("/api/auth/token", json={"email": "ann@example.com"}).status_code == 401
    r = client.post(
        "/api/auth/token", json={"email": "ann@example.com"}, headers={"X-Identity-Secret": "guess"}
    )
    assert r.status_code == 401
    r = client.post("/api/auth/token", json={"email": "nobody@example.com"}, headers=DIRECTORY)
    assert r.status_code == 401

    r = client.post("/api/auth/token", json={"email": "ann@example.com"}, headers=DIRECTORY)
    assert r.status_code == 200
    assert r.json()["token"]
    assert r.json()["role"] == "mechanic"


def test_token_identifies_actor(client, vehicle):
    _sync(client)
    token = _token(client)
    r = client.post(
        "/api/work-orders",
        json={"vehicleId": vehicle["id"], "title": "Lights"},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert r.status_code == 201
    assert r.json()["reported_by"] == "Ann Moloi"
    history = client.get(f"/api/work-orders/{r.json()['id']}/history").json()
    assert history[0]["changed_by_name"] == "Ann Moloi"


def test_bad_token_rejected(client, vehicle):
    r = client.post(
        "/api/work-orders",
        json={"vehicleId": vehicle["id"], "title": "Lights"},
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert r.status_code == 401


@pytest.fixture
def strict_client(tmp_path):
    settings = Settings(
        DATABASE_URL="sqlite://",
        UPLOAD_DIR=str(tmp_path / "uploads"),
        REQUIRE_AUTH=True,
        JWT_SECRET="strict-secret-with-enough-bytes-for-hs256",
        IDENTITY_SECRET="directory-secret",
        ENABLE_METRICS=False,
        ENABLE_RATE_LIMIT=False,
    )
    with TestClient(create_app(settings)) as c:
        yield c


def test_required_auth_blocks_anonymous_writes(strict_client):
    assert strict_client.post("/api/vehicles", json={"code": "LT-009"}).status_code == 401
    assert strict_client.get("/api/vehicles").status_code == 200

    _sync(strict_client, headers=DIRECTORY)
    token = _token(strict_client)
    r = strict_client.post("/api/vehicles", json={"code": "LT-009"}, headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 201


def test_required_auth_blocks_anonymous_sync(strict_client):
    boss = _sync(strict_client, headers=DIRECTORY, email="boss@example.com", firstName="Boss", role="admin")

    r = strict_client.post(
        "/api/users/sync", json={"email": "boss@example.com", "firstName": "Mallory", "role": "admin"}
    )
    assert r.status_code == 401

    users = strict_client.get("/api/users", params={"role": "admin"}).json()
    assert [(u["id"], u["name"]) for u in users] == [(boss["id"], "Boss")]


def test_admin_can_change_roles(strict_client):
    _sync(strict_client, headers=DIRECTORY, email="boss@example.com", firstName="Boss", role="admin")
    _sync(strict_client, headers=DIRECTORY)
    admin = {"Authorization": f"Bearer {_token(strict_client, 'boss@example.com')}"}
    mechanic = {"Authorization": f"Bearer {_token(strict_client)}"}

    assert _sync(strict_client, headers=mechanic, role="admin")["role"] == "mechanic"
    assert _sync(strict_client, headers=admin, role="fleet_lead")["role"] == "fleet_lead"


def test_health_and_request_id(client):
    r = client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert r.json() == {"status": "ok", "environment": "dev"}
    assert r.headers["X-Request-ID"] == "abc-123"

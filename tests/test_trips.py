import pytest

from fleet_hub.errors import InvalidInputError
from fleet_hub.services.trips import trip_distance


def _checkout(client, vehicle, **fields):
    body = {
        "vehicleId": vehicle["id"],
        "driverName": "Thabo",
        "odoStart": 1000,
        "departureLocation": "HQ",
        "destination": "MAK",
    }
    body.update(fields)
    return client.post("/api/trips", json=body)


def test_trip_distance():
    assert trip_distance(100, 150) == 50
    assert trip_distance(100, None) is None
    with pytest.raises(InvalidInputError):
        trip_distance(150, 100)


def test_checkout_deploys_vehicle(client, vehicle):
    r = _checkout(client, vehicle, stops=[{"location": "Ha Nkau"}, {"location": "Sehlabathebe", "notes": "drop panels"}])
    assert r.status_code == 201, r.text
    trip = r.json()
    assert trip["checkin_at"] is None
    assert trip["vehicle_code"] == vehicle["code"]
    assert [s["stop_number"] for s in trip["stops"]] == [1, 2]
    assert trip["stops"][1]["notes"] == "drop panels"

    v = client.get(f"/api/vehicles/{vehicle['id']}").json()
    assert v["status"] == "deployed"
    assert v["current_location"] == "MAK"

    active = client.get("/api/trips", params={"active": "true"}).json()
    assert [t["id"] for t in active] == [trip["id"]]


def test_checkin_computes_distance_and_returns_vehicle(client, vehicle):
    trip = _checkout(client, vehicle).json()
    r = client.patch(f"/api/trips/{trip['id']}/checkin", json={"odoEnd": 1180, "issuesObserved": "none"})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["distance"] == 180
    assert body["arrival_location"] == "MAK"
    assert body["checkin_at"] is not None

    v = client.get(f"/api/vehicles/{vehicle['id']}").json()
    assert v["status"] == "operational"
    assert v["current_location"] == "MAK"
    assert client.get("/api/trips", params={"active": "true"}).json() == []


def test_checkin_accepts_post_and_arrival(client, vehicle):
    trip = _checkout(client, vehicle).json()
    r = client.post(f"/api/trips/{trip['id']}/checkin", json={"odoEnd": 1000, "arrivalLocation": "HQ"})
    assert r.status_code == 200
    assert r.json()["distance"] == 0
    assert client.get(f"/api/vehicles/{vehicle['id']}").json()["current_location"] == "HQ"


def test_negative_distance_rejected(client, vehicle):
    trip = _checkout(client, vehicle).json()
    r = client.patch(f"/api/trips/{trip['id']}/checkin", json={"odoEnd": 900})
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_input"

    stored = client.get(f"/api/trips/{trip['id']}").json()
    assert stored["checkin_at"] is None
    assert stored["odo_end"] is None
    assert client.get(f"/api/vehicles/{vehicle['id']}").json()["status"] == "deployed"


def test_double_checkin_rejected(client, vehicle):
    trip = _checkout(client, vehicle).json()
    assert client.patch(f"/api/trips/{trip['id']}/checkin", json={"odoEnd": 1010}).status_code == 200
    r = client.patch(f"/api/trips/{trip['id']}/checkin", json={"odoEnd": 1020})
    assert r.status_code == 400
    assert client.get(f"/api/trips/{trip['id']}").json()["odo_end"] == 1010


def test_second_checkout_is_allowed(client, vehicle):
    _checkout(client, vehicle)
    r = _checkout(client, vehicle, destination="QN")
    assert r.status_code == 201
    assert len(client.get("/api/trips", params={"vehicleId": vehicle["id"], "active": "true"}).json()) == 2


def test_update_recomputes_distance(client, vehicle):
    trip = _checkout(client, vehicle).json()
    client.patch(f"/api/trips/{trip['id']}/checkin", json={"odoEnd": 1100})

    r = client.patch(f"/api/trips/{trip['id']}", json={"odoStart": 1050})
    assert r.status_code == 200
    assert r.json()["distance"] == 50

    r = client.patch(f"/api/trips/{trip['id']}", json={"odoEnd": 1000})
    assert r.status_code == 400
    assert client.get(f"/api/trips/{trip['id']}").json()["odo_end"] == 1100

    assert client.patch(f"/api/trips/{trip['id']}", json={}).status_code == 400


def test_checkout_validation(client, vehicle):
    assert _checkout(client, vehicle, odoStart=-5).status_code == 422
    assert _checkout(client, vehicle, destination="").status_code == 422
    assert _checkout(client, {"id": "missing"}).status_code == 404


def test_delete_trip(client, vehicle):
    trip = _checkout(client, vehicle, stops=[{"location": "Ha Nkau"}]).json()
    assert client.delete(f"/api/trips/{trip['id']}").json() == {"success": True}
    assert client.get(f"/api/trips/{trip['id']}").status_code == 404

def test_create_and_list(client, make_vehicle):
    make_vehicle("LT-002", assetClass="heavy-vehicle")
    make_vehicle("LT-001", homeLocation="MAK")

    vehicles = client.get("/api/vehicles").json()
    assert [v["code"] for v in vehicles] == ["LT-001", "LT-002"]
    assert vehicles[0]["current_location"] == "MAK"
    assert vehicles[0]["organization_id"] == "1pwr_lesotho"

    heavy = client.get("/api/vehicles", params={"assetClass": "heavy-vehicle"}).json()
    assert [v["code"] for v in heavy] == ["LT-002"]
    assert client.get("/api/vehicles", params={"org": "1pwr_zambia"}).json() == []


def test_duplicate_code_conflicts(client, make_vehicle):
    make_vehicle("LT-001")
    r = client.post("/api/vehicles", json={"code": "LT-001"})
    assert r.status_code == 409
    assert r.json()["error"] == "conflict"

    other_org = client.post("/api/vehicles", json={"code": "LT-001", "organizationId": "1pwr_zambia"})
    assert other_org.status_code == 201


def test_patch_status_writes_log(client, vehicle):
    r = client.patch(f"/api/vehicles/{vehicle['id']}", json={"status": "grounded", "changedBy": "Fleet lead"})
    assert r.status_code == 200
    assert r.json()["status"] == "grounded"

    # same status again: no new log row
    client.patch(f"/api/vehicles/{vehicle['id']}", json={"status": "grounded"})

    log = client.get(f"/api/vehicles/{vehicle['id']}/status-log").json()
    assert len(log) == 1
    assert log[0]["old_status"] == "operational"
    assert log[0]["new_status"] == "grounded"
    assert log[0]["changed_by"] == "Fleet lead"


def test_patch_validation(client, make_vehicle):
    first = make_vehicle("LT-001")
    make_vehicle("LT-002")
    assert client.patch(f"/api/vehicles/{first['id']}", json={}).status_code == 400
    assert client.patch(f"/api/vehicles/{first['id']}", json={"code": "LT-002"}).status_code == 409
    assert client.patch(f"/api/vehicles/{first['id']}", json={"status": "flying"}).status_code == 422
    assert client.patch("/api/vehicles/missing", json={"make": "Ford"}).status_code == 404


def test_delete_retires(client, vehicle):
    r = client.delete(f"/api/vehicles/{vehicle['id']}")
    assert r.status_code == 200
    assert r.json()["status"] == "written-off"
    assert client.get(f"/api/vehicles/{vehicle['id']}").status_code == 200
    assert client.get("/api/vehicles", params={"status": "written-off"}).json()[0]["id"] == vehicle["id"]


def test_tco(client, make_vehicle):
    cheap = make_vehicle("LT-001")
    dear = make_vehicle("LT-002")
    wo = client.post("/api/work-orders", json={
        "vehicleId": dear["id"],
        "title": "Gearbox",
        "downtimeStart": "2024-01-01T00:00:00Z",
    }).json()
    client.post(f"/api/work-orders/{wo['id']}/parts", json={"description": "Gearbox", "quantity": 1, "unitCost": 9000})
    client.post(f"/api/work-orders/{wo['id']}/labor", json={"workerName": "Mpho", "hours": 10, "ratePerHour": 100})
    client.patch(f"/api/work-orders/{wo['id']}", json={"downtimeEnd": "2024-01-11T00:00:00Z"})

    rows = client.get("/api/vehicles/tco").json()
    assert [r["vehicle_code"] for r in rows] == ["LT-002", "LT-001"]
    top = rows[0]
    assert top["parts_cost"] == 9000
    assert top["labour_cost"] == 1000
    assert top["total_cost"] == 10000
    assert top["work_order_count"] == 1
    assert top["total_downtime_days"] == 10
    assert top["avg_repair_days"] == 10
    assert top["cost_per_day"] == 1000
    assert rows[1]["vehicle_id"] == cheap["id"]
    assert rows[1]["total_cost"] == 0
    assert rows[1]["cost_per_day"] == 0

def _checkout(client, vehicle, odo=1000):
    r = client.post("/api/trips", json={
        "vehicleId": vehicle["id"],
        "odoStart": odo,
        "departureLocation": "HQ",
        "destination": "MAK",
    })
    assert r.status_code == 201, r.text
    return r.json()


def test_dashboard(client, make_vehicle):
    a = make_vehicle("LT-001")
    b = make_vehicle("LT-002")
    make_vehicle("LT-003")
    _checkout(client, a)

    wo = client.post("/api/work-orders", json={"vehicleId": b["id"], "title": "Brakes", "priority": "critical"}).json()
    client.patch(f"/api/work-orders/{wo['id']}", json={"status": "queued"})
    client.patch(f"/api/work-orders/{wo['id']}", json={"status": "in-progress"})
    done = client.post("/api/work-orders", json={"vehicleId": b["id"], "title": "Wipers"}).json()
    client.patch(f"/api/work-orders/{done['id']}", json={"status": "cancelled"})

    body = client.get("/api/dashboard").json()
    assert body["totalVehicles"] == 3
    # cancelling the second order put LT-002 back in service
    assert body["operational"] == 2
    assert body["deployed"] == 1
    assert body["maintenanceHq"] == 0
    assert body["openWorkOrders"] == 1
    assert [t["vehicle_code"] for t in body["activeTrips"]] == ["LT-001"]
    assert [w["title"] for w in body["recentWorkOrders"]] == ["Brakes"]
    assert body["maintenance3rd"] == 0
    assert body["avgRepairDays"] == 0


def test_dashboard_empty_org(client):
    body = client.get("/api/dashboard", params={"org": "1pwr_benin"}).json()
    assert body["totalVehicles"] == 0
    assert body["avgRepairDays"] == 0
    assert body["activeTrips"] == []


def test_mechanic_activity(client, make_work_order):
    wo = make_work_order()
    base = f"/api/work-orders/{wo['id']}/labor"
    client.post(base, json={"workerName": "Mpho", "hours": 2, "ratePerHour": 100})
    client.post(base, json={"workerName": "Mpho", "hours": 1, "ratePerHour": 100})
    client.post(base, json={"workerName": "Tumelo", "hours": 5, "ratePerHour": 80})
    client.post(base, json={"workerName": "Old", "hours": 1, "workDate": "2020-01-01"})

    body = client.get("/api/mechanic-activity").json()
    assert body["period"] == "daily"
    assert body["periodStart"] == body["periodEnd"]
    assert body["mechanics"] == ["Mpho", "Old", "Tumelo"]
    assert [s["worker_name"] for s in body["summary"]] == ["Tumelo", "Mpho"]
    mpho = body["summary"][1]
    assert mpho["total_hours"] == 3
    assert mpho["total_cost"] == 300
    assert mpho["labor_entries"] == 2
    assert mpho["work_orders_touched"] == 1
    assert len(body["dailyBreakdown"]) == 2
    assert body["dailyBreakdown"][0]["vehicle_codes"] == "LT-001"
    assert len(body["detail"]) == 3

    only = client.get("/api/mechanic-activity", params={"from": "2020-01-01", "to": "2020-01-31", "mechanic": "Old"}).json()
    assert [d["worker_name"] for d in only["detail"]] == ["Old"]
    assert only["periodStart"] == "2020-01-01"


def test_generate_requires_tracked_vehicles(client, vehicle):
    r = client.post("/api/tracking-reports/generate")
    assert r.status_code == 400
    assert r.json()["generated"] == 0


def test_generate_from_trips(client, make_vehicle):
    tracked = make_vehicle("LT-001", trackerImei="868120000000001", trackerStatus="active")
    make_vehicle("LT-002", trackerImei="868120000000002", trackerStatus="inactive")
    trip = _checkout(client, tracked)
    client.patch(f"/api/trips/{trip['id']}/checkin", json={"odoEnd": 1120})

    r = client.post("/api/tracking-reports/generate", json={})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["generated"] == 1
    assert body["vehicles"] == ["LT-001"]
    assert body["skippedExisting"] == 0
    assert body["periodStart"] == body["reportDate"] == body["periodEnd"]

    again = client.post("/api/tracking-reports/generate").json()
    assert again["generated"] == 0
    assert again["skippedExisting"] == 1

    reports = client.get("/api/tracking-reports").json()
    assert len(reports) == 1
    report = reports[0]
    assert report["vehicle_code"] == "LT-001"
    assert report["total_distance_km"] == 120
    assert report["total_trips"] == 1
    assert report["start_location"] == "HQ"
    assert report["end_location"] == "MAK"
    assert report["report_source"] == "auto-generated"
    assert report["raw_data"] == {"tripIds": [trip["id"]]}


def test_manual_vehicle_tracking_report(client, vehicle):
    r = client.post(f"/api/vehicles/{vehicle['id']}/tracking-reports", json={
        "reportDate": "2024-03-01",
        "periodStart": "2024-03-01",
        "periodEnd": "2024-03-01",
        "totalDistanceKm": 88.5,
        "maxSpeedKmh": 96,
    })
    assert r.status_code == 201, r.text
    assert r.json()["report_source"] == "manual"

    listed = client.get(f"/api/vehicles/{vehicle['id']}/tracking-reports").json()
    assert [x["total_distance_km"] for x in listed] == [88.5]
    assert client.get("/api/tracking-reports", params={"from": "2024-04-01"}).json() == []
    assert client.get(f"/api/vehicles/{vehicle['id']}/tracking-reports", params={"limit": 1000}).status_code == 422

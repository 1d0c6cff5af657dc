import pytest


@pytest.fixture
def report(client, vehicle):
    r = client.post(
        "/api/field-reports",
        data={
            "vehicleId": vehicle["id"],
            "title": "Clutch slipping",
            "description": "Slips on hills",
            "severity": "high",
            "location": "MAK",
            "odometer": "45210",
            "isDriveable": "false",
            "reportedByName": "Thabo",
        },
        files=[
            ("photos", ("clutch.jpg", b"first-photo", "image/jpeg")),
            ("photos", ("dash.png", b"second-photo", "image/png")),
        ],
    )
    assert r.status_code == 201, r.text
    return r.json()


def test_submit_stores_photos(client, report):
    assert report["status"] == "open"
    assert report["photo_count"] == 2
    assert report["is_driveable"] is False
    assert [p["original_name"] for p in report["photos"]] == ["clutch.jpg", "dash.png"]
    assert all(p["category"] == "damage" for p in report["photos"])

    listed = client.get("/api/field-reports", params={"status": "open"}).json()
    assert [r["id"] for r in listed] == [report["id"]]
    assert len(listed[0]["photos"]) == 2


def test_submit_without_photos(client, vehicle):
    r = client.post("/api/field-reports", data={"vehicleId": vehicle["id"], "title": "Horn dead"})
    assert r.status_code == 201
    assert r.json()["photo_count"] == 0
    assert r.json()["severity"] == "medium"
    assert r.json()["is_driveable"] is True


def test_submit_requires_title(client, vehicle):
    r = client.post("/api/field-reports", data={"vehicleId": vehicle["id"]})
    assert r.status_code == 422


def test_convert_creates_work_order_once(client, report):
    r = client.post(f"/api/field-reports/{report['id']}/convert", json={"assignedTo": "Mpho"})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["reportId"] == report["id"]
    assert body["status"] == "converted"
    wo_id = body["workOrderId"]

    wo = client.get(f"/api/work-orders/{wo_id}").json()
    assert wo["title"] == "Clutch slipping"
    assert wo["type"] == "corrective"
    assert wo["priority"] == "high"
    assert wo["assigned_to"] == "Mpho"
    assert wo["odo_at_report"] == 45210
    assert wo["reported_by"] == "Thabo"
    assert "Vehicle is NOT driveable." in wo["description"]
    assert wo["remarks"] == f"Auto-created from field report #{report['id'][:8]}"
    assert wo["status_history"][0]["changed_by_name"] == "system"

    photos = client.get("/api/media", params={"entityType": "work_order", "entityId": wo_id}).json()
    assert len(photos) == 2
    assert {p["caption"] for p in photos} == {"From field report"}

    again = client.post(f"/api/field-reports/{report['id']}/convert")
    assert again.status_code == 400
    assert again.json()["error"] == "already_converted"
    assert again.json()["workOrderId"] == wo_id
    assert len(client.get("/api/work-orders").json()) == 1

    listed = client.get("/api/field-reports", params={"status": "converted"}).json()
    assert listed[0]["work_order_id"] == wo_id


def test_copied_photo_downloads(client, report):
    wo_id = client.post(f"/api/field-reports/{report['id']}/convert").json()["workOrderId"]
    photo = client.get("/api/media", params={"entityType": "work_order", "entityId": wo_id}).json()[0]
    r = client.get(f"/api/media/{photo['id']}/file")
    assert r.status_code == 200
    assert r.content in (b"first-photo", b"second-photo")


def test_resolve(client, vehicle):
    report = client.post("/api/field-reports", data={"vehicleId": vehicle["id"], "title": "Wiper"}).json()
    r = client.patch(f"/api/field-reports/{report['id']}/resolve")
    assert r.status_code == 200
    assert r.json()["status"] == "resolved"
    assert r.json()["resolved_at"] is not None

    assert client.patch(f"/api/field-reports/{report['id']}/resolve").status_code == 400


def test_converted_report_cannot_be_resolved(client, report):
    client.post(f"/api/field-reports/{report['id']}/convert")
    r = client.patch(f"/api/field-reports/{report['id']}/resolve")
    assert r.status_code == 400
    assert r.json()["error"] == "already_converted"


def test_convert_unknown_report(client):
    assert client.post("/api/field-reports/missing/convert").status_code == 404

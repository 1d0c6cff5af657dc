def _items(*ratings):
    return [
        {"category": "Brakes", "item": f"Item {n}", "rating": rating}
        for n, rating in enumerate(ratings, start=1)
    ]


def test_failing_inspection_raises_one_work_order(client, vehicle):
    r = client.post("/api/inspections", json={
        "vehicleId": vehicle["id"],
        "inspectorName": "Lerato",
        "items": _items("pass", "fail", "caution", "fail"),
    })
    assert r.status_code == 201, r.text
    inspection = r.json()
    assert inspection["overall_pass"] is False
    assert inspection["work_order_id"]
    assert inspection["type"] == "pre-departure"

    orders = client.get("/api/work-orders", params={"vehicleId": vehicle["id"]}).json()
    assert len(orders) == 1
    wo = orders[0]
    assert wo["id"] == inspection["work_order_id"]
    assert wo["type"] == "inspection-flagged"
    assert wo["priority"] == "high"
    assert wo["status"] == "submitted"
    assert wo["title"] == "Inspection failure: Brakes: Item 2, Brakes: Item 4"
    assert inspection["id"] in wo["description"]

    history = client.get(f"/api/work-orders/{wo['id']}/history").json()
    assert len(history) == 1
    assert history[0]["to_status"] == "submitted"


def test_passing_inspection_raises_nothing(client, vehicle):
    r = client.post("/api/inspections", json={
        "vehicleId": vehicle["id"],
        "items": _items("pass", "caution"),
    })
    assert r.status_code == 201
    assert r.json()["overall_pass"] is True
    assert r.json()["work_order_id"] is None
    assert client.get("/api/work-orders").json() == []


def test_long_failure_title_is_truncated(client, vehicle):
    items = [{"category": "Body", "item": "x" * 120, "rating": "fail"}]
    inspection = client.post("/api/inspections", json={"vehicleId": vehicle["id"], "items": items}).json()
    wo = client.get(f"/api/work-orders/{inspection['work_order_id']}").json()
    assert wo["title"] == "Inspection failure: " + ("Body: " + "x" * 120)[:80]


def test_unknown_rating_rejected(client, vehicle):
    r = client.post("/api/inspections", json={
        "vehicleId": vehicle["id"],
        "items": [{"item": "Horn", "rating": "broken"}],
    })
    assert r.status_code == 422


def test_get_and_list(client, vehicle, passing_inspection):
    r = client.get(f"/api/inspections/{passing_inspection['id']}")
    assert r.status_code == 200
    assert r.json()["vehicle_code"] == vehicle["code"]
    assert r.json()["items"][0]["rating"] == "pass"

    listed = client.get("/api/inspections", params={"vehicleId": vehicle["id"]}).json()
    assert [i["id"] for i in listed] == [passing_inspection["id"]]

    assert client.get("/api/inspections/nope").status_code == 404

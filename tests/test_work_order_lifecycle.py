import pytest

from fleet_hub.services.work_orders import TRANSITIONS, allowed_transitions, can_transition


def _patch(client, wo_id, **body):
    return client.patch(f"/api/work-orders/{wo_id}", json=body)


def test_transition_table_is_closed_over_statuses():
    statuses = set(TRANSITIONS)
    for targets in TRANSITIONS.values():
        assert set(targets) <= statuses


@pytest.mark.parametrize("current,target,ok", [
    ("submitted", "queued", True),
    ("submitted", "in-progress", False),
    ("queued", "in-progress", True),
    ("in-progress", "awaiting-parts", True),
    ("awaiting-parts", "in-progress", True),
    ("completed", "closed", True),
    ("completed", "in-progress", False),
    ("closed", "return-repair", True),
    ("closed", "queued", False),
    ("return-repair", "queued", True),
    ("rejected", "submitted", True),
    ("cancelled", "submitted", False),
])
def test_can_transition(current, target, ok):
    assert can_transition(current, target) is ok


def test_cancelled_is_terminal():
    assert allowed_transitions("cancelled") == ()


def test_create_records_initial_history(client, make_work_order):
    wo = make_work_order()
    assert wo["status"] == "submitted"
    assert wo["vehicle_code"] == "LT-001"

    history = client.get(f"/api/work-orders/{wo['id']}/history").json()
    assert len(history) == 1
    assert history[0]["from_status"] is None
    assert history[0]["to_status"] == "submitted"
    assert history[0]["reason"] == "Work order created"


def test_create_requires_existing_vehicle(client):
    r = client.post("/api/work-orders", json={"vehicleId": "missing", "title": "x"})
    assert r.status_code == 404
    assert r.json()["error"] == "not_found"


def test_worked_scenario(client, vehicle, make_work_order, passing_inspection):
    wo = make_work_order()
    wo_id = wo["id"]

    r = _patch(client, wo_id, status="queued", changedByName="Fleet lead")
    assert r.status_code == 200
    assert r.json()["status"] == "queued"

    r = _patch(client, wo_id, status="completed")
    assert r.status_code == 400
    assert r.json()["detail"].endswith("Allowed: in-progress, cancelled")
    assert client.get(f"/api/work-orders/{wo_id}").json()["status"] == "queued"

    r = _patch(client, wo_id, status="in-progress", assignedTo="Mpho")
    assert r.status_code == 200
    assert client.get(f"/api/vehicles/{vehicle['id']}").json()["status"] == "maintenance-hq"

    r = _patch(client, wo_id, status="completed")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "completed"
    assert body["downtime_end"] is not None
    assert client.get(f"/api/vehicles/{vehicle['id']}").json()["status"] == "operational"

    r = _patch(client, wo_id, status="closed")
    assert r.status_code == 400
    assert r.json()["error"] == "closing_inspection_required"
    assert client.get(f"/api/work-orders/{wo_id}").json()["status"] == "completed"

    r = _patch(client, wo_id, status="closed", closingInspectionId="does-not-exist")
    assert r.status_code == 400
    assert r.json()["detail"] == "Closing inspection not found."

    r = _patch(client, wo_id, status="closed", closingInspectionId=passing_inspection["id"])
    assert r.status_code == 200
    assert r.json()["status"] == "closed"
    assert r.json()["closing_inspection_id"] == passing_inspection["id"]

    history = client.get(f"/api/work-orders/{wo_id}/history").json()
    assert [h["to_status"] for h in history] == ["submitted", "queued", "in-progress", "completed", "closed"]
    assert [h["from_status"] for h in history] == [None, "submitted", "queued", "in-progress", "completed"]
    assert history[1]["changed_by_name"] == "Fleet lead"


def test_invalid_transition_leaves_order_unchanged(client, make_work_order):
    wo = make_work_order()
    r = _patch(client, wo["id"], status="completed", title="Changed title")
    assert r.status_code == 400
    body = r.json()
    assert body["error"] == "invalid_transition"
    assert body["detail"] == (
        "Cannot transition from 'submitted' to 'completed'. Allowed: queued, rejected, cancelled"
    )

    after = client.get(f"/api/work-orders/{wo['id']}").json()
    assert after["status"] == "submitted"
    assert after["title"] == "Brake pads worn"
    assert len(after["status_history"]) == 1


def test_terminal_state_reports_none_allowed(client, make_work_order):
    wo = make_work_order()
    assert _patch(client, wo["id"], status="cancelled").status_code == 200
    r = _patch(client, wo["id"], status="submitted")
    assert r.status_code == 400
    assert r.json()["detail"].endswith("Allowed: none")


def test_third_party_repair_sets_vehicle_status(client, vehicle, make_work_order):
    wo = make_work_order(repairLocation="3rd-party", thirdPartyShop="MIDAS")
    _patch(client, wo["id"], status="queued")
    _patch(client, wo["id"], status="in-progress")
    assert client.get(f"/api/vehicles/{vehicle['id']}").json()["status"] == "maintenance-3rdparty"

    _patch(client, wo["id"], status="awaiting-parts")
    assert client.get(f"/api/vehicles/{vehicle['id']}").json()["status"] == "awaiting-parts"

    log = client.get(f"/api/vehicles/{vehicle['id']}/status-log").json()
    assert [row["new_status"] for row in log][:2] == ["awaiting-parts", "maintenance-3rdparty"]


def test_patch_without_fields_is_rejected(client, make_work_order):
    wo = make_work_order()
    r = _patch(client, wo["id"], reason="nothing to change")
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_input"


def test_detail_includes_days_open_and_children(client, make_work_order):
    wo = make_work_order()
    detail = client.get(f"/api/work-orders/{wo['id']}").json()
    assert detail["days_open"] == 1
    assert detail["labor"] == []
    assert detail["po_links"] == []
    assert detail["parts"] == []
    assert len(detail["status_history"]) == 1


def test_list_orders_by_priority(client, make_work_order):
    make_work_order(title="low one", priority="low")
    make_work_order(title="critical one", priority="critical")
    make_work_order(title="medium one")
    titles = [wo["title"] for wo in client.get("/api/work-orders").json()]
    assert titles == ["critical one", "medium one", "low one"]

    submitted = client.get("/api/work-orders", params={"status": "submitted", "org": "1pwr_lesotho"}).json()
    assert len(submitted) == 3


def test_progress_update_with_photo(client, make_work_order):
    wo = make_work_order()
    r = client.post(
        f"/api/work-orders/{wo['id']}/updates",
        data={"note": "Pads removed", "postedByName": "Mpho"},
        files=[("photos", ("pads.jpg", b"jpegbytes", "image/jpeg"))],
    )
    assert r.status_code == 201, r.text
    update = r.json()
    assert update["has_photos"] is True
    assert update["photo_count"] == 1
    assert update["photos"][0]["category"] == "progress"

    listed = client.get(f"/api/work-orders/{wo['id']}/updates").json()
    assert len(listed) == 1
    assert listed[0]["posted_by_name"] == "Mpho"


def test_progress_update_requires_note(client, make_work_order):
    wo = make_work_order()
    r = client.post(f"/api/work-orders/{wo['id']}/updates", data={"note": "   "})
    assert r.status_code == 400


def test_create_may_start_queued(client, make_work_order):
    wo = make_work_order(status="queued")
    assert wo["status"] == "queued"
    history = client.get(f"/api/work-orders/{wo['id']}/history").json()
    assert history[0]["to_status"] == "queued"


@pytest.mark.parametrize("status", ["closed", "completed", "in-progress"])
def test_create_cannot_skip_the_lifecycle(client, vehicle, status):
    r = client.post("/api/work-orders", json={"vehicleId": vehicle["id"], "title": "Skip", "status": status})
    assert r.status_code == 422
    assert client.get("/api/work-orders").json() == []

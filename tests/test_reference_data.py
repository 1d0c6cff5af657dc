def test_defaults_seeded(client):
    sites = client.get("/api/reference-data", params={"type": "site"}).json()
    assert sites[0]["code"] == "HQ"
    assert sites[-1]["code"] == "OTHER"

    shops = client.get("/api/reference-data", params={"type": "third_party_shop"}).json()
    assert "MIDAS" in {s["code"] for s in shops}

    zambia = client.get("/api/reference-data", params={"org": "1pwr_zambia", "type": "site"}).json()
    assert [s["code"] for s in zambia] == ["LSK", "KIT", "NDL"]

    orgs = client.get("/api/organizations").json()
    assert {o["id"] for o in orgs} == {"1pwr_lesotho", "1pwr_zambia", "1pwr_benin"}


def test_create_update_delete(client):
    r = client.post("/api/reference-data", json={
        "type": "site",
        "code": " NEW ",
        "label": "New Site",
        "sortOrder": 50,
        "meta": {"lat": -29.5, "lng": 27.9},
    })
    assert r.status_code == 201, r.text
    item = r.json()
    assert item["code"] == "NEW"
    assert item["meta"] == {"lat": -29.5, "lng": 27.9}

    dup = client.post("/api/reference-data", json={"type": "site", "code": "NEW", "label": "Again"})
    assert dup.status_code == 409

    r = client.patch(f"/api/reference-data/{item['id']}", json={"label": "Renamed", "active": False})
    assert r.status_code == 200
    assert r.json()["label"] == "Renamed"
    assert r.json()["active"] is False

    assert client.patch(f"/api/reference-data/{item['id']}", json={"code": "HQ"}).status_code == 409
    assert client.patch(f"/api/reference-data/{item['id']}", json={}).status_code == 400

    assert client.delete(f"/api/reference-data/{item['id']}").json() == {"success": True}
    assert client.delete(f"/api/reference-data/{item['id']}").status_code == 404


def test_unknown_type_rejected(client):
    r = client.post("/api/reference-data", json={"type": "colour", "code": "RED", "label": "Red"})
    assert r.status_code == 422

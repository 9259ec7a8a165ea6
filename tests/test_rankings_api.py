def _geo(client, code="USA", name="USA"):
    resp = client.post("/api/geos", json={"code": code, "name": name})
    assert resp.status_code == 200
    return resp.json()


def _brand(client, name):
    resp = client.post("/api/brands", json={"name": name})
    assert resp.status_code == 200
    return resp.json()


def _rankings(client, geo_id):
    return client.get(f"/api/geos/{geo_id}/rankings").json()


def test_geo_code_is_normalized_and_unique(client):
    geo = _geo(client, code="United States", name="United States")
    assert geo["code"] == "USA"
    assert geo["sort_order"] == 0
    resp = client.post("/api/geos", json={"code": "us", "name": "Dup"})
    assert resp.status_code == 400


def test_geo_update_and_delete(client):
    geo = _geo(client)
    resp = client.patch(f"/api/geos/{geo['id']}", json={"name": "United States"})
    assert resp.json()["name"] == "United States"
    assert resp.json()["code"] == "USA"
    resp = client.put(f"/api/geos/{geo['id']}", json={"code": "us", "name": "US"})
    assert resp.status_code == 200
    assert resp.json()["name"] == "US"
    assert client.delete(f"/api/geos/{geo['id']}").status_code == 200
    assert client.get("/api/geos").json() == []
    assert client.delete(f"/api/geos/{geo['id']}").status_code == 404


def test_reorder_geos(client):
    usa, uk, ca = _geo(client), _geo(client, "UK", "UK"), _geo(client, "CA", "Canada")
    ordered = client.post("/api/geos/reorder", json={"geo_ids": [ca["id"], usa["id"], uk["id"]]}).json()
    assert [g["code"] for g in ordered] == ["CA", "USA", "UK"]
    assert [g["sort_order"] for g in ordered] == [0, 1, 2]
    assert client.post("/api/geos/reorder", json={"geo_ids": ["nope"]}).status_code == 404


def test_resolve_geo(client):
    usa = _geo(client)
    found = client.get("/api/geos/resolve", params={"label": ".us - United States"}).json()
    assert found["candidate"] == "USA"
    assert found["geo"]["id"] == usa["id"]
    assert found["needs_setup"] is False

    missing = client.get("/api/geos/resolve", params={"label": "Atlantis"}).json()
    assert missing == {"label": "Atlantis", "candidate": "ATLANTIS", "geo": None, "needs_setup": True}


def test_brand_crud(client):
    brand = _brand(client, "Brand X")
    assert brand["status"] == "active"
    assert client.post("/api/brands", json={"name": "Brand X"}).status_code == 400
    resp = client.patch(f"/api/brands/{brand['id']}", json={"status": "paused"})
    assert resp.json()["status"] == "paused"
    resp = client.put(f"/api/brands/{brand['id']}", json={"default_url": "https://brandx.example.com"})
    assert resp.json()["default_url"] == "https://brandx.example.com"
    assert resp.json()["status"] == "paused"
    assert client.delete(f"/api/brands/{brand['id']}").status_code == 200
    assert client.get("/api/brands").json() == []


def test_rankings_order_featured_then_others(client):
    geo = _geo(client)
    zeta, alpha, top, second = (_brand(client, n) for n in ("Zeta", "alpha", "Top", "Second"))
    for brand, position in ((zeta, None), (second, 2), (alpha, None), (top, 1)):
        resp = client.post(f"/api/geos/{geo['id']}/rankings", json={"brand_id": brand["id"], "position": position})
        assert resp.status_code == 200
    names = [r["brand"]["name"] for r in _rankings(client, geo["id"])]
    assert names == ["Top", "Second", "alpha", "Zeta"]


def test_duplicate_brand_or_position_rejected(client):
    geo = _geo(client)
    a, b = _brand(client, "A"), _brand(client, "B")
    url = f"/api/geos/{geo['id']}/rankings"
    assert client.post(url, json={"brand_id": a["id"], "position": 1}).status_code == 200
    assert client.post(url, json={"brand_id": a["id"], "position": 2}).status_code == 400
    assert client.post(url, json={"brand_id": b["id"], "position": 1}).status_code == 400
    assert client.post(url, json={"brand_id": b["id"], "position": 11}).status_code == 400
    assert client.post(url, json={"brand_id": "nope"}).status_code == 404


def test_update_and_delete_ranking(client):
    geo = _geo(client)
    a = _brand(client, "A")
    ranking = client.post(f"/api/geos/{geo['id']}/rankings", json={"brand_id": a["id"], "position": 3}).json()
    resp = client.put(f"/api/rankings/{ranking['id']}",
                      json={"position": 1, "affiliate_link": "https://aff.example.com/?subid=x"})
    assert resp.json()["position"] == 1
    assert resp.json()["affiliate_link"] == "https://aff.example.com/?subid=x"
    assert client.delete(f"/api/rankings/{ranking['id']}").status_code == 200
    assert _rankings(client, geo["id"]) == []


def test_bulk_replace_drops_old_rows(client):
    geo = _geo(client)
    other = _geo(client, "UK", "UK")
    brands = [_brand(client, f"Brand {i}") for i in range(5)]
    for i, brand in enumerate(brands[:3], start=1):
        client.post(f"/api/geos/{geo['id']}/rankings", json={"brand_id": brand["id"], "position": i})
    client.post(f"/api/geos/{other['id']}/rankings", json={"brand_id": brands[0]["id"], "position": 1})

    resp = client.post(f"/api/geos/{geo['id']}/rankings/bulk", json={"rankings": [
        {"brand_id": brands[3]["id"], "position": 1},
        {"brand_id": brands[0]["id"], "position": 2},
    ]})
    assert resp.status_code == 200
    rows = _rankings(client, geo["id"])
    assert [(r["brand"]["name"], r["position"]) for r in rows] == [("Brand 3", 1), ("Brand 0", 2)]
    assert len(_rankings(client, other["id"])) == 1


def test_bulk_replace_is_atomic(client):
    geo = _geo(client)
    a, b = _brand(client, "A"), _brand(client, "B")
    client.post(f"/api/geos/{geo['id']}/rankings", json={"brand_id": a["id"], "position": 1})

    resp = client.post(f"/api/geos/{geo['id']}/rankings/bulk", json={"rankings": [
        {"brand_id": b["id"], "position": 1},
        {"brand_id": "missing-brand", "position": 2},
    ]})
    assert resp.status_code == 400
    rows = _rankings(client, geo["id"])
    assert [(r["brand"]["name"], r["position"]) for r in rows] == [("A", 1)]


def test_bulk_replace_validates_duplicates(client):
    geo = _geo(client)
    a, b = _brand(client, "A"), _brand(client, "B")
    url = f"/api/geos/{geo['id']}/rankings/bulk"
    dup_brand = {"rankings": [{"brand_id": a["id"], "position": 1}, {"brand_id": a["id"], "position": 2}]}
    dup_pos = {"rankings": [{"brand_id": a["id"], "position": 1}, {"brand_id": b["id"], "position": 1}]}
    assert client.post(url, json=dup_brand).status_code == 400
    assert client.post(url, json=dup_pos).status_code == 400


def test_brand_lists(client):
    geo = _geo(client)
    other = _geo(client, "UK", "UK")
    brand = _brand(client, "A")
    casino = client.post(f"/api/geos/{geo['id']}/lists", json={"name": "Casino"}).json()
    foreign = client.post(f"/api/geos/{other['id']}/lists", json={"name": "Sports"}).json()
    assert [row["name"] for row in client.get(f"/api/geos/{geo['id']}/lists").json()] == ["Casino"]

    url = f"/api/geos/{geo['id']}/rankings"
    assert client.post(url, json={"brand_id": brand["id"], "list_id": foreign["id"]}).status_code == 400
    ranking = client.post(url, json={"brand_id": brand["id"], "list_id": casino["id"]}).json()
    assert ranking["list_id"] == casino["id"]

    renamed = client.patch(f"/api/lists/{casino['id']}", json={"name": "Casino Top"}).json()
    assert renamed["name"] == "Casino Top"
    assert client.delete(f"/api/lists/{casino['id']}").status_code == 200
    assert _rankings(client, geo["id"])[0]["list_id"] is None

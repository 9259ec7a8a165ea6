import re


def _website(client, name="Casino Site", pattern="cs-{random4digits}"):
    resp = client.post("/api/websites", json={"name": name, "format_pattern": pattern})
    assert resp.status_code == 200
    return resp.json()


def _bulk(client, website_id, items):
    return client.post(f"/api/websites/{website_id}/subids/bulk", json={"sub_ids": items})


def test_create_and_list_websites(client):
    site = _website(client)
    client.post(f"/api/websites/{site['id']}/subids", json={})
    client.post(f"/api/websites/{site['id']}/subids", json={"value": "manual-1"})
    _website(client, name="Another Site")

    listed = {w["name"]: w for w in client.get("/api/websites").json()}
    assert listed["Casino Site"]["sub_id_count"] == 2
    assert listed["Another Site"]["sub_id_count"] == 0


def test_generated_value_follows_pattern(client):
    site = _website(client)
    row = client.post(f"/api/websites/{site['id']}/subids", json={}).json()
    assert re.fullmatch(r"cs-\d{4}", row["value"])
    assert row["is_immutable"] is False
    assert row["comment_posted"] is False


def test_sub_ids_listed_newest_first(client):
    site = _website(client)
    for value in ("first", "second", "third"):
        client.post(f"/api/websites/{site['id']}/subids", json={"value": value})
    rows = client.get(f"/api/websites/{site['id']}/subids").json()
    timestamps = [r["timestamp"] for r in rows]
    assert timestamps == sorted(timestamps, reverse=True)
    assert len(client.get("/api/subids").json()) == 3


def test_validation_errors_are_400(client):
    resp = client.post("/api/websites", json={"name": "x"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid request"


def test_unknown_website_is_404(client):
    assert client.get("/api/websites/nope/subids").status_code == 404
    resp = client.delete("/api/websites/nope")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Website not found"}


def test_bulk_requires_url_for_every_item(client):
    site = _website(client)
    resp = _bulk(client, site["id"], [{"url": "https://a.example.com"}, {"value": "no-url"}])
    assert resp.status_code == 400
    assert client.get(f"/api/websites/{site['id']}/subids").json() == []


def test_bulk_rows_are_immutable(client):
    site = _website(client)
    rows = _bulk(client, site["id"], [{"url": "https://a.example.com", "value": "locked-1"}]).json()
    assert rows[0]["is_immutable"] is True
    sub_id = rows[0]["id"]

    resp = client.patch(f"/api/subids/{sub_id}", json={"value": "changed"})
    assert resp.status_code == 403
    assert resp.json() == {"error": "Cannot modify immutable Sub-ID"}
    assert client.delete(f"/api/subids/{sub_id}").status_code == 403


def test_edit_and_delete_mutable_sub_id(client):
    site = _website(client)
    row = client.post(f"/api/websites/{site['id']}/subids", json={"value": "old"}).json()
    resp = client.patch(f"/api/subids/{row['id']}", json={"value": "new", "url": "https://b.example.com"})
    assert resp.status_code == 200
    assert resp.json()["value"] == "new"
    assert resp.json()["url"] == "https://b.example.com"
    assert client.patch(f"/api/subids/{row['id']}", json={"value": ""}).status_code == 400
    assert client.delete(f"/api/subids/{row['id']}").status_code == 200
    assert client.delete(f"/api/subids/{row['id']}").status_code == 404


def test_website_with_immutable_sub_id_cannot_be_deleted(client):
    site = _website(client)
    _bulk(client, site["id"], [{"url": "https://a.example.com"}])
    resp = client.delete(f"/api/websites/{site['id']}")
    assert resp.status_code == 403
    assert len(client.get(f"/api/websites/{site['id']}/subids").json()) == 1


def test_website_delete_cascades_to_sub_ids(client):
    site = _website(client)
    other = _website(client, name="Other")
    client.post(f"/api/websites/{site['id']}/subids", json={"value": "a"})
    client.post(f"/api/websites/{site['id']}/subids", json={"value": "b"})
    client.post(f"/api/websites/{other['id']}/subids", json={"value": "c"})

    assert client.delete(f"/api/websites/{site['id']}").status_code == 200
    assert [r["value"] for r in client.get("/api/subids").json()] == ["c"]


def test_duplicates_across_websites(client):
    a = _website(client, name="A")
    b = _website(client, name="B")
    client.post(f"/api/websites/{a['id']}/subids", json={"value": "dup"})
    client.post(f"/api/websites/{b['id']}/subids", json={"value": "dup"})
    client.post(f"/api/websites/{b['id']}/subids", json={"value": "single"})

    dupes = client.get("/api/subids/duplicates").json()
    assert len(dupes) == 1
    assert dupes[0]["value"] == "dup"
    assert sorted(dupes[0]["website_ids"]) == sorted([a["id"], b["id"]])


def test_csv_export(client):
    site = _website(client, name="My Site")
    client.post(f"/api/websites/{site['id']}/subids",
                json={"value": "s-1", "url": "https://a.example.com", "clickup_task_id": "t1"})

    resp = client.get(f"/api/websites/{site['id']}/subids/export.csv")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert re.search(r'filename="my-site-subids-\d+\.csv"', resp.headers["content-disposition"])
    header, row = resp.text.strip().split("\n")
    assert header == "Sub-ID,Timestamp"
    assert re.fullmatch(r"s-1,\d{4}-\d\d-\d\dT\d\d:\d\d:\d\d(\.\d+)?Z", row)

    detailed = client.get(f"/api/websites/{site['id']}/subids/export.csv", params={"detailed": "true"})
    header, row = detailed.text.strip().split("\n")
    assert header == "Sub-ID,URL,ClickUp Task,Timestamp"
    assert row.startswith("s-1,https://a.example.com,t1,")

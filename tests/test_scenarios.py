"""
tests/test_scenarios.py – short end-to-end walk-throughs of the API.
"""

ADMIN_KEY = "jaxelricweb"


def test_publish_poem(client):
    rv = client.post(
        "/api/content",
        json={"title": "Dawn", "body": "...", "type": "poetry", "adminKey": ADMIN_KEY},
    )
    assert rv.status_code == 200
    assert rv.get_json() == {"id": 1}

    works = client.get("/api/content").get_json()
    assert len(works) == 1
    assert works[0]["id"] == 1
    assert works[0]["title"] == "Dawn"


def test_publish_with_wrong_key(client, store):
    rv = client.post(
        "/api/content",
        json={"title": "Dawn", "body": "...", "type": "poetry", "adminKey": "wrong"},
    )
    assert rv.status_code == 401
    assert rv.get_json() == {"error": "Unauthorized"}
    assert client.get("/api/content").get_json() == []


def test_delete_missing_work(client):
    rv = client.delete("/api/content/999", headers={"x-admin-key": ADMIN_KEY})
    assert rv.status_code == 404
    assert rv.get_json() == {"error": "Content not found"}


def test_review_default_rating(client):
    rv = client.post("/api/reviews", json={"name": "Ann", "comment": "Lovely."})
    assert rv.status_code == 200
    assert rv.get_json() == {"id": 1}
    assert client.get("/api/reviews").get_json()[0]["rating"] == 5


def test_delete_review_without_header(client):
    client.post("/api/reviews", json={"name": "Ann", "comment": "Lovely."})
    rv = client.delete("/api/reviews/1")
    assert rv.status_code == 200
    assert rv.get_json() == {"success": True}

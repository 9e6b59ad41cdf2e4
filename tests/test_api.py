import mongomock
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo.errors import PyMongoError

import database
from database import DONATIONS
from leaderboard import fetch_leaderboard, recompute_leaderboard
from main import app

DONATION = {
    "image": "https://example.com/food.jpg",
    "category": "Food",
    "title": "Feed a family",
    "amount": 50,
    "description": "A week of groceries",
}


def create_donation(client, **overrides):
    resp = client.post("/api/v1/donations", json={**DONATION, **overrides})
    assert resp.status_code == 201
    return resp.json()["donationId"]


def test_root_reports_liveness(client):
    resp = client.get("/")
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Server is running smoothly"
    assert "timestamp" in body


def test_create_and_list_donations(client):
    donation_id = create_donation(client)
    resp = client.get("/api/v1/donations")
    assert resp.status_code == 200
    donations = resp.json()["donations"]
    assert [d["id"] for d in donations] == [donation_id]
    assert donations[0]["title"] == "Feed a family"
    assert donations[0]["timestamp"]


def test_get_single_donation(client):
    donation_id = create_donation(client)
    resp = client.get(f"/api/v1/donations/{donation_id}")
    assert resp.status_code == 200
    assert resp.json()["donation"]["id"] == donation_id


def test_get_missing_donation_returns_404(client):
    resp = client.get(f"/api/v1/donations/{ObjectId()}")
    assert resp.status_code == 404
    assert resp.json()["success"] is False


def test_invalid_id_returns_400(client):
    for method in ("get", "delete"):
        resp = getattr(client, method)("/api/v1/donations/not-an-id")
        assert resp.status_code == 400
        assert resp.json()["message"] == "Invalid id format"


def test_update_overwrites_listing_fields_only(client, store):
    donation_id = create_donation(client, userId="donor-1")
    store[DONATIONS].update_one(
        {"_id": ObjectId(donation_id)}, {"$set": {"featured": True, "timestamp": "stale"}}
    )

    updated = {**DONATION, "title": "Feed two families", "amount": 100}
    resp = client.put(f"/api/v1/donations/{donation_id}", json=updated)
    assert resp.status_code == 200

    after = store[DONATIONS].find_one({"_id": ObjectId(donation_id)})
    assert after["title"] == "Feed two families"
    assert after["amount"] == 100
    assert after["userId"] == "donor-1"
    assert after["featured"] is True
    assert after["timestamp"] != "stale"


def test_update_missing_donation_returns_404(client):
    resp = client.put(f"/api/v1/donations/{ObjectId()}", json=DONATION)
    assert resp.status_code == 404


def test_delete_donation(client, store):
    donation_id = create_donation(client)
    resp = client.delete(f"/api/v1/donations/{donation_id}")
    assert resp.status_code == 200
    assert store[DONATIONS].count_documents({}) == 0


def test_delete_missing_donation_leaves_collection_unchanged(client, store):
    create_donation(client)
    resp = client.delete(f"/api/v1/donations/{ObjectId()}")
    assert resp.status_code == 404
    assert store[DONATIONS].count_documents({}) == 1


def test_leaderboard_recomputes_on_read(client):
    create_donation(client, userId="userA", amount=50)
    create_donation(client, userId="userB", amount=30)
    create_donation(client, userId="userA", amount=20)
    create_donation(client, amount=500)

    resp = client.get("/api/v1/leaderboard")
    assert resp.status_code == 200
    leaderboard = resp.json()["leaderboard"]
    assert [(e["userId"], e["totalAmount"]) for e in leaderboard] == [("userA", 70), ("userB", 30)]


def test_top_donor_intake(client):
    resp = client.post("/api/v1/top-donors", json={"userId": "u1", "totalAmount": 25})
    assert resp.status_code == 201
    body = resp.json()
    assert body["topDonor"]["userId"] == "u1"
    assert [e["userId"] for e in body["topDonors"]] == ["u1"]


def test_top_donor_requires_fields(client):
    resp = client.post("/api/v1/top-donors", json={"userId": "u1"})
    assert resp.status_code == 400


def test_comments(client):
    resp = client.post("/api/v1/comments", json={"text": "Great cause"})
    assert resp.status_code == 201
    comment_id = resp.json()["commentId"]

    comments = client.get("/api/v1/comments").json()["comments"]
    assert [(c["id"], c["text"]) for c in comments] == [(comment_id, "Great cause")]


def test_volunteers(client):
    volunteer = {"name": "Sam", "email": "sam@example.com", "phone": "555-0100", "location": "Dhaka"}
    resp = client.post("/api/v1/volunteers", json=volunteer)
    assert resp.status_code == 201

    volunteers = client.get("/api/v1/volunteers").json()["volunteers"]
    assert len(volunteers) == 1
    assert volunteers[0]["email"] == "sam@example.com"
    assert volunteers[0]["id"] == resp.json()["volunteerId"]


def test_store_failure_returns_generic_500(client, monkeypatch):
    from pymongo.errors import ServerSelectionTimeoutError

    import main

    def unavailable(*args, **kwargs):
        raise ServerSelectionTimeoutError("mongo.internal:27017 refused")

    monkeypatch.setattr(main, "get_documents", unavailable)
    resp = client.get("/api/v1/comments")
    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": "Internal server error"}


def test_non_finite_and_negative_amounts_are_rejected(client, store):
    fields = '"image":"i","category":"c","title":"t","description":"d"'
    for amount in ("1e999", "-1e999", "-5"):
        resp = client.post(
            "/api/v1/donations",
            content='{%s,"amount":%s}' % (fields, amount),
            headers={"content-type": "application/json"},
        )
        assert resp.status_code == 400
        assert resp.json()["success"] is False
    assert store[DONATIONS].count_documents({}) == 0
    assert client.get("/api/v1/donations").status_code == 200


def test_non_finite_top_donor_total_is_rejected(client):
    resp = client.post(
        "/api/v1/top-donors",
        content='{"userId":"u1","totalAmount":1e999}',
        headers={"content-type": "application/json"},
    )
    assert resp.status_code == 400
    assert fetch_leaderboard() == []


def test_leaderboard_survives_overflowing_totals(client):
    create_donation(client, userId="a", amount=1e308)
    create_donation(client, userId="a", amount=1e308)
    resp = client.get("/api/v1/leaderboard")
    assert resp.status_code == 200
    assert resp.json()["leaderboard"][0]["userId"] == "a"


def test_cors_allows_only_the_configured_origin(client):
    from config import settings

    preflight = {"Access-Control-Request-Method": "POST"}
    allowed = client.options("/api/v1/donations", headers={"Origin": settings.cors_origin, **preflight})
    assert allowed.status_code == 200
    assert allowed.headers["access-control-allow-origin"] == settings.cors_origin
    assert allowed.headers["access-control-allow-credentials"] == "true"

    foreign = client.options("/api/v1/donations", headers={"Origin": "https://evil.example", **preflight})
    assert foreign.status_code == 400
    assert "access-control-allow-origin" not in foreign.headers


def test_failed_recompute_keeps_previous_snapshot(client, store, monkeypatch):
    create_donation(client, userId="old", amount=10)
    recompute_leaderboard()
    create_donation(client, userId="new", amount=99)

    def failing(self, *args, **kwargs):
        raise PyMongoError("write failed")

    monkeypatch.setattr(mongomock.Collection, "replace_one", failing)
    resp = client.get("/api/v1/leaderboard")
    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": "Internal server error"}
    assert [e["userId"] for e in fetch_leaderboard()] == ["old"]


def test_lifespan_closes_the_store(store):
    with TestClient(app) as client:
        assert client.get("/").status_code == 200
        assert database.db is store
    assert database.db is None


def test_uninitialised_store_is_logged_with_traceback(client, monkeypatch, caplog):
    monkeypatch.setattr(database, "db", None)
    resp = client.get("/api/v1/comments")
    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": "Internal server error"}
    records = [r for r in caplog.records if r.name == "errors"]
    assert records and records[0].exc_info is not None

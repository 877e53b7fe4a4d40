"""
HTTP surface end to end: FastAPI TestClient over in-memory SQLite with the engine worker
running inline, so a posted offer is matched before the response returns.
"""
import pytest
from fastapi.testclient import TestClient

from conftest import TENANT
from loadhunt.db.session import get_db
from loadhunt.main import app
from loadhunt.scheduler import engine_worker
from loadhunt.services.geo import set_geocoder

HEADERS = {"X-Tenant-Id": TENANT, "X-Actor-Id": "u-dana", "X-Actor-Name": "Dana"}


@pytest.fixture
def client(session_factory, geocoder, match_engine):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    set_geocoder(geocoder)
    engine_worker.configure(session_factory=session_factory, engine=match_engine, synchronous=True)
    # No context manager: the lifespan (scheduler) stays off.
    yield TestClient(app)
    app.dependency_overrides.clear()
    engine_worker.stop_all_workers()
    engine_worker.configure()
    set_geocoder(None)


def _setup_truck(client, vehicle_id="TRUCK-1", origin="60601"):
    client.put("/vehicle-types", json={"mappings": {"Large Straight": "LARGE_STRAIGHT"}}, headers=HEADERS)
    resp = client.post(
        "/hunt-plans",
        json={
            "vehicle_id": vehicle_id,
            "plan_name": f"{vehicle_id} outbound",
            "vehicle_types": ["large_straight"],
            "origin_postal_code": origin,
            "radius_miles": 100,
        },
        headers=HEADERS,
    )
    assert resp.status_code == 200
    return resp.json()["plan"]


def _post_offer(client, external_id, **fields):
    body = {
        "external_id": external_id,
        "origin_city": "Milwaukee",
        "origin_state": "WI",
        "origin_postal_code": "53202",
        "vehicle_type": "Large Straight",
        "pickup_date": "2024-06-02",
        "from_email": "broker@example.com",
    }
    body.update(fields)
    return client.post("/offers", json=body, headers=HEADERS)


@pytest.mark.unit
class TestApiBasics:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_missing_tenant_rejected(self, client):
        resp = client.get("/matches")
        assert resp.status_code == 400

    def test_vehicle_type_mappings(self, client):
        resp = client.put("/vehicle-types", json={"mappings": {" Sprinter Van ": "sprinter"}}, headers=HEADERS)
        assert resp.status_code == 200
        assert resp.json()["mappings"] == {"sprinter van": "SPRINTER"}

        resp = client.put("/vehicle-types", json={"mappings": {"cargo van": "CARGO_VAN"}, "replace": True}, headers=HEADERS)
        assert resp.json()["removed"] == 1
        assert client.get("/vehicle-types", headers=HEADERS).json()["mappings"] == {"cargo van": "CARGO_VAN"}

        assert client.delete("/vehicle-types/nope", headers=HEADERS).status_code == 404


@pytest.mark.unit
class TestOfferToMatch:
    def test_plan_geocoded_on_create(self, client):
        plan = _setup_truck(client)
        assert plan["origin_lat"] == pytest.approx(41.85)
        assert plan["enabled"] is True
        [stored] = client.get("/hunt-plans", headers=HEADERS).json()["plans"]
        assert stored["initial_backfill_done"] is True

    def test_posted_offer_is_matched(self, client):
        plan = _setup_truck(client)
        resp = _post_offer(client, "LH-1")
        assert resp.status_code == 200
        assert resp.json()["created"] is True

        matches = client.get("/matches", headers=HEADERS).json()
        assert matches["count"] == 1
        [match] = matches["matches"]
        assert match["hunt_plan_id"] == plan["id"]
        assert match["status"] == "active"
        assert match["offer"]["external_id"] == "LH-1"

    def test_redelivered_offer_not_duplicated(self, client):
        _setup_truck(client)
        first = _post_offer(client, "LH-7").json()
        second = _post_offer(client, "LH-7").json()
        assert second["created"] is False
        assert second["offer"]["sequence_id"] == first["offer"]["sequence_id"]
        assert client.get("/matches", headers=HEADERS).json()["count"] == 1

    def test_offer_pull_by_sequence(self, client):
        _setup_truck(client)
        first = _post_offer(client, "LH-1").json()["offer"]["sequence_id"]
        _post_offer(client, "LH-2")
        resp = client.get("/offers", params={"since_sequence_id": first}, headers=HEADERS).json()
        assert [o["external_id"] for o in resp["offers"]] == ["LH-2"]
        assert resp["last_sequence_id"] > first

    def test_wrong_vehicle_type_not_matched(self, client):
        _setup_truck(client)
        _post_offer(client, "LH-9", vehicle_type="Reefer 53")
        assert client.get("/matches", headers=HEADERS).json()["count"] == 0

    def test_offer_without_location_flagged(self, client):
        _setup_truck(client)
        offer = _post_offer(
            client, "LH-10", origin_city=None, origin_state=None, origin_postal_code=None
        ).json()["offer"]
        pulled = client.get("/offers", headers=HEADERS).json()["offers"]
        [stored] = [o for o in pulled if o["sequence_id"] == offer["sequence_id"]]
        assert stored["has_issues"] is True


@pytest.mark.unit
class TestTransitionsOverHttp:
    def test_bid_cascades_to_siblings(self, client):
        _setup_truck(client, "TRUCK-1")
        _setup_truck(client, "TRUCK-2")
        _post_offer(client, "LH-1")
        grouped = client.get("/matches/grouped", params={"my_vehicle_ids": ["TRUCK-2"]}, headers=HEADERS).json()
        [group] = grouped["groups"]
        assert group["match_count"] == 2
        assert group["primary"]["vehicle_id"] == "TRUCK-2"

        target = group["primary"]["id"]
        resp = client.post(f"/matches/{target}/bid", json={"rate": 1500}, headers=HEADERS)
        assert resp.status_code == 200
        body = resp.json()
        assert body["match"]["status"] == "bid"
        assert body["match"]["bid_rate"] == 1500
        assert body["match"]["bid_by"] == "u-dana"
        assert len(body["skipped_match_ids"]) == 1

        counts = client.get("/matches/counts", headers=HEADERS).json()["vehicles"]
        assert counts["TRUCK-2"]["bid"] == 1
        assert counts["TRUCK-1"]["skipped"] == 1

        booked = client.post(f"/matches/{target}/book", json={"booked_load_id": "L-42"}, headers=HEADERS)
        assert booked.json()["match"]["status"] == "booked"

        metrics = client.get("/matches/dispatcher-metrics", headers=HEADERS).json()
        [dana] = metrics["dispatchers"]
        assert dana["bids"] == 1
        assert dana["skips"] == 0

    def test_conflict_and_not_found(self, client):
        _setup_truck(client)
        _post_offer(client, "LH-1")
        [match] = client.get("/matches", headers=HEADERS).json()["matches"]
        assert client.post(f"/matches/{match['id']}/skip", headers=HEADERS).status_code == 200
        assert client.post(f"/matches/{match['id']}/waitlist", headers=HEADERS).status_code == 409
        assert client.post("/matches/999999/skip", headers=HEADERS).status_code == 404

        history = client.get("/matches/history", params={"match_id": match["id"]}, headers=HEADERS).json()
        assert [a["action"] for a in history["actions"]] == ["skipped"]
        assert history["actions"][0]["actor_name"] == "Dana"

    def test_offer_action_leaves_matches(self, client):
        _setup_truck(client)
        seq = _post_offer(client, "LH-1").json()["offer"]["sequence_id"]
        resp = client.post(f"/offers/{seq}/waitlist", headers=HEADERS)
        assert resp.json()["offer"]["status"] == "waitlisted"
        assert client.get("/matches/unreviewed", headers=HEADERS).json()["count"] == 0
        assert client.get("/matches", params={"status": "active"}, headers=HEADERS).json()["count"] == 1

    def test_clear_and_delete_plan(self, client):
        plan = _setup_truck(client)
        _post_offer(client, "LH-1")
        cleared = client.post(f"/hunt-plans/{plan['id']}/clear-matches", headers=HEADERS).json()
        assert cleared["cleared"] == 1
        assert client.get("/matches", headers=HEADERS).json()["count"] == 0

        assert client.delete(f"/hunt-plans/{plan['id']}", headers=HEADERS).json()["deleted"] == plan["id"]
        assert client.get("/hunt-plans", headers=HEADERS).json()["plans"] == []
        assert client.post(f"/hunt-plans/{plan['id']}/enable", headers=HEADERS).status_code == 404

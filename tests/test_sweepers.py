"""
Missed and expiration sweepers.

Missed: one history row per unacted match on a still-new offer after the window; the match
stays active. Expiration: deadline from expires_at, then pickup date, then matched_at + 2h.
"""
from datetime import date, datetime, timedelta, timezone

import pytest

from conftest import TENANT
from loadhunt.core.engine_config import EngineConfig
from loadhunt.models import HuntMatch, MatchAction, MissedLoad
from loadhunt.services import lifecycle
from loadhunt.services.lifecycle import Actor
from loadhunt.services.sweepers import (
    pickup_deadline,
    run_expiration_sweep,
    run_missed_sweep,
    tenants_with_active_matches,
)


@pytest.mark.unit
class TestMissedSweep:
    def test_old_unacted_match_recorded_once(self, db, make_plan, make_offer, make_match, now):
        offer = make_offer(from_email="broker@example.com", subject="Load CHI-MKE")
        match = make_match(offer, make_plan(), matched_at=now - timedelta(minutes=20))

        assert run_missed_sweep(db, TENANT, now=now) == 1
        assert run_missed_sweep(db, TENANT, now=now) == 0

        [missed] = db.query(MissedLoad).all()
        assert missed.match_id == match.id
        assert missed.vehicle_id == "TRUCK-1"
        assert missed.from_email == "broker@example.com"
        assert missed.reset_at is None
        assert db.get(HuntMatch, match.id).status == "active"

    def test_recent_match_not_missed(self, db, make_plan, make_offer, make_match, now):
        make_match(make_offer(), make_plan(), matched_at=now - timedelta(minutes=10))
        assert run_missed_sweep(db, TENANT, now=now) == 0

    def test_offer_level_action_prevents_missed(self, db, make_plan, make_offer, make_match, now):
        make_match(make_offer(status="waitlisted"), make_plan(), matched_at=now - timedelta(hours=1))
        assert run_missed_sweep(db, TENANT, now=now) == 0

    def test_acted_match_not_missed(self, db, make_plan, make_offer, make_match, now):
        match = make_match(make_offer(), make_plan(), matched_at=now - timedelta(hours=1))
        lifecycle.skip_match(db, TENANT, match.id, Actor(name="Dana"))
        assert run_missed_sweep(db, TENANT, now=now) == 0

    def test_scoped_to_tenant(self, db, make_plan, make_offer, make_match, now):
        offer = make_offer(tenant_id="globex")
        make_match(offer, make_plan(tenant_id="globex"), matched_at=now - timedelta(hours=1))
        assert run_missed_sweep(db, TENANT, now=now) == 0
        assert run_missed_sweep(db, "globex", now=now) == 1


@pytest.mark.unit
class TestExpirationSweep:
    def test_pickup_deadline_is_end_of_local_day(self):
        assert pickup_deadline(date(2024, 6, 1), "America/New_York") == datetime(2024, 6, 2, 4, 0, tzinfo=timezone.utc)
        assert pickup_deadline(date(2024, 1, 15), "America/New_York") == datetime(2024, 1, 16, 5, 0, tzinfo=timezone.utc)

    def test_expires_at_wins(self, db, make_plan, make_offer, make_match, now):
        plan = make_plan()
        past = make_match(make_offer(expires_at=now - timedelta(minutes=1), pickup_date="2024-12-31"), plan)
        future = make_match(make_offer(expires_at=now + timedelta(minutes=1), pickup_date="2024-01-01"), plan)
        assert run_expiration_sweep(db, TENANT, now=now) == 1
        assert db.get(HuntMatch, past.id).status == "expired"
        assert db.get(HuntMatch, future.id).status == "active"

    def test_pickup_date_deadline(self, db, make_plan, make_offer, make_match, now):
        plan = make_plan()
        yesterday = make_match(make_offer(pickup_date="05/31/2024"), plan)
        today = make_match(make_offer(pickup_date="2024-06-01 08:00 CST"), plan)
        run_expiration_sweep(db, TENANT, now=now)
        assert db.get(HuntMatch, yesterday.id).status == "expired"
        assert db.get(HuntMatch, today.id).status == "active"

    def test_fallback_after_matched_at(self, db, make_plan, make_offer, make_match, now):
        plan = make_plan()
        stale = make_match(make_offer(pickup_date=None), plan, matched_at=now - timedelta(hours=3))
        fresh = make_match(make_offer(pickup_date="ASAP"), plan, matched_at=now - timedelta(hours=1))
        run_expiration_sweep(db, TENANT, now=now)
        assert db.get(HuntMatch, stale.id).status == "expired"
        assert db.get(HuntMatch, fresh.id).status == "active"

    def test_only_active_matches_expire(self, db, make_plan, make_offer, make_match, now):
        match = make_match(make_offer(expires_at=now - timedelta(hours=1)), make_plan())
        lifecycle.place_bid(db, TENANT, match.id, Actor(name="Dana"), rate=1200)
        assert run_expiration_sweep(db, TENANT, now=now) == 0
        assert db.get(HuntMatch, match.id).status == "bid"

    def test_batches_cover_every_due_match(self, db, make_plan, make_offer, make_match, now):
        plan = make_plan()
        ids = [make_match(make_offer(expires_at=now - timedelta(minutes=5)), plan).id for _ in range(5)]
        assert run_expiration_sweep(db, TENANT, now=now, config=EngineConfig(expiry_batch_size=2)) == 5
        assert {db.get(HuntMatch, i).status for i in ids} == {"expired"}

    def test_expiry_recorded_as_system_action(self, db, make_plan, make_offer, make_match, now):
        match = make_match(make_offer(expires_at=now - timedelta(minutes=5)), make_plan())
        run_expiration_sweep(db, TENANT, now=now)
        [action] = db.query(MatchAction).filter(MatchAction.match_id == match.id).all()
        assert action.action == "expired"
        assert action.actor_name == "system"
        assert action.detail == "deadline_passed"

    def test_rerun_is_noop(self, db, make_plan, make_offer, make_match, now):
        make_match(make_offer(expires_at=now - timedelta(minutes=5)), make_plan())
        assert run_expiration_sweep(db, TENANT, now=now) == 1
        assert run_expiration_sweep(db, TENANT, now=now) == 0
        assert tenants_with_active_matches(db) == []

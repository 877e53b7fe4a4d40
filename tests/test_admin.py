"""Admin reset of matching state."""
from datetime import timedelta

import pytest
from sqlalchemy import event

from conftest import TENANT
from loadhunt.models import HuntMatch, HuntPlan, LoadOffer, MatchAction, MissedLoad
from loadhunt.services import lifecycle
from loadhunt.services.admin_service import reset_matching_state
from loadhunt.services.lifecycle import Actor
from loadhunt.services.sweepers import run_missed_sweep


@pytest.fixture
def populated(db, make_plan, make_offer, make_match, now):
    plan = make_plan()
    other_plan = make_plan(tenant_id="globex")
    skipped = make_match(make_offer(), plan)
    lifecycle.skip_match(db, TENANT, skipped.id, Actor(name="Dana"))
    make_match(make_offer(), plan, matched_at=now - timedelta(hours=1))
    run_missed_sweep(db, TENANT, now=now)
    make_match(make_offer(tenant_id="globex"), other_plan)
    return plan, other_plan


@pytest.mark.unit
class TestResetMatchingState:
    def test_tenant_reset_keeps_other_tenants(self, db, populated):
        plan, other_plan = populated
        deleted = reset_matching_state(db, TENANT)
        assert deleted["load_hunt_matches"] == 2
        assert deleted["match_action_history"] == 1
        assert deleted["missed_loads_history"] == 1
        assert deleted["hunt_plans_rearmed"] == 1
        assert db.query(HuntMatch).filter(HuntMatch.tenant_id == "globex").count() == 1
        assert db.query(LoadOffer).filter(LoadOffer.tenant_id == TENANT).count() == 2

        db.expire_all()
        rearmed = db.get(HuntPlan, plan.id)
        assert rearmed.initial_backfill_done is False
        assert rearmed.floor_id == max(o.sequence_id for o in db.query(LoadOffer).filter(LoadOffer.tenant_id == TENANT))
        assert db.get(HuntPlan, other_plan.id).initial_backfill_done is True

    def test_full_reset_falls_back_to_delete(self, db, populated):
        deleted = reset_matching_state(db)
        assert deleted["load_hunt_matches"] == 3
        assert db.query(HuntMatch).count() == 0
        assert db.query(MatchAction).count() == 0
        assert db.query(MissedLoad).count() == 0

    def test_full_reset_keeps_id_sequences(self, db, db_engine, populated):
        statements = []

        def _record(conn, cursor, statement, parameters, context, executemany):
            statements.append(statement)

        event.listen(db_engine, "before_cursor_execute", _record)
        try:
            reset_matching_state(db)
        finally:
            event.remove(db_engine, "before_cursor_execute", _record)
        [truncate] = [s for s in statements if s.startswith("TRUNCATE")]
        assert "load_hunt_matches" in truncate
        assert "RESTART IDENTITY" not in truncate

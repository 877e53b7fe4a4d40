"""
Shared fixtures: in-memory SQLite database, a fake geocoder and row factories.
"""
import itertools
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.orm import sessionmaker

from loadhunt.core.engine_config import EngineConfig
from loadhunt.db.base import Base
from loadhunt.db.session import build_engine
from loadhunt.models import HuntMatch, HuntPlan, LoadOffer
from loadhunt.services.geo.geocoder import Coordinates
from loadhunt.services.matching.engine import MatchEngine

TENANT = "acme"
CHICAGO = Coordinates(lat=41.85, lng=-87.65)
MILWAUKEE = Coordinates(lat=43.0389, lng=-87.9065)
DETROIT = Coordinates(lat=42.3314, lng=-83.0458)


class FakeGeocoder:
    """Dictionary-backed geocoder; records every query it is asked."""

    def __init__(self, known: dict[str, Coordinates] | None = None) -> None:
        self.known = dict(known or {})
        self.calls: list[str] = []

    def resolve(self, query: str) -> Coordinates | None:
        self.calls.append(query)
        return self.known.get((query or "").strip())


@pytest.fixture
def db_engine():
    eng = build_engine("sqlite://")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def geocoder():
    return FakeGeocoder(
        {
            "Chicago, IL": CHICAGO,
            "Milwaukee, WI": MILWAUKEE,
            "Detroit, MI": DETROIT,
            "60601": CHICAGO,
        }
    )


@pytest.fixture
def engine_config():
    return EngineConfig()


@pytest.fixture
def match_engine(geocoder, engine_config):
    return MatchEngine(geocoder=geocoder, config=engine_config)


@pytest.fixture
def now():
    return datetime(2024, 6, 1, 15, 0, tzinfo=timezone.utc)


_external_ids = itertools.count(1)


@pytest.fixture
def make_offer(db, now):
    def _make(**overrides) -> LoadOffer:
        values = {
            "tenant_id": TENANT,
            "external_id": f"LH-{next(_external_ids)}",
            "received_at": now - timedelta(minutes=1),
            "origin_city": "Chicago",
            "origin_state": "IL",
            "origin_postal_code": "60601",
            "vehicle_type": "Large Straight",
            "pickup_date": "2024-06-02",
            "status": "new",
            "has_issues": False,
        }
        values.update(overrides)
        offer = LoadOffer(**values)
        db.add(offer)
        db.commit()
        db.refresh(offer)
        return offer

    return _make


@pytest.fixture
def make_plan(db, now):
    def _make(**overrides) -> HuntPlan:
        values = {
            "tenant_id": TENANT,
            "vehicle_id": "TRUCK-1",
            "plan_name": "Chicago outbound",
            "enabled": True,
            "vehicle_types": ["LARGE_STRAIGHT"],
            "origin_postal_code": "60601",
            "origin_lat": CHICAGO.lat,
            "origin_lng": CHICAGO.lng,
            "radius_miles": 100,
            "initial_backfill_done": True,
            "floor_id": None,
            "created_at": now,
            "last_modified_at": now,
        }
        values.update(overrides)
        plan = HuntPlan(**values)
        db.add(plan)
        db.commit()
        db.refresh(plan)
        return plan

    return _make


@pytest.fixture
def make_match(db, now):
    def _make(offer: LoadOffer, plan: HuntPlan, **overrides) -> HuntMatch:
        values = {
            "tenant_id": offer.tenant_id,
            "load_offer_id": offer.sequence_id,
            "hunt_plan_id": plan.id,
            "vehicle_id": plan.vehicle_id,
            "distance_miles": 10.0,
            "status": "active",
            "is_active": True,
            "matched_at": now,
            "updated_at": now,
        }
        values.update(overrides)
        match = HuntMatch(**values)
        db.add(match)
        db.commit()
        db.refresh(match)
        return match

    return _make


def matches_for(db, **filters) -> list[HuntMatch]:
    q = db.query(HuntMatch)
    for key, value in filters.items():
        q = q.filter(getattr(HuntMatch, key) == value)
    return q.order_by(HuntMatch.id.asc()).all()


@pytest.fixture
def vehicle_mappings(db):
    from loadhunt.services.matching.vehicle_types import upsert_mappings

    upsert_mappings(db, TENANT, {"large straight": "LARGE_STRAIGHT", "sprinter van": "SPRINTER"})
    return {"large straight": "LARGE_STRAIGHT", "sprinter van": "SPRINTER"}

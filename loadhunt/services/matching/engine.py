"""
Match engine: evaluate new load offers against eligible hunt plans and persist matches.

Matches are written with INSERT ... ON CONFLICT (load_offer_id, hunt_plan_id) DO NOTHING,
so repeated or concurrent passes create at most one row per pair and never touch a match
an operator has already acted on. Each (offer, plan) evaluation is isolated: a failure is
logged with both ids and the pass moves on.

Geocoding happens before fan-out: plan postal codes still missing coordinates and distinct
offer "City, ST" strings are resolved concurrently under one deadline, and the predicate
only sees finished lookups. Anything not resolved in time is retried by the backup pass.
"""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from loadhunt.core.constants import MATCH_ACTIVE, OFFER_NEW
from loadhunt.core.engine_config import GEOCODE_MAX_WORKERS, EngineConfig, get_engine_config
from loadhunt.db.upsert import insert_ignore
from loadhunt.models.hunt_plan import HuntPlan
from loadhunt.models.load_offer import LoadOffer
from loadhunt.models.match import HuntMatch
from loadhunt.services.clock import utc_now
from loadhunt.services.geo import get_geocoder
from loadhunt.services.geo.geocoder import Coordinates, Geocoder
from loadhunt.services.matching.cursor import eligible_plans, is_offer_eligible, lowest_floor
from loadhunt.services.matching.predicate import evaluate, has_usable_location
from loadhunt.services.matching.vehicle_types import load_mappings

logger = logging.getLogger(__name__)

ISSUE_NO_LOCATION = "No origin coordinates, city/state or postal code"

_executor: ThreadPoolExecutor | None = None
_executor_lock = threading.Lock()


def _get_executor() -> ThreadPoolExecutor:
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(max_workers=GEOCODE_MAX_WORKERS, thread_name_prefix="geocode")
        return _executor


@dataclass
class PassResult:
    offers: int = 0
    plans: int = 0
    evaluated: int = 0
    matched: int = 0
    created: int = 0
    flagged: int = 0
    errors: int = 0
    unresolved_locations: list[str] = field(default_factory=list)


class _ResolvedLocations:
    """Geocoder view over lookups that finished before fan-out; anything else is a miss."""

    def __init__(self, resolved: dict[str, Coordinates | None]) -> None:
        self._resolved = resolved

    def resolve(self, query: str) -> Coordinates | None:
        return self._resolved.get((query or "").strip())


class MatchEngine:
    def __init__(self, geocoder: Geocoder | None = None, config: EngineConfig | None = None) -> None:
        self.geocoder = geocoder
        self.config = config or get_engine_config()

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def run_pass(
        self,
        db: Session,
        tenant_id: str,
        *,
        offer_ids: list[int] | None = None,
        received_after: datetime | None = None,
        now: datetime | None = None,
    ) -> PassResult:
        """
        Forward pass for one tenant: new offers (optionally restricted to offer_ids or to
        offers received after a cutoff) against every enabled, backfilled plan.
        """
        plans = eligible_plans(db, tenant_id)
        if not plans:
            return PassResult()
        q = db.query(LoadOffer).filter(LoadOffer.tenant_id == tenant_id, LoadOffer.status == OFFER_NEW)
        floor = lowest_floor(plans)
        if floor is not None:
            q = q.filter(LoadOffer.sequence_id > floor)
        if offer_ids is not None:
            if not offer_ids:
                return PassResult()
            q = q.filter(LoadOffer.sequence_id.in_(offer_ids))
        if received_after is not None:
            q = q.filter(LoadOffer.received_at >= received_after)
        offers = q.order_by(LoadOffer.sequence_id.asc()).all()
        return self.match_offers(db, tenant_id, offers, plans, respect_cursor=True, now=now)

    def run_backup_pass(self, db: Session, tenant_id: str, *, now: datetime | None = None) -> PassResult:
        """Periodic re-evaluation of recent new offers (catches transient geocoding misses)."""
        now = now or utc_now()
        cutoff = now - timedelta(minutes=self.config.rematch_window_minutes)
        return self.run_pass(db, tenant_id, received_after=cutoff, now=now)

    def match_offers(
        self,
        db: Session,
        tenant_id: str,
        offers: list[LoadOffer],
        plans: list[HuntPlan],
        *,
        respect_cursor: bool = True,
        now: datetime | None = None,
    ) -> PassResult:
        """Evaluate offers x plans and insert new matches. Commits per offer."""
        result = PassResult(offers=len(offers), plans=len(plans))
        if not offers or not plans:
            return result
        now = now or utc_now()

        plans = [p for p in plans if p.tenant_id == tenant_id]
        mappings = load_mappings(db, tenant_id)
        locations = self._prefetch_locations(db, offers, plans, result)

        for offer in offers:
            if offer.tenant_id != tenant_id:
                logger.error("Engine: offer %s belongs to tenant %s, not %s; skipped", offer.sequence_id, offer.tenant_id, tenant_id)
                continue
            if not has_usable_location(offer):
                self._flag_offer(db, offer)
                result.flagged += 1
                continue
            rows = []
            for plan in plans:
                if respect_cursor and not is_offer_eligible(plan, offer.sequence_id):
                    continue
                result.evaluated += 1
                try:
                    verdict = evaluate(
                        offer,
                        plan,
                        geocoder=locations,
                        mappings=mappings,
                        default_radius=self.config.default_radius_miles,
                    )
                except Exception as e:
                    result.errors += 1
                    logger.warning("Engine: evaluation failed offer=%s plan=%s: %s", offer.sequence_id, plan.id, e, exc_info=True)
                    continue
                if verdict.matches:
                    result.matched += 1
                    rows.append(
                        {
                            "tenant_id": tenant_id,
                            "load_offer_id": offer.sequence_id,
                            "hunt_plan_id": plan.id,
                            "vehicle_id": plan.vehicle_id,
                            "distance_miles": verdict.distance_miles,
                            "status": MATCH_ACTIVE,
                            "is_active": True,
                            "matched_at": now,
                            "updated_at": now,
                        }
                    )
            if not rows:
                continue
            try:
                result.created += insert_ignore(db, HuntMatch, rows, ["load_offer_id", "hunt_plan_id"])
                db.commit()
            except Exception as e:
                db.rollback()
                result.errors += 1
                logger.exception("Engine: match upsert failed offer=%s plans=%s: %s", offer.sequence_id, [r["hunt_plan_id"] for r in rows], e)

        logger.info(
            "Engine pass tenant=%s offers=%s plans=%s evaluated=%s matched=%s created=%s flagged=%s errors=%s",
            tenant_id,
            result.offers,
            result.plans,
            result.evaluated,
            result.matched,
            result.created,
            result.flagged,
            result.errors,
        )
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _prefetch_locations(
        self, db: Session, offers: list[LoadOffer], plans: list[HuntPlan], result: PassResult
    ) -> _ResolvedLocations:
        """
        Resolve plan postal codes (plans without coordinates) and offer "City, ST" strings in
        one deadline-bounded batch. Lookups still running at the deadline are misses for this
        pass; finished plan lookups are saved on the plan.
        """
        if self.geocoder is None:
            return _ResolvedLocations({})
        pending_plans: dict[str, list[HuntPlan]] = {}
        for plan in plans:
            postal = (plan.origin_postal_code or "").strip()
            if not plan.has_coordinates and postal:
                pending_plans.setdefault(postal, []).append(plan)
        offer_queries: set[str] = set()
        if pending_plans or any(p.has_coordinates for p in plans):
            offer_queries = {
                o.origin_city_state.strip()
                for o in offers
                if not o.has_coordinates and o.origin_city_state
            }
        queries = sorted(set(pending_plans) | offer_queries)
        if not queries:
            return _ResolvedLocations({})

        executor = _get_executor()
        futures: dict[str, Future] = {q: executor.submit(self.geocoder.resolve, q) for q in queries}
        wait(list(futures.values()), timeout=self.config.geocode_prefetch_timeout_seconds)
        resolved: dict[str, Coordinates | None] = {}
        for q, fut in futures.items():
            if not fut.done():
                result.unresolved_locations.append(q)
                continue
            try:
                resolved[q] = fut.result()
            except Exception as e:
                result.unresolved_locations.append(q)
                logger.warning("Engine: geocode of %r raised: %s", q, e)
        if result.unresolved_locations:
            logger.info("Engine: %s locations not resolved this pass (retried by backup pass)", len(result.unresolved_locations))

        changed = False
        for postal, waiting in pending_plans.items():
            coords = resolved.get(postal)
            if coords is None:
                logger.debug("Engine: postal %s not geocoded; plans %s use postal-code matching", postal, [p.id for p in waiting])
                continue
            for plan in waiting:
                plan.origin_lat = coords.lat
                plan.origin_lng = coords.lng
                changed = True
        if changed:
            db.commit()
        return _ResolvedLocations(resolved)

    def _flag_offer(self, db: Session, offer: LoadOffer) -> None:
        if offer.has_issues:
            return
        offer.has_issues = True
        offer.issue_notes = ISSUE_NO_LOCATION
        db.commit()
        logger.warning("Engine: offer %s (%s) has no usable origin; flagged for review", offer.sequence_id, offer.external_id)


_default_engine: MatchEngine | None = None


def get_match_engine() -> MatchEngine:
    """Process-wide engine over the shared geocoder (workers and scheduler jobs)."""
    global _default_engine
    with _executor_lock:
        if _default_engine is None:
            _default_engine = MatchEngine(geocoder=get_geocoder())
        return _default_engine

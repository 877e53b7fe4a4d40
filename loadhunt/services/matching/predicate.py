"""
Does one load offer satisfy one hunt plan? Rules in order, first failure wins:

1. Date: pickup date (calendar day) on or after the plan's available date.
2. Vehicle type: canonical offer type is one of the plan's canonical types.
3. Geography: Haversine distance <= radius when both sides have coordinates, else exact
   postal-code equality; no comparison possible means no match.

The plan's coordinates must already be resolved (engine does that); only the offer's
"City, ST" is geocoded here, through the shared cache.
"""
from dataclasses import dataclass
from typing import Any

from loadhunt.core.engine_config import DEFAULT_RADIUS_MILES
from loadhunt.services.geo.distance import haversine_miles
from loadhunt.services.geo.geocoder import Coordinates, Geocoder
from loadhunt.services.matching.dates import is_blank, parse_calendar_date
from loadhunt.services.matching.vehicle_types import canonical_plan_types, canonicalize


@dataclass(frozen=True)
class MatchResult:
    matches: bool
    distance_miles: float | None = None

    @classmethod
    def no(cls, distance_miles: float | None = None) -> "MatchResult":
        return cls(matches=False, distance_miles=distance_miles)


def effective_radius(plan: Any, default: int = DEFAULT_RADIUS_MILES) -> float:
    # 0 and NULL both mean "use the default", like an empty radius field in the console
    return float(plan.radius_miles or default)


def offer_coordinates(offer: Any, geocoder: Geocoder | None) -> Coordinates | None:
    """Direct lat/lng first, then the geocoded 'City, ST'."""
    if offer.origin_lat is not None and offer.origin_lng is not None:
        return Coordinates(lat=float(offer.origin_lat), lng=float(offer.origin_lng))
    query = offer.origin_city_state
    if query and geocoder is not None:
        return geocoder.resolve(query)
    return None


def has_usable_location(offer: Any) -> bool:
    """False when the offer can never be compared geographically (data-quality issue)."""
    return bool(
        (offer.origin_lat is not None and offer.origin_lng is not None)
        or offer.origin_city_state
        or not is_blank(offer.origin_postal_code)
    )


def date_matches(offer: Any, plan: Any) -> bool:
    if is_blank(plan.available_date) or is_blank(offer.pickup_date):
        return True
    available = parse_calendar_date(plan.available_date)
    pickup = parse_calendar_date(offer.pickup_date)
    if available is None or pickup is None:
        return False
    return pickup >= available


def vehicle_type_matches(offer: Any, plan: Any, mappings: dict[str, str]) -> bool:
    plan_types = canonical_plan_types(plan.vehicle_types)
    if not plan_types:
        return True
    offer_type = canonicalize(offer.vehicle_type, mappings)
    if not offer_type:
        return True
    return offer_type in plan_types


def _postal(value: str | None) -> str:
    return (value or "").strip()


def evaluate(
    offer: Any,
    plan: Any,
    *,
    geocoder: Geocoder | None = None,
    mappings: dict[str, str] | None = None,
    default_radius: int = DEFAULT_RADIUS_MILES,
) -> MatchResult:
    """Evaluate one (offer, plan) pair. Never raises for bad data; bad data is a non-match."""
    if not date_matches(offer, plan):
        return MatchResult.no()
    if not vehicle_type_matches(offer, plan, mappings or {}):
        return MatchResult.no()

    if plan.origin_lat is not None and plan.origin_lng is not None:
        coords = offer_coordinates(offer, geocoder)
        if coords is not None:
            distance = haversine_miles(float(plan.origin_lat), float(plan.origin_lng), coords.lat, coords.lng)
            if distance <= effective_radius(plan, default_radius):
                return MatchResult(matches=True, distance_miles=distance)
            return MatchResult.no(distance)

    plan_zip = _postal(plan.origin_postal_code)
    offer_zip = _postal(offer.origin_postal_code)
    if plan_zip and offer_zip and plan_zip == offer_zip:
        return MatchResult(matches=True, distance_miles=None)
    return MatchResult.no()

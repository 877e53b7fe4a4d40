"""
Unit tests for the match predicate.

Covers:
- date rule (ISO prefix, US formats, unparseable values)
- vehicle type canonicalization through the tenant mapping
- radius matching (inclusive boundary, default radius) and postal-code fallback
- the Chicago LARGE_STRAIGHT scenario
"""
import math
from datetime import date

import pytest

from conftest import CHICAGO, FakeGeocoder
from loadhunt.models import HuntPlan, LoadOffer
from loadhunt.services.geo.distance import EARTH_RADIUS_MILES, haversine_miles
from loadhunt.services.matching.dates import parse_calendar_date
from loadhunt.services.matching.predicate import effective_radius, evaluate, has_usable_location
from loadhunt.services.matching.vehicle_types import canonicalize

MAPPINGS = {"large straight": "LARGE_STRAIGHT", "sprinter van": "SPRINTER"}


def _north_of_chicago(miles: float) -> float:
    """Latitude exactly `miles` north of the Chicago plan origin."""
    return CHICAGO.lat + math.degrees(miles / EARTH_RADIUS_MILES)


def _plan(**kw) -> HuntPlan:
    values = dict(
        tenant_id="acme",
        vehicle_id="TRUCK-1",
        plan_name="p",
        vehicle_types=["LARGE_STRAIGHT"],
        origin_postal_code="60601",
        origin_lat=CHICAGO.lat,
        origin_lng=CHICAGO.lng,
        radius_miles=100,
        available_date=date(2024, 6, 1),
    )
    values.update(kw)
    return HuntPlan(**values)


def _offer(**kw) -> LoadOffer:
    values = dict(
        tenant_id="acme",
        external_id="LH-1",
        origin_lat=_north_of_chicago(42.3),
        origin_lng=CHICAGO.lng,
        vehicle_type="large straight",
        pickup_date="2024-06-02",
    )
    values.update(kw)
    return LoadOffer(**values)


@pytest.mark.unit
class TestCalendarDates:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("2025-12-19 08:00 CST", date(2025, 12, 19)),
            ("2025-12-19", date(2025, 12, 19)),
            ("12/19/25", date(2025, 12, 19)),
            ("12/19/2025", date(2025, 12, 19)),
            ("1/5/2025 08:00", date(2025, 1, 5)),
        ],
    )
    def test_accepted_formats(self, raw, expected):
        assert parse_calendar_date(raw) == expected

    @pytest.mark.parametrize("raw", ["ASAP", "2025-13-45", "13/40/25", "tomorrow"])
    def test_unparseable_is_none(self, raw):
        assert parse_calendar_date(raw) is None

    def test_unparseable_pickup_is_non_match(self):
        assert evaluate(_offer(pickup_date="ASAP"), _plan(), mappings=MAPPINGS).matches is False

    def test_missing_dates_skip_the_rule(self):
        assert evaluate(_offer(pickup_date=None), _plan(), mappings=MAPPINGS).matches is True
        assert evaluate(_offer(), _plan(available_date=None), mappings=MAPPINGS).matches is True

    def test_same_day_matches(self):
        assert evaluate(_offer(pickup_date="06/01/2024"), _plan(), mappings=MAPPINGS).matches is True


@pytest.mark.unit
class TestVehicleTypes:
    def test_mapping_wins(self):
        assert canonicalize("  Large Straight ", MAPPINGS) == "LARGE_STRAIGHT"

    def test_unmapped_uppercases(self):
        assert canonicalize("box truck", MAPPINGS) == "BOX TRUCK"

    def test_unmapped_type_not_in_plan(self):
        assert evaluate(_offer(vehicle_type="flatbed"), _plan(), mappings=MAPPINGS).matches is False

    def test_without_mapping_label_does_not_match_code(self):
        assert evaluate(_offer(), _plan(), mappings={}).matches is False

    def test_plan_without_types_accepts_any(self):
        assert evaluate(_offer(vehicle_type="flatbed"), _plan(vehicle_types=[]), mappings=MAPPINGS).matches is True


@pytest.mark.unit
class TestGeography:
    def test_inclusive_boundary(self):
        offer = _offer()
        exact = haversine_miles(CHICAGO.lat, CHICAGO.lng, offer.origin_lat, offer.origin_lng)
        plan = _plan()
        plan.radius_miles = exact  # radius equal to the distance
        result = evaluate(offer, plan, mappings=MAPPINGS)
        assert result.matches is True
        assert result.distance_miles == pytest.approx(exact)

    def test_outside_radius(self):
        result = evaluate(_offer(origin_lat=_north_of_chicago(120)), _plan(), mappings=MAPPINGS)
        assert result.matches is False
        assert result.distance_miles == pytest.approx(120, abs=0.01)

    def test_zero_radius_uses_default(self):
        plan = _plan(radius_miles=0)
        assert effective_radius(plan, 100) == 100.0
        assert evaluate(_offer(origin_lat=_north_of_chicago(90)), plan, mappings=MAPPINGS, default_radius=100).matches

    def test_city_state_is_geocoded(self):
        geocoder = FakeGeocoder({"Chicago, IL": CHICAGO})
        offer = _offer(origin_lat=None, origin_lng=None, origin_city="Chicago", origin_state="IL")
        result = evaluate(offer, _plan(), geocoder=geocoder, mappings=MAPPINGS)
        assert result.matches is True
        assert result.distance_miles == pytest.approx(0.0)
        assert geocoder.calls == ["Chicago, IL"]

    def test_postal_fallback_when_geocode_misses(self):
        offer = _offer(origin_lat=None, origin_lng=None, origin_city="Nowhere", origin_state="ZZ", origin_postal_code="60601")
        result = evaluate(offer, _plan(), geocoder=FakeGeocoder(), mappings=MAPPINGS)
        assert result.matches is True
        assert result.distance_miles is None

    def test_plan_without_coordinates_uses_postal_equality(self):
        plan = _plan(origin_lat=None, origin_lng=None)
        assert evaluate(_offer(origin_postal_code="60601"), plan, mappings=MAPPINGS).matches is True
        assert evaluate(_offer(origin_postal_code="46201"), plan, mappings=MAPPINGS).matches is False

    def test_nothing_comparable_is_non_match(self):
        offer = _offer(origin_lat=None, origin_lng=None, origin_postal_code=None)
        assert evaluate(offer, _plan(origin_lat=None, origin_lng=None), mappings=MAPPINGS).matches is False

    def test_usable_location(self):
        assert has_usable_location(_offer())
        assert has_usable_location(_offer(origin_lat=None, origin_lng=None, origin_postal_code="60601"))
        assert not has_usable_location(_offer(origin_lat=None, origin_lng=None, origin_postal_code="  "))


@pytest.mark.unit
class TestChicagoScenario:
    def test_pickup_after_available_matches_at_42_miles(self):
        result = evaluate(_offer(), _plan(), mappings=MAPPINGS)
        assert result.matches is True
        assert result.distance_miles == pytest.approx(42.3, abs=0.01)

    def test_pickup_before_available_never_matches(self):
        result = evaluate(_offer(pickup_date="2024-05-30"), _plan(), mappings=MAPPINGS)
        assert result.matches is False
        assert result.distance_miles is None

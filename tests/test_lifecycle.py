"""
Match lifecycle transitions: guarded updates, bid cascade, booking and action history.
"""
import pytest

from conftest import TENANT
from loadhunt.core.errors import InvalidTransitionError, MatchNotFoundError, OfferNotFoundError
from loadhunt.models import HuntMatch, LoadOffer, MatchAction
from loadhunt.services import lifecycle
from loadhunt.services.lifecycle import Actor

DANA = Actor(id="u-dana", name="Dana")


@pytest.fixture
def offer_with_three_matches(make_plan, make_offer, make_match):
    offer = make_offer()
    matches = [
        make_match(offer, make_plan(vehicle_id=f"TRUCK-{i}"), distance_miles=10.0 * i)
        for i in (1, 2, 3)
    ]
    return offer, matches


def _history(db, match_id):
    return db.query(MatchAction).filter(MatchAction.match_id == match_id).order_by(MatchAction.id).all()


@pytest.mark.unit
class TestOperatorTransitions:
    @pytest.mark.parametrize(
        "fn,status",
        [
            (lifecycle.skip_match, "skipped"),
            (lifecycle.waitlist_match, "waitlist"),
            (lifecycle.mark_undecided, "undecided"),
        ],
    )
    def test_from_active(self, db, offer_with_three_matches, fn, status):
        _, matches = offer_with_three_matches
        match = fn(db, TENANT, matches[0].id, DANA)
        assert match.status == status
        assert match.is_active is False
        [action] = _history(db, match.id)
        assert action.action == status
        assert action.actor_id == "u-dana"
        assert action.actor_name == "Dana"

    def test_second_transition_rejected(self, db, offer_with_three_matches):
        _, matches = offer_with_three_matches
        lifecycle.skip_match(db, TENANT, matches[0].id, DANA)
        with pytest.raises(InvalidTransitionError) as exc:
            lifecycle.waitlist_match(db, TENANT, matches[0].id, DANA)
        assert exc.value.current_status == "skipped"
        assert exc.value.target_status == "waitlist"
        assert db.get(HuntMatch, matches[0].id).status == "skipped"
        assert len(_history(db, matches[0].id)) == 1

    def test_unknown_or_foreign_match(self, db, offer_with_three_matches):
        _, matches = offer_with_three_matches
        with pytest.raises(MatchNotFoundError):
            lifecycle.skip_match(db, TENANT, 9999, DANA)
        with pytest.raises(MatchNotFoundError):
            lifecycle.skip_match(db, "globex", matches[0].id, DANA)


@pytest.mark.unit
class TestBidAndBook:
    def test_bid_skips_active_siblings(self, db, offer_with_three_matches):
        _, (first, second, third) = offer_with_three_matches
        lifecycle.waitlist_match(db, TENANT, third.id, DANA)

        match, skipped = lifecycle.place_bid(db, TENANT, second.id, DANA, rate=1850.0)
        assert match.status == "bid"
        assert match.bid_rate == 1850.0
        assert match.bid_by == "u-dana"
        assert match.bid_at is not None
        assert skipped == [first.id]

        assert db.get(HuntMatch, first.id).status == "skipped"
        assert db.get(HuntMatch, third.id).status == "waitlist"  # only active siblings cascade
        [cascade] = _history(db, first.id)
        assert cascade.action == "skipped"
        assert cascade.detail == f"sibling_bid:{second.id}"

    def test_at_most_one_bid_per_offer(self, db, offer_with_three_matches):
        _, (first, second, _third) = offer_with_three_matches
        lifecycle.place_bid(db, TENANT, first.id, DANA)
        with pytest.raises(InvalidTransitionError):
            lifecycle.place_bid(db, TENANT, second.id, DANA)
        bids = db.query(HuntMatch).filter(HuntMatch.status == "bid").count()
        assert bids == 1

    def test_book_requires_bid(self, db, offer_with_three_matches):
        _, (first, _second, _third) = offer_with_three_matches
        with pytest.raises(InvalidTransitionError):
            lifecycle.book_match(db, TENANT, first.id, DANA)
        lifecycle.place_bid(db, TENANT, first.id, DANA, rate=900)
        booked = lifecycle.book_match(db, TENANT, first.id, DANA, booked_load_id="LOAD-77")
        assert booked.status == "booked"
        assert booked.booked_load_id == "LOAD-77"
        assert booked.booked_at is not None
        assert [a.action for a in _history(db, first.id)] == ["bid", "booked"]

    def test_expire_only_touches_active(self, db, offer_with_three_matches):
        _, (first, second, third) = offer_with_three_matches
        lifecycle.place_bid(db, TENANT, first.id, DANA)  # second, third -> skipped
        assert lifecycle.expire_matches(db, TENANT, [second.id, third.id, first.id]) == 0
        assert db.get(HuntMatch, first.id).status == "bid"


@pytest.mark.unit
class TestOfferActions:
    def test_offer_skip_leaves_matches_alone(self, db, offer_with_three_matches):
        offer, matches = offer_with_three_matches
        result = lifecycle.skip_offer(db, TENANT, offer.sequence_id, DANA)
        assert result.status == "skipped"
        assert {m.status for m in db.query(HuntMatch).all()} == {"active"}
        for m in matches:
            assert [a.action for a in _history(db, m.id)] == ["offer_skipped"]

    def test_waitlisted_offer_can_be_reviewed(self, db, offer_with_three_matches):
        offer, _ = offer_with_three_matches
        lifecycle.waitlist_offer(db, TENANT, offer.sequence_id, DANA)
        reviewed = lifecycle.mark_offer_reviewed(db, TENANT, offer.sequence_id, DANA)
        assert reviewed.status == "reviewed"

    def test_reviewed_offer_is_terminal(self, db, offer_with_three_matches):
        offer, _ = offer_with_three_matches
        lifecycle.mark_offer_reviewed(db, TENANT, offer.sequence_id, DANA)
        with pytest.raises(InvalidTransitionError):
            lifecycle.waitlist_offer(db, TENANT, offer.sequence_id, DANA)
        assert db.get(LoadOffer, offer.sequence_id).status == "reviewed"

    def test_unknown_offer(self, db):
        with pytest.raises(OfferNotFoundError):
            lifecycle.skip_offer(db, TENANT, 424242, DANA)

    def test_stale_session_cannot_reopen_reviewed_offer(self, db, session_factory, offer_with_three_matches):
        offer, matches = offer_with_three_matches
        assert offer.status == "new"  # loaded in db's identity map
        other = session_factory()
        try:
            lifecycle.mark_offer_reviewed(other, TENANT, offer.sequence_id, Actor(id="u-sam", name="Sam"))
        finally:
            other.close()

        with pytest.raises(InvalidTransitionError) as exc:
            lifecycle.waitlist_offer(db, TENANT, offer.sequence_id, DANA)
        assert exc.value.current_status == "reviewed"
        db.rollback()

        fresh = session_factory()
        try:
            assert fresh.get(LoadOffer, offer.sequence_id).status == "reviewed"
            actions = fresh.query(MatchAction.action).filter(MatchAction.match_id == matches[0].id).all()
            assert [a[0] for a in actions] == ["offer_reviewed"]
        finally:
            fresh.close()

    def test_repeat_offer_action_is_noop(self, db, offer_with_three_matches):
        offer, matches = offer_with_three_matches
        lifecycle.waitlist_offer(db, TENANT, offer.sequence_id, DANA)
        again = lifecycle.waitlist_offer(db, TENANT, offer.sequence_id, DANA)
        assert again.status == "waitlisted"
        assert [a.action for a in _history(db, matches[0].id)] == ["offer_waitlisted"]

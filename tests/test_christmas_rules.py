"""
Tests for Christmas access rules

Tests cover:
- The 30 September cutoff between code-only access and closed bulk bookings
- Access codes and the two-room limit for subsidized parties
- Which stays count as touching a period
- Administrator exemption and stay changes made through updates
"""

import pytest
from datetime import date, datetime

from chalet.exceptions import ChristmasAccessError
from chalet.services.booking_service import BookingChanges, BookingService
from chalet.services.christmas_rules import access_requirement
from chalet.services.inventory_store import DEFAULT_ROOMS

from conftest import FakeClock

ALL_ROOMS = tuple(room_id for room_id, _, _ in DEFAULT_ROOMS)


@pytest.fixture
def period(store):
    with store.transaction():
        period = store.christmas.create_period(date(2025, 12, 23), date(2026, 1, 2), name="Christmas 2025")
        store.christmas.add_code("XMAS2025")
    return period


@pytest.fixture
def october_bookings(store):
    return BookingService(store, clock=FakeClock(datetime(2025, 10, 15, 12, 0, 0)))


def christmas_draft(make_draft, room_ids=("12",), code=None, **kwargs):
    draft = make_draft(date(2025, 12, 24), date(2025, 12, 27), room_ids=room_ids, **kwargs)
    draft.christmas_code = code
    return draft


class TestAccessRequirement:

    def test_code_required_until_end_of_september(self):
        access = access_requirement(date(2025, 9, 30), date(2025, 12, 23), is_bulk=True)

        assert access.code_required is True
        assert access.bulk_blocked is False

    def test_from_october_bulk_is_closed(self):
        assert access_requirement(date(2025, 10, 1), date(2025, 12, 23), is_bulk=True).bulk_blocked is True

        single = access_requirement(date(2025, 10, 1), date(2025, 12, 23), is_bulk=False)
        assert (single.code_required, single.bulk_blocked) == (False, False)

    def test_cutoff_follows_the_period_year(self):
        assert access_requirement(date(2025, 10, 15), date(2026, 12, 23)).code_required is True


class TestBeforeOctober:
    """The pinned clock (1 June 2025) is before the cutoff"""

    def test_code_required(self, bookings, make_draft, period):
        with pytest.raises(ChristmasAccessError) as exc_info:
            bookings.create_booking(christmas_draft(make_draft))

        assert exc_info.value.reason == "code_required"
        assert exc_info.value.period_id == period.id
        assert bookings.list_bookings() == []

    def test_unknown_code_rejected(self, bookings, make_draft, period):
        with pytest.raises(ChristmasAccessError) as exc_info:
            bookings.create_booking(christmas_draft(make_draft, code="GUESS"))

        assert exc_info.value.reason == "invalid_code"

    def test_valid_code_accepted(self, bookings, make_draft, period):
        booking = bookings.create_booking(christmas_draft(make_draft, code="XMAS2025"))

        assert booking.start_date == date(2025, 12, 24)

    def test_subsidized_party_limited_to_two_rooms(self, bookings, make_draft, period):
        with pytest.raises(ChristmasAccessError) as exc_info:
            bookings.create_booking(christmas_draft(
                make_draft, room_ids=("12", "13", "14"), code="XMAS2025", guest_class="subsidized"
            ))
        assert exc_info.value.reason == "room_limit"

        assert bookings.create_booking(christmas_draft(
            make_draft, room_ids=("12", "13"), code="XMAS2025", guest_class="subsidized"
        ))

    def test_external_party_has_no_room_limit(self, bookings, make_draft, period):
        assert bookings.create_booking(christmas_draft(make_draft, room_ids=("12", "13", "14"), code="XMAS2025"))

    def test_bulk_with_code_allowed(self, bookings, make_draft, period):
        booking = bookings.create_booking(christmas_draft(make_draft, room_ids=ALL_ROOMS, code="XMAS2025"))

        assert booking.is_bulk is True


class TestFromOctober:

    def test_single_booking_needs_no_code(self, october_bookings, make_draft, period):
        assert october_bookings.create_booking(christmas_draft(make_draft))

    def test_bulk_booking_closed(self, october_bookings, make_draft, period):
        with pytest.raises(ChristmasAccessError) as exc_info:
            october_bookings.create_booking(christmas_draft(make_draft, room_ids=ALL_ROOMS, code="XMAS2025"))

        assert exc_info.value.reason == "bulk_blocked"


class TestPeriodMatching:

    def test_check_out_on_first_day_is_outside(self, bookings, make_draft, period):
        assert bookings.create_booking(make_draft(date(2025, 12, 21), date(2025, 12, 23)))

    def test_night_of_last_day_is_inside(self, bookings, make_draft, period):
        with pytest.raises(ChristmasAccessError):
            bookings.create_booking(make_draft(date(2026, 1, 2), date(2026, 1, 4)))

    def test_no_periods_no_rules(self, bookings, make_draft):
        assert bookings.create_booking(christmas_draft(make_draft))


class TestExemptionsAndUpdates:

    def test_admin_is_exempt(self, bookings, make_draft, period):
        booking = bookings.create_booking(
            christmas_draft(make_draft, room_ids=("12", "13", "14"), guest_class="subsidized"),
            is_admin=True,
        )

        assert len(booking.assignments) == 3

    def test_moving_into_the_period_needs_a_code(self, bookings, book, period):
        booking = book("12", date(2025, 12, 10), date(2025, 12, 12))
        move = dict(start_date=date(2025, 12, 24), end_date=date(2025, 12, 26))

        with pytest.raises(ChristmasAccessError):
            bookings.update_booking(booking.id, BookingChanges(**move), edit_token=booking.edit_token)

        updated = bookings.update_booking(
            booking.id,
            BookingChanges(christmas_code="XMAS2025", **move),
            edit_token=booking.edit_token,
        )
        assert updated.start_date == date(2025, 12, 24)

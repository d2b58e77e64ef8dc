"""
API tests

Exercises the HTTP surface end to end against an in-memory database:
- Input validation (phone, zip, XSS, duplicate rooms)
- Rooms, availability calendar, quotes
- Holds and their effect on other sessions
- Booking lifecycle with the edit token and the admin API key
- Error payloads and health checks
"""

import pytest
from datetime import date
from decimal import Decimal

from fastapi.testclient import TestClient
from pydantic import ValidationError

from chalet.config import settings
from chalet.database import get_db
from chalet.main import app
from chalet.schemas.booking import BookingCreate, ContactIn
from chalet.utils.dependencies import get_clock
from chalet.utils.rate_limiter import limiter

ADMIN = {"X-API-Key": settings.admin_api_key}


@pytest.fixture
def client(db, store, clock, monkeypatch):
    """TestClient sharing the test session and the fixed clock"""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    monkeypatch.setattr(limiter, "enabled", False)

    yield TestClient(app)

    app.dependency_overrides.clear()


def contact(**overrides):
    data = {
        "name": "Jana Novakova",
        "email": "jana@example.cz",
        "phone": "+420 123 456 789",
        "city": "Brno",
        "zip_code": "602 00",
    }
    data.update(overrides)
    return data


def booking_payload(start="2025-06-10", end="2025-06-12", room_id="13", **guests):
    composition = {"kind": "uniform", "guest_class": "subsidized", "adults": 2, "children": 1}
    composition.update(guests)
    return {
        "start_date": start,
        "end_date": end,
        "rooms": [{"room_id": room_id, "guests": composition}],
        "contact": contact(),
    }


class TestInputValidation:
    """Schema-level validation"""

    def test_phone_is_normalized(self):
        assert ContactIn(**contact()).phone == "+420123456789"
        assert ContactIn(**contact(phone="+421 987 654 321")).phone == "+421987654321"

    @pytest.mark.parametrize("phone", ["123456789", "+4201234567", "+44123456789", "+420abcdefghi"])
    def test_bad_phone_rejected(self, phone):
        with pytest.raises(ValidationError):
            ContactIn(**contact(phone=phone))

    def test_zip_is_normalized(self):
        assert ContactIn(**contact()).zip_code == "60200"
        with pytest.raises(ValidationError):
            ContactIn(**contact(zip_code="1234"))

    def test_bad_email_rejected(self):
        with pytest.raises(ValidationError):
            ContactIn(**contact(email="not-an-email"))

    def test_script_tags_are_stripped(self):
        data = ContactIn(**contact(notes="<script>alert(1)</script>Late arrival"))

        assert data.notes == "Late arrival"

    def test_duplicate_rooms_rejected(self):
        payload = booking_payload()
        payload["rooms"].append(payload["rooms"][0])

        with pytest.raises(ValidationError):
            BookingCreate(**payload)

    def test_end_before_start_rejected(self):
        with pytest.raises(ValidationError):
            BookingCreate(**booking_payload(start="2025-06-12", end="2025-06-10"))

    def test_per_guest_composition(self):
        payload = booking_payload()
        payload["rooms"][0]["guests"] = {
            "kind": "per_guest",
            "guests": [
                {"person_type": "adult", "guest_class": "subsidized", "first_name": "Petr", "last_name": "Novak"},
                {"person_type": "toddler", "first_name": "Ema", "last_name": "Novakova"},
            ],
        }

        draft = BookingCreate(**payload).to_domain()

        guests = draft.rooms[0].guests
        assert guests.kind == "per_guest"
        assert (guests.adults, guests.toddlers) == (1, 1)
        assert guests.guest_class == "subsidized"


class TestRoomsAndQuotes:

    def test_list_rooms(self, client):
        response = client.get("/api/rooms")

        assert response.status_code == 200
        rooms = response.json()
        assert [r["id"] for r in rooms] == ["12", "13", "14", "22", "23", "24", "42", "43", "44"]
        assert {r["id"]: r["bed_count"] for r in rooms}["14"] == 4

    def test_quote(self, client):
        payload = booking_payload()
        del payload["contact"]

        response = client.post("/api/pricing/quote", json=payload)

        assert response.status_code == 200
        body = response.json()
        assert body["mode"] == "per_room"
        assert body["nights"] == 2
        assert Decimal(str(body["total"])) == Decimal("750")
        assert body["currency"] == settings.currency

    def test_quote_unknown_room(self, client):
        payload = booking_payload(room_id="99")
        del payload["contact"]

        response = client.post("/api/pricing/quote", json=payload)

        assert response.status_code == 404
        assert response.json()["error"] == "room_not_found"

    def test_price_config_needs_admin(self, client):
        update = {"rates": [{
            "guest_class": "external", "room_tier": "small",
            "empty_room_rate": 450, "adult_rate": 100, "child_rate": 50,
        }]}

        assert client.put("/api/pricing/config", json=update).status_code == 401

        response = client.put("/api/pricing/config", json=update, headers=ADMIN)
        assert response.status_code == 200
        rates = {(r["guest_class"], r["room_tier"]): r for r in response.json()["rates"]}
        assert Decimal(str(rates[("external", "small")]["empty_room_rate"])) == Decimal("450")


class TestHoldsAndAvailability:

    def test_hold_hides_room_from_other_sessions(self, client):
        response = client.post("/api/holds", json={
            "session_id": "S1",
            "start_date": "2025-06-10",
            "end_date": "2025-06-12",
            "room_ids": ["12"],
            "guests": {"kind": "uniform", "adults": 2},
        })
        assert response.status_code == 201
        proposal_id = response.json()["proposal_id"]

        other = client.get("/api/availability", params={"room_id": "12", "day": "2025-06-11", "session_id": "S2"})
        own = client.get("/api/availability", params={"room_id": "12", "day": "2025-06-11", "session_id": "S1"})

        assert other.json()["status"] == "proposed"
        assert other.json()["proposal_id"] == proposal_id
        assert own.json()["status"] == "available"

    def test_hold_lifecycle(self, client):
        proposal_id = client.post("/api/holds", json={
            "session_id": "S1",
            "start_date": "2025-06-10",
            "end_date": "2025-06-12",
            "room_ids": ["12"],
        }).json()["proposal_id"]

        assert client.get(f"/api/holds/{proposal_id}").json()["session_id"] == "S1"
        assert len(client.get("/api/holds/session/S1").json()) == 1
        assert client.delete(f"/api/holds/{proposal_id}").status_code == 204
        assert client.get(f"/api/holds/{proposal_id}").status_code == 404

    def test_hold_with_named_guests(self, client):
        response = client.post("/api/holds", json={
            "session_id": "S1",
            "start_date": "2025-06-10",
            "end_date": "2025-06-12",
            "room_ids": ["13"],
            "guests": {
                "kind": "per_guest",
                "guests": [
                    {"person_type": "adult", "guest_class": "subsidized"},
                    {"person_type": "child"},
                    {"person_type": "toddler"},
                ],
            },
        })
        assert response.status_code == 201

        hold = client.get(f"/api/holds/{response.json()['proposal_id']}").json()
        assert (hold["adults"], hold["children"], hold["toddlers"]) == (1, 1, 1)
        assert hold["guest_class"] == "subsidized"

    def test_hold_over_capacity_rejected(self, client):
        response = client.post("/api/holds", json={
            "session_id": "S1",
            "start_date": "2025-06-10",
            "end_date": "2025-06-12",
            "room_ids": ["12"],
            "guests": {"kind": "uniform", "adults": 3},
        })

        assert response.status_code == 400
        assert response.json()["error"] == "capacity_exceeded"

    def test_hold_over_booking_rejected(self, client):
        client.post("/api/bookings", json=booking_payload(room_id="12", adults=1, children=0))

        response = client.post("/api/holds", json={
            "session_id": "S1",
            "start_date": "2025-06-11",
            "end_date": "2025-06-13",
            "room_ids": ["12"],
        })

        assert response.status_code == 409

    def test_calendar(self, client):
        client.post("/api/bookings", json=booking_payload(room_id="12", adults=1, children=0))

        response = client.get("/api/availability/calendar", params={
            "start": "2025-06-09",
            "end": "2025-06-13",
            "room_id": ["12", "13"],
        })

        assert response.status_code == 200
        rooms = response.json()["rooms"]
        assert set(rooms) == {"12", "13"}
        assert [d["status"] for d in rooms["12"]] == ["available", "edge", "occupied", "edge", "available"]
        assert rooms["12"][1]["occupied_side"] == "after"

    def test_calendar_window_is_limited(self, client):
        response = client.get("/api/availability/calendar", params={"start": "2025-01-01", "end": "2026-12-31"})

        assert response.status_code == 400

    def test_availability_reads_are_rate_limited(self):
        from chalet.routers import availability

        for endpoint in (availability.get_day_availability, availability.get_calendar):
            limits = limiter._route_limits[f"{endpoint.__module__}.{endpoint.__name__}"]
            assert len(limits) == 1
            assert limits[0].limit.amount == 300

    def test_unknown_room_availability(self, client):
        response = client.get("/api/availability", params={"room_id": "99", "day": "2025-06-11"})

        assert response.status_code == 404


class TestBookingLifecycle:

    def test_create_update_delete(self, client):
        created = client.post("/api/bookings", json=booking_payload())
        assert created.status_code == 201
        body = created.json()
        booking_id, token = body["id"], body["edit_token"]
        assert body["price_locked"] is True
        assert Decimal(str(body["total_price"])) == Decimal("750")

        fetched = client.get(f"/api/bookings/edit/{token}")
        assert fetched.status_code == 200
        assert "edit_token" not in fetched.json()

        assert client.put(f"/api/bookings/{booking_id}", json={"notes": "x"}).status_code == 401
        assert client.put(
            f"/api/bookings/{booking_id}", json={"notes": "x"}, headers={"X-Edit-Token": "wrong"}
        ).status_code == 403

        updated = client.put(
            f"/api/bookings/{booking_id}",
            json={"notes": "Arriving late", "phone": "+421 900 000 000"},
            headers={"X-Edit-Token": token},
        )
        assert updated.status_code == 200
        assert updated.json()["notes"] == "Arriving late"
        assert updated.json()["phone"] == "+421900000000"

        assert client.delete(f"/api/bookings/{booking_id}", headers={"X-Edit-Token": token}).status_code == 204
        assert client.get(f"/api/bookings/{booking_id}", headers=ADMIN).status_code == 404

    @pytest.mark.parametrize("field", ["name", "email", "phone"])
    def test_required_contact_field_cannot_be_nulled(self, client, field):
        body = client.post("/api/bookings", json=booking_payload()).json()

        response = client.put(
            f"/api/bookings/{body['id']}",
            json={field: None},
            headers={"X-Edit-Token": body["edit_token"]},
        )

        assert response.status_code == 422
        stored = client.get(f"/api/bookings/edit/{body['edit_token']}").json()
        assert stored[field] == body[field]

    def test_paid_booking_is_read_only_for_the_guest(self, client):
        body = client.post("/api/bookings", json=booking_payload()).json()
        guest = {"X-Edit-Token": body["edit_token"]}

        assert client.put(f"/api/bookings/{body['id']}", json={"paid": True}, headers=guest).status_code == 403

        marked = client.put(f"/api/bookings/{body['id']}", json={"paid": True}, headers=ADMIN)
        assert marked.status_code == 200
        assert marked.json()["paid"] is True

        response = client.put(f"/api/bookings/{body['id']}", json={"notes": "x"}, headers=guest)
        assert response.status_code == 403
        assert response.json()["error"] == "booking_locked"
        assert response.json()["reason"] == "paid"
        assert client.delete(f"/api/bookings/{body['id']}", headers=guest).status_code == 403

    def test_edit_deadline(self, client):
        # Check-in two days after the pinned clock
        body = client.post("/api/bookings", json=booking_payload(start="2025-06-03", end="2025-06-05")).json()

        response = client.delete(f"/api/bookings/{body['id']}", headers={"X-Edit-Token": body["edit_token"]})

        assert response.status_code == 403
        assert response.json()["reason"] == "edit_deadline"
        assert client.delete(f"/api/bookings/{body['id']}", headers=ADMIN).status_code == 204

    def test_double_booking_conflict(self, client):
        first = client.post("/api/bookings", json=booking_payload())
        second = client.post("/api/bookings", json=booking_payload(start="2025-06-11", end="2025-06-13"))

        assert second.status_code == 409
        body = second.json()
        assert body["error"] == "room_unavailable"
        assert body["conflict"]["booking_id"] == first.json()["id"]

    def test_back_to_back_allowed(self, client):
        client.post("/api/bookings", json=booking_payload())

        response = client.post("/api/bookings", json=booking_payload(start="2025-06-12", end="2025-06-14"))

        assert response.status_code == 201

    def test_bad_phone_is_422(self, client):
        payload = booking_payload()
        payload["contact"]["phone"] = "12345"

        assert client.post("/api/bookings", json=payload).status_code == 422

    def test_capacity_error(self, client):
        response = client.post("/api/bookings", json=booking_payload(room_id="12", adults=2, children=1))

        assert response.status_code == 400
        assert response.json()["error"] == "capacity_exceeded"

    def test_confirm_clears_session_holds(self, client):
        client.post("/api/holds", json={
            "session_id": "S1",
            "start_date": "2025-06-10",
            "end_date": "2025-06-12",
            "room_ids": ["13"],
        })
        payload = booking_payload()
        payload["session_id"] = "S1"

        assert client.post("/api/bookings", json=payload).status_code == 201
        assert client.get("/api/holds/session/S1").json() == []

    def test_admin_endpoints(self, client):
        booking_id = client.post("/api/bookings", json=booking_payload()).json()["id"]

        assert client.get("/api/bookings").status_code == 401
        listed = client.get("/api/bookings", headers=ADMIN)
        assert [b["id"] for b in listed.json()] == [booking_id]

        check = client.post(f"/api/bookings/{booking_id}/recalculate", headers=ADMIN)
        assert check.status_code == 200
        assert check.json()["matches"] is True

    def test_unknown_edit_token(self, client):
        assert client.get("/api/bookings/edit/nope").status_code == 403


class TestBlockages:

    def test_admin_blockage_closes_rooms(self, client):
        payload = {"start_date": "2025-06-20", "end_date": "2025-06-21", "room_ids": ["12"], "reason": "Painting"}

        assert client.post("/api/blockages", json=payload).status_code == 401

        created = client.post("/api/blockages", json=payload, headers=ADMIN)
        assert created.status_code == 201
        blockage_id = created.json()["id"]
        assert created.json()["applies_to_all_rooms"] is False

        day = client.get("/api/availability", params={"room_id": "12", "day": "2025-06-21"}).json()
        assert day["status"] == "blocked"
        assert day["blockage_reason"] == "Painting"

        booking = client.post("/api/bookings", json=booking_payload(start="2025-06-19", end="2025-06-21", room_id="12", adults=1, children=0))
        assert booking.status_code == 409
        assert booking.json()["conflict"]["blockage_id"] == blockage_id

        assert client.delete(f"/api/blockages/{blockage_id}", headers=ADMIN).status_code == 204
        assert client.delete(f"/api/blockages/{blockage_id}", headers=ADMIN).status_code == 404

    def test_blockage_for_unknown_room(self, client):
        response = client.post(
            "/api/blockages",
            json={"start_date": "2025-06-20", "end_date": "2025-06-20", "room_ids": ["99"]},
            headers=ADMIN,
        )

        assert response.status_code == 404


class TestChristmas:
    """Christmas periods and access codes"""

    def _setup_period(self, client):
        period = client.post(
            "/api/christmas/periods",
            json={"name": "Christmas 2025", "start_date": "2025-12-23", "end_date": "2026-01-02"},
            headers=ADMIN,
        )
        assert period.status_code == 201
        assert client.post("/api/christmas/codes", json={"code": "XMAS2025"}, headers=ADMIN).status_code == 201
        return period.json()

    def test_management_needs_admin(self, client):
        payload = {"start_date": "2025-12-23", "end_date": "2026-01-02"}

        assert client.post("/api/christmas/periods", json=payload).status_code == 401
        assert client.get("/api/christmas/codes").status_code == 401

    def test_period_crud(self, client):
        period = self._setup_period(client)

        assert period["year"] == 2025
        assert [p["id"] for p in client.get("/api/christmas/periods").json()] == [period["id"]]
        assert client.get("/api/christmas/codes", headers=ADMIN).json() == ["XMAS2025"]

        assert client.delete(f"/api/christmas/periods/{period['id']}", headers=ADMIN).status_code == 204
        assert client.delete(f"/api/christmas/periods/{period['id']}", headers=ADMIN).status_code == 404
        assert client.delete("/api/christmas/codes/XMAS2025", headers=ADMIN).status_code == 204

    def test_booking_needs_code_before_october(self, client):
        period = self._setup_period(client)
        payload = booking_payload(start="2025-12-24", end="2025-12-26")

        rejected = client.post("/api/bookings", json=payload)
        assert rejected.status_code == 403
        assert rejected.json()["error"] == "christmas_restricted"
        assert rejected.json()["reason"] == "code_required"
        assert rejected.json()["period_id"] == period["id"]

        payload["christmas_code"] = "XMAS2025"
        assert client.post("/api/bookings", json=payload).status_code == 201


class TestHealth:

    def test_liveness(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_readiness(self, client):
        response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["database"]["status"] == "up"

    def test_root(self, client):
        assert client.get("/").json()["status"] == "running"

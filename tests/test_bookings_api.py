import re

import pytest
from sqlalchemy.exc import IntegrityError

from tour_booking.bookings.booking_service import BookingService, build_booking_update
from tour_booking.bookings.schemas import BookingCreateRequest
from tour_booking.exceptions import InvalidInput
from tour_booking.models import Booking, Participant, Transaction


@pytest.mark.parametrize("package_key, prefix", [
    ("city_code", "BDG"),
    ("city_name", "SUR"),
    ("package_name", "DIE"),
])
def test_create_booking_code_prefix(client, api, booking_payload, package_key, prefix):
    response = client.post(f"{api}/bookings", json=booking_payload(package_key=package_key))

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["status"] == "awaiting_payment"
    assert re.fullmatch(rf"{prefix}-[A-Z0-9]{{8}}", body["bookingCode"])


def test_create_booking_inserts_all_participants(client, api, booking_payload, db_session):
    response = client.post(f"{api}/bookings", json=booking_payload(participant_count=3))
    booking_id = response.json()["bookingId"]

    participants = db_session.query(Participant).filter(Participant.booking_id == booking_id).all()
    assert len(participants) == 3
    assert {p.status for p in participants} == {"valid"}
    assert all(p.scanned_at is None for p in participants)


def test_create_booking_is_atomic(db_session, packages, monkeypatch):
    real_build = BookingService._build_participant
    calls = []

    def build_then_break(self, booking_id, participant):
        calls.append(participant.name)
        built = real_build(self, booking_id, participant)
        if len(calls) == 2:
            built.name = None  # violates NOT NULL on insert
        return built

    monkeypatch.setattr(BookingService, "_build_participant", build_then_break)
    request = BookingCreateRequest(
        package_id=packages["city_code"],
        customer_name="Budi",
        customer_email="budi@example.com",
        participants=[{"name": "A"}, {"name": "B"}, {"name": "C"}],
        total_price=300000,
    )

    with pytest.raises(IntegrityError):
        BookingService(db_session).create_booking(request)

    assert db_session.query(Booking).count() == 0
    assert db_session.query(Participant).count() == 0


@pytest.mark.parametrize("overrides", [
    {"participants": []},
    {"participants": None},
    {"customer_name": ""},
    {"customer_email": "not-an-email"},
    {"total_price": -1},
    {"total_price": None},
])
def test_create_booking_rejects_invalid_input(client, api, booking_payload, overrides, db_session):
    response = client.post(f"{api}/bookings", json=booking_payload(**overrides))

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert db_session.query(Booking).count() == 0


def test_create_booking_requires_fields(client, api):
    response = client.post(f"{api}/bookings", json={"customer_name": "Siti"})

    assert response.status_code == 400
    fields = {error["field"] for error in response.json()["errors"]}
    assert {"package_id", "customer_email", "participants", "total_price"} <= fields


def test_create_booking_unknown_package(client, api, booking_payload):
    response = client.post(f"{api}/bookings", json=booking_payload(package_id=9999))

    assert response.status_code == 404
    assert response.json()["success"] is False


def test_list_and_detail(client, api, create_booking):
    first = create_booking()
    second = create_booking(participant_count=1, customer_name="Andi")

    listing = client.get(f"{api}/bookings").json()
    assert listing["success"] is True
    ids = [b["id"] for b in listing["data"]]
    assert ids == [second["id"], first["id"]]
    assert listing["data"][0]["package_name"] == "Bandung Highlands"
    assert listing["data"][1]["participant_count"] == 2

    detail = client.get(f"{api}/bookings/{first['id']}").json()["data"]
    assert detail["bookingCode"] == first["bookingCode"]
    assert [p["name"] for p in detail["participants"]] == ["Traveler 1", "Traveler 2"]


def test_list_filters_by_status(client, api, create_booking, pay):
    paid = create_booking()
    create_booking()
    pay(paid["id"])

    listing = client.get(f"{api}/bookings", params={"status": "completed"}).json()
    assert [b["id"] for b in listing["data"]] == [paid["id"]]


def test_detail_not_found(client, api):
    response = client.get(f"{api}/bookings/4242")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Booking 4242 not found"}


# Partial updates
def test_partial_update_changes_only_supplied_fields(client, api, create_booking):
    booking = create_booking(customer_phone="0811111111")

    response = client.put(f"{api}/bookings/{booking['id']}", json={"customer_name": "Siti R."})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["customer_name"] == "Siti R."
    assert data["customer_email"] == booking["customer_email"]
    assert data["customer_phone"] == "0811111111"
    assert data["total_price"] == booking["total_price"]
    assert data["status"] == "awaiting_payment"


def test_partial_update_normalizes_phone_and_price(client, api, create_booking):
    booking = create_booking(customer_phone="0811111111")

    data = client.put(
        f"{api}/bookings/{booking['id']}",
        json={"customer_phone": "", "total_price": "not-a-number"}
    ).json()["data"]
    assert data["customer_phone"] is None
    assert data["total_price"] == 0

    data = client.put(f"{api}/bookings/{booking['id']}", json={"total_price": "2500000.50"}).json()["data"]
    assert data["total_price"] == 2500000.5

    data = client.put(f"{api}/bookings/{booking['id']}", json={"total_price": -10}).json()["data"]
    assert data["total_price"] == 0


def test_partial_update_validates_status(client, api, create_booking):
    booking = create_booking()

    response = client.put(f"{api}/bookings/{booking['id']}", json={"status": "shipped"})
    assert response.status_code == 400

    response = client.put(f"{api}/bookings/{booking['id']}", json={"status": "LUNAS"})
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "completed"


@pytest.mark.parametrize("body", [{}, {"unknown_field": "x"}, {"customer_name": None}])
def test_partial_update_without_recognized_fields(client, api, create_booking, body):
    booking = create_booking()

    response = client.put(f"{api}/bookings/{booking['id']}", json=body)

    assert response.status_code == 400
    assert response.json()["message"] == "No valid fields to update"


def test_partial_update_not_found(client, api):
    response = client.put(f"{api}/bookings/777", json={"customer_name": "Nobody"})
    assert response.status_code == 404


def test_update_builder_uses_allow_list():
    values = build_booking_update({
        "customer_name": "Rina",
        "customer_phone": "  ",
        "status": "Confirmed",
        "booking_code": "HACK-00000000",
        "id": 5,
    })

    assert set(values) == {"customer_name", "customer_phone", "status", "updated_at"}
    assert values["customer_phone"] is None
    assert values["status"] == "confirmed"

    with pytest.raises(InvalidInput):
        build_booking_update({"booking_code": "HACK-00000000"})


# Status transitions
@pytest.mark.parametrize("method", ["patch", "put"])
def test_status_endpoint_accepts_both_verbs(client, api, create_booking, method):
    booking = create_booking()

    response = getattr(client, method)(f"{api}/bookings/{booking['id']}/status", json={"status": "confirmed"})

    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"


@pytest.mark.parametrize("raw, stored", [
    ("PENDING", "pending"),
    ("Confirmed", "confirmed"),
    ("LUNAS", "completed"),
    ("paid", "completed"),
    ("CANCELLED", "canceled"),
])
def test_status_aliases_are_normalized(client, api, create_booking, raw, stored):
    booking = create_booking()

    client.patch(f"{api}/bookings/{booking['id']}/status", json={"status": raw})

    assert client.get(f"{api}/bookings/{booking['id']}").json()["data"]["status"] == stored


def test_status_endpoint_rejects_unknown_status(client, api, create_booking):
    booking = create_booking()

    response = client.patch(f"{api}/bookings/{booking['id']}/status", json={"status": "archived"})
    assert response.status_code == 400

    response = client.patch(f"{api}/bookings/{booking['id']}/status", json={})
    assert response.status_code == 400


def test_status_endpoint_not_found(client, api):
    response = client.patch(f"{api}/bookings/31337/status", json={"status": "confirmed"})
    assert response.status_code == 404


def test_canceling_voids_unused_tickets(client, api, create_booking):
    booking = create_booking()
    used, unused = booking["participants"]
    client.post(f"{api}/bookings/scan", json={"participantId": used["id"]})

    client.patch(f"{api}/bookings/{booking['id']}/status", json={"status": "canceled"})

    statuses = {p["id"]: p["status"] for p in client.get(f"{api}/bookings/{booking['id']}").json()["data"]["participants"]}
    assert statuses == {used["id"]: "redeemed", unused["id"]: "void"}


def test_canceling_through_partial_update_voids_tickets(client, api, create_booking):
    booking = create_booking()
    participant = booking["participants"][0]

    response = client.put(f"{api}/bookings/{booking['id']}", json={"status": "CANCELLED"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "canceled"
    assert {p["status"] for p in data["participants"]} == {"void"}

    response = client.post(f"{api}/bookings/scan", json={"participantId": participant["id"]})
    assert response.status_code == 410


# Deletion
def test_delete_removes_booking_and_participants(client, api, create_booking, db_session):
    booking = create_booking(participant_count=3)
    other = create_booking()

    response = client.delete(f"{api}/bookings/{booking['id']}")

    assert response.status_code == 200
    assert response.json()["deleted_id"] == booking["id"]
    assert client.get(f"{api}/bookings/{booking['id']}").status_code == 404
    assert db_session.query(Participant).filter(Participant.booking_id == booking["id"]).count() == 0
    assert db_session.query(Participant).filter(Participant.booking_id == other["id"]).count() == 2


def test_delete_unknown_booking_changes_nothing(client, api, create_booking, db_session):
    create_booking()

    response = client.delete(f"{api}/bookings/9999")

    assert response.status_code == 404
    assert db_session.query(Booking).count() == 1
    assert db_session.query(Participant).count() == 2


def test_delete_with_payments_is_a_conflict(client, api, create_booking, pay, db_session):
    booking = create_booking()
    pay(booking["id"], payment_type="dp", amount_paid=500000)

    response = client.delete(f"{api}/bookings/{booking['id']}")

    assert response.status_code == 409
    assert response.json()["success"] is False
    assert db_session.query(Participant).filter(Participant.booking_id == booking["id"]).count() == 2
    assert db_session.query(Transaction).count() == 1

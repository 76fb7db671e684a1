from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from tour_booking.config import Settings
from tour_booking.database import Database
from tour_booking.main import create_app
from tour_booking.models import City, Package


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'bookings.db'}",
        ENVIRONMENT="test",
        DB_STATEMENT_TIMEOUT_MS=30000,
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def database(settings):
    database = Database.from_settings(settings)
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture
def db_session(database):
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def client(settings, database):
    app = create_app(settings, database=database)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def api(settings):
    return settings.API_PREFIX


@pytest.fixture
def packages(database):
    """Packages covering every booking code prefix source"""
    with database.session_scope() as db:
        bandung = City(city_name="Bandung", city_code="BDG")
        surabaya = City(city_name="Surabaya", city_code=None)
        db.add_all([bandung, surabaya])
        db.flush()

        with_code = Package(name="Bandung Highlands", city_id=bandung.id, price=Decimal("750000"))
        city_name_only = Package(name="Surabaya Heritage Walk", city_id=surabaya.id, price=Decimal("250000"))
        no_city = Package(name="Dieng Plateau", city_id=None, price=Decimal("600000"))
        db.add_all([with_code, city_name_only, no_city])
        db.flush()

        return {
            "city_code": with_code.id,
            "city_name": city_name_only.id,
            "package_name": no_city.id,
        }


@pytest.fixture
def booking_payload(packages):
    def build(package_key="city_code", participant_count=2, **overrides):
        payload = {
            "package_id": packages[package_key],
            "customer_name": "Siti Rahma",
            "customer_email": "siti@example.com",
            "participants": [
                {
                    "name": f"Traveler {i + 1}",
                    "phone": f"08123{i:05d}",
                    "address": "Jl. Merdeka 10",
                    "birth_place": "Bandung",
                }
                for i in range(participant_count)
            ],
            "total_price": 1500000,
        }
        payload.update(overrides)
        return payload

    return build


@pytest.fixture
def create_booking(client, api, booking_payload):
    """Create a booking through the API and return its detail"""
    def create(**kwargs):
        response = client.post(f"{api}/bookings", json=booking_payload(**kwargs))
        assert response.status_code == 201, response.text
        booking_id = response.json()["bookingId"]
        return client.get(f"{api}/bookings/{booking_id}").json()["data"]

    return create


@pytest.fixture
def pay(client, api):
    def record(booking_id, payment_type="full", amount_paid=1500000, **extra):
        payload = {"bookingDbId": booking_id, "payment_type": payment_type, "amount_paid": amount_paid, **extra}
        return client.post(f"{api}/transactions", json=payload)

    return record

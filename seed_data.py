#!/usr/bin/env python3

from decimal import Decimal

from tour_booking.config import settings
from tour_booking.database import Database
from tour_booking.models import City, Package, Participant, Transaction, Booking

def create_seed_data(database: Database):
    db = database.session()

    try:
        print("🚀 Creating seed data for the tour booking backend...")

        # Clear existing data (in reverse dependency order)
        print("Clearing existing data...")
        db.query(Transaction).delete()
        db.query(Participant).delete()
        db.query(Booking).delete()
        db.query(Package).delete()
        db.query(City).delete()

        # 1. Create Cities
        print("Creating cities...")
        cities = {
            "BDG": City(city_name="Bandung", city_code="BDG"),
            "JOG": City(city_name="Yogyakarta", city_code="JOG"),
            "MLG": City(city_name="Malang", city_code="MLG"),
            "LBJ": City(city_name="Labuan Bajo", city_code="LBJ"),
        }
        db.add_all(cities.values())
        db.flush()

        # 2. Create Packages
        print("Creating packages...")
        packages = [
            Package(name="Bandung Highlands 3D2N", city_id=cities["BDG"].id, trip_code="BDG-01",
                    price=Decimal("1750000"), duration="3 days 2 nights", max_participants=30),
            Package(name="Lembang Day Trip", city_id=cities["BDG"].id, trip_code="BDG-02",
                    price=Decimal("450000"), duration="1 day", max_participants=40),
            Package(name="Borobudur Sunrise", city_id=cities["JOG"].id, trip_code="JOG-01",
                    price=Decimal("950000"), duration="2 days 1 night", max_participants=25),
            Package(name="Bromo Midnight Tour", city_id=cities["MLG"].id, trip_code="MLG-01",
                    price=Decimal("1250000"), duration="2 days 1 night", max_participants=20),
            Package(name="Komodo Sailing 4D3N", city_id=cities["LBJ"].id, trip_code="LBJ-01",
                    price=Decimal("6500000"), duration="4 days 3 nights", max_participants=12),
        ]
        db.add_all(packages)

        db.commit()
        print(f"✅ Created {len(cities)} cities and {len(packages)} packages")

    except Exception as e:
        print(f"❌ Error creating seed data: {e}")
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == "__main__":
    database = Database.from_settings(settings)
    database.create_all()
    try:
        create_seed_data(database)
    finally:
        database.dispose()

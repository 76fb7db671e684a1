from sqlalchemy import Column, Integer, BigInteger, String, Boolean, DateTime, Text, ForeignKey, Numeric, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from tour_booking.database import Base

# sqlite only autoincrements INTEGER primary keys
IdType = BigInteger().with_variant(Integer, "sqlite")

# ================================
# Reference data (read-only to the booking flow)
# ================================
class City(Base):
    __tablename__ = "cities"

    id = Column(IdType, primary_key=True, index=True)
    city_name = Column(String(255), nullable=False)
    city_code = Column(String(3), unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    packages = relationship("Package", back_populates="city")

class Package(Base):
    __tablename__ = "packages"

    id = Column(IdType, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    city_id = Column(IdType, ForeignKey("cities.id"), index=True)
    trip_code = Column(String(50))
    description = Column(Text)
    price = Column(Numeric(14, 2), nullable=False, default=0)
    image_url = Column(String(500))
    duration = Column(String(100))
    max_participants = Column(Integer)
    is_active = Column(Boolean, default=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    city = relationship("City", back_populates="packages")
    bookings = relationship("Booking", back_populates="package")

# ================================
# Bookings & Participants
# ================================
class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("total_price >= 0", name="ck_bookings_total_price_non_negative"),
    )

    id = Column(IdType, primary_key=True, index=True)
    booking_code = Column(String(32), unique=True, nullable=False, index=True)
    package_id = Column(IdType, ForeignKey("packages.id"), nullable=False, index=True)
    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=False, index=True)
    customer_phone = Column(String(50))
    total_price = Column(Numeric(14, 2), nullable=False, default=0)
    status = Column(String(50), nullable=False, default='awaiting_payment', index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    package = relationship("Package", back_populates="bookings")
    participants = relationship(
        "Participant",
        back_populates="booking",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Participant.id"
    )

class Participant(Base):
    __tablename__ = "participants"

    id = Column(IdType, primary_key=True, index=True)
    booking_id = Column(IdType, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    phone = Column(String(50))
    address = Column(Text)
    birth_place = Column(String(255))
    status = Column(String(20), nullable=False, default='valid', index=True)
    scanned_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    booking = relationship("Booking", back_populates="participants")

# ================================
# Payment ledger (append-only)
# ================================
class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(IdType, primary_key=True, index=True)
    # No cascade: a booking with ledger rows cannot be deleted
    booking_id = Column(IdType, ForeignKey("bookings.id"), nullable=False, index=True)
    payment_type = Column(String(50), nullable=False)
    amount_paid = Column(Numeric(14, 2), nullable=False)
    payment_method = Column(String(100))
    va_number = Column(String(100))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

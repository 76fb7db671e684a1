import logging
from typing import List, Dict, Optional, Any
from decimal import Decimal
from sqlalchemy import update, delete, select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from tour_booking.config import settings
from tour_booking.database import transaction
from tour_booking.exceptions import InvalidInput, NotFound, PackageNotFound, Conflict
from tour_booking.models import Booking, Participant, Package, Transaction
from tour_booking.bookings.booking_code import generate_booking_code
from tour_booking.bookings.schemas import (
    BookingCreateRequest, BookingUpdateRequest, TransactionCreateRequest,
    BookingStatus, ParticipantStatus, BookingSummary, BookingDetail, ParticipantDetail,
    is_partial_payment
)

logger = logging.getLogger(__name__)

# Columns a partial update may touch
UPDATABLE_COLUMNS = ("customer_name", "customer_email", "customer_phone", "total_price", "status")

def build_booking_update(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Map a sparse field set onto the updatable booking columns.

    Unknown keys and ``None`` values are dropped, an empty phone becomes
    NULL and enum values are stored by value. Raises ``InvalidInput`` when
    nothing updatable is left. ``updated_at`` is always refreshed.
    """
    values = {}
    for column in UPDATABLE_COLUMNS:
        if column not in fields or fields[column] is None:
            continue
        value = fields[column]
        if column == "customer_phone":
            value = value.strip() or None
        elif column == "status":
            value = BookingStatus.parse(value).value
        values[column] = value

    if not values:
        raise InvalidInput("No valid fields to update")

    values["updated_at"] = func.now()
    return values

class BookingService:
    """Service for the booking lifecycle: create, update, delete, payments"""

    def __init__(self, db: Session):
        self.db = db

    def create_booking(self, request: BookingCreateRequest) -> Dict[str, Any]:
        """Create a booking and its participants in one transaction"""

        if not request.participants:
            raise InvalidInput("At least one participant is required")

        with transaction(self.db):
            package = self.db.query(Package).options(
                joinedload(Package.city)
            ).filter(Package.id == request.package_id).first()

            if not package:
                raise PackageNotFound(f"Package {request.package_id} not found")

            booking_code = self._generate_unique_code(package)

            booking = Booking(
                booking_code=booking_code,
                package_id=package.id,
                customer_name=request.customer_name,
                customer_email=request.customer_email,
                customer_phone=(request.customer_phone or "").strip() or None,
                total_price=request.total_price,
                status=BookingStatus.AWAITING_PAYMENT.value
            )
            self.db.add(booking)
            self._flush_or_conflict("Booking code already exists, please retry")

            for participant in request.participants:
                self.db.add(self._build_participant(booking.id, participant))
            self.db.flush()

            result = {
                "bookingId": booking.id,
                "bookingCode": booking.booking_code,
                "status": booking.status
            }

        logger.info(
            "Booking %s created (id=%s, participants=%d)",
            result["bookingCode"], result["bookingId"], len(request.participants)
        )
        return result

    def update_booking(self, booking_id: int, request: BookingUpdateRequest) -> BookingDetail:
        """Apply a partial update to a booking"""

        values = build_booking_update(request.model_dump(exclude_unset=True))

        with transaction(self.db):
            self._apply_booking_update(booking_id, values)

        logger.info("Booking %s updated: %s", booking_id, ", ".join(k for k in values if k != "updated_at"))
        return self.get_booking(booking_id)

    def update_status(self, booking_id: int, new_status: Any) -> BookingStatus:
        """Single state-transition operation behind the status endpoints"""

        try:
            status = BookingStatus.parse(new_status)
        except ValueError as e:
            raise InvalidInput(str(e))

        with transaction(self.db):
            self._apply_booking_update(booking_id, {"status": status.value, "updated_at": func.now()})

        logger.info("Booking %s status changed to %s", booking_id, status.value)
        return status

    def delete_booking(self, booking_id: int) -> Dict[str, Any]:
        """Delete a booking together with its participants"""

        try:
            with transaction(self.db):
                booking = self.db.query(Booking.id, Booking.customer_name).filter(
                    Booking.id == booking_id
                ).first()
                if not booking:
                    raise NotFound(f"Booking {booking_id} not found")

                removed = self.db.execute(
                    delete(Participant).where(Participant.booking_id == booking_id)
                ).rowcount
                self.db.execute(delete(Booking).where(Booking.id == booking_id))
        except IntegrityError:
            logger.warning("Booking %s is still referenced by other records", booking_id)
            raise Conflict(
                "Cannot delete booking. There are related records (such as payments) that must be removed first."
            )

        logger.info("Booking %s deleted with %d participants", booking_id, removed)
        return {"id": booking.id, "customer_name": booking.customer_name, "participants_deleted": removed}

    def record_payment(self, request: TransactionCreateRequest) -> Dict[str, Any]:
        """Append a ledger row and advance the booking status"""

        if request.booking_id is None or not request.payment_type or request.amount_paid is None:
            raise InvalidInput("Incomplete transaction data")
        if request.amount_paid < 0:
            raise InvalidInput("Amount paid cannot be negative")

        with transaction(self.db):
            booking = self.db.query(Booking).filter(Booking.id == request.booking_id).first()
            if not booking:
                raise NotFound(f"Booking {request.booking_id} not found")
            if booking.status == BookingStatus.CANCELED.value:
                raise Conflict("Booking is canceled, payments can no longer be recorded")

            ledger_entry = Transaction(
                booking_id=booking.id,
                payment_type=request.payment_type,
                amount_paid=request.amount_paid,
                payment_method=request.payment_method or None,
                va_number=request.va_number or None
            )
            self.db.add(ledger_entry)

            if is_partial_payment(request.payment_type):
                new_status = BookingStatus.DP_PAID
                # A down payment never downgrades a fully paid booking
                if booking.status == BookingStatus.COMPLETED.value:
                    new_status = BookingStatus.COMPLETED
            else:
                new_status = BookingStatus.COMPLETED

            self.db.execute(
                update(Booking).where(Booking.id == booking.id).values(
                    status=new_status.value, updated_at=func.now()
                )
            )
            self.db.flush()
            transaction_id = ledger_entry.id

        logger.info(
            "Payment recorded for booking %s: type=%s amount=%s -> %s",
            request.booking_id, request.payment_type, request.amount_paid, new_status.value
        )
        return {"transactionId": transaction_id, "status": new_status.value}

    def list_bookings(
        self,
        status: Optional[BookingStatus] = None,
        skip: int = 0,
        limit: int = 50
    ) -> List[BookingSummary]:
        """Bookings, newest first"""

        participant_count = select(func.count(Participant.id)).where(
            Participant.booking_id == Booking.id
        ).correlate(Booking).scalar_subquery()

        query = self.db.query(Booking, Package.name, participant_count).outerjoin(
            Package, Booking.package_id == Package.id
        )
        if status:
            query = query.filter(Booking.status == status.value)

        rows = query.order_by(Booking.created_at.desc(), Booking.id.desc()).offset(skip).limit(limit).all()

        return [
            BookingSummary(**self._booking_fields(booking, package_name), participant_count=count)
            for booking, package_name, count in rows
        ]

    def get_booking(self, booking_id: int) -> BookingDetail:
        """Booking detail with its participants"""

        booking = self.db.query(Booking).options(
            joinedload(Booking.package),
            joinedload(Booking.participants)
        ).filter(Booking.id == booking_id).first()

        if not booking:
            raise NotFound(f"Booking {booking_id} not found")

        participants = [ParticipantDetail.model_validate(p) for p in booking.participants]
        return BookingDetail(
            **self._booking_fields(booking, booking.package.name if booking.package else None),
            participant_count=len(participants),
            participants=participants
        )

    def _apply_booking_update(self, booking_id: int, values: Dict[str, Any]) -> int:
        """Write booking columns; moving to ``canceled`` voids the unused tickets.

        Runs inside the caller's transaction. Returns the number of voided tickets.
        """
        result = self.db.execute(
            update(Booking).where(Booking.id == booking_id).values(**values)
        )
        if result.rowcount == 0:
            raise NotFound(f"Booking {booking_id} not found")

        if values.get("status") != BookingStatus.CANCELED.value:
            return 0

        voided = self.db.execute(
            update(Participant).where(
                Participant.booking_id == booking_id,
                Participant.status == ParticipantStatus.VALID.value
            ).values(status=ParticipantStatus.VOID.value, updated_at=func.now())
        ).rowcount

        logger.info("Booking %s canceled (voided %d tickets)", booking_id, voided)
        return voided

    def _generate_unique_code(self, package: Package) -> str:
        """Generate a booking code not yet used by another booking"""

        city = package.city
        for _ in range(max(1, settings.BOOKING_CODE_MAX_ATTEMPTS)):
            code = generate_booking_code(
                city.city_code if city else None,
                city.city_name if city else None,
                package.name
            )
            exists = self.db.query(Booking.id).filter(Booking.booking_code == code).first()
            if not exists:
                return code
            logger.warning("Booking code collision on %s, regenerating", code)

        raise Conflict("Could not generate a unique booking code, please retry")

    def _build_participant(self, booking_id: int, participant) -> Participant:
        return Participant(
            booking_id=booking_id,
            name=participant.name,
            phone=participant.phone,
            address=participant.address,
            birth_place=participant.birth_place,
            status=ParticipantStatus.VALID.value
        )

    def _flush_or_conflict(self, message: str):
        try:
            self.db.flush()
        except IntegrityError:
            raise Conflict(message)

    @staticmethod
    def _booking_fields(booking: Booking, package_name: Optional[str]) -> Dict[str, Any]:
        return {
            "id": booking.id,
            "bookingCode": booking.booking_code,
            "package_id": booking.package_id,
            "package_name": package_name,
            "customer_name": booking.customer_name,
            "customer_email": booking.customer_email,
            "customer_phone": booking.customer_phone,
            "total_price": float(booking.total_price or Decimal("0")),
            "status": booking.status,
            "created_at": booking.created_at,
            "updated_at": booking.updated_at
        }

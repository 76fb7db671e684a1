from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from tour_booking.database import get_db
from tour_booking.bookings.schemas import TransactionCreateRequest, envelope
from tour_booking.bookings.booking_service import BookingService

router = APIRouter()

@router.post("", status_code=status.HTTP_201_CREATED)
def record_transaction(
    request: TransactionCreateRequest,
    db: Session = Depends(get_db)
):
    """Record a payment against a booking"""

    booking_service = BookingService(db)
    recorded = booking_service.record_payment(request)

    return envelope("Payment recorded successfully", **recorded)

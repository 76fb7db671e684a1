from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session
from typing import Optional

from tour_booking.database import get_db
from tour_booking.bookings.schemas import (
    BookingCreateRequest, BookingUpdateRequest, BookingStatusUpdateRequest,
    BookingStatus, ScanRequest, envelope
)
from tour_booking.bookings.booking_service import BookingService
from tour_booking.bookings.checkin_service import CheckInService
from tour_booking.bookings.ticket_service import TicketService

router = APIRouter()

# Booking Management Endpoints
@router.post("", status_code=status.HTTP_201_CREATED)
def create_booking(
    request: BookingCreateRequest,
    db: Session = Depends(get_db)
):
    """Create a booking together with its participants"""

    booking_service = BookingService(db)
    created = booking_service.create_booking(request)

    return envelope("Booking created successfully", **created)

@router.get("")
def list_bookings(
    booking_status: Optional[BookingStatus] = Query(None, alias="status", description="Filter by booking status"),
    skip: int = Query(0, ge=0, description="Number of bookings to skip"),
    limit: int = Query(50, ge=1, le=200, description="Maximum results"),
    db: Session = Depends(get_db)
):
    """List bookings, newest first"""

    booking_service = BookingService(db)
    bookings = booking_service.list_bookings(status=booking_status, skip=skip, limit=limit)

    return envelope("Bookings retrieved", data=bookings, total=len(bookings))

# Ticket Validation Endpoints
@router.post("/scan")
def scan_ticket(
    scan_request: ScanRequest,
    db: Session = Depends(get_db)
):
    """Check in a participant by scanning their ticket"""

    checkin_service = CheckInService(db)
    return checkin_service.scan(scan_request.participant_id)

@router.post("/participants/{participant_id}/void")
def void_ticket(
    participant_id: int,
    db: Session = Depends(get_db)
):
    """Invalidate a participant's ticket (admin)"""

    checkin_service = CheckInService(db)
    return checkin_service.void(participant_id)

@router.get("/{booking_id}")
def get_booking(
    booking_id: int,
    db: Session = Depends(get_db)
):
    """Get booking details with participants"""

    booking_service = BookingService(db)
    booking = booking_service.get_booking(booking_id)

    return envelope("Booking retrieved", data=booking)

@router.put("/{booking_id}")
def update_booking(
    booking_id: int,
    update_request: BookingUpdateRequest,
    db: Session = Depends(get_db)
):
    """Update the supplied fields of a booking"""

    booking_service = BookingService(db)
    updated = booking_service.update_booking(booking_id, update_request)

    return envelope("Booking updated successfully", data=updated)

@router.api_route("/{booking_id}/status", methods=["PATCH", "PUT"])
def update_booking_status(
    booking_id: int,
    status_request: BookingStatusUpdateRequest,
    db: Session = Depends(get_db)
):
    """Change a booking's status"""

    booking_service = BookingService(db)
    new_status = booking_service.update_status(booking_id, status_request.status)

    return envelope(
        f"Booking status changed to {new_status.value}",
        bookingId=booking_id,
        status=new_status.value
    )

@router.delete("/{booking_id}")
def delete_booking(
    booking_id: int,
    db: Session = Depends(get_db)
):
    """Delete a booking and all of its participants"""

    booking_service = BookingService(db)
    deleted = booking_service.delete_booking(booking_id)

    return envelope(
        f"Booking \"{deleted['customer_name']}\" deleted with all related participants",
        deleted_id=deleted["id"],
        participants_deleted=deleted["participants_deleted"]
    )

# Ticket Endpoints
@router.get("/{booking_id}/ticket")
def get_ticket(
    booking_id: int,
    db: Session = Depends(get_db)
):
    """Ticket of a fully paid booking"""

    ticket_service = TicketService(db)
    ticket = ticket_service.issue_ticket(booking_id)

    return envelope("Ticket issued", ticket=ticket)

@router.get("/{booking_id}/ticket/qr")
def get_ticket_qr_code(
    booking_id: int,
    db: Session = Depends(get_db)
):
    """QR code image encoding the booking code"""

    ticket_service = TicketService(db)
    png = ticket_service.booking_qr_png(booking_id)

    return Response(content=png, media_type="image/png")

@router.get("/{booking_id}/ticket/pdf")
def get_ticket_pdf(
    booking_id: int,
    db: Session = Depends(get_db)
):
    """Printable PDF ticket"""

    ticket_service = TicketService(db)
    pdf = ticket_service.ticket_pdf(booking_id)

    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename=ticket_{booking_id}.pdf"}
    )

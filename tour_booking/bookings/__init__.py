"""
Booking & Ticketing Module

Booking lifecycle and ticket check-in for tour packages:

- booking_code.py: human-readable booking references (``BDG-7K2Q9ZXA``)
- booking_service.py: create, update, status transitions, delete, payments
- checkin_service.py: per-participant ticket state machine (valid -> redeemed | void)
- ticket_service.py: ticket issuance with QR codes and printable PDF
- router.py: FastAPI endpoints for bookings, tickets and scans
- schemas.py: Pydantic models and the status enumerations
"""

from .router import router
from .booking_service import BookingService
from .checkin_service import CheckInService
from .ticket_service import TicketService
from .schemas import (
    BookingCreateRequest, BookingUpdateRequest, BookingStatusUpdateRequest,
    TransactionCreateRequest, ScanRequest, BookingStatus, ParticipantStatus,
    Ticket, ScanResult
)

__all__ = [
    "router",
    "BookingService",
    "CheckInService",
    "TicketService",
    "BookingCreateRequest",
    "BookingUpdateRequest",
    "BookingStatusUpdateRequest",
    "TransactionCreateRequest",
    "ScanRequest",
    "BookingStatus",
    "ParticipantStatus",
    "Ticket",
    "ScanResult"
]

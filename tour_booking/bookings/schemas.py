from pydantic import BaseModel, EmailStr, Field, validator
from typing import List, Optional, Dict, Any
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum

class BookingStatus(str, Enum):
    """Booking status enumeration"""
    AWAITING_PAYMENT = "awaiting_payment"
    DP_PAID = "dp_paid"
    COMPLETED = "completed"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELED = "canceled"

    @classmethod
    def parse(cls, value: Any) -> "BookingStatus":
        """Resolve a status from its value, name or a known alias (case-insensitive)"""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Status is required")

        key = value.strip().lower()
        key = STATUS_ALIASES.get(key, key)
        for member in cls:
            if key in (member.value, member.name.lower()):
                return member

        allowed = ", ".join(member.value for member in cls)
        raise ValueError(f"Status must be one of: {allowed}")

STATUS_ALIASES = {
    "lunas": BookingStatus.COMPLETED.value,
    "paid": BookingStatus.COMPLETED.value,
    "cancelled": BookingStatus.CANCELED.value,
}

class ParticipantStatus(str, Enum):
    """Ticket state of a participant"""
    VALID = "valid"
    REDEEMED = "redeemed"
    VOID = "void"

PARTIAL_PAYMENT_TYPES = {"dp", "partial", "down_payment"}

def is_partial_payment(payment_type: str) -> bool:
    return payment_type.strip().lower() in PARTIAL_PAYMENT_TYPES

def coerce_price(value: Any) -> Decimal:
    """Lenient price coercion: malformed or negative input becomes 0"""
    try:
        price = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal("0")
    if not price.is_finite() or price < 0:
        return Decimal("0")
    return price

# Booking Request Models
class ParticipantInfo(BaseModel):
    """One traveler covered by a booking"""
    name: str = Field(..., min_length=1, max_length=255)
    phone: Optional[str] = None
    address: Optional[str] = None
    birth_place: Optional[str] = None

    @validator('name')
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError('Participant name is required')
        return v.strip()

class BookingCreateRequest(BaseModel):
    """Request to create a booking with its participants"""
    package_id: int
    customer_name: str = Field(..., min_length=1, max_length=255)
    customer_email: EmailStr
    customer_phone: Optional[str] = None
    participants: List[ParticipantInfo]
    total_price: Decimal = Field(..., ge=0)

    @validator('customer_name')
    def validate_customer_name(cls, v):
        if not v.strip():
            raise ValueError('Customer name is required')
        return v.strip()

    @validator('participants')
    def validate_participants(cls, v):
        if not v:
            raise ValueError('At least one participant is required')
        return v

class BookingUpdateRequest(BaseModel):
    """Sparse update; only supplied fields are changed"""
    customer_name: Optional[str] = None
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = None
    total_price: Optional[Decimal] = None
    status: Optional[BookingStatus] = None

    @validator('total_price', pre=True)
    def lenient_total_price(cls, v):
        if v is None:
            return v
        return coerce_price(v)

    @validator('status', pre=True)
    def parse_status(cls, v):
        if v is None:
            return v
        return BookingStatus.parse(v)

class BookingStatusUpdateRequest(BaseModel):
    """Request for the status transition endpoint"""
    status: BookingStatus

    @validator('status', pre=True)
    def parse_status(cls, v):
        return BookingStatus.parse(v)

class TransactionCreateRequest(BaseModel):
    """Payment ledger entry for a booking"""
    booking_id: int = Field(..., alias="bookingDbId")
    payment_type: str = Field(..., min_length=1, max_length=50)
    amount_paid: Decimal = Field(..., ge=0)
    payment_method: Optional[str] = None
    va_number: Optional[str] = None

    class Config:
        populate_by_name = True

    @validator('payment_type')
    def validate_payment_type(cls, v):
        if not v.strip():
            raise ValueError('Payment type is required')
        return v.strip()

class ScanRequest(BaseModel):
    """Check-in scan of a participant's ticket"""
    participant_id: int = Field(..., alias="participantId")

    class Config:
        populate_by_name = True

# Response Models
class ParticipantDetail(BaseModel):
    id: int
    name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    birth_place: Optional[str] = None
    status: str
    scanned_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class BookingSummary(BaseModel):
    id: int
    bookingCode: str
    package_id: int
    package_name: Optional[str] = None
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    total_price: float
    status: str
    participant_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class BookingDetail(BookingSummary):
    participants: List[ParticipantDetail] = []

class TicketParticipant(BaseModel):
    id: int
    name: str
    status: str

class Ticket(BaseModel):
    """Presentable ticket for a fully paid booking"""
    booking_id: int
    booking_code: str
    customer_name: str
    customer_email: str
    participants: List[TicketParticipant]
    total_price: float
    status: str
    qr_code_data: str
    qr_code: str
    issued_at: datetime = Field(default_factory=datetime.now)

class ScanResult(BaseModel):
    success: bool
    message: str
    name: Optional[str] = None
    participant_id: int
    booking_id: Optional[int] = None
    scanned_at: Optional[datetime] = None

def envelope(message: str, **payload: Any) -> Dict[str, Any]:
    """Successful response body"""
    return {"success": True, "message": message, **payload}

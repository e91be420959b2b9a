from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, EmailStr, Field


# ---------------- CONTACT (tagged variant) ----------------
class ContactPerson(BaseModel):
    name: str
    email: EmailStr
    phone: str = ""


class StructuredContact(BaseModel):
    kind: Literal["structured"] = "structured"
    participants: List[ContactPerson] = Field(min_length=1)


class SnapshotContact(BaseModel):
    kind: Literal["snapshot"] = "snapshot"
    customer: ContactPerson


Contact = Annotated[Union[StructuredContact, SnapshotContact], Field(discriminator="kind")]


class PricingBreakdown(BaseModel):
    basePrice: float = 0
    subtotal: float = 0
    tax: float = 0
    serviceFee: float = 0
    promoOff: float = 0
    total: float = 0


# ---------------- REQUESTS ----------------
class BookingCreate(BaseModel):
    date: datetime
    time: Optional[str] = None
    activity_id: Optional[int] = None
    place_id: Optional[int] = None

    participants: Optional[int] = Field(default=None, ge=1, le=50)
    people_count: Optional[int] = Field(default=None, ge=1, le=50)  # legacy clients

    contact: Optional[Contact] = None
    special_requests: str = ""

    total_amount: Optional[float] = Field(default=None, ge=0)
    promo_off: float = Field(default=0, ge=0)


class BookingUpdate(BaseModel):
    date: Optional[datetime] = None
    participants: Optional[int] = Field(default=None, ge=1, le=50)
    special_requests: Optional[str] = None


class BookingCancel(BaseModel):
    reason: Optional[str] = None


class BookingStatusUpdate(BaseModel):
    status: str


class ConfirmPaymentRequest(BaseModel):
    booking_id: int
    payment_id: str = Field(min_length=1)
    amount: Optional[float] = Field(default=None, gt=0)


# ---------------- RESPONSES ----------------
class BookingOut(BaseModel):
    id: int
    user_id: int
    activity_id: Optional[int] = None
    place_id: Optional[int] = None

    date: datetime
    time: Optional[str] = None
    participants: int
    people_count: int

    contact_kind: str
    contact: dict
    special_requests: Optional[str] = ""

    total_amount: float
    pricing: PricingBreakdown

    status: str
    payment_status: str
    payment_id: Optional[str] = None
    cancellation_reason: Optional[str] = ""
    reminder_sent: bool

    deleted: bool
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

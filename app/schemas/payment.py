from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.schemas.booking import BookingOut


class PaymentOrderCreate(BaseModel):
    booking_id: int
    amount: float = Field(gt=0)


class PaymentVerify(BaseModel):
    order_id: str
    payment_id: str
    signature: str
    booking_id: int


class PaymentOut(BaseModel):
    id: int
    amount: float
    currency: str
    provider: str
    status: str
    provider_ref: str
    meta: dict
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class PaymentOrderOut(BaseModel):
    payment: PaymentOut
    order_id: str
    amount: int  # minor units, as returned by the gateway
    currency: str
    key_id: str


class PaymentVerifyOut(BaseModel):
    payment: PaymentOut
    booking: BookingOut
    success: bool = True
    already_processed: bool = False


class WebhookAck(BaseModel):
    received: bool = True
    error: Optional[str] = None


class ReconcileOut(BaseModel):
    repaired: int
    booking_ids: List[int]

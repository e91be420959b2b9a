from sqlalchemy import Column, Integer, String, DateTime, Float, JSON, func
from app.db.session import Base
from app.models.enums import PaymentRecordStatus, PAYMENT_PROVIDER


class Payment(Base):
    """One gateway order attempt.

    The booking is referenced only through ``meta["bookingId"]``; there is no
    foreign key and deleting a booking never touches its payments.
    """
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    amount = Column(Float, nullable=False)
    currency = Column(String, nullable=False, default="INR")
    provider = Column(String, nullable=False, default=PAYMENT_PROVIDER)
    status = Column(String, nullable=False, default=PaymentRecordStatus.CREATED.value, index=True)

    # Gateway order id, join key for verify + webhook calls
    provider_ref = Column(String, nullable=False, unique=True, index=True)

    meta = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    @property
    def booking_id(self):
        return (self.meta or {}).get("bookingId")

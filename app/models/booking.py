from sqlalchemy import Column, Integer, String, DateTime, Float, Boolean, ForeignKey, JSON, Index, func
from sqlalchemy.orm import relationship
from app.db.session import Base
from app.models.enums import BookingStatus, PaymentStatus, ContactKind


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # Catalog references; the item may be gone, only used to resolve a price
    place_id = Column(Integer, nullable=True, index=True)
    activity_id = Column(Integer, nullable=True, index=True)

    date = Column(DateTime, nullable=False, index=True)
    time = Column(String, nullable=True)

    participants = Column(Integer, nullable=False, default=1)
    people_count = Column(Integer, nullable=False, default=1)  # legacy mirror of participants

    # {"participants": [...]} for STRUCTURED, {"customer": {...}} for SNAPSHOT
    contact_kind = Column(String, nullable=False, default=ContactKind.SNAPSHOT.value)
    contact = Column(JSON, nullable=False, default=dict)

    special_requests = Column(String, default="")

    # PRICING
    total_amount = Column(Float, nullable=False, default=0.0)
    pricing = Column(JSON, nullable=False, default=dict)

    # STATUS AXES
    status = Column(String, nullable=False, default=BookingStatus.CONFIRMED.value, index=True)
    payment_status = Column(String, nullable=False, default=PaymentStatus.PENDING.value, index=True)
    payment_id = Column(String, nullable=True)

    cancellation_reason = Column(String, default="")
    reminder_sent = Column(Boolean, nullable=False, default=False)

    # SOFT DELETE
    deleted = Column(Boolean, nullable=False, default=False, index=True)
    deleted_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="bookings")
    activity = relationship("Activity", primaryjoin="foreign(Booking.activity_id) == Activity.id", viewonly=True)
    place = relationship("Place", primaryjoin="foreign(Booking.place_id) == Place.id", viewonly=True)

    __table_args__ = (
        Index("ix_bookings_user_created", "user_id", "created_at"),
        Index("ix_bookings_status_payment", "status", "payment_status"),
    )

    @property
    def item(self):
        return self.activity or self.place

    @property
    def primary_contact(self) -> dict:
        """The person to notify when there is no account to fall back on."""
        if self.contact_kind == ContactKind.STRUCTURED.value:
            people = (self.contact or {}).get("participants") or []
            return people[0] if people else {}
        return (self.contact or {}).get("customer") or {}

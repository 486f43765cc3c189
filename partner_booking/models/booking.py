"""Booking model definitions."""

import enum
from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, func

from partner_booking.database import Base


class BookingStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    REFUNDED = "REFUNDED"


class Booking(Base):
    """Represents a member's appointment at a partner clinic."""
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True)
    booking_reference = Column(String(16), index=True)
    partner_id = Column(Integer, ForeignKey("partners.id"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    booking_date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    status = Column(String(16), nullable=False, default=BookingStatus.PENDING.value)
    payment_status = Column(String(16), nullable=False, default=PaymentStatus.PENDING.value)
    total_amount = Column(Numeric(10, 2), nullable=False, default=0)
    is_free_checkup = Column(Boolean, nullable=False, default=False)
    notes = Column(String, nullable=True)
    cancellation_reason = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now, server_default=func.now())
    updated_at = Column(DateTime, nullable=True, onupdate=func.now())

"""Availability template model definitions."""

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, String

from partner_booking.database import Base


class AvailabilityTemplate(Base):
    """Recurring weekly opening window for a partner.

    ``day_of_week`` uses 0=Sunday..6=Saturday. Several templates may share a
    weekday (split shifts); their slots are combined. Times are zero-padded
    ``HH:MM`` so they compare as strings.
    """
    __tablename__ = "partner_availability"
    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_partner_availability_day_of_week"),
        CheckConstraint("start_time < end_time", name="ck_partner_availability_time_order"),
        CheckConstraint("slot_duration_minutes > 0", name="ck_partner_availability_slot_duration"),
        CheckConstraint("max_bookings_per_slot >= 1", name="ck_partner_availability_capacity"),
    )

    id = Column(Integer, primary_key=True)
    partner_id = Column(Integer, ForeignKey("partners.id"), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    slot_duration_minutes = Column(Integer, nullable=False, default=30)
    max_bookings_per_slot = Column(Integer, nullable=False, default=1)

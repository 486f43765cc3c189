"""Day-off model definitions."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, func

from partner_booking.database import Base

WEEKLY = "WEEKLY"
ANNUAL = "ANNUAL"
RECURRING_TYPES = (WEEKLY, ANNUAL)


class DayOff(Base):
    """A one-off or recurring closure that blocks a whole day."""
    __tablename__ = "partner_days_off"

    id = Column(Integer, primary_key=True)
    partner_id = Column(Integer, ForeignKey("partners.id"), nullable=False, index=True)
    date = Column(Date, nullable=True)
    recurring_type = Column(String(16), nullable=True)
    day_of_week = Column(Integer, nullable=True)  # WEEKLY, 0=Sunday
    month = Column(Integer, nullable=True)  # ANNUAL
    day = Column(Integer, nullable=True)  # ANNUAL
    reason = Column(String, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

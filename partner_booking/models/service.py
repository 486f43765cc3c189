"""Service model definitions."""

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Integer, Numeric, String

from partner_booking.database import Base


class Service(Base):
    """A bookable service offered by exactly one partner."""
    __tablename__ = "services"
    __table_args__ = (CheckConstraint("duration_minutes > 0", name="ck_services_duration_positive"),)

    id = Column(Integer, primary_key=True, index=True)
    partner_id = Column(Integer, ForeignKey("partners.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    category = Column(String, default="general")
    duration_minutes = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)
    max_bookings_per_day = Column(Integer, nullable=True)
    requires_approval = Column(Boolean, default=False, nullable=False)

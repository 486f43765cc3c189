"""User model definitions."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String
from partner_booking.database import Base


class User(Base):
    """Represents an application user."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    role = Column(String, default="member")  # member/partner/admin
    partner_id = Column(Integer, ForeignKey("partners.id"), nullable=True)
    is_confirmed = Column(Boolean, default=False, nullable=False)
    is_blocked = Column(Boolean, default=False, nullable=False)

"""Partner model definitions."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, func

from partner_booking.database import Base


class Partner(Base):
    """Represents a partner clinic that accepts bookings."""
    __tablename__ = "partners"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    specializations = Column(String, default="")  # comma separated tags
    created_at = Column(DateTime, server_default=func.now())

    @property
    def specialization_tags(self) -> list[str]:
        return [tag.strip() for tag in (self.specializations or "").split(",") if tag.strip()]

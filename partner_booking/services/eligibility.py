"""Free checkup eligibility.

A member gets one complimentary checkup per rolling window of
``FREE_CHECKUP_WINDOW_MONTHS`` (12 by default). The window is rolling, not
calendar-year: a checkup booked on 2026-03-10 makes the member eligible
again on 2027-03-10. Cancelled bookings do not count.
"""

from dataclasses import dataclass
from datetime import date

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from partner_booking.core import config
from partner_booking.models.booking import Booking, BookingStatus


@dataclass(frozen=True)
class FreeCheckupEligibility:
    eligible: bool
    next_eligible_date: date | None = None
    last_free_checkup_date: date | None = None


def is_checkup_category(category: str | None, categories: list[str] | None = None) -> bool:
    allowed = categories if categories is not None else config.FREE_CHECKUP_CATEGORIES
    return (category or '').strip().lower() in allowed


def evaluate_free_checkup(
    db: Session,
    user_id: int,
    today: date,
    window_months: int | None = None,
) -> FreeCheckupEligibility:
    window = relativedelta(months=window_months if window_months is not None else config.FREE_CHECKUP_WINDOW_MONTHS)
    window_start = today - window

    # Future-dated free bookings already use up the allowance.
    latest = db.query(Booking.booking_date).filter(
        Booking.user_id == user_id,
        Booking.is_free_checkup.is_(True),
        Booking.status != BookingStatus.CANCELLED.value,
        Booking.booking_date > window_start,
    ).order_by(Booking.booking_date.desc()).first()

    if latest is None:
        return FreeCheckupEligibility(eligible=True)

    last_date = latest[0]
    return FreeCheckupEligibility(
        eligible=False,
        next_eligible_date=last_date + window,
        last_free_checkup_date=last_date,
    )

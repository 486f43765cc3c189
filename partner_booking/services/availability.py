"""Partner weekly availability management.

A partner's week is edited as a whole: ``replace_availability`` swaps every
template in one transaction. Existing bookings are left alone.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from partner_booking.core.exceptions import BookingEngineError, ValidationError
from partner_booking.core.timeutils import to_minutes, to_time_string
from partner_booking.models.availability import AvailabilityTemplate

logger = logging.getLogger(__name__)

DEFAULT_SLOT_DURATION_MINUTES = 30
DEFAULT_MAX_BOOKINGS_PER_SLOT = 1


def list_availability(db: Session, partner_id: int) -> list[AvailabilityTemplate]:
    return db.query(AvailabilityTemplate).filter(
        AvailabilityTemplate.partner_id == partner_id,
    ).order_by(
        AvailabilityTemplate.day_of_week.asc(),
        AvailabilityTemplate.start_time.asc(),
    ).all()


def build_template(partner_id: int, entry: Mapping[str, Any], index: int = 0) -> AvailabilityTemplate:
    """Validate one template entry and return an unsaved row."""
    def invalid(message: str) -> ValidationError:
        return ValidationError(message, code='INVALID_TEMPLATE', details={'index': index})

    day = entry.get('day_of_week')
    if not isinstance(day, int) or isinstance(day, bool) or not 0 <= day <= 6:
        raise invalid('day_of_week must be between 0 (Sunday) and 6 (Saturday).')

    try:
        start = to_minutes(entry.get('start_time'))
        end = to_minutes(entry.get('end_time'))
    except BookingEngineError as exc:
        raise invalid('Times must be formatted as HH:MM.') from exc
    if start >= end:
        raise invalid('start_time must be before end_time.')

    slot_duration = entry.get('slot_duration_minutes')
    if slot_duration is None:
        slot_duration = DEFAULT_SLOT_DURATION_MINUTES
    if slot_duration <= 0:
        raise invalid('slot_duration_minutes must be positive.')

    max_bookings = entry.get('max_bookings_per_slot')
    if max_bookings is None:
        max_bookings = DEFAULT_MAX_BOOKINGS_PER_SLOT
    if max_bookings < 1:
        raise invalid('max_bookings_per_slot must be at least 1.')

    return AvailabilityTemplate(
        partner_id=partner_id,
        day_of_week=day,
        start_time=to_time_string(start),
        end_time=to_time_string(end),
        slot_duration_minutes=slot_duration,
        max_bookings_per_slot=max_bookings,
    )


def replace_availability(
    db: Session,
    partner_id: int,
    entries: Iterable[Mapping[str, Any]],
) -> list[AvailabilityTemplate]:
    templates = [build_template(partner_id, entry, index) for index, entry in enumerate(entries)]

    try:
        db.query(AvailabilityTemplate).filter(
            AvailabilityTemplate.partner_id == partner_id,
        ).delete()
        db.add_all(templates)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception('Availability update failed for partner %s', partner_id)
        raise

    logger.info('Partner %s replaced availability with %s templates', partner_id, len(templates))
    return list_availability(db, partner_id)

"""Partner day-off management."""

import logging
from datetime import date

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from partner_booking.core.exceptions import ConflictError, NotFoundError, ValidationError
from partner_booking.models.day_off import ANNUAL, RECURRING_TYPES, WEEKLY, DayOff

logger = logging.getLogger(__name__)


def list_days_off(db: Session, partner_id: int) -> list[DayOff]:
    return db.query(DayOff).filter(
        DayOff.partner_id == partner_id,
    ).order_by(DayOff.date.asc(), DayOff.id.asc()).all()


def create_day_off(
    db: Session,
    partner_id: int,
    day_off_date: date | None = None,
    recurring_type: str | None = None,
    day_of_week: int | None = None,
    reason: str | None = None,
) -> DayOff:
    recurring_type = recurring_type.strip().upper() if recurring_type else None
    if recurring_type and recurring_type not in RECURRING_TYPES:
        raise ValidationError(f'Unsupported recurring type: {recurring_type}', code='INVALID_RECURRING_TYPE')

    if recurring_type == WEEKLY:
        if day_of_week is None or not 0 <= day_of_week <= 6:
            raise ValidationError('Weekly days off need a day of week between 0 and 6.', code='INVALID_DAY_OF_WEEK')

        existing = db.query(DayOff).filter(
            DayOff.partner_id == partner_id,
            DayOff.recurring_type == WEEKLY,
            DayOff.day_of_week == day_of_week,
        ).first()
        if existing:
            raise ConflictError('Weekly day off already exists for this day of the week', code='DUPLICATE_DAY_OFF')

        day_off = DayOff(
            partner_id=partner_id,
            recurring_type=WEEKLY,
            day_of_week=day_of_week,
            reason=reason,
        )
    else:
        if day_off_date is None:
            raise ValidationError('A date is required for one-off and annual days off.', code='MISSING_DATE')

        existing = db.query(DayOff).filter(
            DayOff.partner_id == partner_id,
            DayOff.date == day_off_date,
        ).first()
        if existing:
            raise ConflictError('Day off already exists for this date', code='DUPLICATE_DAY_OFF')

        day_off = DayOff(
            partner_id=partner_id,
            date=day_off_date,
            recurring_type=recurring_type,
            month=day_off_date.month if recurring_type == ANNUAL else None,
            day=day_off_date.day if recurring_type == ANNUAL else None,
            reason=reason,
        )

    try:
        db.add(day_off)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(day_off)

    logger.info('Partner %s added day off %s (%s)', partner_id, day_off.id, recurring_type or 'ONE_OFF')
    return day_off


def delete_day_off(db: Session, partner_id: int, day_off_id: int) -> None:
    day_off = db.query(DayOff).filter(
        DayOff.id == day_off_id,
        DayOff.partner_id == partner_id,
    ).first()
    if day_off is None:
        raise NotFoundError('Day off not found', code='DAY_OFF_NOT_FOUND')

    try:
        db.delete(day_off)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.info('Partner %s removed day off %s', partner_id, day_off_id)

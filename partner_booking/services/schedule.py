"""Weekly schedule resolution and day-off matching."""

from collections.abc import Iterable
from datetime import date

from sqlalchemy.orm import Session

from partner_booking.core.exceptions import NotFoundError
from partner_booking.core.timeutils import to_minutes
from partner_booking.models.availability import AvailabilityTemplate
from partner_booking.models.day_off import ANNUAL, WEEKLY, DayOff
from partner_booking.models.partner import Partner


def day_of_week(target_date: date) -> int:
    """Return the weekday with 0=Sunday..6=Saturday."""
    return target_date.isoweekday() % 7


def load_templates(db: Session, partner_id: int) -> list[AvailabilityTemplate]:
    return db.query(AvailabilityTemplate).filter(
        AvailabilityTemplate.partner_id == partner_id,
    ).all()


def templates_for_day(templates: Iterable[AvailabilityTemplate], target_date: date) -> list[AvailabilityTemplate]:
    weekday = day_of_week(target_date)
    matching = [template for template in templates if template.day_of_week == weekday]
    return sorted(matching, key=lambda template: (to_minutes(template.start_time), template.id or 0))


def resolve_templates(db: Session, partner_id: int, target_date: date) -> list[AvailabilityTemplate]:
    """Templates that apply on ``target_date``; empty when the partner is closed."""
    templates = db.query(AvailabilityTemplate).filter(
        AvailabilityTemplate.partner_id == partner_id,
        AvailabilityTemplate.day_of_week == day_of_week(target_date),
    ).all()
    return templates_for_day(templates, target_date)


def load_days_off(db: Session, partner_id: int) -> list[DayOff]:
    # Recurring rows have no concrete date, so filter them in Python.
    return db.query(DayOff).filter(DayOff.partner_id == partner_id).all()


def matches_day_off(day_off: DayOff, target_date: date) -> bool:
    if day_off.recurring_type == WEEKLY:
        return day_off.day_of_week == day_of_week(target_date)

    if day_off.recurring_type == ANNUAL:
        month = day_off.month if day_off.month is not None else (day_off.date.month if day_off.date else None)
        day = day_off.day if day_off.day is not None else (day_off.date.day if day_off.date else None)
        return month == target_date.month and day == target_date.day

    return day_off.date == target_date


def is_day_off(days_off: Iterable[DayOff], target_date: date) -> bool:
    """True when any day off blocks ``target_date`` entirely."""
    return any(matches_day_off(day_off, target_date) for day_off in days_off)


def is_blocked(db: Session, partner_id: int, target_date: date) -> bool:
    return is_day_off(load_days_off(db, partner_id), target_date)


def get_partner(db: Session, partner_id: int) -> Partner:
    partner = db.get(Partner, partner_id)
    if partner is None:
        raise NotFoundError('Partner not found', code='PARTNER_NOT_FOUND')
    return partner

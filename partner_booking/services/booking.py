"""Booking commitment and lifecycle.

``create_booking`` validates a request against the partner's derived
schedule, re-checks conflicts as the last step before the insert and
commits once. Concurrent requests for the same partner and date are
serialised by a process-local lock and, on databases that support it, a
``FOR UPDATE`` lock on the partner row. Free-checkup requests are also
serialised per member (process lock plus ``FOR UPDATE`` on the user row)
and re-check eligibility inside that section. Neither replaces a
storage-level exclusion constraint.
"""

import logging
import math
import threading
import weakref
from contextlib import nullcontext
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from partner_booking.core import config
from partner_booking.core.exceptions import (
    BookingEngineError,
    ConflictError,
    NotFoundError,
    PastDateError,
    ValidationError,
)
from partner_booking.core.timeutils import MINUTES_PER_DAY, to_minutes, to_time_string
from partner_booking.models.booking import Booking, BookingStatus, PaymentStatus
from partner_booking.models.partner import Partner
from partner_booking.models.service import Service
from partner_booking.models.user import User
from partner_booking.services.eligibility import evaluate_free_checkup, is_checkup_category
from partner_booking.services.schedule import is_blocked, resolve_templates
from partner_booking.services.slots import (
    active_intervals,
    count_bucket_bookings,
    generate_slots,
    has_overlap_conflict,
    load_bookings_for_date,
)

logger = logging.getLogger(__name__)

STATUS_TRANSITIONS: dict[str, set[str]] = {
    BookingStatus.PENDING.value: {BookingStatus.CONFIRMED.value, BookingStatus.CANCELLED.value},
    BookingStatus.CONFIRMED.value: {
        BookingStatus.COMPLETED.value,
        BookingStatus.CANCELLED.value,
        BookingStatus.NO_SHOW.value,
    },
    BookingStatus.COMPLETED.value: set(),
    BookingStatus.CANCELLED.value: set(),
    BookingStatus.NO_SHOW.value: set(),
}
CANCELLABLE_STATUSES = {BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value}

_locks: 'weakref.WeakValueDictionary[tuple, Any]' = weakref.WeakValueDictionary()
_locks_guard = threading.Lock()


def _keyed_lock(*key: Any):
    with _locks_guard:
        lock = _locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _locks[key] = lock
        return lock


def _slot_lock(partner_id: int, booking_date: date):
    return _keyed_lock('slot', partner_id, booking_date)


def _member_lock(user_id: int):
    return _keyed_lock('member', user_id)


def _require(**fields: Any) -> None:
    missing = [
        name for name, value in fields.items()
        if value is None or (isinstance(value, str) and not value.strip())
    ]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            code='MISSING_FIELDS',
            details={'fields': missing},
        )


def _coerce_date(value: date | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value.strip())
    except (AttributeError, ValueError) as exc:
        raise ValidationError(f'Invalid booking date: {value!r}', code='INVALID_DATE') from exc


def normalize_notes(notes: str | None) -> str | None:
    if notes is None:
        return None

    normalized = notes.strip()
    if not normalized:
        return None

    if len(normalized) > config.MAX_BOOKING_NOTES_LENGTH:
        raise ValidationError(
            f'Notes must be {config.MAX_BOOKING_NOTES_LENGTH} characters or fewer.',
            code='NOTES_TOO_LONG',
        )

    return normalized


def generate_booking_reference(db: Session, now: datetime) -> str:
    """``BK`` + YYMMDD + today's creation count plus one.

    Two requests committing at the same moment can read the same count, so
    the reference is for display only.
    """
    start_of_day = datetime.combine(now.date(), time.min)
    created_today = db.query(Booking).filter(
        Booking.created_at >= start_of_day,
        Booking.created_at < start_of_day + timedelta(days=1),
    ).count()
    return f'{config.BOOKING_REFERENCE_PREFIX}{now:%y%m%d}{created_today + 1:04d}'


def create_booking(
    db: Session,
    partner_id: int,
    user_id: int,
    service_id: int,
    booking_date: date | str,
    start_time: str,
    notes: str | None = None,
    is_free_checkup: bool = False,
    today: date | None = None,
    now: datetime | None = None,
) -> Booking:
    _require(
        partner_id=partner_id,
        user_id=user_id,
        service_id=service_id,
        booking_date=booking_date,
        start_time=start_time,
    )

    booking_date = _coerce_date(booking_date)
    start_minutes = to_minutes(start_time)
    notes = normalize_notes(notes)
    now = now or datetime.now()
    today = today or now.date()

    if booking_date <= today:
        raise PastDateError()

    partner = db.get(Partner, partner_id)
    if partner is None:
        raise NotFoundError('Partner not found', code='PARTNER_NOT_FOUND')
    if not partner.is_active:
        raise ValidationError('Partner is not accepting bookings.', code='PARTNER_INACTIVE')

    service = db.get(Service, service_id)
    if service is None:
        raise NotFoundError('Service not found', code='SERVICE_NOT_FOUND')
    if service.partner_id != partner.id:
        raise ValidationError('Invalid service for this partner', code='SERVICE_PARTNER_MISMATCH')
    if not service.is_active:
        raise ValidationError('Service is not available for booking.', code='SERVICE_INACTIVE')

    end_minutes = start_minutes + service.duration_minutes
    if end_minutes > MINUTES_PER_DAY:
        raise ValidationError('Booking must end on the same day it starts.', code='CROSSES_MIDNIGHT')

    if is_blocked(db, partner.id, booking_date):
        raise ValidationError('Partner is not available on this date.', code='DAY_OFF')

    offered = [slot for slot in generate_slots(resolve_templates(db, partner.id, booking_date)) if slot.start == start_minutes]
    if not offered:
        raise ValidationError('Requested time is not an offered slot.', code='SLOT_NOT_OFFERED')
    capacity = max(slot.capacity for slot in offered)

    if is_free_checkup and not is_checkup_category(service.category):
        raise ValidationError('This service is not eligible for a free checkup.', code='FREE_CHECKUP_CATEGORY')

    # Member lock first, slot lock second; never the other way round.
    with _member_lock(user_id) if is_free_checkup else nullcontext(), _slot_lock(partner.id, booking_date):
        try:
            if is_free_checkup:
                db.query(User).filter(User.id == user_id).with_for_update().one_or_none()
                eligibility = evaluate_free_checkup(db, user_id, today)
                if not eligibility.eligible:
                    raise ValidationError(
                        'Free checkup already used.',
                        code='FREE_CHECKUP_USED',
                        details={'next_eligible_date': eligibility.next_eligible_date.isoformat()},
                    )

            db.query(Partner).filter(Partner.id == partner.id).with_for_update().one()

            if service.max_bookings_per_day:
                booked_today = db.query(Booking).filter(
                    Booking.service_id == service.id,
                    Booking.booking_date == booking_date,
                    Booking.status != BookingStatus.CANCELLED.value,
                ).count()
                if booked_today >= service.max_bookings_per_day:
                    raise ConflictError(
                        f'This service has reached its daily booking limit of {service.max_bookings_per_day} bookings',
                        code='DAILY_LIMIT_REACHED',
                    )

            intervals = active_intervals(load_bookings_for_date(db, partner.id, booking_date))
            if (
                has_overlap_conflict(start_minutes, end_minutes, intervals)
                or count_bucket_bookings(start_minutes, intervals) >= capacity
            ):
                raise ConflictError('This time slot is already booked', code='SLOT_UNAVAILABLE')

            booking = Booking(
                booking_reference=generate_booking_reference(db, now),
                partner_id=partner.id,
                service_id=service.id,
                user_id=user_id,
                booking_date=booking_date,
                start_time=to_time_string(start_minutes),
                end_time=to_time_string(end_minutes),
                status=BookingStatus.PENDING.value,
                payment_status=PaymentStatus.PENDING.value,
                total_amount=Decimal('0') if is_free_checkup else service.price,
                is_free_checkup=bool(is_free_checkup),
                notes=notes,
                created_at=now,
            )
            db.add(booking)
            db.commit()
        except BookingEngineError:
            db.rollback()
            raise
        except SQLAlchemyError:
            db.rollback()
            logger.exception('Booking commit failed for partner %s on %s', partner_id, booking_date)
            raise

    db.refresh(booking)
    logger.info(
        'Created booking %s for partner %s on %s %s-%s',
        booking.booking_reference,
        booking.partner_id,
        booking.booking_date,
        booking.start_time,
        booking.end_time,
    )
    return booking


def get_booking(db: Session, booking_id: int) -> Booking:
    booking = db.get(Booking, booking_id)
    if booking is None:
        raise NotFoundError('Booking not found', code='BOOKING_NOT_FOUND')
    return booking


def list_user_bookings(
    db: Session,
    user_id: int,
    status: str | None = None,
    from_date: date | None = None,
    to_date: date | None = None,
    page: int = 1,
    limit: int = 10,
) -> dict[str, Any]:
    query = db.query(Booking).filter(Booking.user_id == user_id)

    if status:
        query = query.filter(Booking.status == status)
    if from_date:
        query = query.filter(Booking.booking_date >= from_date)
    if to_date:
        query = query.filter(Booking.booking_date <= to_date)

    total = query.count()
    bookings = query.order_by(
        Booking.booking_date.desc(),
        Booking.start_time.desc(),
    ).offset((page - 1) * limit).limit(limit).all()

    return {
        'bookings': bookings,
        'pagination': {
            'page': page,
            'limit': limit,
            'total': total,
            'total_pages': math.ceil(total / limit) if limit else 0,
        },
    }


def list_partner_bookings(
    db: Session,
    partner_id: int,
    booking_date: date | None = None,
    status: str | None = None,
) -> list[Booking]:
    query = db.query(Booking).filter(Booking.partner_id == partner_id)
    if booking_date:
        query = query.filter(Booking.booking_date == booking_date)
    if status:
        query = query.filter(Booking.status == status)
    return query.order_by(Booking.booking_date.asc(), Booking.start_time.asc()).all()


def update_booking_status(
    db: Session,
    booking_id: int,
    partner_id: int,
    status: str,
    notes: str | None = None,
) -> Booking:
    booking = db.query(Booking).filter(
        Booking.id == booking_id,
        Booking.partner_id == partner_id,
    ).first()
    if booking is None:
        raise NotFoundError('Booking not found', code='BOOKING_NOT_FOUND')

    new_status = status.strip().upper()
    if new_status not in STATUS_TRANSITIONS.get(booking.status, set()):
        raise ValidationError(
            f'Invalid status transition from {booking.status} to {new_status}',
            code='INVALID_STATUS_TRANSITION',
        )

    previous_status = booking.status
    booking.status = new_status
    booking.notes = normalize_notes(notes) or booking.notes
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(booking)

    logger.info('Booking %s moved from %s to %s', booking.id, previous_status, new_status)
    return booking


def cancel_booking(db: Session, booking_id: int, user_id: int, reason: str | None = None) -> Booking:
    booking = get_booking(db, booking_id)
    if booking.user_id != user_id:
        # Do not reveal other members' bookings.
        raise NotFoundError('Booking not found', code='BOOKING_NOT_FOUND')

    if booking.status not in CANCELLABLE_STATUSES:
        raise ValidationError(f'Bookings in status {booking.status} cannot be cancelled.', code='NOT_CANCELLABLE')

    booking.status = BookingStatus.CANCELLED.value
    booking.cancellation_reason = normalize_notes(reason)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(booking)

    logger.info('Booking %s cancelled by user %s', booking.id, user_id)
    return booking


def get_day_schedule(db: Session, partner_id: int, target_date: date | None = None) -> list[Booking]:
    """Non-cancelled bookings for one day (today by default), earliest first."""
    return load_bookings_for_date(db, partner_id, target_date or date.today())

"""Slot generation and conflict detection.

Slots are never stored. Every view is rebuilt from the partner's templates,
days off and non-cancelled bookings so it reflects the latest writes.
"""

import calendar
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import date
from typing import Any

from sqlalchemy.orm import Session

from partner_booking.core.timeutils import to_minutes, to_time_string
from partner_booking.models.availability import AvailabilityTemplate
from partner_booking.models.booking import Booking, BookingStatus
from partner_booking.models.day_off import DayOff
from partner_booking.services.schedule import (
    day_of_week,
    is_day_off,
    load_days_off,
    load_templates,
    resolve_templates,
    templates_for_day,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Slot:
    time: str
    duration: int
    capacity: int
    booked_count: int = 0
    available: bool = True

    @property
    def start(self) -> int:
        return to_minutes(self.time)

    @property
    def end(self) -> int:
        return self.start + self.duration


@dataclass(frozen=True)
class BookedInterval:
    start: int
    end: int


def to_interval(booking: Any) -> BookedInterval:
    return BookedInterval(start=to_minutes(booking.start_time), end=to_minutes(booking.end_time))


def active_intervals(bookings: Iterable[Any]) -> list[BookedInterval]:
    """Intervals of bookings that still hold capacity (anything not cancelled)."""
    return [
        to_interval(booking)
        for booking in bookings
        if booking.status != BookingStatus.CANCELLED.value
    ]


def generate_slots(templates: Iterable[AvailabilityTemplate]) -> list[Slot]:
    """Expand templates into whole candidate slots.

    A trailing window shorter than the slot duration is dropped. Templates
    that overlap each emit their own slots; nothing is merged.
    """
    slots: list[Slot] = []
    for template in templates:
        start = to_minutes(template.start_time)
        end = to_minutes(template.end_time)
        step = template.slot_duration_minutes or 0

        if step <= 0 or start >= end:
            logger.warning('Skipping invalid availability template %s', template.id)
            continue

        cursor = start
        while cursor + step <= end:
            slots.append(
                Slot(
                    time=to_time_string(cursor),
                    duration=step,
                    capacity=template.max_bookings_per_slot or 1,
                )
            )
            cursor += step

    return slots


def has_overlap_conflict(start: int, end: int, intervals: Iterable[BookedInterval]) -> bool:
    """Half-open overlap test; touching intervals do not conflict."""
    return any(start < interval.end and end > interval.start for interval in intervals)


def count_bucket_bookings(start: int, intervals: Iterable[BookedInterval]) -> int:
    """Bookings that start exactly at ``start``."""
    return sum(1 for interval in intervals if interval.start == start)


def evaluate_slot(slot: Slot, intervals: Sequence[BookedInterval]) -> Slot:
    booked_count = count_bucket_bookings(slot.start, intervals)
    overlap = has_overlap_conflict(slot.start, slot.end, intervals)
    return replace(slot, booked_count=booked_count, available=not overlap and booked_count < slot.capacity)


def detect_conflicts(slots: Iterable[Slot], bookings: Iterable[Any]) -> list[Slot]:
    intervals = active_intervals(bookings)
    return [evaluate_slot(slot, intervals) for slot in slots]


def compute_day_slots(
    target_date: date,
    templates: Iterable[AvailabilityTemplate],
    days_off: Iterable[DayOff],
    bookings: Iterable[Any],
) -> list[Slot]:
    if is_day_off(days_off, target_date):
        return []

    day_templates = templates_for_day(templates, target_date)
    if not day_templates:
        return []

    return detect_conflicts(generate_slots(day_templates), bookings)


def load_bookings_for_date(db: Session, partner_id: int, target_date: date) -> list[Booking]:
    return db.query(Booking).filter(
        Booking.partner_id == partner_id,
        Booking.booking_date == target_date,
        Booking.status != BookingStatus.CANCELLED.value,
    ).order_by(Booking.start_time.asc()).all()


def build_day_view(db: Session, partner_id: int, target_date: date) -> list[Slot]:
    """Slots for one partner and date. Empty on days off and closed days."""
    if is_day_off(load_days_off(db, partner_id), target_date):
        return []

    templates = resolve_templates(db, partner_id, target_date)
    if not templates:
        return []

    bookings = load_bookings_for_date(db, partner_id, target_date)
    return detect_conflicts(generate_slots(templates), bookings)


def build_calendar(db: Session, partner_id: int, year: int, month: int) -> list[dict[str, Any]]:
    templates = load_templates(db, partner_id)
    days_off = load_days_off(db, partner_id)

    days_in_month = calendar.monthrange(year, month)[1]
    first_day = date(year, month, 1)
    last_day = date(year, month, days_in_month)

    month_bookings = db.query(Booking).filter(
        Booking.partner_id == partner_id,
        Booking.booking_date >= first_day,
        Booking.booking_date <= last_day,
        Booking.status != BookingStatus.CANCELLED.value,
    ).all()
    bookings_by_date: dict[date, list[Booking]] = {}
    for booking in month_bookings:
        bookings_by_date.setdefault(booking.booking_date, []).append(booking)

    days: list[dict[str, Any]] = []
    for day_number in range(1, days_in_month + 1):
        current_day = date(year, month, day_number)
        day_off = is_day_off(days_off, current_day)
        slots = compute_day_slots(current_day, templates, days_off, bookings_by_date.get(current_day, []))
        has_template = bool(templates_for_day(templates, current_day))

        days.append(
            {
                'date': current_day,
                'day_of_week': day_of_week(current_day),
                'is_available': not day_off and has_template,
                'is_day_off': day_off,
                'available_slot_count': sum(1 for slot in slots if slot.available),
                'booked_slot_count': sum(1 for slot in slots if slot.booked_count > 0),
                'total_slot_count': len(slots),
            }
        )

    return days


def build_slot_breakdown(db: Session, partner_id: int, target_date: date) -> dict[str, Any]:
    slots = build_day_view(db, partner_id, target_date)
    bookings = load_bookings_for_date(db, partner_id, target_date) if slots else []

    available_time_slots = [slot for slot in slots if slot.available]
    return {
        'date': target_date,
        'total_slots': len(slots),
        'available_slots': len(available_time_slots),
        'booked_slots': bookings,
        'available_time_slots': available_time_slots,
    }

import datetime as dt
import re
from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from partner_booking.auth.dependencies import ensure_partner_staff, get_current_user
from partner_booking.core.exceptions import BookingEngineError
from partner_booking.core.timeutils import normalize_time
from partner_booking.database import get_db
from partner_booking.models.day_off import RECURRING_TYPES, WEEKLY
from partner_booking.models.user import User
from partner_booking.routes import common
from partner_booking.services import availability as availability_service
from partner_booking.services import days_off as days_off_service
from partner_booking.services.schedule import get_partner
from partner_booking.services.slots import build_calendar, build_day_view, build_slot_breakdown

router = APIRouter(tags=['availability'])

YEAR_MONTH_PATTERN = re.compile(r'^(?P<year>\d{4})-(?P<month>\d{2})$')
MAX_DAY_OFF_REASON_LENGTH = 200


class CalendarDayResponse(BaseModel):
    date: date
    day_of_week: int
    is_available: bool
    is_day_off: bool
    available_slot_count: int
    booked_slot_count: int
    total_slot_count: int


class SlotResponse(BaseModel):
    time: str
    duration_minutes: int
    available: bool
    max_bookings: int
    current_bookings: int


class BookedSlotResponse(BaseModel):
    id: int
    booking_reference: str | None = None
    time: str
    end_time: str
    service_id: int
    user_id: int
    status: str
    notes: str | None = None
    is_free_checkup: bool


class SlotBreakdownResponse(BaseModel):
    date: date
    total_slots: int
    available_slots: int
    booked_slots: list[BookedSlotResponse]
    available_time_slots: list[SlotResponse]


class CreateDayOffRequest(BaseModel):
    date: dt.date | None = None
    recurring_type: str | None = None
    day_of_week: int | None = None
    reason: str | None = None

    @field_validator('recurring_type')
    @classmethod
    def validate_recurring_type(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None

        normalized = value.strip().upper()
        if normalized not in RECURRING_TYPES:
            raise ValueError('Recurring type must be WEEKLY or ANNUAL.')
        return normalized

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if len(normalized) > MAX_DAY_OFF_REASON_LENGTH:
            raise ValueError(f'Reason must be {MAX_DAY_OFF_REASON_LENGTH} characters or fewer.')
        return normalized or None

    @model_validator(mode='after')
    def validate_pattern(self) -> 'CreateDayOffRequest':
        if self.recurring_type == WEEKLY:
            if self.day_of_week is None or not 0 <= self.day_of_week <= 6:
                raise ValueError('Weekly days off need a day_of_week between 0 (Sunday) and 6 (Saturday).')
        elif self.date is None:
            raise ValueError('A date is required for one-off and annual days off.')
        return self


class DayOffResponse(BaseModel):
    id: int
    date: dt.date | None = None
    recurring_type: str | None = None
    day_of_week: int | None = None
    month: int | None = None
    day: int | None = None
    reason: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class AvailabilityTemplateRequest(BaseModel):
    day_of_week: int
    start_time: str
    end_time: str
    slot_duration_minutes: int = 30
    max_bookings_per_slot: int = 1

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_time(cls, value: str) -> str:
        try:
            return normalize_time(value)
        except BookingEngineError as exc:
            raise ValueError('Times must be formatted as HH:MM.') from exc


class AvailabilityTemplateResponse(BaseModel):
    id: int
    day_of_week: int
    start_time: str
    end_time: str
    slot_duration_minutes: int
    max_bookings_per_slot: int

    class Config:
        from_attributes = True


def parse_year_month(value: str) -> tuple[int, int]:
    match = YEAR_MONTH_PATTERN.match(value.strip())
    if not match or int(match.group('year')) < 1 or not 1 <= int(match.group('month')) <= 12:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='year_month must be formatted as YYYY-MM.',
        )
    return int(match.group('year')), int(match.group('month'))


def to_slot_response(slot) -> SlotResponse:
    return SlotResponse(
        time=slot.time,
        duration_minutes=slot.duration,
        available=slot.available,
        max_bookings=slot.capacity,
        current_bookings=slot.booked_count,
    )


@router.get('/{partner_id}/calendar', response_model=list[CalendarDayResponse])
def get_partner_calendar(
    partner_id: int,
    year_month: str = Query(...),
    db: Session = Depends(get_db),
):
    year, month = parse_year_month(year_month)
    common.ensure_database_ready()

    try:
        get_partner(db, partner_id)
        return [CalendarDayResponse(**day) for day in build_calendar(db, partner_id, year, month)]
    except BookingEngineError as exc:
        raise exc.to_http_exception() from exc
    except SQLAlchemyError as exc:
        raise common.database_unavailable() from exc


@router.get('/{partner_id}/slots', response_model=list[SlotResponse])
def list_partner_slots(
    partner_id: int,
    slot_date: date = Query(..., alias='date'),
    db: Session = Depends(get_db),
):
    common.ensure_database_ready()

    try:
        get_partner(db, partner_id)
        return [to_slot_response(slot) for slot in build_day_view(db, partner_id, slot_date)]
    except BookingEngineError as exc:
        raise exc.to_http_exception() from exc
    except SQLAlchemyError as exc:
        raise common.database_unavailable() from exc


@router.get('/{partner_id}/slots/breakdown', response_model=SlotBreakdownResponse)
def get_slot_breakdown(
    partner_id: int,
    slot_date: date = Query(..., alias='date'),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_partner_staff(current_user, partner_id)
    common.ensure_database_ready()

    try:
        get_partner(db, partner_id)
        breakdown = build_slot_breakdown(db, partner_id, slot_date)
        return SlotBreakdownResponse(
            date=breakdown['date'],
            total_slots=breakdown['total_slots'],
            available_slots=breakdown['available_slots'],
            booked_slots=[
                BookedSlotResponse(
                    id=booking.id,
                    booking_reference=booking.booking_reference,
                    time=booking.start_time,
                    end_time=booking.end_time,
                    service_id=booking.service_id,
                    user_id=booking.user_id,
                    status=booking.status,
                    notes=booking.notes,
                    is_free_checkup=booking.is_free_checkup,
                )
                for booking in breakdown['booked_slots']
            ],
            available_time_slots=[to_slot_response(slot) for slot in breakdown['available_time_slots']],
        )
    except BookingEngineError as exc:
        raise exc.to_http_exception() from exc
    except SQLAlchemyError as exc:
        raise common.database_unavailable() from exc


@router.get('/{partner_id}/days-off', response_model=list[DayOffResponse])
def list_days_off(
    partner_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_partner_staff(current_user, partner_id)
    common.ensure_database_ready()

    try:
        return days_off_service.list_days_off(db, partner_id)
    except SQLAlchemyError as exc:
        raise common.database_unavailable() from exc


@router.post('/{partner_id}/days-off', response_model=DayOffResponse, status_code=status.HTTP_201_CREATED)
def create_day_off(
    partner_id: int,
    data: CreateDayOffRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_partner_staff(current_user, partner_id)
    common.ensure_database_ready()

    try:
        get_partner(db, partner_id)
        return days_off_service.create_day_off(
            db,
            partner_id,
            day_off_date=data.date,
            recurring_type=data.recurring_type,
            day_of_week=data.day_of_week,
            reason=data.reason,
        )
    except BookingEngineError as exc:
        raise exc.to_http_exception() from exc
    except SQLAlchemyError as exc:
        raise common.database_unavailable() from exc


@router.delete('/{partner_id}/days-off/{day_off_id}', status_code=status.HTTP_204_NO_CONTENT)
def remove_day_off(
    partner_id: int,
    day_off_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_partner_staff(current_user, partner_id)
    common.ensure_database_ready()

    try:
        days_off_service.delete_day_off(db, partner_id, day_off_id)
    except BookingEngineError as exc:
        raise exc.to_http_exception() from exc
    except SQLAlchemyError as exc:
        raise common.database_unavailable() from exc


@router.get('/{partner_id}/availability', response_model=list[AvailabilityTemplateResponse])
def get_partner_availability(
    partner_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_partner_staff(current_user, partner_id)
    common.ensure_database_ready()

    try:
        get_partner(db, partner_id)
        return availability_service.list_availability(db, partner_id)
    except BookingEngineError as exc:
        raise exc.to_http_exception() from exc
    except SQLAlchemyError as exc:
        raise common.database_unavailable() from exc


@router.put('/{partner_id}/availability', response_model=list[AvailabilityTemplateResponse])
def update_partner_availability(
    partner_id: int,
    data: list[AvailabilityTemplateRequest],
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_partner_staff(current_user, partner_id)
    common.ensure_database_ready()

    try:
        get_partner(db, partner_id)
        return availability_service.replace_availability(db, partner_id, [entry.model_dump() for entry in data])
    except BookingEngineError as exc:
        raise exc.to_http_exception() from exc
    except SQLAlchemyError as exc:
        raise common.database_unavailable() from exc

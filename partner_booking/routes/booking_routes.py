from datetime import date, datetime
from decimal import Decimal

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from partner_booking.auth.dependencies import (
    ensure_partner_staff,
    get_booking_user,
    get_current_user,
    is_partner_staff,
)
from partner_booking.core import config
from partner_booking.core.exceptions import BookingEngineError, NotFoundError
from partner_booking.core.timeutils import normalize_time
from partner_booking.database import get_db
from partner_booking.models.booking import BookingStatus
from partner_booking.models.user import User
from partner_booking.routes import common
from partner_booking.services import booking as booking_service
from partner_booking.services.eligibility import evaluate_free_checkup
from partner_booking.services.notifications import (
    NotificationDispatcher,
    get_notification_dispatcher,
    notify_booking_created,
)

router = APIRouter(tags=['bookings'])
partner_router = APIRouter(tags=['partner-bookings'])

BOOKING_STATUSES = {booking_status.value for booking_status in BookingStatus}


class CreateBookingRequest(BaseModel):
    partner_id: int
    service_id: int
    booking_date: date
    start_time: str
    notes: str | None = None
    is_free_checkup: bool = False

    @field_validator('start_time')
    @classmethod
    def validate_start_time(cls, value: str) -> str:
        try:
            return normalize_time(value)
        except BookingEngineError as exc:
            raise ValueError('Start time must be formatted as HH:MM.') from exc

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > config.MAX_BOOKING_NOTES_LENGTH:
            raise ValueError(f'Notes must be {config.MAX_BOOKING_NOTES_LENGTH} characters or fewer.')

        return normalized


class CancelBookingRequest(BaseModel):
    reason: str | None = None


class UpdateBookingStatusRequest(BaseModel):
    status: str
    notes: str | None = None

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in BOOKING_STATUSES:
            raise ValueError('Invalid booking status.')
        return normalized


class BookingResponse(BaseModel):
    id: int
    booking_reference: str | None = None
    partner_id: int
    service_id: int
    user_id: int
    booking_date: date
    start_time: str
    end_time: str
    status: str
    payment_status: str
    total_amount: Decimal
    is_free_checkup: bool
    notes: str | None = None
    cancellation_reason: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class PaginationResponse(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class BookingListResponse(BaseModel):
    bookings: list[BookingResponse]
    pagination: PaginationResponse


class FreeCheckupEligibilityResponse(BaseModel):
    eligible: bool
    next_eligible_date: date | None = None
    last_free_checkup_date: date | None = None


@router.post('', response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: CreateBookingRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_booking_user),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    common.ensure_database_ready()

    try:
        booking = booking_service.create_booking(
            db,
            partner_id=data.partner_id,
            user_id=current_user.id,
            service_id=data.service_id,
            booking_date=data.booking_date,
            start_time=data.start_time,
            notes=data.notes,
            is_free_checkup=data.is_free_checkup,
        )
    except BookingEngineError as exc:
        raise exc.to_http_exception() from exc
    except SQLAlchemyError as exc:
        raise common.database_unavailable() from exc

    background_tasks.add_task(notify_booking_created, dispatcher, booking)
    return booking


@router.get('', response_model=BookingListResponse)
def list_my_bookings(
    booking_status: str | None = Query(default=None, alias='status'),
    from_date: date | None = Query(default=None),
    to_date: date | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    normalized_status = booking_status.strip().upper() if booking_status else None
    if normalized_status and normalized_status not in BOOKING_STATUSES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Invalid booking status.')

    common.ensure_database_ready()

    try:
        return booking_service.list_user_bookings(
            db,
            current_user.id,
            status=normalized_status,
            from_date=from_date,
            to_date=to_date,
            page=page,
            limit=limit,
        )
    except SQLAlchemyError as exc:
        raise common.database_unavailable() from exc


@router.get('/free-checkup/eligibility', response_model=FreeCheckupEligibilityResponse)
def get_free_checkup_eligibility(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    common.ensure_database_ready()

    try:
        eligibility = evaluate_free_checkup(db, current_user.id, date.today())
    except SQLAlchemyError as exc:
        raise common.database_unavailable() from exc

    return FreeCheckupEligibilityResponse(
        eligible=eligibility.eligible,
        next_eligible_date=eligibility.next_eligible_date,
        last_free_checkup_date=eligibility.last_free_checkup_date,
    )


@router.get('/{booking_id}', response_model=BookingResponse)
def get_booking(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    common.ensure_database_ready()

    try:
        booking = booking_service.get_booking(db, booking_id)
    except BookingEngineError as exc:
        raise exc.to_http_exception() from exc
    except SQLAlchemyError as exc:
        raise common.database_unavailable() from exc

    # Other members get the same 404 as a missing booking.
    if booking.user_id != current_user.id and not is_partner_staff(current_user, booking.partner_id):
        raise NotFoundError('Booking not found', code='BOOKING_NOT_FOUND').to_http_exception()

    return booking


@router.post('/{booking_id}/cancel', response_model=BookingResponse)
def cancel_my_booking(
    booking_id: int,
    data: CancelBookingRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    common.ensure_database_ready()

    try:
        return booking_service.cancel_booking(db, booking_id, current_user.id, reason=data.reason)
    except BookingEngineError as exc:
        raise exc.to_http_exception() from exc
    except SQLAlchemyError as exc:
        raise common.database_unavailable() from exc


@partner_router.get('/{partner_id}/bookings', response_model=list[BookingResponse])
def list_partner_bookings(
    partner_id: int,
    booking_date: date | None = Query(default=None, alias='date'),
    booking_status: str | None = Query(default=None, alias='status'),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_partner_staff(current_user, partner_id)
    common.ensure_database_ready()

    try:
        return booking_service.list_partner_bookings(
            db,
            partner_id,
            booking_date=booking_date,
            status=booking_status.strip().upper() if booking_status else None,
        )
    except SQLAlchemyError as exc:
        raise common.database_unavailable() from exc


@partner_router.patch('/{partner_id}/bookings/{booking_id}/status', response_model=BookingResponse)
def update_partner_booking_status(
    partner_id: int,
    booking_id: int,
    data: UpdateBookingStatusRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_partner_staff(current_user, partner_id)
    common.ensure_database_ready()

    try:
        return booking_service.update_booking_status(
            db,
            booking_id,
            partner_id,
            data.status,
            notes=data.notes,
        )
    except BookingEngineError as exc:
        raise exc.to_http_exception() from exc
    except SQLAlchemyError as exc:
        raise common.database_unavailable() from exc


@partner_router.get('/{partner_id}/schedule/today', response_model=list[BookingResponse])
def get_today_schedule(
    partner_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_partner_staff(current_user, partner_id)
    common.ensure_database_ready()

    try:
        return booking_service.get_day_schedule(db, partner_id, date.today())
    except SQLAlchemyError as exc:
        raise common.database_unavailable() from exc

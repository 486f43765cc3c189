import os
from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite://')

from partner_booking.database import Base  # noqa: E402
from partner_booking.models.availability import AvailabilityTemplate  # noqa: E402
from partner_booking.models.booking import Booking  # noqa: E402
from partner_booking.models.day_off import DayOff  # noqa: E402
from partner_booking.models.partner import Partner  # noqa: E402
from partner_booking.models.service import Service  # noqa: E402
from partner_booking.models.user import User  # noqa: E402

NOW = datetime(2026, 1, 1, 10, 0)


@pytest.fixture
def db_engine():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def seed_clinic(db) -> SimpleNamespace:
    """Partner open Mondays 09:00-12:00 in 30 minute slots of capacity 1."""
    partner = Partner(name='Harbour Family Clinic', is_active=True, specializations='general,checkup')
    other_partner = Partner(name='Riverside Physio', is_active=True)
    db.add_all([partner, other_partner])
    db.flush()

    consultation = Service(
        partner_id=partner.id,
        name='General consultation',
        category='consultation',
        duration_minutes=30,
        price=Decimal('45.00'),
    )
    checkup = Service(
        partner_id=partner.id,
        name='Annual health checkup',
        category='checkup',
        duration_minutes=30,
        price=Decimal('120.00'),
    )
    other_service = Service(
        partner_id=other_partner.id,
        name='Sports massage',
        category='therapy',
        duration_minutes=60,
        price=Decimal('80.00'),
    )
    template = AvailabilityTemplate(
        partner_id=partner.id,
        day_of_week=1,
        start_time='09:00',
        end_time='12:00',
        slot_duration_minutes=30,
        max_bookings_per_slot=1,
    )
    member = User(email='member@example.com', role='member', is_confirmed=True)
    other_member = User(email='other@example.com', role='member', is_confirmed=True)
    staff = User(email='staff@harbour.example.com', role='partner', partner_id=partner.id, is_confirmed=True)
    db.add_all([consultation, checkup, other_service, template, member, other_member, staff])
    db.commit()

    return SimpleNamespace(
        partner=partner,
        other_partner=other_partner,
        consultation=consultation,
        checkup=checkup,
        other_service=other_service,
        template=template,
        member=member,
        other_member=other_member,
        staff=staff,
    )


@pytest.fixture
def clinic(db):
    return seed_clinic(db)


@pytest.fixture
def add_booking(db):
    def _add_booking(partner_id, service_id, user_id, booking_date, start_time, end_time, **overrides):
        booking = Booking(
            partner_id=partner_id,
            service_id=service_id,
            user_id=user_id,
            booking_date=booking_date,
            start_time=start_time,
            end_time=end_time,
            status=overrides.pop('status', 'CONFIRMED'),
            total_amount=overrides.pop('total_amount', Decimal('45.00')),
            created_at=overrides.pop('created_at', NOW),
            **overrides,
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    return _add_booking


@pytest.fixture
def add_day_off(db):
    def _add_day_off(partner_id, **fields):
        day_off = DayOff(partner_id=partner_id, **fields)
        db.add(day_off)
        db.commit()
        db.refresh(day_off)
        return day_off

    return _add_day_off


@pytest.fixture
def seed():
    return seed_clinic

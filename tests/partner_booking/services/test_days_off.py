from datetime import date

import pytest

from partner_booking.core.exceptions import ConflictError, NotFoundError, ValidationError
from partner_booking.models.day_off import DayOff
from partner_booking.services.days_off import create_day_off, delete_day_off, list_days_off
from partner_booking.services.schedule import is_blocked

MONDAY = date(2026, 1, 5)


def test_create_one_off_day_off(db, clinic) -> None:
    day_off = create_day_off(db, clinic.partner.id, day_off_date=MONDAY, reason='Staff training')

    assert day_off.id is not None
    assert day_off.recurring_type is None
    assert day_off.month is None
    assert day_off.reason == 'Staff training'
    assert is_blocked(db, clinic.partner.id, MONDAY)
    assert not is_blocked(db, clinic.partner.id, date(2026, 1, 12))


def test_create_weekly_day_off_blocks_every_matching_weekday(db, clinic) -> None:
    create_day_off(db, clinic.partner.id, recurring_type='weekly', day_of_week=1)

    assert is_blocked(db, clinic.partner.id, MONDAY)
    assert is_blocked(db, clinic.partner.id, date(2026, 3, 2))
    assert not is_blocked(db, clinic.partner.id, date(2026, 1, 6))


def test_create_annual_day_off_stores_month_and_day(db, clinic) -> None:
    day_off = create_day_off(db, clinic.partner.id, day_off_date=date(2025, 12, 25), recurring_type='ANNUAL')

    assert (day_off.month, day_off.day) == (12, 25)
    assert is_blocked(db, clinic.partner.id, date(2026, 12, 25))
    assert not is_blocked(db, clinic.partner.id, date(2026, 12, 24))


def test_create_day_off_rejects_unknown_recurring_type(db, clinic) -> None:
    with pytest.raises(ValidationError) as exception_info:
        create_day_off(db, clinic.partner.id, day_off_date=MONDAY, recurring_type='monthly')

    assert exception_info.value.code == 'INVALID_RECURRING_TYPE'


@pytest.mark.parametrize('day_of_week', [None, -1, 7])
def test_create_weekly_day_off_requires_valid_weekday(db, clinic, day_of_week) -> None:
    with pytest.raises(ValidationError) as exception_info:
        create_day_off(db, clinic.partner.id, recurring_type='WEEKLY', day_of_week=day_of_week)

    assert exception_info.value.code == 'INVALID_DAY_OF_WEEK'


def test_create_one_off_day_off_requires_date(db, clinic) -> None:
    with pytest.raises(ValidationError) as exception_info:
        create_day_off(db, clinic.partner.id)

    assert exception_info.value.code == 'MISSING_DATE'


def test_duplicate_weekly_day_off_conflicts(db, clinic) -> None:
    create_day_off(db, clinic.partner.id, recurring_type='WEEKLY', day_of_week=0)

    with pytest.raises(ConflictError) as exception_info:
        create_day_off(db, clinic.partner.id, recurring_type='WEEKLY', day_of_week=0)

    assert exception_info.value.code == 'DUPLICATE_DAY_OFF'


def test_duplicate_date_conflicts_per_partner_only(db, clinic) -> None:
    create_day_off(db, clinic.partner.id, day_off_date=MONDAY)

    with pytest.raises(ConflictError):
        create_day_off(db, clinic.partner.id, day_off_date=MONDAY)

    assert create_day_off(db, clinic.other_partner.id, day_off_date=MONDAY).partner_id == clinic.other_partner.id


def test_list_days_off_is_scoped_to_partner(db, clinic) -> None:
    create_day_off(db, clinic.partner.id, day_off_date=date(2026, 2, 16))
    create_day_off(db, clinic.partner.id, day_off_date=MONDAY)
    create_day_off(db, clinic.other_partner.id, day_off_date=MONDAY)

    days_off = list_days_off(db, clinic.partner.id)

    assert [day_off.date for day_off in days_off] == [MONDAY, date(2026, 2, 16)]


def test_delete_day_off_reopens_date(db, clinic) -> None:
    day_off = create_day_off(db, clinic.partner.id, day_off_date=MONDAY)

    delete_day_off(db, clinic.partner.id, day_off.id)

    assert db.query(DayOff).count() == 0
    assert not is_blocked(db, clinic.partner.id, MONDAY)


def test_delete_day_off_of_other_partner_is_not_found(db, clinic) -> None:
    day_off = create_day_off(db, clinic.partner.id, day_off_date=MONDAY)

    with pytest.raises(NotFoundError):
        delete_day_off(db, clinic.other_partner.id, day_off.id)

    assert db.query(DayOff).count() == 1

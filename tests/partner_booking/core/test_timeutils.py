import pytest

from partner_booking.core.exceptions import FormatError
from partner_booking.core.timeutils import normalize_time, to_minutes, to_time_string


@pytest.mark.parametrize(
    ('value', 'expected'),
    [
        ('00:00', 0),
        ('09:30', 570),
        ('9:05', 545),
        ('23:59', 1439),
        ('14:15:00', 855),
        ('14:15:00.000', 855),
    ],
)
def test_to_minutes_parses_time_of_day(value: str, expected: int) -> None:
    assert to_minutes(value) == expected


@pytest.mark.parametrize('value', ['', '930', '24:00', '12:60', 'ab:cd', '12:5', None])
def test_to_minutes_rejects_malformed_values(value) -> None:
    with pytest.raises(FormatError):
        to_minutes(value)


def test_to_time_string_zero_pads() -> None:
    assert to_time_string(545) == '09:05'
    assert to_time_string(0) == '00:00'
    assert to_time_string(1439) == '23:59'


@pytest.mark.parametrize(
    ('minutes', 'expected'),
    [
        (1440, '00:00'),
        (1470, '00:30'),
        (-30, '23:30'),
        (2 * 1440 + 61, '01:01'),
    ],
)
def test_to_time_string_wraps_modulo_one_day(minutes: int, expected: str) -> None:
    assert to_time_string(minutes) == expected


def test_normalize_time_pads_and_drops_seconds() -> None:
    assert normalize_time('9:00:00') == '09:00'

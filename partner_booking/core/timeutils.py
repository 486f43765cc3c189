"""Conversions between ``HH:MM`` strings and minutes since midnight."""

import re

from partner_booking.core.exceptions import FormatError

MINUTES_PER_DAY = 24 * 60

_TIME_PATTERN = re.compile(r'^(?P<hour>\d{1,2}):(?P<minute>\d{2})(?::\d{2}(?:\.\d+)?)?$')


def to_minutes(value: str) -> int:
    """Parse ``HH:MM`` (seconds are accepted and ignored) into minutes since midnight."""
    if not isinstance(value, str):
        raise FormatError(f'Invalid time value: {value!r}', code='INVALID_TIME')

    match = _TIME_PATTERN.match(value.strip())
    if not match:
        raise FormatError(f'Invalid time value: {value!r}', code='INVALID_TIME')

    hour = int(match.group('hour'))
    minute = int(match.group('minute'))
    if hour > 23 or minute > 59:
        raise FormatError(f'Invalid time value: {value!r}', code='INVALID_TIME')

    return hour * 60 + minute


def to_time_string(minutes: int) -> str:
    """Format minutes as ``HH:MM``.

    Values outside ``[0, 1440)`` wrap modulo one day, so ``1440`` is
    ``00:00`` and ``-30`` is ``23:30``.
    """
    wrapped = minutes % MINUTES_PER_DAY
    return f'{wrapped // 60:02d}:{wrapped % 60:02d}'


def normalize_time(value: str) -> str:
    return to_time_string(to_minutes(value))

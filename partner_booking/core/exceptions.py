"""Booking engine errors.

Every error here is recoverable by the caller: routes turn them into
user-facing HTTP responses and the client may resubmit.
"""

from typing import Any

from fastapi import HTTPException, status


class BookingEngineError(Exception):
    """Base class for all booking engine errors."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                'message': self.message,
                'code': self.code,
                'details': self.details,
            },
        )


class ValidationError(BookingEngineError):
    """Missing or malformed input, or a request the schedule cannot accept."""

    status_code = status.HTTP_400_BAD_REQUEST


class PastDateError(ValidationError):
    """Raised when a booking date is not strictly in the future."""

    def __init__(self, message: str = 'Booking date must be in the future.', **kwargs: Any) -> None:
        kwargs.setdefault('code', 'PAST_DATE')
        super().__init__(message, **kwargs)


class NotFoundError(BookingEngineError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(BookingEngineError):
    """Raised when a slot can no longer take the requested booking."""

    status_code = status.HTTP_409_CONFLICT


class FormatError(BookingEngineError):
    """Raised when a time-of-day string is not ``HH:MM``."""

    status_code = status.HTTP_400_BAD_REQUEST

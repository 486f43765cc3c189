"""Post-commit booking notifications.

Delivery (email and the like) lives outside this service. Dispatchers are
called after the booking is committed; a failing dispatcher is logged and
never undoes the booking.
"""

import logging
from typing import Protocol

from partner_booking.models.booking import Booking

logger = logging.getLogger(__name__)


class NotificationDispatcher(Protocol):
    def booking_created(self, booking: Booking) -> None:
        ...


class LoggingNotificationDispatcher:
    def booking_created(self, booking: Booking) -> None:
        logger.info(
            'Booking %s created for partner %s on %s at %s',
            booking.booking_reference,
            booking.partner_id,
            booking.booking_date,
            booking.start_time,
        )


_dispatcher: NotificationDispatcher = LoggingNotificationDispatcher()


def get_notification_dispatcher() -> NotificationDispatcher:
    return _dispatcher


def notify_booking_created(dispatcher: NotificationDispatcher, booking: Booking) -> None:
    try:
        dispatcher.booking_created(booking)
    except Exception:
        logger.exception('Booking notification failed for booking %s', booking.id)

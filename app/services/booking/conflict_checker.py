# ===== app/services/booking/conflict_checker.py =====
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional
import logging

from app.core.exceptions import ConflictError, ValidationError
from app.models.booking import BookingStatus, BLOCKING_STATUSES
from app.services.availability.intervals import overlaps

logger = logging.getLogger(__name__)


def _is_aware(value) -> bool:
    return isinstance(value, datetime) and value.tzinfo is not None and value.utcoffset() is not None


def buffered_interval(calendar, booking):
    """The span an existing booking holds on the calendar, buffers included"""
    return (
        booking.start_time - timedelta(minutes=calendar.buffer_before_minutes or 0),
        booking.end_time + timedelta(minutes=calendar.buffer_after_minutes or 0),
    )


class ConflictChecker:
    """Admits or rejects a proposed [start, end) interval for a calendar"""

    @staticmethod
    def ensure_slot_is_available(
            calendar,
            start: datetime,
            end: datetime,
            existing_bookings: Iterable,
            now: Optional[datetime] = None
    ) -> None:
        """
        Raise unless the interval can be booked right now.

        Only pending and scheduled bookings block. Each existing booking is
        widened by the calendar's buffers before the overlap test.

        Raises:
            ValidationError: invalid_interval, slot_in_past,
                inside_minimum_notice or outside_booking_window
            ConflictError: slot_unavailable
        """
        if not _is_aware(start) or not _is_aware(end):
            raise ValidationError(
                "Slot start and end must be timezone-aware timestamps",
                code="invalid_interval"
            )
        if end <= start:
            raise ValidationError("Invalid slot duration", code="invalid_interval")

        now = now or datetime.now(timezone.utc)

        if start < now:
            raise ValidationError("Selected slot is in the past", code="slot_in_past")

        notice_cutoff = now + timedelta(minutes=calendar.min_schedule_notice_minutes or 0)
        if start < notice_cutoff:
            raise ValidationError(
                f"Bookings require at least {calendar.min_schedule_notice_minutes} minutes notice",
                code="inside_minimum_notice"
            )

        window_end = now + timedelta(days=calendar.booking_window_days)
        if start > window_end:
            raise ValidationError(
                f"Bookings can only be made up to {calendar.booking_window_days} days ahead",
                code="outside_booking_window"
            )

        proposed = (start, end)
        for booking in existing_bookings:
            if BookingStatus(booking.status) not in BLOCKING_STATUSES:
                continue
            if overlaps(proposed, buffered_interval(calendar, booking)):
                logger.info(
                    f"Rejected {start.isoformat()} on calendar {calendar.id}: "
                    f"overlaps booking {booking.id}"
                )
                raise ConflictError("Selected slot is no longer available")

# ===== app/services/booking/booking_service.py =====
from typing import List, Optional, Tuple
from datetime import datetime, timezone
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from uuid import UUID
import logging

from app.core.exceptions import ConflictError, NotFoundError, SchedulingError, StorageError
from app.models.appointment_calendar import AppointmentCalendar
from app.models.booking import Booking, BookingStatus, NO_OVERLAP_CONSTRAINT
from app.schemas.appointments import BookingCreateRequest, DayAvailability
from app.services.availability.availability_service import AvailabilityService
from app.services.booking.booking_status import TRANSITION_EVENTS, ensure_transition, initial_status
from app.services.booking.conflict_checker import ConflictChecker
from app.services.calendar.calendar_service import CalendarService
from app.services.notification.notification_service import NotificationDispatcher

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE for exclusion_violation
EXCLUSION_VIOLATION = "23P01"


def _is_overlap_violation(error: IntegrityError) -> bool:
    orig = getattr(error, "orig", None)
    if getattr(orig, "pgcode", None) == EXCLUSION_VIOLATION:
        return True
    return NO_OVERLAP_CONSTRAINT in str(orig)


class BookingService:
    """
    The only write path into booking state.

    Every operation is one transaction: the calendar (or booking) row is
    locked, the checks run against fresh data, and the write commits with
    them. Notifications go out after the commit and can never undo it.
    """

    @staticmethod
    def create_booking(
            db: Session,
            business_id: UUID,
            calendar_id: UUID,
            data: BookingCreateRequest,
            created_by_user_id: Optional[UUID] = None,
            notifier: Optional[NotificationDispatcher] = None,
            now: Optional[datetime] = None
    ) -> Booking:
        """Staff booking on a calendar of the caller's business"""
        try:
            calendar = CalendarService.get_calendar(db, business_id, calendar_id, for_update=True)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to load calendar {calendar_id}: {e}")
            raise StorageError("Failed to load calendar")

        return BookingService._create_locked(
            db, calendar, data,
            created_by_user_id=created_by_user_id,
            require_offered_slot=False,
            notifier=notifier,
            now=now
        )

    @staticmethod
    def create_public_booking(
            db: Session,
            share_id: str,
            data: BookingCreateRequest,
            notifier: Optional[NotificationDispatcher] = None,
            now: Optional[datetime] = None
    ) -> Tuple[Booking, List[DayAvailability]]:
        """
        Guest booking through a share link.

        The interval must be one of the slots currently offered. Returns the
        booking and the refreshed availability window; the window is empty
        when it cannot be reloaded, since the booking itself is committed.
        """
        now = now or datetime.now(timezone.utc)
        try:
            calendar = CalendarService.get_calendar_by_share_id(db, share_id, for_update=True)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to load calendar for share id {share_id}: {e}")
            raise StorageError("Failed to load calendar")

        booking = BookingService._create_locked(
            db, calendar, data,
            created_by_user_id=None,
            require_offered_slot=True,
            notifier=notifier,
            now=now
        )

        try:
            availability = AvailabilityService.list_availability(db, calendar, now=now)
        except SQLAlchemyError as e:
            logger.error(f"Booking {booking.id} saved; failed to refresh availability of calendar {calendar.id}: {e}")
            availability = []

        return booking, availability

    @staticmethod
    def _create_locked(
            db: Session,
            calendar: AppointmentCalendar,
            data: BookingCreateRequest,
            created_by_user_id: Optional[UUID],
            require_offered_slot: bool,
            notifier: Optional[NotificationDispatcher],
            now: Optional[datetime]
    ) -> Booking:
        now = now or datetime.now(timezone.utc)
        start, end = data.start_time, data.end_time

        try:
            existing = CalendarService.get_blocking_bookings(db, calendar.id)
            ConflictChecker.ensure_slot_is_available(calendar, start, end, existing, now=now)

            if require_offered_slot:
                rules = CalendarService.get_rules(db, calendar.id)
                offered = AvailabilityService.compute_availability(
                    calendar, rules, existing, range_start=start, range_end=end, now=now
                )
                if not AvailabilityService.is_offered_slot(offered, start, end):
                    raise ConflictError("Selected slot is no longer available")

            booking = Booking(
                calendar_id=calendar.id,
                created_by_user_id=created_by_user_id,
                guest_name=data.guest_name,
                guest_email=str(data.guest_email),
                guest_timezone=data.guest_timezone or calendar.timezone,
                guest_notes=data.guest_notes,
                start_time=start,
                end_time=end,
                status=initial_status(calendar),
                meeting_url=data.meeting_url,
                meeting_location=data.meeting_location,
            )
            db.add(booking)
            db.commit()

        except SchedulingError:
            db.rollback()
            raise
        except IntegrityError as e:
            db.rollback()
            if _is_overlap_violation(e):
                logger.warning(f"Concurrent booking won the slot {start.isoformat()} on calendar {calendar.id}")
                raise ConflictError("Selected slot is no longer available")
            logger.error(f"Integrity error creating booking on calendar {calendar.id}: {e}")
            raise StorageError("Failed to create booking")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Database error creating booking on calendar {calendar.id}: {e}")
            raise StorageError("Failed to create booking")

        db.refresh(booking)
        logger.info(
            f"Created booking {booking.id} on calendar {calendar.id} "
            f"{start.isoformat()} ({booking.status.value})"
        )

        (notifier or NotificationDispatcher()).booking_event("booking.created", calendar, booking)
        return booking

    @staticmethod
    def transition_booking(
            db: Session,
            business_id: UUID,
            calendar_id: UUID,
            booking_id: UUID,
            target,
            reason: Optional[str] = None,
            notifier: Optional[NotificationDispatcher] = None,
            now: Optional[datetime] = None
    ) -> Booking:
        """
        Move a booking to another status.

        Raises:
            NotFoundError: calendar or booking absent, or outside the business
            InvalidTransitionError: the status change is not allowed
        """
        now = now or datetime.now(timezone.utc)

        try:
            calendar = CalendarService.get_calendar(db, business_id, calendar_id)
            booking = db.query(Booking).filter(
                Booking.id == booking_id,
                Booking.calendar_id == calendar.id
            ).with_for_update().first()

            if not booking:
                raise NotFoundError("Booking not found")

            previous_status = booking.status
            target_status = ensure_transition(previous_status, target)

            booking.status = target_status
            if target_status == BookingStatus.CANCELLED:
                booking.cancelled_at = now
                booking.cancellation_reason = reason

            db.commit()

        except SchedulingError:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Database error updating booking {booking_id}: {e}")
            raise StorageError("Failed to update booking")

        db.refresh(booking)
        logger.info(f"Booking {booking.id}: {previous_status.value} -> {target_status.value}")

        (notifier or NotificationDispatcher()).booking_event(
            TRANSITION_EVENTS[target_status],
            calendar,
            booking,
            previous_status=previous_status,
            reason=reason
        )
        return booking

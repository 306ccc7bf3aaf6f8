# ===== app/services/calendar/calendar_service.py =====
from typing import List, Optional, Sequence
from datetime import datetime, timezone
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from uuid import UUID
import secrets
import logging

from app.config.settings import get_settings
from app.core.exceptions import NotFoundError, StorageError, ValidationError
from app.models.appointment_calendar import AppointmentCalendar
from app.models.availability import AvailabilityRule
from app.models.booking import Booking, BookingStatus, BLOCKING_STATUSES
from app.schemas.appointments import CalendarCreateRequest, CalendarUpdateRequest
from app.schemas.location import VirtualLocation, location_to_columns
from app.services.availability.rule_validator import AvailabilityRuleValidator

logger = logging.getLogger(__name__)
settings = get_settings()

SHARE_ID_ALPHABET = "23456789abcdefghjkmnpqrstuvwxyz"
SHARE_ID_LENGTH = 12
SHARE_ID_ATTEMPTS = 6


class CalendarService:
    """Tenant-scoped calendar, rule and booking persistence"""

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @staticmethod
    def list_calendars(db: Session, business_id: UUID) -> List[AppointmentCalendar]:
        return db.query(AppointmentCalendar).filter(
            AppointmentCalendar.business_id == business_id
        ).order_by(AppointmentCalendar.created_at.asc(), AppointmentCalendar.name.asc()).all()

    @staticmethod
    def get_calendar(
            db: Session,
            business_id: UUID,
            calendar_id: UUID,
            for_update: bool = False
    ) -> AppointmentCalendar:
        """
        Get a calendar owned by the business.

        A calendar of another business is reported exactly like a missing one.
        """
        query = db.query(AppointmentCalendar).filter(
            AppointmentCalendar.id == calendar_id,
            AppointmentCalendar.business_id == business_id
        )
        if for_update:
            query = query.with_for_update()

        calendar = query.first()
        if not calendar:
            raise NotFoundError("Calendar not found")
        return calendar

    @staticmethod
    def get_calendar_by_share_id(db: Session, share_id: str, for_update: bool = False) -> AppointmentCalendar:
        """Public lookup; inactive calendars are not reachable"""
        query = db.query(AppointmentCalendar).filter(
            AppointmentCalendar.share_id == share_id,
            AppointmentCalendar.status == "active"
        )
        if for_update:
            query = query.with_for_update()

        calendar = query.first()
        if not calendar:
            raise NotFoundError("Calendar not found")
        return calendar

    @staticmethod
    def get_rules(db: Session, calendar_id: UUID) -> List[AvailabilityRule]:
        rules = db.query(AvailabilityRule).filter(
            AvailabilityRule.calendar_id == calendar_id
        ).all()
        return AvailabilityRuleValidator.normalize(rules)

    @staticmethod
    def get_blocking_bookings(
            db: Session,
            calendar_id: UUID,
            start: Optional[datetime] = None,
            end: Optional[datetime] = None
    ) -> List[Booking]:
        """Pending and scheduled bookings, optionally only those touching [start, end)"""
        query = db.query(Booking).filter(
            Booking.calendar_id == calendar_id,
            Booking.status.in_(BLOCKING_STATUSES)
        )
        if start is not None:
            query = query.filter(Booking.end_time > start)
        if end is not None:
            query = query.filter(Booking.start_time < end)

        return query.order_by(Booking.start_time.asc()).all()

    @staticmethod
    def list_bookings(
            db: Session,
            business_id: UUID,
            calendar_id: Optional[UUID] = None,
            status: Optional[BookingStatus] = None,
            upcoming_only: bool = False,
            include_cancelled: bool = True,
            skip: int = 0,
            limit: Optional[int] = None,
            now: Optional[datetime] = None
    ) -> List[Booking]:
        """Bookings of one calendar, or of every calendar of the business"""
        query = db.query(Booking).join(
            AppointmentCalendar, Booking.calendar_id == AppointmentCalendar.id
        ).filter(AppointmentCalendar.business_id == business_id)

        if calendar_id is not None:
            query = query.filter(Booking.calendar_id == calendar_id)

        if status is not None:
            query = query.filter(Booking.status == status)
        elif not include_cancelled:
            query = query.filter(Booking.status != BookingStatus.CANCELLED)

        if upcoming_only:
            now = now or datetime.now(timezone.utc)
            query = query.filter(Booking.end_time >= now)

        query = query.order_by(Booking.start_time.asc()).offset(skip)
        if limit is not None:
            query = query.limit(limit)

        return query.all()

    @staticmethod
    def count_bookings(
            db: Session,
            business_id: UUID,
            calendar_id: Optional[UUID] = None,
            status: Optional[BookingStatus] = None
    ) -> int:
        query = db.query(Booking).join(
            AppointmentCalendar, Booking.calendar_id == AppointmentCalendar.id
        ).filter(AppointmentCalendar.business_id == business_id)
        if calendar_id is not None:
            query = query.filter(Booking.calendar_id == calendar_id)
        if status is not None:
            query = query.filter(Booking.status == status)
        return query.count()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @staticmethod
    def generate_share_id() -> str:
        return "".join(secrets.choice(SHARE_ID_ALPHABET) for _ in range(SHARE_ID_LENGTH))

    @staticmethod
    def _unique_share_id(db: Session) -> str:
        for _ in range(SHARE_ID_ATTEMPTS):
            candidate = CalendarService.generate_share_id()
            exists = db.query(AppointmentCalendar.id).filter(
                AppointmentCalendar.share_id == candidate
            ).first()
            if not exists:
                return candidate

        raise StorageError("Failed to generate unique share id")

    @staticmethod
    def _commit(db: Session, action: str) -> None:
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to {action}: {e}")
            raise StorageError(f"Failed to {action}")

    @staticmethod
    def create_calendar(
            db: Session,
            business_id: UUID,
            owner_user_id: UUID,
            data: CalendarCreateRequest
    ) -> AppointmentCalendar:
        """Create a calendar, applying defaults and optional initial rules"""
        rules = data.availability_rules or []
        AvailabilityRuleValidator.validate(rules)
        CalendarService._check_booking_window(data.booking_window_days)

        calendar = AppointmentCalendar(
            business_id=business_id,
            owner_user_id=owner_user_id,
            name=data.name,
            appointment_type=data.appointment_type or data.name,
            description=data.description,
            duration_minutes=data.duration_minutes or settings.DEFAULT_DURATION_MINUTES,
            buffer_before_minutes=data.buffer_before_minutes or 0,
            buffer_after_minutes=data.buffer_after_minutes or 0,
            timezone=data.timezone or settings.DEFAULT_TIMEZONE,
            booking_window_days=data.booking_window_days or settings.DEFAULT_BOOKING_WINDOW_DAYS,
            min_schedule_notice_minutes=(
                data.min_schedule_notice_minutes
                if data.min_schedule_notice_minutes is not None
                else settings.DEFAULT_MIN_NOTICE_MINUTES
            ),
            requires_confirmation=bool(data.requires_confirmation),
            google_calendar_sync=bool(data.google_calendar_sync),
            status="active",
        )
        calendar.location = data.location or VirtualLocation()
        calendar.share_id = CalendarService._unique_share_id(db)

        db.add(calendar)
        for rule in AvailabilityRuleValidator.normalize(rules):
            calendar.availability_rules.append(CalendarService._rule_from_input(rule))

        CalendarService._commit(db, "create calendar")
        db.refresh(calendar)

        logger.info(f"Created calendar {calendar.id} ({calendar.name}) for business {business_id}")
        return calendar

    @staticmethod
    def update_calendar(
            db: Session,
            business_id: UUID,
            calendar_id: UUID,
            data: CalendarUpdateRequest
    ) -> AppointmentCalendar:
        """Apply a partial update; only fields present in the request change"""
        calendar = CalendarService.get_calendar(db, business_id, calendar_id)

        updates = {
            key: value
            for key, value in data.model_dump(exclude_unset=True, exclude={"location"}).items()
            if value is not None
        }
        for key in ("name", "appointment_type"):
            if key in updates and not updates[key].strip():
                raise ValidationError(f"{key} cannot be empty")
        if "booking_window_days" in updates:
            CalendarService._check_booking_window(updates["booking_window_days"])

        # Nothing on the tracked row changes until every field has passed
        for key, value in updates.items():
            setattr(calendar, key, value.strip() if isinstance(value, str) else value)

        if "description" in data.model_fields_set and data.description is None:
            calendar.description = None

        if data.location is not None:
            for column, value in location_to_columns(data.location).items():
                setattr(calendar, column, value)

        CalendarService._commit(db, "update calendar")
        db.refresh(calendar)

        logger.info(f"Updated calendar {calendar.id}: {sorted(data.model_fields_set)}")
        return calendar

    @staticmethod
    def delete_calendar(db: Session, business_id: UUID, calendar_id: UUID) -> None:
        """Delete a calendar together with its rules and bookings"""
        calendar = CalendarService.get_calendar(db, business_id, calendar_id)
        db.delete(calendar)
        CalendarService._commit(db, "delete calendar")
        logger.info(f"Deleted calendar {calendar_id} of business {business_id}")

    @staticmethod
    def replace_availability_rules(
            db: Session,
            business_id: UUID,
            calendar_id: UUID,
            rules: Sequence
    ) -> List[AvailabilityRule]:
        """
        Validate, then swap the calendar's whole rule set in one transaction.

        Raises:
            ValidationError: the new set is rejected and nothing changes
            NotFoundError: calendar absent or outside the business
        """
        AvailabilityRuleValidator.validate(rules)

        calendar = CalendarService.get_calendar(db, business_id, calendar_id, for_update=True)

        try:
            db.query(AvailabilityRule).filter(
                AvailabilityRule.calendar_id == calendar.id
            ).delete(synchronize_session=False)

            for rule in AvailabilityRuleValidator.normalize(rules):
                new_rule = CalendarService._rule_from_input(rule)
                new_rule.calendar_id = calendar.id
                db.add(new_rule)

            calendar.updated_at = datetime.now(timezone.utc)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to replace rules of calendar {calendar_id}: {e}")
            raise StorageError("Failed to save availability rules")

        db.expire(calendar, ["availability_rules"])
        logger.info(f"Replaced availability rules of calendar {calendar_id} ({len(rules)} rules)")
        return CalendarService.get_rules(db, calendar.id)

    @staticmethod
    def _rule_from_input(rule) -> AvailabilityRule:
        is_date = rule.rule_type == "date"
        return AvailabilityRule(
            rule_type=rule.rule_type,
            day_of_week=None if is_date else rule.day_of_week,
            specific_date=rule.specific_date if is_date else None,
            start_minutes=rule.start_minutes,
            end_minutes=rule.end_minutes,
            is_unavailable=bool(rule.is_unavailable),
        )

    @staticmethod
    def _check_booking_window(days: Optional[int]) -> None:
        if days is not None and days > settings.MAX_BOOKING_WINDOW_DAYS:
            raise ValidationError(
                f"Booking window cannot exceed {settings.MAX_BOOKING_WINDOW_DAYS} days"
            )

# ===== app/services/availability/availability_service.py =====
from typing import List, Dict, Optional, Sequence, Tuple
from datetime import date, datetime, time, timedelta, timezone
from collections import defaultdict
from sqlalchemy.orm import Session
import pytz
import logging

from app.config.settings import get_settings
from app.models.appointment_calendar import AppointmentCalendar
from app.models.booking import BookingStatus, BLOCKING_STATUSES
from app.schemas.appointments import DayAvailability, Slot, CalendarSummaryResponse, BookingResponse
from app.services.availability.intervals import merge_intervals, subtract_intervals
from app.services.booking.conflict_checker import buffered_interval
from app.services.calendar.calendar_service import CalendarService

logger = logging.getLogger(__name__)
settings = get_settings()


def local_minutes_to_utc(day: date, minutes: int, tz) -> datetime:
    """
    Instant at ``minutes`` past local midnight of ``day`` in ``tz``.

    Times skipped by a DST jump land after the gap; repeated times resolve to
    standard time.
    """
    naive = datetime.combine(day, time.min) + timedelta(minutes=minutes)
    localized = tz.normalize(tz.localize(naive, is_dst=False))
    return localized.astimezone(timezone.utc)


def weekday_index(day: date) -> int:
    """0=Sunday ... 6=Saturday"""
    return (day.weekday() + 1) % 7


class AvailabilityService:
    """Turns availability rules and existing bookings into bookable slots"""

    @staticmethod
    def resolve_window(
            calendar,
            range_start: Optional[datetime] = None,
            range_end: Optional[datetime] = None,
            now: Optional[datetime] = None
    ) -> Tuple[datetime, datetime]:
        """
        Clamp the requested range into [now, now + booking window].

        Naive bounds are read as wall-clock times in the calendar's zone.
        """
        now = now or datetime.now(timezone.utc)
        tz = pytz.timezone(calendar.timezone)
        limit = now + timedelta(days=calendar.booking_window_days)

        def _aware(value):
            if value.tzinfo is None:
                return tz.localize(value, is_dst=False).astimezone(timezone.utc)
            return value.astimezone(timezone.utc)

        start = _aware(range_start) if range_start else now
        end = _aware(range_end) if range_end else limit

        return max(start, now), min(end, limit)

    @staticmethod
    def build_day_intervals(day_rules: Sequence) -> List[Tuple[int, int]]:
        """Available minutes of one day: union of open rules minus carve-outs"""
        available = [(r.start_minutes, r.end_minutes) for r in day_rules if not r.is_unavailable]
        if not available:
            return []

        blockers = [(r.start_minutes, r.end_minutes) for r in day_rules if r.is_unavailable]
        if not blockers:
            return merge_intervals(available)

        return subtract_intervals(available, blockers)

    @staticmethod
    def compute_availability(
            calendar,
            rules: Sequence,
            bookings: Sequence,
            range_start: Optional[datetime] = None,
            range_end: Optional[datetime] = None,
            now: Optional[datetime] = None
    ) -> List[DayAvailability]:
        """
        Generate the bookable slots of a calendar, grouped by local date.

        Date-specific rules replace the weekly rules of their date. Every
        pending/scheduled booking removes its buffered span. Slots are cut
        back to back from the start of each free interval; a remainder
        shorter than the duration is dropped, and so is any slot starting
        before now + minimum notice. Dates without slots are left out.

        Returns:
            DayAvailability list in chronological order
        """
        now = now or datetime.now(timezone.utc)
        window_start, window_end = AvailabilityService.resolve_window(
            calendar, range_start, range_end, now
        )
        if window_end <= window_start:
            return []

        tz = pytz.timezone(calendar.timezone)
        duration = timedelta(minutes=calendar.duration_minutes)
        earliest_start = now + timedelta(minutes=calendar.min_schedule_notice_minutes or 0)

        date_rules: Dict[date, list] = defaultdict(list)
        weekly_rules: Dict[int, list] = defaultdict(list)
        for rule in rules:
            if rule.rule_type == "date":
                date_rules[rule.specific_date].append(rule)
            else:
                weekly_rules[rule.day_of_week].append(rule)

        busy = merge_intervals([
            buffered_interval(calendar, booking)
            for booking in bookings
            if BookingStatus(booking.status) in BLOCKING_STATUSES
        ])

        days: List[DayAvailability] = []
        current = window_start.astimezone(tz).date()
        last_day = window_end.astimezone(tz).date()

        while current <= last_day:
            if current in date_rules:
                day_rules = date_rules[current]
            else:
                day_rules = weekly_rules.get(weekday_index(current), [])

            local_intervals = AvailabilityService.build_day_intervals(day_rules)
            utc_intervals = [
                (local_minutes_to_utc(current, start, tz), local_minutes_to_utc(current, end, tz))
                for start, end in local_intervals
            ]
            free = subtract_intervals(
                [(start, end) for start, end in utc_intervals if start < end],
                busy
            )

            slots: List[Slot] = []
            for free_start, free_end in free:
                if free_end - free_start < duration:
                    continue
                cursor = free_start
                while cursor + duration <= free_end:
                    slot_end = cursor + duration
                    if cursor >= earliest_start and cursor >= window_start and slot_end <= window_end:
                        slots.append(Slot(start=cursor, end=slot_end))
                    cursor = slot_end

            if slots:
                days.append(DayAvailability(date=current, slots=slots))

            current += timedelta(days=1)

        return days

    @staticmethod
    def is_offered_slot(days: Sequence[DayAvailability], start: datetime, end: datetime) -> bool:
        """True when [start, end) is exactly one of the computed slots"""
        for day in days:
            for slot in day.slots:
                if slot.start == start and slot.end == end:
                    return True
        return False

    @staticmethod
    def list_availability(
            db: Session,
            calendar: AppointmentCalendar,
            range_start: Optional[datetime] = None,
            range_end: Optional[datetime] = None,
            now: Optional[datetime] = None
    ) -> List[DayAvailability]:
        """
        Load rules and blocking bookings, then compute the slot window.

        Bookings are read for the whole local days the window touches, since
        a booking earlier on a day moves where that day's slot grid starts.
        """
        now = now or datetime.now(timezone.utc)
        window_start, window_end = AvailabilityService.resolve_window(
            calendar, range_start, range_end, now
        )
        if window_end <= window_start:
            return []

        tz = pytz.timezone(calendar.timezone)
        first_day = window_start.astimezone(tz).date()
        after_last_day = window_end.astimezone(tz).date() + timedelta(days=1)

        rules = CalendarService.get_rules(db, calendar.id)
        bookings = CalendarService.get_blocking_bookings(
            db,
            calendar_id=calendar.id,
            start=local_minutes_to_utc(first_day, 0, tz)
            - timedelta(minutes=calendar.buffer_after_minutes or 0),
            end=local_minutes_to_utc(after_last_day, 0, tz)
            + timedelta(minutes=calendar.buffer_before_minutes or 0),
        )

        return AvailabilityService.compute_availability(
            calendar, rules, bookings, window_start, window_end, now
        )

    @staticmethod
    def get_calendar_summaries(
            db: Session,
            business_id,
            days: Optional[int] = None,
            now: Optional[datetime] = None
    ) -> List[CalendarSummaryResponse]:
        """
        Dashboard overview of every calendar of a business: the first few
        days that still have slots and the next upcoming bookings.
        """
        now = now or datetime.now(timezone.utc)
        horizon_days = min(days or settings.SUMMARY_DAYS, settings.SUMMARY_MAX_DAYS)

        summaries = []
        for calendar in CalendarService.list_calendars(db, business_id):
            availability = AvailabilityService.list_availability(
                db,
                calendar,
                range_start=now,
                range_end=now + timedelta(days=horizon_days),
                now=now
            )
            upcoming = CalendarService.list_bookings(
                db,
                business_id=business_id,
                calendar_id=calendar.id,
                upcoming_only=True,
                include_cancelled=False,
                limit=settings.SUMMARY_UPCOMING_BOOKINGS,
                now=now
            )

            summary = CalendarSummaryResponse.model_validate(calendar)
            summary.upcoming_availability = availability[:settings.SUMMARY_AVAILABILITY_DAYS]
            summary.upcoming_bookings = [BookingResponse.model_validate(b) for b in upcoming]
            summaries.append(summary)

        logger.debug(f"Built {len(summaries)} calendar summaries for business {business_id}")
        return summaries

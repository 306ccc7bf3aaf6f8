"""
Shared helpers for the test suite: an in-memory database, model factories
and notification dispatchers that never touch a broker.
"""
from datetime import date, datetime, timezone
import uuid

from sqlalchemy import create_engine, insert
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.models import (
    Base,
    AppointmentCalendar,
    AvailabilityRule,
    Booking,
    BookingStatus,
    Business,
    BusinessRole,
    User,
    user_business_association,
)
from app.services.notification.notification_service import NotificationDispatcher

UTC = timezone.utc

# Sunday 2026-01-04 12:00 UTC; the next day is a Monday
NOW = datetime(2026, 1, 4, 12, 0, tzinfo=UTC)
MONDAY = date(2026, 1, 5)


def utc(year, month, day, hour=0, minute=0):
    return datetime(year, month, day, hour, minute, tzinfo=UTC)


def hm(hours, minutes=0):
    """Minutes after midnight"""
    return hours * 60 + minutes


# ============================================================================
# Database
# ============================================================================

def make_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def make_user(db, email=None, **fields):
    user = User(email=email or f"{uuid.uuid4().hex[:8]}@example.com", **fields)
    db.add(user)
    db.commit()
    return user


def make_business(db, owner=None, name="Acme Dental", **fields):
    business = Business(name=name, owner_user_id=owner.id if owner else None, **fields)
    db.add(business)
    db.commit()
    return business


def add_member(db, user, business, role=BusinessRole.GUEST):
    db.execute(
        insert(user_business_association).values(
            id=uuid.uuid4(),
            user_id=user.id,
            business_id=business.id,
            role=role,
        )
    )
    db.commit()


# ============================================================================
# Transient models (usable without a session)
# ============================================================================

def build_calendar(**overrides) -> AppointmentCalendar:
    fields = dict(
        id=uuid.uuid4(),
        business_id=uuid.uuid4(),
        owner_user_id=uuid.uuid4(),
        name="Consultation",
        appointment_type="Consultation",
        location_type="virtual",
        location_details=None,
        virtual_meeting_preference=None,
        duration_minutes=30,
        buffer_before_minutes=0,
        buffer_after_minutes=0,
        timezone="UTC",
        booking_window_days=30,
        min_schedule_notice_minutes=120,
        requires_confirmation=False,
        google_calendar_sync=False,
        share_id="abc234def567",
        status="active",
    )
    fields.update(overrides)
    return AppointmentCalendar(**fields)


def weekly(day_of_week, start, end, unavailable=False) -> AvailabilityRule:
    return AvailabilityRule(
        id=uuid.uuid4(),
        rule_type="weekly",
        day_of_week=day_of_week,
        specific_date=None,
        start_minutes=start,
        end_minutes=end,
        is_unavailable=unavailable,
    )


def on_date(specific_date, start, end, unavailable=False) -> AvailabilityRule:
    return AvailabilityRule(
        id=uuid.uuid4(),
        rule_type="date",
        day_of_week=None,
        specific_date=specific_date,
        start_minutes=start,
        end_minutes=end,
        is_unavailable=unavailable,
    )


def build_booking(start, end, status=BookingStatus.SCHEDULED, **overrides) -> Booking:
    fields = dict(
        id=uuid.uuid4(),
        guest_name="Ada Guest",
        guest_email="ada@example.com",
        start_time=start,
        end_time=end,
        status=status,
    )
    fields.update(overrides)
    return Booking(**fields)


# ============================================================================
# Persisted models
# ============================================================================

def make_calendar(db, business, owner, rules=(), **overrides) -> AppointmentCalendar:
    calendar = build_calendar(business_id=business.id, owner_user_id=owner.id, **overrides)
    if "share_id" not in overrides:
        calendar.share_id = uuid.uuid4().hex[:12]
    db.add(calendar)
    for rule in rules:
        rule.calendar_id = calendar.id
        db.add(rule)
    db.commit()
    return calendar


def make_booking(db, calendar, start, end, status=BookingStatus.SCHEDULED, **overrides) -> Booking:
    booking = build_booking(start, end, status=status, calendar_id=calendar.id, **overrides)
    db.add(booking)
    db.commit()
    return booking


# ============================================================================
# Notification doubles
# ============================================================================

class RecordingDispatcher(NotificationDispatcher):
    """Keeps dispatched events in memory instead of queueing them"""

    def __init__(self):
        self.events = []

    def send(self, event_type, business_id, data):
        self.events.append((event_type, business_id, data))

    @property
    def event_types(self):
        return [event[0] for event in self.events]


class BrokenDispatcher(NotificationDispatcher):
    """Simulates an unreachable broker"""

    def __init__(self):
        self.attempts = 0

    def send(self, event_type, business_id, data):
        self.attempts += 1
        raise ConnectionError("broker unavailable")

"""
Pydantic schemas for appointment calendars, availability rules and bookings
"""
from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Annotated, Optional, List, Literal, Union
from datetime import date, datetime
from uuid import UUID
import pytz

from app.models.booking import BookingStatus
from app.schemas.location import Location


def _check_timezone(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if v not in pytz.all_timezones_set:
        raise ValueError(f"Unknown time zone: {v}")
    return v


def _strip_optional(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    return v or None


# ============================================================================
# Availability rules
# ============================================================================

class _RuleBase(BaseModel):
    start_minutes: int = Field(..., description="Minutes after local midnight")
    end_minutes: int = Field(..., description="Minutes after local midnight, exclusive")
    is_unavailable: bool = False


class WeeklyRuleInput(_RuleBase):
    """Repeats every week on ``day_of_week`` (0=Sunday)"""
    rule_type: Literal["weekly"] = "weekly"
    day_of_week: Optional[int] = None
    specific_date: Optional[date] = None


class DateRuleInput(_RuleBase):
    """Applies to one calendar date and replaces that day's weekly rules"""
    rule_type: Literal["date"] = "date"
    specific_date: Optional[date] = None
    day_of_week: Optional[int] = None


AvailabilityRuleInput = Annotated[
    Union[WeeklyRuleInput, DateRuleInput],
    Field(discriminator="rule_type"),
]


class AvailabilityRulesReplaceRequest(BaseModel):
    rules: List[AvailabilityRuleInput] = Field(default_factory=list)


class AvailabilityRuleResponse(BaseModel):
    id: UUID
    rule_type: str
    day_of_week: Optional[int] = None
    specific_date: Optional[date] = None
    start_minutes: int
    end_minutes: int
    is_unavailable: bool

    class Config:
        from_attributes = True


# ============================================================================
# Availability windows
# ============================================================================

class Slot(BaseModel):
    start: datetime
    end: datetime


class DayAvailability(BaseModel):
    """Slots offered on one calendar-local date"""
    date: date
    slots: List[Slot] = Field(default_factory=list)


# ============================================================================
# Calendars
# ============================================================================

class CalendarCreateRequest(BaseModel):
    """
    Schema for creating a calendar.
    Omitted scheduling fields fall back to the configured defaults.
    """
    name: str = Field(..., min_length=1, max_length=200)
    appointment_type: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    location: Optional[Location] = None
    duration_minutes: Optional[int] = Field(None, ge=1, le=1440)
    buffer_before_minutes: Optional[int] = Field(None, ge=0, le=1440)
    buffer_after_minutes: Optional[int] = Field(None, ge=0, le=1440)
    timezone: Optional[str] = None
    booking_window_days: Optional[int] = Field(None, ge=1)
    min_schedule_notice_minutes: Optional[int] = Field(None, ge=0)
    requires_confirmation: Optional[bool] = None
    google_calendar_sync: Optional[bool] = None
    availability_rules: Optional[List[AvailabilityRuleInput]] = None

    @field_validator("name", mode="after")
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("appointment_type", "description", mode="after")
    @classmethod
    def strip_text(cls, v):
        return _strip_optional(v)

    @field_validator("timezone", mode="after")
    @classmethod
    def validate_timezone(cls, v):
        return _check_timezone(v)


class CalendarUpdateRequest(BaseModel):
    """
    Schema for updating a calendar.
    All fields are optional - only send what you want to update.
    """
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    appointment_type: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    location: Optional[Location] = None
    duration_minutes: Optional[int] = Field(None, ge=1, le=1440)
    buffer_before_minutes: Optional[int] = Field(None, ge=0, le=1440)
    buffer_after_minutes: Optional[int] = Field(None, ge=0, le=1440)
    timezone: Optional[str] = None
    booking_window_days: Optional[int] = Field(None, ge=1)
    min_schedule_notice_minutes: Optional[int] = Field(None, ge=0)
    requires_confirmation: Optional[bool] = None
    google_calendar_sync: Optional[bool] = None
    status: Optional[Literal["active", "inactive"]] = None

    @field_validator("timezone", mode="after")
    @classmethod
    def validate_timezone(cls, v):
        return _check_timezone(v)


class CalendarResponse(BaseModel):
    id: UUID
    business_id: UUID
    owner_user_id: UUID
    name: str
    appointment_type: str
    description: Optional[str] = None
    location: Location
    duration_minutes: int
    buffer_before_minutes: int
    buffer_after_minutes: int
    timezone: str
    booking_window_days: int
    min_schedule_notice_minutes: int
    requires_confirmation: bool
    google_calendar_sync: bool
    share_id: str
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CalendarDetailResponse(CalendarResponse):
    availability_rules: List[AvailabilityRuleResponse] = Field(default_factory=list)


class PublicCalendarResponse(BaseModel):
    """What an anonymous guest sees through a share link"""
    share_id: str
    name: str
    appointment_type: str
    description: Optional[str] = None
    location: Location
    duration_minutes: int
    timezone: str
    requires_confirmation: bool

    class Config:
        from_attributes = True


# ============================================================================
# Bookings
# ============================================================================

class BookingCreateRequest(BaseModel):
    """Guest details and the proposed [start_time, end_time) interval"""
    guest_name: str = Field(..., min_length=1, max_length=200)
    guest_email: EmailStr
    guest_timezone: Optional[str] = None
    guest_notes: Optional[str] = Field(None, max_length=2000)
    start_time: datetime
    end_time: datetime
    meeting_url: Optional[str] = Field(None, max_length=500)
    meeting_location: Optional[str] = Field(None, max_length=500)

    @field_validator("guest_name", mode="after")
    @classmethod
    def strip_guest_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Guest name is required")
        return v

    @field_validator("guest_notes", "meeting_url", "meeting_location", mode="after")
    @classmethod
    def strip_text(cls, v):
        return _strip_optional(v)

    @field_validator("guest_timezone", mode="after")
    @classmethod
    def validate_timezone(cls, v):
        return _check_timezone(v)


class BookingStatusUpdateRequest(BaseModel):
    status: Literal["scheduled", "cancelled"]
    reason: Optional[str] = Field(None, max_length=1000)

    @field_validator("reason", mode="after")
    @classmethod
    def strip_reason(cls, v):
        return _strip_optional(v)


class BookingResponse(BaseModel):
    id: UUID
    calendar_id: UUID
    guest_name: str
    guest_email: str
    guest_timezone: Optional[str] = None
    guest_notes: Optional[str] = None
    start_time: datetime
    end_time: datetime
    status: BookingStatus
    meeting_url: Optional[str] = None
    meeting_location: Optional[str] = None
    created_by_user_id: Optional[UUID] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ============================================================================
# Composite responses
# ============================================================================

class AvailabilityResponse(BaseModel):
    calendar_id: UUID
    timezone: str
    availability: List[DayAvailability]


class PublicAvailabilityResponse(BaseModel):
    calendar: PublicCalendarResponse
    availability: List[DayAvailability]


class PublicBookingResponse(BaseModel):
    booking: BookingResponse
    availability: List[DayAvailability]


class CalendarSummaryResponse(CalendarResponse):
    upcoming_availability: List[DayAvailability] = Field(default_factory=list)
    upcoming_bookings: List[BookingResponse] = Field(default_factory=list)


class BookingListResponse(BaseModel):
    bookings: List[BookingResponse]
    total: int

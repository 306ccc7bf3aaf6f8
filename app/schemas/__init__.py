# app/schemas/__init__.py
from .location import (
    LocationKind,
    Location,
    InPersonLocation,
    VirtualLocation,
    PhoneLocation,
    CustomLocation,
    location_from_columns,
    location_to_columns
)

from .business import BusinessContext

from .appointments import (
    WeeklyRuleInput,
    DateRuleInput,
    AvailabilityRuleInput,
    AvailabilityRulesReplaceRequest,
    AvailabilityRuleResponse,
    Slot,
    DayAvailability,
    CalendarCreateRequest,
    CalendarUpdateRequest,
    CalendarResponse,
    CalendarDetailResponse,
    PublicCalendarResponse,
    BookingCreateRequest,
    BookingStatusUpdateRequest,
    BookingResponse,
    AvailabilityResponse,
    PublicAvailabilityResponse,
    PublicBookingResponse,
    CalendarSummaryResponse,
    BookingListResponse
)

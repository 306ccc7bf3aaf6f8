# app/models/__init__.py
from .base import Base
from .user import User, BusinessRole, user_business_association
from .business import Business
from .appointment_calendar import AppointmentCalendar
from .availability import AvailabilityRule
from .booking import Booking, BookingStatus, BLOCKING_STATUSES

__all__ = [
    "Base",
    "User",
    "BusinessRole",
    "user_business_association",
    "Business",
    "AppointmentCalendar",
    "AvailabilityRule",
    "Booking",
    "BookingStatus",
    "BLOCKING_STATUSES",
]

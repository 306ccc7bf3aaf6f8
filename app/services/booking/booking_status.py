# ===== app/services/booking/booking_status.py =====
"""Booking lifecycle: the only place that knows which status changes are legal"""
from typing import Dict, FrozenSet, Union

from app.core.exceptions import InvalidTransitionError, ValidationError
from app.models.booking import BookingStatus

ALLOWED_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.SCHEDULED, BookingStatus.CANCELLED}),
    BookingStatus.SCHEDULED: frozenset({BookingStatus.CANCELLED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)

# Event names sent to the notification dispatcher per target status
TRANSITION_EVENTS = {
    BookingStatus.SCHEDULED: "booking.confirmed",
    BookingStatus.CANCELLED: "booking.cancelled",
    BookingStatus.COMPLETED: "booking.completed",
}


def coerce_status(value: Union[str, BookingStatus]) -> BookingStatus:
    try:
        return BookingStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown booking status: {value}", code="invalid_status")


def initial_status(calendar) -> BookingStatus:
    """Status a new booking starts in"""
    if calendar.requires_confirmation:
        return BookingStatus.PENDING
    return BookingStatus.SCHEDULED


def can_transition(source, target) -> bool:
    return coerce_status(target) in ALLOWED_TRANSITIONS[coerce_status(source)]


def ensure_transition(source, target) -> BookingStatus:
    """
    Check a status change against the transition table.

    Returns:
        The target as a BookingStatus

    Raises:
        InvalidTransitionError: when the table does not allow source -> target
    """
    source_status = coerce_status(source)
    target_status = coerce_status(target)
    if target_status not in ALLOWED_TRANSITIONS[source_status]:
        raise InvalidTransitionError(source_status, target_status)
    return target_status

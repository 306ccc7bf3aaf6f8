"""
Public share-link API - guests read availability and book without an account
File: app/api/v1/public/calendars.py
"""
from fastapi import APIRouter, Depends, Query, Path, status
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Optional

from app.config.database import get_db
from app.api.dependencies import get_notification_dispatcher
from app.schemas.appointments import (
    BookingCreateRequest,
    BookingResponse,
    PublicAvailabilityResponse,
    PublicBookingResponse,
    PublicCalendarResponse,
)
from app.services.availability.availability_service import AvailabilityService
from app.services.booking.booking_service import BookingService
from app.services.calendar.calendar_service import CalendarService
from app.services.notification.notification_service import NotificationDispatcher

router = APIRouter(prefix="/calendars", tags=["public-calendars"])


@router.get("/{share_id}/availability", response_model=PublicAvailabilityResponse)
async def get_public_availability(
        share_id: str = Path(..., min_length=1, max_length=32),
        start: Optional[datetime] = Query(None, description="Window start (defaults to now)"),
        end: Optional[datetime] = Query(None, description="Window end (defaults to the booking window)"),
        db: Session = Depends(get_db)
):
    """Calendar details and bookable slots behind a share link"""
    calendar = CalendarService.get_calendar_by_share_id(db, share_id)
    availability = AvailabilityService.list_availability(
        db=db,
        calendar=calendar,
        range_start=start,
        range_end=end
    )
    return PublicAvailabilityResponse(
        calendar=PublicCalendarResponse.model_validate(calendar),
        availability=availability
    )


@router.post("/{share_id}/bookings", response_model=PublicBookingResponse, status_code=status.HTTP_201_CREATED)
async def create_public_booking(
        payload: BookingCreateRequest,
        share_id: str = Path(..., min_length=1, max_length=32),
        notifier: NotificationDispatcher = Depends(get_notification_dispatcher),
        db: Session = Depends(get_db)
):
    """
    Book one of the offered slots.
    Returns the booking and the refreshed availability; 409 if the slot was taken.
    """
    booking, availability = BookingService.create_public_booking(
        db=db,
        share_id=share_id,
        data=payload,
        notifier=notifier
    )
    return PublicBookingResponse(
        booking=BookingResponse.model_validate(booking),
        availability=availability
    )

# ============================================================================
# FILE: app/api/v1/dashboard/calendars.py
# JWT authenticated calendar endpoints - thin HTTP layer
# IMPORTANT: Specific routes MUST come before parameterized routes
# ============================================================================
from fastapi import APIRouter, Depends, Query, Path, Response, status
from sqlalchemy.orm import Session
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from app.config.database import get_db
from app.api.dependencies import get_business_context, require_business_manager, get_notification_dispatcher
from app.models.booking import BookingStatus
from app.schemas.business import BusinessContext
from app.schemas.appointments import (
    AvailabilityResponse,
    AvailabilityRuleResponse,
    AvailabilityRulesReplaceRequest,
    BookingCreateRequest,
    BookingListResponse,
    BookingResponse,
    BookingStatusUpdateRequest,
    CalendarCreateRequest,
    CalendarDetailResponse,
    CalendarResponse,
    CalendarSummaryResponse,
    CalendarUpdateRequest,
)
from app.services.availability.availability_service import AvailabilityService
from app.services.booking.booking_service import BookingService
from app.services.calendar.calendar_service import CalendarService
from app.services.notification.notification_service import NotificationDispatcher

router = APIRouter(prefix="/calendars", tags=["dashboard-calendars"])


def _detail(db: Session, calendar) -> CalendarDetailResponse:
    detail = CalendarDetailResponse.model_validate(calendar)
    detail.availability_rules = [
        AvailabilityRuleResponse.model_validate(rule)
        for rule in CalendarService.get_rules(db, calendar.id)
    ]
    return detail


@router.get("", response_model=List[CalendarSummaryResponse])
async def list_calendars(
        days: Optional[int] = Query(None, ge=1, description="Days of availability to summarise (max 60)"),
        context: BusinessContext = Depends(get_business_context),
        db: Session = Depends(get_db)
):
    """
    Get every calendar of your business with upcoming availability and bookings.
    Requires authenticated session.
    """
    return AvailabilityService.get_calendar_summaries(
        db=db,
        business_id=context.business_id,
        days=days
    )


@router.post("", response_model=CalendarDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_calendar(
        payload: CalendarCreateRequest,
        context: BusinessContext = Depends(require_business_manager),
        db: Session = Depends(get_db)
):
    """
    Create a calendar, optionally with its initial availability rules.
    Requires owner or admin role.
    """
    calendar = CalendarService.create_calendar(
        db=db,
        business_id=context.business_id,
        owner_user_id=context.user_id,
        data=payload
    )
    return _detail(db, calendar)


@router.get("/{calendar_id}", response_model=CalendarDetailResponse)
async def get_calendar(
        calendar_id: UUID = Path(..., description="The calendar ID"),
        context: BusinessContext = Depends(get_business_context),
        db: Session = Depends(get_db)
):
    """
    Get a calendar with its availability rules.
    Requires authenticated session.
    """
    calendar = CalendarService.get_calendar(db, context.business_id, calendar_id)
    return _detail(db, calendar)


@router.patch("/{calendar_id}", response_model=CalendarResponse)
async def update_calendar(
        payload: CalendarUpdateRequest,
        calendar_id: UUID = Path(..., description="The calendar ID"),
        context: BusinessContext = Depends(require_business_manager),
        db: Session = Depends(get_db)
):
    """
    Update calendar settings.
    All fields are optional - only send what you want to update.
    """
    return CalendarService.update_calendar(
        db=db,
        business_id=context.business_id,
        calendar_id=calendar_id,
        data=payload
    )


@router.delete("/{calendar_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_calendar(
        calendar_id: UUID = Path(..., description="The calendar ID"),
        context: BusinessContext = Depends(require_business_manager),
        db: Session = Depends(get_db)
):
    """
    Delete a calendar together with its rules and bookings.
    Requires owner or admin role.
    """
    CalendarService.delete_calendar(db, context.business_id, calendar_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{calendar_id}/availability-rules", response_model=List[AvailabilityRuleResponse])
async def replace_availability_rules(
        payload: AvailabilityRulesReplaceRequest,
        calendar_id: UUID = Path(..., description="The calendar ID"),
        context: BusinessContext = Depends(require_business_manager),
        db: Session = Depends(get_db)
):
    """
    Replace all availability rules of a calendar.
    The new set is validated first; on any error nothing changes.
    """
    return CalendarService.replace_availability_rules(
        db=db,
        business_id=context.business_id,
        calendar_id=calendar_id,
        rules=payload.rules
    )


@router.get("/{calendar_id}/availability", response_model=AvailabilityResponse)
async def get_calendar_availability(
        calendar_id: UUID = Path(..., description="The calendar ID"),
        start: Optional[datetime] = Query(None, description="Window start (defaults to now)"),
        end: Optional[datetime] = Query(None, description="Window end (defaults to the booking window)"),
        context: BusinessContext = Depends(get_business_context),
        db: Session = Depends(get_db)
):
    """
    Get bookable slots of a calendar.
    Requires authenticated session.
    """
    calendar = CalendarService.get_calendar(db, context.business_id, calendar_id)
    availability = AvailabilityService.list_availability(
        db=db,
        calendar=calendar,
        range_start=start,
        range_end=end
    )
    return AvailabilityResponse(
        calendar_id=calendar.id,
        timezone=calendar.timezone,
        availability=availability
    )


@router.get("/{calendar_id}/bookings", response_model=BookingListResponse)
async def list_calendar_bookings(
        calendar_id: UUID = Path(..., description="The calendar ID"),
        status_filter: Optional[BookingStatus] = Query(None, alias="status", description="Filter by status"),
        upcoming_only: bool = Query(False, description="Only bookings that have not ended yet"),
        skip: int = Query(0, ge=0, description="Number of records to skip"),
        limit: int = Query(50, ge=1, le=200, description="Number of records to return"),
        context: BusinessContext = Depends(get_business_context),
        db: Session = Depends(get_db)
):
    """
    Get bookings of one calendar, earliest first.
    Requires authenticated session.
    """
    calendar = CalendarService.get_calendar(db, context.business_id, calendar_id)
    bookings = CalendarService.list_bookings(
        db=db,
        business_id=context.business_id,
        calendar_id=calendar.id,
        status=status_filter,
        upcoming_only=upcoming_only,
        skip=skip,
        limit=limit
    )
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in bookings],
        total=CalendarService.count_bookings(db, context.business_id, calendar.id, status_filter)
    )


@router.post("/{calendar_id}/bookings", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_calendar_booking(
        payload: BookingCreateRequest,
        calendar_id: UUID = Path(..., description="The calendar ID"),
        context: BusinessContext = Depends(require_business_manager),
        notifier: NotificationDispatcher = Depends(get_notification_dispatcher),
        db: Session = Depends(get_db)
):
    """
    Book a slot on behalf of a guest.
    Returns 409 when the slot is taken, 400 when it is outside the bookable window.
    """
    return BookingService.create_booking(
        db=db,
        business_id=context.business_id,
        calendar_id=calendar_id,
        data=payload,
        created_by_user_id=context.user_id,
        notifier=notifier
    )


@router.patch("/{calendar_id}/bookings/{booking_id}", response_model=BookingResponse)
async def update_booking_status(
        payload: BookingStatusUpdateRequest,
        calendar_id: UUID = Path(..., description="The calendar ID"),
        booking_id: UUID = Path(..., description="The booking ID"),
        context: BusinessContext = Depends(require_business_manager),
        notifier: NotificationDispatcher = Depends(get_notification_dispatcher),
        db: Session = Depends(get_db)
):
    """
    Confirm or cancel a booking.
    Returns 409 when the current status does not allow the change.
    """
    return BookingService.transition_booking(
        db=db,
        business_id=context.business_id,
        calendar_id=calendar_id,
        booking_id=booking_id,
        target=payload.status,
        reason=payload.reason,
        notifier=notifier
    )

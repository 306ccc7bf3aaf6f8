# ============================================================================
# FILE: app/api/v1/dashboard/bookings.py
# JWT authenticated booking list across all calendars of the business
# ============================================================================
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from app.config.database import get_db
from app.api.dependencies import get_business_context
from app.models.booking import BookingStatus
from app.schemas.business import BusinessContext
from app.schemas.appointments import BookingListResponse, BookingResponse
from app.services.calendar.calendar_service import CalendarService

router = APIRouter(prefix="/bookings", tags=["dashboard-bookings"])


@router.get("", response_model=BookingListResponse)
async def list_bookings(
        status_filter: Optional[BookingStatus] = Query(None, alias="status", description="Filter by status"),
        upcoming_only: bool = Query(False, description="Only bookings that have not ended yet"),
        skip: int = Query(0, ge=0, description="Number of records to skip"),
        limit: int = Query(50, ge=1, le=200, description="Number of records to return"),
        context: BusinessContext = Depends(get_business_context),
        db: Session = Depends(get_db)
):
    """
    Get bookings of every calendar of your business, earliest first.
    Requires authenticated session.
    """
    bookings = CalendarService.list_bookings(
        db=db,
        business_id=context.business_id,
        status=status_filter,
        upcoming_only=upcoming_only,
        skip=skip,
        limit=limit
    )
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in bookings],
        total=CalendarService.count_bookings(db, context.business_id, status=status_filter)
    )

"""
API v1 router setup
Organized into: public (share links) and dashboard (JWT) routes
"""
from fastapi import APIRouter

from app.api.v1.dashboard import calendars as dashboard_calendars, bookings as dashboard_bookings
from app.api.v1.public import calendars as public_calendars

api_v1_router = APIRouter()

# ============================================================================
# PUBLIC ROUTES (No authentication required)
# ============================================================================
api_v1_router.include_router(
    public_calendars.router,
    prefix="/public",
    tags=["Public"]
)

# ============================================================================
# DASHBOARD ROUTES (JWT authentication required)
# ============================================================================
api_v1_router.include_router(
    dashboard_calendars.router,
    prefix="/dashboard",
    tags=["Dashboard"]
)

api_v1_router.include_router(
    dashboard_bookings.router,
    prefix="/dashboard",
    tags=["Dashboard"]
)


# ============================================================================
# ROOT ENDPOINT - API Info
# ============================================================================
@api_v1_router.get("/", tags=["Info"])
async def api_info():
    """
    API information and available endpoints.
    """
    return {
        "version": "1.0",
        "authentication": {
            "public": "No authentication required (share links)",
            "dashboard": "JWT Bearer token required; owner/admin role for changes",
        }
    }

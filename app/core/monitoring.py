"""Health checks for the API, its database and the notification pipeline"""
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session
import logging

from app.config.database import get_db
from app.config.redis import get_redis, notification_backlog

logger = logging.getLogger(__name__)

health_router = APIRouter()

# More queued notifications than this means the worker is not keeping up
NOTIFICATION_BACKLOG_WARNING = 500


@health_router.get("/")
async def health_check():
    """Liveness probe"""
    return {"status": "healthy", "service": "appointment-scheduler"}


@health_router.get("/detailed")
async def detailed_health_check(db: Session = Depends(get_db)):
    """
    Readiness probe.

    Bookings only need the database; Redis and the notification queue
    report "degraded" rather than failing the whole service.
    """
    checks = {
        "api": "healthy",
        "database": "unknown",
        "redis": "unknown",
        "notifications": "unknown",
    }

    try:
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        checks["database"] = f"unhealthy: {str(e)}"

    try:
        redis_client = await get_redis()
        try:
            await redis_client.ping()
        finally:
            await redis_client.aclose()
        checks["redis"] = "healthy"
    except Exception as e:
        logger.warning(f"Redis health check failed: {e}")
        checks["redis"] = f"unhealthy: {str(e)}"

    queued = None
    try:
        queued = await notification_backlog()
        checks["notifications"] = "healthy" if queued <= NOTIFICATION_BACKLOG_WARNING else "backlogged"
    except Exception as e:
        logger.warning(f"Notification queue check failed: {e}")
        checks["notifications"] = f"unhealthy: {str(e)}"

    if checks["database"] != "healthy":
        overall = "unhealthy"
    elif all(status == "healthy" for status in checks.values()):
        overall = "healthy"
    else:
        overall = "degraded"

    return {**checks, "queued_notifications": queued, "overall": overall}

# ===== app/tasks/booking_tasks.py =====
from typing import Dict, Any
from app.config.celery_config import celery_app
from app.config.settings import get_settings
from app.config.database import SessionLocal
from app.models.business import Business
from app.services.notification.notification_service import NotificationService
import logging
import asyncio
from uuid import UUID

logger = logging.getLogger(__name__)
settings = get_settings()


async def _deliver(url: str, event_type: str, business_id: str, data: Dict[str, Any]) -> int:
    service = NotificationService()
    try:
        return await service.deliver(url, event_type, business_id, data)
    finally:
        await service.close()


@celery_app.task(bind=True, max_retries=settings.NOTIFICATION_MAX_RETRIES)
def deliver_booking_notification(self, business_id: str, event_type: str, data: Dict[str, Any]):
    """Send a booking lifecycle event to the business's booking webhook"""
    db = SessionLocal()
    try:
        business = db.query(Business).filter(Business.id == UUID(business_id)).first()
        if not business:
            logger.error(f"Business {business_id} not found for {event_type}")
            return {"status": "failed", "reason": "business_not_found"}

        url = (business.webhook_urls or {}).get("booking")
        if not url:
            logger.info(f"No booking webhook configured for business {business_id}, skipping {event_type}")
            return {"status": "skipped", "reason": "no_webhook_configured"}
    finally:
        db.close()

    try:
        status_code = asyncio.run(_deliver(url, event_type, business_id, data))
        return {"status": "delivered", "status_code": status_code}

    except Exception as exc:
        logger.error(
            f"Delivery of {event_type} for booking {data.get('booking_id')} failed "
            f"(attempt {self.request.retries + 1}): {exc}"
        )
        raise self.retry(exc=exc, countdown=60 * (2 ** self.request.retries))

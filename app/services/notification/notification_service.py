# app/services/notification/notification_service.py
import httpx
import hmac
import hashlib
import json
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from uuid import UUID
import logging

from app.config.settings import get_settings
from app.models.booking import BookingStatus

logger = logging.getLogger(__name__)
settings = get_settings()


def _status_value(status) -> Optional[str]:
    if status is None:
        return None
    return BookingStatus(status).value


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def build_booking_event(
        calendar,
        booking,
        previous_status=None,
        reason: Optional[str] = None
) -> Dict[str, Any]:
    """Event body describing a booking and the calendar it belongs to"""
    location = calendar.location

    meeting_url = None
    if location.kind == "virtual":
        meeting_url = booking.meeting_url or location.meeting_url()

    return {
        "booking_id": str(booking.id),
        "calendar_id": str(calendar.id),
        "calendar_name": calendar.name,
        "appointment_type": calendar.appointment_type,
        "owner_user_id": str(calendar.owner_user_id),
        "guest_name": booking.guest_name,
        "guest_email": booking.guest_email,
        "guest_timezone": booking.guest_timezone,
        "guest_notes": booking.guest_notes,
        "start_time": _isoformat(booking.start_time),
        "end_time": _isoformat(booking.end_time),
        "timezone": calendar.timezone,
        "status": _status_value(booking.status),
        "previous_status": _status_value(previous_status),
        "reason": reason,
        "location_summary": location.summary(),
        "meeting_url": meeting_url,
        "meeting_location": booking.meeting_location,
    }


class NotificationDispatcher:
    """
    Hands booking lifecycle events to the Celery worker.

    Dispatch never raises: a booking that was committed stays committed
    even when the broker is unreachable.
    """

    VALID_EVENT_TYPES = [
        "booking.created",
        "booking.confirmed",
        "booking.cancelled",
        "booking.completed",
    ]

    def booking_event(
            self,
            event_type: str,
            calendar,
            booking,
            previous_status=None,
            reason: Optional[str] = None
    ) -> bool:
        try:
            if event_type not in self.VALID_EVENT_TYPES:
                raise ValueError(f"Invalid event type: {event_type}")
            data = build_booking_event(calendar, booking, previous_status, reason)
            self.send(event_type, str(calendar.business_id), data)
            return True
        except Exception as e:
            logger.error(f"Failed to dispatch {event_type} for booking {booking.id}: {e}")
            return False

    def send(self, event_type: str, business_id: str, data: Dict[str, Any]) -> None:
        from app.tasks.booking_tasks import deliver_booking_notification

        deliver_booking_notification.delay(business_id, event_type, data)
        logger.info(f"Queued {event_type} notification for business {business_id}")


class NotificationService:
    """Delivers booking events to a business's webhook endpoint"""

    def __init__(self, secret: Optional[str] = None, timeout: Optional[float] = None):
        self.secret = secret if secret is not None else settings.NOTIFICATION_WEBHOOK_SECRET
        self.http_client = httpx.AsyncClient(
            timeout=timeout or settings.NOTIFICATION_TIMEOUT_SECONDS,
            follow_redirects=True
        )

    async def deliver(
            self,
            url: str,
            event_type: str,
            business_id: UUID,
            event_data: Dict[str, Any]
    ) -> int:
        """
        POST one signed event.

        Returns:
            The HTTP status code of the endpoint

        Raises:
            httpx.HTTPError: on transport errors and non-2xx responses
        """
        payload_json = json.dumps(self._build_payload(event_type, business_id, event_data))

        headers = {
            "Content-Type": "application/json",
            "X-Webhook-Event": event_type,
            "X-Webhook-Timestamp": datetime.now(timezone.utc).isoformat(),
            "User-Agent": "Appointment-Scheduler-Webhook/1.0"
        }
        if self.secret:
            headers["X-Webhook-Signature"] = self.sign_payload(payload_json, self.secret)

        response = await self.http_client.post(url, content=payload_json, headers=headers)
        response.raise_for_status()

        logger.info(f"Delivered {event_type} to {url} ({response.status_code})")
        return response.status_code

    @staticmethod
    def _build_payload(
            event_type: str,
            business_id: UUID,
            event_data: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Build the webhook payload in a consistent format."""
        return {
            "event": event_type,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "business_id": str(business_id),
            "data": event_data
        }

    @staticmethod
    def sign_payload(payload_json: str, secret: str) -> str:
        """HMAC-SHA256 signature receivers can check against the shared secret"""
        signature = hmac.new(
            secret.encode(),
            payload_json.encode(),
            hashlib.sha256
        ).hexdigest()

        return f"sha256={signature}"

    @staticmethod
    def verify_signature(payload_json: str, signature: str, secret: str) -> bool:
        expected_signature = NotificationService.sign_payload(payload_json, secret)
        return hmac.compare_digest(signature, expected_signature)

    async def close(self):
        """Close the HTTP client."""
        await self.http_client.aclose()

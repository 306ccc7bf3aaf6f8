"""Tests for webhook delivery of booking events"""
from unittest import mock
import asyncio
import json
import unittest

import httpx

from app.services.notification.notification_service import NotificationService
from app.tasks import booking_tasks

from tests.support import make_business, make_session_factory, make_user


class TestDeliverBookingNotification(unittest.TestCase):

    def setUp(self):
        self.session_factory = make_session_factory()
        db = self.session_factory()
        self.business = make_business(db, owner=make_user(db), webhook_urls={"booking": "https://hooks.example.com/b"})
        self.bare_business = make_business(db, name="No hooks", webhook_urls={})
        self.business_id = str(self.business.id)
        self.bare_business_id = str(self.bare_business.id)
        db.close()

        patcher = mock.patch.object(booking_tasks, "SessionLocal", self.session_factory)
        patcher.start()
        self.addCleanup(patcher.stop)

    def run_task(self, business_id):
        return booking_tasks.deliver_booking_notification.run(
            business_id, "booking.created", {"booking_id": "b-1"}
        )

    def test_delivers_to_booking_webhook(self):
        with mock.patch.object(booking_tasks, "_deliver", new=mock.AsyncMock(return_value=200)) as deliver:
            result = self.run_task(self.business_id)

        self.assertEqual(result, {"status": "delivered", "status_code": 200})
        deliver.assert_awaited_once_with(
            "https://hooks.example.com/b", "booking.created", self.business_id, {"booking_id": "b-1"}
        )

    def test_skips_business_without_webhook(self):
        with mock.patch.object(booking_tasks, "_deliver", new=mock.AsyncMock()) as deliver:
            result = self.run_task(self.bare_business_id)

        self.assertEqual(result["status"], "skipped")
        deliver.assert_not_awaited()

    def test_unknown_business(self):
        result = self.run_task("00000000-0000-0000-0000-000000000000")
        self.assertEqual(result["reason"], "business_not_found")


class TestNotificationServiceDeliver(unittest.TestCase):

    def test_posts_signed_payload(self):
        seen = {}

        def handler(request):
            seen["headers"] = request.headers
            seen["body"] = request.content.decode()
            return httpx.Response(204)

        async def deliver():
            service = NotificationService(secret="s3cret")
            service.http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
            try:
                return await service.deliver(
                    "https://hooks.example.com/b", "booking.cancelled", "biz-1", {"booking_id": "b-1"}
                )
            finally:
                await service.close()

        status_code = asyncio.run(deliver())

        self.assertEqual(status_code, 204)
        self.assertEqual(seen["headers"]["X-Webhook-Event"], "booking.cancelled")
        self.assertTrue(
            NotificationService.verify_signature(seen["body"], seen["headers"]["X-Webhook-Signature"], "s3cret")
        )
        payload = json.loads(seen["body"])
        self.assertEqual(payload["data"], {"booking_id": "b-1"})

    def test_error_status_raises(self):
        async def deliver():
            service = NotificationService(secret="")
            service.http_client = httpx.AsyncClient(
                transport=httpx.MockTransport(lambda request: httpx.Response(500))
            )
            try:
                await service.deliver("https://hooks.example.com/b", "booking.created", "biz-1", {})
            finally:
                await service.close()

        with self.assertRaises(httpx.HTTPStatusError):
            asyncio.run(deliver())


if __name__ == "__main__":
    unittest.main()

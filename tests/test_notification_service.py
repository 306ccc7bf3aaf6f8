"""Tests for booking event payloads, signing and dispatch"""
import json
import unittest

from app.models import BookingStatus
from app.services.notification.notification_service import (
    NotificationDispatcher,
    NotificationService,
    build_booking_event,
)

from tests.support import BrokenDispatcher, RecordingDispatcher, build_booking, build_calendar, utc


class TestBuildBookingEvent(unittest.TestCase):

    def setUp(self):
        self.booking = build_booking(utc(2026, 1, 5, 9), utc(2026, 1, 5, 9, 30), guest_timezone="Europe/Paris")

    def test_virtual_calendar_with_link(self):
        calendar = build_calendar(location_details="https://meet.example.com/room")

        data = build_booking_event(calendar, self.booking)

        self.assertEqual(data["meeting_url"], "https://meet.example.com/room")
        self.assertEqual(data["location_summary"], "Virtual meeting · https://meet.example.com/room")
        self.assertEqual(data["start_time"], "2026-01-05T09:00:00+00:00")
        self.assertEqual(data["status"], "scheduled")
        self.assertIsNone(data["previous_status"])
        self.assertEqual(data["guest_timezone"], "Europe/Paris")

    def test_booking_link_overrides_calendar_link(self):
        calendar = build_calendar(virtual_meeting_preference="https://zoom.example.com/default")
        self.booking.meeting_url = "https://zoom.example.com/special"

        data = build_booking_event(calendar, self.booking)

        self.assertEqual(data["meeting_url"], "https://zoom.example.com/special")

    def test_virtual_calendar_without_link(self):
        calendar = build_calendar(virtual_meeting_preference="Google Meet")
        data = build_booking_event(calendar, self.booking)

        self.assertIsNone(data["meeting_url"])
        self.assertEqual(data["location_summary"], "Google Meet")

    def test_in_person_calendar_never_has_meeting_url(self):
        calendar = build_calendar(location_type="in_person", location_details="12 Harbour St")
        self.booking.meeting_url = "https://meet.example.com/ignored"

        data = build_booking_event(calendar, self.booking)

        self.assertIsNone(data["meeting_url"])
        self.assertEqual(data["location_summary"], "12 Harbour St")

    def test_default_summaries(self):
        expected = {"phone": "Phone call", "custom": "Details to follow", "in_person": "In-person meeting"}
        for kind, summary in expected.items():
            data = build_booking_event(build_calendar(location_type=kind), self.booking)
            self.assertEqual(data["location_summary"], summary)

    def test_transition_fields(self):
        self.booking.status = BookingStatus.CANCELLED
        data = build_booking_event(build_calendar(), self.booking, BookingStatus.SCHEDULED, "No longer needed")

        self.assertEqual(data["status"], "cancelled")
        self.assertEqual(data["previous_status"], "scheduled")
        self.assertEqual(data["reason"], "No longer needed")

    def test_payload_is_json_serialisable(self):
        json.dumps(build_booking_event(build_calendar(), self.booking))


class TestDispatcher(unittest.TestCase):

    def setUp(self):
        self.calendar = build_calendar()
        self.booking = build_booking(utc(2026, 1, 5, 9), utc(2026, 1, 5, 9, 30))

    def test_records_event(self):
        dispatcher = RecordingDispatcher()

        self.assertTrue(dispatcher.booking_event("booking.created", self.calendar, self.booking))
        self.assertEqual(dispatcher.events[0][1], str(self.calendar.business_id))

    def test_unknown_event_type_is_not_sent(self):
        dispatcher = RecordingDispatcher()

        self.assertFalse(dispatcher.booking_event("booking.rescheduled", self.calendar, self.booking))
        self.assertEqual(dispatcher.events, [])

    def test_broker_failure_is_swallowed(self):
        dispatcher = BrokenDispatcher()

        self.assertFalse(dispatcher.booking_event("booking.created", self.calendar, self.booking))
        self.assertEqual(dispatcher.attempts, 1)

    def test_event_types(self):
        self.assertIn("booking.cancelled", NotificationDispatcher.VALID_EVENT_TYPES)


class TestSignatures(unittest.TestCase):

    def test_sign_and_verify(self):
        payload = json.dumps({"event": "booking.created"})
        signature = NotificationService.sign_payload(payload, "s3cret")

        self.assertTrue(signature.startswith("sha256="))
        self.assertTrue(NotificationService.verify_signature(payload, signature, "s3cret"))
        self.assertFalse(NotificationService.verify_signature(payload, signature, "other"))
        self.assertFalse(NotificationService.verify_signature(payload + " ", signature, "s3cret"))

    def test_payload_envelope(self):
        payload = NotificationService._build_payload("booking.created", "b-1", {"booking_id": "x"})

        self.assertEqual(payload["event"], "booking.created")
        self.assertEqual(payload["business_id"], "b-1")
        self.assertEqual(payload["data"], {"booking_id": "x"})
        self.assertIn("timestamp", payload)


if __name__ == "__main__":
    unittest.main()

"""Tests for calendar persistence, rule replacement and tenant scoping"""
from datetime import date
from unittest import mock
import re
import unittest
import uuid

from app.core.exceptions import NotFoundError, StorageError, ValidationError
from app.models import AppointmentCalendar, AvailabilityRule, Booking, BookingStatus
from app.schemas.appointments import (
    AvailabilityRulesReplaceRequest,
    CalendarCreateRequest,
    CalendarUpdateRequest,
)
from app.schemas.location import InPersonLocation, VirtualLocation
from app.services.calendar.calendar_service import CalendarService

from tests.support import (
    hm,
    make_booking,
    make_business,
    make_calendar,
    make_session_factory,
    make_user,
    utc,
    weekly,
)

SHARE_ID_PATTERN = re.compile(r"^[23456789abcdefghjkmnpqrstuvwxyz]{12}$")


def rule_tuples(rules):
    return [
        (r.rule_type, r.day_of_week, r.specific_date, r.start_minutes, r.end_minutes, r.is_unavailable)
        for r in rules
    ]


def replace_request(*rules):
    return AvailabilityRulesReplaceRequest(rules=list(rules)).rules


class CalendarServiceTestCase(unittest.TestCase):

    def setUp(self):
        self.db = make_session_factory()()
        self.owner = make_user(self.db)
        self.business = make_business(self.db, owner=self.owner)

    def tearDown(self):
        self.db.close()

    def create(self, **fields):
        fields.setdefault("name", "Intro call")
        return CalendarService.create_calendar(
            self.db, self.business.id, self.owner.id, CalendarCreateRequest(**fields)
        )


class TestCreateCalendar(CalendarServiceTestCase):

    def test_defaults_are_applied(self):
        calendar = self.create()

        self.assertEqual(calendar.appointment_type, "Intro call")
        self.assertEqual(calendar.duration_minutes, 30)
        self.assertEqual(calendar.buffer_before_minutes, 0)
        self.assertEqual(calendar.buffer_after_minutes, 0)
        self.assertEqual(calendar.timezone, "UTC")
        self.assertEqual(calendar.booking_window_days, 30)
        self.assertEqual(calendar.min_schedule_notice_minutes, 120)
        self.assertFalse(calendar.requires_confirmation)
        self.assertEqual(calendar.status, "active")
        self.assertEqual(calendar.location, VirtualLocation())

    def test_share_id_format(self):
        first = self.create()
        second = self.create(name="Follow-up")

        self.assertRegex(first.share_id, SHARE_ID_PATTERN)
        self.assertNotEqual(first.share_id, second.share_id)

    def test_zero_notice_is_kept(self):
        calendar = self.create(min_schedule_notice_minutes=0)
        self.assertEqual(calendar.min_schedule_notice_minutes, 0)

    def test_location_is_stored_in_columns(self):
        calendar = self.create(location={"kind": "in_person", "details": "12 Harbour St"})

        self.assertEqual(calendar.location_type, "in_person")
        self.assertEqual(calendar.location_details, "12 Harbour St")
        self.assertEqual(calendar.location, InPersonLocation(details="12 Harbour St"))

    def test_initial_rules_are_saved(self):
        calendar = self.create(availability_rules=[
            {"rule_type": "weekly", "day_of_week": 3, "start_minutes": hm(9), "end_minutes": hm(12)},
            {"rule_type": "date", "specific_date": "2026-02-01", "start_minutes": hm(10), "end_minutes": hm(11)},
        ])

        rules = CalendarService.get_rules(self.db, calendar.id)
        self.assertEqual(rule_tuples(rules), [
            ("date", None, date(2026, 2, 1), hm(10), hm(11), False),
            ("weekly", 3, None, hm(9), hm(12), False),
        ])

    def test_invalid_initial_rules_create_nothing(self):
        with self.assertRaises(ValidationError):
            self.create(availability_rules=[
                {"rule_type": "weekly", "day_of_week": 1, "start_minutes": hm(9), "end_minutes": hm(12)},
                {"rule_type": "weekly", "day_of_week": 1, "start_minutes": hm(11), "end_minutes": hm(13)},
            ])
        self.assertEqual(self.db.query(AppointmentCalendar).count(), 0)

    def test_booking_window_is_capped(self):
        with self.assertRaises(ValidationError):
            self.create(booking_window_days=400)

    def test_share_id_exhaustion_is_storage_error(self):
        existing = self.create()
        with mock.patch.object(CalendarService, "generate_share_id", return_value=existing.share_id):
            with self.assertRaises(StorageError) as ctx:
                self.create(name="Another")
        self.assertIn("share id", ctx.exception.message)


class TestLookups(CalendarServiceTestCase):

    def test_calendar_of_other_business_is_not_found(self):
        calendar = self.create()
        other = make_business(self.db, owner=make_user(self.db), name="Other")

        with self.assertRaises(NotFoundError):
            CalendarService.get_calendar(self.db, other.id, calendar.id)
        self.assertEqual(CalendarService.list_calendars(self.db, other.id), [])

    def test_list_calendars_is_scoped(self):
        mine = self.create()
        other = make_business(self.db, owner=make_user(self.db), name="Other")
        make_calendar(self.db, other, self.owner)

        self.assertEqual([c.id for c in CalendarService.list_calendars(self.db, self.business.id)], [mine.id])

    def test_share_lookup_hides_inactive(self):
        calendar = self.create()
        self.assertEqual(CalendarService.get_calendar_by_share_id(self.db, calendar.share_id).id, calendar.id)

        calendar.status = "inactive"
        self.db.commit()
        with self.assertRaises(NotFoundError):
            CalendarService.get_calendar_by_share_id(self.db, calendar.share_id)

    def test_list_bookings_filters(self):
        calendar = self.create()
        past = make_booking(self.db, calendar, utc(2026, 1, 1, 9), utc(2026, 1, 1, 9, 30))
        future = make_booking(self.db, calendar, utc(2026, 1, 8, 9), utc(2026, 1, 8, 9, 30))
        cancelled = make_booking(
            self.db, calendar, utc(2026, 1, 9, 9), utc(2026, 1, 9, 9, 30), status=BookingStatus.CANCELLED
        )
        now = utc(2026, 1, 4, 12)

        all_ids = [b.id for b in CalendarService.list_bookings(self.db, self.business.id)]
        self.assertEqual(all_ids, [past.id, future.id, cancelled.id])

        upcoming = CalendarService.list_bookings(
            self.db, self.business.id, upcoming_only=True, include_cancelled=False, now=now
        )
        self.assertEqual([b.id for b in upcoming], [future.id])

        self.assertEqual(CalendarService.count_bookings(self.db, self.business.id, calendar.id), 3)
        self.assertEqual(CalendarService.count_bookings(self.db, self.business.id, status=BookingStatus.CANCELLED), 1)

        other = make_business(self.db, owner=make_user(self.db), name="Other")
        self.assertEqual(CalendarService.list_bookings(self.db, other.id), [])


class TestUpdateAndDelete(CalendarServiceTestCase):

    def test_partial_update_changes_only_sent_fields(self):
        calendar = self.create(description="Short chat", duration_minutes=45)

        updated = CalendarService.update_calendar(
            self.db, self.business.id, calendar.id, CalendarUpdateRequest(buffer_after_minutes=10)
        )

        self.assertEqual(updated.buffer_after_minutes, 10)
        self.assertEqual(updated.duration_minutes, 45)
        self.assertEqual(updated.description, "Short chat")

    def test_description_can_be_cleared(self):
        calendar = self.create(description="Short chat")
        updated = CalendarService.update_calendar(
            self.db, self.business.id, calendar.id, CalendarUpdateRequest(description=None)
        )
        self.assertIsNone(updated.description)

    def test_location_and_status_update(self):
        calendar = self.create()
        updated = CalendarService.update_calendar(
            self.db, self.business.id, calendar.id,
            CalendarUpdateRequest(location={"kind": "phone", "details": "+1 555 0100"}, status="inactive")
        )
        self.assertEqual(updated.location_type, "phone")
        self.assertEqual(updated.location.summary(), "+1 555 0100")
        self.assertFalse(updated.is_active)

    def test_rejected_update_leaves_calendar_untouched(self):
        calendar = self.create(duration_minutes=45)

        with self.assertRaises(ValidationError):
            CalendarService.update_calendar(
                self.db, self.business.id, calendar.id,
                CalendarUpdateRequest(duration_minutes=60, booking_window_days=400)
            )
        with self.assertRaises(ValidationError):
            CalendarService.update_calendar(
                self.db, self.business.id, calendar.id,
                CalendarUpdateRequest(duration_minutes=60, name="   ")
            )

        self.assertFalse(self.db.dirty)
        self.db.commit()
        self.db.refresh(calendar)
        self.assertEqual(calendar.duration_minutes, 45)
        self.assertEqual(calendar.booking_window_days, 30)

    def test_update_of_other_business_is_not_found(self):
        calendar = self.create()
        other = make_business(self.db, owner=make_user(self.db), name="Other")
        with self.assertRaises(NotFoundError):
            CalendarService.update_calendar(
                self.db, other.id, calendar.id, CalendarUpdateRequest(name="Hijacked")
            )

    def test_delete_removes_rules_and_bookings(self):
        calendar = make_calendar(self.db, self.business, self.owner, rules=[weekly(1, hm(9), hm(17))])
        make_booking(self.db, calendar, utc(2026, 1, 5, 9), utc(2026, 1, 5, 9, 30))

        CalendarService.delete_calendar(self.db, self.business.id, calendar.id)

        self.assertEqual(self.db.query(AppointmentCalendar).count(), 0)
        self.assertEqual(self.db.query(AvailabilityRule).count(), 0)
        self.assertEqual(self.db.query(Booking).count(), 0)

    def test_delete_unknown_calendar(self):
        with self.assertRaises(NotFoundError):
            CalendarService.delete_calendar(self.db, self.business.id, uuid.uuid4())


class TestReplaceRules(CalendarServiceTestCase):

    def setUp(self):
        super().setUp()
        self.calendar = self.create(availability_rules=[
            {"rule_type": "weekly", "day_of_week": 1, "start_minutes": hm(9), "end_minutes": hm(17)},
        ])

    def replace(self, *rules):
        return CalendarService.replace_availability_rules(
            self.db, self.business.id, self.calendar.id, replace_request(*rules)
        )

    def test_replaces_whole_set(self):
        saved = self.replace(
            {"rule_type": "weekly", "day_of_week": 2, "start_minutes": hm(8), "end_minutes": hm(12)},
            {"rule_type": "weekly", "day_of_week": 2, "start_minutes": hm(10), "end_minutes": hm(11),
             "is_unavailable": True},
        )

        self.assertEqual(rule_tuples(saved), [
            ("weekly", 2, None, hm(8), hm(12), False),
            ("weekly", 2, None, hm(10), hm(11), True),
        ])
        self.assertEqual(rule_tuples(CalendarService.get_rules(self.db, self.calendar.id)), rule_tuples(saved))

    def test_saved_order_does_not_depend_on_input_order(self):
        rules = [
            {"rule_type": "weekly", "day_of_week": 4, "start_minutes": hm(13), "end_minutes": hm(17)},
            {"rule_type": "date", "specific_date": "2026-03-02", "start_minutes": 0, "end_minutes": 1440,
             "is_unavailable": True},
            {"rule_type": "weekly", "day_of_week": 4, "start_minutes": hm(9), "end_minutes": hm(12)},
        ]
        forward = rule_tuples(self.replace(*rules))
        backward = rule_tuples(self.replace(*reversed(rules)))

        self.assertEqual(forward, backward)
        self.assertEqual(forward[0][0], "date")

    def test_empty_set_clears_rules(self):
        self.assertEqual(self.replace(), [])
        self.assertEqual(CalendarService.get_rules(self.db, self.calendar.id), [])

    def test_invalid_set_keeps_previous_rules(self):
        before = rule_tuples(CalendarService.get_rules(self.db, self.calendar.id))

        with self.assertRaises(ValidationError) as ctx:
            self.replace(
                {"rule_type": "weekly", "day_of_week": 1, "start_minutes": hm(9), "end_minutes": hm(12)},
                {"rule_type": "weekly", "day_of_week": 1, "start_minutes": hm(11), "end_minutes": hm(14)},
            )

        self.assertEqual(ctx.exception.code, "overlapping_rules")
        self.assertEqual(rule_tuples(CalendarService.get_rules(self.db, self.calendar.id)), before)

    def test_malformed_rule_is_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            self.replace({"rule_type": "weekly", "day_of_week": 1, "start_minutes": hm(12), "end_minutes": hm(9)})
        self.assertEqual(ctx.exception.code, "invalid_rule")

    def test_other_business_cannot_replace(self):
        other = make_business(self.db, owner=make_user(self.db), name="Other")
        with self.assertRaises(NotFoundError):
            CalendarService.replace_availability_rules(
                self.db, other.id, self.calendar.id,
                replace_request({"rule_type": "weekly", "day_of_week": 1, "start_minutes": 0, "end_minutes": 60})
            )


if __name__ == "__main__":
    unittest.main()

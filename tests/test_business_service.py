"""Tests for business membership resolution"""
import unittest

from app.core.exceptions import PermissionDeniedError
from app.models import BusinessRole
from app.services.business.business_service import BusinessService

from tests.support import add_member, make_business, make_session_factory, make_user


class TestBusinessContext(unittest.TestCase):

    def setUp(self):
        self.db = make_session_factory()()
        self.owner = make_user(self.db)
        self.business = make_business(self.db, owner=self.owner, timezone="Europe/Berlin")

    def tearDown(self):
        self.db.close()

    def test_owner_resolves_to_owned_business(self):
        context = BusinessService.get_business_context(self.db, self.owner.id)

        self.assertEqual(context.business_id, self.business.id)
        self.assertEqual(context.role, BusinessRole.OWNER)
        self.assertEqual(context.timezone, "Europe/Berlin")
        self.assertTrue(context.can_manage)

    def test_admin_member_can_manage(self):
        admin = make_user(self.db)
        add_member(self.db, admin, self.business, role=BusinessRole.ADMIN)

        context = BusinessService.get_business_context(self.db, admin.id)

        self.assertEqual(context.business_id, self.business.id)
        self.assertEqual(context.role, BusinessRole.ADMIN)
        BusinessService.ensure_can_manage(context)

    def test_guest_member_is_read_only(self):
        guest = make_user(self.db)
        add_member(self.db, guest, self.business, role=BusinessRole.GUEST)

        context = BusinessService.get_business_context(self.db, guest.id)

        self.assertEqual(context.role, BusinessRole.GUEST)
        self.assertFalse(context.can_manage)
        with self.assertRaises(PermissionDeniedError) as ctx:
            BusinessService.ensure_can_manage(context)
        self.assertEqual(ctx.exception.status_code, 403)

    def test_user_without_business(self):
        loner = make_user(self.db)
        self.assertIsNone(BusinessService.get_business_context(self.db, loner.id))

    def test_inactive_business_is_ignored(self):
        self.business.is_active = False
        self.db.commit()
        self.assertIsNone(BusinessService.get_business_context(self.db, self.owner.id))

    def test_role_lookup(self):
        guest = make_user(self.db)
        add_member(self.db, guest, self.business)

        self.assertEqual(
            BusinessService.get_user_role_in_business(self.db, guest.id, self.business.id),
            BusinessRole.GUEST
        )
        self.assertIsNone(BusinessService.get_user_role_in_business(self.db, self.owner.id, self.business.id))


if __name__ == "__main__":
    unittest.main()

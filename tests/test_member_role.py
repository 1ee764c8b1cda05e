from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from core.member_role import managed_role_id, reconcile_member_role
from core.platform import RoleAttributes
from core.state import MemberRoleRecord, StateStore

from fakes import FakePlatform

GUILD = 1
CONFIGURED = 900


class MemberRoleTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "state.json"
        self.store = StateStore(self.path)
        self.platform = FakePlatform()

    def tearDown(self):
        self._tmp.cleanup()

    def test_managed_role_prefers_stored_id(self):
        self.assertEqual(managed_role_id(self.store, CONFIGURED), CONFIGURED)
        self.store.state.member = MemberRoleRecord(role_id=1234)
        self.assertEqual(managed_role_id(self.store, CONFIGURED), 1234)

    async def test_configured_role_is_recorded(self):
        self.platform.roles[CONFIGURED] = RoleAttributes(name="Membre")
        role_id = await reconcile_member_role(self.platform, self.store, GUILD, CONFIGURED)
        self.assertEqual(role_id, CONFIGURED)
        self.assertEqual(StateStore.load(self.path).member_role_id, CONFIGURED)

    async def test_valid_stored_role_is_kept_without_write(self):
        self.platform.roles[1234] = RoleAttributes(name="Membre")
        self.store.state.member = MemberRoleRecord(role_id=1234)
        role_id = await reconcile_member_role(self.platform, self.store, GUILD, CONFIGURED)
        self.assertEqual(role_id, 1234)
        self.assertEqual(self.platform.calls, [("get_role", 1234)])
        self.assertFalse(self.path.exists())

    async def test_stale_stored_role_falls_back_to_configuration(self):
        self.platform.roles[CONFIGURED] = RoleAttributes(name="Membre")
        self.store.state.member = MemberRoleRecord(role_id=1234)
        role_id = await reconcile_member_role(self.platform, self.store, GUILD, CONFIGURED)
        self.assertEqual(role_id, CONFIGURED)
        self.assertEqual(self.store.member_role_id, CONFIGURED)

    async def test_no_valid_role_returns_configuration(self):
        role_id = await reconcile_member_role(self.platform, self.store, GUILD, CONFIGURED)
        self.assertEqual(role_id, CONFIGURED)
        self.assertIsNone(self.store.member_role_id)


if __name__ == "__main__":
    unittest.main()

from __future__ import annotations

import unittest

from core.errors import ConfigError, Unauthorized
from core.permissions import DENIED_MESSAGE, AuthorizationGate, Permission

from fakes import FakePlatform, make_interaction

GUILD = 1
ADMIN = 77
MODERATOR_ROLE = 500


class PermissionParseTests(unittest.TestCase):
    def test_user_and_role_entries(self):
        self.assertEqual(Permission.parse({"user": 12}), Permission(kind="user", id=12))
        self.assertEqual(Permission.parse({"role": "34"}), Permission(kind="role", id=34))

    def test_invalid_entries_are_rejected(self):
        for entry in ({}, {"user": 1, "role": 2}, {"group": 3}, {"role": "abc"}, [("user", 1)], "user=1"):
            with self.subTest(entry=entry):
                with self.assertRaises(ConfigError):
                    Permission.parse(entry)


class AuthorizationGateTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.platform = FakePlatform()
        rules = [Permission("user", ADMIN), Permission("role", MODERATOR_ROLE)]
        self.gate = AuthorizationGate(rules, self.platform, GUILD)

    def test_authorize(self):
        self.gate.authorize(ADMIN, [])
        self.gate.authorize(3, [1, MODERATOR_ROLE])
        with self.assertRaises(Unauthorized) as cm:
            self.gate.authorize(3, [1, 2])
        self.assertEqual(cm.exception.user_id, 3)

    def test_empty_rule_set_denies_everyone(self):
        gate = AuthorizationGate([], self.platform, GUILD)
        self.assertFalse(gate.permits(ADMIN, [MODERATOR_ROLE]))

    async def test_user_rule_skips_role_lookup(self):
        inter = make_interaction(ADMIN)
        self.assertTrue(await self.gate.check(inter))
        self.assertEqual(self.platform.calls, [])
        inter.response.send_message.assert_not_awaited()

    async def test_role_rule_uses_interaction_roles(self):
        inter = make_interaction(3, roles=[MODERATOR_ROLE])
        self.assertTrue(await self.gate.check(inter))
        self.assertEqual(self.platform.calls, [])

    async def test_missing_roles_are_fetched(self):
        self.platform.member_roles[3] = frozenset({MODERATOR_ROLE})
        inter = make_interaction(3)
        self.assertTrue(await self.gate.check(inter))
        self.assertEqual(self.platform.calls, [("fetch_member", 3)])

    async def test_denial_replies_ephemerally(self):
        inter = make_interaction(3, roles=[1])
        self.assertFalse(await self.gate.check(inter))
        inter.response.send_message.assert_awaited_once_with(DENIED_MESSAGE, ephemeral=True)

    async def test_denial_after_defer_uses_followup(self):
        inter = make_interaction(3, roles=[1], done=True)
        self.assertFalse(await self.gate.check(inter))
        inter.followup.send.assert_awaited_once_with(DENIED_MESSAGE, ephemeral=True)
        inter.response.send_message.assert_not_awaited()

    async def test_unknown_member_is_denied(self):
        inter = make_interaction(3)
        self.assertFalse(await self.gate.check(inter))
        inter.response.send_message.assert_awaited_once()


if __name__ == "__main__":
    unittest.main()

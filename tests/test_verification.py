from __future__ import annotations

import unittest

from core.ebas import MembershipStatus
from core.verification import VerificationOutcome, verify_member

from fakes import FakePlatform

GUILD = 1
ROLE = 900
USER = 33


class FakeOracle:
    def __init__(self, status: MembershipStatus):
        self.status = status
        self.emails: list[str] = []

    async def verify_membership(self, email):
        self.emails.append(email)
        return self.status


class VerifyMemberTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.platform = FakePlatform()

    async def verify(self, oracle, email="jane@example.org"):
        return await verify_member(oracle, self.platform, guild_id=GUILD, role_id=ROLE, user_id=USER, email=email)

    async def test_member_is_granted_role_once(self):
        oracle = FakeOracle(MembershipStatus.MEMBER)
        outcome = await self.verify(oracle, "  jane@example.org ")
        self.assertIs(outcome, VerificationOutcome.VERIFIED)
        self.assertEqual(oracle.emails, ["jane@example.org"])
        self.assertEqual(self.platform.calls, [("grant", USER, ROLE)])

    async def test_negative_or_error_answer_grants_nothing(self):
        for status in (MembershipStatus.NOT_MEMBER, MembershipStatus.ERROR):
            with self.subTest(status=status):
                outcome = await self.verify(FakeOracle(status))
                self.assertIs(outcome, VerificationOutcome.NOT_VERIFIED)
                self.assertEqual(self.platform.count("grant"), 0)

    async def test_grant_failure_is_reported_separately(self):
        self.platform.fail_grant = True
        outcome = await self.verify(FakeOracle(MembershipStatus.MEMBER))
        self.assertIs(outcome, VerificationOutcome.GRANT_FAILED)
        self.assertEqual(self.platform.count("grant"), 1)

    async def test_blank_email_skips_oracle(self):
        oracle = FakeOracle(MembershipStatus.MEMBER)
        outcome = await self.verify(oracle, "   ")
        self.assertIs(outcome, VerificationOutcome.NOT_VERIFIED)
        self.assertEqual(oracle.emails, [])
        self.assertEqual(self.platform.calls, [])


if __name__ == "__main__":
    unittest.main()

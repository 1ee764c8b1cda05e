from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from unittest import mock

from core.errors import RemoteFailure, StateWriteError
from core.state import StateStore, WelcomeRecord
from core.welcome import DesiredAnnouncement, ReconcileOutcome, reconcile_welcome

from fakes import FakePlatform

CHANNEL = 42


class ReconcileWelcomeTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "state.json"
        self.store = StateStore(self.path)
        self.platform = FakePlatform()
        self.desired = DesiredAnnouncement(channel_id=CHANNEL, content="Welcome!")

    def tearDown(self):
        self._tmp.cleanup()

    async def test_no_desired_content_makes_no_remote_call(self):
        outcome = await reconcile_welcome(self.platform, self.store, None)
        self.assertIs(outcome, ReconcileOutcome.SKIPPED)
        self.assertEqual(self.platform.calls, [])

    async def test_blank_content_is_treated_as_absent(self):
        outcome = await reconcile_welcome(self.platform, self.store, DesiredAnnouncement(CHANNEL, "  \n"))
        self.assertIs(outcome, ReconcileOutcome.SKIPPED)
        self.assertEqual(self.platform.calls, [])

    async def test_first_run_posts_then_second_run_writes_nothing(self):
        first = await reconcile_welcome(self.platform, self.store, self.desired)
        self.assertIs(first, ReconcileOutcome.POSTED)
        self.assertEqual(self.platform.writes, 1)
        message_id = self.store.welcome_message_id
        self.assertEqual(self.platform.messages[message_id], "Welcome!")
        self.assertEqual(StateStore.load(self.path).welcome_message_id, message_id)

        second = await reconcile_welcome(self.platform, self.store, self.desired)
        self.assertIs(second, ReconcileOutcome.UNCHANGED)
        self.assertEqual(self.platform.writes, 1)
        self.assertEqual(self.platform.count("get"), 1)
        self.assertEqual(self.store.welcome_message_id, message_id)

    async def test_deleted_message_is_reposted(self):
        self.store.state.welcome = WelcomeRecord(message_id=7)
        outcome = await reconcile_welcome(self.platform, self.store, self.desired)
        self.assertIs(outcome, ReconcileOutcome.REPOSTED)
        self.assertNotEqual(self.store.welcome_message_id, 7)
        self.assertEqual(self.platform.messages[self.store.welcome_message_id], "Welcome!")
        self.assertEqual(self.platform.writes, 1)

    async def test_stale_content_is_edited_in_place(self):
        self.platform.messages[7] = "Old text"
        self.store.state.welcome = WelcomeRecord(message_id=7)
        outcome = await reconcile_welcome(self.platform, self.store, self.desired)
        self.assertIs(outcome, ReconcileOutcome.EDITED)
        self.assertEqual(self.store.welcome_message_id, 7)
        self.assertEqual(self.platform.messages[7], "Welcome!")
        self.assertEqual(self.platform.count("post"), 0)

    async def test_matching_content_with_trailing_newline_is_unchanged(self):
        self.platform.messages[7] = "Welcome!"
        self.store.state.welcome = WelcomeRecord(message_id=7)
        outcome = await reconcile_welcome(self.platform, self.store, DesiredAnnouncement(CHANNEL, "Welcome!\n"))
        self.assertIs(outcome, ReconcileOutcome.UNCHANGED)
        self.assertEqual(self.platform.writes, 0)

    async def test_message_deleted_between_fetch_and_edit_is_reposted(self):
        self.platform.messages[7] = "Old text"
        self.platform.delete_on_edit = True
        self.store.state.welcome = WelcomeRecord(message_id=7)
        outcome = await reconcile_welcome(self.platform, self.store, self.desired)
        self.assertIs(outcome, ReconcileOutcome.REPOSTED)
        self.assertEqual(self.platform.messages[self.store.welcome_message_id], "Welcome!")

    async def test_persist_failure_keeps_remote_post(self):
        with mock.patch.object(StateStore, "save", side_effect=StateWriteError("disk full")):
            outcome = await reconcile_welcome(self.platform, self.store, self.desired)
        self.assertIs(outcome, ReconcileOutcome.POSTED)
        self.assertIsNotNone(self.store.welcome_message_id)
        self.assertFalse(self.path.exists())

    async def test_remote_failure_propagates(self):
        self.platform.fail_post = True
        with self.assertRaises(RemoteFailure):
            await reconcile_welcome(self.platform, self.store, self.desired)
        self.assertIsNone(self.store.welcome_message_id)


if __name__ == "__main__":
    unittest.main()

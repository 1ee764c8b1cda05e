from __future__ import annotations

import os
import tempfile
import textwrap
import unittest
from pathlib import Path
from unittest import mock

from core.config import load_config, load_secrets
from core.errors import ConfigError
from core.permissions import Permission

BASE = """
guild = 1
[welcome]
channel = 2
{welcome}
[ebas]
url = "https://ebas.example/api"
[member]
role = 3
{member}
"""


class LoadConfigTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def write(self, welcome: str = "", member: str = "") -> Path:
        path = self.dir / "config.toml"
        path.write_text(textwrap.dedent(BASE.format(welcome=welcome, member=member)), encoding="utf-8")
        return path

    def test_minimal_configuration(self):
        cfg = load_config(self.write())
        self.assertEqual(cfg.guild_id, 1)
        self.assertEqual(cfg.welcome.channel_id, 2)
        self.assertIsNone(cfg.welcome.desired())
        self.assertEqual(cfg.member.role_id, 3)
        self.assertEqual(cfg.member.strategy, "revoke")
        self.assertEqual(cfg.member.purge_permissions, ())
        self.assertEqual(cfg.ebas.url, "https://ebas.example/api")

    def test_inline_text_wins_over_file(self):
        (self.dir / "welcome.md").write_text("From file", encoding="utf-8")
        cfg = load_config(self.write(welcome='text = "Inline"\nfile = "welcome.md"'))
        self.assertEqual(cfg.welcome.content(), "Inline")

    def test_file_is_relative_to_configuration(self):
        (self.dir / "welcome.md").write_text("Bienvenue !\n", encoding="utf-8")
        cfg = load_config(self.write(welcome='file = "welcome.md"'))
        desired = cfg.welcome.desired()
        self.assertEqual(desired.channel_id, 2)
        self.assertEqual(desired.content, "Bienvenue !\n")

    def test_missing_welcome_file_is_an_error(self):
        with self.assertRaises(ConfigError):
            load_config(self.write(welcome='file = "absent.md"'))

    def test_permissions_and_sync_default(self):
        cfg = load_config(self.write(member='permission.purge = [{ user = 11 }, { role = 22 }]'))
        expected = (Permission("user", 11), Permission("role", 22))
        self.assertEqual(cfg.member.purge_permissions, expected)
        self.assertEqual(cfg.welcome.sync_permissions, expected)

    def test_explicit_sync_permissions(self):
        cfg = load_config(self.write(
            welcome='permission.sync = [{ user = 5 }]',
            member='permission.purge = [{ user = 11 }]',
        ))
        self.assertEqual(cfg.welcome.sync_permissions, (Permission("user", 5),))

    def test_invalid_values(self):
        cases = (
            ("", 'strategy = "shred"'),
            ("", 'confirm_timeout = 0'),
            ("", 'permission.purge = [{ group = 1 }]'),
            ("text = 12", ""),
        )
        for welcome, member in cases:
            with self.subTest(welcome=welcome, member=member):
                with self.assertRaises(ConfigError):
                    load_config(self.write(welcome=welcome, member=member))

    def test_missing_file_and_bad_toml(self):
        with self.assertRaises(ConfigError):
            load_config(self.dir / "nope.toml")
        bad = self.dir / "bad.toml"
        bad.write_text("guild = ", encoding="utf-8")
        with self.assertRaises(ConfigError):
            load_config(bad)


class LoadSecretsTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / ".env"

    def tearDown(self):
        self._tmp.cleanup()

    @mock.patch.dict(os.environ, {}, clear=True)
    def test_file_values(self):
        self.path.write_text("BOT_TOKEN=abc\nEBAS_API_KEY=key\nEBAS_ASSOCIATION_ID=42\n", encoding="utf-8")
        secrets = load_secrets(self.path)
        self.assertEqual(secrets.bot_token, "abc")
        self.assertEqual(secrets.ebas_association_id, "42")
        self.assertIsNone(secrets.application_id)
        self.assertNotIn("abc", repr(secrets))

    @mock.patch.dict(os.environ, {"BOT_TOKEN": "from-env", "APPLICATION_ID": "99"}, clear=True)
    def test_environment_overrides_file(self):
        self.path.write_text("BOT_TOKEN=abc\nEBAS_API_KEY=key\nEBAS_ASSOCIATION_ID=42\n", encoding="utf-8")
        secrets = load_secrets(self.path)
        self.assertEqual(secrets.bot_token, "from-env")
        self.assertEqual(secrets.application_id, 99)

    @mock.patch.dict(os.environ, {}, clear=True)
    def test_missing_keys(self):
        self.path.write_text("BOT_TOKEN=abc\n", encoding="utf-8")
        with self.assertRaises(ConfigError):
            load_secrets(self.path)

    @mock.patch.dict(os.environ, {}, clear=True)
    def test_missing_file(self):
        with self.assertRaises(ConfigError):
            load_secrets(self.path)


if __name__ == "__main__":
    unittest.main()

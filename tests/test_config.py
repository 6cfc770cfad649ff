"""Tests for settings loading: JSON file, environment overrides, scope normalization."""

import json
import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from graph_tutorial.config import Settings, load_settings, split_scopes
from graph_tutorial.errors import InvalidConfiguration

SETTINGS_ENV = ("CLIENT_ID", "TENANT_ID", "GRAPH_USER_SCOPES")


def _write_settings(directory: str, payload) -> Path:
    path = Path(directory) / "appsettings.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


class TestLoadSettings(unittest.TestCase):
    def setUp(self):
        patcher = patch.dict(os.environ)
        patcher.start()
        self.addCleanup(patcher.stop)
        for key in SETTINGS_ENV:
            os.environ.pop(key, None)

    def test_reads_settings_section(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = _write_settings(tmp, {
                "settings": {
                    "clientId": "client-123",
                    "tenantId": "contoso.onmicrosoft.com",
                    "graphUserScopes": ["user.read", "mail.read", "mail.send", "Files.ReadWrite"],
                }
            })
            settings = load_settings(path)
        self.assertEqual(settings.client_id, "client-123")
        self.assertEqual(settings.tenant_id, "contoso.onmicrosoft.com")
        self.assertEqual(settings.graph_user_scopes, ("user.read", "mail.read", "mail.send", "Files.ReadWrite"))

    def test_tenant_defaults_to_common(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = _write_settings(tmp, {"clientId": "client-123", "graphUserScopes": "User.Read"})
            settings = load_settings(path)
        self.assertEqual(settings.tenant_id, "common")
        self.assertEqual(settings.graph_user_scopes, ("User.Read",))

    def test_environment_overrides_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = _write_settings(tmp, {"clientId": "from-file", "graphUserScopes": ["User.Read"]})
            os.environ["CLIENT_ID"] = "from-env"
            os.environ["GRAPH_USER_SCOPES"] = "User.Read, Mail.Read Mail.Send"
            settings = load_settings(path)
        self.assertEqual(settings.client_id, "from-env")
        self.assertEqual(settings.graph_user_scopes, ("User.Read", "Mail.Read", "Mail.Send"))

    def test_missing_client_id_is_invalid(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = _write_settings(tmp, {"graphUserScopes": ["User.Read"]})
            with self.assertRaises(InvalidConfiguration) as ctx:
                load_settings(path)
        self.assertIn("clientId", str(ctx.exception))

    def test_empty_scopes_are_invalid(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = _write_settings(tmp, {"clientId": "client-123", "graphUserScopes": []})
            with self.assertRaises(InvalidConfiguration):
                load_settings(path)

    def test_unreadable_file_is_invalid(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "appsettings.json"
            path.write_text("{not json", encoding="utf-8")
            with self.assertRaises(InvalidConfiguration):
                load_settings(path)
            with self.assertRaises(InvalidConfiguration):
                load_settings(Path(tmp) / "missing.json")


class TestScopes(unittest.TestCase):
    def test_split_scopes(self):
        self.assertEqual(split_scopes("a,b  c,,d"), ["a", "b", "c", "d"])
        self.assertEqual(split_scopes(""), [])

    def test_duplicates_removed_in_order(self):
        settings = Settings(client_id="c", graph_user_scopes=["Mail.Read", "User.Read", "Mail.Read", " "])
        self.assertEqual(settings.graph_user_scopes, ("Mail.Read", "User.Read"))

    def test_blank_client_id_rejected(self):
        with self.assertRaises(ValueError):
            Settings(client_id="   ", graph_user_scopes=["User.Read"])


if __name__ == "__main__":
    unittest.main()

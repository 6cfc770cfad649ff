"""Tests for the logging processors."""

import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from graph_tutorial.config import LOG_FILE
from graph_tutorial.utils.logger import get_logger, redact_secrets


def test_redact_secrets_masks_credentials():
    event = redact_secrets(None, "info", {
        "event": "auth.token.acquired",
        "access_token": "eyJ0eXAiOiJKV1Qi",
        "password": "hunter2",
        "scopes": ["User.Read"],
    })
    assert event["access_token"] == "<redacted len=16>"
    assert event["password"] == "<redacted len=7>"
    assert event["scopes"] == ["User.Read"]
    assert event["event"] == "auth.token.acquired"


def test_redact_secrets_leaves_empty_values():
    event = redact_secrets(None, "info", {"event": "x", "password": None})
    assert event["password"] is None


def test_file_handler_installed_once():
    get_logger("graph_tutorial.test")
    get_logger("graph_tutorial.test.other")
    jsonl = [
        h for h in logging.getLogger().handlers
        if isinstance(h, logging.FileHandler) and Path(h.baseFilename) == LOG_FILE.resolve()
    ]
    assert len(jsonl) == 1

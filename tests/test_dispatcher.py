"""Tests for OperationRegistry and Dispatcher: ordering, selector parsing, exit and failure isolation."""

import asyncio
import io
import sys
import tempfile
import unittest
from pathlib import Path

from rich.console import Console

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from graph_tutorial.cli.menu_mode import build_menu
from graph_tutorial.errors import MalformedInput, RemoteOperationFailure
from graph_tutorial.operations import Dispatcher, OperationRegistry, parse_selector
from graph_tutorial.operations.dispatcher import MENU_HEADER
from graph_tutorial.remote import LocalGraphMock, RemoteSession


def scripted_input(*lines: str):
    """read_line that returns the given lines, then behaves like a closed stdin."""
    pending = list(lines)

    async def read_line(prompt: str) -> str:
        if not pending:
            raise EOFError
        return pending.pop(0)

    return read_line


def _console() -> Console:
    return Console(file=io.StringIO(), width=120, color_system=None)


class Recorder:
    def __init__(self):
        self.calls = []

    def action(self, name: str, error: Exception | None = None):
        async def run() -> None:
            self.calls.append(name)
            if error is not None:
                raise error

        return run


def _registry(recorder: Recorder) -> OperationRegistry:
    registry = OperationRegistry()
    registry.add_exit("Exit", recorder.action("exit"))
    registry.add(1, "First", recorder.action("first"))
    registry.add(2, "Second", recorder.action("second"))
    return registry


class TestOperationRegistry(unittest.TestCase):
    def test_menu_lines_follow_insertion_order(self):
        registry = _registry(Recorder())
        self.assertEqual(registry.menu_lines(), ["0. Exit", "1. First", "2. Second"])
        self.assertEqual(len(registry), 3)
        self.assertIn(2, registry)
        self.assertIsNone(registry.get(7))

    def test_exit_key_is_reserved(self):
        registry = OperationRegistry()
        with self.assertRaises(ValueError):
            registry.add(0, "Not exit", Recorder().action("x"))

    def test_duplicate_key_rejected(self):
        registry = _registry(Recorder())
        with self.assertRaises(ValueError):
            registry.add(1, "Again", Recorder().action("again"))
        with self.assertRaises(ValueError):
            registry.add_exit("Quit", Recorder().action("quit"))

    def test_register_decorator(self):
        registry = OperationRegistry()

        @registry.register(3, "Third")
        async def third() -> None:
            return None

        self.assertIs(registry.get(3).action, third)

    def test_dispatcher_requires_exit(self):
        registry = OperationRegistry()
        registry.add(1, "Only", Recorder().action("only"))
        with self.assertRaises(ValueError):
            Dispatcher(registry, console=_console())


class TestParseSelector(unittest.TestCase):
    def test_integers(self):
        self.assertEqual(parse_selector("3"), 3)
        self.assertEqual(parse_selector(" 10 \n"), 10)
        self.assertEqual(parse_selector("-1"), -1)

    def test_malformed(self):
        for raw in ("", "abc", "1.5", None, "one"):
            with self.subTest(raw=raw):
                with self.assertRaises(MalformedInput):
                    parse_selector(raw)


class TestDispatcher(unittest.TestCase):
    def test_unparsable_input_redisplays_menu(self):
        """Each bad line brings the menu back; nothing runs until a valid selector."""
        recorder = Recorder()
        console = _console()
        dispatcher = Dispatcher(_registry(recorder), console=console, read_line=scripted_input("abc", "", "99", "-1", "0"))
        executed = asyncio.run(dispatcher.run())
        self.assertEqual(executed, 0)
        self.assertEqual(recorder.calls, ["exit"])
        self.assertEqual(console.file.getvalue().count(MENU_HEADER), 5)

    def test_operations_run_in_order_and_exit_once(self):
        recorder = Recorder()
        dispatcher = Dispatcher(_registry(recorder), console=_console(), read_line=scripted_input("1", "2", "1", "0", "2"))
        executed = asyncio.run(dispatcher.run())
        self.assertEqual(executed, 3)
        self.assertEqual(recorder.calls, ["first", "second", "first", "exit"])

    def test_failing_operation_does_not_stop_loop(self):
        recorder = Recorder()
        registry = OperationRegistry()
        registry.add_exit("Exit", recorder.action("exit"))
        registry.add(1, "Remote", recorder.action("remote", RemoteOperationFailure("accessDenied", status_code=403)))
        registry.add(2, "Broken", recorder.action("broken", RuntimeError("boom")))
        registry.add(3, "Fine", recorder.action("fine"))
        console = _console()
        dispatcher = Dispatcher(registry, console=console, read_line=scripted_input("1", "2", "3", "0"))
        executed = asyncio.run(dispatcher.run())
        self.assertEqual(recorder.calls, ["remote", "broken", "fine", "exit"])
        self.assertEqual(executed, 3)
        output = console.file.getvalue()
        self.assertIn("Remote failed: accessDenied (HTTP 403)", output)
        self.assertIn("Broken failed unexpectedly: boom", output)

    def test_end_of_input_exits(self):
        recorder = Recorder()
        dispatcher = Dispatcher(_registry(recorder), console=_console(), read_line=scripted_input("1"))
        executed = asyncio.run(dispatcher.run())
        self.assertEqual(executed, 1)
        self.assertEqual(recorder.calls, ["first", "exit"])


class TestBuildMenu(unittest.TestCase):
    def test_menu_entries(self):
        with tempfile.TemporaryDirectory() as tmp:
            registry = build_menu(RemoteSession.offline(LocalGraphMock(Path(tmp))), out=_console())
        self.assertEqual(
            registry.menu_lines(),
            [
                "0. Exit",
                "1. Display access token",
                "2. Who am I",
                "3. List my inbox",
                "4. Send mail",
                "5. OneDrive Root Children",
                "6. OneDrive Root Upload",
                "7. OneDrive Root Delete",
                "8. OneDrive Root Download",
                "9. OneDrive Root Upload Large Files",
                "10. OneDrive Create Link",
            ],
        )

    def test_offline_menu_session(self):
        """Upload, list, link and send mail against the local drive; display token fails but the loop continues."""
        with tempfile.TemporaryDirectory() as tmp:
            out = _console()
            registry = build_menu(RemoteSession.offline(LocalGraphMock(Path(tmp))), out=out)
            dispatcher = Dispatcher(registry, console=out, read_line=scripted_input("6", "5", "1", "2", "4", "0"))
            executed = asyncio.run(dispatcher.run())
            output = out.file.getvalue()
            self.assertEqual(executed, 5)
            self.assertIn("Uploaded test.txt.", output)
            self.assertIn("test.txt", output)
            self.assertIn("Display access token failed", output)
            self.assertIn("Hello, Offline User!", output)
            self.assertIn("Mail sent to offline.user@example.com.", output)
            self.assertIn("Goodbye...", output)
            self.assertTrue((Path(tmp) / "sent_items.json").exists())


if __name__ == "__main__":
    unittest.main()

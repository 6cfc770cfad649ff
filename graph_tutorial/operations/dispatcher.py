"""Menu loop: show operations, read a selector, run the matching operation, repeat until exit."""

import asyncio
from collections.abc import Awaitable, Callable

from rich.console import Console
from rich.markup import escape

from graph_tutorial.errors import GraphTutorialError, MalformedInput
from graph_tutorial.operations.registry import EXIT_KEY, OperationEntry, OperationRegistry
from graph_tutorial.utils.logger import bind_context, get_logger, unbind_context

logger = get_logger("graph_tutorial.operations.dispatcher")

MENU_HEADER = "Please choose one of the following options:"

ReadLine = Callable[[str], Awaitable[str]]


def parse_selector(raw: str | None) -> int:
    """Parse a menu selector. Raises MalformedInput when it is not an integer."""
    try:
        return int((raw or "").strip())
    except ValueError as e:
        raise MalformedInput(f"Not a menu number: {raw!r}") from e


class Dispatcher:
    """Runs one operation at a time; only the exit key ends the loop.

    Unparsable or unknown selectors just redisplay the menu. A failing operation is logged and
    reported, then the menu comes back.
    """

    def __init__(
        self,
        registry: OperationRegistry,
        console: Console | None = None,
        read_line: ReadLine | None = None,
    ):
        if not registry.has_exit:
            raise ValueError(f"Registry needs an exit operation under key {EXIT_KEY}")
        self._registry = registry
        self._console = console or Console()
        self._read_line = read_line or self._read_console_line

    async def _read_console_line(self, prompt: str) -> str:
        """Blocking console read, run in the default executor so the event loop stays free."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._console.input, prompt)

    def show_menu(self) -> None:
        self._console.print(MENU_HEADER)
        for line in self._registry.menu_lines():
            self._console.print(escape(line))

    async def run(self) -> int:
        """Loop until the exit operation is chosen. Returns the number of non-exit operations run."""
        executed = 0
        while True:
            self.show_menu()
            try:
                raw = await self._read_line("")
            except EOFError:
                logger.info("dispatcher.input_closed")
                raw = str(EXIT_KEY)

            try:
                key = parse_selector(raw)
            except MalformedInput:
                logger.debug("dispatcher.malformed_input", raw=raw)
                continue

            entry = self._registry.get(key)
            if entry is None:
                logger.debug("dispatcher.unmapped_key", key=key)
                continue

            await self.invoke(entry)
            if entry.key == EXIT_KEY:
                logger.info("dispatcher.exit", executed=executed)
                return executed
            executed += 1

    async def invoke(self, entry: OperationEntry) -> bool:
        """Run one operation; failures are reported, never raised. Returns True on success."""
        bind_context(operation=entry.label)
        log = logger.bind(key=entry.key, label=entry.label)
        log.info("dispatcher.invoke")
        try:
            await entry.action()
        except GraphTutorialError as e:
            log.warning("dispatcher.operation_failed", error=str(e), error_type=type(e).__name__)
            self._console.print(f"[red]{escape(entry.label)} failed: {escape(str(e))}[/red]")
            return False
        except Exception as e:
            log.exception("dispatcher.operation_error")
            self._console.print(f"[red]{escape(entry.label)} failed unexpectedly: {escape(str(e) or repr(e))}[/red]")
            return False
        finally:
            unbind_context("operation")
        return True

"""Operation registry: maps menu selectors (integers) to labelled async actions."""

from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass

from graph_tutorial.utils.logger import get_logger

logger = get_logger("graph_tutorial.operations.registry")

EXIT_KEY = 0

Action = Callable[[], Awaitable[None]]


@dataclass(frozen=True)
class OperationEntry:
    key: int
    label: str
    action: Action


class OperationRegistry:
    """Ordered selector -> operation mapping. Insertion order is display order; key 0 is the exit entry."""

    def __init__(self) -> None:
        self._entries: dict[int, OperationEntry] = {}

    def add(self, key: int, label: str, action: Action) -> OperationEntry:
        """Register an operation. Raises ValueError on duplicate keys or on key 0."""
        if key == EXIT_KEY:
            raise ValueError(f"Key {EXIT_KEY} is reserved for the exit operation; use add_exit()")
        return self._add(OperationEntry(key=key, label=label, action=action))

    def add_exit(self, label: str, action: Action) -> OperationEntry:
        return self._add(OperationEntry(key=EXIT_KEY, label=label, action=action))

    def register(self, key: int, label: str):
        """Decorator form of add()."""

        def decorator(fn: Action) -> Action:
            self.add(key, label, fn)
            return fn

        return decorator

    def _add(self, entry: OperationEntry) -> OperationEntry:
        if entry.key in self._entries:
            raise ValueError(
                f"Duplicate operation key: {entry.key!r} ({self._entries[entry.key].label!r})"
            )
        self._entries[entry.key] = entry
        logger.debug("registry.add", key=entry.key, label=entry.label)
        return entry

    def get(self, key: int) -> OperationEntry | None:
        return self._entries.get(key)

    @property
    def has_exit(self) -> bool:
        return EXIT_KEY in self._entries

    def menu_lines(self) -> list[str]:
        return [f"{entry.key}. {entry.label}" for entry in self._entries.values()]

    def __iter__(self) -> Iterator[OperationEntry]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

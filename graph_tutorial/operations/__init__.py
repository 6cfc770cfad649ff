"""Menu operations: registry, dispatcher loop and the Graph operations themselves."""

from graph_tutorial.operations.dispatcher import Dispatcher, parse_selector
from graph_tutorial.operations.registry import EXIT_KEY, OperationEntry, OperationRegistry

__all__ = [
    "Dispatcher",
    "EXIT_KEY",
    "OperationEntry",
    "OperationRegistry",
    "parse_selector",
]

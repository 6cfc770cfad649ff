"""Structured logging for the menu client: quiet stderr console, full JSONL file log."""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from graph_tutorial.config import LOG_DIR, LOG_FILE, LOG_LEVEL, VERBOSE_LOGGING

BoundLogger = structlog.stdlib.BoundLogger

# Event keys whose values are credentials and never reach a log sink
SECRET_KEYS = frozenset({"access_token", "refresh_token", "id_token", "token", "device_code", "password"})
NOISY_LOGGERS = ("azure", "msal", "httpx", "httpcore", "urllib3", "msgraph", "kiota_http", "kiota_abstractions")

_configured = False


def redact_secrets(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Replace credential values with a short fingerprint."""
    for key in SECRET_KEYS.intersection(event_dict):
        value = event_dict[key]
        if value:
            text = str(value)
            event_dict[key] = f"<redacted len={len(text)}>"
    return event_dict


def _level(name: str) -> int:
    if name.isdigit():
        return int(name)
    return getattr(logging, name.upper(), logging.INFO)


def configure_logging(verbose: bool | None = None) -> None:
    """Install handlers. The console gets warnings only unless verbose, since stdout belongs to the menu."""
    global _configured
    verbose = VERBOSE_LOGGING if verbose is None else verbose
    level = logging.DEBUG if verbose else _level(LOG_LEVEL)
    shared = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_secrets,
    ]

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level if verbose else max(level, logging.WARNING))
    console.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty(), pad_event=40),
            ],
            foreign_pre_chain=shared,
        )
    )

    LOG_DIR.mkdir(parents=True, exist_ok=True)
    jsonl = logging.FileHandler(LOG_FILE, encoding="utf-8")
    jsonl.setLevel(level)
    jsonl.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.dict_tracebacks,
                structlog.processors.JSONRenderer(),
            ],
            foreign_pre_chain=shared,
        )
    )

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(level)
    root.addHandler(console)
    root.addHandler(jsonl)
    logging.captureWarnings(True)

    # Device code polling and every Graph request log at INFO in these libraries
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)

    structlog.configure(
        processors=[
            *shared,
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )
    _configured = True


def get_logger(name: str = "graph_tutorial", **bindings: Any) -> BoundLogger:
    """Return the structured logger, optionally bound with context."""
    if not _configured:
        configure_logging()
    logger = structlog.get_logger(name)
    if bindings:
        logger = logger.bind(**bindings)
    return logger


def bind_context(**context: Any) -> None:
    """Bind context variables to be included with every log entry."""
    structlog.contextvars.bind_contextvars(**context)


def unbind_context(*keys: str) -> None:
    if keys:
        structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()

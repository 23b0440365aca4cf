"""Structured logging for the poll loops and the dashboard.

Both structlog loggers and plain ``logging.getLogger`` callers end up in
the same ``ProcessorFormatter`` chain, so every line carries the bound
poll loop context and credentials never reach the output.
"""

from __future__ import annotations

import hashlib
import logging
import sys

import structlog

SECRET_KEYS = frozenset({"password", "password_hash", "token", "cookie", "set-cookie"})

QUIET_LOGGERS = ("uvicorn.access", "aiosqlite", "httpx", "httpcore")


def fingerprint(value: str | None) -> str:
    """Short non-reversible stand-in for a secret, stable across lines."""
    if not value:
        return "empty"
    digest = hashlib.sha256(value.encode("utf-8")).hexdigest()[:10]
    return f"len={len(value)} sha256={digest}"


def redact_secrets(
    logger: object, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """Replace the values of credential-like keys with their fingerprint."""
    for key in list(event_dict):
        if key.lower() in SECRET_KEYS:
            value = event_dict[key]
            event_dict[key] = fingerprint(value if isinstance(value, str) else str(value))
    return event_dict


def _renderer(fmt: str) -> structlog.types.Processor:
    if fmt == "console":
        return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    return structlog.processors.JSONRenderer()


def _handlers(formatter: logging.Formatter, log_file: str) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def setup_logging(level: str = "INFO", fmt: str = "json", log_file: str = "") -> None:
    """Configure the root logger.

    Args:
        level: Log level name, case-insensitive. Unknown names fall back to INFO.
        fmt: "json" for one JSON object per line, "console" for humans.
        log_file: Optional path that receives the same lines as stdout.
    """
    shared: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(fmt),
        ],
    )

    root = logging.getLogger()
    root.handlers.clear()
    for handler in _handlers(formatter, log_file):
        root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

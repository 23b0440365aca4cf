"""Log context enrichment for poll loops and request handlers."""

from __future__ import annotations

import structlog


def bind_context(**kwargs: object) -> None:
    """Bind key-value pairs to the current task's logging context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def current_context() -> dict[str, object]:
    """Return a copy of the context bound in the current task."""
    return dict(structlog.contextvars.get_contextvars())

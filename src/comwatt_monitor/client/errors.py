"""Classified API failures.

The client never raises these; they travel inside ``Failure`` results.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_ERROR_MESSAGE = "Something went wrong"


@dataclass(frozen=True)
class ApiError:
    message: str | None

    @property
    def error_message(self) -> str:
        return self.message or DEFAULT_ERROR_MESSAGE


@dataclass(frozen=True)
class HttpError(ApiError):
    """Non-2xx response. ``body`` is the raw response text."""

    code: int = 0
    body: str | None = None

    @property
    def is_unauthorized(self) -> bool:
        return self.code == 401

    @property
    def error_message(self) -> str:
        return self.message or f"HTTP {self.code}"


@dataclass(frozen=True)
class SerializationError(ApiError):
    """Response body did not match the expected shape."""


@dataclass(frozen=True)
class GenericError(ApiError):
    """Network failure, timeout or anything else unclassified."""

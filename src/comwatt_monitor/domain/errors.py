"""Failures surfaced by the fetch use cases."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from comwatt_monitor.client.errors import ApiError, HttpError


class DomainError(ABC):
    """Base of the use-case failure variants."""

    @property
    @abstractmethod
    def message(self) -> str:
        """Human readable reason, shown to the user."""

    @property
    def is_unauthorized(self) -> bool:
        return False


@dataclass(frozen=True)
class ApiDomainError(DomainError):
    error: ApiError

    @property
    def message(self) -> str:
        return self.error.error_message

    @property
    def is_unauthorized(self) -> bool:
        return isinstance(self.error, HttpError) and self.error.is_unauthorized


@dataclass(frozen=True)
class GenericDomainError(DomainError):
    text: str

    @property
    def message(self) -> str:
        return self.text


SITE_NOT_SELECTED = GenericDomainError("Site id not found")

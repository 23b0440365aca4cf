"""Success/failure result type returned by every fetch operation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar, Union

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")
F = TypeVar("F")


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True

    def map(self, fn: Callable[[T], U]) -> Success[U]:
        return Success(fn(self.value))

    def map_error(self, fn: Callable[[object], object]) -> Success[T]:
        return self

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Failure(Generic[E]):
    error: E

    @property
    def ok(self) -> bool:
        return False

    def map(self, fn: Callable[[object], object]) -> Failure[E]:
        return self

    def map_error(self, fn: Callable[[E], F]) -> Failure[F]:
        return Failure(fn(self.error))

    def unwrap(self):
        raise ValueError(f"Called unwrap() on a failure: {self.error!r}")


Result = Union[Success[T], Failure[E]]

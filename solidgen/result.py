"""Success/Failure outcome type used at every pipeline function boundary."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar, Union

from .errors import TransformationError

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value

    def map(self, func: Callable[[T], U]) -> "Result[U]":
        return Success(func(self.value))


@dataclass(frozen=True)
class Failure:
    error: TransformationError

    @property
    def ok(self) -> bool:
        return False

    def unwrap(self):  # type: ignore[no-untyped-def]
        raise self.error

    def map(self, func: Callable) -> "Failure":  # type: ignore[type-arg]
        return self


Result = Union[Success[T], Failure]


__all__ = ["Failure", "Result", "Success"]

"""
Result type for fan-out work.

Each item of a fan-out (one indexer, one message) yields a Success or a
Failure instead of raising, so one bad item never aborts its siblings.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Mapping, TypeVar

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Success(Generic[T]):
    """
    Attributes:
        value: Outcome of the item; may legitimately be None (nothing to do)
    """

    value: T

    def is_success(self) -> bool:
        return True

    def is_failure(self) -> bool:
        return False

    def or_else(self, default: T) -> T:
        return self.value

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Failure(Generic[E]):
    """
    Attributes:
        error: Error message (or exception) captured for the item
    """

    error: E

    def is_success(self) -> bool:
        return False

    def is_failure(self) -> bool:
        return True

    def or_else(self, default: Any) -> Any:
        return default

    def unwrap(self) -> None:
        raise ValueError(f"Attempted to unwrap a Failure: {self.error}")


Result = Success[T] | Failure[E]


def partition(results: Mapping[str, Result]) -> tuple[dict[str, Any], dict[str, Any]]:
    """Split keyed results into ({key: value}, {key: error})."""
    ok = {k: r.value for k, r in results.items() if isinstance(r, Success)}
    failed = {k: r.error for k, r in results.items() if isinstance(r, Failure)}
    return ok, failed

"""
Tagged success/failure values returned by the provenance engine.

Every call site checks for Ok and Err explicitly and treats anything else
as a programming error.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar, Union

from .models import LogEntry

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful engine call carrying its value."""

    value: T


@dataclass(frozen=True)
class Err:
    """Failed engine call: a reason plus whatever log the engine produced."""

    error: str
    logs: list[LogEntry] = field(default_factory=list)


Result = Union[Ok[T], Err]


def unexpected_result(result: object) -> TypeError:
    """Error for a value that is neither Ok nor Err."""
    return TypeError(f"Expected Ok or Err from provenance engine, got {type(result).__name__}")

"""
Core Type Definitions for Thread-Safe Session Objects

Implements Result/Either monads for zero-exception control flow at
fallible boundaries (codecs, storage backends).

Design Principles:
- Never use null for absence where a failure is possible (use Result)
- Timestamps carry nanosecond precision end to end
- Durations accepted as timedelta or seconds, normalized to nanoseconds

Complexity: O(1) for all type operations
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import (
    Any,
    Callable,
    Generic,
    Literal,
    TypeVar,
    Union,
)

# =============================================================================
# TYPE VARIABLES FOR GENERIC CONTAINERS
# =============================================================================
T = TypeVar("T")  # Success type
E = TypeVar("E")  # Error type
U = TypeVar("U")  # Transform result type


# =============================================================================
# RESULT MONAD: ZERO-EXCEPTION CONTROL FLOW
# =============================================================================
@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """
    Success variant of Result monad.

    Immutable, hashable container for successful computation results.
    """

    value: T

    def is_ok(self) -> Literal[True]:
        return True

    def is_err(self) -> Literal[False]:
        return False

    def unwrap(self) -> T:
        """
        Extract value. Safe to call after is_ok() check.

        Returns:
            T: The wrapped success value
        """
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Return value, ignoring default."""
        return self.value

    def map(self, fn: Callable[[T], U]) -> Ok[U]:
        """Apply transformation to success value."""
        return Ok(fn(self.value))

    def flat_map(self, fn: Callable[[T], Result[U, E]]) -> Result[U, E]:
        """Monadic bind for chaining fallible operations."""
        return fn(self.value)

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """
    Failure variant of Result monad.

    Carries the error value produced by the failing operation.
    """

    error: E

    def is_ok(self) -> Literal[False]:
        return False

    def is_err(self) -> Literal[True]:
        return True

    def unwrap(self) -> Any:
        """
        Attempting to unwrap an error is a programming error.

        Raises:
            RuntimeError: Always, with error context
        """
        raise RuntimeError(f"Called unwrap() on Err: {self.error}")

    def unwrap_or(self, default: T) -> T:
        """Return default value on error."""
        return default

    def map(self, fn: Callable[[Any], U]) -> Err[E]:
        """No-op on error variant - propagates error unchanged."""
        return self

    def flat_map(self, fn: Callable[[Any], Result[U, E]]) -> Err[E]:
        return self

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


# Union type for pattern matching
Result = Union[Ok[T], Err[E]]


# =============================================================================
# TIMESTAMP WITH NANOSECOND PRECISION
# =============================================================================
NANOS_PER_SECOND: int = 1_000_000_000
NANOS_PER_MILLI: int = 1_000_000
NANOS_PER_MICRO: int = 1_000


@dataclass(frozen=True, slots=True, order=True)
class Timestamp:
    """
    Wall-clock timestamp in nanoseconds since the Unix epoch.

    Used for session creation and expiry instants. Comparable,
    hashable, and losslessly representable as a single integer,
    which is the form used on the wire.
    """

    nanos: int

    def __post_init__(self) -> None:
        if self.nanos < 0:
            raise ValueError(f"Timestamp before the Unix epoch: {self.nanos}ns")

    @classmethod
    def now(cls) -> Timestamp:
        """Capture current wall-clock time via time.time_ns()."""
        return cls(nanos=time.time_ns())

    @classmethod
    def from_seconds(cls, seconds: float) -> Timestamp:
        return cls(nanos=int(seconds * NANOS_PER_SECOND))

    @classmethod
    def from_millis(cls, millis: int) -> Timestamp:
        return cls(nanos=millis * NANOS_PER_MILLI)

    @classmethod
    def from_datetime(cls, value: datetime) -> Timestamp:
        """
        Convert a datetime to Timestamp.

        Naive datetimes are interpreted as UTC. Instants before the epoch
        raise ValueError.
        """
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        delta = value - datetime(1970, 1, 1, tzinfo=timezone.utc)
        return cls(nanos=duration_to_nanos(delta))

    @property
    def seconds(self) -> float:
        return self.nanos / NANOS_PER_SECOND

    @property
    def millis(self) -> int:
        """Convert to milliseconds (truncating)."""
        return self.nanos // NANOS_PER_MILLI

    def to_datetime(self) -> datetime:
        """Convert to an aware UTC datetime (microsecond precision)."""
        return datetime(1970, 1, 1, tzinfo=timezone.utc) + timedelta(
            microseconds=self.nanos // NANOS_PER_MICRO
        )

    def __sub__(self, other: Timestamp) -> int:
        """Subtract timestamps, returning difference in nanos."""
        return self.nanos - other.nanos

    def __add__(self, nanos: int) -> Timestamp:
        """Add nanoseconds to timestamp."""
        result = self.nanos + nanos
        if result < 0:
            raise OverflowError("Timestamp underflow")
        return Timestamp(nanos=result)

    def isoformat(self) -> str:
        return self.to_datetime().isoformat()

    def __repr__(self) -> str:
        return f"Timestamp({self.nanos}ns)"


# =============================================================================
# DURATIONS
# =============================================================================
Duration = Union[timedelta, int, float]


def duration_to_nanos(duration: Duration) -> int:
    """
    Normalize a duration to integer nanoseconds.

    Accepts a timedelta or a number of seconds. timedelta is converted
    through its integer components so no float rounding is introduced.
    """
    if isinstance(duration, timedelta):
        return (
            (duration.days * 86_400 + duration.seconds) * NANOS_PER_SECOND
            + duration.microseconds * NANOS_PER_MICRO
        )
    if isinstance(duration, bool) or not isinstance(duration, (int, float)):
        raise TypeError(
            f"duration must be timedelta or seconds, got {type(duration).__name__}"
        )
    return int(duration * NANOS_PER_SECOND)

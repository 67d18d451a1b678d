"""
Session: the externally visible, thread-safe session handle.

A Session pairs immutable identity (id, created_at) with a reference to
a shared SessionState. Cloning a handle is O(1) and shares the state, so
a mutation through one clone is visible through every other. Equality
and hashing consider the id only.

Every accessor is safe to call concurrently from any number of threads:
reads hold the state lock in shared mode, mutations in exclusive mode,
and no caller-supplied code runs while the lock is held.

Example:
    session = SessionBuilder().data({"user_id": 42}).expires_in(3600).build()
    session.set_context("last_page", "/dashboard")
    assert session.is_modified()
"""

from __future__ import annotations

import copy
from datetime import datetime
from typing import Generic, Optional, TypeVar, Union

from sessioncore.core.types import (
    NANOS_PER_SECOND,
    Duration,
    Timestamp,
    duration_to_nanos,
)
from sessioncore.session.state import SessionState

T = TypeVar("T")

TimestampLike = Union[Timestamp, datetime]


def _as_timestamp(value: Optional[TimestampLike]) -> Optional[Timestamp]:
    if value is None or isinstance(value, Timestamp):
        return value
    if isinstance(value, datetime):
        return Timestamp.from_datetime(value)
    raise TypeError(f"expected Timestamp or datetime, got {type(value).__name__}")


def _check_str(name: str, value: object) -> None:
    if not isinstance(value, str):
        raise TypeError(f"{name} must be str, got {type(value).__name__}")


class Session(Generic[T]):
    """
    Handle to one user's server-side session.

    Construct through SessionBuilder or the codec; the constructor is
    internal and takes ownership of the given state.
    """

    __slots__ = ("_id", "_created_at", "_state", "__weakref__")

    def __init__(
        self,
        session_id: str,
        created_at: Timestamp,
        state: SessionState[T],
    ) -> None:
        self._id = session_id
        self._created_at = created_at
        self._state = state
        state.bind(session_id)

    # -------------------------------------------------------------------------
    # Identity
    # -------------------------------------------------------------------------

    @property
    def id(self) -> str:
        return self._id

    @property
    def created_at(self) -> Timestamp:
        return self._created_at

    # -------------------------------------------------------------------------
    # Expiration
    # -------------------------------------------------------------------------

    def expires_at(self) -> Optional[Timestamp]:
        with self._state.reading() as state:
            return state.expires_at if state is not None else None

    def is_expired(self) -> bool:
        """A session without expiry never reports expired."""
        expires_at = self.expires_at()
        if expires_at is None:
            return False
        return Timestamp.now() >= expires_at

    def ttl_remaining(self) -> Optional[float]:
        """Seconds until expiry; None without expiry, 0.0 once expired."""
        expires_at = self.expires_at()
        if expires_at is None:
            return None
        remaining = expires_at - Timestamp.now()
        return max(0.0, remaining / NANOS_PER_SECOND)

    def extend_expiration(self, duration: Duration) -> None:
        """
        Push expiry out by duration.

        Extends a running countdown, or starts one from now when the
        session had no expiry. Read and write happen in one exclusive
        section so concurrent extensions accumulate.
        """
        nanos = duration_to_nanos(duration)
        if nanos < 0:
            raise ValueError("duration must not be negative")
        with self._state.writing() as state:
            if state is None:
                return
            base = state.expires_at if state.expires_at is not None else Timestamp.now()
            state.expires_at = base + nanos
            state.modified = True
            state.revision += 1

    def set_expiration(self, expires_at: Optional[TimestampLike]) -> None:
        """Replace expiry wholesale; None means the session never expires."""
        value = _as_timestamp(expires_at)
        with self._state.writing() as state:
            if state is None:
                return
            state.expires_at = value
            state.modified = True
            state.revision += 1

    # -------------------------------------------------------------------------
    # Flags
    # -------------------------------------------------------------------------

    def is_modified(self) -> bool:
        with self._state.reading() as state:
            return state.modified if state is not None else False

    def is_discarded(self) -> bool:
        with self._state.reading() as state:
            return state.discarded if state is not None else False

    def discard(self) -> None:
        """Mark for deletion on the store's next save or cleanup pass."""
        with self._state.writing() as state:
            if state is None:
                return
            state.discarded = True
            state.modified = True
            state.revision += 1

    def revision(self) -> int:
        """Mutation counter; never persisted."""
        with self._state.reading() as state:
            return state.revision if state is not None else 0

    def clear_modified(self, expected_revision: Optional[int] = None) -> bool:
        """
        Reset the dirty flag. Called once per successful save.

        When expected_revision is given, the flag is only cleared if no
        mutation happened since that revision was read, so changes made
        while a save was in flight are not forgotten. Returns whether
        the flag was cleared.
        """
        with self._state.writing() as state:
            if state is None:
                return False
            if expected_revision is not None and state.revision != expected_revision:
                return False
            state.modified = False
            return True

    # -------------------------------------------------------------------------
    # Payload
    # -------------------------------------------------------------------------

    def has_data(self) -> bool:
        with self._state.reading() as state:
            return state is not None and state.payload is not None

    def data(self) -> Optional[T]:
        """
        Copy of the current payload, or None.

        The stored payload is never mutated in place, so the copy is
        taken after the lock is released.
        """
        with self._state.reading() as state:
            payload = state.payload if state is not None else None
        return copy.deepcopy(payload)

    def update_data(self, payload: Optional[T]) -> None:
        """Replace the payload wholesale. The session keeps its own copy."""
        owned = copy.deepcopy(payload)
        with self._state.writing() as state:
            if state is None:
                return
            state.payload = owned
            state.modified = True
            state.revision += 1

    # -------------------------------------------------------------------------
    # Context
    # -------------------------------------------------------------------------

    def get_context(self, key: str) -> Optional[str]:
        with self._state.reading() as state:
            return state.context.get(key) if state is not None else None

    def set_context(self, key: str, value: str) -> None:
        _check_str("key", key)
        _check_str("value", value)
        with self._state.writing() as state:
            if state is None:
                return
            state.context[key] = value
            state.modified = True
            state.revision += 1

    def context(self) -> dict[str, str]:
        with self._state.reading() as state:
            return dict(state.context) if state is not None else {}

    def snapshot(self) -> Optional[tuple[Optional[T], dict[str, str], Optional[Timestamp]]]:
        """
        (payload copy, context copy, expires_at) from one shared read.

        Returns None when the state is poisoned under PoisonPolicy.DEGRADE,
        since its defaults are not a state worth persisting.
        """
        with self._state.reading() as state:
            if state is None:
                return None
            payload = state.payload
            context = dict(state.context)
            expires_at = state.expires_at
        return copy.deepcopy(payload), context, expires_at

    # -------------------------------------------------------------------------
    # Poisoning
    # -------------------------------------------------------------------------

    def is_poisoned(self) -> bool:
        return self._state.poisoned

    def recover(self) -> None:
        """Clear lock poisoning so writes are accepted again."""
        self._state.recover()

    # -------------------------------------------------------------------------
    # Handle semantics
    # -------------------------------------------------------------------------

    def clone(self) -> Session[T]:
        """New handle sharing this session's state. O(1)."""
        handle = Session.__new__(Session)
        handle._id = self._id
        handle._created_at = self._created_at
        handle._state = self._state
        return handle

    def __copy__(self) -> Session[T]:
        return self.clone()

    def __deepcopy__(self, memo: dict) -> Session[T]:
        return self.clone()

    def shares_state_with(self, other: Session[T]) -> bool:
        return self._state is other._state

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Session):
            return self._id == other._id
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._id)

    def __repr__(self) -> str:
        with self._state.reading() as state:
            fields = None if state is None else (
                state.payload,
                dict(state.context),
                state.expires_at,
                state.modified,
                state.discarded,
            )
        if fields is None:
            state_repr = "<poisoned>"
        else:
            payload, context, expires_at, modified, discarded = fields
            state_repr = (
                f"payload={payload!r}, context={context!r}, expires_at={expires_at!r}, "
                f"modified={modified}, discarded={discarded}"
            )
        return (
            f"Session(id={self._id!r}, created_at={self._created_at!r}, "
            f"{state_repr})"
        )

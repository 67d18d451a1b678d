"""
Session State: the lock-guarded mutable record behind a session handle.

One SessionState instance is shared by every handle cloned from the
same session. All field access goes through reading()/writing(), which
hold the state's ReadWriteLock for the duration of the block and apply
the configured PoisonPolicy once the lock has been poisoned.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Generic, Iterator, Optional, TypeVar

from sessioncore.core.errors import LockError
from sessioncore.core.sync import PoisonPolicy, ReadWriteLock
from sessioncore.core.types import Timestamp
from sessioncore.observability.logging import StructuredLogger

T = TypeVar("T")

logger = StructuredLogger("sessioncore.session.state")


class SessionState(Generic[T]):
    """
    Mutable session record.

    Fields:
        payload: caller-typed value, None until attached
        context: string -> string side table
        expires_at: absolute expiry, None for never
        modified: unsaved changes exist (runtime only)
        discarded: marked for deletion (runtime only)
        revision: bumped by every mutation (runtime only)
    """

    __slots__ = (
        "payload",
        "context",
        "expires_at",
        "modified",
        "discarded",
        "revision",
        "_lock",
        "_policy",
        "_owner",
    )

    def __init__(
        self,
        payload: Optional[T] = None,
        context: Optional[dict[str, str]] = None,
        expires_at: Optional[Timestamp] = None,
        policy: PoisonPolicy = PoisonPolicy.DEGRADE,
    ) -> None:
        self.payload: Optional[T] = payload
        self.context: dict[str, str] = dict(context) if context else {}
        self.expires_at: Optional[Timestamp] = expires_at
        self.modified: bool = False
        self.discarded: bool = False
        self.revision: int = 0
        self._lock = ReadWriteLock()
        self._policy = policy
        self._owner = "session"

    def bind(self, session_id: str) -> None:
        """Record the owning session id for diagnostics."""
        self._owner = f"session {session_id[:8]}"

    @contextmanager
    def reading(self) -> Iterator[Optional[SessionState[T]]]:
        """
        Shared access. Yields the state, or None when poisoned under
        PoisonPolicy.DEGRADE so callers fall back to safe defaults.
        """
        with self._lock.read():
            healthy = not self._lock.poisoned
            if healthy:
                yield self
        if not healthy:
            yield self._poisoned_access("read")

    @contextmanager
    def writing(self) -> Iterator[Optional[SessionState[T]]]:
        """
        Exclusive access. Yields the state, or None when poisoned under
        PoisonPolicy.DEGRADE so the mutation is dropped.

        An exception raised inside the block poisons the lock.
        """
        with self._lock.write():
            healthy = not self._lock.poisoned
            if healthy:
                yield self
        if not healthy:
            yield self._poisoned_access("write")

    def _poisoned_access(self, mode: str) -> None:
        cause = self._lock.poison_cause
        if self._policy is PoisonPolicy.RAISE:
            raise LockError.poisoned(self._owner, cause)
        if mode == "write":
            logger.warning(
                "Dropping write to poisoned session state",
                owner=self._owner,
                cause=repr(cause),
            )
        else:
            logger.debug("Serving defaults from poisoned session state", owner=self._owner)
        return None

    @property
    def poisoned(self) -> bool:
        return self._lock.poisoned

    @property
    def policy(self) -> PoisonPolicy:
        return self._policy

    def recover(self) -> None:
        if self._lock.poisoned:
            logger.info("Clearing poisoned session state", owner=self._owner)
        self._lock.clear_poison()

    def __repr__(self) -> str:
        return (
            f"SessionState(payload={self.payload!r}, context={self.context!r}, "
            f"expires_at={self.expires_at!r}, modified={self.modified}, "
            f"discarded={self.discarded})"
        )

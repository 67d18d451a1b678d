"""
Session Store: the persistence contract sessions are handed to.

Provides:
- SessionStore: structural protocol every backend satisfies
- persist(): the save-then-clear_modified convention as one call
- InMemorySessionStore: non-durable reference backend for tests and
  single-process use

Contract:
    save(session)      -> Ok(None) | Err(StorageError)
    load(session_id)   -> Ok(Session) | Ok(None) when absent | Err(StorageError)
    delete(session_id) -> Ok(None), also when the id is unknown
    cleanup_expired()  -> Ok(count removed)

Backends must tolerate concurrent calls. A backend never clears the
session's dirty flag itself; the caller does that after a successful
save (persist() does it for you).

Backends must refuse to save a poisoned session (session.is_poisoned())
with Err(StorageError); under PoisonPolicy.DEGRADE its accessors serve
defaults that would overwrite the last good record. Persist from
serializer.to_record(session), which reads all state at once.
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import Generic, Optional, Protocol, TypeVar, runtime_checkable

from sessioncore.core.errors import StorageError
from sessioncore.core.types import Err, Ok, Result, Timestamp
from sessioncore.observability.logging import StructuredLogger
from sessioncore.observability.metrics import MetricsCollector
from sessioncore.session.codec import SessionSerializer
from sessioncore.session.session import Session

T = TypeVar("T")

logger = StructuredLogger("sessioncore.session.store")


# =============================================================================
# STORE PROTOCOL
# =============================================================================
@runtime_checkable
class SessionStore(Protocol[T]):
    """
    Structural protocol for session persistence backends.

    Example:
        class RedisSessionStore:
            async def save(self, session: Session[T]) -> Result[None, StorageError]:
                ...
    """

    async def save(self, session: Session[T]) -> Result[None, StorageError]:
        """Persist the session's current state."""
        ...

    async def load(self, session_id: str) -> Result[Optional[Session[T]], StorageError]:
        """Fetch a session; absence is Ok(None), not an error."""
        ...

    async def delete(self, session_id: str) -> Result[None, StorageError]:
        """Remove a session. Unknown ids are not an error."""
        ...

    async def cleanup_expired(self) -> Result[int, StorageError]:
        """Remove every expired session; returns how many were removed."""
        ...


# =============================================================================
# PERSIST HELPER
# =============================================================================
class PersistOutcome(Enum):
    SAVED = "saved"
    SKIPPED = "skipped"    # nothing changed since the last save
    DELETED = "deleted"    # session was discarded


async def persist(
    store: SessionStore[T],
    session: Session[T],
) -> Result[PersistOutcome, StorageError]:
    """
    Hand a session to its store following the dirty-flag convention.

    Discarded sessions are deleted. Unmodified sessions are skipped.
    Otherwise the session is saved and, on success, its dirty flag is
    cleared exactly once, unless it was mutated again while the save
    was in flight. On failure the flag stays set for the next attempt.
    """
    if session.is_discarded():
        deleted = await store.delete(session.id)
        if deleted.is_err():
            return deleted
        return Ok(PersistOutcome.DELETED)

    if not session.is_modified():
        return Ok(PersistOutcome.SKIPPED)

    revision = session.revision()
    saved = await store.save(session)
    if saved.is_err():
        logger.warning(
            "Session save failed; keeping dirty flag",
            session_id=session.id,
            error=saved.error.to_dict(),
        )
        return saved

    if not session.clear_modified(expected_revision=revision):
        logger.debug("Session changed during save; dirty flag kept", session_id=session.id)
    return Ok(PersistOutcome.SAVED)


# =============================================================================
# IN-MEMORY REFERENCE STORE
# =============================================================================
class InMemorySessionStore(Generic[T]):
    """
    Non-durable SessionStore keeping serialized sessions in a dict.

    Sessions are stored as bytes, so load() always returns a new handle
    with fresh runtime flags, exactly like a real backend would.

    Features:
        - Discarded sessions are deleted on save
        - Expired sessions read as absent and are purged on access
        - Operation counters and a live-session gauge

    Thread Safety:
        The map is guarded by a threading.Lock, so the store can be
        shared between threads and event loops.
    """

    __slots__ = ("_serializer", "_data", "_expiry", "_lock", "_ops", "_live")

    def __init__(
        self,
        serializer: Optional[SessionSerializer[T]] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self._serializer: SessionSerializer[T] = serializer or SessionSerializer()
        self._data: dict[str, bytes] = {}
        self._expiry: dict[str, Optional[int]] = {}
        self._lock = threading.Lock()

        collector = metrics or MetricsCollector.get_instance()
        self._ops = collector.counter(
            "session_store_operations_total",
            ["operation", "outcome"],
            "Session store operations by outcome",
        )
        self._live = collector.gauge(
            "session_store_sessions",
            help_text="Sessions currently held by the in-memory store",
        )

    # -------------------------------------------------------------------------
    # SessionStore Implementation
    # -------------------------------------------------------------------------

    async def save(self, session: Session[T]) -> Result[None, StorageError]:
        if session.is_discarded():
            return await self.delete(session.id)

        if session.is_poisoned():
            self._ops.inc(operation="save", outcome="error")
            return Err(StorageError.backend_failure(
                "save", "session state is poisoned"
            ).with_context(session_id=session.id))

        record = self._serializer.to_record(session)
        blob = record.flat_map(self._serializer.encode_record)
        if blob.is_err():
            self._ops.inc(operation="save", outcome="error")
            return Err(StorageError.backend_failure(
                "save", blob.error.message, cause=blob.error
            ).with_context(session_id=session.id))

        expires_at = record.value.expires_at
        with self._lock:
            self._data[session.id] = blob.value
            self._expiry[session.id] = expires_at.nanos if expires_at else None
            size = len(self._data)

        self._live.set(size)
        self._ops.inc(operation="save", outcome="ok")
        logger.debug("Session saved", session_id=session.id, size_bytes=len(blob.value))
        return Ok(None)

    async def load(self, session_id: str) -> Result[Optional[Session[T]], StorageError]:
        now = Timestamp.now().nanos
        with self._lock:
            blob = self._data.get(session_id)
            expires = self._expiry.get(session_id)
            if blob is not None and expires is not None and now >= expires:
                del self._data[session_id]
                del self._expiry[session_id]
                blob = None
            size = len(self._data)

        self._live.set(size)
        if blob is None:
            self._ops.inc(operation="load", outcome="miss")
            return Ok(None)

        restored = self._serializer.loads(blob)
        if restored.is_err():
            self._ops.inc(operation="load", outcome="error")
            logger.error(
                "Stored session is unreadable",
                session_id=session_id,
                error=restored.error.to_dict(),
            )
            return Err(StorageError.backend_failure(
                "load", restored.error.message, cause=restored.error
            ))

        self._ops.inc(operation="load", outcome="hit")
        return Ok(restored.value)

    async def delete(self, session_id: str) -> Result[None, StorageError]:
        with self._lock:
            existed = self._data.pop(session_id, None) is not None
            self._expiry.pop(session_id, None)
            size = len(self._data)

        self._live.set(size)
        self._ops.inc(operation="delete", outcome="ok" if existed else "noop")
        if existed:
            logger.debug("Session deleted", session_id=session_id)
        return Ok(None)

    async def cleanup_expired(self) -> Result[int, StorageError]:
        now = Timestamp.now().nanos
        with self._lock:
            expired = [
                sid for sid, expires in self._expiry.items()
                if expires is not None and now >= expires
            ]
            for sid in expired:
                del self._data[sid]
                del self._expiry[sid]
            size = len(self._data)

        self._live.set(size)
        self._ops.inc(operation="cleanup", outcome="ok")
        if expired:
            logger.info("Expired sessions removed", count=len(expired))
        return Ok(len(expired))

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._data

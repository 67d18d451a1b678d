"""
Session Builder: fluent, single-use construction of sessions.

Usage:
    session = (
        SessionBuilder[DefaultSessionData]()
        .data(DefaultSessionData(user_id=42, username="alice"))
        .expires_in(timedelta(hours=1))
        .context("theme", "dark")
        .build()
    )

build() is the only place "now" is sampled: created_at and the
derived expires_at come from the same instant.
"""

from __future__ import annotations

import copy
from typing import Generic, Mapping, Optional, TypeVar

from sessioncore.core.config import SessionConfig
from sessioncore.core.sync import PoisonPolicy
from sessioncore.core.types import Duration, Timestamp, duration_to_nanos
from sessioncore.observability.logging import StructuredLogger
from sessioncore.session.ids import (
    IdGeneratorLike,
    SessionIdGenerator,
    as_id_generator,
    default_session_id_generator,
)
from sessioncore.session.session import Session, _check_str
from sessioncore.session.state import SessionState

T = TypeVar("T")

logger = StructuredLogger("sessioncore.session.builder")


class SessionBuilder(Generic[T]):
    """Accumulates initial session state; consumed by build()."""

    __slots__ = (
        "_id_generator",
        "_payload",
        "_context",
        "_expires_in_nanos",
        "_policy",
        "_consumed",
    )

    def __init__(self) -> None:
        self._id_generator: SessionIdGenerator = default_session_id_generator()
        self._payload: Optional[T] = None
        self._context: dict[str, str] = {}
        self._expires_in_nanos: Optional[int] = None
        self._policy: PoisonPolicy = PoisonPolicy.DEGRADE
        self._consumed = False

    @classmethod
    def from_config(cls, config: SessionConfig) -> SessionBuilder[T]:
        """Builder seeded with the configured default TTL and poison policy."""
        builder: SessionBuilder[T] = cls()
        builder._policy = config.poison_policy
        if config.default_ttl_seconds is not None:
            builder._expires_in_nanos = duration_to_nanos(config.default_ttl_seconds)
        return builder

    def _check_open(self) -> None:
        if self._consumed:
            raise RuntimeError("SessionBuilder has already been consumed by build()")

    def id_generator(self, generator: IdGeneratorLike) -> SessionBuilder[T]:
        self._check_open()
        self._id_generator = as_id_generator(generator)
        return self

    def data(self, payload: T) -> SessionBuilder[T]:
        self._check_open()
        self._payload = copy.deepcopy(payload)
        return self

    def expires_in(self, duration: Duration) -> SessionBuilder[T]:
        """Relative expiry, resolved against the instant build() runs."""
        self._check_open()
        nanos = duration_to_nanos(duration)
        if nanos < 0:
            raise ValueError("duration must not be negative")
        self._expires_in_nanos = nanos
        return self

    def context(self, key: str, value: str) -> SessionBuilder[T]:
        self._check_open()
        _check_str("key", key)
        _check_str("value", value)
        self._context[key] = value
        return self

    def contexts(self, entries: Mapping[str, str]) -> SessionBuilder[T]:
        for key, value in entries.items():
            self.context(key, value)
        return self

    def poison_policy(self, policy: PoisonPolicy) -> SessionBuilder[T]:
        self._check_open()
        self._policy = policy
        return self

    def build(self) -> Session[T]:
        self._check_open()
        self._consumed = True

        session_id = self._id_generator.generate()
        if not isinstance(session_id, str) or not session_id:
            raise ValueError(
                f"{self._id_generator!r} produced an invalid session id: {session_id!r}"
            )

        now = Timestamp.now()
        expires_at = None
        if self._expires_in_nanos is not None:
            expires_at = now + self._expires_in_nanos

        state: SessionState[T] = SessionState(
            payload=self._payload,
            context=self._context,
            expires_at=expires_at,
            policy=self._policy,
        )
        session = Session(session_id, now, state)
        logger.debug(
            "Session built",
            session_id=session_id,
            expires_at=expires_at.nanos if expires_at else None,
        )
        return session

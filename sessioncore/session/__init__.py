"""
Session module: thread-safe session handles and their persistence contract.

Provides:
- Session: shared-state handle with a lock-guarded accessor surface
- SessionBuilder: fluent, single-use construction
- Identifier generators: UUID (default), token, callable adapter
- SessionRecord / SessionSerializer: persisted form, JSON and LZ4 envelope
- SessionStore: backend protocol, persist() helper, in-memory reference store
"""

from sessioncore.session.ids import (
    SessionIdGenerator,
    UuidSessionIdGenerator,
    TokenSessionIdGenerator,
    CallableSessionIdGenerator,
    default_session_id_generator,
    as_id_generator,
)
from sessioncore.session.state import SessionState
from sessioncore.session.session import Session
from sessioncore.session.builder import SessionBuilder
from sessioncore.session.codec import (
    DefaultSessionData,
    PayloadCodec,
    PassthroughPayloadCodec,
    DataclassPayloadCodec,
    SessionRecord,
    SessionSerializer,
)
from sessioncore.session.store import (
    SessionStore,
    PersistOutcome,
    persist,
    InMemorySessionStore,
)

__all__ = [
    # Identifiers
    "SessionIdGenerator",
    "UuidSessionIdGenerator",
    "TokenSessionIdGenerator",
    "CallableSessionIdGenerator",
    "default_session_id_generator",
    "as_id_generator",
    # Session
    "SessionState",
    "Session",
    "SessionBuilder",
    # Codec
    "DefaultSessionData",
    "PayloadCodec",
    "PassthroughPayloadCodec",
    "DataclassPayloadCodec",
    "SessionRecord",
    "SessionSerializer",
    # Store
    "SessionStore",
    "PersistOutcome",
    "persist",
    "InMemorySessionStore",
]

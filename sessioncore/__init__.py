"""
Thread-Safe Session Objects for Server Applications

A session is a unit of per-user server-side state:
- Unique, immutable identifier and creation time
- Optional expiration with atomic extension
- Free-form string context and a caller-typed payload
- Dirty and discard flags driving persistence

Handles are cheap to clone and share one lock-guarded record, so any
number of request threads can read and mutate the same session.
Persistence is delegated to a pluggable SessionStore.

License: MIT
"""

__version__ = "1.0.0"

# =============================================================================
# PUBLIC API EXPORTS
# =============================================================================
from sessioncore.core.types import Result, Ok, Err, Timestamp
from sessioncore.core.errors import (
    SessionCoreError,
    StorageError,
    SerializationError,
    LockError,
    ConfigError,
)
from sessioncore.core.sync import PoisonPolicy
from sessioncore.core.config import SessionConfig

from sessioncore.session import (
    Session,
    SessionBuilder,
    SessionIdGenerator,
    UuidSessionIdGenerator,
    TokenSessionIdGenerator,
    DefaultSessionData,
    PassthroughPayloadCodec,
    DataclassPayloadCodec,
    SessionRecord,
    SessionSerializer,
    SessionStore,
    PersistOutcome,
    persist,
    InMemorySessionStore,
)

__all__ = [
    # Version
    "__version__",
    # Core
    "Result",
    "Ok",
    "Err",
    "Timestamp",
    "SessionCoreError",
    "StorageError",
    "SerializationError",
    "LockError",
    "ConfigError",
    "PoisonPolicy",
    "SessionConfig",
    # Session
    "Session",
    "SessionBuilder",
    "SessionIdGenerator",
    "UuidSessionIdGenerator",
    "TokenSessionIdGenerator",
    "DefaultSessionData",
    "PassthroughPayloadCodec",
    "DataclassPayloadCodec",
    "SessionRecord",
    "SessionSerializer",
    "SessionStore",
    "PersistOutcome",
    "persist",
    "InMemorySessionStore",
]

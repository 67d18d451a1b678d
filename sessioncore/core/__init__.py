"""
Core module: Type definitions, error hierarchy, synchronization, configuration.

This module provides the foundational abstractions for sessions:
- Result monad for zero-exception control flow at fallible boundaries
- Nanosecond timestamps and duration normalization
- Error hierarchy with codes and structured context
- Reader/writer lock with poisoning
- Configuration management with validation
"""

from sessioncore.core.types import (
    Result,
    Ok,
    Err,
    Timestamp,
    Duration,
    duration_to_nanos,
)
from sessioncore.core.errors import (
    ErrorCode,
    SessionCoreError,
    StorageError,
    SerializationError,
    LockError,
    ConfigError,
)
from sessioncore.core.sync import ReadWriteLock, PoisonPolicy
from sessioncore.core.config import SessionConfig

__all__ = [
    "Result",
    "Ok",
    "Err",
    "Timestamp",
    "Duration",
    "duration_to_nanos",
    "ErrorCode",
    "SessionCoreError",
    "StorageError",
    "SerializationError",
    "LockError",
    "ConfigError",
    "ReadWriteLock",
    "PoisonPolicy",
    "SessionConfig",
]

"""
Error Hierarchy for Session Objects

Design Principles:
- Accessors on a session never raise; failures surface at the
  codec and storage boundaries as Result values
- Every error carries a code, message, and context for audit trails
- Storage "not found" is success with an absent value, never an error

Each error type includes:
- Unique error code for programmatic handling
- Human-readable message for logging
- Optional cause for root cause analysis
- Timestamp for correlation with logs

Usage:
    result = serializer.loads(blob)
    match result:
        case Ok(session):
            use(session)
        case Err(SerializationError() as error):
            logger.warning("Dropping unreadable session", **error.to_dict())
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from sessioncore.core.types import Timestamp


# =============================================================================
# ERROR CODE ENUMERATION
# =============================================================================
class ErrorCode(Enum):
    """
    Unique error codes for programmatic error handling.

    Codes are grouped by subsystem:
    - 1xxx: Storage backend errors
    - 2xxx: Serialization errors
    - 3xxx: Concurrency errors
    - 9xxx: Internal/configuration errors
    """

    # Storage errors (1xxx)
    STORAGE_BACKEND_FAILURE = 1001
    STORAGE_CONNECTION_FAILED = 1002
    STORAGE_TIMEOUT = 1003

    # Serialization errors (2xxx)
    SERIALIZATION_MISSING_FIELD = 2001
    SERIALIZATION_INVALID_FIELD = 2002
    SERIALIZATION_UNSUPPORTED_VERSION = 2003
    SERIALIZATION_CORRUPT_PAYLOAD = 2004
    SERIALIZATION_ENCODING_FAILED = 2005

    # Concurrency errors (3xxx)
    LOCK_POISONED = 3001

    # Internal errors (9xxx)
    INTERNAL_ERROR = 9001
    INTERNAL_CONFIGURATION_ERROR = 9002


# =============================================================================
# BASE ERROR CLASS
# =============================================================================
@dataclass
class SessionCoreError(Exception):
    """
    Base class for all sessioncore errors.

    Provides common infrastructure for error handling:
    - Unique error ID for correlation
    - Error code for programmatic handling
    - Timestamp of creation
    - Cause chain for root cause analysis
    """

    code: ErrorCode
    message: str
    error_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: Timestamp = field(default_factory=Timestamp.now)
    cause: Optional[Exception] = None
    context: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def with_context(self, **kwargs: Any) -> SessionCoreError:
        """
        Add context to error (returns new instance of the same class).

        Context should not contain session payloads or other
        user data.
        """
        return replace(self, context={**self.context, **kwargs})

    def to_dict(self) -> dict[str, Any]:
        """Serialize error to dictionary for structured logging."""
        return {
            "error_id": self.error_id,
            "code": self.code.name,
            "code_value": self.code.value,
            "message": self.message,
            "timestamp_nanos": self.timestamp.nanos,
            "context": self.context,
        }

    def __str__(self) -> str:
        return f"[{self.code.name}] {self.message} (id={self.error_id[:8]})"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"code={self.code.name}, "
            f"message={self.message!r}, "
            f"error_id={self.error_id!r})"
        )


# =============================================================================
# STORAGE ERRORS (EXTERNAL BACKENDS)
# =============================================================================
@dataclass
class StorageError(SessionCoreError):
    """
    Failures reported by a session store backend.

    Backends wrap their native exceptions as the cause. Absence of
    a session is never represented by this type.
    """

    @classmethod
    def backend_failure(
        cls,
        operation: str,
        reason: str,
        cause: Optional[Exception] = None,
    ) -> StorageError:
        """Backend rejected or failed an operation."""
        return cls(
            code=ErrorCode.STORAGE_BACKEND_FAILURE,
            message=f"Session store '{operation}' failed: {reason}",
            cause=cause,
            context={"operation": operation},
        )

    @classmethod
    def connection_failed(
        cls,
        host: str,
        port: int,
        cause: Optional[Exception] = None,
    ) -> StorageError:
        return cls(
            code=ErrorCode.STORAGE_CONNECTION_FAILED,
            message=f"Failed to connect to session store at {host}:{port}",
            cause=cause,
            context={"host": host, "port": port},
        )

    @classmethod
    def timeout(
        cls,
        operation: str,
        duration_ms: int,
        cause: Optional[Exception] = None,
    ) -> StorageError:
        return cls(
            code=ErrorCode.STORAGE_TIMEOUT,
            message=f"Session store '{operation}' timed out after {duration_ms}ms",
            cause=cause,
            context={"operation": operation, "duration_ms": duration_ms},
        )


# =============================================================================
# SERIALIZATION ERRORS (WIRE FORMAT)
# =============================================================================
@dataclass
class SerializationError(SessionCoreError):
    """
    Errors converting between a session and its persisted form.
    """

    @classmethod
    def missing_field(cls, name: str) -> SerializationError:
        return cls(
            code=ErrorCode.SERIALIZATION_MISSING_FIELD,
            message=f"Missing required field '{name}'",
            context={"field": name},
        )

    @classmethod
    def invalid_field(
        cls,
        name: str,
        reason: str,
        cause: Optional[Exception] = None,
    ) -> SerializationError:
        return cls(
            code=ErrorCode.SERIALIZATION_INVALID_FIELD,
            message=f"Invalid value for field '{name}': {reason}",
            cause=cause,
            context={"field": name, "reason": reason},
        )

    @classmethod
    def unsupported_version(cls, version: int, supported: int) -> SerializationError:
        return cls(
            code=ErrorCode.SERIALIZATION_UNSUPPORTED_VERSION,
            message=f"Unsupported wire format version {version} (supported: {supported})",
            context={"version": version, "supported": supported},
        )

    @classmethod
    def corrupt_payload(
        cls,
        description: str,
        cause: Optional[Exception] = None,
    ) -> SerializationError:
        """Serialized bytes could not be decoded."""
        return cls(
            code=ErrorCode.SERIALIZATION_CORRUPT_PAYLOAD,
            message=f"Corrupt serialized session: {description}",
            cause=cause,
        )

    @classmethod
    def encoding_failed(
        cls,
        session_id: str,
        cause: Optional[Exception] = None,
        reason: str = "payload is not encodable",
    ) -> SerializationError:
        """Session could not be turned into its persisted form."""
        return cls(
            code=ErrorCode.SERIALIZATION_ENCODING_FAILED,
            message=f"Failed to encode session {session_id[:8]}...: {reason}",
            cause=cause,
            context={"session_id": session_id},
        )


# =============================================================================
# CONCURRENCY ERRORS
# =============================================================================
@dataclass
class LockError(SessionCoreError):
    """
    Raised only under PoisonPolicy.RAISE when a session's lock has
    been poisoned by an exception inside a write critical section.
    """

    @classmethod
    def poisoned(cls, owner: str, cause: Optional[BaseException] = None) -> LockError:
        return cls(
            code=ErrorCode.LOCK_POISONED,
            message=f"Lock for {owner} is poisoned by an earlier failure",
            cause=cause if isinstance(cause, Exception) else None,
            context={"owner": owner},
        )


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================
@dataclass
class ConfigError(SessionCoreError):

    @classmethod
    def invalid_value(cls, name: str, value: Any, reason: str) -> ConfigError:
        return cls(
            code=ErrorCode.INTERNAL_CONFIGURATION_ERROR,
            message=f"Invalid configuration {name}={value!r}: {reason}",
            context={"field": name, "value": str(value)[:100], "reason": reason},
        )

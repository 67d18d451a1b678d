"""
Session Codec: persisted representation of a session.

The wire shape (SessionRecord) is a separate type from the in-memory
SessionState. Conversion between the two is hand-written, so
the runtime-only flags (modified, discarded) are excluded by mapping,
never by annotation.

Data Model:
    id:          str
    created_at:  int (nanoseconds since epoch)
    payload:     PayloadCodec output, or null
    context:     {str: str}
    expires_at:  int (nanoseconds since epoch), or null

Binary envelope (SessionSerializer.dumps):
    [version: u8][flags: u8][body]
    body = UTF-8 JSON of the dict form, LZ4-frame compressed when
    flags & FLAG_COMPRESSED.
"""

from __future__ import annotations

import json
import struct
from dataclasses import asdict, dataclass, field, fields, is_dataclass
from typing import Any, Generic, Mapping, Optional, Protocol, TypeVar

import lz4.frame

from sessioncore.core import constants as C
from sessioncore.core.config import SessionConfig
from sessioncore.core.errors import SerializationError
from sessioncore.core.sync import PoisonPolicy
from sessioncore.core.types import Err, Ok, Result, Timestamp
from sessioncore.observability.logging import StructuredLogger
from sessioncore.session.session import Session
from sessioncore.session.state import SessionState

T = TypeVar("T")

logger = StructuredLogger("sessioncore.session.codec")

_HEADER = struct.Struct(">BB")


# =============================================================================
# DEFAULT PAYLOAD
# =============================================================================
@dataclass
class DefaultSessionData:
    """Out-of-the-box payload carrying the essentials of a signed-in user."""
    user_id: int
    username: str


# =============================================================================
# PAYLOAD CODECS
# =============================================================================
class PayloadCodec(Protocol[T]):
    """Maps a payload to and from a JSON-compatible value."""

    def encode(self, payload: T) -> Any:
        ...

    def decode(self, raw: Any) -> T:
        ...


class PassthroughPayloadCodec:
    """For payloads that are already JSON-native (dict, list, str, numbers)."""

    __slots__ = ()

    def encode(self, payload: Any) -> Any:
        return payload

    def decode(self, raw: Any) -> Any:
        return raw


class DataclassPayloadCodec(Generic[T]):
    """
    Dataclass payloads encoded as their field dict.

    Unknown keys in the persisted dict are ignored on decode so records
    written by a newer payload schema still load.
    """

    __slots__ = ("_cls", "_names")

    def __init__(self, cls: type[T]) -> None:
        if not (isinstance(cls, type) and is_dataclass(cls)):
            raise TypeError(f"{cls!r} is not a dataclass type")
        self._cls = cls
        self._names = frozenset(f.name for f in fields(cls))

    def encode(self, payload: T) -> Any:
        return asdict(payload)

    def decode(self, raw: Any) -> T:
        if not isinstance(raw, Mapping):
            raise TypeError(f"expected mapping for {self._cls.__name__}, got {type(raw).__name__}")
        return self._cls(**{k: v for k, v in raw.items() if k in self._names})


# =============================================================================
# WIRE RECORD
# =============================================================================
@dataclass(frozen=True)
class SessionRecord:
    """Persisted form of a session. Carries no runtime flags."""

    id: str
    created_at: Timestamp
    payload: Any = None
    context: dict[str, str] = field(default_factory=dict)
    expires_at: Optional[Timestamp] = None

    @classmethod
    def from_session(
        cls,
        session: Session[T],
        codec: PayloadCodec[T],
    ) -> Result[SessionRecord, SerializationError]:
        """
        Snapshot a session from a single read of its state.

        The payload codec runs after the lock is released. A poisoned
        session under PoisonPolicy.DEGRADE is refused rather than
        recorded with its defaults.
        """
        snapshot = session.snapshot()
        if snapshot is None:
            return Err(SerializationError.encoding_failed(
                session.id, reason="session state is poisoned"
            ))
        payload, context, expires_at = snapshot
        try:
            encoded = codec.encode(payload) if payload is not None else None
        except (TypeError, ValueError) as e:
            return Err(SerializationError.encoding_failed(session.id, cause=e))
        return Ok(cls(
            id=session.id,
            created_at=session.created_at,
            payload=encoded,
            context=context,
            expires_at=expires_at,
        ))

    def to_session(
        self,
        codec: PayloadCodec[T],
        policy: PoisonPolicy = PoisonPolicy.DEGRADE,
    ) -> Result[Session[T], SerializationError]:
        """Materialize a fresh handle; modified and discarded start False."""
        try:
            payload = codec.decode(self.payload) if self.payload is not None else None
        except (TypeError, ValueError, KeyError) as e:
            return Err(SerializationError.invalid_field(C.FIELD_PAYLOAD, str(e), cause=e))
        state: SessionState[T] = SessionState(
            payload=payload,
            context=self.context,
            expires_at=self.expires_at,
            policy=policy,
        )
        return Ok(Session(self.id, self.created_at, state))

    def to_dict(self) -> dict[str, Any]:
        return {
            C.FIELD_ID: self.id,
            C.FIELD_CREATED_AT: self.created_at.nanos,
            C.FIELD_PAYLOAD: self.payload,
            C.FIELD_CONTEXT: dict(self.context),
            C.FIELD_EXPIRES_AT: self.expires_at.nanos if self.expires_at else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Result[SessionRecord, SerializationError]:
        """
        Validate and parse the dict form.

        Unknown keys are ignored. payload, context and expires_at may
        be absent; id and created_at are required.
        """
        if not isinstance(data, Mapping):
            return Err(SerializationError.corrupt_payload(
                f"expected an object, got {type(data).__name__}"
            ))

        if C.FIELD_ID not in data:
            return Err(SerializationError.missing_field(C.FIELD_ID))
        session_id = data[C.FIELD_ID]
        if not isinstance(session_id, str) or not session_id:
            return Err(SerializationError.invalid_field(C.FIELD_ID, "expected non-empty string"))

        if C.FIELD_CREATED_AT not in data:
            return Err(SerializationError.missing_field(C.FIELD_CREATED_AT))
        created_at = _parse_timestamp(C.FIELD_CREATED_AT, data[C.FIELD_CREATED_AT])
        if created_at.is_err():
            return created_at
        if created_at.value is None:
            return Err(SerializationError.invalid_field(C.FIELD_CREATED_AT, "must not be null"))

        expires_at = _parse_timestamp(C.FIELD_EXPIRES_AT, data.get(C.FIELD_EXPIRES_AT))
        if expires_at.is_err():
            return expires_at

        context = data.get(C.FIELD_CONTEXT) or {}
        if not isinstance(context, Mapping) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in context.items()
        ):
            return Err(SerializationError.invalid_field(
                C.FIELD_CONTEXT, "expected mapping of string to string"
            ))

        return Ok(cls(
            id=session_id,
            created_at=created_at.value,
            payload=data.get(C.FIELD_PAYLOAD),
            context=dict(context),
            expires_at=expires_at.value,
        ))


def _parse_timestamp(name: str, raw: Any) -> Result[Optional[Timestamp], SerializationError]:
    if raw is None:
        return Ok(None)
    if isinstance(raw, bool) or not isinstance(raw, int) or raw < 0:
        return Err(SerializationError.invalid_field(name, "expected non-negative integer nanoseconds"))
    return Ok(Timestamp(nanos=raw))


# =============================================================================
# SERIALIZER
# =============================================================================
class SessionSerializer(Generic[T]):
    """
    Text and binary encodings of sessions for a given payload codec.

    Usage:
        serializer = SessionSerializer(DataclassPayloadCodec(DefaultSessionData))
        blob = serializer.dumps(session).unwrap()
        restored = serializer.loads(blob).unwrap()
    """

    __slots__ = ("_codec", "_compression_threshold", "_policy")

    def __init__(
        self,
        codec: Optional[PayloadCodec[T]] = None,
        compression_threshold: int = C.COMPRESSION_THRESHOLD_BYTES,
        policy: PoisonPolicy = PoisonPolicy.DEGRADE,
    ) -> None:
        self._codec: PayloadCodec[T] = codec if codec is not None else PassthroughPayloadCodec()
        self._compression_threshold = compression_threshold
        self._policy = policy

    @classmethod
    def from_config(
        cls,
        config: SessionConfig,
        codec: Optional[PayloadCodec[T]] = None,
    ) -> SessionSerializer[T]:
        """Serializer using the configured compression threshold and poison policy."""
        return cls(codec, config.compression_threshold_bytes, config.poison_policy)

    @property
    def codec(self) -> PayloadCodec[T]:
        return self._codec

    # -------------------------------------------------------------------------
    # Dict / JSON
    # -------------------------------------------------------------------------

    def to_record(self, session: Session[T]) -> Result[SessionRecord, SerializationError]:
        return SessionRecord.from_session(session, self._codec)

    def to_dict(self, session: Session[T]) -> Result[dict[str, Any], SerializationError]:
        return self.to_record(session).map(SessionRecord.to_dict)

    def from_dict(self, data: Mapping[str, Any]) -> Result[Session[T], SerializationError]:
        return SessionRecord.from_dict(data).flat_map(
            lambda record: record.to_session(self._codec, self._policy)
        )

    def to_json(self, session: Session[T]) -> Result[str, SerializationError]:
        return self.to_record(session).flat_map(self.record_to_json)

    def record_to_json(self, record: SessionRecord) -> Result[str, SerializationError]:
        try:
            return Ok(json.dumps(record.to_dict(), separators=(",", ":"), sort_keys=True))
        except (TypeError, ValueError) as e:
            return Err(SerializationError.encoding_failed(record.id, cause=e))

    def from_json(self, text: str) -> Result[Session[T], SerializationError]:
        try:
            data = json.loads(text)
        except ValueError as e:
            return Err(SerializationError.corrupt_payload("invalid JSON", cause=e))
        return self.from_dict(data)

    # -------------------------------------------------------------------------
    # Binary envelope
    # -------------------------------------------------------------------------

    def dumps(self, session: Session[T]) -> Result[bytes, SerializationError]:
        return self.to_record(session).flat_map(self.encode_record)

    def encode_record(self, record: SessionRecord) -> Result[bytes, SerializationError]:
        """Binary envelope for an already captured record."""
        text = self.record_to_json(record)
        if text.is_err():
            return text

        body = text.value.encode("utf-8")
        flags = 0
        if len(body) > self._compression_threshold:
            body = lz4.frame.compress(body)
            flags |= C.FLAG_COMPRESSED

        blob = _HEADER.pack(C.WIRE_FORMAT_VERSION, flags) + body
        logger.debug(
            "Session serialized",
            session_id=record.id,
            size_bytes=len(blob),
            compressed=bool(flags & C.FLAG_COMPRESSED),
        )
        return Ok(blob)

    def loads(self, blob: bytes) -> Result[Session[T], SerializationError]:
        if len(blob) < C.WIRE_HEADER_BYTES:
            return Err(SerializationError.corrupt_payload(f"truncated header ({len(blob)} bytes)"))
        if len(blob) > C.MAX_SERIALIZED_BYTES:
            return Err(SerializationError.corrupt_payload(
                f"blob of {len(blob)} bytes exceeds limit {C.MAX_SERIALIZED_BYTES}"
            ))

        version, flags = _HEADER.unpack_from(blob)
        if version != C.WIRE_FORMAT_VERSION:
            return Err(SerializationError.unsupported_version(version, C.WIRE_FORMAT_VERSION))

        body = blob[C.WIRE_HEADER_BYTES:]
        if flags & C.FLAG_COMPRESSED:
            decoded = _decompress_bounded(body, C.MAX_SERIALIZED_BYTES)
            if decoded.is_err():
                return decoded
            body = decoded.value

        try:
            text = body.decode("utf-8")
        except UnicodeDecodeError as e:
            return Err(SerializationError.corrupt_payload("body is not UTF-8", cause=e))
        return self.from_json(text)


def _decompress_bounded(body: bytes, limit: int) -> Result[bytes, SerializationError]:
    """Inflate one LZ4 frame, refusing output beyond limit bytes."""
    decompressor = lz4.frame.LZ4FrameDecompressor()
    try:
        out = decompressor.decompress(body, max_length=limit + 1)
    except RuntimeError as e:
        return Err(SerializationError.corrupt_payload("LZ4 frame decode failed", cause=e))
    if len(out) > limit:
        return Err(SerializationError.corrupt_payload(
            f"decompressed body exceeds limit {limit}"
        ))
    if not decompressor.eof:
        return Err(SerializationError.corrupt_payload("LZ4 frame is incomplete"))
    return Ok(out)

"""
Package-Wide Constants for Session Objects

All magic numbers and configuration defaults centralized here.
"""

from typing import Final

# =============================================================================
# SIZE UNITS
# =============================================================================
KB: Final[int] = 1024
MB: Final[int] = 1024 * KB

# =============================================================================
# IDENTIFIERS
# =============================================================================
UUID_STRING_LENGTH: Final[int] = 36
DEFAULT_TOKEN_BYTES: Final[int] = 32  # 256 bits of entropy

# =============================================================================
# WIRE FORMAT
# =============================================================================
WIRE_FORMAT_VERSION: Final[int] = 0x01
WIRE_HEADER_BYTES: Final[int] = 2  # version (1) + flags (1)
FLAG_COMPRESSED: Final[int] = 0x01
COMPRESSION_THRESHOLD_BYTES: Final[int] = 1 * KB
MAX_SERIALIZED_BYTES: Final[int] = 1 * MB

# Field names of the persisted record. Runtime-only flags never appear here.
FIELD_ID: Final[str] = "id"
FIELD_CREATED_AT: Final[str] = "created_at"
FIELD_PAYLOAD: Final[str] = "payload"
FIELD_CONTEXT: Final[str] = "context"
FIELD_EXPIRES_AT: Final[str] = "expires_at"

# =============================================================================
# ENVIRONMENT
# =============================================================================
ENV_PREFIX: Final[str] = "SESSIONCORE_"

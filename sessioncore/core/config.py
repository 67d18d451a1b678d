"""
Configuration Management for Session Objects

Provides validated configuration with sensible defaults.
Supports environment variable overrides.

Design:
- Immutable after construction
- Fail-fast on invalid configuration (Result, not exceptions)
- Type-safe with dataclasses
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from sessioncore.core import constants as C
from sessioncore.core.errors import ConfigError
from sessioncore.core.sync import PoisonPolicy
from sessioncore.core.types import Result, Ok, Err

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})
_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


@dataclass(frozen=True)
class SessionConfig:
    """
    Root configuration for session construction and persistence.

    default_ttl_seconds: expiry applied by SessionBuilder.from_config();
        None means sessions never expire unless the caller says so.
    compression_threshold_bytes: serialized sessions larger than this
        are LZ4-compressed in the binary envelope.
    poison_policy: accessor behaviour after lock poisoning.
    """

    default_ttl_seconds: Optional[float] = None
    compression_threshold_bytes: int = C.COMPRESSION_THRESHOLD_BYTES
    poison_policy: PoisonPolicy = PoisonPolicy.DEGRADE
    log_level: str = "INFO"
    log_json: bool = True

    @classmethod
    def from_env(cls) -> Result[SessionConfig, ConfigError]:
        """
        Load configuration from environment variables.

        Environment variables are prefixed with SESSIONCORE_.
        Example: SESSIONCORE_DEFAULT_TTL_SECONDS=3600
        """
        env = os.environ
        prefix = C.ENV_PREFIX

        ttl_raw = env.get(f"{prefix}DEFAULT_TTL_SECONDS", "").strip()
        threshold_raw = env.get(
            f"{prefix}COMPRESSION_THRESHOLD_BYTES", str(C.COMPRESSION_THRESHOLD_BYTES)
        )
        policy_raw = env.get(f"{prefix}POISON_POLICY", PoisonPolicy.DEGRADE.value)
        json_raw = env.get(f"{prefix}LOG_JSON", "true").strip().lower()

        try:
            ttl = float(ttl_raw) if ttl_raw else None
        except ValueError as e:
            return Err(ConfigError.invalid_value("default_ttl_seconds", ttl_raw, str(e)))

        try:
            threshold = int(threshold_raw)
        except ValueError as e:
            return Err(ConfigError.invalid_value(
                "compression_threshold_bytes", threshold_raw, str(e)
            ))

        try:
            policy = PoisonPolicy.parse(policy_raw)
        except ValueError:
            return Err(ConfigError.invalid_value(
                "poison_policy", policy_raw, "expected 'degrade' or 'raise'"
            ))

        if json_raw in _TRUE_VALUES:
            log_json = True
        elif json_raw in _FALSE_VALUES:
            log_json = False
        else:
            return Err(ConfigError.invalid_value("log_json", json_raw, "expected a boolean"))

        config = cls(
            default_ttl_seconds=ttl,
            compression_threshold_bytes=threshold,
            poison_policy=policy,
            log_level=env.get(f"{prefix}LOG_LEVEL", "INFO").strip().upper(),
            log_json=log_json,
        )
        return config.validate().map(lambda _: config)

    def validate(self) -> Result[None, ConfigError]:
        """Validate configuration invariants."""
        if self.default_ttl_seconds is not None and self.default_ttl_seconds <= 0:
            return Err(ConfigError.invalid_value(
                "default_ttl_seconds", self.default_ttl_seconds, "must be positive"
            ))
        if self.compression_threshold_bytes < 0:
            return Err(ConfigError.invalid_value(
                "compression_threshold_bytes",
                self.compression_threshold_bytes,
                "must be >= 0",
            ))
        if self.log_level not in _LOG_LEVELS:
            return Err(ConfigError.invalid_value(
                "log_level", self.log_level, f"expected one of {sorted(_LOG_LEVELS)}"
            ))
        return Ok(None)

"""
Unit Tests: SessionBuilder and Identifier Generators

Tests:
    - Default construction
    - Payload, expiry, context accumulation
    - Custom id strategies
    - Single-use enforcement
    - Configuration seeding
"""

import itertools
import time
from datetime import timedelta

import pytest

from sessioncore.core import constants as C
from sessioncore.core.config import SessionConfig
from sessioncore.core.errors import LockError
from sessioncore.core.sync import PoisonPolicy
from sessioncore.session import (
    CallableSessionIdGenerator,
    DefaultSessionData,
    SessionBuilder,
    SessionIdGenerator,
    TokenSessionIdGenerator,
    UuidSessionIdGenerator,
    as_id_generator,
    default_session_id_generator,
)


class TestBuilderBasics:
    """Tests for default builds."""

    def test_default_build(self):
        session = SessionBuilder().build()
        assert len(session.id) == C.UUID_STRING_LENGTH
        assert not session.is_expired()
        assert not session.is_modified()
        assert not session.is_discarded()
        assert not session.has_data()
        assert session.context() == {}

    def test_with_data(self):
        data = DefaultSessionData(user_id=1, username="bob")
        session = SessionBuilder[DefaultSessionData]().data(data).build()
        assert session.has_data()
        assert session.data() == data

    def test_with_expiration(self):
        session = SessionBuilder().expires_in(timedelta(hours=1)).build()
        assert session.expires_at() is not None
        assert session.expires_at() - session.created_at == 3600 * 1_000_000_000

    def test_with_context(self):
        session = (
            SessionBuilder()
            .context("theme", "dark")
            .context("language", "en")
            .build()
        )
        assert session.get_context("theme") == "dark"
        assert session.get_context("language") == "en"

    def test_bulk_contexts(self):
        session = SessionBuilder().contexts({"a": "1", "b": "2"}).build()
        assert session.context() == {"a": "1", "b": "2"}

    def test_chaining(self):
        session = (
            SessionBuilder()
            .data(DefaultSessionData(user_id=42, username="alice"))
            .expires_in(7200)
            .context("theme", "dark")
            .context("timezone", "UTC")
            .build()
        )
        assert session.data().user_id == 42
        assert session.expires_at() is not None
        assert session.context() == {"theme": "dark", "timezone": "UTC"}
        assert not session.is_modified()

    def test_expiry_resolved_at_build_time(self):
        builder = SessionBuilder().expires_in(timedelta(seconds=10))
        time.sleep(0.02)
        session = builder.build()
        assert session.expires_at() - session.created_at == 10 * 1_000_000_000

    def test_data_is_copied_into_builder(self):
        payload = {"roles": ["user"]}
        builder = SessionBuilder().data(payload)
        payload["roles"].append("admin")
        assert builder.build().data() == {"roles": ["user"]}

    def test_unique_ids(self):
        ids = {SessionBuilder().build().id for _ in range(200)}
        assert len(ids) == 200

    def test_rejects_bad_input(self):
        with pytest.raises(ValueError):
            SessionBuilder().expires_in(-5)
        with pytest.raises(TypeError):
            SessionBuilder().context("n", 5)


class TestSingleUse:
    """Tests for consumption by build()."""

    def test_second_build_raises(self):
        builder = SessionBuilder()
        builder.build()
        with pytest.raises(RuntimeError):
            builder.build()

    def test_setters_after_build_raise(self):
        builder = SessionBuilder()
        builder.build()
        with pytest.raises(RuntimeError):
            builder.context("k", "v")
        with pytest.raises(RuntimeError):
            builder.data({})


class TestIdGenerators:
    """Tests for identifier strategies."""

    def test_custom_callable(self):
        counter = itertools.count(1)
        session = SessionBuilder().id_generator(lambda: f"custom-{next(counter)}").build()
        assert session.id == "custom-1"

    def test_custom_object(self):
        class Fixed:
            def generate(self) -> str:
                return "fixed-id"

        assert isinstance(Fixed(), SessionIdGenerator)
        assert SessionBuilder().id_generator(Fixed()).build().id == "fixed-id"

    def test_empty_id_rejected(self):
        builder = SessionBuilder().id_generator(lambda: "")
        with pytest.raises(ValueError):
            builder.build()

    def test_non_string_id_rejected(self):
        with pytest.raises(ValueError):
            SessionBuilder().id_generator(lambda: 12345).build()

    def test_token_generator(self):
        gen = TokenSessionIdGenerator(nbytes=16)
        first, second = gen.generate(), gen.generate()
        assert first != second
        assert "/" not in first and "+" not in first
        with pytest.raises(ValueError):
            TokenSessionIdGenerator(nbytes=8)

    def test_default_is_uuid(self):
        assert isinstance(default_session_id_generator(), UuidSessionIdGenerator)

    def test_as_id_generator(self):
        wrapped = as_id_generator(lambda: "x")
        assert isinstance(wrapped, CallableSessionIdGenerator)
        assert wrapped.generate() == "x"
        uuid_gen = UuidSessionIdGenerator()
        assert as_id_generator(uuid_gen) is uuid_gen
        with pytest.raises(TypeError):
            as_id_generator(42)


class TestFromConfig:
    """Tests for configuration seeding."""

    def test_default_ttl_applied(self):
        config = SessionConfig(default_ttl_seconds=120)
        session = SessionBuilder.from_config(config).build()
        assert session.expires_at() - session.created_at == 120 * 1_000_000_000

    def test_explicit_expiry_overrides_default(self):
        config = SessionConfig(default_ttl_seconds=120)
        session = SessionBuilder.from_config(config).expires_in(5).build()
        assert session.expires_at() - session.created_at == 5 * 1_000_000_000

    def test_no_default_ttl(self):
        session = SessionBuilder.from_config(SessionConfig()).build()
        assert session.expires_at() is None

    def test_poison_policy_applied(self):
        config = SessionConfig(poison_policy=PoisonPolicy.RAISE)
        session = SessionBuilder.from_config(config).build()
        with pytest.raises(RuntimeError):
            with session._state.writing():
                raise RuntimeError("boom")
        with pytest.raises(LockError):
            session.is_modified()

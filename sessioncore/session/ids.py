"""
Session Identifier Generation

Pluggable strategies producing opaque, practically-unique session ids.
Every strategy here is stateless and therefore safe to call from any
number of threads at once.
"""

from __future__ import annotations

import secrets
from typing import Callable, Protocol, Union, runtime_checkable
from uuid import uuid4

from sessioncore.core import constants as C


@runtime_checkable
class SessionIdGenerator(Protocol):
    """Capability interface: produce a fresh, non-empty session id."""

    def generate(self) -> str:
        ...


class UuidSessionIdGenerator:
    """Random 128-bit UUID4 in canonical 36-character form. The default."""

    __slots__ = ()

    def generate(self) -> str:
        return str(uuid4())

    def __repr__(self) -> str:
        return "UuidSessionIdGenerator()"


class TokenSessionIdGenerator:
    """
    URL-safe random token, suitable for use directly as a cookie value.

    nbytes of entropy are drawn from the OS CSPRNG; the rendered token
    is roughly 1.3 * nbytes characters.
    """

    __slots__ = ("_nbytes",)

    def __init__(self, nbytes: int = C.DEFAULT_TOKEN_BYTES) -> None:
        if nbytes < 16:
            raise ValueError(f"nbytes must be >= 16 for unguessable ids, got {nbytes}")
        self._nbytes = nbytes

    def generate(self) -> str:
        return secrets.token_urlsafe(self._nbytes)

    def __repr__(self) -> str:
        return f"TokenSessionIdGenerator(nbytes={self._nbytes})"


class CallableSessionIdGenerator:
    """Adapts a zero-argument callable to the generator interface."""

    __slots__ = ("_fn",)

    def __init__(self, fn: Callable[[], str]) -> None:
        self._fn = fn

    def generate(self) -> str:
        return self._fn()

    def __repr__(self) -> str:
        return f"CallableSessionIdGenerator({self._fn!r})"


IdGeneratorLike = Union[SessionIdGenerator, Callable[[], str]]


def default_session_id_generator() -> SessionIdGenerator:
    return UuidSessionIdGenerator()


def as_id_generator(generator: IdGeneratorLike) -> SessionIdGenerator:
    """Accept either a generator object or a bare callable."""
    if isinstance(generator, SessionIdGenerator):
        return generator
    if callable(generator):
        return CallableSessionIdGenerator(generator)
    raise TypeError(
        f"expected SessionIdGenerator or callable, got {type(generator).__name__}"
    )

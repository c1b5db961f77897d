"""Explicit caller identity and per-call credentials.

Nothing in the core reads "the current user" from ambient state; callers build
a :class:`Principal` and pass it into every façade call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Awaitable, Callable, Protocol, runtime_checkable


@runtime_checkable
class CredentialSource(Protocol):
    """Hands out a bearer token. Called once per provider request, never cached."""

    async def bearer_token(self) -> str: ...


@runtime_checkable
class IdentityProvider(Protocol):
    """Boundary to the external auth provider."""

    def get_current_subject_id(self) -> str | None: ...
    def get_current_email(self) -> str | None: ...
    async def get_fresh_bearer_token(self) -> str: ...


@dataclass(frozen=True)
class StaticCredentials:
    token: str = field(repr=False)

    async def bearer_token(self) -> str:
        return self.token


@dataclass(frozen=True)
class CallableCredentials:
    fetch: Callable[[], Awaitable[str]]

    async def bearer_token(self) -> str:
        return await self.fetch()


@dataclass(frozen=True)
class Principal:
    subject_id: str
    email: str | None
    credentials: CredentialSource

    @classmethod
    def from_identity_provider(cls, provider: IdentityProvider) -> "Principal":
        return cls(
            subject_id=provider.get_current_subject_id() or "",
            email=provider.get_current_email(),
            credentials=CallableCredentials(provider.get_fresh_bearer_token),
        )

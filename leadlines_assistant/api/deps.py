"""FastAPI dependencies: authenticated principal and façade lookup."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from fastapi import Header, Request

from ..exceptions import IdentityResolutionError
from ..identity.principal import Principal
from ..services.conversation import ConversationFacade


@dataclass(frozen=True)
class VerifiedIdentity:
    subject_id: str
    email: str | None = None


@runtime_checkable
class TokenVerifier(Protocol):
    """Checks an identity-provider bearer token.

    Implementations raise ``IdentityResolutionError`` for invalid tokens.
    """

    async def verify(self, token: str) -> VerifiedIdentity: ...


def get_facade(request: Request) -> ConversationFacade:
    return request.app.state.facade


async def get_principal(request: Request, authorization: str | None = Header(default=None)) -> Principal:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise IdentityResolutionError("Authentication required")
    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise IdentityResolutionError("Authentication required")

    verifier: TokenVerifier = request.app.state.token_verifier
    identity = await verifier.verify(token)
    return Principal(
        subject_id=identity.subject_id,
        email=identity.email,
        credentials=request.app.state.provider_credentials,
    )

"""Identity bridge: external-auth subject -> stable local owner key."""

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db.session import transaction
from ..exceptions import ConflictError, IdentityResolutionError
from ..logging_utils import get_logger
from ..repositories.owner_repo import SQLAlchemyOwnerRepository

logger = get_logger(__name__)


class IdentityBridge:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._sf = session_factory

    async def resolve_owner(self, subject_id: str, email: str | None = None) -> str:
        """Return the owner key for ``subject_id``, creating it on first use.

        Idempotent: at most one owner row is ever created per subject. An
        existing owner's email is left untouched.
        """
        if not isinstance(subject_id, str) or not subject_id.strip():
            raise IdentityResolutionError("Missing authenticated subject")

        try:
            try:
                owner_id = await self._get_or_create(subject_id, email)
            except ConflictError:
                # Lost a first-use race to a concurrent request; the winner's row exists now.
                owner_id = await self._get_existing(subject_id)
        except SQLAlchemyError as exc:
            logger.error("Owner lookup failed", data={"subject_id": subject_id, "error": str(exc)})
            raise IdentityResolutionError("Identity store unavailable") from exc

        if not isinstance(owner_id, str) or not owner_id:
            raise IdentityResolutionError("Identity store returned a malformed owner")
        return owner_id

    async def _get_or_create(self, subject_id: str, email: str | None) -> str | None:
        async with transaction(self._sf) as session:
            repo = SQLAlchemyOwnerRepository(session)
            owner = await repo.get_by_subject(subject_id)
            if owner is None:
                owner = await repo.create(subject_id, email)
                logger.info("Owner created", data={"subject_id": subject_id, "owner": owner.id})
            return owner.id

    async def _get_existing(self, subject_id: str) -> str | None:
        async with transaction(self._sf) as session:
            owner = await SQLAlchemyOwnerRepository(session).get_by_subject(subject_id)
            return owner.id if owner else None

"""Owner repository: the subject -> owner key mapping."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.models import Owner
from ..db.types import GUID
from ..exceptions import ConflictError


@runtime_checkable
class OwnerRepository(Protocol):
    async def get_by_subject(self, subject_id: str) -> Owner | None: ...
    async def create(self, subject_id: str, email: str | None) -> Owner: ...


class SQLAlchemyOwnerRepository:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_subject(self, subject_id: str) -> Owner | None:
        result = await self._session.execute(select(Owner).where(Owner.subject_id == subject_id))
        return result.scalar_one_or_none()

    async def create(self, subject_id: str, email: str | None) -> Owner:
        owner = Owner(id=GUID.new(), subject_id=subject_id, email=email)
        self._session.add(owner)
        try:
            await self._session.flush()
        except IntegrityError as exc:
            raise ConflictError("owner already exists for subject") from exc
        return owner

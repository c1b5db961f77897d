"""Owner-scoped CRUD shared by every metadata record kind."""

from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar, Generic, TypeVar

from sqlalchemy import Select, delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.models import Base
from ..db.types import GUID
from ..exceptions import ConflictError, InvalidRequestError, NotFoundError

ModelT = TypeVar("ModelT", bound=Base)


class SortKey(str, Enum):
    CREATED_AT = "created_at"
    LAST_MESSAGE_AT = "last_message_at"


class OwnerScopedRepository(Generic[ModelT]):
    """Generic find/list/insert/update/delete for one record kind.

    Every statement carries ``owner_id == owner``; there is no method that
    reads or writes across owners. Subclasses set ``model`` and ``kind``.
    """

    model: ClassVar[type[Base]]
    kind: ClassVar[str] = "record"

    def __init__(self, session: AsyncSession):
        self._session = session

    def _scoped(self, owner: str, filters: dict[str, Any]) -> Select:
        stmt = select(self.model).where(self.model.owner_id == owner)
        for key, value in filters.items():
            stmt = stmt.where(getattr(self.model, key) == value)
        return stmt

    async def get(self, owner: str, **filters: Any) -> ModelT | None:
        result = await self._session.execute(self._scoped(owner, filters).limit(1))
        return result.scalar_one_or_none()

    async def find(self, owner: str, **filters: Any) -> ModelT:
        record = await self.get(owner, **filters)
        if record is None:
            raise NotFoundError(f"{self.kind} not found", kind=self.kind, **filters)
        return record

    async def list_for_owner(
        self,
        owner: str,
        sort: SortKey = SortKey.CREATED_AT,
        descending: bool = True,
        limit: int = 100,
        offset: int = 0,
        **filters: Any,
    ) -> list[ModelT]:
        column = getattr(self.model, SortKey(sort).value, None)
        if column is None:
            raise InvalidRequestError(f"{self.kind} cannot be sorted by {sort.value}")
        order = column.desc().nulls_last() if descending else column.asc().nulls_first()
        stmt = self._scoped(owner, filters).order_by(order)
        if sort != SortKey.CREATED_AT:
            stmt = stmt.order_by(self.model.created_at.desc() if descending else self.model.created_at.asc())
        result = await self._session.execute(stmt.offset(offset).limit(limit))
        return list(result.scalars().all())

    async def insert(self, owner: str, **values: Any) -> ModelT:
        record = self.model(id=GUID.new(), owner_id=owner, **values)
        self._session.add(record)
        try:
            await self._session.flush()
        except IntegrityError as exc:
            raise ConflictError(f"{self.kind} already exists", kind=self.kind) from exc
        return record

    async def update(self, owner: str, filters: dict[str, Any], **values: Any) -> ModelT:
        record = await self.find(owner, **filters)
        for key, value in values.items():
            if hasattr(record, key):
                setattr(record, key, value)
        await self._session.flush()
        return record

    async def delete(self, owner: str, **filters: Any) -> None:
        stmt = delete(self.model).where(self.model.owner_id == owner)
        for key, value in filters.items():
            stmt = stmt.where(getattr(self.model, key) == value)
        result = await self._session.execute(stmt)
        if not result.rowcount:
            raise NotFoundError(f"{self.kind} not found", kind=self.kind, **filters)

"""Message cache repository (derived copy of provider messages)."""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete, select

from ..db.models import CachedMessage
from ..db.types import GUID
from .base import OwnerScopedRepository


class CachedMessageRepository(OwnerScopedRepository[CachedMessage]):
    model = CachedMessage
    kind = "cached message"

    async def replace_for_thread(self, owner: str, thread_id: str, messages: list[dict[str, Any]]) -> int:
        """Swap the cached copy of a thread for ``messages``."""
        await self.clear_thread(owner, thread_id)
        for message in messages:
            self._session.add(
                CachedMessage(
                    id=GUID.new(),
                    owner_id=owner,
                    thread_id=thread_id,
                    message_id=message["id"],
                    role=message["role"],
                    content=message.get("content") or "",
                    run_id=message.get("run_id"),
                    created_at=message["created_at"],
                )
            )
        await self._session.flush()
        return len(messages)

    async def list_for_thread(self, owner: str, thread_id: str) -> list[CachedMessage]:
        result = await self._session.execute(
            select(CachedMessage)
            .where(CachedMessage.owner_id == owner, CachedMessage.thread_id == thread_id)
            .order_by(CachedMessage.created_at)
        )
        return list(result.scalars().all())

    async def clear_thread(self, owner: str, thread_id: str) -> None:
        await self._session.execute(
            delete(CachedMessage).where(
                CachedMessage.owner_id == owner, CachedMessage.thread_id == thread_id
            )
        )

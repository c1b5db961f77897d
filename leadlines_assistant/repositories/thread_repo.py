"""Thread repository."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import or_, update

from ..db.models import Thread
from .base import OwnerScopedRepository


class ThreadRepository(OwnerScopedRepository[Thread]):
    model = Thread
    kind = "thread"

    async def touch_last_message_at(self, owner: str, thread_id: str, at: datetime) -> Thread:
        """Advance ``last_message_at`` to ``at``; never moves it backwards."""
        await self._session.execute(
            update(Thread)
            .where(
                Thread.owner_id == owner,
                Thread.thread_id == thread_id,
                or_(Thread.last_message_at.is_(None), Thread.last_message_at < at),
            )
            .values(last_message_at=at)
            .execution_options(synchronize_session=False)
        )
        thread = await self.find(owner, thread_id=thread_id)
        await self._session.refresh(thread)
        return thread

"""Thread lifecycle: keep provider threads and local thread rows in agreement."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db.session import transaction
from ..exceptions import ConflictError, PartialWriteError, ProviderError
from ..identity.principal import CredentialSource
from ..logging_utils import get_logger
from ..provider.client import AssistantProviderClient
from ..provider.schemas import Message
from ..repositories.base import SortKey
from ..repositories.message_repo import CachedMessageRepository
from ..repositories.thread_repo import ThreadRepository
from ..schemas import ThreadRecord

logger = get_logger(__name__)


class ThreadLifecycleManager:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        client: AssistantProviderClient,
        default_title: str = "New Conversation",
    ):
        self._sf = session_factory
        self._client = client
        self.default_title = default_title

    async def create_thread(
        self, owner: str, credentials: CredentialSource, title: str | None = None
    ) -> ThreadRecord:
        """Create the provider thread first, then record it locally.

        If the local insert fails the provider thread is left orphaned and a
        ``PartialWriteError`` names it.
        """
        provider_thread = await self._client.create_thread(credentials)
        try:
            async with transaction(self._sf) as session:
                thread = await ThreadRepository(session).insert(
                    owner, thread_id=provider_thread.id, title=title or self.default_title
                )
                record = ThreadRecord.model_validate(thread)
        except (ConflictError, SQLAlchemyError) as exc:
            logger.error(
                "Thread created at provider but not recorded",
                data={"thread_id": provider_thread.id, "error": str(exc)},
            )
            raise PartialWriteError(
                "record_thread", ["create_thread"], exc, thread_id=provider_thread.id
            ) from exc
        logger.info("Thread created", data={"thread_id": record.thread_id})
        return record

    async def get_thread(self, owner: str, thread_id: str) -> ThreadRecord:
        async with transaction(self._sf) as session:
            thread = await ThreadRepository(session).find(owner, thread_id=thread_id)
            return ThreadRecord.model_validate(thread)

    async def list_threads(self, owner: str, limit: int = 100, offset: int = 0) -> list[ThreadRecord]:
        async with transaction(self._sf) as session:
            threads = await ThreadRepository(session).list_for_owner(
                owner, sort=SortKey.LAST_MESSAGE_AT, limit=limit, offset=offset
            )
            return [ThreadRecord.model_validate(t) for t in threads]

    async def delete_thread(self, owner: str, credentials: CredentialSource, thread_id: str) -> None:
        """Delete at the provider, then locally.

        A provider-side failure keeps the local row. A provider 404 means the
        thread is already gone there, so the local row is removed anyway.
        """
        await self.get_thread(owner, thread_id)

        try:
            await self._client.delete_thread(credentials, thread_id)
        except ProviderError as exc:
            if not exc.is_not_found:
                raise
            logger.info("Thread already gone at provider; removing local row", data={"thread_id": thread_id})

        try:
            async with transaction(self._sf) as session:
                await ThreadRepository(session).delete(owner, thread_id=thread_id)
                await CachedMessageRepository(session).clear_thread(owner, thread_id)
        except SQLAlchemyError as exc:
            logger.error("Thread deleted at provider but local row kept", data={"thread_id": thread_id})
            raise PartialWriteError("remove_thread_record", ["delete_thread"], exc, thread_id=thread_id) from exc
        logger.info("Thread deleted", data={"thread_id": thread_id})

    async def record_activity(
        self,
        owner: str,
        thread_id: str,
        at: datetime,
        messages: list[Message] | None = None,
    ) -> ThreadRecord:
        """Advance ``last_message_at`` and, when given, refresh the message cache.

        The timestamp commits on its own; a failed cache refresh does not undo it.
        """
        async with transaction(self._sf) as session:
            thread = await ThreadRepository(session).touch_last_message_at(owner, thread_id, at)
            record = ThreadRecord.model_validate(thread)
        if messages is not None:
            await self.cache_messages(owner, thread_id, messages)
        return record

    async def cache_messages(self, owner: str, thread_id: str, messages: list[Message]) -> bool:
        """Mirror ``messages`` into the derived cache. Returns False if the write was dropped."""
        try:
            async with transaction(self._sf) as session:
                await CachedMessageRepository(session).replace_for_thread(
                    owner, thread_id, [m.model_dump() for m in messages]
                )
        except SQLAlchemyError as exc:
            # Concurrent refreshes of one thread race on (owner_id, message_id).
            logger.warning(
                "Message cache refresh skipped",
                data={"thread_id": thread_id, "error": type(exc).__name__},
            )
            return False
        return True

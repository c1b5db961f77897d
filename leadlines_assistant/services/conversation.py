"""ConversationFacade: the single entry point for UI/API callers.

Every method resolves the caller's owner key through the identity bridge
first and then delegates; the principal's credentials are handed to each
provider call explicitly.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import Settings
from ..exceptions import InvalidRequestError
from ..identity.bridge import IdentityBridge
from ..identity.principal import Principal
from ..logging_utils import get_logger, log_context
from ..provider.client import AssistantProviderClient
from ..provider.schemas import Message
from ..schemas import AssistantRecord, FileRecord, FileUpload, ThreadRecord
from .assistants import AssistantBindingManager
from .files import FileLifecycleManager
from .run_orchestrator import RunOrchestrator
from .threads import ThreadLifecycleManager

logger = get_logger(__name__)


def assistant_reply(messages: list[Message]) -> Message | None:
    """The newest assistant message posted after the most recent user message, if any."""
    for message in reversed(messages):
        if message.role == "user":
            return None
        if message.role == "assistant":
            return message
    return None


class ConversationFacade:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        client: AssistantProviderClient,
        settings: Settings,
        orchestrator: RunOrchestrator | None = None,
        now: Callable[[], datetime] | None = None,
    ):
        self.settings = settings
        self.identity = IdentityBridge(session_factory)
        self.assistants = AssistantBindingManager(
            session_factory,
            client,
            model=settings.assistant_model,
            name_prefix=settings.assistant_name_prefix,
            instructions=settings.assistant_instructions,
        )
        self.threads = ThreadLifecycleManager(session_factory, client, settings.default_thread_title)
        self.files = FileLifecycleManager(
            session_factory, client, purpose=settings.file_purpose, max_bytes=settings.file_max_bytes
        )
        self.orchestrator = orchestrator or RunOrchestrator(
            client,
            poll_interval=settings.run_poll_interval_seconds,
            timeout=settings.run_timeout_seconds,
            cancel_on_timeout=settings.run_cancel_on_timeout,
        )
        self._client = client
        self._now = now or (lambda: datetime.now(UTC))

    async def _owner(self, principal: Principal) -> str:
        owner = await self.identity.resolve_owner(principal.subject_id, principal.email)
        log_context.set({**log_context.get(), "owner": owner})
        return owner

    # -- assistant ---------------------------------------------------------

    async def get_or_create_assistant(self, principal: Principal) -> AssistantRecord:
        owner = await self._owner(principal)
        return await self.assistants.get_or_create(owner, principal.credentials, label=principal.email)

    async def bind_assistant(self, principal: Principal, assistant_id: str, status: str = "active") -> AssistantRecord:
        owner = await self._owner(principal)
        return await self.assistants.bind(owner, assistant_id, status)

    # -- threads -----------------------------------------------------------

    async def create_thread(self, principal: Principal, title: str | None = None) -> ThreadRecord:
        owner = await self._owner(principal)
        return await self.threads.create_thread(owner, principal.credentials, title)

    async def list_threads(self, principal: Principal) -> list[ThreadRecord]:
        owner = await self._owner(principal)
        return await self.threads.list_threads(owner)

    async def delete_thread(self, principal: Principal, thread_id: str) -> None:
        owner = await self._owner(principal)
        await self.threads.delete_thread(owner, principal.credentials, thread_id)

    # -- messages ----------------------------------------------------------

    async def send_message(
        self, principal: Principal, thread_id: str, content: str, timeout: float | None = None
    ) -> list[Message]:
        """Post ``content`` and wait for the assistant; all-or-nothing.

        Returns the thread's full message list once the run completes, or
        raises. Dominated by the orchestrator's poll loop.
        """
        if not content or not content.strip():
            raise InvalidRequestError("Message content is required")
        owner = await self._owner(principal)
        await self.threads.get_thread(owner, thread_id)
        assistant = await self.assistants.get_or_create(owner, principal.credentials, label=principal.email)

        provider_messages = await self.orchestrator.run(
            principal.credentials, thread_id, assistant.assistant_id, content, timeout=timeout
        )
        messages = [Message.from_provider(m) for m in provider_messages]

        await self.threads.record_activity(
            owner, thread_id, self._now(), messages if self.settings.cache_messages else None
        )
        logger.info("Message exchanged", data={"thread_id": thread_id, "messages": len(messages)})
        return messages

    async def list_messages(self, principal: Principal, thread_id: str) -> list[Message]:
        owner = await self._owner(principal)
        await self.threads.get_thread(owner, thread_id)
        provider_messages = await self._client.list_messages(principal.credentials, thread_id)
        messages = [Message.from_provider(m) for m in provider_messages]
        if self.settings.cache_messages:
            await self.threads.cache_messages(owner, thread_id, messages)
        return messages

    # -- files -------------------------------------------------------------

    async def list_files(self, principal: Principal) -> list[FileRecord]:
        owner = await self._owner(principal)
        return await self.files.list_files(owner)

    async def upload_file(self, principal: Principal, upload: FileUpload) -> FileRecord:
        owner = await self._owner(principal)
        assistant = await self.assistants.get_or_create(owner, principal.credentials, label=principal.email)
        return await self.files.upload_file(owner, principal.credentials, assistant.assistant_id, upload)

    async def attach_file(self, principal: Principal, file_id: str) -> FileRecord:
        owner = await self._owner(principal)
        assistant = await self.assistants.get_or_create(owner, principal.credentials, label=principal.email)
        return await self.files.attach_file(owner, principal.credentials, assistant.assistant_id, file_id)

    async def remove_file(self, principal: Principal, file_id: str) -> None:
        owner = await self._owner(principal)
        await self.files.remove_file(owner, principal.credentials, file_id)

    async def delete_file(self, principal: Principal, file_id: str) -> None:
        owner = await self._owner(principal)
        await self.files.delete_file(owner, principal.credentials, file_id)

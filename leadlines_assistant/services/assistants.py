"""Assistant bindings: which provider assistant serves which owner."""

from __future__ import annotations

from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db.session import transaction
from ..exceptions import ConflictError, PartialWriteError
from ..identity.principal import CredentialSource
from ..logging_utils import get_logger
from ..provider.client import AssistantProviderClient
from ..repositories.assistant_repo import AssistantBindingRepository
from ..schemas import AssistantRecord

logger = get_logger(__name__)

RETRIEVAL_TOOLS = [{"type": "retrieval"}]


class AssistantBindingManager:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        client: AssistantProviderClient,
        model: str,
        name_prefix: str,
        instructions: str,
    ):
        self._sf = session_factory
        self._client = client
        self.model = model
        self.name_prefix = name_prefix
        self.instructions = instructions

    async def get(self, owner: str) -> AssistantRecord | None:
        async with transaction(self._sf) as session:
            binding = await AssistantBindingRepository(session).get(owner)
            return AssistantRecord.model_validate(binding) if binding else None

    async def bind(
        self, owner: str, assistant_id: str, status: str = "active", metadata: dict[str, Any] | None = None
    ) -> AssistantRecord:
        """Idempotently point the owner at ``assistant_id`` (external provisioning)."""
        async with transaction(self._sf) as session:
            binding = await AssistantBindingRepository(session).upsert(owner, assistant_id, status, metadata)
            return AssistantRecord.model_validate(binding)

    async def get_or_create(self, owner: str, credentials: CredentialSource, label: str | None = None) -> AssistantRecord:
        existing = await self.get(owner)
        if existing is not None:
            return existing

        assistant = await self._client.create_assistant(
            credentials,
            model=self.model,
            name=f"{self.name_prefix} ({label or owner[:8]})",
            instructions=self.instructions,
            tools=RETRIEVAL_TOOLS,
        )
        logger.info("Assistant provisioned", data={"assistant_id": assistant.id})

        try:
            async with transaction(self._sf) as session:
                binding = await AssistantBindingRepository(session).insert(
                    owner, assistant_id=assistant.id, status="active", metadata_={"model": self.model}
                )
                return AssistantRecord.model_validate(binding)
        except ConflictError:
            # A concurrent request bound an assistant first; ours is left unused at the provider.
            logger.warning("Assistant binding race lost", data={"orphaned_assistant_id": assistant.id})
            winner = await self.get(owner)
            if winner is None:
                raise
            return winner
        except SQLAlchemyError as exc:
            raise PartialWriteError(
                "record_assistant", ["create_assistant"], exc, assistant_id=assistant.id
            ) from exc

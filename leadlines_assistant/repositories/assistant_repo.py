"""Assistant binding repository (one active binding per owner)."""

from __future__ import annotations

from typing import Any

from ..db.models import AssistantBinding
from .base import OwnerScopedRepository


class AssistantBindingRepository(OwnerScopedRepository[AssistantBinding]):
    model = AssistantBinding
    kind = "assistant binding"

    async def upsert(
        self,
        owner: str,
        assistant_id: str,
        status: str = "active",
        metadata: dict[str, Any] | None = None,
    ) -> AssistantBinding:
        """Insert the owner's binding, or repoint the existing one."""
        binding = await self.get(owner)
        if binding is None:
            return await self.insert(
                owner, assistant_id=assistant_id, status=status, metadata_=metadata or {}
            )
        binding.assistant_id = assistant_id
        binding.status = status
        if metadata is not None:
            binding.metadata_ = metadata
        await self._session.flush()
        return binding

"""Metadata store adapter: owner-scoped repositories over SQLAlchemy."""

from .base import OwnerScopedRepository, SortKey
from .owner_repo import OwnerRepository, SQLAlchemyOwnerRepository
from .assistant_repo import AssistantBindingRepository
from .thread_repo import ThreadRepository
from .message_repo import CachedMessageRepository
from .file_repo import FileBindingRepository

__all__ = [
    "OwnerScopedRepository", "SortKey",
    "OwnerRepository", "SQLAlchemyOwnerRepository",
    "AssistantBindingRepository",
    "ThreadRepository",
    "CachedMessageRepository",
    "FileBindingRepository",
]

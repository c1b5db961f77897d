"""File binding repository."""

from __future__ import annotations

from ..db.models import FileBinding
from .base import OwnerScopedRepository


class FileBindingRepository(OwnerScopedRepository[FileBinding]):
    model = FileBinding
    kind = "file"

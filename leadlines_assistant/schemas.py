"""Pydantic views of metadata records returned by the façade."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AssistantRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    assistant_id: str
    status: str
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="metadata_")


class ThreadRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    thread_id: str
    title: str
    created_at: datetime
    last_message_at: datetime | None = None


class FileRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    file_id: str
    assistant_id: str
    filename: str
    size: int
    content_type: str | None = None
    created_at: datetime


@dataclass(frozen=True)
class FileUpload:
    """Raw upload as received from the caller."""

    filename: str
    content: bytes = field(repr=False)
    content_type: str | None = None

    @property
    def size(self) -> int:
        return len(self.content)

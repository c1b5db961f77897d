"""Decoded shapes of the assistant provider's JSON responses.

Only the fields the core reads are declared; everything else is ignored.
A body missing a declared field fails decoding instead of leaking ``None``
into the orchestration logic.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..exceptions import ProviderError


class RunStatus(str, Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    REQUIRES_ACTION = "requires_action"
    CANCELLING = "cancelling"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


TERMINAL_STATUSES = frozenset(
    {RunStatus.COMPLETED, RunStatus.FAILED, RunStatus.CANCELLED, RunStatus.EXPIRED}
)
FAILURE_STATUSES = TERMINAL_STATUSES - {RunStatus.COMPLETED}


class ProviderObject(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(min_length=1)


class ProviderAssistant(ProviderObject):
    name: str | None = None
    model: str | None = None


class ProviderThread(ProviderObject):
    created_at: int | None = None


class ProviderRun(ProviderObject):
    status: str
    thread_id: str | None = None
    assistant_id: str | None = None
    last_error: dict[str, Any] | None = None

    @property
    def state(self) -> RunStatus | None:
        """The known status, or ``None`` for one this client does not recognise."""
        try:
            return RunStatus(self.status)
        except ValueError:
            return None


class TextValue(BaseModel):
    model_config = ConfigDict(extra="ignore")

    value: str = ""


class ContentPart(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str
    text: TextValue | None = None


class ProviderMessage(ProviderObject):
    role: str
    content: list[ContentPart] | str = Field(default_factory=list)
    created_at: int
    run_id: str | None = None

    @property
    def text(self) -> str:
        if isinstance(self.content, str):
            return self.content
        return "\n".join(part.text.value for part in self.content if part.type == "text" and part.text)


class ProviderMessagePage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    data: list[ProviderMessage]
    has_more: bool = False
    last_id: str | None = None


class ProviderFile(ProviderObject):
    filename: str | None = None
    size: int | None = Field(default=None, alias="bytes")
    purpose: str | None = None
    created_at: int | None = None


class ProviderAssistantFile(ProviderObject):
    assistant_id: str | None = None


class ProviderDeletion(ProviderObject):
    deleted: bool = False


class Message(BaseModel):
    """A conversation message as callers of the façade see it."""

    id: str
    role: str
    content: str
    created_at: datetime
    run_id: str | None = None

    @classmethod
    def from_provider(cls, message: ProviderMessage) -> "Message":
        return cls(
            id=message.id,
            role=message.role,
            content=message.text,
            created_at=datetime.fromtimestamp(message.created_at, tz=UTC),
            run_id=message.run_id,
        )


M = TypeVar("M", bound=BaseModel)


def decode(model: type[M], body: Any, *, step: str, status_code: int | None = None) -> M:
    """Validate a provider body, failing fast with a ``ProviderError``."""
    try:
        return model.model_validate(body)
    except ValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        raise ProviderError(
            status_code,
            f"unrecognized {model.__name__} response (bad fields: {', '.join(fields) or '?'})",
            step=step,
        ) from exc

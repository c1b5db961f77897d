"""Assistant provider boundary: HTTP client and decoded response types."""

from .client import AssistantProviderClient
from .schemas import (
    FAILURE_STATUSES,
    TERMINAL_STATUSES,
    Message,
    ProviderFile,
    ProviderMessage,
    ProviderRun,
    RunStatus,
)

__all__ = [
    "AssistantProviderClient",
    "FAILURE_STATUSES",
    "TERMINAL_STATUSES",
    "Message",
    "ProviderFile",
    "ProviderMessage",
    "ProviderRun",
    "RunStatus",
]

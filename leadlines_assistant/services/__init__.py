"""Conversation services: orchestration, lifecycles and the façade."""

from .assistants import AssistantBindingManager
from .conversation import ConversationFacade, assistant_reply
from .files import FileLifecycleManager
from .run_orchestrator import RunOrchestrator
from .threads import ThreadLifecycleManager

__all__ = [
    "AssistantBindingManager",
    "ConversationFacade",
    "FileLifecycleManager",
    "RunOrchestrator",
    "ThreadLifecycleManager",
    "assistant_reply",
]

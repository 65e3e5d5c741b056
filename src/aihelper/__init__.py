"""aihelper: resilient chat client for Responses-style LLM endpoints."""

from aihelper.config import AssistantConfig, load_config
from aihelper.core.orchestrator import ChatOrchestrator
from aihelper.types import ChatMessage, NormalizedResult, ResultKind, Role

__version__ = "0.1.0"

__all__ = [
    "AssistantConfig",
    "ChatMessage",
    "ChatOrchestrator",
    "NormalizedResult",
    "ResultKind",
    "Role",
    "load_config",
]

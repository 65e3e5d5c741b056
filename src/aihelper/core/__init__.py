"""Request lifecycle: cancellation, registry and orchestration."""

from aihelper.core.cancellation import CancellationToken
from aihelper.core.orchestrator import ChatOrchestrator
from aihelper.core.registry import RequestRegistry

__all__ = [
    "CancellationToken",
    "ChatOrchestrator",
    "RequestRegistry",
]

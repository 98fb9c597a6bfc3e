"""Relay pipeline core."""

from relay_agent.agent.context import ContextBuilder
from relay_agent.agent.long_term import LongTermMemory
from relay_agent.agent.memory import (
    ConversationTurn,
    InMemoryConversationStore,
    MemoryGateway,
    append_and_trim,
)
from relay_agent.agent.orchestrator import ProcessingError, RequestOrchestrator
from relay_agent.agent.requests import ProcessRequest, ProcessResult, RequestContext

__all__ = [
    "ContextBuilder",
    "ConversationTurn",
    "InMemoryConversationStore",
    "LongTermMemory",
    "MemoryGateway",
    "ProcessRequest",
    "ProcessResult",
    "ProcessingError",
    "RequestContext",
    "RequestOrchestrator",
    "append_and_trim",
]

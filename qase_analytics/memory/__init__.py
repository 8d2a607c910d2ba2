"""
Memory layer - per-user conversation history and project selection
"""

from qase_analytics.memory.conversation import (
    ConversationMemory,
    SessionMemoryStore,
    get_memory_store,
)
from qase_analytics.memory.project_context import (
    ProjectContextStore,
    get_project_context_store,
)

__all__ = [
    "ConversationMemory",
    "SessionMemoryStore",
    "ProjectContextStore",
    "get_memory_store",
    "get_project_context_store",
]

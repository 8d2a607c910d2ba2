"""
Services - caller-facing entry points
"""

from qase_analytics.services.chat import (
    ChatHistory,
    ChatMessage,
    ChatService,
    ChatSessionStatus,
    ProjectChangeResult,
    SendMessageResult,
)

__all__ = [
    "ChatHistory",
    "ChatMessage",
    "ChatService",
    "ChatSessionStatus",
    "ProjectChangeResult",
    "SendMessageResult",
]

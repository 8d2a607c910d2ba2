"""
Conversation memory

Bounded, ordered message history per user plus the process-wide registry
that hands out one memory per user id.
"""

from typing import Dict, List, Optional

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from loguru import logger

from qase_analytics.config.settings import settings

_ROLE_BY_TYPE = {"human": "human", "ai": "ai", "system": "system"}


class ConversationMemory:
    """
    Ordered message list that keeps only the most recent ``max_messages``.

    Trimming happens after every add, oldest first.
    """

    def __init__(self, max_messages: Optional[int] = None):
        self.max_messages = max_messages if max_messages is not None else settings.max_conversation_messages
        if self.max_messages < 1:
            raise ValueError("max_messages must be at least 1")
        self._messages: List[BaseMessage] = []

    def _append(self, message: BaseMessage) -> None:
        self._messages.append(message)
        overflow = len(self._messages) - self.max_messages
        if overflow > 0:
            del self._messages[:overflow]

    def add_human_message(self, text: str) -> None:
        self._append(HumanMessage(content=text))

    def add_ai_message(self, text: str) -> None:
        self._append(AIMessage(content=text))

    def add_system_message(self, text: str) -> None:
        self._append(SystemMessage(content=text))

    def get_messages(self) -> List[BaseMessage]:
        return list(self._messages)

    def get_chat_history(self) -> List[Dict[str, str]]:
        """Messages as plain ``{role, content}`` dicts."""
        return [
            {"role": _ROLE_BY_TYPE.get(message.type, message.type), "content": str(message.content)}
            for message in self._messages
        ]

    def get_message_count(self) -> int:
        return len(self._messages)

    def clear(self) -> None:
        self._messages = []

    def __len__(self) -> int:
        return len(self._messages)


class SessionMemoryStore:
    """Registry of ConversationMemory instances keyed by user id"""

    def __init__(self, max_messages: Optional[int] = None):
        self.max_messages = max_messages if max_messages is not None else settings.max_conversation_messages
        self._sessions: Dict[str, ConversationMemory] = {}

    def get_session(self, user_id: str) -> ConversationMemory:
        """Return the user's memory, creating and registering it on first access."""
        memory = self._sessions.get(user_id)
        if memory is None:
            memory = ConversationMemory(max_messages=self.max_messages)
            self._sessions[user_id] = memory
            logger.debug(f"Created conversation memory for user {user_id}")
        return memory

    def has_session(self, user_id: str) -> bool:
        return user_id in self._sessions

    def delete_session(self, user_id: str) -> bool:
        return self._sessions.pop(user_id, None) is not None

    def clear_all_sessions(self) -> None:
        self._sessions.clear()

    def get_session_count(self) -> int:
        return len(self._sessions)

    def get_session_ids(self) -> List[str]:
        return list(self._sessions.keys())


_shared_store: Optional[SessionMemoryStore] = None


def get_memory_store() -> SessionMemoryStore:
    """Get the process-wide session memory store (singleton)."""
    global _shared_store
    if _shared_store is None:
        _shared_store = SessionMemoryStore()
    return _shared_store

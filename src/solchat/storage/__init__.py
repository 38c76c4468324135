"""Conversation storage."""

from .sqlite import SQLiteConversationStore
from .store import Conversation, ConversationStore, TokenStat

__all__ = ["Conversation", "ConversationStore", "SQLiteConversationStore", "TokenStat"]

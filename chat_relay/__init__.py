"""chat_relay 顶层包。

Telegram ⇄ Gemini 对话中继：按会话维护有界历史，
带重试/退避地调用 Gemini generateContent，并把回复发回聊天。
"""

from chat_relay.agents.conversation_agent import ConversationAgent
from chat_relay.infrastructure.storage.memory_store import InMemoryHistoryStore
from chat_relay.providers.gemini_client import GeminiClient
from chat_relay.providers.retry import RetryPolicy

__all__ = ["ConversationAgent", "GeminiClient", "InMemoryHistoryStore", "RetryPolicy"]

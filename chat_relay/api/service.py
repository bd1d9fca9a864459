"""对外服务模块。

负责进程级装配：创建历史存储、Provider 客户端与 ConversationAgent，
再交给 Telegram 传输层运行。
"""

from typing import Optional

from chat_relay.agents.conversation_agent import ConversationAgent
from chat_relay.config.settings import settings
from chat_relay.domain.exceptions import ValidationError
from chat_relay.infrastructure.logging.logger import logger
from chat_relay.infrastructure.storage.memory_store import InMemoryHistoryStore
from chat_relay.providers import create_completion_client
from chat_relay.transport.telegram_bot import TelegramBot


_agent: Optional[ConversationAgent] = None


def build_agent(cfg=settings) -> ConversationAgent:
    """按配置组装一个新的 ConversationAgent（存储与客户端归该实例所有）。"""

    store = InMemoryHistoryStore(max_history_length=cfg.max_history_length)
    return ConversationAgent(
        store=store,
        completion_client=create_completion_client(cfg),
        locale=cfg.locale,
    )


def get_default_agent() -> ConversationAgent:
    """获取默认的 ConversationAgent 实例（单例）。"""
    global _agent
    if _agent is None:
        _agent = build_agent()
    return _agent


def build_bot(cfg=settings) -> TelegramBot:
    """创建 TelegramBot；未配置 BOT_TOKEN 时抛出 ValidationError。"""

    if not cfg.telegram_bot_token:
        raise ValidationError(code="MISSING_BOT_TOKEN", message="BOT_TOKEN is not set")
    agent = get_default_agent() if cfg is settings else build_agent(cfg)
    return TelegramBot(cfg.telegram_bot_token, agent, cfg)


def main() -> None:
    bot = build_bot()
    logger.info(
        "Relay starting",
        extra={"extra": {
            "model": settings.gemini_model,
            "placeholder_mode": not settings.gemini_api_key,
            "max_history_length": settings.max_history_length,
            "max_retries": settings.max_retries,
        }},
    )
    bot.run()

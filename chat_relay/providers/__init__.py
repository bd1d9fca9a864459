"""LLM Provider 集成层。

该包下的模块负责：
- 定义 Provider 抽象接口 (base)。
- 维护 Provider 与模型配置 (registry)。
- 重试/退避策略 (retry)。
- Gemini 的具体实现 (gemini_client)。
"""

from chat_relay.config.settings import settings
from chat_relay.providers.base import CompletionClient
from chat_relay.providers.gemini_client import GeminiClient
from chat_relay.providers.retry import RetryPolicy


def create_completion_client(cfg=None) -> CompletionClient:
    """根据配置创建 Provider 实例，重试参数取自 max_retries / retry_backoff_base。"""

    cfg = cfg or settings
    policy = RetryPolicy(max_attempts=cfg.max_retries, backoff_base=cfg.retry_backoff_base)
    return GeminiClient(cfg, retry_policy=policy)

"""Provider 抽象接口。

上层 ConversationAgent 不直接依赖具体厂商的 HTTP 细节，而是依赖此协议：

- 每个厂商实现一个 CompletionClient（如 GeminiClient）。
- 负责：把 prompt/history/图片组装成具体 API 请求，并把响应解析为 GenerationResult。
"""

from typing import List, Optional, Protocol

from chat_relay.domain.models import GenerationResult, Turn


class CompletionClient(Protocol):
    """LLM Provider 客户端协议。

    实现者需要提供：
    - name: Provider 名称，用于日志/统计。
    - generate(...): 执行一次生成调用，永不抛出异常，返回 GenerationResult。
    """

    name: str

    async def generate(
        self,
        prompt: str,
        history: List[Turn],
        image_data: Optional[str] = None,
        image_mime_type: Optional[str] = None,
    ) -> GenerationResult:
        ...

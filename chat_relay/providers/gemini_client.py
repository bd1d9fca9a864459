"""Gemini Provider 适配器。

本模块负责：

1. 把 (prompt, history, 可选图片) 组装成 GenerationRequest。
2. 将其转换为 Gemini generateContent 的 HTTP 请求体。
3. 通过 RetryPolicy 发送请求，把网络/限流/服务端错误交给策略重试。
4. 将响应 JSON 解析为显式的 GenerationResult（成功、安全拦截、响应异常、重试用尽）。

任何失败都不会抛给调用方；错误只写入日志。
"""

import logging
from typing import Any, Dict, List, Optional
from uuid import uuid4

import httpx

from chat_relay.domain.exceptions import ApiError, NetworkError, RateLimitError, RetryExhaustedError
from chat_relay.domain.models import (
    GenerationOutcome,
    GenerationRequest,
    GenerationResult,
    InlineMediaPart,
    Part,
    TextPart,
    Turn,
)
from chat_relay.infrastructure.logging.logger import log_event
from chat_relay.prompts import load_system_prompt
from chat_relay.prompts.replies import get_replies
from chat_relay.providers.registry import GEMINI_CONFIG
from chat_relay.providers.retry import RetryPolicy


SAFETY_FINISH_REASON = "SAFETY"


class GeminiClient:
    """Gemini 提供方客户端实现。

    - name: Provider 名称（供日志/调试使用）。
    - generate: 返回 GenerationResult，供 ConversationAgent 选择回复。
    - generate_content: 直接返回面向用户的字符串。
    """

    name = "gemini"

    def __init__(self, settings, retry_policy: Optional[RetryPolicy] = None, system_prompt: Optional[str] = None):
        self._settings = settings
        self._retry = retry_policy or RetryPolicy(
            max_attempts=getattr(settings, "max_retries", 3),
            backoff_base=getattr(settings, "retry_backoff_base", 2.0),
        )
        self._system_prompt = system_prompt or load_system_prompt()
        self._model = getattr(settings, "gemini_model", None) or GEMINI_CONFIG.default_model
        self._replies = get_replies(getattr(settings, "locale", "uk"))
        if not self.api_key:
            log_event(
                logging.WARNING,
                "GEMINI_API_KEY is not set. Client will run in placeholder mode.",
                {"provider": self.name},
            )

    @property
    def api_key(self) -> Optional[str]:
        return getattr(self._settings, "gemini_api_key", None)

    @property
    def api_url(self) -> str:
        base = getattr(self._settings, "gemini_base_url", None) or GEMINI_CONFIG.base_url
        return f"{GEMINI_CONFIG.endpoint(self._model, base)}?key={self.api_key}"

    async def generate(
        self,
        prompt: str,
        history: List[Turn],
        image_data: Optional[str] = None,
        image_mime_type: Optional[str] = None,
    ) -> GenerationResult:
        """执行一次生成调用。

        步骤：
        1. 未配置密钥时直接返回 PLACEHOLDER，不发网络请求。
        2. 构造用户 Turn（文本 + 可选内联图片）与完整请求体。
        3. 交给 RetryPolicy 发送，429/非 2xx/网络错误会被重试。
        4. 解析响应；安全拦截与空响应属于终态，不重试。
        """

        if not self.api_key:
            return GenerationResult(
                outcome=GenerationOutcome.PLACEHOLDER,
                text=self._replies.render_placeholder(prompt),
            )

        request = self._build_request(prompt, history, image_data, image_mime_type)
        payload = request.to_payload()
        log_ctx: Dict[str, Any] = {
            "trace_id": f"tr-{uuid4().hex}",
            "provider": self.name,
            "model": self._model,
            "history_turns": len(history),
            "has_image": len(request.user_turn.parts) > 1,
        }

        async def attempt() -> Dict[str, Any]:
            return await self._post(payload)

        try:
            data, attempts = await self._retry.run(attempt, log_ctx)
        except RetryExhaustedError as e:
            log_event(
                logging.ERROR,
                "Gemini API call failed after max retries.",
                log_ctx,
                attempts=e.attempts,
                error=str(e.last_error),
            )
            return GenerationResult(
                outcome=GenerationOutcome.EXHAUSTED_RETRIES,
                attempts=e.attempts,
                error=e.last_error,
            )

        result = self._parse_response(data, log_ctx)
        result.attempts = attempts
        return result

    async def generate_content(
        self,
        prompt: str,
        history: List[Turn],
        image_data: Optional[str] = None,
        image_mime_type: Optional[str] = None,
    ) -> str:
        result = await self.generate(prompt, history, image_data, image_mime_type)
        return self.render(result)

    def render(self, result: GenerationResult) -> str:
        return self._replies.for_result(result)

    # ---- 辅助方法 ----

    def _build_request(
        self,
        prompt: str,
        history: List[Turn],
        image_data: Optional[str],
        image_mime_type: Optional[str],
    ) -> GenerationRequest:
        user_parts: List[Part] = [TextPart(text=prompt)]
        if image_data and image_mime_type:
            user_parts.append(InlineMediaPart(mime_type=image_mime_type, data=image_data))
        return GenerationRequest(
            history=list(history),
            user_turn=Turn(role="user", parts=tuple(user_parts)),
            system_instruction=self._system_prompt,
        )

    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """发送单次请求，失败时抛出可重试的业务异常。"""

        try:
            async with httpx.AsyncClient(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = await client.post(
                    self.api_url,
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
        except httpx.RequestError as e:
            # 网络错误：DNS 失败、连接/读取超时等
            raise NetworkError(code="NETWORK_ERROR", message=f"{type(e).__name__}: {e}")
        if resp.status_code == 429:
            raise RateLimitError(code="RATE_LIMIT", message="Rate limit exceeded", http_status=429)
        if not 200 <= resp.status_code < 300:
            raise ApiError(
                code="API_ERROR",
                message=f"API returned status {resp.status_code}",
                http_status=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as e:
            raise ApiError(code="INVALID_JSON", message=str(e), http_status=resp.status_code)

    def _parse_response(self, data: Dict[str, Any], log_ctx: Dict[str, Any]) -> GenerationResult:
        candidates = data.get("candidates") if isinstance(data, dict) else None
        first = candidates[0] if isinstance(candidates, list) and candidates else {}
        if not isinstance(first, dict):
            first = {}
        content = first.get("content") or {}
        parts = content.get("parts") if isinstance(content, dict) else None
        first_part = parts[0] if isinstance(parts, list) and parts else {}
        text = first_part.get("text") if isinstance(first_part, dict) else None

        if isinstance(text, str) and text:
            return GenerationResult(outcome=GenerationOutcome.SUCCESS, text=text)

        if first.get("finishReason") == SAFETY_FINISH_REASON:
            log_event(logging.WARNING, "Gemini response blocked for safety reasons.", log_ctx)
            return GenerationResult(outcome=GenerationOutcome.SAFETY_BLOCKED)

        log_event(logging.ERROR, "Invalid Gemini response structure", log_ctx, response=data)
        return GenerationResult(outcome=GenerationOutcome.MALFORMED_RESPONSE)

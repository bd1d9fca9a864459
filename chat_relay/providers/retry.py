"""上游调用的重试/退避策略。

RetryPolicy 与调用点解耦：调用方把单次请求包装成无参协程函数交给 run()，
策略负责计数、指数退避与放弃。sleep 可注入，测试时替换为假时钟。
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Type, TypeVar

from chat_relay.domain.exceptions import (
    ApiError,
    NetworkError,
    RateLimitError,
    RetryExhaustedError,
)
from chat_relay.infrastructure.logging.logger import log_event


T = TypeVar("T")

RETRYABLE_ERRORS: Tuple[Type[Exception], ...] = (RateLimitError, ApiError, NetworkError)


@dataclass
class RetryPolicy:
    """有界重试 + 指数退避（无抖动）。

    第 attempt_index 次（从 0 开始）失败后等待 backoff_base ** (attempt_index + 1) 秒，
    默认即 2s、4s、8s；最后一次失败后不再等待。
    """

    max_attempts: int = 3
    backoff_base: float = 2.0
    sleep: Callable[[float], Awaitable[Any]] = field(default=asyncio.sleep, repr=False)
    retry_on: Tuple[Type[Exception], ...] = RETRYABLE_ERRORS

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            self.max_attempts = 1

    def delay_for(self, attempt_index: int) -> float:
        return float(self.backoff_base ** (attempt_index + 1))

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        log_ctx: Optional[Dict[str, Any]] = None,
    ) -> Tuple[T, int]:
        """执行 operation，返回 (结果, 实际尝试次数)。

        Raises:
            RetryExhaustedError: 所有尝试均因可重试错误失败。
            其他异常: 不可重试，立即向上抛出。
        """

        ctx = dict(log_ctx or {})
        last_error: Optional[Exception] = None
        for attempt in range(self.max_attempts):
            try:
                return await operation(), attempt + 1
            except self.retry_on as e:
                last_error = e
                delay = self.delay_for(attempt)
                will_retry = attempt < self.max_attempts - 1
                log_event(
                    logging.WARNING,
                    f"Attempt {attempt + 1} failed: {e}",
                    ctx,
                    attempt=attempt + 1,
                    error_code=getattr(e, "code", type(e).__name__),
                    retry_in=delay if will_retry else None,
                )
                if will_retry:
                    await self.sleep(delay)
        raise RetryExhaustedError(last_error, self.max_attempts)

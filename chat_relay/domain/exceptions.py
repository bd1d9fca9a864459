"""统一业务异常模型。

所有跨模块抛出的业务级错误都继承自 BusinessError，
由 ConversationAgent 统一捕获并转换为面向用户的固定回复。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "RATE_LIMIT"）。
        message: 内部诊断信息，只写日志，不直接展示给用户。
        http_status: 上游返回的 HTTP 状态码（若有），默认 400。
        extra: 其他补充字段（例如 conversation_id、attempt 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class NetworkError(BusinessError):
    """网络层错误，例如连接失败、超时等。可重试。"""


class ApiError(BusinessError):
    """上游 API 返回非 2xx（429 除外）或响应体无法解析时抛出。可重试。"""


class RateLimitError(BusinessError):
    """上游限流（HTTP 429），与 ApiError 同样重试，仅用于区分日志信息。"""


class ValidationError(BusinessError):
    """参数或配置校验失败，例如构造空 parts 的 Turn。"""


class MediaDownloadError(BusinessError):
    """从消息平台下载图片失败。"""


class RetryExhaustedError(BusinessError):
    """重试次数用尽，last_error 保存最后一次失败原因。"""

    def __init__(self, last_error: Exception, attempts: int):
        super().__init__(
            code="RETRY_EXHAUSTED",
            message=f"gave up after {attempts} attempts: {last_error}",
            http_status=503,
            attempts=attempts,
        )
        self.last_error = last_error
        self.attempts = attempts

"""统一的对话与生成结果数据模型。

本模块定义了 relay 内部共享的标准数据结构：

- TextPart / InlineMediaPart: Turn 的原子内容单元（封闭的 Part 联合类型）。
- Turn: 用户或模型贡献的一条消息，由一个或多个 Part 组成。
- GenerationRequest: 发给 Gemini 的完整请求，每次调用临时组装，不持久化。
- GenerationResult: 一次生成调用的显式结果（成功/安全拦截/异常响应/重试用尽）。

Provider 适配层只依赖这些模型，并负责它们与上游 JSON 之间的转换。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Sequence, Tuple, Union

from chat_relay.domain.exceptions import ValidationError


# 对话角色（与 Gemini contents[].role 字段一致）
Role = Literal["user", "model"]
ROLES = ("user", "model")

# Gemini 内置的 Google 搜索 grounding 工具声明
GOOGLE_SEARCH_TOOL: Dict[str, Any] = {"google_search": {}}


@dataclass(frozen=True)
class TextPart:
    text: str

    def to_payload(self) -> Dict[str, Any]:
        return {"text": self.text}


@dataclass(frozen=True)
class InlineMediaPart:
    """内联二进制媒体，data 为 base64 文本。"""

    mime_type: str
    data: str

    def __post_init__(self) -> None:
        if not self.mime_type:
            raise ValidationError(code="INVALID_PART", message="inline media requires a mime type")
        if not self.data:
            raise ValidationError(code="INVALID_PART", message="inline media requires data")

    def to_payload(self) -> Dict[str, Any]:
        return {"inlineData": {"mimeType": self.mime_type, "data": self.data}}


Part = Union[TextPart, InlineMediaPart]


@dataclass(frozen=True)
class Turn:
    """一条对话消息。parts 至少包含一个元素。"""

    role: Role
    parts: Tuple[Part, ...]

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValidationError(code="INVALID_ROLE", message=f"unknown role: {self.role!r}")
        if not self.parts:
            raise ValidationError(code="EMPTY_TURN", message="a turn needs at least one part")
        for part in self.parts:
            if not isinstance(part, (TextPart, InlineMediaPart)):
                raise ValidationError(code="INVALID_PART", message=f"unsupported part: {part!r}")

    @property
    def text(self) -> str:
        return "".join(p.text for p in self.parts if isinstance(p, TextPart))

    def to_payload(self) -> Dict[str, Any]:
        return {"role": self.role, "parts": [p.to_payload() for p in self.parts]}


def normalize_parts(parts: Union[Part, Sequence[Part]]) -> Tuple[Part, ...]:
    """单个 Part 包装成一元组，序列按原顺序转成 tuple。"""

    if isinstance(parts, (TextPart, InlineMediaPart)):
        return (parts,)
    return tuple(parts)


@dataclass
class GenerationRequest:
    """一次生成请求：历史 + 新的用户 Turn + 系统指令 + grounding 工具。"""

    history: List[Turn]
    user_turn: Turn
    system_instruction: str
    tools: List[Dict[str, Any]] = field(default_factory=lambda: [dict(GOOGLE_SEARCH_TOOL)])

    def to_payload(self) -> Dict[str, Any]:
        return {
            "contents": [t.to_payload() for t in self.history] + [self.user_turn.to_payload()],
            "tools": self.tools,
            "systemInstruction": {"parts": [{"text": self.system_instruction}]},
        }


class GenerationOutcome(str, Enum):
    SUCCESS = "success"
    PLACEHOLDER = "placeholder"
    SAFETY_BLOCKED = "safety_blocked"
    MALFORMED_RESPONSE = "malformed_response"
    EXHAUSTED_RETRIES = "exhausted_retries"


@dataclass
class GenerationResult:
    """一次生成调用的最终结果。

    - outcome: 结果类型，由上层选择对应的用户回复。
    - text: SUCCESS / PLACEHOLDER 时的回复文本。
    - attempts: 实际发出的上游请求次数。
    - error: EXHAUSTED_RETRIES 时最后一次失败的异常，仅用于日志。
    """

    outcome: GenerationOutcome
    text: Optional[str] = None
    attempts: int = 0
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.outcome in (GenerationOutcome.SUCCESS, GenerationOutcome.PLACEHOLDER)

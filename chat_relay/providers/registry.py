"""Provider 与模型配置。

集中维护 Gemini 的默认地址与模型 ID，Settings 中的同名字段可覆盖这里的默认值。
模型 ID 直接拼进 endpoint URL：{base_url}/models/{model}:generateContent。
"""

from dataclasses import dataclass


@dataclass
class ProviderConfig:
    """某个 Provider 的整体配置。"""

    name: str
    base_url: str
    default_model: str

    def endpoint(self, model: str, base_url: str = "") -> str:
        return f"{(base_url or self.base_url).rstrip('/')}/models/{model or self.default_model}:generateContent"


GEMINI_CONFIG = ProviderConfig(
    name="gemini",
    base_url="https://generativelanguage.googleapis.com/v1beta",
    default_model="gemini-1.5-flash-latest",
)


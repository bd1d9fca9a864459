"""配置管理模块。

支持从环境变量、.env 以及 config.yaml 加载配置。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("RELAY_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if not path or path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class Settings(BaseSettings):
    """配置设置。"""

    # ---- Telegram ----
    telegram_bot_token: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("telegram_bot_token", "bot_token"),
        description="Telegram Bot Token，启动时必填",
    )
    webhook_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("webhook_url", "render_external_url"),
        description="外部可访问的服务地址；为空时使用 long polling",
    )
    webhook_path: str = Field(default="/bot-updates", description="Webhook 路径")
    listen_host: str = Field(default="0.0.0.0", description="Webhook 监听地址")
    port: int = Field(default=3000, ge=1, le=65535, description="Webhook 监听端口")

    # ---- Gemini ----
    gemini_api_key: Optional[str] = Field(
        default=None,
        description="Gemini API 密钥；缺失时进入占位模式",
    )
    gemini_model: str = Field(default="gemini-1.5-flash-latest", description="Gemini 模型 ID")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Gemini API 基础URL",
    )
    http_timeout: float = Field(default=30.0, ge=1.0, description="单次上游请求超时时间（秒）")
    max_retries: int = Field(default=3, ge=1, le=10, description="上游调用最大尝试次数")
    retry_backoff_base: float = Field(default=2.0, ge=1.0, description="指数退避底数（秒）")

    # ---- 对话 ----
    max_history_length: int = Field(default=10, ge=1, description="每个会话保留的最大 Turn 数")
    locale: str = Field(default="uk", description="面向用户的固定回复语言")

    # ---- 日志 ----
    log_dir: str = Field(default="logs", description="日志目录，为空则只输出到 stderr")
    log_level: str = Field(default="INFO", description="日志级别")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("gemini_api_key", "telegram_bot_token", "webhook_url")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("webhook_path")
    @classmethod
    def validate_webhook_path(cls, v: str) -> str:
        return v if v.startswith("/") else f"/{v}"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )


settings = Settings()

"""入站事件与传输层协议。

传输层（如 Telegram 适配器）把平台更新转换为这里的事件，
再交给 ConversationAgent.handle 处理；ChatChannel 则由传输层实现，
供 Agent 发送输入状态提示、下载图片。
"""

from dataclasses import dataclass
from typing import Any, Optional, Protocol, Union

from .conversation import ConversationId


@dataclass
class StartEvent:
    conversation_id: ConversationId
    first_name: str = ""


@dataclass
class ClearEvent:
    conversation_id: ConversationId


@dataclass
class TextEvent:
    conversation_id: ConversationId
    text: str


@dataclass
class ImageEvent:
    """图片消息。image_ref 是平台相关的引用（如 Telegram file_id），由 ChatChannel 解析。"""

    conversation_id: ConversationId
    image_ref: Any
    caption: Optional[str] = None


@dataclass
class StickerEvent:
    conversation_id: ConversationId


InboundEvent = Union[StartEvent, ClearEvent, TextEvent, ImageEvent, StickerEvent]


class ChatChannel(Protocol):
    """传输层能力。

    - send_action: 发送 "typing" / "upload_photo" 等状态提示，尽力而为。
    - download_image: 把平台图片引用解析为原始字节。
    """

    async def send_action(self, action: str) -> None:
        ...

    async def download_image(self, image_ref: Any) -> bytes:
        ...

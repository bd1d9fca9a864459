"""对话编排模块。

把入站事件、会话历史与 CompletionClient 串起来：
读取历史 -> 调用生成 -> 成功拿到回复后追加 user/model 两条 Turn -> 返回回复文本。
"""

import asyncio
import base64
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from chat_relay.config.settings import settings
from chat_relay.domain.conversation import ConversationId, HistoryStore
from chat_relay.domain.events import (
    ChatChannel,
    ClearEvent,
    ImageEvent,
    InboundEvent,
    StartEvent,
    StickerEvent,
    TextEvent,
)
from chat_relay.domain.exceptions import MediaDownloadError
from chat_relay.domain.models import InlineMediaPart, TextPart
from chat_relay.infrastructure.logging.logger import log_event
from chat_relay.prompts.replies import Replies, get_replies
from chat_relay.providers.base import CompletionClient


DEFAULT_IMAGE_MIME_TYPE = "image/jpeg"


class ConversationAgent:
    """单个 relay 实例的对话编排器。

    - store / completion_client 由外部注入，便于测试与替换存储。
    - 同一会话内的文本/图片处理通过 asyncio.Lock 串行，不同会话可并发。
    - 任何处理异常都会被记录并转换成固定回复；只有生成调用完成后才写历史。
    """

    def __init__(
        self,
        store: HistoryStore,
        completion_client: CompletionClient,
        locale: Optional[str] = None,
        image_mime_type: str = DEFAULT_IMAGE_MIME_TYPE,
    ):
        self._store = store
        self._client = completion_client
        self._replies: Replies = get_replies(locale or settings.locale)
        self._image_mime_type = image_mime_type
        # 会话锁及其当前使用者数量；无人使用时移除
        self._locks: Dict[ConversationId, asyncio.Lock] = {}
        self._lock_users: Dict[ConversationId, int] = {}

    @property
    def replies(self) -> Replies:
        return self._replies

    async def handle(self, event: InboundEvent, channel: ChatChannel) -> str:
        """处理一个入站事件，返回要发给用户的文本。"""

        if isinstance(event, StartEvent):
            return await self.handle_start(event)
        if isinstance(event, ClearEvent):
            return await self.handle_clear(event)
        if isinstance(event, TextEvent):
            return await self.handle_text(event, channel)
        if isinstance(event, ImageEvent):
            return await self.handle_image(event, channel)
        if isinstance(event, StickerEvent):
            return self._replies.sticker
        raise TypeError(f"Unsupported event: {type(event).__name__}")

    async def handle_start(self, event: StartEvent) -> str:
        async with self._conversation_lock(event.conversation_id):
            self._store.clear_history(event.conversation_id)
        return self._replies.render_greeting(event.first_name)

    async def handle_clear(self, event: ClearEvent) -> str:
        async with self._conversation_lock(event.conversation_id):
            cleared = self._store.clear_history(event.conversation_id)
        if cleared:
            return self._replies.history_cleared
        return self._replies.history_already_empty

    async def handle_text(self, event: TextEvent, channel: ChatChannel) -> str:
        log_ctx = {"conversation_id": event.conversation_id, "kind": "text"}
        try:
            async with self._conversation_lock(event.conversation_id):
                await self._signal(channel, "typing", log_ctx)
                history = self._store.get_history(event.conversation_id)
                result = await self._client.generate(event.text, history)
                reply = self._replies.for_result(result)

                self._store.add_message(event.conversation_id, "user", [TextPart(text=event.text)])
                self._store.add_message(event.conversation_id, "model", [TextPart(text=reply)])
        except Exception as e:
            log_event(
                logging.ERROR,
                f"Error processing text message for chat {event.conversation_id}",
                log_ctx,
                exc_info=e,
                error=str(e),
            )
            return self._replies.text_failure
        log_event(logging.INFO, "Text message handled", log_ctx, outcome=result.outcome.value, attempts=result.attempts)
        return reply

    async def handle_image(self, event: ImageEvent, channel: ChatChannel) -> str:
        log_ctx = {"conversation_id": event.conversation_id, "kind": "image"}
        caption = event.caption or self._replies.default_image_caption
        try:
            async with self._conversation_lock(event.conversation_id):
                await self._signal(channel, "upload_photo", log_ctx)
                history = self._store.get_history(event.conversation_id)

                raw = await channel.download_image(event.image_ref)
                if not raw:
                    raise MediaDownloadError(code="EMPTY_IMAGE", message="downloaded image is empty")
                image_b64 = base64.b64encode(bytes(raw)).decode("ascii")
                result = await self._client.generate(caption, history, image_b64, self._image_mime_type)
                reply = self._replies.for_result(result)

                self._store.add_message(
                    event.conversation_id,
                    "user",
                    [TextPart(text=caption), InlineMediaPart(mime_type=self._image_mime_type, data=image_b64)],
                )
                self._store.add_message(event.conversation_id, "model", [TextPart(text=reply)])
        except Exception as e:
            log_event(
                logging.ERROR,
                f"Error processing photo message for chat {event.conversation_id}",
                log_ctx,
                exc_info=e,
                error=str(e),
            )
            return self._replies.image_failure
        log_event(logging.INFO, "Image message handled", log_ctx, outcome=result.outcome.value, attempts=result.attempts)
        return reply

    @asynccontextmanager
    async def _conversation_lock(self, conversation_id: ConversationId) -> AsyncIterator[None]:
        """串行化同一会话的处理；最后一个使用者退出时丢弃该锁。"""

        lock = self._locks.setdefault(conversation_id, asyncio.Lock())
        self._lock_users[conversation_id] = self._lock_users.get(conversation_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._lock_users[conversation_id] - 1
            if remaining:
                self._lock_users[conversation_id] = remaining
            else:
                del self._lock_users[conversation_id]
                del self._locks[conversation_id]

    @staticmethod
    async def _signal(channel: ChatChannel, action: str, log_ctx: Dict[str, Any]) -> None:
        try:
            await channel.send_action(action)
        except Exception as e:
            log_event(logging.DEBUG, "Chat action failed", log_ctx, action=action, error=str(e))

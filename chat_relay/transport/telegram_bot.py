"""Telegram 传输层（python-telegram-bot）。

把 Telegram Update 转换为领域事件交给 ConversationAgent，并把回复发回聊天。
有 webhook_url 时以 webhook 方式运行，否则使用 long polling（本地开发）。
"""

import logging
from typing import Any, List, Optional

from telegram import Update
from telegram.constants import MessageLimit
from telegram.error import TelegramError
from telegram.ext import Application, CommandHandler, ContextTypes, MessageHandler, filters

from chat_relay.agents.conversation_agent import ConversationAgent
from chat_relay.config.settings import settings
from chat_relay.domain.events import ClearEvent, ImageEvent, InboundEvent, StartEvent, StickerEvent, TextEvent
from chat_relay.domain.exceptions import MediaDownloadError
from chat_relay.infrastructure.logging.logger import log_event


MAX_MESSAGE_LENGTH = int(MessageLimit.MAX_TEXT_LENGTH)


def split_message(text: str, limit: int = MAX_MESSAGE_LENGTH) -> List[str]:
    """按 Telegram 单条消息长度上限切分文本，尽量在换行处断开。"""

    if not text:
        return []
    chunks: List[str] = []
    rest = text
    while len(rest) > limit:
        cut = rest.rfind("\n", 0, limit)
        if cut <= 0:
            cut = limit
        chunks.append(rest[:cut])
        rest = rest[cut:].lstrip("\n")
    if rest:
        chunks.append(rest)
    return chunks


class TelegramChannel:
    """ChatChannel 的 Telegram 实现。"""

    def __init__(self, bot: Any, chat_id: int):
        self._bot = bot
        self._chat_id = chat_id

    async def send_action(self, action: str) -> None:
        await self._bot.send_chat_action(chat_id=self._chat_id, action=action)

    async def download_image(self, image_ref: Any) -> bytes:
        try:
            tg_file = await self._bot.get_file(image_ref)
            data = await tg_file.download_as_bytearray()
        except TelegramError as e:
            raise MediaDownloadError(code="MEDIA_DOWNLOAD_ERROR", message=str(e), chat_id=self._chat_id)
        return bytes(data)


class TelegramBot:
    """Telegram Bot 封装：注册处理器、运行 webhook/polling。"""

    def __init__(self, token: str, agent: ConversationAgent, cfg=settings):
        self._token = token
        self._agent = agent
        self._settings = cfg
        self._application: Optional[Application] = None

    @property
    def application(self) -> Application:
        if self._application is None:
            self._application = self.build_application()
        return self._application

    def build_application(self) -> Application:
        app = Application.builder().token(self._token).concurrent_updates(True).build()
        app.add_handler(CommandHandler("start", self.handle_start))
        app.add_handler(CommandHandler("clear", self.handle_clear))
        app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, self.handle_text))
        app.add_handler(MessageHandler(filters.PHOTO, self.handle_photo))
        app.add_handler(MessageHandler(filters.Sticker.ALL, self.handle_sticker))
        app.add_error_handler(self.handle_error)
        return app

    # ---- 处理器 ----

    async def handle_start(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        user = update.effective_user
        first_name = user.first_name if user else ""
        await self._dispatch(update, context, StartEvent(update.effective_chat.id, first_name=first_name))

    async def handle_clear(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await self._dispatch(update, context, ClearEvent(update.effective_chat.id))

    async def handle_text(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.effective_message
        await self._dispatch(update, context, TextEvent(update.effective_chat.id, text=message.text or ""))

    async def handle_photo(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.effective_message
        # photo 按尺寸升序排列，取最大的一张
        largest = message.photo[-1]
        event = ImageEvent(update.effective_chat.id, image_ref=largest.file_id, caption=message.caption)
        await self._dispatch(update, context, event)

    async def handle_sticker(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await self._dispatch(update, context, StickerEvent(update.effective_chat.id))

    async def handle_error(self, update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        update_type = type(update).__name__
        log_event(
            logging.ERROR,
            f"Unhandled error for {update_type}",
            {"update_type": update_type},
            exc_info=context.error,
            error=str(context.error),
        )
        if isinstance(update, Update) and update.effective_message is not None:
            try:
                await update.effective_message.reply_text(self._agent.replies.unhandled_error)
            except TelegramError as e:
                log_event(logging.WARNING, "Failed to report unhandled error", {"update_type": update_type}, error=str(e))

    async def _dispatch(self, update: Update, context: ContextTypes.DEFAULT_TYPE, event: InboundEvent) -> None:
        channel = TelegramChannel(context.bot, update.effective_chat.id)
        reply = await self._agent.handle(event, channel)
        for chunk in split_message(reply):
            await update.effective_message.reply_text(chunk)

    # ---- 运行 ----

    def run(self) -> None:
        cfg = self._settings
        if cfg.webhook_url:
            full_url = f"{cfg.webhook_url.rstrip('/')}{cfg.webhook_path}"
            log_event(logging.INFO, f"Starting webhook server on port {cfg.port}", {"webhook_url": full_url})
            self.application.run_webhook(
                listen=cfg.listen_host,
                port=cfg.port,
                url_path=cfg.webhook_path.lstrip("/"),
                webhook_url=full_url,
            )
        else:
            log_event(logging.WARNING, "WEBHOOK_URL not set. Running in local mode (polling).", {})
            self.application.run_polling(allowed_updates=Update.ALL_TYPES)

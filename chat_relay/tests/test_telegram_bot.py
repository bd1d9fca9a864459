import asyncio
from types import SimpleNamespace

import pytest
from telegram.error import TelegramError

from chat_relay.agents.conversation_agent import ConversationAgent
from chat_relay.domain.exceptions import MediaDownloadError
from chat_relay.domain.models import GenerationOutcome, GenerationResult, InlineMediaPart
from chat_relay.infrastructure.storage.memory_store import InMemoryHistoryStore
from chat_relay.transport.telegram_bot import TelegramBot, TelegramChannel, split_message


class FakeClient:
    name = "fake"

    def __init__(self):
        self.calls = []

    async def generate(self, prompt, history, image_data=None, image_mime_type=None):
        self.calls.append((prompt, image_data, image_mime_type))
        return GenerationResult(outcome=GenerationOutcome.SUCCESS, text="AI Response")


class FakeMessage:
    def __init__(self, text=None, caption=None, photo=None):
        self.text = text
        self.caption = caption
        self.photo = photo or []
        self.replies = []

    async def reply_text(self, text):
        self.replies.append(text)


class FakeFile:
    def __init__(self, data):
        self._data = data

    async def download_as_bytearray(self):
        return bytearray(self._data)


class FakeBot:
    def __init__(self, data=b"jpeg-bytes", fail=False):
        self.actions = []
        self.requested = []
        self._data = data
        self._fail = fail

    async def send_chat_action(self, chat_id, action):
        self.actions.append((chat_id, action))

    async def get_file(self, file_id):
        self.requested.append(file_id)
        if self._fail:
            raise TelegramError("file is too big")
        return FakeFile(self._data)


def make_update(message, chat_id=123, first_name="TestUser"):
    return SimpleNamespace(
        effective_chat=SimpleNamespace(id=chat_id),
        effective_user=SimpleNamespace(first_name=first_name),
        effective_message=message,
    )


@pytest.fixture
def setup():
    client = FakeClient()
    store = InMemoryHistoryStore(max_history_length=10)
    agent = ConversationAgent(store=store, completion_client=client, locale="uk")
    bot = TelegramBot("123456:FAKE_TOKEN", agent)
    return bot, store, client


def test_handle_start(setup):
    bot, store, _ = setup
    store.get_history(123)
    message = FakeMessage(text="/start")
    context = SimpleNamespace(bot=FakeBot())

    asyncio.run(bot.handle_start(make_update(message), context))

    assert "Привіт, TestUser!" in message.replies[0]
    assert 123 not in store


def test_handle_text(setup):
    bot, store, client = setup
    message = FakeMessage(text="Hello")
    tg_bot = FakeBot()

    asyncio.run(bot.handle_text(make_update(message), SimpleNamespace(bot=tg_bot)))

    assert tg_bot.actions == [(123, "typing")]
    assert client.calls == [("Hello", None, None)]
    assert message.replies == ["AI Response"]
    assert [t.role for t in store.get_history(123)] == ["user", "model"]


def test_handle_photo_uses_largest_size(setup):
    bot, store, client = setup
    photo = [SimpleNamespace(file_id="small"), SimpleNamespace(file_id="large")]
    message = FakeMessage(caption=None, photo=photo)
    tg_bot = FakeBot(data=b"jpeg-bytes")

    asyncio.run(bot.handle_photo(make_update(message), SimpleNamespace(bot=tg_bot)))

    assert tg_bot.requested == ["large"]
    assert tg_bot.actions == [(123, "upload_photo")]
    assert client.calls[0][0] == "Опиши це зображення"
    assert client.calls[0][2] == "image/jpeg"
    assert isinstance(store.get_history(123)[0].parts[1], InlineMediaPart)
    assert message.replies == ["AI Response"]


def test_handle_photo_download_failure(setup):
    bot, store, client = setup
    message = FakeMessage(caption="x", photo=[SimpleNamespace(file_id="f")])

    asyncio.run(bot.handle_photo(make_update(message), SimpleNamespace(bot=FakeBot(fail=True))))

    assert message.replies == ["❌ Ой, не вдалося обробити ваше зображення."]
    assert client.calls == []
    assert store.get_history(123) == []


def test_handle_clear_and_sticker(setup):
    bot, store, _ = setup
    message = FakeMessage(text="/clear")
    context = SimpleNamespace(bot=FakeBot())

    asyncio.run(bot.handle_clear(make_update(message), context))
    asyncio.run(bot.handle_sticker(make_update(message), context))

    assert message.replies == ["Історія чату вже порожня.", "👍 Класний стікер!"]


def test_channel_wraps_download_errors():
    channel = TelegramChannel(FakeBot(fail=True), chat_id=1)
    with pytest.raises(MediaDownloadError):
        asyncio.run(channel.download_image("f"))


def test_split_message():
    assert split_message("") == []
    assert split_message("short") == ["short"]
    long_text = "a" * 10 + "\n" + "b" * 10
    assert split_message(long_text, limit=12) == ["a" * 10, "b" * 10]
    assert split_message("c" * 25, limit=10) == ["c" * 10, "c" * 10, "c" * 5]


def test_build_application_registers_handlers(setup):
    bot, _, _ = setup
    app = bot.build_application()
    assert len(app.handlers[0]) == 5
    assert len(app.error_handlers) == 1
    # 不同聊天的更新并发处理，同一会话的顺序由 ConversationAgent 保证
    assert app.concurrent_updates > 1

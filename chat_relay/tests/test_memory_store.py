import pytest

from chat_relay.domain.exceptions import ValidationError
from chat_relay.domain.models import InlineMediaPart, TextPart, Turn
from chat_relay.infrastructure.storage.memory_store import InMemoryHistoryStore


@pytest.fixture
def store():
    return InMemoryHistoryStore(max_history_length=4)


def test_get_history_creates_empty_entry(store):
    history = store.get_history(123)
    assert history == []
    assert 123 in store
    assert store.get_history(123) is history


def test_add_message_appends_turn(store):
    store.add_message(123, "user", [TextPart(text="a")])
    history = store.get_history(123)
    assert len(history) == 1
    assert history[0] == Turn(role="user", parts=(TextPart(text="a"),))


def test_add_message_wraps_bare_part(store):
    store.add_message(123, "model", TextPart(text="reply"))
    assert store.get_history(123)[0].parts == (TextPart(text="reply"),)


def test_add_message_keeps_part_order(store):
    parts = [TextPart(text="caption"), InlineMediaPart(mime_type="image/jpeg", data="aGk=")]
    store.add_message(123, "user", parts)
    assert store.get_history(123)[0].parts == tuple(parts)


def test_clear_history(store):
    store.add_message(123, "user", [TextPart(text="a")])
    assert store.clear_history(123) is True
    assert 123 not in store
    assert store.get_history(123) == []


def test_clear_history_missing_conversation(store):
    assert store.clear_history(999) is False
    assert 999 not in store
    assert len(store) == 0


def test_sliding_window(store):
    store.add_message(123, "user", [TextPart(text="msg1")])
    store.add_message(123, "model", [TextPart(text="msg2")])
    store.add_message(123, "user", [TextPart(text="msg3")])
    store.add_message(123, "model", [TextPart(text="msg4")])
    store.add_message(123, "user", [TextPart(text="msg5")])

    history = store.get_history(123)
    assert [t.text for t in history] == ["msg2", "msg3", "msg4", "msg5"]
    # 按条数淘汰，窗口头部可以是 model
    assert history[0].role == "model"


def test_bound_holds_for_long_sequences():
    store = InMemoryHistoryStore(max_history_length=3)
    for i in range(20):
        store.add_message("chat", "user" if i % 2 == 0 else "model", TextPart(text=f"m{i}"))
        history = store.get_history("chat")
        assert len(history) <= 3
        assert [t.text for t in history] == [f"m{j}" for j in range(max(0, i - 2), i + 1)]


def test_conversations_are_isolated(store):
    store.add_message(1, "user", TextPart(text="one"))
    store.add_message(2, "user", TextPart(text="two"))
    store.clear_history(1)
    assert [t.text for t in store.get_history(2)] == ["two"]
    assert store.get_history(1) == []


def test_default_bound_is_ten():
    assert InMemoryHistoryStore().max_history_length == 10


def test_invalid_bound():
    with pytest.raises(ValidationError):
        InMemoryHistoryStore(max_history_length=0)

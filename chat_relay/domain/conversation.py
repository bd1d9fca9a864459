from typing import List, Protocol, Sequence, Union

from .models import Part, Role, Turn


# 平台提供的会话标识（Telegram chat id 为 int）
ConversationId = Union[int, str]


class HistoryStore(Protocol):
    def get_history(self, conversation_id: ConversationId) -> List[Turn]:
        ...

    def add_message(
        self,
        conversation_id: ConversationId,
        role: Role,
        parts: Union[Part, Sequence[Part]],
    ) -> None:
        ...

    def clear_history(self, conversation_id: ConversationId) -> bool:
        ...

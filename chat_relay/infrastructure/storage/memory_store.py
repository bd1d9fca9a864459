from typing import Dict, List, Sequence, Union

from chat_relay.domain.conversation import ConversationId, HistoryStore
from chat_relay.domain.exceptions import ValidationError
from chat_relay.domain.models import Part, Role, Turn, normalize_parts


class InMemoryHistoryStore(HistoryStore):
    """进程内的会话历史存储。

    每个会话保留最近 max_history_length 条 Turn，超出时从最旧的一条开始淘汰
    （按条数滑动窗口，不按 user/model 成对淘汰）。进程重启后历史丢失。
    """

    def __init__(self, max_history_length: int = 10):
        if max_history_length < 1:
            raise ValidationError(code="INVALID_CONFIG", message="max_history_length must be >= 1")
        self._max_history_length = max_history_length
        self._histories: Dict[ConversationId, List[Turn]] = {}

    @property
    def max_history_length(self) -> int:
        return self._max_history_length

    def get_history(self, conversation_id: ConversationId) -> List[Turn]:
        return self._histories.setdefault(conversation_id, [])

    def add_message(
        self,
        conversation_id: ConversationId,
        role: Role,
        parts: Union[Part, Sequence[Part]],
    ) -> None:
        history = self.get_history(conversation_id)
        history.append(Turn(role=role, parts=normalize_parts(parts)))
        overflow = len(history) - self._max_history_length
        if overflow > 0:
            del history[:overflow]

    def clear_history(self, conversation_id: ConversationId) -> bool:
        return self._histories.pop(conversation_id, None) is not None

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._histories

    def __len__(self) -> int:
        return len(self._histories)

"""WorkflowSlice -- 对话消息、当前主题与确认标记"""

from typing import Any, Literal

from pydantic import BaseModel, Field


class WorkflowMessage(BaseModel):
    """工作流消息；thinking / tool / topics 消息按 id 原位更新"""

    id: str
    role: Literal["user", "assistant"] = "assistant"
    kind: Literal["text", "thinking", "tool", "topics"] = "text"
    content: str = ""
    data: dict[str, Any] = Field(default_factory=dict)


class WorkflowSlice:
    def __init__(self) -> None:
        self.messages: list[WorkflowMessage] = []
        self._index: dict[str, int] = {}
        self.current_topics: list[str] = []
        self.topics_approved: bool = False

    def upsert_message(self, message: WorkflowMessage) -> None:
        """同 id 原位替换，否则追加"""
        position = self._index.get(message.id)
        if position is None:
            self._index[message.id] = len(self.messages)
            self.messages.append(message)
        else:
            self.messages[position] = message

    def get_message(self, message_id: str) -> WorkflowMessage | None:
        position = self._index.get(message_id)
        return self.messages[position] if position is not None else None

    def set_topics(self, topics: list[str]) -> None:
        self.current_topics = list(topics)
        self.topics_approved = False

    def approve_topics(self) -> None:
        self.topics_approved = True

    def reset(self) -> None:
        self.messages.clear()
        self._index.clear()
        self.current_topics = []
        self.topics_approved = False

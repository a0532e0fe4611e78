"""ProgressEvent -- 事件传输层上的统一信封

事件按 (user_id, type, payload) 寻址；event_id 使用 ULID，时间有序。
payload 结构由 type 决定，见 payloads.PAYLOAD_MODELS。
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import TERMINAL_EVENT_TYPES, EventType


class ProgressEvent(BaseModel):
    """进度事件信封"""

    event_id: str = Field(description="唯一标识，ULID 格式，时间有序")
    user_id: str = Field(description="接收会话所属用户")
    task_id: str = Field(description="产生事件的外部任务 ID")
    type: EventType = Field(description="事件类型")
    ts: datetime = Field(description="事件时间戳")
    schema_version: int = Field(default=1, description="Schema 版本号")
    payload: dict[str, Any] = Field(default_factory=dict, description="结构化 payload")

    @property
    def is_terminal(self) -> bool:
        return self.type in TERMINAL_EVENT_TYPES

"""进度实体 -- ThinkingStep / ToolAction / SlidePreview / AgentState

以及最终产物 Presentation / Slide。实体以 id 为身份，
由 State Reconciler 按 id upsert。
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from .enums import (
    AgentStatus,
    AgentType,
    SlideLayout,
    ThinkingStepStatus,
    ToolStatus,
)
from .layout import normalize_layout


class ThinkingStep(BaseModel):
    """Agent 可见推理的一个步骤"""

    id: str
    title: str = Field(default="Processing...", description="步骤标题")
    status: ThinkingStepStatus = Field(default=ThinkingStepStatus.RUNNING)
    description: str | None = Field(default=None)
    actions: list[str] = Field(default_factory=list)
    result: str | None = Field(default=None)
    started_at: datetime | None = Field(default=None)
    completed_at: datetime | None = Field(default=None)


class ToolAction(BaseModel):
    """Agent 的一次外部工具调用

    type 为归一化类别（search/browse/python/bash/file），
    未匹配时保留小写原名。
    """

    id: str
    type: str = Field(description="归一化工具类别")
    status: ToolStatus = Field(default=ToolStatus.RUNNING)
    input: str | None = Field(default=None, description="调用参数（JSON 文本）")
    result: str | None = Field(default=None, description="完成时的输出")
    error: str | None = Field(default=None, description="失败原因")
    timestamp: datetime | None = Field(default=None)
    duration_ms: int | None = Field(default=None, ge=0, description="耗时（毫秒）")


class SlidePreview(BaseModel):
    """部分生成的幻灯片；order_index 决定显示顺序"""

    id: str
    order_index: int = Field(default=0)
    title: str = Field(default="")
    content: str = Field(default="")
    layout: SlideLayout = Field(default=SlideLayout.CONTENT)

    @field_validator("layout", mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> SlideLayout:
        return normalize_layout(value)


class AgentState(BaseModel):
    """单个流水线角色的状态投影"""

    agent: AgentType
    status: AgentStatus = Field(default=AgentStatus.IDLE)
    current_action: str | None = Field(default=None)
    progress: int | None = Field(default=None, ge=0, le=100)


class Slide(BaseModel):
    """已持久化的最终幻灯片"""

    slide_id: str
    presentation_id: str
    order_index: int
    title: str = ""
    content: str = ""
    layout: SlideLayout = SlideLayout.CONTENT
    updated_at: datetime


class Presentation(BaseModel):
    """已持久化的演示文稿（最终产物）"""

    presentation_id: str
    user_id: str
    task_id: str | None = None
    title: str = ""
    status: str = Field(default="generating", description="generating/completed/failed")
    slides_count: int = 0
    created_at: datetime
    updated_at: datetime
    slides: list[Slide] = Field(default_factory=list)

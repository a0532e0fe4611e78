"""Event Payload 子类型

每种 EventType 对应一个 payload 模型；Reconciler 依据 PAYLOAD_MODELS
在边界处校验，校验失败的事件被丢弃。
"""

from pydantic import BaseModel, Field

from .entities import SlidePreview, ThinkingStep, ToolAction
from .enums import AgentStatus, AgentType, EventType, GenerationErrorReason


class ThinkingStepPayload(BaseModel):
    """thinking:step 事件 payload"""

    message_id: str = Field(description="承载该步骤的消息 ID")
    step: ThinkingStep


class ToolEventPayload(BaseModel):
    """tool:started / tool:completed / tool:failed 事件 payload"""

    message_id: str = Field(description="工具消息 ID（tool-{id}）")
    tool: ToolAction


class SlidePreviewPayload(BaseModel):
    """slide:preview 事件 payload"""

    presentation_id: str | None = None
    slide: SlidePreview


class TopicsGeneratedPayload(BaseModel):
    """topics:generated 事件 payload"""

    message_id: str = Field(description="主题消息 ID（topics-{task_id}）")
    topics: list[str] = Field(min_length=1)


class GenerationProgressPayload(BaseModel):
    """generation:progress 事件 payload"""

    progress: int = Field(ge=0, le=100)


class GenerationCompletedPayload(BaseModel):
    """generation:completed 事件 payload"""

    presentation_id: str = Field(description="最终产物 ID（未知时为 task_id）")
    slides_count: int = Field(default=0, ge=0)


class GenerationErrorPayload(BaseModel):
    """generation:error 事件 payload"""

    error: str
    reason: GenerationErrorReason = Field(default=GenerationErrorReason.TASK_FAILED)


class GenerationCancelledPayload(BaseModel):
    """generation:cancelled 事件 payload"""

    reason: str = Field(default="cancelled by user")


class AgentStatusChangePayload(BaseModel):
    """agent:status:change 事件 payload"""

    agent: AgentType
    status: AgentStatus
    progress: int | None = Field(default=None, ge=0, le=100)


class AgentActionUpdatePayload(BaseModel):
    """agent:action:update 事件 payload"""

    agent: AgentType
    action: str


PAYLOAD_MODELS: dict[EventType, type[BaseModel]] = {
    EventType.THINKING_STEP: ThinkingStepPayload,
    EventType.TOOL_STARTED: ToolEventPayload,
    EventType.TOOL_COMPLETED: ToolEventPayload,
    EventType.TOOL_FAILED: ToolEventPayload,
    EventType.SLIDE_PREVIEW: SlidePreviewPayload,
    EventType.TOPICS_GENERATED: TopicsGeneratedPayload,
    EventType.GENERATION_PROGRESS: GenerationProgressPayload,
    EventType.GENERATION_COMPLETED: GenerationCompletedPayload,
    EventType.GENERATION_ERROR: GenerationErrorPayload,
    EventType.GENERATION_CANCELLED: GenerationCancelledPayload,
    EventType.AGENT_STATUS_CHANGE: AgentStatusChangePayload,
    EventType.AGENT_ACTION_UPDATE: AgentActionUpdatePayload,
}

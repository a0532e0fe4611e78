"""SlidePilot Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .entities import (
    AgentState,
    Presentation,
    Slide,
    SlidePreview,
    ThinkingStep,
    ToolAction,
)
from .enums import (
    GENERATION_TERMINAL_STATES,
    GENERATION_TRANSITIONS,
    TERMINAL_EVENT_TYPES,
    TERMINAL_STATES,
    THINKING_STATUS_RANK,
    TOOL_STATUS_RANK,
    VALID_TRANSITIONS,
    AgentStatus,
    AgentType,
    EventType,
    GenerationErrorReason,
    GenerationStatus,
    SlideLayout,
    TaskStatus,
    TaskType,
    ThinkingStepStatus,
    ToolStatus,
    ToolType,
    validate_generation_transition,
    validate_transition,
)
from .event import ProgressEvent
from .layout import normalize_layout
from .payloads import (
    PAYLOAD_MODELS,
    AgentActionUpdatePayload,
    AgentStatusChangePayload,
    GenerationCancelledPayload,
    GenerationCompletedPayload,
    GenerationErrorPayload,
    GenerationProgressPayload,
    SlidePreviewPayload,
    ThinkingStepPayload,
    ToolEventPayload,
    TopicsGeneratedPayload,
)
from .task import GenerationTask, InvalidTaskTransitionError

__all__ = [
    # 枚举
    "TaskType",
    "TaskStatus",
    "EventType",
    "ThinkingStepStatus",
    "ToolStatus",
    "ToolType",
    "SlideLayout",
    "AgentType",
    "AgentStatus",
    "GenerationStatus",
    "GenerationErrorReason",
    # 状态机
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
    "GENERATION_TRANSITIONS",
    "GENERATION_TERMINAL_STATES",
    "TERMINAL_EVENT_TYPES",
    "TOOL_STATUS_RANK",
    "THINKING_STATUS_RANK",
    "validate_transition",
    "validate_generation_transition",
    # Task
    "GenerationTask",
    "InvalidTaskTransitionError",
    # 实体
    "ThinkingStep",
    "ToolAction",
    "SlidePreview",
    "AgentState",
    "Presentation",
    "Slide",
    "normalize_layout",
    # Event
    "ProgressEvent",
    # Payloads
    "PAYLOAD_MODELS",
    "ThinkingStepPayload",
    "ToolEventPayload",
    "SlidePreviewPayload",
    "TopicsGeneratedPayload",
    "GenerationProgressPayload",
    "GenerationCompletedPayload",
    "GenerationErrorPayload",
    "GenerationCancelledPayload",
    "AgentStatusChangePayload",
    "AgentActionUpdatePayload",
]

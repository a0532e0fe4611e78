"""枚举定义 -- 任务状态机、事件类型、生成状态机

包含 TaskStatus / GenerationStatus 两个状态机及其合法流转映射，
进度事件类型 EventType，以及思考步骤、工具、Agent、版式等封闭集合。
"""

from enum import StrEnum


class TaskType(StrEnum):
    """外部任务类型"""

    TOPICS = "topics"
    SLIDES = "slides"


class TaskStatus(StrEnum):
    """GenerationTask 状态机（由 Task Poller 单独驱动）"""

    PENDING = "pending"
    RUNNING = "running"

    # 终态
    COMPLETED = "completed"
    FAILED = "failed"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"


VALID_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.PENDING: {
        TaskStatus.RUNNING,
        TaskStatus.COMPLETED,
        TaskStatus.FAILED,
        TaskStatus.TIMEOUT,
        TaskStatus.CANCELLED,
    },
    TaskStatus.RUNNING: {
        TaskStatus.COMPLETED,
        TaskStatus.FAILED,
        TaskStatus.TIMEOUT,
        TaskStatus.CANCELLED,
    },
    # 终态不可再流转
    TaskStatus.COMPLETED: set(),
    TaskStatus.FAILED: set(),
    TaskStatus.TIMEOUT: set(),
    TaskStatus.CANCELLED: set(),
}

TERMINAL_STATES: set[TaskStatus] = {
    TaskStatus.COMPLETED,
    TaskStatus.FAILED,
    TaskStatus.TIMEOUT,
    TaskStatus.CANCELLED,
}


class EventType(StrEnum):
    """进度事件类型（封闭集合）"""

    THINKING_STEP = "thinking:step"
    TOOL_STARTED = "tool:started"
    TOOL_COMPLETED = "tool:completed"
    TOOL_FAILED = "tool:failed"
    SLIDE_PREVIEW = "slide:preview"
    TOPICS_GENERATED = "topics:generated"
    GENERATION_PROGRESS = "generation:progress"
    GENERATION_COMPLETED = "generation:completed"
    GENERATION_ERROR = "generation:error"
    GENERATION_CANCELLED = "generation:cancelled"
    AGENT_STATUS_CHANGE = "agent:status:change"
    AGENT_ACTION_UPDATE = "agent:action:update"


# 结束一次生成的事件类型
TERMINAL_EVENT_TYPES: set[EventType] = {
    EventType.TOPICS_GENERATED,
    EventType.GENERATION_COMPLETED,
    EventType.GENERATION_ERROR,
    EventType.GENERATION_CANCELLED,
}


class ThinkingStepStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"


class ToolStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


# 工具生命周期的单调偏序：pending/running -> {completed, failed}
TOOL_STATUS_RANK: dict[ToolStatus, int] = {
    ToolStatus.PENDING: 0,
    ToolStatus.RUNNING: 1,
    ToolStatus.COMPLETED: 2,
    ToolStatus.FAILED: 2,
}

THINKING_STATUS_RANK: dict[ThinkingStepStatus, int] = {
    ThinkingStepStatus.PENDING: 0,
    ThinkingStepStatus.RUNNING: 1,
    ThinkingStepStatus.COMPLETED: 2,
}


class ToolType(StrEnum):
    """工具归一化类别；未匹配的名称保留为小写原名"""

    SEARCH = "search"
    BROWSE = "browse"
    PYTHON = "python"
    BASH = "bash"
    FILE = "file"


class SlideLayout(StrEnum):
    TITLE_SLIDE = "title_slide"
    CONTENT = "content"
    TWO_COLUMN = "two_column"
    IMAGE = "image"
    QUOTE = "quote"


class AgentType(StrEnum):
    """多 Agent 流水线中的角色"""

    RESEARCH = "ResearchAgent"
    TOPIC = "TopicAgent"
    CONTENT = "ContentAgent"
    DESIGNER = "DesignerAgent"
    QUALITY = "QualityAgent"
    ORCHESTRATOR = "OrchestratorAgent"


class AgentStatus(StrEnum):
    IDLE = "idle"
    WORKING = "working"
    COMPLETED = "completed"
    ERROR = "error"


class GenerationStatus(StrEnum):
    """客户端生成状态机（由 State Reconciler 独占写入）"""

    IDLE = "idle"
    THINKING = "thinking"
    GENERATING = "generating"
    COMPLETED = "completed"
    ERROR = "error"
    CANCELLED = "cancelled"


GENERATION_TRANSITIONS: dict[GenerationStatus, set[GenerationStatus]] = {
    GenerationStatus.IDLE: {
        GenerationStatus.THINKING,
        GenerationStatus.GENERATING,
        GenerationStatus.COMPLETED,
        GenerationStatus.ERROR,
        GenerationStatus.CANCELLED,
    },
    # thinking/generating -> idle：主题就绪，等待用户确认
    GenerationStatus.THINKING: {
        GenerationStatus.GENERATING,
        GenerationStatus.IDLE,
        GenerationStatus.COMPLETED,
        GenerationStatus.ERROR,
        GenerationStatus.CANCELLED,
    },
    GenerationStatus.GENERATING: {
        GenerationStatus.IDLE,
        GenerationStatus.COMPLETED,
        GenerationStatus.ERROR,
        GenerationStatus.CANCELLED,
    },
    GenerationStatus.COMPLETED: set(),
    GenerationStatus.ERROR: set(),
    GenerationStatus.CANCELLED: set(),
}

GENERATION_TERMINAL_STATES: set[GenerationStatus] = {
    GenerationStatus.COMPLETED,
    GenerationStatus.ERROR,
    GenerationStatus.CANCELLED,
}


class GenerationErrorReason(StrEnum):
    """generation:error 的原因分类"""

    TASK_FAILED = "task_failed"
    TIMEOUT = "timeout"
    EXTRACTION_FAILED = "extraction_failed"
    SOURCE_ERROR = "source_error"
    ARTIFACT_UNAVAILABLE = "artifact_unavailable"


def validate_transition(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    """验证任务状态流转是否合法

    Args:
        from_status: 当前状态
        to_status: 目标状态

    Returns:
        True 如果流转合法，否则 False
    """
    allowed = VALID_TRANSITIONS.get(from_status, set())
    return to_status in allowed


def validate_generation_transition(
    from_status: GenerationStatus, to_status: GenerationStatus
) -> bool:
    """验证生成状态流转是否合法（同状态视为合法的幂等写入）"""
    if from_status == to_status:
        return True
    return to_status in GENERATION_TRANSITIONS.get(from_status, set())

"""SlidePilot Provider -- 外部 Agent 任务源抽象层

packages/provider 的公开接口导出。
"""

from .client import AgentTaskClient
from .config import TaskSourceConfig, load_task_source_config
from .exceptions import (
    TaskSourceError,
    TaskSourceHTTPError,
    TaskSourceResponseError,
    TaskSourceUnreachableError,
)
from .models import (
    RawAgentUpdate,
    RawSlide,
    RawTaskStatus,
    RawThinkingStep,
    RawToolCall,
)
from .protocols import TaskSource
from .scripted import ScriptedTaskSource, default_script

__all__ = [
    "RawTaskStatus",
    "RawThinkingStep",
    "RawToolCall",
    "RawSlide",
    "RawAgentUpdate",
    "TaskSource",
    "AgentTaskClient",
    "ScriptedTaskSource",
    "default_script",
    "TaskSourceConfig",
    "load_task_source_config",
    "TaskSourceError",
    "TaskSourceUnreachableError",
    "TaskSourceHTTPError",
    "TaskSourceResponseError",
]

"""Store slices -- 各自独立、按 id upsert 的状态分片"""

from .agents import AgentSlice
from .presentation import PresentationSlice
from .tools import ToolSlice
from .workflow import WorkflowMessage, WorkflowSlice

__all__ = [
    "AgentSlice",
    "PresentationSlice",
    "ToolSlice",
    "WorkflowMessage",
    "WorkflowSlice",
]

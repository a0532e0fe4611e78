"""SlidePilot Client -- 事件调和与客户端状态

对外导出 SlidesStore / StateReconciler / EventStreamClient / PresentationFetcher。
"""

from .fetcher import ArtifactUnavailableError, HttpPresentationFetcher, PresentationFetcher
from .reconciler import StateReconciler
from .slices import AgentSlice, PresentationSlice, ToolSlice, WorkflowMessage, WorkflowSlice
from .sse_client import EventStreamClient
from .store import SlidesStore

__all__ = [
    "AgentSlice",
    "ArtifactUnavailableError",
    "EventStreamClient",
    "HttpPresentationFetcher",
    "PresentationFetcher",
    "PresentationSlice",
    "SlidesStore",
    "StateReconciler",
    "ToolSlice",
    "WorkflowMessage",
    "WorkflowSlice",
]

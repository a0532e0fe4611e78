"""SlidesStore -- 客户端规范化状态仓库

由若干独立 slice 组成，只由 StateReconciler 写入。
观察者通过 subscribe 注册回调，每个事件应用后被通知一次。
"""

from collections.abc import Callable

import structlog

from slidepilot.core.models import (
    AgentState,
    GenerationStatus,
    ProgressEvent,
    SlidePreview,
)

from .slices import AgentSlice, PresentationSlice, ToolSlice, WorkflowSlice

log = structlog.get_logger()

StoreListener = Callable[["SlidesStore", ProgressEvent], None]


class SlidesStore:
    """slice 组合 + 派生视图"""

    def __init__(self) -> None:
        self.workflow = WorkflowSlice()
        self.tools = ToolSlice()
        self.agents = AgentSlice()
        self.presentation = PresentationSlice()
        self._listeners: list[StoreListener] = []

    # -- 派生视图 --

    @property
    def generation_status(self) -> GenerationStatus:
        return self.presentation.generation_status

    @property
    def is_generating(self) -> bool:
        return self.presentation.generation_status in (
            GenerationStatus.THINKING,
            GenerationStatus.GENERATING,
        )

    @property
    def current_agent_status(self) -> AgentState | None:
        return self.agents.current_agent_status

    @property
    def ordered_slides(self) -> list[SlidePreview]:
        return self.presentation.ordered_slides

    # -- 观察者 --

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """注册观察者，返回取消订阅回调"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self, event: ProgressEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(self, event)
            except Exception as e:
                log.error(
                    "store_listener_failed",
                    event_type=event.type.value,
                    error=str(e),
                    error_type=type(e).__name__,
                )

    def reset_workflow(self) -> None:
        """开始新的工作流：清空所有 slice"""
        self.workflow.reset()
        self.tools.reset()
        self.agents.reset()
        self.presentation.reset()

"""StateReconciler -- 把事件流应用到 SlidesStore

消费当前用户的事件流，按 id upsert 到各 slice：
- 事件逐个串行应用（asyncio.Lock + 单消费者队列）
- 重复 / 过期 / 乱序事件不会破坏状态：各 slice 的 upsert 幂等且单调
- 未知或格式错误的事件记录 warning 后丢弃，从不抛出
- generation:completed 先拉取最终产物，成功后才标记 completed
- GenerationStatus 只在这里写入
"""

import asyncio
from typing import Any

import structlog
from pydantic import BaseModel, ValidationError

from slidepilot.core.models import (
    GENERATION_TERMINAL_STATES,
    PAYLOAD_MODELS,
    AgentActionUpdatePayload,
    AgentStatusChangePayload,
    EventType,
    GenerationCancelledPayload,
    GenerationCompletedPayload,
    GenerationErrorPayload,
    GenerationErrorReason,
    GenerationProgressPayload,
    GenerationStatus,
    ProgressEvent,
    SlidePreviewPayload,
    ThinkingStepPayload,
    ToolEventPayload,
    TopicsGeneratedPayload,
)

from .fetcher import ArtifactUnavailableError, PresentationFetcher
from .slices import WorkflowMessage
from .store import SlidesStore

log = structlog.get_logger()

# 队列中的关闭标记
_CLOSE = object()


class StateReconciler:
    """客户端状态调和器"""

    def __init__(
        self,
        user_id: str,
        store: SlidesStore,
        fetcher: PresentationFetcher,
    ) -> None:
        self.user_id = user_id
        self.store = store
        self._fetcher = fetcher
        self._lock = asyncio.Lock()
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        # 已结束的任务：其迟到事件不再驱动生成状态
        self._finished_tasks: set[str] = set()
        self.applied_count = 0
        self.dropped_count = 0

    # -- 队列入口 --

    def submit(self, raw: Any) -> None:
        """传输层回调：事件入队，由 run() 串行应用"""
        self._queue.put_nowait(raw)

    async def run(self) -> None:
        """单消费者循环，直到 close()"""
        while True:
            raw = await self._queue.get()
            try:
                if raw is _CLOSE:
                    return
                await self.apply(raw)
            except Exception as e:
                # 单个事件失败不终止消费循环
                self.dropped_count += 1
                log.error(
                    "event_apply_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                )
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        """等待已入队事件全部应用"""
        await self._queue.join()

    def close(self) -> None:
        self._queue.put_nowait(_CLOSE)

    # -- 应用 --

    async def apply(self, raw: Any) -> bool:
        """应用单个事件

        Returns:
            False 如果事件被丢弃
        """
        async with self._lock:
            event = self._parse(raw)
            if event is None:
                self.dropped_count += 1
                return False

            payload_model = PAYLOAD_MODELS[event.type]
            try:
                payload = payload_model.model_validate(event.payload)
            except ValidationError as e:
                log.warning(
                    "event_payload_invalid",
                    event_type=event.type.value,
                    task_id=event.task_id,
                    errors=e.error_count(),
                )
                self.dropped_count += 1
                return False

            await self._dispatch(event, payload)
            self.applied_count += 1
            self.store.notify(event)
            return True

    def _parse(self, raw: Any) -> ProgressEvent | None:
        if isinstance(raw, ProgressEvent):
            event = raw
        else:
            try:
                event = ProgressEvent.model_validate(raw)
            except ValidationError as e:
                log.warning("event_malformed", errors=e.error_count())
                return None

        if event.user_id != self.user_id:
            log.warning(
                "event_wrong_user",
                event_type=event.type.value,
                task_id=event.task_id,
            )
            return None
        return event

    async def _dispatch(self, event: ProgressEvent, payload: BaseModel) -> None:
        task_id = event.task_id
        match payload:
            case ThinkingStepPayload():
                self._advance(task_id, GenerationStatus.THINKING)
                self._apply_thinking(task_id, payload)
            case ToolEventPayload():
                self._advance(task_id, GenerationStatus.THINKING)
                self._apply_tool(payload)
            case SlidePreviewPayload():
                self._advance(task_id, GenerationStatus.GENERATING)
                self.store.presentation.upsert_slide(payload.slide)
            case GenerationProgressPayload():
                if self._advance(task_id, GenerationStatus.GENERATING):
                    self.store.presentation.progress = payload.progress
            case TopicsGeneratedPayload():
                self._apply_topics(task_id, payload)
            case GenerationCompletedPayload():
                await self._apply_completed(task_id, payload)
            case GenerationErrorPayload():
                self._apply_error(task_id, payload.error, payload.reason)
            case GenerationCancelledPayload():
                self._apply_cancelled(task_id, payload)
            case AgentStatusChangePayload():
                self.store.agents.set_status(payload.agent, payload.status, payload.progress)
            case AgentActionUpdatePayload():
                self.store.agents.set_action(payload.agent, payload.action)

    # -- 生成状态 --

    def _is_current(self, task_id: str) -> bool:
        """事件是否属于当前生成；必要时开始新一轮生成"""
        if task_id in self._finished_tasks:
            return False
        presentation = self.store.presentation
        if presentation.active_task_id == task_id:
            return True
        if (
            presentation.active_task_id is None
            or presentation.generation_status in GENERATION_TERMINAL_STATES
            or presentation.generation_status == GenerationStatus.IDLE
        ):
            presentation.begin(task_id)
            return True
        log.warning(
            "event_for_inactive_task",
            task_id=task_id,
            active_task_id=presentation.active_task_id,
        )
        return False

    def _advance(self, task_id: str, target: GenerationStatus) -> bool:
        """把进行中的状态向前推进；不会后退"""
        if not self._is_current(task_id):
            return False
        presentation = self.store.presentation
        current = presentation.generation_status
        if current == GenerationStatus.IDLE or (
            current == GenerationStatus.THINKING and target == GenerationStatus.GENERATING
        ):
            presentation.set_status(target)
        return True

    def _finish_task(self, task_id: str) -> None:
        self._finished_tasks.add(task_id)

    # -- 各事件 --

    def _apply_thinking(self, task_id: str, payload: ThinkingStepPayload) -> None:
        presentation = self.store.presentation
        if not presentation.upsert_thinking_step(payload.step):
            log.debug("thinking_step_stale", step_id=payload.step.id, task_id=task_id)
            return
        steps = [step.model_dump(mode="json") for step in presentation.thinking_steps.values()]
        self.store.workflow.upsert_message(
            WorkflowMessage(
                id=payload.message_id,
                kind="thinking",
                data={"task_id": task_id, "steps": steps},
            )
        )

    def _apply_tool(self, payload: ToolEventPayload) -> None:
        tools = self.store.tools
        if not tools.upsert_tool(payload.tool):
            log.debug("tool_event_stale", tool_id=payload.tool.id, status=payload.tool.status.value)
            return
        merged = tools.get(payload.tool.id)
        self.store.workflow.upsert_message(
            WorkflowMessage(
                id=payload.message_id,
                kind="tool",
                data={"tool": merged.model_dump(mode="json")},
            )
        )

    def _apply_topics(self, task_id: str, payload: TopicsGeneratedPayload) -> None:
        if not self._is_current(task_id):
            return
        workflow = self.store.workflow
        workflow.set_topics(payload.topics)
        workflow.upsert_message(
            WorkflowMessage(
                id=payload.message_id,
                kind="topics",
                content="\n".join(payload.topics),
                data={"task_id": task_id, "topics": list(payload.topics)},
            )
        )
        # 主题就绪，回到 idle 等待用户确认
        self.store.presentation.set_status(GenerationStatus.IDLE)
        self._finish_task(task_id)

    async def _apply_completed(self, task_id: str, payload: GenerationCompletedPayload) -> None:
        if not self._is_current(task_id):
            return
        self._finish_task(task_id)
        try:
            presentation = await self._fetcher.fetch(payload.presentation_id)
        except ArtifactUnavailableError as e:
            log.warning(
                "presentation_unavailable",
                task_id=task_id,
                presentation_id=payload.presentation_id,
                reason=e.reason,
            )
            self.store.presentation.set_error(str(e), GenerationErrorReason.ARTIFACT_UNAVAILABLE)
            return
        self.store.presentation.set_final_presentation(presentation)
        log.info(
            "generation_completed",
            task_id=task_id,
            presentation_id=presentation.presentation_id,
            slides_count=len(presentation.slides),
        )

    def _apply_error(self, task_id: str, message: str, reason: GenerationErrorReason) -> None:
        if not self._is_current(task_id):
            return
        self._finish_task(task_id)
        self.store.presentation.set_error(message, reason)
        log.info("generation_failed", task_id=task_id, reason=reason.value, error=message)

    def _apply_cancelled(self, task_id: str, payload: GenerationCancelledPayload) -> None:
        if not self._is_current(task_id):
            return
        self._finish_task(task_id)
        self.store.presentation.set_status(GenerationStatus.CANCELLED)
        log.info("generation_cancelled", task_id=task_id, reason=payload.reason)

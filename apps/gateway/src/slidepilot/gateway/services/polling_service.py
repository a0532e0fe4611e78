"""PollingService -- 轮询器生命周期管理

start() 先在 PollerRegistry 注册（重复 task_id 立即拒绝，不发起任何轮询），
再以 asyncio.Task 后台运行 TaskPoller；循环结束时在 finally 中注销。
cancel() 停止轮询并发出一次 generation:cancelled。
"""

import asyncio
import contextlib
from datetime import UTC, datetime

import structlog

from slidepilot.core.config import POLL_BACKOFF_CAP_S, POLL_INTERVAL_S, POLL_MAX_ATTEMPTS
from slidepilot.core.models import (
    TERMINAL_STATES,
    EventType,
    GenerationCancelledPayload,
    GenerationErrorPayload,
    GenerationErrorReason,
    GenerationTask,
    TaskStatus,
    TaskType,
)
from slidepilot.provider import TaskSource

from .event_hub import EventHub
from .poller import POLLING_FAILED_MESSAGE, SleepFn, TaskPoller, build_event
from .registry import PollerRegistry, StopFn

log = structlog.get_logger()

# 关闭时等待轮询器自行退出的时间（秒），超时后强制取消
SHUTDOWN_GRACE_S = 5.0


class PollingService:
    """轮询编排服务"""

    def __init__(
        self,
        source: TaskSource,
        hub: EventHub,
        registry: PollerRegistry,
        *,
        interval_s: float = POLL_INTERVAL_S,
        max_attempts: int = POLL_MAX_ATTEMPTS,
        backoff_cap_s: float = POLL_BACKOFF_CAP_S,
        sleep: SleepFn | None = None,
    ) -> None:
        self._source = source
        self._hub = hub
        self._registry = registry
        self._interval_s = interval_s
        self._max_attempts = max_attempts
        self._backoff_cap_s = backoff_cap_s
        self._sleep = sleep
        self._runners: dict[str, asyncio.Task] = {}

    @property
    def registry(self) -> PollerRegistry:
        return self._registry

    async def start(
        self,
        task_id: str,
        user_id: str,
        task_type: TaskType = TaskType.SLIDES,
        presentation_id: str | None = None,
        interval_s: float | None = None,
    ) -> StopFn:
        """开始轮询外部任务

        Returns:
            停止回调（协作式取消，不发出 generation:cancelled）

        Raises:
            PollerAlreadyRegisteredError: 该 task_id 已有活跃轮询器
        """
        now = datetime.now(UTC)
        task = GenerationTask(
            task_id=task_id,
            user_id=user_id,
            presentation_id=presentation_id,
            task_type=task_type,
            started_at=now,
            updated_at=now,
        )
        poller = TaskPoller(
            task,
            self._source,
            self._hub,
            interval_s=interval_s or self._interval_s,
            max_attempts=self._max_attempts,
            backoff_cap_s=self._backoff_cap_s,
            sleep=self._sleep,
        )

        await self._registry.register(task, poller.stop)
        runner = asyncio.create_task(self._run(poller), name=f"poller-{task_id}")
        self._runners[task_id] = runner
        await self._registry.attach_runner(task_id, runner)
        return poller.stop

    async def _run(self, poller: TaskPoller) -> None:
        task = poller.task
        try:
            await poller.run()
        except Exception as e:
            # 轮询器内部异常：对客户端表现为一次普通的生成失败
            log.error(
                "poller_crashed",
                task_id=task.task_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            if not poller.stopped and task.status not in TERMINAL_STATES:
                task.status = TaskStatus.FAILED
                task.last_error = str(e)
                await self._hub.publish(
                    build_event(
                        task,
                        EventType.GENERATION_ERROR,
                        GenerationErrorPayload(
                            error=POLLING_FAILED_MESSAGE,
                            reason=GenerationErrorReason.SOURCE_ERROR,
                        ),
                    )
                )
        finally:
            await self._registry.unregister(task.task_id, poller.stop)
            if self._runners.get(task.task_id) is asyncio.current_task():
                del self._runners[task.task_id]

    async def cancel(self, task_id: str, reason: str = "cancelled by user") -> bool:
        """取消轮询并发出 generation:cancelled

        Returns:
            True 如果存在活跃轮询器并已取消
        """
        handle = await self._registry.cancel(task_id)
        if handle is None:
            return False

        task = handle.task
        if task.status in TERMINAL_STATES:
            # 轮询器已自然结束，终态事件已发出
            return True
        task.transition(TaskStatus.CANCELLED, datetime.now(UTC))
        await self._hub.publish(
            build_event(
                task,
                EventType.GENERATION_CANCELLED,
                GenerationCancelledPayload(reason=reason),
            )
        )
        log.info("generation_cancelled", task_id=task_id, user_id=task.user_id, reason=reason)
        return True

    async def cancel_all(self) -> int:
        """停止所有轮询器（不发出事件，用于进程关闭）"""
        handles = await self._registry.cancel_all()
        return len(handles)

    def active_count(self) -> int:
        return self._registry.active_count()

    async def get_task(self, task_id: str) -> GenerationTask | None:
        handle = await self._registry.get(task_id)
        return handle.task if handle else None

    async def list_tasks(self) -> list[GenerationTask]:
        return await self._registry.list_tasks()

    async def wait(self, task_id: str | None = None) -> None:
        """等待指定（或全部）轮询器结束，主要用于测试与关闭流程"""
        if task_id is not None:
            runner = self._runners.get(task_id)
            runners = [runner] if runner else []
        else:
            runners = list(self._runners.values())
        if runners:
            await asyncio.gather(*runners, return_exceptions=True)

    async def shutdown(self, grace_s: float = SHUTDOWN_GRACE_S) -> None:
        """停止全部轮询器并等待退出；超时仍未退出的强制取消"""
        count = await self.cancel_all()
        runners = list(self._runners.values())
        if not runners:
            return
        _, pending = await asyncio.wait(runners, timeout=grace_s)
        for runner in pending:
            runner.cancel()
        for runner in pending:
            with contextlib.suppress(asyncio.CancelledError):
                await runner
        log.info("polling_service_shutdown", stopped=count, forced=len(pending))

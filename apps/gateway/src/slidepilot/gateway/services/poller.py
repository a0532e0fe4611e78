"""TaskPoller -- 单个外部任务的轮询循环

显式循环（非递归回调）：
1. 拉取原始状态；瞬时失败按 min(interval * 2^n, cap) 退避重试
2. 成功时解码 thinking_steps / tool_calls / slides / agents / progress，
   只发出未见过的状态
3. completed -> topics:generated 或 generation:completed；
   failed -> generation:error
4. 每次尝试后检查次数上限；达到上限时发出且仅发出一次超时 generation:error

取消为协作式：stop() 设置停止标志，循环在调度下一次尝试前检查；
正在进行的拉取允许完成，但其结果被丢弃。
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime

import structlog
from pydantic import BaseModel
from ulid import ULID

from slidepilot.core.config import POLL_BACKOFF_CAP_S, POLL_INTERVAL_S, POLL_MAX_ATTEMPTS
from slidepilot.core.models import (
    EventType,
    GenerationCompletedPayload,
    GenerationErrorPayload,
    GenerationErrorReason,
    GenerationTask,
    ProgressEvent,
    TaskStatus,
    TaskType,
    TopicsGeneratedPayload,
)
from slidepilot.core.topics import extract_topics
from slidepilot.provider import RawTaskStatus, TaskSource, TaskSourceError

from .decoder import StatusDecoder
from .event_hub import EventHub

log = structlog.get_logger()

SleepFn = Callable[[float], Awaitable[None]]

TASK_FAILED_MESSAGE = "Task execution failed"
TASK_TIMEOUT_MESSAGE = "Task timeout"
POLLING_FAILED_MESSAGE = "Polling failed"
EXTRACTION_FAILED_MESSAGE = "Topic extraction failed"

# 退避指数上限，超过后延迟恒为 cap
_BACKOFF_MAX_EXPONENT = 30


def build_event(task: GenerationTask, event_type: EventType, payload: BaseModel) -> ProgressEvent:
    """把 payload 包装为寻址到任务所属用户的 ProgressEvent"""
    return ProgressEvent(
        event_id=str(ULID()),
        user_id=task.user_id,
        task_id=task.task_id,
        type=event_type,
        ts=datetime.now(UTC),
        payload=payload.model_dump(mode="json"),
    )


def backoff_delay(interval_s: float, failures: int, cap_s: float) -> float:
    """第 failures 次连续失败后的等待时间，不超过 cap_s"""
    if failures <= 0:
        return min(interval_s, cap_s)
    return min(interval_s * (2 ** min(failures, _BACKOFF_MAX_EXPONENT)), cap_s)


class TaskPoller:
    """单任务轮询器"""

    def __init__(
        self,
        task: GenerationTask,
        source: TaskSource,
        hub: EventHub,
        *,
        interval_s: float = POLL_INTERVAL_S,
        max_attempts: int = POLL_MAX_ATTEMPTS,
        backoff_cap_s: float = POLL_BACKOFF_CAP_S,
        sleep: SleepFn | None = None,
        decoder: StatusDecoder | None = None,
    ) -> None:
        self.task = task
        self._source = source
        self._hub = hub
        self._interval_s = interval_s
        self._max_attempts = max_attempts
        self._backoff_cap_s = backoff_cap_s
        self._sleep = sleep or self._interruptible_sleep
        self._decoder = decoder or StatusDecoder(task)
        self._stop_event = asyncio.Event()

    def stop(self) -> None:
        """请求停止（协作式）"""
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    async def _interruptible_sleep(self, delay: float) -> None:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
        except TimeoutError:
            pass

    async def run(self) -> TaskStatus:
        """运行轮询循环直到终态、超时或被取消

        Returns:
            循环结束时的任务状态
        """
        task = self.task
        failures = 0
        log.info(
            "polling_started",
            task_id=task.task_id,
            user_id=task.user_id,
            task_type=task.task_type.value,
            interval_s=self._interval_s,
        )

        while not self.stopped:
            task.poll_count += 1
            attempt = task.poll_count

            try:
                raw = await self._source.get_status(task.task_id)
            except TaskSourceError as e:
                failures += 1
                task.last_error = str(e)
                if self.stopped:
                    break
                if attempt >= self._max_attempts:
                    await self._finish_timeout(POLLING_FAILED_MESSAGE)
                    break
                delay = backoff_delay(self._interval_s, failures, self._backoff_cap_s)
                log.warning(
                    "poll_failed",
                    task_id=task.task_id,
                    poll_count=attempt,
                    failures=failures,
                    retry_in_s=delay,
                    error=str(e),
                    recoverable=e.recoverable,
                )
                await self._sleep(delay)
                continue

            if self.stopped:
                log.info("poll_result_discarded", task_id=task.task_id, poll_count=attempt)
                break

            failures = 0
            log.debug("poll_succeeded", task_id=task.task_id, poll_count=attempt, status=raw.status)
            if await self._handle(raw):
                break

            if attempt >= self._max_attempts:
                await self._finish_timeout(TASK_TIMEOUT_MESSAGE)
                break

            await self._sleep(backoff_delay(self._interval_s, 0, self._backoff_cap_s))

        if self.stopped:
            log.info("polling_stopped", task_id=task.task_id, poll_count=task.poll_count)
        return task.status

    async def _handle(self, raw: RawTaskStatus) -> bool:
        """处理一次成功拉取；到达终态返回 True"""
        task = self.task
        if raw.status == TaskStatus.RUNNING.value and task.status == TaskStatus.PENDING:
            task.transition(TaskStatus.RUNNING, datetime.now(UTC))

        for event_type, payload in self._decoder.decode(raw):
            await self._emit(event_type, payload)

        if raw.status == TaskStatus.COMPLETED.value:
            await self._finish_completed(raw)
            return True
        if raw.status == TaskStatus.FAILED.value:
            error = raw.error or TASK_FAILED_MESSAGE
            task.last_error = error
            await self._finish(
                TaskStatus.FAILED,
                EventType.GENERATION_ERROR,
                GenerationErrorPayload(error=error, reason=GenerationErrorReason.TASK_FAILED),
            )
            return True
        return False

    async def _finish_completed(self, raw: RawTaskStatus) -> None:
        task = self.task
        if task.task_type == TaskType.TOPICS:
            topics = extract_topics(raw.final_output)
            if topics is None:
                task.last_error = EXTRACTION_FAILED_MESSAGE
                log.warning("topics_extraction_failed", task_id=task.task_id)
                await self._finish(
                    TaskStatus.FAILED,
                    EventType.GENERATION_ERROR,
                    GenerationErrorPayload(
                        error=EXTRACTION_FAILED_MESSAGE,
                        reason=GenerationErrorReason.EXTRACTION_FAILED,
                    ),
                )
                return
            await self._finish(
                TaskStatus.COMPLETED,
                EventType.TOPICS_GENERATED,
                TopicsGeneratedPayload(message_id=f"topics-{task.task_id}", topics=topics),
            )
            return

        presentation_id = task.presentation_id or raw.presentation_id or task.task_id
        await self._finish(
            TaskStatus.COMPLETED,
            EventType.GENERATION_COMPLETED,
            GenerationCompletedPayload(
                presentation_id=presentation_id,
                slides_count=len(raw.slides),
            ),
        )

    async def _finish_timeout(self, message: str) -> None:
        self.task.last_error = message
        await self._finish(
            TaskStatus.TIMEOUT,
            EventType.GENERATION_ERROR,
            GenerationErrorPayload(error=message, reason=GenerationErrorReason.TIMEOUT),
        )

    async def _finish(self, status: TaskStatus, event_type: EventType, payload: BaseModel) -> None:
        task = self.task
        if self.stopped:
            # 已被取消：终态由取消方写入
            return
        task.transition(status, datetime.now(UTC))
        log.info(
            "polling_finished",
            task_id=task.task_id,
            status=status.value,
            event_type=event_type.value,
            poll_count=task.poll_count,
            error=task.last_error,
        )
        await self._emit(event_type, payload)

    async def _emit(self, event_type: EventType, payload: BaseModel) -> None:
        if self.stopped:
            log.debug("event_discarded_after_stop", task_id=self.task.task_id, event_type=event_type.value)
            return
        await self._hub.publish(build_event(self.task, event_type, payload))

"""PollerRegistry -- 每个 task_id 至多一个活跃轮询器

注册表是多个轮询循环之间唯一共享的可变状态，所有访问经 asyncio.Lock 串行化。
取消为协作式：调用 stop 回调设置停止标志，由轮询循环自行退出。
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from slidepilot.core.models import GenerationTask

log = structlog.get_logger()

StopFn = Callable[[], None]


class PollerAlreadyRegisteredError(Exception):
    """同一 task_id 已存在活跃轮询器"""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Poller for task {task_id} is already running")
        self.task_id = task_id


@dataclass
class PollerHandle:
    """注册表中的一项"""

    task: GenerationTask
    stop: StopFn
    runner: asyncio.Task | None = None


class PollerRegistry:
    """活跃轮询器注册表"""

    def __init__(self) -> None:
        self._handles: dict[str, PollerHandle] = {}
        self._lock = asyncio.Lock()

    async def register(
        self,
        task: GenerationTask,
        stop: StopFn,
        runner: asyncio.Task | None = None,
    ) -> PollerHandle:
        """注册轮询器

        Raises:
            PollerAlreadyRegisteredError: task_id 已注册
        """
        async with self._lock:
            if task.task_id in self._handles:
                raise PollerAlreadyRegisteredError(task.task_id)
            handle = PollerHandle(task=task, stop=stop, runner=runner)
            self._handles[task.task_id] = handle
        log.info("poller_registered", task_id=task.task_id, user_id=task.user_id)
        return handle

    async def attach_runner(self, task_id: str, runner: asyncio.Task) -> None:
        async with self._lock:
            handle = self._handles.get(task_id)
            if handle is not None:
                handle.runner = runner

    async def unregister(self, task_id: str, stop: StopFn | None = None) -> bool:
        """移除注册项；给定 stop 时只移除同一个句柄"""
        async with self._lock:
            handle = self._handles.get(task_id)
            if handle is None:
                return False
            if stop is not None and handle.stop != stop:
                return False
            del self._handles[task_id]
        log.debug("poller_unregistered", task_id=task_id)
        return True

    async def cancel(self, task_id: str) -> PollerHandle | None:
        """停止并移除轮询器；未注册时返回 None"""
        async with self._lock:
            handle = self._handles.pop(task_id, None)
        if handle is None:
            return None
        handle.stop()
        log.info("poller_cancelled", task_id=task_id)
        return handle

    async def cancel_all(self) -> list[PollerHandle]:
        async with self._lock:
            handles = list(self._handles.values())
            self._handles.clear()
        for handle in handles:
            handle.stop()
        if handles:
            log.info("pollers_cancelled", count=len(handles))
        return handles

    async def get(self, task_id: str) -> PollerHandle | None:
        async with self._lock:
            return self._handles.get(task_id)

    async def list_tasks(self) -> list[GenerationTask]:
        async with self._lock:
            return [handle.task for handle in self._handles.values()]

    def active_count(self) -> int:
        return len(self._handles)

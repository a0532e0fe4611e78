"""ScriptedTaskSource -- 内存脚本任务源

按任务回放预先准备的原始状态序列（最后一条重复返回），
可注入瞬时失败。用于本地 scripted 模式和测试。
"""

import asyncio
from typing import Any

from ulid import ULID

from slidepilot.core.models import TaskType

from .exceptions import TaskSourceError, TaskSourceUnreachableError
from .models import RawTaskStatus


def default_script(task_type: TaskType) -> list[dict[str, Any]]:
    """scripted 模式下新建任务默认使用的演示脚本"""
    steps = [
        {"id": "step-1", "title": "Analysing request", "status": "running"},
    ]
    running = {"status": "running", "thinking_steps": steps, "progress": 30}
    steps_done = [{**steps[0], "status": "completed"}]
    if task_type == TaskType.TOPICS:
        topics = [f"Topic {i}" for i in range(1, 8)]
        return [
            running,
            {"status": "completed", "thinking_steps": steps_done, "output": topics},
        ]
    slides = [
        {"id": f"slide-{i}", "order_index": i, "title": f"Slide {i}", "layout": "content"}
        for i in range(1, 4)
    ]
    return [
        running,
        {"status": "running", "thinking_steps": steps_done, "slides": slides, "progress": 80},
        {"status": "completed", "thinking_steps": steps_done, "slides": slides},
    ]


class ScriptedTaskSource:
    """内存脚本任务源

    行为:
        1. script(task_id, payloads) 为任务设置状态序列
        2. get_status 依次返回序列中的状态，到达末尾后重复最后一条
        3. fail_next(task_id, n) 让接下来 n 次 get_status 抛出可恢复错误
        4. create_task 未预设脚本时使用 default_script
    """

    def __init__(self, delay_s: float = 0.0) -> None:
        self._scripts: dict[str, list[dict[str, Any]]] = {}
        self._cursor: dict[str, int] = {}
        self._failures: dict[str, int] = {}
        self._delay_s = delay_s
        self.calls: dict[str, int] = {}
        self.created: list[dict[str, Any]] = []

    def script(self, task_id: str, payloads: list[dict[str, Any]]) -> None:
        self._scripts[task_id] = list(payloads)
        self._cursor[task_id] = 0

    def fail_next(self, task_id: str, count: int = 1) -> None:
        self._failures[task_id] = self._failures.get(task_id, 0) + count

    async def create_task(
        self,
        prompt: str,
        task_type: TaskType,
        user_id: str,
        presentation_id: str | None = None,
    ) -> str:
        task_id = f"scripted-{ULID()}"
        self.created.append(
            {
                "task_id": task_id,
                "prompt": prompt,
                "task_type": task_type,
                "user_id": user_id,
                "presentation_id": presentation_id,
            }
        )
        if task_id not in self._scripts:
            self.script(task_id, default_script(task_type))
        return task_id

    async def get_status(self, task_id: str) -> RawTaskStatus:
        self.calls[task_id] = self.calls.get(task_id, 0) + 1
        if self._delay_s:
            await asyncio.sleep(self._delay_s)

        remaining = self._failures.get(task_id, 0)
        if remaining > 0:
            self._failures[task_id] = remaining - 1
            raise TaskSourceUnreachableError(
                "scripted://", ConnectionError("injected failure")
            )

        payloads = self._scripts.get(task_id)
        if not payloads:
            raise TaskSourceError(f"Unknown task: {task_id}", recoverable=True)

        index = self._cursor[task_id]
        self._cursor[task_id] = min(index + 1, len(payloads) - 1)
        return RawTaskStatus.parse(payloads[index])

    async def health_check(self) -> bool:
        return True

    async def aclose(self) -> None:
        return None

"""TaskSource Protocol -- Task Poller 与 GenerationService 依赖的任务源接口

AgentTaskClient（HTTP）与 ScriptedTaskSource（内存脚本）都满足此接口。
"""

from typing import Protocol

from slidepilot.core.models import TaskType

from .models import RawTaskStatus


class TaskSource(Protocol):
    """外部任务源接口"""

    async def create_task(
        self,
        prompt: str,
        task_type: TaskType,
        user_id: str,
        presentation_id: str | None = None,
    ) -> str:
        """创建任务，返回外部任务 ID"""
        ...

    async def get_status(self, task_id: str) -> RawTaskStatus:
        """查询任务状态"""
        ...

    async def health_check(self) -> bool:
        """检查任务源可达性，不抛异常"""
        ...

    async def aclose(self) -> None:
        """释放底层连接"""
        ...

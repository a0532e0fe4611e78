"""GenerationTask Domain Model

一个外部委托任务的内存记录。状态只由 Task Poller 推进，
任何终态或显式取消后从 Session Registry 移除。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import TaskStatus, TaskType, validate_transition


class InvalidTaskTransitionError(ValueError):
    """非法的任务状态流转"""

    def __init__(self, task_id: str, from_status: TaskStatus, to_status: TaskStatus) -> None:
        self.task_id = task_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"{task_id}: {from_status} -> {to_status} is not allowed")


class GenerationTask(BaseModel):
    """GenerationTask 数据模型"""

    task_id: str = Field(description="外部任务标识（不透明）")
    user_id: str = Field(description="发起生成的用户")
    presentation_id: str | None = Field(default=None, description="关联演示文稿 ID，已知时设置")
    task_type: TaskType = Field(description="任务类型")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="当前状态")
    poll_count: int = Field(default=0, description="已发起的轮询次数")
    started_at: datetime = Field(description="开始轮询时间")
    updated_at: datetime = Field(description="最近一次状态变化时间")
    last_error: str | None = Field(default=None, description="最近一次错误信息")

    def transition(self, to_status: TaskStatus, at: datetime) -> None:
        """推进状态；同状态重复写入为 no-op"""
        if to_status == self.status:
            return
        if not validate_transition(self.status, to_status):
            raise InvalidTaskTransitionError(self.task_id, self.status, to_status)
        self.status = to_status
        self.updated_at = at

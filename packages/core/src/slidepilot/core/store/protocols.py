"""Store Protocol 接口定义

持久化是 orchestrator 写穿的外部 sink；此处仅定义 PresentationStore
的结构化接口（duck typing），实现见 presentation_store。
"""

from datetime import datetime
from typing import Protocol

from ..models.entities import Presentation, Slide, SlidePreview


class PresentationStore(Protocol):
    """演示文稿存储接口"""

    async def create_presentation(
        self,
        presentation_id: str,
        user_id: str,
        task_id: str | None,
        title: str = "",
    ) -> None:
        """创建演示文稿记录（已存在则忽略）"""
        ...

    async def get_presentation(self, presentation_id: str) -> Presentation | None:
        """查询演示文稿及其按 order_index 排序的幻灯片"""
        ...

    async def update_status(
        self,
        presentation_id: str,
        status: str,
        slides_count: int | None = None,
        updated_at: datetime | None = None,
    ) -> None:
        """更新演示文稿状态"""
        ...

    async def upsert_slide(self, presentation_id: str, preview: SlidePreview) -> None:
        """按 slide id 插入或替换幻灯片"""
        ...

    async def list_slides(self, presentation_id: str) -> list[Slide]:
        """按 order_index 返回幻灯片"""
        ...

    async def find_by_task(self, task_id: str) -> str | None:
        """根据外部任务 ID 查找演示文稿 ID"""
        ...

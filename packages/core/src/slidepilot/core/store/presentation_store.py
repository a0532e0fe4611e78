"""PresentationStore SQLite 实现

写入方只有 ArtifactWriter（事件监听器）与 GenerationService；
读取方为 GET /api/presentations/{id}，即客户端在 generation:completed
之后的二次拉取。
"""

from datetime import UTC, datetime

import aiosqlite

from ..models.entities import Presentation, Slide, SlidePreview


class SqlitePresentationStore:
    """PresentationStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_presentation(
        self,
        presentation_id: str,
        user_id: str,
        task_id: str | None,
        title: str = "",
    ) -> None:
        """创建演示文稿记录（已存在则忽略）"""
        now = datetime.now(UTC).isoformat()
        await self._conn.execute(
            """
            INSERT INTO presentations (presentation_id, user_id, task_id, title,
                                       status, slides_count, created_at, updated_at)
            VALUES (?, ?, ?, ?, 'generating', 0, ?, ?)
            ON CONFLICT(presentation_id) DO NOTHING
            """,
            (presentation_id, user_id, task_id, title, now, now),
        )
        await self._conn.commit()

    async def get_presentation(self, presentation_id: str) -> Presentation | None:
        """查询演示文稿及其幻灯片"""
        cursor = await self._conn.execute(
            "SELECT * FROM presentations WHERE presentation_id = ?",
            (presentation_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        slides = await self.list_slides(presentation_id)
        return Presentation(
            presentation_id=row["presentation_id"],
            user_id=row["user_id"],
            task_id=row["task_id"],
            title=row["title"],
            status=row["status"],
            slides_count=row["slides_count"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            slides=slides,
        )

    async def update_status(
        self,
        presentation_id: str,
        status: str,
        slides_count: int | None = None,
        updated_at: datetime | None = None,
    ) -> None:
        """更新状态；slides_count 为 None 时保持原值"""
        ts = (updated_at or datetime.now(UTC)).isoformat()
        await self._conn.execute(
            """
            UPDATE presentations
            SET status = ?, updated_at = ?,
                slides_count = COALESCE(?, slides_count)
            WHERE presentation_id = ?
            """,
            (status, ts, slides_count, presentation_id),
        )
        await self._conn.commit()

    async def upsert_slide(self, presentation_id: str, preview: SlidePreview) -> None:
        """同一演示文稿内同一 slide id 重复写入时原位替换"""
        await self._conn.execute(
            """
            INSERT INTO slides (slide_id, presentation_id, order_index, title,
                                content, layout, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(presentation_id, slide_id) DO UPDATE SET
                order_index = excluded.order_index,
                title = excluded.title,
                content = excluded.content,
                layout = excluded.layout,
                updated_at = excluded.updated_at
            """,
            (
                preview.id,
                presentation_id,
                preview.order_index,
                preview.title,
                preview.content,
                preview.layout.value,
                datetime.now(UTC).isoformat(),
            ),
        )
        await self._conn.commit()

    async def list_slides(self, presentation_id: str) -> list[Slide]:
        """按 order_index 返回幻灯片"""
        cursor = await self._conn.execute(
            "SELECT * FROM slides WHERE presentation_id = ? ORDER BY order_index, slide_id",
            (presentation_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_slide(row) for row in rows]

    async def find_by_task(self, task_id: str) -> str | None:
        """根据外部任务 ID 查找演示文稿 ID（最近创建的优先）"""
        cursor = await self._conn.execute(
            "SELECT presentation_id FROM presentations WHERE task_id = ? "
            "ORDER BY created_at DESC LIMIT 1",
            (task_id,),
        )
        row = await cursor.fetchone()
        return row["presentation_id"] if row else None

    @staticmethod
    def _row_to_slide(row: aiosqlite.Row) -> Slide:
        """将数据库行转换为 Slide 模型"""
        return Slide(
            slide_id=row["slide_id"],
            presentation_id=row["presentation_id"],
            order_index=row["order_index"],
            title=row["title"],
            content=row["content"],
            layout=row["layout"],
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

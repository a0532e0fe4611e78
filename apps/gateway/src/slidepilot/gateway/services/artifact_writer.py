"""ArtifactWriter -- EventHub 监听器，把进度事件写穿到持久化 sink

- slide:preview          -> upsert slides
- generation:completed   -> presentations.status = completed（含 slides_count）
- generation:error       -> presentations.status = failed
- generation:cancelled   -> presentations.status = cancelled

只处理已登记演示文稿的事件（topics 任务没有演示文稿记录）。
监听器在订阅队列入队前执行，客户端收到 generation:completed 时写入已提交。
"""

import structlog

from slidepilot.core.models import (
    EventType,
    GenerationCompletedPayload,
    ProgressEvent,
    SlidePreviewPayload,
)
from slidepilot.core.store.protocols import PresentationStore

log = structlog.get_logger()


class ArtifactWriter:
    """进度事件 -> 演示文稿存储"""

    def __init__(self, store: PresentationStore) -> None:
        self._store = store

    async def __call__(self, event: ProgressEvent) -> None:
        match event.type:
            case EventType.SLIDE_PREVIEW:
                await self._on_slide(event)
            case EventType.GENERATION_COMPLETED:
                await self._on_completed(event)
            case EventType.GENERATION_ERROR:
                await self._set_status(event.task_id, "failed")
            case EventType.GENERATION_CANCELLED:
                await self._set_status(event.task_id, "cancelled")
            case _:
                return

    async def _on_slide(self, event: ProgressEvent) -> None:
        payload = SlidePreviewPayload.model_validate(event.payload)
        presentation_id = payload.presentation_id or event.task_id
        if await self._store.get_presentation(presentation_id) is None:
            log.debug("slide_without_presentation", presentation_id=presentation_id)
            return
        await self._store.upsert_slide(presentation_id, payload.slide)

    async def _on_completed(self, event: ProgressEvent) -> None:
        payload = GenerationCompletedPayload.model_validate(event.payload)
        presentation = await self._store.get_presentation(payload.presentation_id)
        if presentation is None:
            log.warning(
                "completed_without_presentation",
                presentation_id=payload.presentation_id,
                task_id=event.task_id,
            )
            return
        slides_count = max(payload.slides_count, len(presentation.slides))
        await self._store.update_status(
            payload.presentation_id, "completed", slides_count=slides_count
        )
        log.info(
            "presentation_completed",
            presentation_id=payload.presentation_id,
            slides_count=slides_count,
        )

    async def _set_status(self, task_id: str, status: str) -> None:
        presentation_id = await self._store.find_by_task(task_id)
        if presentation_id is None:
            return
        await self._store.update_status(presentation_id, status)
        log.info("presentation_status_updated", presentation_id=presentation_id, status=status)

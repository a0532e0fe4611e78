"""GenerationService -- 生成请求入口

实现生成请求被接受后的流程：
1. slides 任务缺少 presentation_id 时分配一个（ULID）
2. 在外部任务源创建任务，拿到 task_id
3. slides 任务先登记演示文稿记录，供 ArtifactWriter 写穿
4. 启动该 task_id 的轮询器
"""

import structlog
from ulid import ULID

from slidepilot.core.models import TaskType
from slidepilot.core.store.protocols import PresentationStore
from slidepilot.provider import TaskSource

from .polling_service import PollingService

log = structlog.get_logger()


class GenerationService:
    """生成业务服务"""

    def __init__(
        self,
        source: TaskSource,
        polling: PollingService,
        presentations: PresentationStore,
    ) -> None:
        self._source = source
        self._polling = polling
        self._presentations = presentations

    async def create_generation(
        self,
        prompt: str,
        task_type: TaskType,
        user_id: str,
        presentation_id: str | None = None,
        title: str = "",
    ) -> tuple[str, str | None]:
        """创建外部任务并开始轮询

        Returns:
            (task_id, presentation_id)

        Raises:
            TaskSourceError: 外部任务创建失败
        """
        if task_type == TaskType.SLIDES and not presentation_id:
            presentation_id = str(ULID())

        task_id = await self._source.create_task(
            prompt, task_type, user_id, presentation_id=presentation_id
        )
        await self._start(task_id, user_id, task_type, presentation_id, title)
        log.info(
            "generation_created",
            task_id=task_id,
            user_id=user_id,
            task_type=task_type.value,
            presentation_id=presentation_id,
        )
        return task_id, presentation_id

    async def attach(
        self,
        task_id: str,
        user_id: str,
        task_type: TaskType,
        presentation_id: str | None = None,
    ) -> None:
        """为已在外部创建的任务启动轮询

        Raises:
            PollerAlreadyRegisteredError: 该任务已在轮询
        """
        await self._start(task_id, user_id, task_type, presentation_id, "")

    async def _start(
        self,
        task_id: str,
        user_id: str,
        task_type: TaskType,
        presentation_id: str | None,
        title: str,
    ) -> None:
        if task_type == TaskType.SLIDES and presentation_id:
            await self._presentations.create_presentation(
                presentation_id, user_id, task_id, title=title[:100]
            )
        await self._polling.start(
            task_id,
            user_id,
            task_type=task_type,
            presentation_id=presentation_id,
        )

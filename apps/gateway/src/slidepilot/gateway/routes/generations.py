"""生成任务路由

POST /api/generations: 在外部任务源创建任务并开始轮询。
POST /api/generations/attach: 为已存在的外部 task_id 开始轮询。
GET /api/generations: 活跃轮询器列表。
GET /api/generations/{task_id}: 活跃轮询器详情。
"""

import structlog
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from starlette.responses import JSONResponse

from slidepilot.core.models import GenerationTask, TaskType
from slidepilot.provider import TaskSourceError

from ..deps import get_generation_service, get_polling_service
from ..services.registry import PollerAlreadyRegisteredError

log = structlog.get_logger()

router = APIRouter()


class GenerationRequest(BaseModel):
    """生成请求体（prompt 已由调用方构造完成）"""

    prompt: str = Field(min_length=1, description="完整提示词")
    task_type: TaskType = Field(description="topics / slides")
    user_id: str = Field(min_length=1, description="发起用户")
    presentation_id: str | None = Field(default=None, description="关联演示文稿")
    title: str = Field(default="", description="演示文稿标题")


class AttachRequest(BaseModel):
    """为已有外部任务启动轮询"""

    task_id: str = Field(min_length=1)
    task_type: TaskType
    user_id: str = Field(min_length=1)
    presentation_id: str | None = None


class GenerationResponse(BaseModel):
    task_id: str
    presentation_id: str | None
    status: str


class GenerationSummary(BaseModel):
    """活跃轮询器摘要"""

    task_id: str
    user_id: str
    task_type: str
    presentation_id: str | None
    status: str
    poll_count: int
    started_at: str
    last_error: str | None

    @classmethod
    def from_task(cls, task: GenerationTask) -> "GenerationSummary":
        return cls(
            task_id=task.task_id,
            user_id=task.user_id,
            task_type=task.task_type.value,
            presentation_id=task.presentation_id,
            status=task.status.value,
            poll_count=task.poll_count,
            started_at=task.started_at.isoformat(),
            last_error=task.last_error,
        )


class GenerationListResponse(BaseModel):
    generations: list[GenerationSummary]
    active_count: int


def _already_running(task_id: str) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={
            "error": {
                "code": "POLLER_ALREADY_RUNNING",
                "message": f"Task {task_id} is already being polled",
            }
        },
    )


@router.post("/api/generations")
async def create_generation(
    body: GenerationRequest,
    service=Depends(get_generation_service),
):
    """创建外部任务并开始轮询

    - 201: 已创建并开始轮询
    - 502: 外部任务源不可用
    """
    try:
        task_id, presentation_id = await service.create_generation(
            body.prompt,
            body.task_type,
            body.user_id,
            presentation_id=body.presentation_id,
            title=body.title,
        )
    except TaskSourceError as e:
        log.warning("generation_create_failed", error=str(e), user_id=body.user_id)
        return JSONResponse(
            status_code=502,
            content={
                "error": {
                    "code": "TASK_SOURCE_UNAVAILABLE",
                    "message": str(e),
                }
            },
        )
    except PollerAlreadyRegisteredError as e:
        return _already_running(e.task_id)

    return JSONResponse(
        status_code=201,
        content=GenerationResponse(
            task_id=task_id,
            presentation_id=presentation_id,
            status="pending",
        ).model_dump(),
    )


@router.post("/api/generations/attach")
async def attach_generation(
    body: AttachRequest,
    service=Depends(get_generation_service),
):
    """为已在外部创建的任务开始轮询；已在轮询时返回 409"""
    try:
        await service.attach(
            body.task_id,
            body.user_id,
            body.task_type,
            presentation_id=body.presentation_id,
        )
    except PollerAlreadyRegisteredError as e:
        return _already_running(e.task_id)

    return JSONResponse(
        status_code=201,
        content=GenerationResponse(
            task_id=body.task_id,
            presentation_id=body.presentation_id,
            status="pending",
        ).model_dump(),
    )


@router.get("/api/generations", response_model=GenerationListResponse)
async def list_generations(polling=Depends(get_polling_service)):
    """活跃轮询器列表"""
    tasks = await polling.list_tasks()
    return GenerationListResponse(
        generations=[GenerationSummary.from_task(t) for t in tasks],
        active_count=len(tasks),
    )


@router.get("/api/generations/{task_id}")
async def get_generation(task_id: str, polling=Depends(get_polling_service)):
    """活跃轮询器详情；已结束或不存在返回 404"""
    task = await polling.get_task(task_id)
    if task is None:
        return JSONResponse(
            status_code=404,
            content={
                "error": {
                    "code": "GENERATION_NOT_FOUND",
                    "message": f"No active generation for task {task_id}",
                }
            },
        )
    return GenerationSummary.from_task(task)

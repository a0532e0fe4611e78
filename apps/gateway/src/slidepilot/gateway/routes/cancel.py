"""生成取消路由

POST /api/generations/{task_id}/cancel: 停止轮询并发出 generation:cancelled。
- 200: 取消成功
- 404: 该任务没有活跃轮询器
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from starlette.responses import JSONResponse

from ..deps import get_polling_service

router = APIRouter()


class CancelResponse(BaseModel):
    """取消成功响应"""

    task_id: str
    status: str


@router.post("/api/generations/{task_id}/cancel")
async def cancel_generation(
    task_id: str,
    polling=Depends(get_polling_service),
):
    """取消活跃的轮询器"""
    cancelled = await polling.cancel(task_id)
    if not cancelled:
        return JSONResponse(
            status_code=404,
            content={
                "error": {
                    "code": "GENERATION_NOT_FOUND",
                    "message": f"No active generation for task {task_id}",
                }
            },
        )

    return JSONResponse(
        status_code=200,
        content=CancelResponse(task_id=task_id, status="cancelled").model_dump(),
    )

"""演示文稿查询路由

GET /api/presentations/{presentation_id}: 最终产物（演示文稿 + 按 order_index 排序的幻灯片）。
客户端在收到 generation:completed 后调用。
"""

from fastapi import APIRouter, Depends
from starlette.responses import JSONResponse

from ..deps import get_store_group

router = APIRouter()


@router.get("/api/presentations/{presentation_id}")
async def get_presentation(presentation_id: str, store_group=Depends(get_store_group)):
    presentation = await store_group.presentation_store.get_presentation(presentation_id)
    if presentation is None:
        return JSONResponse(
            status_code=404,
            content={
                "error": {
                    "code": "PRESENTATION_NOT_FOUND",
                    "message": f"Presentation with id {presentation_id} does not exist",
                }
            },
        )
    return presentation.model_dump(mode="json")

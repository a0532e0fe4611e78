"""SSE 事件流路由

GET /api/stream/user/{user_id}: 实时推送该用户的进度事件（只推送该用户的事件）。
可选 task_id 查询参数：只推送该任务的事件，并在其终态事件（final: true）后结束流。
无事件时按 SSE_HEARTBEAT_INTERVAL 发送心跳注释保活。
事件流不持久化，也不支持重放。
"""

import asyncio
import json

from fastapi import APIRouter, Depends, Query
from sse_starlette.sse import EventSourceResponse

from slidepilot.core.config import SSE_HEARTBEAT_INTERVAL
from slidepilot.core.models import ProgressEvent

from ..deps import get_event_hub

router = APIRouter()


def event_to_sse_data(event: ProgressEvent, is_final: bool = False) -> dict:
    """将 ProgressEvent 转换为 SSE data JSON"""
    return {
        "event_id": event.event_id,
        "user_id": event.user_id,
        "task_id": event.task_id,
        "ts": event.ts.isoformat(),
        "type": event.type.value,
        "schema_version": event.schema_version,
        "payload": event.payload,
        "final": is_final,
    }


@router.get("/api/stream/user/{user_id}")
async def stream_user_events(
    user_id: str,
    task_id: str | None = Query(default=None, description="只推送该任务的事件"),
    hub=Depends(get_event_hub),
):
    """SSE 事件流端点

    1. 注册到 EventHub 监听该用户的新事件
    2. 实时推送（task_id 过滤可选）
    3. 过滤任务的终态事件携带 final: true 并结束流
    4. 心跳保活
    """

    async def event_generator():
        # 响应开始发送时才注册订阅，未迭代的响应不占用队列
        queue = await hub.subscribe(user_id)
        try:
            while True:
                try:
                    event = await asyncio.wait_for(
                        queue.get(), timeout=SSE_HEARTBEAT_INTERVAL
                    )
                except TimeoutError:
                    yield {"comment": "heartbeat"}
                    continue

                if task_id is not None and event.task_id != task_id:
                    continue
                is_final = task_id is not None and event.is_terminal
                yield {
                    "id": event.event_id,
                    "event": event.type.value,
                    "data": json.dumps(event_to_sse_data(event, is_final), ensure_ascii=False),
                }
                if is_final:
                    return
        finally:
            await hub.unsubscribe(user_id, queue)

    return EventSourceResponse(event_generator())

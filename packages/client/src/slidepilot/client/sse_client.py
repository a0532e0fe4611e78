"""EventStreamClient -- 消费网关 SSE 事件流

逐行读取 text/event-stream，只解析 data: 行；
无法解析的行记录后跳过，交给 Reconciler 的是原始 dict。
"""

import json
from collections.abc import AsyncIterator
from typing import Any

import httpx
import structlog

from .reconciler import StateReconciler

log = structlog.get_logger()


class EventStreamClient:
    """用户事件流客户端"""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def events(
        self, user_id: str, task_id: str | None = None
    ) -> AsyncIterator[dict[str, Any]]:
        """逐个产出事件 dict；task_id 过滤时在 final 事件后结束"""
        params = {"task_id": task_id} if task_id else None
        async with self._client.stream(
            "GET", f"/api/stream/user/{user_id}", params=params, timeout=None
        ) as response:
            response.raise_for_status()
            async for line in response.aiter_lines():
                if not line or not line.startswith("data:"):
                    continue
                raw = line[len("data:") :].strip()
                if not raw:
                    continue
                try:
                    data = json.loads(raw)
                except json.JSONDecodeError:
                    log.warning("sse_line_invalid", user_id=user_id, line=raw[:200])
                    continue
                if not isinstance(data, dict):
                    continue
                yield data
                if data.get("final"):
                    return

    async def pump(
        self,
        user_id: str,
        reconciler: StateReconciler,
        task_id: str | None = None,
    ) -> int:
        """把事件流逐个交给 Reconciler，返回已读取的事件数"""
        count = 0
        async for data in self.events(user_id, task_id=task_id):
            await reconciler.apply(data)
            count += 1
        log.info("event_stream_closed", user_id=user_id, task_id=task_id, events=count)
        return count

"""SSE 事件流测试

测试内容：
1. 只推送该用户的事件
2. task_id 过滤：终态事件携带 final: true 后结束流
3. 数据格式
"""

import asyncio
import json
from datetime import UTC, datetime

from httpx import AsyncClient
from slidepilot.core.models import EventType, ProgressEvent
from slidepilot.gateway.routes.stream import event_to_sse_data, stream_user_events
from slidepilot.gateway.services.event_hub import EventHub
from sse_starlette.sse import EventSourceResponse
from ulid import ULID


def _event(user_id: str, task_id: str, event_type: EventType, payload: dict) -> ProgressEvent:
    return ProgressEvent(
        event_id=str(ULID()),
        user_id=user_id,
        task_id=task_id,
        type=event_type,
        ts=datetime.now(UTC),
        payload=payload,
    )


async def _publish_when_subscribed(hub, user_id: str, events: list[ProgressEvent]) -> None:
    while hub.subscriber_count(user_id) == 0:
        await asyncio.sleep(0.001)
    for event in events:
        await hub.publish(event)


async def _read_stream(client: AsyncClient, url: str) -> list[dict]:
    received = []
    async with client.stream("GET", url) as response:
        assert response.status_code == 200
        async for line in response.aiter_lines():
            if line.startswith("data:"):
                received.append(json.loads(line[len("data:") :].strip()))
    return received


class TestUserStream:
    """GET /api/stream/user/{user_id}"""

    async def test_filtered_stream_ends_after_terminal_event(
        self, client: AsyncClient, test_app
    ):
        hub = test_app.state.event_hub
        events = [
            _event("user-a", "other-task", EventType.GENERATION_PROGRESS, {"progress": 5}),
            _event("user-b", "task-1", EventType.GENERATION_PROGRESS, {"progress": 6}),
            _event("user-a", "task-1", EventType.GENERATION_PROGRESS, {"progress": 50}),
            _event(
                "user-a",
                "task-1",
                EventType.GENERATION_ERROR,
                {"error": "Task timeout", "reason": "timeout"},
            ),
        ]
        publisher = asyncio.create_task(_publish_when_subscribed(hub, "user-a", events))

        received = await asyncio.wait_for(
            _read_stream(client, "/api/stream/user/user-a?task_id=task-1"), timeout=5.0
        )
        await publisher

        assert [r["type"] for r in received] == ["generation:progress", "generation:error"]
        assert {r["user_id"] for r in received} == {"user-a"}
        assert received[0]["final"] is False
        assert received[1]["final"] is True
        assert received[1]["payload"]["reason"] == "timeout"
        # 流结束后订阅被清理
        assert hub.subscriber_count("user-a") == 0

    async def test_event_to_sse_data_shape(self):
        event = _event("user-a", "task-1", EventType.SLIDE_PREVIEW, {"slide": {"id": "s"}})
        data = event_to_sse_data(event)
        assert set(data) == {
            "event_id",
            "user_id",
            "task_id",
            "ts",
            "type",
            "schema_version",
            "payload",
            "final",
        }
        assert data["type"] == "slide:preview"
        assert data["final"] is False
        assert ProgressEvent.model_validate(data) == event

    async def test_unstarted_response_holds_no_subscription(self):
        """响应未被发送时不注册订阅"""
        hub = EventHub()
        response = await stream_user_events("user-a", task_id=None, hub=hub)

        assert isinstance(response, EventSourceResponse)
        assert hub.subscriber_count("user-a") == 0

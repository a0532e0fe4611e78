"""apps/gateway 测试配置 -- 脚本任务源 + 可记录的 sleep + FastAPI AsyncClient"""

import asyncio
from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from pathlib import Path

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from slidepilot.core.models import GenerationTask, ProgressEvent, TaskType
from slidepilot.core.store import create_store_group
from slidepilot.gateway.services.artifact_writer import ArtifactWriter
from slidepilot.gateway.services.event_hub import EventHub
from slidepilot.gateway.services.generation_service import GenerationService
from slidepilot.gateway.services.polling_service import PollingService
from slidepilot.gateway.services.registry import PollerRegistry
from slidepilot.provider import ScriptedTaskSource


class RecordingSleep:
    """替代 asyncio.sleep：记录延迟但不真正等待"""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


class EventCollector:
    """EventHub 监听器：按发布顺序收集所有事件"""

    def __init__(self) -> None:
        self.events: list[ProgressEvent] = []

    async def __call__(self, event: ProgressEvent) -> None:
        self.events.append(event)

    def types(self) -> list[str]:
        return [event.type.value for event in self.events]


def make_task(
    task_id: str = "task-1",
    user_id: str = "user-a",
    task_type: TaskType = TaskType.SLIDES,
    presentation_id: str | None = None,
) -> GenerationTask:
    now = datetime.now(UTC)
    return GenerationTask(
        task_id=task_id,
        user_id=user_id,
        presentation_id=presentation_id,
        task_type=task_type,
        started_at=now,
        updated_at=now,
    )


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def source() -> ScriptedTaskSource:
    return ScriptedTaskSource()


@pytest.fixture
def collector() -> EventCollector:
    return EventCollector()


@pytest.fixture
def hub(collector: EventCollector) -> EventHub:
    event_hub = EventHub()
    event_hub.add_listener(collector)
    return event_hub


@pytest.fixture
def polling_service(
    source: ScriptedTaskSource, hub: EventHub, recording_sleep: RecordingSleep
) -> PollingService:
    return PollingService(source, hub, PollerRegistry(), sleep=recording_sleep)


@pytest.fixture
def api_polling_service(source: ScriptedTaskSource, hub: EventHub) -> PollingService:
    """HTTP 测试用：真实可中断 sleep，间隔很短"""
    return PollingService(source, hub, PollerRegistry(), interval_s=0.01)


@pytest_asyncio.fixture
async def test_app(
    tmp_path: Path,
    source: ScriptedTaskSource,
    hub: EventHub,
    api_polling_service: PollingService,
) -> AsyncGenerator[FastAPI, None]:
    """完整路由的 app；state 手动装配（ASGITransport 不触发 lifespan）"""
    from slidepilot.gateway.main import create_app

    polling_service = api_polling_service

    app = create_app()
    store_group = await create_store_group(str(tmp_path / "test.db"))
    hub.add_listener(ArtifactWriter(store_group.presentation_store))

    app.state.store_group = store_group
    app.state.event_hub = hub
    app.state.task_source = source
    app.state.polling_service = polling_service
    app.state.generation_service = GenerationService(
        source, polling_service, store_group.presentation_store
    )

    yield app

    await polling_service.shutdown(grace_s=1)
    await store_group.conn.close()


@pytest_asyncio.fixture
async def client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def task_factory():
    """GenerationTask 工厂"""
    return make_task


@pytest.fixture(autouse=True)
def _reset_sse_app_status():
    """sse-starlette 的退出事件是进程级的，每个测试使用新的事件循环时需重置"""
    import sse_starlette.sse as sse_module

    app_status = getattr(sse_module, "AppStatus", None)
    if app_status is not None and hasattr(app_status, "should_exit_event"):
        app_status.should_exit_event = None
    yield

"""集成测试配置 -- 轮询服务 -> EventHub -> StateReconciler 的进程内链路"""

import asyncio
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from slidepilot.client import ArtifactUnavailableError, SlidesStore, StateReconciler
from slidepilot.core.models import Presentation, ProgressEvent
from slidepilot.core.store import create_store_group
from slidepilot.gateway.services.artifact_writer import ArtifactWriter
from slidepilot.gateway.services.event_hub import EventHub
from slidepilot.gateway.services.generation_service import GenerationService
from slidepilot.gateway.services.polling_service import PollingService
from slidepilot.gateway.services.registry import PollerRegistry
from slidepilot.provider import ScriptedTaskSource


class InstantSleep:
    """记录延迟、立即让出事件循环"""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


class NoArtifacts:
    """进程内链路不经过 HTTP：slides 产物一律不可用"""

    async def fetch(self, presentation_id: str) -> Presentation:
        raise ArtifactUnavailableError(presentation_id, "not served")


class EventLog:
    def __init__(self) -> None:
        self.events: list[ProgressEvent] = []

    async def __call__(self, event: ProgressEvent) -> None:
        self.events.append(event)


@pytest.fixture
def source() -> ScriptedTaskSource:
    return ScriptedTaskSource()


@pytest.fixture
def store() -> SlidesStore:
    return SlidesStore()


@pytest.fixture
def event_log() -> EventLog:
    return EventLog()


@pytest.fixture
def pipeline(source: ScriptedTaskSource, store: SlidesStore, event_log: EventLog):
    """PollingService 发布的事件同步应用到 SlidesStore"""
    hub = EventHub()
    reconciler = StateReconciler("user-a", store, NoArtifacts())
    hub.add_listener(event_log)
    hub.add_listener(reconciler.apply)
    service = PollingService(source, hub, PollerRegistry(), sleep=InstantSleep())
    return service, reconciler


@pytest_asyncio.fixture
async def gateway(tmp_path: Path, source: ScriptedTaskSource) -> AsyncGenerator[FastAPI, None]:
    """完整网关；state 手动装配（ASGITransport 不触发 lifespan）"""
    from slidepilot.gateway.main import create_app

    app = create_app()
    store_group = await create_store_group(str(tmp_path / "integration.db"))
    hub = EventHub()
    hub.add_listener(ArtifactWriter(store_group.presentation_store))
    polling_service = PollingService(source, hub, PollerRegistry(), interval_s=0.01)

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
async def http(gateway: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=gateway), base_url="http://test") as ac:
        yield ac


@pytest.fixture(autouse=True)
def _reset_sse_app_status():
    """sse-starlette 的退出事件是进程级的，每个测试使用新的事件循环时需重置"""
    import sse_starlette.sse as sse_module

    app_status = getattr(sse_module, "AppStatus", None)
    if app_status is not None and hasattr(app_status, "should_exit_event"):
        app_status.should_exit_event = None
    yield

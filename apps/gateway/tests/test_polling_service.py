"""PollingService 测试 -- 启动 / 重复启动 / 取消 / 注销 / 异常 / 关闭"""

import asyncio

import pytest
from slidepilot.core.models import EventType, TaskStatus, TaskType
from slidepilot.gateway.services.event_hub import EventHub
from slidepilot.gateway.services.polling_service import PollingService
from slidepilot.gateway.services.registry import PollerAlreadyRegisteredError, PollerRegistry
from slidepilot.provider import RawTaskStatus, ScriptedTaskSource


class TestStart:
    async def test_runs_to_completion_and_unregisters(self, polling_service, source, collector):
        source.script("t1", [{"status": "running"}, {"status": "completed"}])
        await polling_service.start("t1", "user-a", task_type=TaskType.SLIDES)
        assert polling_service.active_count() == 1

        await polling_service.wait("t1")

        assert polling_service.active_count() == 0
        assert collector.types() == ["generation:completed"]

    async def test_duplicate_start_rejected_without_polling(self, polling_service, source):
        source.script("t1", [{"status": "running"}])
        await polling_service.start("t1", "user-a")

        with pytest.raises(PollerAlreadyRegisteredError):
            await polling_service.start("t1", "user-a")

        assert polling_service.active_count() == 1
        await polling_service.cancel("t1")
        await polling_service.wait()

    async def test_returns_stop_handle(self, polling_service, source, collector):
        source.script("t1", [{"status": "running"}])
        stop = await polling_service.start("t1", "user-a")
        stop()
        await polling_service.wait("t1")

        assert polling_service.active_count() == 0
        # stop 句柄不发出 generation:cancelled
        assert EventType.GENERATION_CANCELLED not in {e.type for e in collector.events}


class TestCancel:
    async def test_cancel_emits_single_cancelled_event(self, polling_service, source, collector):
        source.script("t1", [{"status": "running"}])
        await polling_service.start("t1", "user-a")
        await asyncio.sleep(0)

        assert await polling_service.cancel("t1") is True
        await polling_service.wait()

        cancelled = [e for e in collector.events if e.type == EventType.GENERATION_CANCELLED]
        assert len(cancelled) == 1
        assert cancelled[0].payload == {"reason": "cancelled by user"}
        terminal = [e for e in collector.events if e.is_terminal]
        assert terminal == cancelled
        assert polling_service.active_count() == 0

    async def test_cancel_unknown(self, polling_service):
        assert await polling_service.cancel("missing") is False

    async def test_cancel_twice(self, polling_service, source):
        source.script("t1", [{"status": "running"}])
        await polling_service.start("t1", "user-a")
        assert await polling_service.cancel("t1") is True
        assert await polling_service.cancel("t1") is False
        await polling_service.wait()

    async def test_restart_after_cancel(self, polling_service, source):
        source.script("t1", [{"status": "running"}])
        await polling_service.start("t1", "user-a")
        await polling_service.cancel("t1")
        await polling_service.start("t1", "user-a")
        assert polling_service.active_count() == 1
        await polling_service.cancel("t1")
        await polling_service.wait()
        assert polling_service.active_count() == 0


class _ExplodingSource(ScriptedTaskSource):
    async def get_status(self, task_id: str) -> RawTaskStatus:
        raise RuntimeError("decoder bug")


class TestCrash:
    async def test_unexpected_error_surfaces_as_generation_error(self, collector, recording_sleep):
        hub = EventHub()
        hub.add_listener(collector)
        service = PollingService(_ExplodingSource(), hub, PollerRegistry(), sleep=recording_sleep)

        await service.start("t1", "user-a")
        await service.wait("t1")

        assert collector.types() == ["generation:error"]
        assert collector.events[0].payload == {"error": "Polling failed", "reason": "source_error"}
        assert service.active_count() == 0


class TestShutdown:
    async def test_shutdown_stops_all_pollers(self, source, hub):
        # 真实（可中断）sleep，间隔很长
        service = PollingService(source, hub, PollerRegistry(), interval_s=30.0)
        for task_id in ("t1", "t2", "t3"):
            source.script(task_id, [{"status": "running"}])
            await service.start(task_id, "user-a")

        await asyncio.wait_for(service.shutdown(grace_s=2.0), timeout=5.0)

        assert service.active_count() == 0
        assert await service.list_tasks() == []

    async def test_get_task_exposes_live_status(self, polling_service, source):
        source.script("t1", [{"status": "running"}])
        await polling_service.start("t1", "user-a", presentation_id="pres-1")
        task = await polling_service.get_task("t1")
        assert task.presentation_id == "pres-1"
        assert task.status in (TaskStatus.PENDING, TaskStatus.RUNNING)
        await polling_service.cancel("t1")
        await polling_service.wait()
        assert await polling_service.get_task("t1") is None

"""PollerRegistry 测试 -- 单轮询器不变量"""

import asyncio

import pytest
from slidepilot.gateway.services.registry import PollerAlreadyRegisteredError, PollerRegistry


class _Stop:
    def __init__(self) -> None:
        self.called = 0

    def __call__(self) -> None:
        self.called += 1


class TestPollerRegistry:
    async def test_duplicate_register_rejected(self, task_factory):
        registry = PollerRegistry()
        first_stop, second_stop = _Stop(), _Stop()
        await registry.register(task_factory("t1"), first_stop)

        with pytest.raises(PollerAlreadyRegisteredError) as exc_info:
            await registry.register(task_factory("t1"), second_stop)

        assert exc_info.value.task_id == "t1"
        assert registry.active_count() == 1
        handle = await registry.get("t1")
        assert handle.stop is first_stop

    async def test_concurrent_register_only_one_wins(self, task_factory):
        registry = PollerRegistry()
        results = await asyncio.gather(
            *(registry.register(task_factory("t1"), _Stop()) for _ in range(10)),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, PollerAlreadyRegisteredError)]
        assert len(errors) == 9
        assert registry.active_count() == 1

    async def test_cancel_calls_stop_and_removes(self, task_factory):
        registry = PollerRegistry()
        stop = _Stop()
        await registry.register(task_factory("t1"), stop)

        handle = await registry.cancel("t1")

        assert handle is not None
        assert stop.called == 1
        assert registry.active_count() == 0
        assert await registry.cancel("t1") is None

    async def test_register_after_cancel(self, task_factory):
        registry = PollerRegistry()
        await registry.register(task_factory("t1"), _Stop())
        await registry.cancel("t1")
        await registry.register(task_factory("t1"), _Stop())
        assert registry.active_count() == 1

    async def test_cancel_all(self, task_factory):
        registry = PollerRegistry()
        stops = [_Stop() for _ in range(3)]
        for i, stop in enumerate(stops):
            await registry.register(task_factory(f"t{i}"), stop)

        handles = await registry.cancel_all()

        assert len(handles) == 3
        assert all(stop.called == 1 for stop in stops)
        assert registry.active_count() == 0

    async def test_unregister_only_matching_handle(self, task_factory):
        """旧轮询器退出时不能移除同 task_id 的新注册项"""
        registry = PollerRegistry()
        old_stop, new_stop = _Stop(), _Stop()
        await registry.register(task_factory("t1"), old_stop)
        await registry.cancel("t1")
        await registry.register(task_factory("t1"), new_stop)

        assert await registry.unregister("t1", old_stop) is False
        assert registry.active_count() == 1
        assert await registry.unregister("t1", new_stop) is True
        assert registry.active_count() == 0

    async def test_list_tasks(self, task_factory):
        registry = PollerRegistry()
        await registry.register(task_factory("t1"), _Stop())
        await registry.register(task_factory("t2"), _Stop())
        assert {task.task_id for task in await registry.list_tasks()} == {"t1", "t2"}

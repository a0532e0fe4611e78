"""TaskPoller 测试 -- 退避上限、次数上限、取消、终态事件

sleep 通过 RecordingSleep 注入：延迟被记录但不真正等待，时序完全确定。
"""

import asyncio
import json

import pytest
from slidepilot.core.models import (
    EventType,
    GenerationErrorReason,
    TaskStatus,
    TaskType,
)
from slidepilot.gateway.services.poller import TaskPoller, backoff_delay
from slidepilot.provider import RawTaskStatus, ScriptedTaskSource

TOPICS = [f"Topic {i}" for i in range(1, 11)]


def _poller(task, source, hub, sleep, **kwargs) -> TaskPoller:
    return TaskPoller(task, source, hub, interval_s=2.0, backoff_cap_s=10.0, sleep=sleep, **kwargs)


class TestBackoff:
    """指数退避不超过上限"""

    def test_delay_sequence(self):
        assert [backoff_delay(2.0, n, 10.0) for n in range(5)] == [2.0, 4.0, 8.0, 10.0, 10.0]

    @pytest.mark.parametrize("failures", [3, 5, 50, 500, 1024, 5000, 10**6])
    def test_never_exceeds_cap(self, failures):
        assert backoff_delay(2.0, failures, 10.0) == 10.0

    async def test_long_failure_run_keeps_backing_off(
        self, task_factory, source, hub, recording_sleep, collector
    ):
        """连续失败超过一千次仍按上限退避，最终以超时结束而不是崩溃"""
        task = task_factory()
        source.script(task.task_id, [{"status": "running"}])
        source.fail_next(task.task_id, 1500)
        poller = _poller(task, source, hub, recording_sleep, max_attempts=1500)

        await poller.run()

        assert len(recording_sleep.delays) == 1499
        assert recording_sleep.delays[-1] == 10.0
        assert collector.types() == ["generation:error"]
        assert collector.events[0].payload == {"error": "Polling failed", "reason": "timeout"}
        assert task.status == TaskStatus.TIMEOUT

    async def test_repeated_failures_respect_cap(
        self, task_factory, source, hub, recording_sleep, collector
    ):
        task = task_factory()
        source.script(task.task_id, [{"status": "running"}])
        source.fail_next(task.task_id, 20)
        poller = _poller(task, source, hub, recording_sleep, max_attempts=21)

        await poller.run()

        assert max(recording_sleep.delays) == 10.0
        assert all(delay <= 10.0 for delay in recording_sleep.delays)
        assert recording_sleep.delays[:3] == [4.0, 8.0, 10.0]
        # 失败后恢复，第 21 次成功后达到上限超时
        assert collector.types() == ["generation:error"]
        assert task.status == TaskStatus.TIMEOUT

    async def test_success_resets_backoff(self, task_factory, source, hub, recording_sleep):
        task = task_factory()
        source.script(task.task_id, [{"status": "running"}])
        source.fail_next(task.task_id, 3)
        poller = _poller(task, source, hub, recording_sleep, max_attempts=6)

        await poller.run()

        assert recording_sleep.delays == [4.0, 8.0, 10.0, 2.0, 2.0]


class TestCeiling:
    """次数上限：确定性终止，且只发出一次超时事件"""

    async def test_never_leaves_running(self, task_factory, source, hub, recording_sleep, collector):
        task = task_factory(task_type=TaskType.SLIDES)
        source.script(task.task_id, [{"status": "running"}])
        poller = _poller(task, source, hub, recording_sleep, max_attempts=300)

        status = await poller.run()

        assert status == TaskStatus.TIMEOUT
        assert source.calls[task.task_id] == 300
        assert task.poll_count == 300
        errors = [e for e in collector.events if e.type == EventType.GENERATION_ERROR]
        assert len(errors) == 1
        assert errors[0].payload == {"error": "Task timeout", "reason": "timeout"}

    async def test_fetch_failures_until_ceiling(
        self, task_factory, source, hub, recording_sleep, collector
    ):
        task = task_factory()
        source.script(task.task_id, [{"status": "running"}])
        source.fail_next(task.task_id, 100)
        poller = _poller(task, source, hub, recording_sleep, max_attempts=5)

        await poller.run()

        assert source.calls[task.task_id] == 5
        assert len(collector.events) == 1
        assert collector.events[0].payload == {"error": "Polling failed", "reason": "timeout"}


class TestTerminalOutcomes:
    async def test_topics_completed(self, task_factory, source, hub, recording_sleep, collector):
        task = task_factory(task_type=TaskType.TOPICS)
        fenced = "```json\n" + json.dumps(TOPICS) + "\n```"
        source.script(
            task.task_id,
            [
                {"status": "running", "thinking_steps": [{"id": "s1", "status": "running"}]},
                {
                    "status": "completed",
                    "thinking_steps": [{"id": "s1", "status": "completed"}],
                    "output": fenced,
                },
            ],
        )
        status = await _poller(task, source, hub, recording_sleep).run()

        assert status == TaskStatus.COMPLETED
        assert collector.types() == ["thinking:step", "thinking:step", "topics:generated"]
        topics_event = collector.events[-1]
        assert topics_event.payload["topics"] == TOPICS
        assert topics_event.payload["message_id"] == f"topics-{task.task_id}"

    async def test_topics_extraction_failure_is_flagged(
        self, task_factory, source, hub, recording_sleep, collector
    ):
        task = task_factory(task_type=TaskType.TOPICS)
        source.script(task.task_id, [{"status": "completed", "output": "just one line"}])
        status = await _poller(task, source, hub, recording_sleep).run()

        assert status == TaskStatus.FAILED
        assert collector.events[-1].payload["reason"] == GenerationErrorReason.EXTRACTION_FAILED

    async def test_slides_completed_with_count(
        self, task_factory, source, hub, recording_sleep, collector
    ):
        task = task_factory(presentation_id="pres-1")
        slides = [{"id": f"sl{i}", "order_index": i, "title": f"S{i}"} for i in range(4)]
        source.script(task.task_id, [{"status": "completed", "slides": slides}])
        await _poller(task, source, hub, recording_sleep).run()

        assert collector.types() == ["slide:preview"] * 4 + ["generation:completed"]
        assert collector.events[-1].payload == {"presentation_id": "pres-1", "slides_count": 4}

    async def test_failed_with_external_message(
        self, task_factory, source, hub, recording_sleep, collector
    ):
        task = task_factory()
        source.script(
            task.task_id,
            [{"status": "running"}, {"status": "failed", "error": "Out of credits"}],
        )
        status = await _poller(task, source, hub, recording_sleep).run()

        assert status == TaskStatus.FAILED
        assert collector.events[-1].payload == {"error": "Out of credits", "reason": "task_failed"}
        assert recording_sleep.delays == [2.0]

    async def test_failed_generic_message(
        self, task_factory, source, hub, recording_sleep, collector
    ):
        task = task_factory()
        source.script(task.task_id, [{"status": "failed"}])
        await _poller(task, source, hub, recording_sleep).run()
        assert collector.events[-1].payload["error"] == "Task execution failed"

    async def test_events_addressed_to_task_owner(
        self, task_factory, source, hub, recording_sleep, collector
    ):
        task = task_factory(user_id="user-z")
        source.script(task.task_id, [{"status": "failed"}])
        await _poller(task, source, hub, recording_sleep).run()
        assert {event.user_id for event in collector.events} == {"user-z"}
        assert {event.task_id for event in collector.events} == {task.task_id}


class _GatedSource(ScriptedTaskSource):
    """get_status 在 gate 打开前阻塞，用于模拟进行中的请求"""

    def __init__(self) -> None:
        super().__init__()
        self.entered = asyncio.Event()
        self.gate = asyncio.Event()

    async def get_status(self, task_id: str) -> RawTaskStatus:
        self.entered.set()
        await self.gate.wait()
        return await super().get_status(task_id)


class TestCancellation:
    """协作式取消：进行中的请求允许完成，但结果被丢弃"""

    async def test_in_flight_result_discarded(self, task_factory, hub, recording_sleep, collector):
        source = _GatedSource()
        task = task_factory()
        source.script(task.task_id, [{"status": "completed", "slides": [{"id": "x"}]}])
        poller = _poller(task, source, hub, recording_sleep)

        runner = asyncio.create_task(poller.run())
        await source.entered.wait()
        poller.stop()
        source.gate.set()
        await runner

        assert collector.events == []
        assert task.status == TaskStatus.PENDING

    async def test_stop_before_start(self, task_factory, source, hub, recording_sleep):
        task = task_factory()
        source.script(task.task_id, [{"status": "running"}])
        poller = _poller(task, source, hub, recording_sleep)
        poller.stop()
        await poller.run()
        assert source.calls == {}

    async def test_stop_interrupts_real_sleep(self, task_factory, source, hub):
        task = task_factory()
        source.script(task.task_id, [{"status": "running"}])
        poller = TaskPoller(task, source, hub, interval_s=60.0)

        runner = asyncio.create_task(poller.run())
        while source.calls.get(task.task_id, 0) < 1:
            await asyncio.sleep(0)
        poller.stop()
        await asyncio.wait_for(runner, timeout=2.0)
        assert source.calls[task.task_id] == 1

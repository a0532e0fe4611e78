"""EventHub -- 按用户寻址的内存事件传输层

每个订阅者持有一个 asyncio.Queue；事件只投递给 event.user_id
对应的订阅者，不同用户之间不会串流。投递为尽力而为：
订阅者队列已满时丢弃该订阅者并记录告警。

监听器（listener）在入队之前被依次 await，用于写穿持久化 sink，
保证客户端收到 generation:completed 时产物已提交。
"""

import asyncio
from collections import defaultdict
from collections.abc import Awaitable, Callable

import structlog

from slidepilot.core.config import EVENT_QUEUE_MAXSIZE
from slidepilot.core.models import ProgressEvent

log = structlog.get_logger()

EventListener = Callable[[ProgressEvent], Awaitable[None]]


class EventHub:
    """进度事件发布/订阅 -- 基于 asyncio.Queue，按 user_id 分区"""

    def __init__(self, queue_maxsize: int = EVENT_QUEUE_MAXSIZE) -> None:
        # user_id -> set of asyncio.Queue
        self._subscribers: dict[str, set[asyncio.Queue]] = defaultdict(set)
        self._listeners: list[EventListener] = []
        self._queue_maxsize = queue_maxsize

    async def subscribe(self, user_id: str) -> asyncio.Queue:
        """订阅指定用户的事件流

        Returns:
            asyncio.Queue 实例，新事件会被推送到此队列
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_maxsize)
        self._subscribers[user_id].add(queue)
        log.debug("event_hub_subscribed", user_id=user_id)
        return queue

    async def unsubscribe(self, user_id: str, queue: asyncio.Queue) -> None:
        """取消订阅"""
        queues = self._subscribers.get(user_id)
        if queues is None:
            return
        queues.discard(queue)
        if not queues:
            del self._subscribers[user_id]

    def add_listener(self, listener: EventListener) -> None:
        """注册进程内监听器（所有用户的事件都会经过）"""
        self._listeners.append(listener)

    def subscriber_count(self, user_id: str | None = None) -> int:
        if user_id is not None:
            return len(self._subscribers.get(user_id, ()))
        return sum(len(queues) for queues in self._subscribers.values())

    async def publish(self, event: ProgressEvent) -> None:
        """发布事件：先执行监听器，再投递到该用户的所有订阅队列"""
        for listener in self._listeners:
            try:
                await listener(event)
            except Exception as e:
                # 监听器失败不影响事件投递
                log.error(
                    "event_listener_failed",
                    event_type=event.type.value,
                    task_id=event.task_id,
                    error=str(e),
                    error_type=type(e).__name__,
                )

        dead_queues = []
        for queue in self._subscribers.get(event.user_id, set()):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                dead_queues.append(queue)

        # 清理已满的队列
        for q in dead_queues:
            log.warning(
                "event_subscriber_dropped",
                user_id=event.user_id,
                task_id=event.task_id,
                reason="queue_full",
            )
            await self.unsubscribe(event.user_id, q)

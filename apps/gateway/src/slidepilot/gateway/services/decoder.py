"""StatusDecoder -- 把原始任务状态解码为去重后的类型化事件

每个轮询循环持有一个私有的 StatusDecoder，不与其他循环共享。
去重键为 (kind, id, status)：同一条目跨多次轮询不变时只发出一次事件；
去重键集合有容量上限，超出时淘汰最旧的键。
单个条目校验失败时记录日志并跳过，不影响同批其他条目。
"""

import hashlib
from collections import OrderedDict
from collections.abc import Hashable
from datetime import UTC, datetime
from typing import Any

import structlog
from pydantic import BaseModel, ValidationError

from slidepilot.core.config import DEDUP_KEY_LIMIT
from slidepilot.core.models import (
    AgentActionUpdatePayload,
    AgentStatus,
    AgentStatusChangePayload,
    AgentType,
    EventType,
    GenerationProgressPayload,
    GenerationTask,
    SlidePreview,
    SlidePreviewPayload,
    ThinkingStep,
    ThinkingStepPayload,
    ThinkingStepStatus,
    ToolAction,
    ToolEventPayload,
    ToolStatus,
    ToolType,
)
from slidepilot.provider import (
    RawAgentUpdate,
    RawSlide,
    RawTaskStatus,
    RawThinkingStep,
    RawToolCall,
)

log = structlog.get_logger()

DecodedEvent = tuple[EventType, BaseModel]

# 子串 -> 归一化类别，按顺序匹配
_TOOL_KEYWORDS: list[tuple[tuple[str, ...], ToolType]] = [
    (("search", "google"), ToolType.SEARCH),
    (("browse", "web", "http"), ToolType.BROWSE),
    (("python", "code"), ToolType.PYTHON),
    (("bash", "shell", "terminal"), ToolType.BASH),
    (("file", "read", "write"), ToolType.FILE),
]

# 外部工具状态 -> (事件类型, 归一化状态)；pending 与 running 都视为已开始
_TOOL_TRANSITIONS: dict[str, tuple[EventType, ToolStatus]] = {
    "pending": (EventType.TOOL_STARTED, ToolStatus.RUNNING),
    "running": (EventType.TOOL_STARTED, ToolStatus.RUNNING),
    "completed": (EventType.TOOL_COMPLETED, ToolStatus.COMPLETED),
    "failed": (EventType.TOOL_FAILED, ToolStatus.FAILED),
}


def map_tool_type(name: str) -> str:
    """按子串（大小写不敏感）归一化工具名；未匹配时保留小写原名"""
    lowered = name.strip().lower()
    for keywords, tool_type in _TOOL_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return tool_type.value
    return lowered


def parse_timestamp(value: Any) -> datetime | None:
    """解析 ISO 字符串或 epoch（秒/毫秒）时间戳；无法解析返回 None"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        seconds = value / 1000 if value > 1e12 else value
        try:
            return datetime.fromtimestamp(seconds, UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return None


def duration_ms(started: datetime | None, ended: datetime | None) -> int | None:
    """completed_at - created_at（毫秒）；任一缺失或结果为负时返回 None"""
    if started is None or ended is None:
        return None
    delta = int((ended - started).total_seconds() * 1000)
    return delta if delta >= 0 else None


def clamp_progress(value: float) -> int:
    return max(0, min(100, int(round(value))))


class StatusDecoder:
    """单个任务的原始状态解码器（非线程安全，仅由所属轮询循环使用）"""

    def __init__(self, task: GenerationTask, key_limit: int = DEDUP_KEY_LIMIT) -> None:
        self._task = task
        self._key_limit = key_limit
        self._seen: OrderedDict[Hashable, None] = OrderedDict()
        self._last_progress: int | None = None

    @property
    def seen_count(self) -> int:
        return len(self._seen)

    def decode(self, raw: RawTaskStatus) -> list[DecodedEvent]:
        """解码一次轮询结果，只返回此前未发出过的状态"""
        events: list[DecodedEvent] = []
        events.extend(self._decode_items(raw.thinking_steps, "thinking_step", self._step))
        events.extend(self._decode_items(raw.tool_calls, "tool_call", self._tool))
        events.extend(self._decode_items(raw.slides, "slide", self._slide))
        events.extend(self._decode_items(raw.agents, "agent", self._agent))

        if raw.progress is not None:
            progress = clamp_progress(raw.progress)
            if progress != self._last_progress:
                self._last_progress = progress
                events.append(
                    (EventType.GENERATION_PROGRESS, GenerationProgressPayload(progress=progress))
                )
        return events

    def _decode_items(self, items: list[Any], kind: str, decode_one) -> list[DecodedEvent]:
        events: list[DecodedEvent] = []
        for index, item in enumerate(items):
            try:
                events.extend(decode_one(item))
            except (ValidationError, ValueError) as e:
                log.warning(
                    "raw_item_skipped",
                    task_id=self._task.task_id,
                    kind=kind,
                    index=index,
                    error=str(e).splitlines()[0],
                )
        return events

    def _mark(self, key: Hashable) -> bool:
        """记录去重键；已见过返回 False"""
        if key in self._seen:
            return False
        self._seen[key] = None
        while len(self._seen) > self._key_limit:
            self._seen.popitem(last=False)
        return True

    def _step(self, item: Any) -> list[DecodedEvent]:
        raw = RawThinkingStep.model_validate(item)
        status = ThinkingStepStatus(raw.status)
        if not self._mark(("step", raw.id, status)):
            return []
        step = ThinkingStep(
            id=raw.id,
            title=raw.description or raw.title or "Processing...",
            status=status,
            description=raw.description,
            actions=raw.actions,
            result=raw.result,
            started_at=parse_timestamp(raw.started_at),
            completed_at=parse_timestamp(raw.completed_at),
        )
        payload = ThinkingStepPayload(message_id=f"thinking-{self._task.task_id}", step=step)
        return [(EventType.THINKING_STEP, payload)]

    def _tool(self, item: Any) -> list[DecodedEvent]:
        raw = RawToolCall.model_validate(item)
        transition = _TOOL_TRANSITIONS.get(raw.status)
        if transition is None:
            raise ValueError(f"unknown tool status: {raw.status!r}")
        event_type, status = transition
        if not self._mark(("tool", raw.id, status)):
            return []

        created_at = parse_timestamp(raw.created_at)
        tool = ToolAction(
            id=raw.id,
            type=map_tool_type(raw.name),
            status=status,
            input=raw.input_text,
            timestamp=created_at or datetime.now(UTC),
        )
        if status == ToolStatus.COMPLETED:
            tool.result = raw.result_text
            tool.duration_ms = duration_ms(created_at, parse_timestamp(raw.completed_at))
        elif status == ToolStatus.FAILED:
            tool.error = raw.error or "Tool execution failed"

        payload = ToolEventPayload(message_id=f"tool-{raw.id}", tool=tool)
        return [(event_type, payload)]

    def _slide(self, item: Any) -> list[DecodedEvent]:
        raw = RawSlide.model_validate(item)
        slide = SlidePreview(
            id=raw.id,
            order_index=raw.order_index,
            title=raw.title,
            content=raw.content,
            layout=raw.layout,
        )
        digest = hashlib.sha256(slide.model_dump_json().encode()).hexdigest()
        if not self._mark(("slide", raw.id, digest)):
            return []
        payload = SlidePreviewPayload(presentation_id=self._task.presentation_id, slide=slide)
        return [(EventType.SLIDE_PREVIEW, payload)]

    def _agent(self, item: Any) -> list[DecodedEvent]:
        raw = RawAgentUpdate.model_validate(item)
        agent = AgentType(raw.agent)
        status = AgentStatus(raw.status)

        events: list[DecodedEvent] = []
        if self._mark(("agent", agent, status, raw.progress)):
            events.append(
                (
                    EventType.AGENT_STATUS_CHANGE,
                    AgentStatusChangePayload(agent=agent, status=status, progress=raw.progress),
                )
            )
        if raw.action and self._mark(("agent_action", agent, raw.action)):
            events.append(
                (
                    EventType.AGENT_ACTION_UPDATE,
                    AgentActionUpdatePayload(agent=agent, action=raw.action),
                )
            )
        return events

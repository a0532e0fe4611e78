"""主题提取 -- 从外部任务的最终输出中容错地解析主题列表

支持的输入形态：
- 已解析的列表 / 带 topics 字段的对象
- JSON 数组字符串
- Markdown ```json 代码块中的 JSON 数组
- 编号或项目符号的纯文本列表（逐行）

只有得到 TOPICS_MIN_COUNT..TOPICS_MAX_COUNT 条有效主题时才接受，
否则返回 None，由调用方作为提取失败（区别于生成失败）上报。
"""

import json
import re
from typing import Any

import structlog

from .config import TOPIC_MAX_LENGTH, TOPICS_MAX_COUNT, TOPICS_MIN_COUNT

log = structlog.get_logger()

_FENCED_ARRAY = re.compile(r"```(?:json)?\s*(\[[\s\S]*?\])\s*```", re.IGNORECASE)
_LIST_MARKER = re.compile(r"^[\d.\-*\s]+")


def _strings_only(items: list[Any]) -> list[str]:
    return [item.strip() for item in items if isinstance(item, str) and item.strip()]


def _within_bounds(topics: list[str]) -> list[str] | None:
    if TOPICS_MIN_COUNT <= len(topics) <= TOPICS_MAX_COUNT:
        return topics
    log.info(
        "topics_count_out_of_bounds",
        count=len(topics),
        min_count=TOPICS_MIN_COUNT,
        max_count=TOPICS_MAX_COUNT,
    )
    return None


def _from_lines(text: str) -> list[str]:
    topics: list[str] = []
    for line in text.splitlines():
        cleaned = _LIST_MARKER.sub("", line).strip()
        if 0 < len(cleaned) < TOPIC_MAX_LENGTH:
            topics.append(cleaned)
    return topics


def _from_text(text: str) -> list[str] | None:
    try:
        parsed = json.loads(text)
    except ValueError:
        parsed = None
    if isinstance(parsed, list):
        return _strings_only(parsed)
    if isinstance(parsed, dict):
        return _from_object(parsed)

    match = _FENCED_ARRAY.search(text)
    if match:
        try:
            fenced = json.loads(match.group(1))
        except ValueError:
            log.debug("topics_fenced_json_invalid")
        else:
            if isinstance(fenced, list):
                return _strings_only(fenced)

    return _from_lines(text)


def _from_object(data: dict[str, Any]) -> list[str] | None:
    topics = data.get("topics")
    if isinstance(topics, list):
        return _strings_only(topics)
    return None


def extract_topics(output: Any) -> list[str] | None:
    """提取主题列表

    Args:
        output: 外部任务的 output 或 result 字段（任意类型）

    Returns:
        5..15 条主题；无法提取或数量越界时返回 None
    """
    if isinstance(output, list):
        topics = _strings_only(output)
    elif isinstance(output, dict):
        topics = _from_object(output)
    elif isinstance(output, str):
        topics = _from_text(output)
    else:
        topics = None

    if topics is None:
        return None
    return _within_bounds(topics)

"""Provider 包测试 fixtures"""

from typing import Any

import pytest


@pytest.fixture
def running_payload() -> dict[str, Any]:
    """典型的 running 原始状态"""
    return {
        "id": "task-123",
        "status": "RUNNING",
        "progress": 42,
        "thinking_steps": [
            {"id": "s1", "title": "Research", "status": "running", "actions": ["search"]},
        ],
        "tool_calls": [
            {"id": "t1", "tool_name": "web_search", "status": "running", "args": {"q": "ai"}},
        ],
    }

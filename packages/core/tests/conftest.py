"""packages/core 测试配置 -- 核心层 fixture"""

from datetime import UTC, datetime

import pytest
from slidepilot.core.models import GenerationTask, TaskType


@pytest.fixture
def slides_task() -> GenerationTask:
    """slides 类型的待轮询任务"""
    now = datetime.now(UTC)
    return GenerationTask(
        task_id="task-core-001",
        user_id="user-a",
        presentation_id="pres-001",
        task_type=TaskType.SLIDES,
        started_at=now,
        updated_at=now,
    )

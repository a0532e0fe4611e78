"""packages/client 测试配置 -- 事件工厂 + 内存产物拉取器"""

from datetime import UTC, datetime
from typing import Any

import pytest
from slidepilot.client import ArtifactUnavailableError, SlidesStore, StateReconciler
from slidepilot.core.models import Presentation, Slide
from ulid import ULID


class FakeFetcher:
    """内存 PresentationFetcher；未登记的产物视为不可用"""

    def __init__(self) -> None:
        self.presentations: dict[str, Presentation] = {}
        self.requested: list[str] = []

    def add(self, presentation_id: str, slide_ids: list[str]) -> Presentation:
        now = datetime.now(UTC)
        presentation = Presentation(
            presentation_id=presentation_id,
            user_id="user-a",
            status="completed",
            slides_count=len(slide_ids),
            created_at=now,
            updated_at=now,
            slides=[
                Slide(
                    slide_id=slide_id,
                    presentation_id=presentation_id,
                    order_index=i,
                    title=slide_id,
                    updated_at=now,
                )
                for i, slide_id in enumerate(slide_ids)
            ],
        )
        self.presentations[presentation_id] = presentation
        return presentation

    async def fetch(self, presentation_id: str) -> Presentation:
        self.requested.append(presentation_id)
        presentation = self.presentations.get(presentation_id)
        if presentation is None:
            raise ArtifactUnavailableError(presentation_id, "status 404")
        return presentation


def make_event(
    event_type: str,
    payload: dict[str, Any],
    task_id: str = "task-1",
    user_id: str = "user-a",
) -> dict[str, Any]:
    """构造 SSE data 形态的原始事件 dict"""
    return {
        "event_id": str(ULID()),
        "user_id": user_id,
        "task_id": task_id,
        "type": event_type,
        "ts": datetime.now(UTC).isoformat(),
        "schema_version": 1,
        "payload": payload,
    }


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def store() -> SlidesStore:
    return SlidesStore()


@pytest.fixture
def reconciler(store: SlidesStore, fetcher: FakeFetcher) -> StateReconciler:
    return StateReconciler("user-a", store, fetcher)


@pytest.fixture
def event():
    """原始事件工厂"""
    return make_event

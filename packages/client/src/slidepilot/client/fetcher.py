"""PresentationFetcher -- generation:completed 之后的最终产物二次拉取

写穿与事件投递之间可能存在竞争，404 时按固定间隔重试；
重试耗尽仍拿不到产物时抛出 ArtifactUnavailableError。
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Protocol

import httpx
import structlog

from slidepilot.core.config import ARTIFACT_FETCH_DELAY_S, ARTIFACT_FETCH_RETRIES
from slidepilot.core.models import Presentation

log = structlog.get_logger()


class ArtifactUnavailableError(Exception):
    """最终产物无法获取"""

    def __init__(self, presentation_id: str, reason: str) -> None:
        super().__init__(f"Presentation {presentation_id} unavailable: {reason}")
        self.presentation_id = presentation_id
        self.reason = reason


class PresentationFetcher(Protocol):
    async def fetch(self, presentation_id: str) -> Presentation:
        """获取最终产物；失败时抛出 ArtifactUnavailableError"""
        ...


class HttpPresentationFetcher:
    """通过 GET /api/presentations/{id} 拉取最终产物"""

    def __init__(
        self,
        client: httpx.AsyncClient,
        retries: int = ARTIFACT_FETCH_RETRIES,
        delay_s: float = ARTIFACT_FETCH_DELAY_S,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._retries = retries
        self._delay_s = delay_s
        self._sleep = sleep

    async def fetch(self, presentation_id: str) -> Presentation:
        reason = "not found"
        for attempt in range(1, self._retries + 1):
            try:
                resp = await self._client.get(f"/api/presentations/{presentation_id}")
            except httpx.HTTPError as e:
                reason = str(e)
            else:
                if resp.status_code == 200:
                    try:
                        return Presentation.model_validate(resp.json())
                    except ValueError as e:
                        # ValidationError 也是 ValueError；格式错误的产物不重试
                        log.warning(
                            "presentation_malformed",
                            presentation_id=presentation_id,
                            error_type=type(e).__name__,
                        )
                        raise ArtifactUnavailableError(
                            presentation_id, "malformed response"
                        ) from e
                reason = f"status {resp.status_code}"
                if resp.status_code != 404 and resp.status_code < 500:
                    break

            log.info(
                "presentation_fetch_retry",
                presentation_id=presentation_id,
                attempt=attempt,
                reason=reason,
            )
            if attempt < self._retries:
                await self._sleep(self._delay_s)

        raise ArtifactUnavailableError(presentation_id, reason)

"""AgentTaskClient -- 外部 Agent 任务源 HTTP 封装

POST {base}/responses 创建任务，GET {base}/responses/{id} 查询状态。
任务源使用 API_KEY 请求头（不是 Bearer）。
所有失败统一包装为 TaskSourceError 子类，供 Task Poller 退避重试。
"""

import time
from typing import Any

import httpx
import structlog

from slidepilot.core.models import TaskType

from .config import TaskSourceConfig
from .exceptions import (
    TaskSourceHTTPError,
    TaskSourceResponseError,
    TaskSourceUnreachableError,
)
from .models import RawTaskStatus

log = structlog.get_logger()

# 健康检查超时（硬编码，应快速响应）
HEALTH_CHECK_TIMEOUT_S = 5

# 请求阶段异常类型集合（连接、超时、解码、重定向；触发 TaskSourceUnreachableError）
_CONNECTION_ERROR_TYPES = (
    ConnectionError,
    OSError,
    TimeoutError,
    httpx.RequestError,
)


class AgentTaskClient:
    """外部 Agent 任务源客户端

    transport 参数用于测试注入 httpx.MockTransport。
    """

    def __init__(
        self,
        config: TaskSourceConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = config.base_url.rstrip("/")
        self._config = config
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"API_KEY": config.api_key.get_secret_value()},
            timeout=config.timeout_s,
            transport=transport,
        )

    async def create_task(
        self,
        prompt: str,
        task_type: TaskType,
        user_id: str,
        presentation_id: str | None = None,
    ) -> str:
        """创建外部任务

        Args:
            prompt: 已构造好的完整提示词
            task_type: topics / slides
            user_id: 发起用户
            presentation_id: 关联演示文稿（slides 任务）

        Returns:
            外部任务 ID

        Raises:
            TaskSourceError: 连接失败、非 2xx 响应或响应缺少 id
        """
        metadata: dict[str, Any] = {"user_id": user_id, "task_type": task_type.value}
        if presentation_id:
            metadata["presentation_id"] = presentation_id

        extra_body: dict[str, Any] = {
            "task_mode": "agent",
            "agent_profile": self._config.agent_profile,
            "metadata": metadata,
        }
        if self._config.webhook_url:
            extra_body["webhook_url"] = self._config.webhook_url

        body = {
            "input": [
                {
                    "role": "user",
                    "content": [{"type": "input_text", "text": prompt}],
                }
            ],
            "extra_body": extra_body,
        }

        data = await self._request("POST", "/responses", json=body)
        task_id = data.get("id")
        if not isinstance(task_id, str) or not task_id:
            raise TaskSourceResponseError("No task id returned from task source")

        log.info(
            "task_source_task_created",
            task_id=task_id,
            task_type=task_type.value,
            user_id=user_id,
        )
        return task_id

    async def get_status(self, task_id: str) -> RawTaskStatus:
        """查询任务状态

        Raises:
            TaskSourceError: 连接失败、非 2xx 响应或响应不是 JSON 对象
        """
        data = await self._request("GET", f"/responses/{task_id}")
        return RawTaskStatus.parse(data)

    async def health_check(self) -> bool:
        """检查任务源可达性

        注意: 此方法不抛出异常，所有异常内部捕获并返回 False。
        """
        try:
            resp = await self._client.get("/", timeout=HEALTH_CHECK_TIMEOUT_S)
        except httpx.HTTPError as e:
            log.debug("health_check_failed", url=self._base_url, error=str(e))
            return False
        return resp.status_code < 500

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        start_time = time.monotonic()
        try:
            resp = await self._client.request(method, path, **kwargs)
        except _CONNECTION_ERROR_TYPES as e:
            log.warning(
                "task_source_unreachable",
                method=method,
                path=path,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise TaskSourceUnreachableError(self._base_url, e) from e

        duration_ms = int((time.monotonic() - start_time) * 1000)
        if resp.status_code >= 400:
            log.warning(
                "task_source_http_error",
                method=method,
                path=path,
                status_code=resp.status_code,
                duration_ms=duration_ms,
            )
            raise TaskSourceHTTPError(resp.status_code, resp.text)

        try:
            data = resp.json()
        except ValueError as e:
            raise TaskSourceResponseError("Task source response is not JSON") from e
        if not isinstance(data, dict):
            raise TaskSourceResponseError("Task source response is not an object")

        log.debug(
            "task_source_request_completed",
            method=method,
            path=path,
            duration_ms=duration_ms,
        )
        return data


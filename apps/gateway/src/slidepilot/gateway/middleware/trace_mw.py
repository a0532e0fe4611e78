"""TraceMiddleware -- 为生成任务操作绑定 trace_id

从 /api/generations/{task_id}/... 路径中提取外部 task_id，
绑定 trace_id = trace-{task_id}，贯穿该请求内的日志。
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# 不是 task_id 的子路由
_RESERVED_SEGMENTS = {"attach"}


def extract_task_id(path: str) -> str | None:
    parts = [part for part in path.split("/") if part]
    for i, part in enumerate(parts):
        if part == "generations" and i + 1 < len(parts):
            candidate = parts[i + 1]
            if candidate not in _RESERVED_SEGMENTS:
                return candidate
    return None


class TraceMiddleware(BaseHTTPMiddleware):
    """任务级追踪中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        task_id = extract_task_id(request.url.path)
        if task_id:
            structlog.contextvars.bind_contextvars(trace_id=f"trace-{task_id}")

        return await call_next(request)

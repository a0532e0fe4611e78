"""健康检查路由

GET /health: Liveness 检查，永远返回 200。
GET /ready: Readiness 检查，包含 SQLite 连通性与活跃轮询器数量；
         profile=source/full 时额外探测外部任务源。
"""

import structlog
from fastapi import APIRouter, Query, Request
from starlette.responses import JSONResponse

log = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok"}


@router.get("/ready")
async def ready(
    request: Request,
    profile: str | None = Query(
        default=None,
        description="检查配置：core（默认）仅核心检查；source/full 包含任务源探测",
    ),
):
    """Readiness 检查 -- 验证核心依赖可用性

    profile 参数:
        - None / "core": 仅核心检查，task_source="skipped"
        - "source": 核心检查 + 任务源真实探测
        - "full": 等同于 "source"

    检查项：
    1. sqlite: 数据库连通性
    2. active_pollers: 当前活跃轮询器数量
    3. task_source: 根据 profile 决定是否探测
    """
    effective_profile = profile or "core"

    checks: dict = {}
    all_ok = True

    # 1. SQLite 连通性检查
    try:
        store_group = request.app.state.store_group
        cursor = await store_group.conn.execute("SELECT 1")
        await cursor.fetchone()
        checks["sqlite"] = "ok"
    except Exception as e:
        checks["sqlite"] = f"error: {str(e)}"
        all_ok = False

    # 2. 活跃轮询器
    polling = getattr(request.app.state, "polling_service", None)
    checks["active_pollers"] = polling.active_count() if polling is not None else 0

    # 3. 任务源探测
    if effective_profile in ("source", "full"):
        source = getattr(request.app.state, "task_source", None)
        if source is None:
            checks["task_source"] = "skipped"
        elif await source.health_check():
            checks["task_source"] = "ok"
        else:
            log.warning("task_source_not_ready")
            checks["task_source"] = "unreachable"
            all_ok = False
    else:
        checks["task_source"] = "skipped"

    status_code = 200 if all_ok else 503
    status_text = "ready" if all_ok else "not_ready"

    return JSONResponse(
        status_code=status_code,
        content={
            "status": status_text,
            "profile": effective_profile,
            "checks": checks,
        },
    )

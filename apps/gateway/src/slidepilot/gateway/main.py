"""FastAPI 应用主文件

app 创建 + lifespan 管理：DB 初始化/关闭、EventHub / PollerRegistry /
任务源 / PollingService 初始化、路由注册。
关闭时先停止并等待所有轮询器，再关闭数据库连接。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from slidepilot.core.config import get_db_path
from slidepilot.core.store import create_store_group
from slidepilot.provider import (
    AgentTaskClient,
    ScriptedTaskSource,
    load_task_source_config,
)

from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.trace_mw import TraceMiddleware
from .routes import cancel, generations, health, presentations, stream
from .services.artifact_writer import ArtifactWriter
from .services.event_hub import EventHub
from .services.generation_service import GenerationService
from .services.polling_service import PollingService
from .services.registry import PollerRegistry

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理"""
    # 启动：初始化 Store
    store_group = await create_store_group(get_db_path())
    app.state.store_group = store_group

    # 事件传输层 + 写穿持久化监听器
    event_hub = EventHub()
    event_hub.add_listener(ArtifactWriter(store_group.presentation_store))
    app.state.event_hub = event_hub

    # 任务源（根据配置选择模式）
    source_config = load_task_source_config()
    app.state.task_source_config = source_config
    if source_config.mode == "http":
        task_source = AgentTaskClient(source_config)
        log.info(
            "task_source_initialized",
            mode="http",
            base_url=source_config.base_url,
            timeout_s=source_config.timeout_s,
        )
    else:
        task_source = ScriptedTaskSource()
        log.info("task_source_initialized", mode="scripted")
    app.state.task_source = task_source

    registry = PollerRegistry()
    polling_service = PollingService(task_source, event_hub, registry)
    app.state.polling_service = polling_service
    app.state.generation_service = GenerationService(
        task_source, polling_service, store_group.presentation_store
    )

    yield

    # 关闭：停止轮询器 -> 关闭任务源 -> 关闭数据库
    await polling_service.shutdown()
    await task_source.aclose()
    if hasattr(app.state, "store_group") and app.state.store_group:
        await app.state.store_group.conn.close()


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="SlidePilot Gateway",
        version="0.1.0",
        description="Agent task polling and progress event streaming API",
        lifespan=lifespan,
    )

    # 注册中间件（顺序：先 Trace 后 Logging）
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)

    # 初始化日志
    setup_logging()
    setup_logfire(app)

    # 注册路由
    app.include_router(generations.router, tags=["generations"])
    app.include_router(cancel.router, tags=["cancel"])
    app.include_router(stream.router, tags=["stream"])
    app.include_router(presentations.router, tags=["presentations"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()

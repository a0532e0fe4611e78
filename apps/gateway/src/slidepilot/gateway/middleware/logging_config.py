"""日志配置 -- structlog 接管标准库 logging

SLIDEPILOT_LOG_FORMAT: dev（控制台彩色输出，默认）/ json（一行一个事件）
SLIDEPILOT_LOG_LEVEL: 根 logger 级别，非法值回退 INFO
轮询器每次拉取都会经过 httpx / aiosqlite，它们的 INFO 日志被压到 WARNING。
Logfire 由 LOGFIRE_SEND_TO_LOGFIRE=true 开启，初始化失败时只保留本地日志。
"""

import logging
import os

import structlog
from fastapi import FastAPI

# 轮询高频路径上的第三方 logger
_NOISY_LOGGERS = ("httpx", "httpcore", "aiosqlite", "sse_starlette")


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def _build_renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer()


def setup_logging() -> None:
    """配置 structlog 与标准库 logging 的统一输出"""
    log_format = os.environ.get("SLIDEPILOT_LOG_FORMAT", "dev").strip().lower()
    level = _resolve_level(os.environ.get("SLIDEPILOT_LOG_LEVEL", "INFO"))

    # request_id / trace_id 通过 contextvars 合入每条日志
    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *pre_chain,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=_build_renderer(log_format),
            foreign_pre_chain=pre_chain,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def setup_logfire(app: FastAPI) -> bool:
    """按需启用 Logfire（FastAPI + httpx 埋点）

    Returns:
        True 如果 Logfire 已启用
    """
    if os.environ.get("LOGFIRE_SEND_TO_LOGFIRE", "false").strip().lower() != "true":
        return False
    try:
        import logfire

        logfire.configure(service_name="slidepilot-gateway")
        logfire.instrument_fastapi(app)
        logfire.instrument_httpx()
    except Exception as e:
        structlog.get_logger().warning(
            "logfire_init_failed",
            error=str(e),
            error_type=type(e).__name__,
        )
        return False
    return True

"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、轮询节奏（间隔/退避上限/最大次数）、事件队列容量、
主题提取边界等可配置常量。
"""

import os
from pathlib import Path

import structlog

log = structlog.get_logger()


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("SLIDEPILOT_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "SLIDEPILOT_DB_PATH",
        str(_get_base_dir() / "sqlite" / "slidepilot.db"),
    )


def _env_number(name: str, default: float, cast: type = float) -> float:
    """读取数值型环境变量，非法值记录告警并回退默认值（不阻塞启动）"""
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return cast(default)
    try:
        value = cast(raw)
    except ValueError:
        log.warning("invalid_env_number", name=name, value=raw, default=default)
        return cast(default)
    if value <= 0:
        log.warning("non_positive_env_number", name=name, value=raw, default=default)
        return cast(default)
    return value


# 轮询基础间隔（秒）
POLL_INTERVAL_S: float = _env_number("SLIDEPILOT_POLL_INTERVAL_S", 2.0)

# 单个任务最多轮询次数（按次数计，不按墙钟时间）
POLL_MAX_ATTEMPTS: int = _env_number("SLIDEPILOT_POLL_MAX_ATTEMPTS", 300, int)

# 瞬时失败指数退避上限（秒）
POLL_BACKOFF_CAP_S: float = _env_number("SLIDEPILOT_POLL_BACKOFF_CAP_S", 10.0)

# 单个轮询循环保留的去重键上限
DEDUP_KEY_LIMIT: int = _env_number("SLIDEPILOT_DEDUP_KEY_LIMIT", 4096, int)

# 每个订阅者事件队列容量
EVENT_QUEUE_MAXSIZE: int = _env_number("SLIDEPILOT_EVENT_QUEUE_MAXSIZE", 100, int)

# SSE 心跳间隔（秒）
SSE_HEARTBEAT_INTERVAL: int = _env_number("SLIDEPILOT_SSE_HEARTBEAT_INTERVAL", 15, int)

# 客户端获取最终产物的重试次数与间隔
ARTIFACT_FETCH_RETRIES: int = _env_number("SLIDEPILOT_ARTIFACT_FETCH_RETRIES", 3, int)
ARTIFACT_FETCH_DELAY_S: float = _env_number("SLIDEPILOT_ARTIFACT_FETCH_DELAY_S", 0.5)

# 主题提取边界
TOPICS_MIN_COUNT: int = 5
TOPICS_MAX_COUNT: int = 15
TOPIC_MAX_LENGTH: int = 100

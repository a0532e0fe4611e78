"""TaskSourceConfig -- 外部任务源配置加载

从环境变量加载配置；非法值记录告警后回退默认值，不阻塞启动。
"""

import os
from typing import Literal

import structlog
from pydantic import BaseModel, Field, SecretStr

log = structlog.get_logger()


class TaskSourceConfig(BaseModel):
    """Task Source 配置 -- 从环境变量加载

    环境变量:
        SLIDEPILOT_TASK_SOURCE_URL: 任务源地址（默认 https://api.manus.ai/v1）
        SLIDEPILOT_TASK_SOURCE_KEY: 访问密钥（API_KEY 请求头）
        SLIDEPILOT_TASK_SOURCE_MODE: 运行模式（http/scripted）
        SLIDEPILOT_TASK_SOURCE_TIMEOUT_S: 请求超时（秒，默认 30）
        SLIDEPILOT_AGENT_PROFILE: Agent 档位（默认 quality）
        SLIDEPILOT_WEBHOOK_URL: 任务完成回调地址（可选）
    """

    base_url: str = Field(
        default="https://api.manus.ai/v1",
        description="任务源基础 URL",
    )
    api_key: SecretStr = Field(
        default=SecretStr(""),
        description="任务源访问密钥",
    )
    mode: Literal["http", "scripted"] = Field(
        default="http",
        description="运行模式：http / scripted",
    )
    timeout_s: int = Field(
        default=30,
        ge=1,
        description="请求超时（秒）",
    )
    agent_profile: str = Field(default="quality", description="Agent 档位")
    webhook_url: str | None = Field(default=None, description="任务完成回调地址")


def load_task_source_config() -> TaskSourceConfig:
    """从环境变量加载 Task Source 配置

    Returns:
        TaskSourceConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("SLIDEPILOT_TASK_SOURCE_URL"):
        kwargs["base_url"] = val

    if val := os.environ.get("SLIDEPILOT_TASK_SOURCE_KEY"):
        kwargs["api_key"] = SecretStr(val)

    if val := os.environ.get("SLIDEPILOT_TASK_SOURCE_MODE"):
        if val in ("http", "scripted"):
            kwargs["mode"] = val
        else:
            log.warning(
                "invalid_task_source_mode",
                env_var="SLIDEPILOT_TASK_SOURCE_MODE",
                value=val,
                fallback="http",
            )

    if val := os.environ.get("SLIDEPILOT_TASK_SOURCE_TIMEOUT_S"):
        try:
            timeout_s = int(val)
        except ValueError:
            timeout_s = 0
        if timeout_s >= 1:
            kwargs["timeout_s"] = timeout_s
        else:
            log.warning(
                "invalid_timeout_config",
                env_var="SLIDEPILOT_TASK_SOURCE_TIMEOUT_S",
                value=val,
                fallback=30,
            )

    if val := os.environ.get("SLIDEPILOT_AGENT_PROFILE"):
        kwargs["agent_profile"] = val

    if val := os.environ.get("SLIDEPILOT_WEBHOOK_URL"):
        kwargs["webhook_url"] = val

    return TaskSourceConfig(**kwargs)

"""依赖注入模块 -- 通过 FastAPI Depends 注入服务实例

所有实例通过 app.state 管理，在 lifespan 中初始化/清理。
"""

from fastapi import Request
from slidepilot.core.store import StoreGroup

from .services.event_hub import EventHub
from .services.generation_service import GenerationService
from .services.polling_service import PollingService


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_event_hub(request: Request) -> EventHub:
    """从 app.state 获取 EventHub 实例"""
    return request.app.state.event_hub


def get_polling_service(request: Request) -> PollingService:
    return request.app.state.polling_service


def get_generation_service(request: Request) -> GenerationService:
    return request.app.state.generation_service

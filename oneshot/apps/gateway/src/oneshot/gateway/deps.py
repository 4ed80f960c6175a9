"""依赖注入模块 -- 通过 FastAPI Depends 注入 Store / Catalog / 服务实例

实例通过 app.state 管理，在 lifespan 中初始化/清理。
"""

from fastapi import Request
from oneshot.core.catalog import Catalog
from oneshot.core.store import StoreGroup

from .services.journey_service import JourneyService


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_catalog(request: Request) -> Catalog:
    """从 app.state 获取已校验的 Catalog"""
    return request.app.state.catalog


def get_sse_hub(request: Request):
    """从 app.state 获取 SSEHub 实例"""
    return request.app.state.sse_hub


def get_journey_service(request: Request) -> JourneyService:
    """按请求构建 JourneyService（per-user 锁为类级共享）"""
    state = request.app.state
    return JourneyService(
        state.store_group,
        state.catalog,
        config=state.engine_config,
        sse_hub=state.sse_hub,
    )

"""FastAPI 应用主文件

app 创建 + lifespan 管理：目录加载与校验、DB 初始化/关闭、路由注册。
目录校验失败时 lifespan 抛出 CatalogError，服务拒绝启动。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from oneshot.core.catalog import load_catalog
from oneshot.core.config import get_db_path, load_engine_config
from oneshot.core.exceptions import CatalogError
from oneshot.core.store import create_store_group

from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.trace_mw import TraceMiddleware
from .routes import catalog, health, journey, notifications, stream, tasks
from .services.sse_hub import SSEHub

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时加载目录并初始化 DB，关闭时清理连接"""
    # 目录先于 DB 加载：非法目录直接拒绝启动
    try:
        app.state.catalog = load_catalog()
    except CatalogError as e:
        log.error("catalog_invalid", error=str(e), error_type=type(e).__name__)
        raise

    app.state.engine_config = load_engine_config()

    db_path = get_db_path()
    store_group = await create_store_group(db_path)
    app.state.store_group = store_group

    app.state.sse_hub = SSEHub()

    log.info(
        "gateway_started",
        db_path=db_path,
        reminder_after_days=app.state.engine_config.reminder_after_days,
        next_tasks_limit=app.state.engine_config.next_tasks_limit,
    )

    yield

    # 关闭：清理数据库连接
    if hasattr(app.state, "store_group") and app.state.store_group:
        await app.state.store_group.conn.close()


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="OneShot Journey Gateway",
        version="0.1.0",
        description="OneShot 招募旅程任务评估与通知调度 API",
        lifespan=lifespan,
    )

    # 注册中间件（顺序：先 Trace 后 Logging）
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)

    setup_logging()
    setup_logfire(app)

    app.include_router(catalog.router, tags=["catalog"])
    app.include_router(journey.router, tags=["journey"])
    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(notifications.router, tags=["notifications"])
    app.include_router(stream.router, tags=["stream"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()

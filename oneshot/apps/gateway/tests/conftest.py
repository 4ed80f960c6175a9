"""apps/gateway 测试配置 -- 手动初始化 app.state + httpx AsyncClient"""

import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from oneshot.core.catalog import load_default_catalog
from oneshot.core.config import EngineConfig
from oneshot.core.store import create_store_group
from oneshot.gateway.services.journey_service import JourneyService
from oneshot.gateway.services.sse_hub import SSEHub


@pytest_asyncio.fixture
async def gateway_store_group(tmp_path: Path):
    """Gateway 测试用 StoreGroup"""
    sg = await create_store_group(str(tmp_path / "sqlite" / "gateway.db"))
    yield sg
    await sg.conn.close()


@pytest_asyncio.fixture
async def test_app(tmp_path: Path, gateway_store_group):
    """创建测试用 FastAPI app（手动初始化，绕过 lifespan）"""
    os.environ["ONESHOT_DB_PATH"] = str(tmp_path / "sqlite" / "gateway.db")
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from oneshot.gateway.main import create_app

    app = create_app()
    app.state.catalog = load_default_catalog()
    app.state.engine_config = EngineConfig()
    app.state.store_group = gateway_store_group
    app.state.sse_hub = SSEHub()

    yield app

    os.environ.pop("ONESHOT_DB_PATH", None)
    os.environ.pop("LOGFIRE_SEND_TO_LOGFIRE", None)


@pytest_asyncio.fixture
async def client(test_app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def sse_hub() -> SSEHub:
    return SSEHub()


@pytest.fixture
def journey_service(gateway_store_group, sse_hub) -> JourneyService:
    """直接调用的 JourneyService"""
    return JourneyService(
        gateway_store_group,
        load_default_catalog(),
        config=EngineConfig(),
        sse_hub=sse_hub,
    )

"""集成测试配置 -- 通过真实 lifespan 启动完整应用"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient


@pytest_asyncio.fixture
async def integration_app(tmp_path: Path, monkeypatch):
    """完整应用：目录加载 + DB 初始化均走 lifespan"""
    monkeypatch.setenv("ONESHOT_DB_PATH", str(tmp_path / "sqlite" / "integration.db"))
    monkeypatch.setenv("LOGFIRE_SEND_TO_LOGFIRE", "false")
    monkeypatch.delenv("ONESHOT_CATALOG_PATH", raising=False)

    from oneshot.gateway.main import create_app

    app = create_app()
    async with app.router.lifespan_context(app):
        yield app


@pytest_asyncio.fixture
async def integration_client(integration_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url="http://test",
    ) as ac:
        yield ac

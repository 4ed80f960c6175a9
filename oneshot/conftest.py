"""全局 pytest 配置 -- 临时 SQLite 数据库 + 快照/时间 fixture"""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from pathlib import Path

import aiosqlite
import pytest
import pytest_asyncio


@pytest_asyncio.fixture
async def tmp_db_path(tmp_path: Path) -> Path:
    """提供临时 SQLite 数据库路径"""
    return tmp_path / "test.db"


@pytest_asyncio.fixture
async def db_conn(tmp_db_path: Path) -> AsyncGenerator[aiosqlite.Connection, None]:
    """提供已初始化的临时 SQLite 数据库连接"""
    from oneshot.core.store.sqlite_init import init_db

    conn = await aiosqlite.connect(str(tmp_db_path))
    conn.row_factory = aiosqlite.Row
    await init_db(conn)
    yield conn
    await conn.close()


@pytest.fixture
def offseason_now() -> datetime:
    """不处于任何季节事件窗口内的评估时间"""
    return datetime(2025, 3, 10, 12, 0, tzinfo=UTC)


@pytest.fixture
def summer_now() -> datetime:
    """recruiting_season_start 与 summer_camp_season 窗口内"""
    return datetime(2025, 6, 20, 12, 0, tzinfo=UTC)


@pytest.fixture
def new_athlete_payload() -> dict:
    """新注册运动员的 profile 快照（camelCase，与 profile 子系统一致）"""
    return {
        "userId": "42",
        "role": "high_school",
        "sport": "football",
        "graduationYear": 2027,
        "completionPct": 20,
        "missingFields": ["position", "highSchoolName"],
    }

"""packages/core 测试配置 -- 核心层 fixture"""

from pathlib import Path

import pytest
import pytest_asyncio
from oneshot.core.catalog import Catalog, load_default_catalog
from oneshot.core.store import create_store_group


@pytest.fixture(scope="session")
def catalog() -> Catalog:
    """内置 seed 目录"""
    return load_default_catalog()


@pytest_asyncio.fixture
async def store_group(tmp_path: Path):
    """创建测试用 StoreGroup"""
    sg = await create_store_group(str(tmp_path / "core_test.db"))
    yield sg
    await sg.conn.close()


@pytest.fixture
def make_task():
    """构造最小任务定义原始 dict 的工厂"""

    def _make(task_key: str, **overrides) -> dict:
        data = {
            "taskKey": task_key,
            "title": task_key.replace("_", " ").title(),
            "description": f"{task_key} description",
            "priority": "medium",
            "applicableRoles": ["high_school"],
        }
        data.update(overrides)
        return data

    return _make

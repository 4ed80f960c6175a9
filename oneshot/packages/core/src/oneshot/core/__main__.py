"""CLI 入口模块 -- python -m oneshot.core <command>

支持的命令：
  validate-catalog [path]  校验任务目录（默认内置 seed 或 ONESHOT_CATALOG_PATH）
  rebuild-projections      从 progress_events 表重建 task_states / journeys 表
"""

import asyncio
import sys

from .config import get_db_path
from .exceptions import CatalogError

_USAGE = """用法: python -m oneshot.core <command>
命令:
  validate-catalog [path]  校验任务目录
  rebuild-projections      从 progress_events 表重建 task_states / journeys 表"""


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print(_USAGE)
        sys.exit(1)

    command = sys.argv[1]

    if command == "validate-catalog":
        path = sys.argv[2] if len(sys.argv) > 2 else None
        sys.exit(validate_catalog(path))
    elif command == "rebuild-projections":
        asyncio.run(rebuild_projections())
    else:
        print(f"未知命令: {command}")
        print("可用命令: validate-catalog, rebuild-projections")
        sys.exit(1)


def validate_catalog(path: str | None = None) -> int:
    """校验目录，返回进程退出码"""
    from .catalog import load_catalog

    try:
        catalog = load_catalog(path)
    except CatalogError as e:
        print(f"目录校验失败: {e}")
        return 1
    except OSError as e:
        print(f"无法读取目录文件: {e}")
        return 1

    print(
        f"目录校验通过: {len(catalog.tasks)} 个任务, "
        f"{len(catalog.seasonal_events)} 个季节事件, "
        f"{len(catalog.achievements)} 个成就"
    )
    return 0


async def rebuild_projections() -> None:
    """执行 Projection 重建"""
    from .projection import rebuild_all
    from .store import create_store_group

    db_path = get_db_path()

    print(f"数据库路径: {db_path}")
    print("开始重建 Projection...")

    store_group = await create_store_group(db_path)

    try:
        event_count = await rebuild_all(
            store_group.conn,
            store_group.event_store,
            store_group.task_state_store,
            store_group.journey_store,
        )
        print(f"重建完成，处理 {event_count} 条事件")
    finally:
        await store_group.conn.close()


if __name__ == "__main__":
    main()

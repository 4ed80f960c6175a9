"""OneShot Core Store -- SQLite 持久化实现

提供工厂函数创建共享数据库连接的 Store 实例组。
"""

from pathlib import Path

import aiosqlite

from .achievement_store import SqliteAchievementStore
from .event_store import SqliteEventStore
from .journey_store import SqliteJourneyStore
from .notification_store import SqliteNotificationStore
from .sqlite_init import init_db, verify_wal_mode
from .task_state_store import SqliteTaskStateStore
from .transaction import append_events_and_update_states, award_achievements


class StoreGroup:
    """Store 实例组 -- 共享同一个数据库连接"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self.conn = conn
        self.task_state_store = SqliteTaskStateStore(conn)
        self.journey_store = SqliteJourneyStore(conn)
        self.achievement_store = SqliteAchievementStore(conn)
        self.event_store = SqliteEventStore(conn)
        self.notification_store = SqliteNotificationStore(conn)


async def create_store_group(db_path: str) -> StoreGroup:
    """创建 Store 实例组

    Args:
        db_path: SQLite 数据库文件路径

    Returns:
        StoreGroup 实例
    """
    # 确保数据库目录存在
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    conn.row_factory = aiosqlite.Row
    await init_db(conn)

    return StoreGroup(conn=conn)


__all__ = [
    "StoreGroup",
    "create_store_group",
    "SqliteTaskStateStore",
    "SqliteJourneyStore",
    "SqliteAchievementStore",
    "SqliteEventStore",
    "SqliteNotificationStore",
    "init_db",
    "verify_wal_mode",
    "append_events_and_update_states",
    "award_achievements",
]

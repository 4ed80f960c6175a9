"""TaskStateStore SQLite 实现

task_states 表按 (user_id, task_key) 保存单任务状态，是评估结果和
progress_events 的物化视图。写入采用 upsert，跨进程 last-writer-wins。
"""

from datetime import datetime

import aiosqlite

from ..models.enums import TaskStatus
from ..models.task_state import TaskState


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class SqliteTaskStateStore:
    """TaskStateStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def upsert_state(self, state: TaskState) -> None:
        """写入或覆盖任务状态，新行使用 state.version，覆盖时 version 自增

        注意：此方法不自动提交事务，需由调用方管理事务。
        """
        await self._conn.execute(
            """
            INSERT INTO task_states (user_id, task_key, status, triggered_at,
                                     last_shown_at, completed_at, updated_at, version)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_id, task_key) DO UPDATE SET
                status = excluded.status,
                triggered_at = excluded.triggered_at,
                last_shown_at = excluded.last_shown_at,
                completed_at = excluded.completed_at,
                updated_at = excluded.updated_at,
                version = task_states.version + 1
            """,
            (
                state.user_id,
                state.task_key,
                state.status.value,
                _iso(state.triggered_at),
                _iso(state.last_shown_at),
                _iso(state.completed_at),
                state.updated_at.isoformat(),
                state.version,
            ),
        )

    async def get_state(self, user_id: str, task_key: str) -> TaskState | None:
        """查询单个任务状态"""
        cursor = await self._conn.execute(
            "SELECT * FROM task_states WHERE user_id = ? AND task_key = ?",
            (user_id, task_key),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_state(row)

    async def list_states(
        self,
        user_id: str,
        status: TaskStatus | None = None,
    ) -> list[TaskState]:
        """查询用户所有任务状态，支持按状态筛选"""
        if status is not None:
            cursor = await self._conn.execute(
                "SELECT * FROM task_states WHERE user_id = ? AND status = ? ORDER BY task_key",
                (user_id, status.value),
            )
        else:
            cursor = await self._conn.execute(
                "SELECT * FROM task_states WHERE user_id = ? ORDER BY task_key",
                (user_id,),
            )
        rows = await cursor.fetchall()
        return [self._row_to_state(row) for row in rows]

    async def get_states_map(self, user_id: str) -> dict[str, TaskState]:
        """task_key -> TaskState"""
        return {s.task_key: s for s in await self.list_states(user_id)}

    async def list_user_ids(self) -> list[str]:
        cursor = await self._conn.execute(
            "SELECT DISTINCT user_id FROM task_states ORDER BY user_id"
        )
        rows = await cursor.fetchall()
        return [row[0] for row in rows]

    @staticmethod
    def _row_to_state(row: aiosqlite.Row) -> TaskState:
        return TaskState(
            user_id=row["user_id"],
            task_key=row["task_key"],
            status=TaskStatus(row["status"]),
            triggered_at=_parse(row["triggered_at"]),
            last_shown_at=_parse(row["last_shown_at"]),
            completed_at=_parse(row["completed_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            version=row["version"],
        )

"""ProgressEventStore SQLite 实现

事件表 append-only：只允许插入，不允许更新或删除。
user_seq 同一用户内严格单调递增。
"""

import json
from datetime import datetime

import aiosqlite

from ..models.enums import ActorType, EventType
from ..models.event import EventCausality, ProgressEvent


class SqliteEventStore:
    """ProgressEventStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def append_event(self, event: ProgressEvent) -> None:
        """追加事件（append-only）

        注意：此方法不自动提交事务，需由调用方管理事务。
        """
        await self._conn.execute(
            """
            INSERT INTO progress_events (event_id, user_id, user_seq, ts, type,
                                         schema_version, actor, task_key, payload,
                                         trace_id, parent_event_id, idempotency_key)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                event.event_id,
                event.user_id,
                event.user_seq,
                event.ts.isoformat(),
                event.type.value,
                event.schema_version,
                event.actor.value,
                event.task_key,
                json.dumps(event.payload, ensure_ascii=False),
                event.trace_id,
                event.causality.parent_event_id,
                event.causality.idempotency_key,
            ),
        )

    async def get_events_for_user(self, user_id: str) -> list[ProgressEvent]:
        """查询指定用户的所有事件，按 user_seq 正序"""
        cursor = await self._conn.execute(
            "SELECT * FROM progress_events WHERE user_id = ? ORDER BY user_seq ASC",
            (user_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_event(row) for row in rows]

    async def get_next_user_seq(self, user_id: str) -> int:
        """获取指定用户的下一个 user_seq（MAX+1）

        在事务内调用以确保原子性。
        """
        cursor = await self._conn.execute(
            "SELECT COALESCE(MAX(user_seq), 0) FROM progress_events WHERE user_id = ?",
            (user_id,),
        )
        row = await cursor.fetchone()
        return (row[0] if row else 0) + 1

    async def check_idempotency_key(self, key: str) -> str | None:
        """检查幂等键是否已存在

        Returns:
            关联的 event_id 如果存在，否则 None
        """
        cursor = await self._conn.execute(
            "SELECT event_id FROM progress_events WHERE idempotency_key = ? LIMIT 1",
            (key,),
        )
        row = await cursor.fetchone()
        return row[0] if row else None

    async def get_all_events(self) -> list[ProgressEvent]:
        """查询所有事件，按 user_id 和 user_seq 排序（用于 Projection 重建）"""
        cursor = await self._conn.execute(
            "SELECT * FROM progress_events ORDER BY user_id, user_seq ASC"
        )
        rows = await cursor.fetchall()
        return [self._row_to_event(row) for row in rows]

    @staticmethod
    def _row_to_event(row: aiosqlite.Row) -> ProgressEvent:
        payload = json.loads(row["payload"]) if row["payload"] else {}
        return ProgressEvent(
            event_id=row["event_id"],
            user_id=row["user_id"],
            user_seq=row["user_seq"],
            ts=datetime.fromisoformat(row["ts"]),
            type=EventType(row["type"]),
            schema_version=row["schema_version"],
            actor=ActorType(row["actor"]),
            task_key=row["task_key"],
            payload=payload,
            trace_id=row["trace_id"],
            causality=EventCausality(
                parent_event_id=row["parent_event_id"],
                idempotency_key=row["idempotency_key"],
            ),
        )

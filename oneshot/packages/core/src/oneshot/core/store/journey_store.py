"""JourneyStore SQLite 实现 -- 每用户一行的评估元数据"""

from datetime import datetime

import aiosqlite

from ..models.enums import JourneyPhase
from ..models.task_state import Journey
from .task_state_store import _iso, _parse


class SqliteJourneyStore:
    """JourneyStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def save_journey(self, journey: Journey) -> None:
        """写入或覆盖 journey（不自动提交）"""
        await self._conn.execute(
            """
            INSERT INTO journeys (user_id, phase, completion_pct, has_blocking_tasks,
                                  last_activity_at, last_notified_at, generated_at,
                                  generation_version, sport, role)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                phase = excluded.phase,
                completion_pct = excluded.completion_pct,
                has_blocking_tasks = excluded.has_blocking_tasks,
                last_activity_at = excluded.last_activity_at,
                last_notified_at = excluded.last_notified_at,
                generated_at = excluded.generated_at,
                generation_version = excluded.generation_version,
                sport = excluded.sport,
                role = excluded.role
            """,
            (
                journey.user_id,
                journey.phase.value,
                journey.completion_pct,
                1 if journey.has_blocking_tasks else 0,
                _iso(journey.last_activity_at),
                _iso(journey.last_notified_at),
                _iso(journey.generated_at),
                journey.generation_version,
                journey.sport,
                journey.role,
            ),
        )

    async def get_journey(self, user_id: str) -> Journey | None:
        cursor = await self._conn.execute(
            "SELECT * FROM journeys WHERE user_id = ?",
            (user_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_journey(row)

    async def touch_activity(self, user_id: str, ts: datetime) -> None:
        """记录用户最近一次操作时间（不自动提交）"""
        await self._conn.execute(
            """
            INSERT INTO journeys (user_id, last_activity_at)
            VALUES (?, ?)
            ON CONFLICT(user_id) DO UPDATE SET last_activity_at = excluded.last_activity_at
            """,
            (user_id, ts.isoformat()),
        )

    @staticmethod
    def _row_to_journey(row: aiosqlite.Row) -> Journey:
        return Journey(
            user_id=row["user_id"],
            phase=JourneyPhase(row["phase"]),
            completion_pct=row["completion_pct"],
            has_blocking_tasks=bool(row["has_blocking_tasks"]),
            last_activity_at=_parse(row["last_activity_at"]),
            last_notified_at=_parse(row["last_notified_at"]),
            generated_at=_parse(row["generated_at"]),
            generation_version=row["generation_version"],
            sport=row["sport"],
            role=row["role"],
        )

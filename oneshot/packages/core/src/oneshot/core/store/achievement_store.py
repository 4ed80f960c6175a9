"""AchievementStore SQLite 实现

(user_id, achievement_key) 唯一约束保证每个成就至多授予一次，
重复授予通过 INSERT OR IGNORE 静默忽略。
"""

from datetime import datetime

import aiosqlite

from ..models.task_state import AwardedAchievement


class SqliteAchievementStore:
    """AchievementStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def award(self, achievement: AwardedAchievement) -> bool:
        """授予成就（不自动提交）

        Returns:
            True 如果本次新授予；已存在时返回 False
        """
        cursor = await self._conn.execute(
            """
            INSERT OR IGNORE INTO achievements (user_id, achievement_key, title,
                                                description, icon, trigger_task_key,
                                                created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                achievement.user_id,
                achievement.achievement_key,
                achievement.title,
                achievement.description,
                achievement.icon,
                achievement.trigger_task_key,
                achievement.created_at.isoformat(),
            ),
        )
        return cursor.rowcount > 0

    async def list_achievements(
        self,
        user_id: str,
        limit: int | None = None,
    ) -> list[AwardedAchievement]:
        """按授予时间倒序查询用户成就"""
        sql = "SELECT * FROM achievements WHERE user_id = ? ORDER BY created_at DESC, achievement_key"
        params: tuple = (user_id,)
        if limit is not None:
            sql += " LIMIT ?"
            params = (user_id, limit)
        cursor = await self._conn.execute(sql, params)
        rows = await cursor.fetchall()
        return [self._row_to_achievement(row) for row in rows]

    async def get_awarded_keys(self, user_id: str) -> set[str]:
        cursor = await self._conn.execute(
            "SELECT achievement_key FROM achievements WHERE user_id = ?",
            (user_id,),
        )
        rows = await cursor.fetchall()
        return {row[0] for row in rows}

    @staticmethod
    def _row_to_achievement(row: aiosqlite.Row) -> AwardedAchievement:
        return AwardedAchievement(
            user_id=row["user_id"],
            achievement_key=row["achievement_key"],
            title=row["title"],
            description=row["description"],
            icon=row["icon"],
            trigger_task_key=row["trigger_task_key"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

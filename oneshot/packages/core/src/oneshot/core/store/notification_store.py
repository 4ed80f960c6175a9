"""NotificationStore SQLite 实现 -- 待投递通知队列

delivered_at 为空表示尚未推送：scheduled_for 未到期的通知先入库，到期后再推送。
"""

from collections.abc import Iterable
from datetime import datetime

import aiosqlite

from ..models.enums import NotificationTemplate
from ..models.notification import Notification


class SqliteNotificationStore:
    """NotificationStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def add_notification(self, notification: Notification) -> None:
        """写入通知（不自动提交）"""
        await self._conn.execute(
            """
            INSERT INTO notifications (notification_id, user_id, task_key, template,
                                       title, message, cta_text, cta_url,
                                       scheduled_for, priority, created_at, delivered_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                notification.notification_id,
                notification.user_id,
                notification.task_key,
                notification.template.value,
                notification.title,
                notification.message,
                notification.cta_text,
                notification.cta_url,
                notification.scheduled_for.isoformat(),
                notification.priority,
                notification.created_at.isoformat(),
                notification.delivered_at.isoformat() if notification.delivered_at else None,
            ),
        )

    async def list_notifications(
        self,
        user_id: str,
        limit: int = 50,
    ) -> list[Notification]:
        """按创建时间倒序查询用户通知"""
        cursor = await self._conn.execute(
            """
            SELECT * FROM notifications WHERE user_id = ?
            ORDER BY created_at DESC, notification_id DESC
            LIMIT ?
            """,
            (user_id, limit),
        )
        rows = await cursor.fetchall()
        return [self._row_to_notification(row) for row in rows]

    async def get_notifications_after(
        self,
        user_id: str,
        after_notification_id: str,
    ) -> list[Notification]:
        """查询指定通知之后已推送过的通知（用于 SSE 断线重连）

        利用 ULID 的字典序特性，notification_id > after_notification_id 即为后续通知。
        """
        cursor = await self._conn.execute(
            """
            SELECT * FROM notifications
            WHERE user_id = ? AND notification_id > ? AND delivered_at IS NOT NULL
            ORDER BY notification_id ASC
            """,
            (user_id, after_notification_id),
        )
        rows = await cursor.fetchall()
        return [self._row_to_notification(row) for row in rows]

    async def list_pending_due(self, user_id: str, now: datetime) -> list[Notification]:
        """已到期但尚未推送的通知，按 scheduled_for 正序

        时间统一以 UTC ISO 字符串存储，可直接按字符串比较。
        """
        cursor = await self._conn.execute(
            """
            SELECT * FROM notifications
            WHERE user_id = ? AND delivered_at IS NULL AND scheduled_for <= ?
            ORDER BY scheduled_for ASC, notification_id ASC
            """,
            (user_id, now.isoformat()),
        )
        rows = await cursor.fetchall()
        return [self._row_to_notification(row) for row in rows]

    async def mark_delivered(self, notification_ids: Iterable[str], ts: datetime) -> None:
        """标记为已推送（不自动提交，已标记的不覆盖）"""
        await self._conn.executemany(
            "UPDATE notifications SET delivered_at = ? "
            "WHERE notification_id = ? AND delivered_at IS NULL",
            [(ts.isoformat(), notification_id) for notification_id in notification_ids],
        )

    @staticmethod
    def _row_to_notification(row: aiosqlite.Row) -> Notification:
        delivered_at = row["delivered_at"]
        return Notification(
            notification_id=row["notification_id"],
            user_id=row["user_id"],
            task_key=row["task_key"],
            template=NotificationTemplate(row["template"]),
            title=row["title"],
            message=row["message"],
            cta_text=row["cta_text"],
            cta_url=row["cta_url"],
            scheduled_for=datetime.fromisoformat(row["scheduled_for"]),
            priority=row["priority"],
            created_at=datetime.fromisoformat(row["created_at"]),
            delivered_at=datetime.fromisoformat(delivered_at) if delivered_at else None,
        )

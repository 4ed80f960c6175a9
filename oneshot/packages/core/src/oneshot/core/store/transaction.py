"""事件+Projection 原子事务封装

在同一 SQLite 事务内原子提交进度事件、task_states / journeys projection
更新以及通知写入；任何一步失败则整体回滚。
"""

from collections.abc import Iterable
from datetime import datetime

import aiosqlite

from ..models.event import ProgressEvent
from ..models.notification import Notification
from ..models.task_state import AwardedAchievement, Journey, TaskState
from .protocols import (
    AchievementStore,
    EventStore,
    JourneyStore,
    NotificationStore,
    TaskStateStore,
)


async def append_events_and_update_states(
    conn: aiosqlite.Connection,
    event_store: EventStore,
    task_state_store: TaskStateStore,
    events: Iterable[ProgressEvent],
    states: Iterable[TaskState],
    journey_store: JourneyStore | None = None,
    journey: Journey | None = None,
    notification_store: NotificationStore | None = None,
    notifications: Iterable[Notification] = (),
) -> None:
    """在同一事务内写入事件、任务状态、journey 与通知

    Args:
        conn: 数据库连接（需在同一连接上操作以保证事务性）
        event_store: EventStore 实例
        task_state_store: TaskStateStore 实例
        events: 要追加的事件（user_seq 已由调用方分配）
        states: 要 upsert 的任务状态
        journey_store / journey: 可选，同时写入 journey 汇总
        notification_store / notifications: 可选，同时写入通知

    Raises:
        Exception: 如果事务提交失败，自动回滚
    """
    try:
        for event in events:
            await event_store.append_event(event)

        for state in states:
            await task_state_store.upsert_state(state)

        if journey is not None and journey_store is not None:
            await journey_store.save_journey(journey)

        if notification_store is not None:
            for notification in notifications:
                await notification_store.add_notification(notification)

        await conn.commit()
    except Exception:
        await conn.rollback()
        raise


async def award_achievements(
    conn: aiosqlite.Connection,
    achievement_store: AchievementStore,
    event_store: EventStore,
    awards: Iterable[tuple[AwardedAchievement, ProgressEvent]],
) -> list[AwardedAchievement]:
    """授予成就并追加 ACHIEVEMENT_AWARDED 事件（同一事务）

    已授予的成就被 UNIQUE 约束静默忽略，不写事件。

    Returns:
        本次新授予的成就
    """
    awarded: list[AwardedAchievement] = []
    try:
        for achievement, event in awards:
            if await achievement_store.award(achievement):
                await event_store.append_event(event)
                awarded.append(achievement)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise
    return awarded


async def claim_due_notifications(
    conn: aiosqlite.Connection,
    notification_store: NotificationStore,
    user_id: str,
    now: datetime,
) -> list[Notification]:
    """取出已到期未推送的通知并标记为已推送（同一事务）

    Returns:
        本次取出的通知（delivered_at 已设为 now），由调用方负责推送
    """
    try:
        pending = await notification_store.list_pending_due(user_id, now)
        if pending:
            await notification_store.mark_delivered(
                [n.notification_id for n in pending], now
            )
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise
    return [n.model_copy(update={"delivered_at": now}) for n in pending]

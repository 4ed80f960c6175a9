"""Store Protocol 接口定义

定义各 Store 的抽象接口，使用 Python Protocol 实现结构化子类型（duck typing）。
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Protocol

from ..models.enums import TaskStatus
from ..models.event import ProgressEvent
from ..models.notification import Notification
from ..models.task_state import AwardedAchievement, Journey, TaskState


class TaskStateStore(Protocol):
    """单用户单任务状态存储"""

    async def upsert_state(self, state: TaskState) -> None:
        """写入或覆盖任务状态"""
        ...

    async def get_state(self, user_id: str, task_key: str) -> TaskState | None:
        ...

    async def list_states(
        self,
        user_id: str,
        status: TaskStatus | None = None,
    ) -> list[TaskState]:
        """查询用户任务状态，支持按状态筛选"""
        ...

    async def get_states_map(self, user_id: str) -> dict[str, TaskState]:
        ...


class JourneyStore(Protocol):
    async def save_journey(self, journey: Journey) -> None:
        ...

    async def get_journey(self, user_id: str) -> Journey | None:
        ...

    async def touch_activity(self, user_id: str, ts: datetime) -> None:
        ...


class AchievementStore(Protocol):
    """成就存储 -- (user_id, achievement_key) 至多一条"""

    async def award(self, achievement: AwardedAchievement) -> bool:
        """授予成就，已存在时返回 False"""
        ...

    async def list_achievements(
        self,
        user_id: str,
        limit: int | None = None,
    ) -> list[AwardedAchievement]:
        ...

    async def get_awarded_keys(self, user_id: str) -> set[str]:
        ...


class EventStore(Protocol):
    """进度事件存储

    事件表 append-only：只允许插入，不允许更新或删除。
    """

    async def append_event(self, event: ProgressEvent) -> None:
        """追加事件（append-only）"""
        ...

    async def get_events_for_user(self, user_id: str) -> list[ProgressEvent]:
        ...

    async def get_next_user_seq(self, user_id: str) -> int:
        """获取指定用户的下一个 user_seq（MAX+1）"""
        ...

    async def check_idempotency_key(self, key: str) -> str | None:
        """检查幂等键是否已存在，返回关联的 event_id 或 None"""
        ...

    async def get_all_events(self) -> list[ProgressEvent]:
        """全部事件，按 (user_id, user_seq) 排序"""
        ...


class NotificationStore(Protocol):
    async def add_notification(self, notification: Notification) -> None:
        ...

    async def list_notifications(
        self,
        user_id: str,
        limit: int = 50,
    ) -> list[Notification]:
        ...

    async def get_notifications_after(
        self,
        user_id: str,
        after_notification_id: str,
    ) -> list[Notification]:
        """查询指定通知之后已推送过的通知（用于 SSE 断线重连）"""
        ...

    async def list_pending_due(self, user_id: str, now: datetime) -> list[Notification]:
        """已到期但尚未推送的通知"""
        ...

    async def mark_delivered(self, notification_ids: Iterable[str], ts: datetime) -> None:
        ...

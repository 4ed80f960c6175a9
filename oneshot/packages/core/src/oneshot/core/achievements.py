"""Achievement Tracker -- 任务完成/评估后的成就授予

规则是 (已完成任务集合, 最近一次评估结果) 的纯函数；授予结果写入
achievements 表，(user_id, achievement_key) 唯一，重复调用不会重复授予。
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

import structlog

from .catalog import Catalog
from .events import build_event
from .models.enums import EventType, TaskStatus
from .models.payloads import AchievementAwardedPayload
from .models.task_state import AwardedAchievement
from .store import StoreGroup
from .store.transaction import award_achievements

log = structlog.get_logger()


@dataclass(frozen=True)
class AchievementContext:
    """规则求值输入"""

    completed: frozenset[str]
    completion_pct: float
    has_blocking_tasks: bool

    @property
    def profile_complete(self) -> bool:
        return self.completion_pct >= 100


AchievementRule = Callable[[AchievementContext], bool]

ACHIEVEMENT_RULES: dict[str, AchievementRule] = {
    "first_task_complete": lambda ctx: len(ctx.completed) >= 1,
    "task_streak_5": lambda ctx: len(ctx.completed) >= 5,
    "first_video_upload": lambda ctx: "upload_highlight_video" in ctx.completed,
    "first_coach_contact": lambda ctx: "send_intro_emails" in ctx.completed,
    "academic_ready": lambda ctx: {"add_gpa_academics", "upload_transcript"} <= ctx.completed,
    "profile_complete": lambda ctx: ctx.profile_complete,
    "recruiting_ready": lambda ctx: ctx.profile_complete and not ctx.has_blocking_tasks,
}


def earned_achievements(ctx: AchievementContext) -> list[str]:
    """满足条件的成就 key（不考虑是否已授予）"""
    return [key for key, rule in ACHIEVEMENT_RULES.items() if rule(ctx)]


class AchievementTracker:
    """成就授予器

    调用方负责持有该用户的写锁（JourneyService 的 per-user lock）。
    """

    def __init__(self, store_group: StoreGroup, catalog: Catalog) -> None:
        self._stores = store_group
        self._catalog = catalog

    async def on_task_completed(
        self,
        user_id: str,
        task_key: str,
        now: datetime | None = None,
    ) -> list[str]:
        """任务完成后检查成就

        Returns:
            本次新授予的成就 key
        """
        return await self._evaluate(user_id, trigger_task_key=task_key, now=now)

    async def check(self, user_id: str, now: datetime | None = None) -> list[str]:
        """评估后检查成就（profile_complete / recruiting_ready 依赖评估结果）"""
        return await self._evaluate(user_id, trigger_task_key=None, now=now)

    async def _build_context(self, user_id: str) -> AchievementContext:
        completed = await self._stores.task_state_store.list_states(
            user_id, status=TaskStatus.COMPLETED
        )
        journey = await self._stores.journey_store.get_journey(user_id)
        return AchievementContext(
            completed=frozenset(s.task_key for s in completed),
            completion_pct=journey.completion_pct if journey else 0.0,
            has_blocking_tasks=journey.has_blocking_tasks if journey else True,
        )

    async def _evaluate(
        self,
        user_id: str,
        trigger_task_key: str | None,
        now: datetime | None,
    ) -> list[str]:
        ts = now or datetime.now(UTC)
        ctx = await self._build_context(user_id)
        already = await self._stores.achievement_store.get_awarded_keys(user_id)

        candidates = [
            key
            for key in earned_achievements(ctx)
            if key not in already and key in self._catalog.achievements
        ]
        if not candidates:
            return []

        next_seq = await self._stores.event_store.get_next_user_seq(user_id)
        awards = []
        for offset, key in enumerate(candidates):
            definition = self._catalog.achievements[key]
            achievement = AwardedAchievement(
                user_id=user_id,
                achievement_key=key,
                title=definition.title,
                description=definition.description,
                icon=definition.icon,
                trigger_task_key=trigger_task_key,
                created_at=ts,
            )
            payload = AchievementAwardedPayload(
                achievement_key=key,
                title=definition.title,
                trigger_task_key=trigger_task_key,
            )
            event = build_event(
                user_id=user_id,
                user_seq=next_seq + offset,
                event_type=EventType.ACHIEVEMENT_AWARDED,
                ts=ts,
                payload=payload.model_dump(),
                idempotency_key=f"achievement:{user_id}:{key}",
            )
            awards.append((achievement, event))

        awarded = await award_achievements(
            self._stores.conn,
            self._stores.achievement_store,
            self._stores.event_store,
            awards,
        )
        keys = [a.achievement_key for a in awarded]
        if keys:
            await log.ainfo(
                "achievements_awarded",
                user_id=user_id,
                achievement_keys=keys,
                trigger_task_key=trigger_task_key,
            )
        return keys

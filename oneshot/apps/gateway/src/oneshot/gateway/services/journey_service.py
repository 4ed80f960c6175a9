"""JourneyService -- 招募旅程评估/任务操作/仪表盘业务逻辑

evaluate_journey 流程：
1. 读取用户已有任务状态与 journey
2. 纯函数评估 + 排序 + 通知规划
3. 单事务写入状态变化、journey、事件与通知
4. 检查成就，推送通知到 SSE 订阅者

同一用户的写操作通过进程内 per-user 锁串行化；跨进程 last-writer-wins。
"""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime

import aiosqlite
import structlog
from oneshot.core.achievements import AchievementTracker
from oneshot.core.calendar import active_events
from oneshot.core.catalog import Catalog
from oneshot.core.config import EngineConfig
from oneshot.core.evaluator import (
    blocking_task_keys,
    evaluate,
    resolve_engagement,
    triggered_tasks,
)
from oneshot.core.events import build_event
from oneshot.core.exceptions import InvalidTaskTransitionError, TaskNotFoundError
from oneshot.core.models import (
    ActorType,
    AwardedAchievement,
    EvaluatedTask,
    EventType,
    Journey,
    JourneyEvaluatedPayload,
    JourneyPhase,
    Notification,
    NotificationScheduledPayload,
    ProgressEvent,
    RankedTask,
    TaskDefinition,
    TaskState,
    TaskStatus,
    TaskTransitionPayload,
    UserProfileSnapshot,
    validate_transition,
)
from oneshot.core.scheduler import achievement_notification, plan_notification, rank
from oneshot.core.store import StoreGroup
from oneshot.core.store.transaction import (
    append_events_and_update_states,
    claim_due_notifications,
)
from pydantic import BaseModel, Field

log = structlog.get_logger()

# 仪表盘展示的最近成就数
RECENT_ACHIEVEMENTS_LIMIT = 3


def determine_phase(completion_pct: float) -> JourneyPhase:
    """profile 完成度 < 30 onboarding，< 70 building，否则 active"""
    if completion_pct < 30:
        return JourneyPhase.ONBOARDING
    if completion_pct < 70:
        return JourneyPhase.BUILDING
    return JourneyPhase.ACTIVE


class JourneyEvaluation(BaseModel):
    """一次评估的结果"""

    journey: Journey
    evaluated: list[EvaluatedTask]
    ranked: list[RankedTask]
    notification: Notification | None = None
    new_achievements: list[str] = Field(default_factory=list)


class TaskActionResult(BaseModel):
    """完成/忽略任务的结果"""

    state: TaskState
    changed: bool = Field(description="False 表示重复操作（无副作用）")
    new_achievements: list[str] = Field(default_factory=list)


class Dashboard(BaseModel):
    """仪表盘 "What's Next" 数据"""

    phase: JourneyPhase
    completion_pct: float
    has_blocking_tasks: bool
    next_tasks: list[RankedTask]
    achievements: list[AwardedAchievement]
    generated_at: datetime | None = None


class SharingStatus(BaseModel):
    can_share: bool
    blocking_task_keys: list[str]
    evaluated: bool = Field(description="用户是否已有评估记录")


class JourneyService:
    """招募旅程业务服务"""

    _user_locks: dict[str, asyncio.Lock] = {}
    _user_locks_guard = asyncio.Lock()
    _max_user_seq_retries = 3

    def __init__(
        self,
        store_group: StoreGroup,
        catalog: Catalog,
        config: EngineConfig | None = None,
        sse_hub=None,
    ) -> None:
        self._stores = store_group
        self._catalog = catalog
        self._config = config or EngineConfig()
        self._sse_hub = sse_hub
        self._achievements = AchievementTracker(store_group, catalog)

    @property
    def next_tasks_limit(self) -> int:
        return self._config.next_tasks_limit

    # ------------------------------------------------------------------
    # 评估
    # ------------------------------------------------------------------

    async def evaluate_journey(
        self,
        user_id: str,
        snapshot: UserProfileSnapshot,
        now: datetime | None = None,
    ) -> JourneyEvaluation:
        """评估用户快照并持久化结果"""
        now = now or datetime.now(UTC)
        snapshot = snapshot.model_copy(update={"user_id": user_id})

        lock = await self._get_user_lock(user_id)
        async with lock:
            states = await self._stores.task_state_store.get_states_map(user_id)
            previous = await self._stores.journey_store.get_journey(user_id)
            journey = previous or Journey(user_id=user_id)

            engagement = resolve_engagement(snapshot, journey.last_activity_at, now)
            evaluated = evaluate(snapshot, self._catalog, now, states, engagement)
            events_now = active_events(
                self._catalog.seasonal_events.values(), now, snapshot.sport, snapshot.role
            )
            ranked = rank(triggered_tasks(evaluated), events_now, now)
            notification = plan_notification(
                user_id,
                ranked,
                states,
                engagement,
                journey.last_notified_at,
                now,
                self._config,
            )
            if notification is not None and notification.scheduled_for <= now:
                notification = notification.model_copy(update={"delivered_at": now})

            shown_keys = [r.task_key for r in ranked[: self._config.next_tasks_limit]]
            new_states, transitions = self._next_states(
                user_id, evaluated, states, set(shown_keys), now
            )

            completion_pct = float(snapshot.completion_pct or 0)
            has_blocking = bool(blocking_task_keys(evaluated))
            updated_journey = journey.model_copy(
                update={
                    "phase": determine_phase(completion_pct),
                    "completion_pct": completion_pct,
                    "has_blocking_tasks": has_blocking,
                    "generated_at": now,
                    "generation_version": journey.generation_version + 1,
                    "sport": snapshot.sport,
                    "role": snapshot.role,
                    "last_notified_at": (
                        now if notification is not None else journey.last_notified_at
                    ),
                }
            )

            evaluated_payload = JourneyEvaluatedPayload(
                generation_version=updated_journey.generation_version,
                phase=updated_journey.phase.value,
                completion_pct=completion_pct,
                triggered_count=len(ranked),
                has_blocking_tasks=has_blocking,
                top_task_key=ranked[0].task_key if ranked else None,
                triggered_task_keys=[e.task_key for e in evaluated if e.triggered],
                shown_task_keys=shown_keys,
                sport=snapshot.sport,
                role=snapshot.role,
            )

            def build_events(seq: int) -> list[ProgressEvent]:
                events = [
                    build_event(
                        user_id=user_id,
                        user_seq=seq + i,
                        event_type=EventType.TASK_TRIGGERED,
                        ts=now,
                        task_key=task_key,
                        payload=payload.model_dump(),
                    )
                    for i, (task_key, payload) in enumerate(transitions)
                ]
                seq += len(events)
                events.append(
                    build_event(
                        user_id=user_id,
                        user_seq=seq,
                        event_type=EventType.JOURNEY_EVALUATED,
                        ts=now,
                        payload=evaluated_payload.model_dump(),
                    )
                )
                if notification is not None:
                    events.append(
                        self._notification_event(user_id, seq + 1, notification, now)
                    )
                return events

            await self._commit_with_retry(
                user_id,
                build_events,
                states=new_states,
                journey=updated_journey,
                notifications=[notification] if notification is not None else [],
            )

            await log.ainfo(
                "journey_evaluated",
                user_id=user_id,
                generation_version=updated_journey.generation_version,
                triggered_count=len(ranked),
                has_blocking_tasks=has_blocking,
                notification_template=(
                    notification.template.value if notification is not None else None
                ),
            )

            new_achievements = await self._achievements.check(user_id, now)
            achievement_notes = await self._notify_achievements(
                user_id, new_achievements, now
            )
            # 之前规划、现已到期的通知随本次评估一起推送
            due_notes = await claim_due_notifications(
                self._stores.conn, self._stores.notification_store, user_id, now
            )

        if notification is not None and notification.delivered_at is not None:
            await self._broadcast(user_id, notification)
        for note in [*achievement_notes, *due_notes]:
            await self._broadcast(user_id, note)

        return JourneyEvaluation(
            journey=updated_journey,
            evaluated=evaluated,
            ranked=ranked,
            notification=notification,
            new_achievements=new_achievements,
        )

    @staticmethod
    def _next_states(
        user_id: str,
        evaluated: list[EvaluatedTask],
        states: dict[str, TaskState],
        shown: set[str],
        now: datetime,
    ) -> tuple[list[TaskState], list[tuple[str, TaskTransitionPayload]]]:
        """计算需要写入的状态变化与新触发任务"""
        new_states: list[TaskState] = []
        transitions: list[tuple[str, TaskTransitionPayload]] = []

        for item in evaluated:
            previous = states.get(item.task_key)
            from_status = previous.status if previous is not None else TaskStatus.LOCKED
            to_status = item.status
            is_shown = item.task_key in shown

            if from_status != to_status and not validate_transition(from_status, to_status):
                log.warning(
                    "task_transition_skipped",
                    user_id=user_id,
                    task_key=item.task_key,
                    from_status=from_status.value,
                    to_status=to_status.value,
                )
                to_status = from_status

            if from_status == to_status and not is_shown:
                continue

            base = previous or TaskState(
                user_id=user_id, task_key=item.task_key, updated_at=now
            )
            update: dict = {"status": to_status, "updated_at": now}
            if to_status == TaskStatus.TRIGGERED and from_status != TaskStatus.TRIGGERED:
                update["triggered_at"] = now
                transitions.append(
                    (
                        item.task_key,
                        TaskTransitionPayload(
                            from_status=from_status,
                            to_status=to_status,
                            reason="triggers_matched",
                        ),
                    )
                )
            if is_shown:
                update["last_shown_at"] = now
            new_states.append(base.model_copy(update=update))

        return new_states, transitions

    # ------------------------------------------------------------------
    # 任务操作
    # ------------------------------------------------------------------

    async def complete_task(
        self,
        user_id: str,
        task_key: str,
        now: datetime | None = None,
    ) -> TaskActionResult:
        """完成任务；重复完成为 no-op

        Raises:
            TaskNotFoundError: 目录中不存在该任务
            InvalidTaskTransitionError: 依赖未满足或任务已忽略
        """
        return await self._finish_task(user_id, task_key, TaskStatus.COMPLETED, now)

    async def dismiss_task(
        self,
        user_id: str,
        task_key: str,
        now: datetime | None = None,
    ) -> TaskActionResult:
        """忽略任务；blocking 任务不可忽略，重复忽略为 no-op

        Raises:
            TaskNotFoundError: 目录中不存在该任务
            InvalidTaskTransitionError: blocking 任务、依赖未满足或任务已完成
        """
        return await self._finish_task(user_id, task_key, TaskStatus.DISMISSED, now)

    async def _finish_task(
        self,
        user_id: str,
        task_key: str,
        to_status: TaskStatus,
        now: datetime | None,
    ) -> TaskActionResult:
        now = now or datetime.now(UTC)
        definition = self._require_task(task_key)

        lock = await self._get_user_lock(user_id)
        async with lock:
            states = await self._stores.task_state_store.get_states_map(user_id)
            previous = states.get(task_key)
            from_status = self._effective_status(definition, previous, states)

            if to_status == TaskStatus.DISMISSED and definition.blocks_sharing:
                raise InvalidTaskTransitionError(
                    task_key,
                    from_status.value,
                    to_status.value,
                    reason="blocking tasks cannot be dismissed",
                )

            if from_status == to_status and previous is not None:
                return TaskActionResult(state=previous, changed=False)

            if not validate_transition(from_status, to_status):
                raise InvalidTaskTransitionError(
                    task_key, from_status.value, to_status.value
                )

            base = previous or TaskState(user_id=user_id, task_key=task_key, updated_at=now)
            update: dict = {"status": to_status, "updated_at": now}
            if to_status == TaskStatus.COMPLETED:
                update["completed_at"] = now
            new_state = base.model_copy(update=update)
            states[task_key] = new_state

            journey = await self._stores.journey_store.get_journey(user_id)
            journey = (journey or Journey(user_id=user_id)).model_copy(
                update={
                    "last_activity_at": now,
                    "has_blocking_tasks": bool(self._stored_blocking_keys(states)),
                }
            )

            event_type = (
                EventType.TASK_COMPLETED
                if to_status == TaskStatus.COMPLETED
                else EventType.TASK_DISMISSED
            )
            payload = TaskTransitionPayload(
                from_status=from_status,
                to_status=to_status,
                reason="user_action",
            )

            def build_events(seq: int) -> list[ProgressEvent]:
                return [
                    build_event(
                        user_id=user_id,
                        user_seq=seq,
                        event_type=event_type,
                        ts=now,
                        actor=ActorType.USER,
                        task_key=task_key,
                        payload=payload.model_dump(),
                        idempotency_key=f"{to_status.value.lower()}:{user_id}:{task_key}",
                    )
                ]

            await self._commit_with_retry(
                user_id, build_events, states=[new_state], journey=journey
            )

            await log.ainfo(
                "task_status_changed",
                user_id=user_id,
                task_key=task_key,
                from_status=from_status.value,
                to_status=to_status.value,
            )

            new_achievements: list[str] = []
            achievement_notes: list[Notification] = []
            if to_status == TaskStatus.COMPLETED:
                new_achievements = await self._achievements.on_task_completed(
                    user_id, task_key, now
                )
                achievement_notes = await self._notify_achievements(
                    user_id, new_achievements, now
                )

        for note in achievement_notes:
            await self._broadcast(user_id, note)

        return TaskActionResult(
            state=new_state, changed=True, new_achievements=new_achievements
        )

    def _effective_status(
        self,
        definition: TaskDefinition,
        previous: TaskState | None,
        states: dict[str, TaskState],
    ) -> TaskStatus:
        """已存储状态；未评估过的 LOCKED 任务在依赖全部完成时视为 UNLOCKED"""
        status = previous.status if previous is not None else TaskStatus.LOCKED
        if status != TaskStatus.LOCKED:
            return status
        completed = {k for k, s in states.items() if s.status == TaskStatus.COMPLETED}
        if all(dep in completed for dep in definition.dependencies):
            return TaskStatus.UNLOCKED
        return status

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    async def get_dashboard(
        self,
        user_id: str,
        now: datetime | None = None,
    ) -> Dashboard:
        """基于已存储状态的仪表盘（不重新评估）"""
        now = now or datetime.now(UTC)
        journey = await self._stores.journey_store.get_journey(user_id)
        states = await self._stores.task_state_store.get_states_map(user_id)

        stored_triggered: list[EvaluatedTask] = []
        for key, state in states.items():
            definition = self._catalog.get_task(key)
            if state.status != TaskStatus.TRIGGERED or definition is None:
                continue
            if not definition.is_active:
                continue
            stored_triggered.append(
                EvaluatedTask(
                    task=definition,
                    status=TaskStatus.TRIGGERED,
                    unlocked=True,
                    triggered=True,
                    blocking=definition.blocks_sharing,
                )
            )
        # 与评估时一致：只计入适用于该用户的季节事件
        events_now = active_events(
            self._catalog.seasonal_events.values(),
            now,
            journey.sport if journey else None,
            journey.role if journey else None,
        )
        ranked = rank(stored_triggered, events_now, now)
        achievements = await self._stores.achievement_store.list_achievements(
            user_id, limit=RECENT_ACHIEVEMENTS_LIMIT
        )

        if journey is None:
            return Dashboard(
                phase=JourneyPhase.ONBOARDING,
                completion_pct=0.0,
                has_blocking_tasks=False,
                next_tasks=ranked[: self._config.next_tasks_limit],
                achievements=achievements,
            )

        return Dashboard(
            phase=journey.phase,
            completion_pct=journey.completion_pct,
            has_blocking_tasks=journey.has_blocking_tasks,
            next_tasks=ranked[: self._config.next_tasks_limit],
            achievements=achievements,
            generated_at=journey.generated_at,
        )

    async def sharing_status(self, user_id: str) -> SharingStatus:
        """profile 可见性闸门输入：任一 blocking 任务处于 TRIGGERED 即不可分享"""
        states = await self._stores.task_state_store.get_states_map(user_id)
        journey = await self._stores.journey_store.get_journey(user_id)
        keys = self._stored_blocking_keys(states)
        return SharingStatus(
            can_share=not keys,
            blocking_task_keys=keys,
            evaluated=journey is not None and journey.generated_at is not None,
        )

    async def list_task_states(self, user_id: str) -> list[tuple[TaskState, TaskDefinition]]:
        """用户任务状态（附带目录定义），按目录拓扑序"""
        states = await self._stores.task_state_store.get_states_map(user_id)
        return [
            (states[key], self._catalog.tasks[key])
            for key in self._catalog.order
            if key in states
        ]

    async def list_notifications(self, user_id: str, limit: int = 50) -> list[Notification]:
        return await self._stores.notification_store.list_notifications(user_id, limit)

    async def deliver_due(
        self,
        user_id: str,
        now: datetime | None = None,
    ) -> list[Notification]:
        """推送已到期但尚未推送的通知（SSE 连接建立时调用）"""
        now = now or datetime.now(UTC)
        lock = await self._get_user_lock(user_id)
        async with lock:
            due = await claim_due_notifications(
                self._stores.conn, self._stores.notification_store, user_id, now
            )
        for note in due:
            await self._broadcast(user_id, note)
        if due:
            await log.ainfo(
                "deferred_notifications_delivered", user_id=user_id, count=len(due)
            )
        return due

    # ------------------------------------------------------------------
    # 内部工具
    # ------------------------------------------------------------------

    def _require_task(self, task_key: str) -> TaskDefinition:
        definition = self._catalog.get_task(task_key)
        if definition is None:
            raise TaskNotFoundError(task_key)
        return definition

    def _stored_blocking_keys(self, states: dict[str, TaskState]) -> list[str]:
        keys = []
        for key in self._catalog.order:
            state = states.get(key)
            if state is not None and state.status == TaskStatus.TRIGGERED:
                if self._catalog.tasks[key].blocks_sharing:
                    keys.append(key)
        return keys

    @staticmethod
    def _notification_event(
        user_id: str,
        seq: int,
        notification: Notification,
        now: datetime,
    ) -> ProgressEvent:
        payload = NotificationScheduledPayload(
            notification_id=notification.notification_id,
            template=notification.template,
            scheduled_for=notification.scheduled_for.isoformat(),
            priority=notification.priority,
        )
        return build_event(
            user_id=user_id,
            user_seq=seq,
            event_type=EventType.NOTIFICATION_SCHEDULED,
            ts=now,
            task_key=notification.task_key,
            payload=payload.model_dump(),
        )

    async def _notify_achievements(
        self,
        user_id: str,
        achievement_keys: list[str],
        now: datetime,
    ) -> list[Notification]:
        """为新授予的成就写入 achievement 通知（不占用通知节奏）"""
        notes = [
            achievement_notification(
                user_id, self._catalog.achievements[key], now
            ).model_copy(update={"delivered_at": now})
            for key in achievement_keys
        ]
        if not notes:
            return []

        def build_events(seq: int) -> list[ProgressEvent]:
            return [
                self._notification_event(user_id, seq + i, note, now)
                for i, note in enumerate(notes)
            ]

        await self._commit_with_retry(user_id, build_events, notifications=notes)
        return notes

    async def _commit_with_retry(
        self,
        user_id: str,
        build_events: Callable[[int], list[ProgressEvent]],
        states: list[TaskState] | None = None,
        journey: Journey | None = None,
        notifications: list[Notification] | None = None,
    ) -> list[ProgressEvent]:
        """单事务写入，user_seq 冲突（跨进程并发写）时重新分配序号重试"""
        for attempt in range(1, self._max_user_seq_retries + 1):
            seq = await self._stores.event_store.get_next_user_seq(user_id)
            events = build_events(seq)
            try:
                await append_events_and_update_states(
                    self._stores.conn,
                    self._stores.event_store,
                    self._stores.task_state_store,
                    events,
                    states or [],
                    journey_store=self._stores.journey_store,
                    journey=journey,
                    notification_store=self._stores.notification_store,
                    notifications=notifications or [],
                )
                return events
            except aiosqlite.IntegrityError as e:
                if not self._is_user_seq_conflict(e) or attempt >= self._max_user_seq_retries:
                    raise
                await log.awarning(
                    "user_seq_conflict_retry",
                    user_id=user_id,
                    attempt=attempt,
                )
        raise RuntimeError("unreachable")

    @staticmethod
    def _is_user_seq_conflict(error: Exception) -> bool:
        text = str(error)
        return "idx_events_user_seq" in text or "progress_events.user_id, progress_events.user_seq" in text

    async def _broadcast(self, user_id: str, notification: Notification) -> None:
        if self._sse_hub is not None:
            await self._sse_hub.broadcast(user_id, notification)

    @classmethod
    async def _get_user_lock(cls, user_id: str) -> asyncio.Lock:
        """获取 user 级别锁，序列化同一用户的写入。"""
        async with cls._user_locks_guard:
            lock = cls._user_locks.get(user_id)
            if lock is None:
                lock = asyncio.Lock()
                cls._user_locks[user_id] = lock
            return lock

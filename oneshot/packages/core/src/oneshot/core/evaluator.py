"""Eligibility Evaluator -- 计算用户当前可执行的任务

evaluate() 是 (catalog, snapshot, now, task_states) 的纯函数：
1. 按 sport/role 过滤已启用任务
2. 依赖闭包检查：所有依赖必须在用户已完成集合中
3. 触发条件 AND 组合求值（无条件时依赖满足即触发）
4. 已完成/已忽略任务不再触发
5. blocking = blocks_sharing 且已触发
"""

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime

from .calendar import is_event_active
from .catalog import Catalog
from .exceptions import DanglingDependencyError, UnknownPredicateError
from .models.catalog import SeasonalEvent, TaskDefinition
from .models.enums import EngagementLevel, TaskStatus
from .models.evaluation import EvaluatedTask
from .models.snapshot import UserProfileSnapshot
from .models.task_state import TaskState
from .models.triggers import (
    EngagementPredicate,
    FieldMissingPredicate,
    GraduationProximityPredicate,
    ProfileCompletionPredicate,
    RolePredicate,
    SeasonalPredicate,
)


@dataclass(frozen=True)
class EvaluationContext:
    """单次评估的只读上下文"""

    snapshot: UserProfileSnapshot
    now: datetime
    seasonal_events: Mapping[str, SeasonalEvent]
    engagement: EngagementLevel


def derive_engagement(
    days_since_last_activity: int | None,
) -> EngagementLevel:
    """根据距上次活动天数推断活跃度：<=3 high，<=14 medium，否则 low；无记录为 medium"""
    if days_since_last_activity is None:
        return EngagementLevel.MEDIUM
    if days_since_last_activity <= 3:
        return EngagementLevel.HIGH
    if days_since_last_activity <= 14:
        return EngagementLevel.MEDIUM
    return EngagementLevel.LOW


def resolve_engagement(
    snapshot: UserProfileSnapshot,
    last_activity_at: datetime | None,
    now: datetime,
) -> EngagementLevel:
    """快照提供 engagement_level 时直接使用，否则按最近活动时间推断"""
    if snapshot.engagement_level is not None:
        return snapshot.engagement_level
    if last_activity_at is None:
        return derive_engagement(None)
    return derive_engagement(max((now - last_activity_at).days, 0))


def _field_missing(predicate: FieldMissingPredicate, ctx: EvaluationContext) -> bool:
    return any(ctx.snapshot.is_field_missing(field) for field in predicate.fields)


def _profile_completion(predicate: ProfileCompletionPredicate, ctx: EvaluationContext) -> bool:
    pct = ctx.snapshot.completion_pct
    if pct is None:
        return False
    if predicate.comparison == "less_than":
        return pct < predicate.threshold
    return pct > predicate.threshold


def _graduation_proximity(
    predicate: GraduationProximityPredicate, ctx: EvaluationContext
) -> bool:
    year = ctx.snapshot.graduation_year
    if year is None:
        return False
    return year - ctx.now.year <= predicate.years_threshold


def _role(predicate: RolePredicate, ctx: EvaluationContext) -> bool:
    return ctx.snapshot.role in predicate.roles


def _seasonal(predicate: SeasonalPredicate, ctx: EvaluationContext) -> bool:
    for event_key in predicate.events:
        event = ctx.seasonal_events.get(event_key)
        if event is not None and is_event_active(
            event, ctx.now, ctx.snapshot.sport, ctx.snapshot.role
        ):
            return True
    return False


def _engagement(predicate: EngagementPredicate, ctx: EvaluationContext) -> bool:
    return ctx.engagement in predicate.levels


_PREDICATE_EVALUATORS: dict[str, Callable] = {
    "fieldMissing": _field_missing,
    "profileCompletion": _profile_completion,
    "graduationProximity": _graduation_proximity,
    "role": _role,
    "seasonal": _seasonal,
    "engagement": _engagement,
}


def evaluate_triggers(task: TaskDefinition, ctx: EvaluationContext) -> bool:
    """AND 组合求值；无触发条件视为恒真

    Raises:
        UnknownPredicateError: predicate kind 没有对应的求值函数
    """
    for predicate in task.triggers:
        evaluator = _PREDICATE_EVALUATORS.get(predicate.kind)
        if evaluator is None:
            raise UnknownPredicateError(predicate.kind, task.task_key)
        if not evaluator(predicate, ctx):
            return False
    return True


def dependencies_satisfied(
    task: TaskDefinition,
    completed: set[str],
    known_keys: Mapping[str, TaskDefinition],
) -> bool:
    """依赖闭包检查

    Raises:
        DanglingDependencyError: 依赖 key 不在目录中（目录未经校验）
    """
    for dep in task.dependencies:
        if dep not in known_keys:
            raise DanglingDependencyError(task.task_key, dep)
        if dep not in completed:
            return False
    return True


def _states_by_key(task_states: Iterable[TaskState] | Mapping[str, TaskState] | None):
    if task_states is None:
        return {}
    if isinstance(task_states, Mapping):
        return dict(task_states)
    return {state.task_key: state for state in task_states}


def evaluate(
    snapshot: UserProfileSnapshot,
    catalog: Catalog,
    now: datetime,
    task_states: Iterable[TaskState] | Mapping[str, TaskState] | None = None,
    engagement: EngagementLevel | None = None,
) -> list[EvaluatedTask]:
    """评估用户快照，返回适用任务的评估结果（按目录拓扑序）

    Args:
        snapshot: 用户 profile 快照
        catalog: 已校验的目录
        now: 评估时间
        task_states: 用户已有任务状态（提供已完成/已忽略集合）
        engagement: 已解析的活跃度；None 时取快照值，快照也无则为 medium
    """
    states = _states_by_key(task_states)
    completed = {k for k, s in states.items() if s.status == TaskStatus.COMPLETED}
    dismissed = {k for k, s in states.items() if s.status == TaskStatus.DISMISSED}

    ctx = EvaluationContext(
        snapshot=snapshot,
        now=now,
        seasonal_events=catalog.seasonal_events,
        engagement=engagement or snapshot.engagement_level or EngagementLevel.MEDIUM,
    )

    results: list[EvaluatedTask] = []
    for task in catalog.ordered_tasks():
        if not task.is_active or not task.applies_to(snapshot.sport, snapshot.role):
            continue

        unlocked = dependencies_satisfied(task, completed, catalog.tasks)

        if task.task_key in completed:
            status = TaskStatus.COMPLETED
            triggered = False
        elif task.task_key in dismissed:
            status = TaskStatus.DISMISSED
            triggered = False
        elif not unlocked:
            status = TaskStatus.LOCKED
            triggered = False
        else:
            triggered = evaluate_triggers(task, ctx)
            status = TaskStatus.TRIGGERED if triggered else TaskStatus.UNLOCKED

        results.append(
            EvaluatedTask(
                task=task,
                status=status,
                unlocked=unlocked,
                triggered=triggered,
                blocking=triggered and task.blocks_sharing,
            )
        )

    return results


def triggered_tasks(evaluated: Iterable[EvaluatedTask]) -> list[EvaluatedTask]:
    """筛选已触发任务"""
    return [e for e in evaluated if e.triggered]


def is_sharing_blocked(evaluated: Iterable[EvaluatedTask]) -> bool:
    """profile 可见性闸门：任一 blocking 任务触发中即不可公开分享"""
    return any(e.blocking for e in evaluated)


def blocking_task_keys(evaluated: Iterable[EvaluatedTask]) -> list[str]:
    return [e.task_key for e in evaluated if e.blocking]

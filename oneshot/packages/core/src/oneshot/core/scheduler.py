"""Priority/Notification Scheduler -- 任务排序与通知规划

rank() 对已触发任务打分排序：
  score = 基础分(critical 4 / high 3 / medium 2 / low 1)
        + urgency_boost（当前月份在 peak_months 内）
        + 任务 seasonal 触发条件引用的生效事件中最大的 priority_boost
  排序键：blocking 优先 -> score 降序 -> estimated_time_minutes 升序 -> task_key

plan_notification() 每次评估至多产出一条通知，critical 模板不受节奏限制。
"""

from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta

from ulid import ULID

from .calendar import is_peak_month
from .config import TASK_CTA_URL_PREFIX, EngineConfig
from .models.catalog import AchievementDefinition, SeasonalEvent
from .models.enums import (
    PRIORITY_SCORES,
    EngagementLevel,
    NotificationTemplate,
    TaskPriority,
)
from .models.evaluation import EvaluatedTask, RankedTask
from .models.notification import Notification
from .models.task_state import TaskState
from .seed import NOTIFICATION_TEMPLATES

# 通知优先级（1-10）
NOTIFICATION_PRIORITIES: dict[TaskPriority, int] = {
    TaskPriority.CRITICAL: 8,
    TaskPriority.HIGH: 6,
    TaskPriority.MEDIUM: 4,
    TaskPriority.LOW: 2,
}

ACHIEVEMENT_NOTIFICATION_PRIORITY = 5


def _event_boost(
    task_event_keys: list[str],
    active: Mapping[str, SeasonalEvent],
) -> tuple[int, str | None]:
    """任务引用的生效事件中取最大 priority_boost"""
    best: SeasonalEvent | None = None
    for key in task_event_keys:
        event = active.get(key)
        if event is not None and (best is None or event.priority_boost > best.priority_boost):
            best = event
    if best is None:
        return 0, None
    return best.priority_boost, best.title


def rank(
    triggered: Iterable[EvaluatedTask],
    active_events: Iterable[SeasonalEvent],
    now: datetime,
) -> list[RankedTask]:
    """对已触发任务打分并排序"""
    active = {event.event_key: event for event in active_events}
    ranked: list[RankedTask] = []

    for evaluated in triggered:
        task = evaluated.task
        boost = 0
        season_name: str | None = None

        relevance = task.seasonal_relevance
        if relevance is not None and is_peak_month(relevance.peak_months, now):
            boost += relevance.urgency_boost
            season_name = now.strftime("%B")

        event_boost, event_title = _event_boost(task.seasonal_event_keys(), active)
        if event_boost:
            boost += event_boost
            season_name = event_title

        ranked.append(
            RankedTask(
                task=task,
                blocking=evaluated.blocking,
                score=PRIORITY_SCORES[task.priority] + boost,
                seasonal_boost=boost,
                season_name=season_name if boost else None,
            )
        )

    ranked.sort(
        key=lambda r: (
            not r.blocking,
            -r.score,
            r.task.estimated_time_minutes,
            r.task_key,
        )
    )
    return ranked


def select_template(
    ranked_task: RankedTask,
    task_state: TaskState | None,
    now: datetime,
    reminder_after_days: int = 7,
) -> NotificationTemplate:
    """为排序后的任务选择通知模板

    reminder：上次展示距今 >= reminder_after_days 天
    critical：blocking 且从未展示
    seasonal：有季节加成
    nudge：其余情况
    """
    last_shown = task_state.last_shown_at if task_state is not None else None

    if last_shown is not None and (now - last_shown).days >= reminder_after_days:
        return NotificationTemplate.REMINDER
    if ranked_task.blocking and last_shown is None:
        return NotificationTemplate.CRITICAL
    if ranked_task.seasonal_boost > 0:
        return NotificationTemplate.SEASONAL
    return NotificationTemplate.NUDGE


def notification_priority(priority: TaskPriority, blocking: bool) -> int:
    """任务优先级映射为通知优先级，blocking +1，上限 10"""
    value = NOTIFICATION_PRIORITIES[priority] + (1 if blocking else 0)
    return min(value, 10)


def notification_delay(
    engagement: EngagementLevel, config: EngineConfig
) -> timedelta:
    """按活跃度决定通知间隔"""
    hours = config.notification_delay_hours.get(str(engagement), 24)
    return timedelta(hours=hours)


def render_notification(
    user_id: str,
    ranked_task: RankedTask,
    template: NotificationTemplate,
    scheduled_for: datetime,
    now: datetime,
    days_since: int | None = None,
) -> Notification:
    """使用模板文案渲染任务通知"""
    texts = NOTIFICATION_TEMPLATES[str(template)]
    task = ranked_task.task
    values = {
        "task_title": task.title,
        "estimated_time": task.estimated_time_minutes,
        "season_name": ranked_task.season_name or "recruiting season",
        "days_since": days_since if days_since is not None else 0,
    }
    return Notification(
        notification_id=str(ULID()),
        user_id=user_id,
        task_key=task.task_key,
        template=template,
        title=texts["title"].format(**values),
        message=texts["message"].format(**values),
        cta_text=texts["cta_text"],
        cta_url=f"{TASK_CTA_URL_PREFIX}/{task.task_key}",
        scheduled_for=scheduled_for,
        priority=notification_priority(task.priority, ranked_task.blocking),
        created_at=now,
    )


def plan_notification(
    user_id: str,
    ranked: list[RankedTask],
    task_states: Mapping[str, TaskState],
    engagement: EngagementLevel,
    last_notified_at: datetime | None,
    now: datetime,
    config: EngineConfig,
) -> Notification | None:
    """为排名第一的任务规划一条通知

    critical 通知与用户的第一条通知立即投递；其余通知需距上次通知满一个
    节奏间隔，投递时间为 now + 间隔。

    Returns:
        Notification，或 None（无已触发任务 / 处于节奏间隔内）
    """
    if not ranked:
        return None

    top = ranked[0]
    state = task_states.get(top.task_key)
    template = select_template(top, state, now, config.reminder_after_days)

    if template == NotificationTemplate.CRITICAL or last_notified_at is None:
        scheduled_for = now
    else:
        delay = notification_delay(engagement, config)
        if now < last_notified_at + delay:
            return None
        scheduled_for = now + delay

    days_since = None
    if state is not None and state.last_shown_at is not None:
        days_since = (now - state.last_shown_at).days

    return render_notification(
        user_id, top, template, scheduled_for, now, days_since=days_since
    )


def achievement_notification(
    user_id: str,
    achievement: AchievementDefinition,
    now: datetime,
) -> Notification:
    """成就授予后的即时通知"""
    texts = NOTIFICATION_TEMPLATES[str(NotificationTemplate.ACHIEVEMENT)]
    values = {
        "achievement_title": achievement.title,
        "achievement_description": achievement.description,
    }
    return Notification(
        notification_id=str(ULID()),
        user_id=user_id,
        task_key=None,
        template=NotificationTemplate.ACHIEVEMENT,
        title=texts["title"].format(**values),
        message=texts["message"].format(**values),
        cta_text=texts["cta_text"],
        cta_url="/dashboard",
        scheduled_for=now,
        priority=ACHIEVEMENT_NOTIFICATION_PRIORITY,
        created_at=now,
    )

"""ProgressEvent Payload 子类型

所有事件的结构化 payload 定义。
"""

from pydantic import BaseModel, Field

from .enums import NotificationTemplate, TaskStatus


class TaskTransitionPayload(BaseModel):
    """TASK_TRIGGERED / TASK_COMPLETED / TASK_DISMISSED 事件 payload"""

    from_status: TaskStatus
    to_status: TaskStatus
    reason: str = Field(default="")


class AchievementAwardedPayload(BaseModel):
    """ACHIEVEMENT_AWARDED 事件 payload"""

    achievement_key: str
    title: str
    trigger_task_key: str | None = Field(default=None)


class JourneyEvaluatedPayload(BaseModel):
    """JOURNEY_EVALUATED 事件 payload"""

    generation_version: int
    phase: str
    completion_pct: float
    triggered_count: int
    has_blocking_tasks: bool
    top_task_key: str | None = Field(default=None)
    triggered_task_keys: list[str] = Field(
        default_factory=list, description="本次评估后处于 TRIGGERED 的任务"
    )
    shown_task_keys: list[str] = Field(
        default_factory=list, description="本次评估展示给用户的任务（更新 last_shown_at）"
    )
    sport: str | None = Field(default=None)
    role: str | None = Field(default=None)


class NotificationScheduledPayload(BaseModel):
    """NOTIFICATION_SCHEDULED 事件 payload"""

    notification_id: str
    template: NotificationTemplate
    scheduled_for: str
    priority: int

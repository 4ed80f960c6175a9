"""TaskState / Journey / AwardedAchievement Domain Models

task_states 表按 (user_id, task_key) 记录单任务状态，只能经由评估器的
流转规则修改；journeys 表是每个用户的评估元数据汇总。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import JourneyPhase, TaskStatus


class TaskState(BaseModel):
    """单用户单任务状态"""

    user_id: str = Field(description="用户 ID")
    task_key: str = Field(description="任务 key")
    status: TaskStatus = Field(default=TaskStatus.LOCKED, description="当前状态")
    triggered_at: datetime | None = Field(default=None, description="首次触发时间")
    last_shown_at: datetime | None = Field(default=None, description="最近一次展示时间")
    completed_at: datetime | None = Field(default=None, description="完成时间")
    updated_at: datetime = Field(description="更新时间")
    version: int = Field(default=1, description="写入次数（last-writer-wins）")


class Journey(BaseModel):
    """用户招募旅程汇总"""

    user_id: str
    phase: JourneyPhase = Field(default=JourneyPhase.ONBOARDING)
    completion_pct: float = Field(default=0.0)
    has_blocking_tasks: bool = Field(default=False)
    last_activity_at: datetime | None = Field(default=None, description="最近一次用户操作")
    last_notified_at: datetime | None = Field(default=None, description="最近一次调度通知")
    generated_at: datetime | None = Field(default=None, description="最近一次评估时间")
    generation_version: int = Field(default=0, description="评估次数")
    sport: str | None = Field(default=None, description="最近一次评估快照的运动项目")
    role: str | None = Field(default=None, description="最近一次评估快照的角色")


class AwardedAchievement(BaseModel):
    """已授予的成就（每用户每 key 至多一条）"""

    user_id: str
    achievement_key: str
    title: str
    description: str = Field(default="")
    icon: str = Field(default="")
    trigger_task_key: str | None = Field(default=None, description="触发成就的任务")
    created_at: datetime

"""招募旅程路由

POST /api/users/{user_id}/journey/evaluate: 提交 profile 快照，评估并持久化
GET  /api/users/{user_id}/journey: "What's Next" 仪表盘（基于已存储状态）
GET  /api/users/{user_id}/sharing: profile 可见性闸门输入
"""

from datetime import datetime

from fastapi import APIRouter, Depends
from oneshot.core.models import (
    AwardedAchievement,
    EvaluatedTask,
    Notification,
    RankedTask,
    UserProfileSnapshot,
)
from pydantic import BaseModel

from ..deps import get_journey_service
from ..services.journey_service import JourneyService

router = APIRouter()


class RankedTaskView(BaseModel):
    """排序后任务（仪表盘展示项）"""

    task_key: str
    title: str
    description: str
    why_it_matters: str
    how_to_complete: str
    priority: str
    estimated_time_minutes: int
    blocking: bool
    score: int
    seasonal_boost: int
    season_name: str | None

    @classmethod
    def from_ranked(cls, ranked: RankedTask) -> "RankedTaskView":
        task = ranked.task
        return cls(
            task_key=task.task_key,
            title=task.title,
            description=task.description,
            why_it_matters=task.why_it_matters,
            how_to_complete=task.how_to_complete,
            priority=task.priority.value,
            estimated_time_minutes=task.estimated_time_minutes,
            blocking=ranked.blocking,
            score=ranked.score,
            seasonal_boost=ranked.seasonal_boost,
            season_name=ranked.season_name,
        )


class EvaluatedTaskView(BaseModel):
    task_key: str
    status: str
    unlocked: bool
    triggered: bool
    blocking: bool

    @classmethod
    def from_evaluated(cls, item: EvaluatedTask) -> "EvaluatedTaskView":
        return cls(
            task_key=item.task_key,
            status=item.status.value,
            unlocked=item.unlocked,
            triggered=item.triggered,
            blocking=item.blocking,
        )


class AchievementView(BaseModel):
    achievement_key: str
    title: str
    description: str
    icon: str
    trigger_task_key: str | None
    created_at: datetime

    @classmethod
    def from_awarded(cls, a: AwardedAchievement) -> "AchievementView":
        return cls(**a.model_dump(exclude={"user_id"}))


class EvaluateResponse(BaseModel):
    """评估响应"""

    user_id: str
    phase: str
    completion_pct: float
    has_blocking_tasks: bool
    can_share: bool
    generation_version: int
    next_tasks: list[RankedTaskView]
    tasks: list[EvaluatedTaskView]
    notification: Notification | None
    new_achievements: list[str]


class DashboardResponse(BaseModel):
    """仪表盘响应"""

    user_id: str
    phase: str
    completion_pct: float
    has_blocking_tasks: bool
    next_tasks: list[RankedTaskView]
    achievements: list[AchievementView]
    generated_at: datetime | None


class SharingResponse(BaseModel):
    user_id: str
    can_share: bool
    blocking_task_keys: list[str]
    evaluated: bool


@router.post(
    "/api/users/{user_id}/journey/evaluate",
    response_model=EvaluateResponse,
)
async def evaluate_journey(
    user_id: str,
    snapshot: UserProfileSnapshot,
    service: JourneyService = Depends(get_journey_service),
):
    """评估 profile 快照

    快照字段类型错误时按缺失处理，不返回 422。
    """
    result = await service.evaluate_journey(user_id, snapshot)
    limit = service.next_tasks_limit
    return EvaluateResponse(
        user_id=user_id,
        phase=result.journey.phase.value,
        completion_pct=result.journey.completion_pct,
        has_blocking_tasks=result.journey.has_blocking_tasks,
        can_share=not result.journey.has_blocking_tasks,
        generation_version=result.journey.generation_version,
        next_tasks=[RankedTaskView.from_ranked(r) for r in result.ranked[:limit]],
        tasks=[EvaluatedTaskView.from_evaluated(e) for e in result.evaluated],
        notification=result.notification,
        new_achievements=result.new_achievements,
    )


@router.get("/api/users/{user_id}/journey", response_model=DashboardResponse)
async def get_dashboard(
    user_id: str,
    service: JourneyService = Depends(get_journey_service),
):
    """仪表盘 "What's Next" 数据"""
    dashboard = await service.get_dashboard(user_id)
    return DashboardResponse(
        user_id=user_id,
        phase=dashboard.phase.value,
        completion_pct=dashboard.completion_pct,
        has_blocking_tasks=dashboard.has_blocking_tasks,
        next_tasks=[RankedTaskView.from_ranked(r) for r in dashboard.next_tasks],
        achievements=[AchievementView.from_awarded(a) for a in dashboard.achievements],
        generated_at=dashboard.generated_at,
    )


@router.get("/api/users/{user_id}/sharing", response_model=SharingResponse)
async def get_sharing_status(
    user_id: str,
    service: JourneyService = Depends(get_journey_service),
):
    status = await service.sharing_status(user_id)
    return SharingResponse(
        user_id=user_id,
        can_share=status.can_share,
        blocking_task_keys=status.blocking_task_keys,
        evaluated=status.evaluated,
    )

"""用户任务路由

GET  /api/users/{user_id}/tasks: 用户任务状态列表
POST /api/users/{user_id}/tasks/{task_key}/complete: 完成任务
POST /api/users/{user_id}/tasks/{task_key}/dismiss: 忽略任务
- 200: 操作成功（重复操作返回 changed=false）
- 404: 目录中不存在该任务
- 409: 状态流转非法（依赖未满足 / 终态 / blocking 任务不可忽略）
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from oneshot.core.exceptions import InvalidTaskTransitionError, TaskNotFoundError
from oneshot.core.models import TaskStatus
from pydantic import BaseModel
from starlette.responses import JSONResponse

from ..deps import get_journey_service
from ..services.journey_service import JourneyService, TaskActionResult

router = APIRouter()


class TaskStateView(BaseModel):
    """用户任务状态"""

    task_key: str
    title: str
    status: str
    blocks_sharing: bool
    triggered_at: datetime | None
    last_shown_at: datetime | None
    completed_at: datetime | None
    updated_at: datetime
    version: int


class TaskListResponse(BaseModel):
    user_id: str
    tasks: list[TaskStateView]


class TaskActionResponse(BaseModel):
    """完成/忽略响应"""

    user_id: str
    task_key: str
    status: str
    changed: bool
    new_achievements: list[str]


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message}},
    )


def _action_response(user_id: str, result: TaskActionResult) -> TaskActionResponse:
    return TaskActionResponse(
        user_id=user_id,
        task_key=result.state.task_key,
        status=result.state.status.value,
        changed=result.changed,
        new_achievements=result.new_achievements,
    )


@router.get("/api/users/{user_id}/tasks", response_model=TaskListResponse)
async def list_user_tasks(
    user_id: str,
    status: TaskStatus | None = Query(default=None, description="按状态筛选"),
    service: JourneyService = Depends(get_journey_service),
):
    """查询用户任务状态，按目录拓扑序"""
    pairs = await service.list_task_states(user_id)
    return TaskListResponse(
        user_id=user_id,
        tasks=[
            TaskStateView(
                task_key=state.task_key,
                title=definition.title,
                status=state.status.value,
                blocks_sharing=definition.blocks_sharing,
                triggered_at=state.triggered_at,
                last_shown_at=state.last_shown_at,
                completed_at=state.completed_at,
                updated_at=state.updated_at,
                version=state.version,
            )
            for state, definition in pairs
            if status is None or state.status == status
        ],
    )


@router.post("/api/users/{user_id}/tasks/{task_key}/complete")
async def complete_task(
    user_id: str,
    task_key: str,
    service: JourneyService = Depends(get_journey_service),
):
    """完成任务，重复完成为 no-op"""
    try:
        result = await service.complete_task(user_id, task_key)
    except TaskNotFoundError as e:
        return _error(404, "TASK_NOT_FOUND", str(e))
    except InvalidTaskTransitionError as e:
        return _error(409, "INVALID_TASK_TRANSITION", str(e))

    return _action_response(user_id, result)


@router.post("/api/users/{user_id}/tasks/{task_key}/dismiss")
async def dismiss_task(
    user_id: str,
    task_key: str,
    service: JourneyService = Depends(get_journey_service),
):
    """忽略任务；blocking 任务返回 409"""
    try:
        result = await service.dismiss_task(user_id, task_key)
    except TaskNotFoundError as e:
        return _error(404, "TASK_NOT_FOUND", str(e))
    except InvalidTaskTransitionError as e:
        return _error(409, "INVALID_TASK_TRANSITION", str(e))

    return _action_response(user_id, result)

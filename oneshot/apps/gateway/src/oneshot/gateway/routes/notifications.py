"""通知查询路由

GET /api/users/{user_id}/notifications: 用户通知，按创建时间倒序
"""

from fastapi import APIRouter, Depends, Query
from oneshot.core.models import Notification
from pydantic import BaseModel

from ..deps import get_journey_service
from ..services.journey_service import JourneyService

router = APIRouter()


class NotificationListResponse(BaseModel):
    user_id: str
    notifications: list[Notification]


@router.get(
    "/api/users/{user_id}/notifications",
    response_model=NotificationListResponse,
)
async def list_notifications(
    user_id: str,
    limit: int = Query(default=50, ge=1, le=200),
    service: JourneyService = Depends(get_journey_service),
):
    notifications = await service.list_notifications(user_id, limit)
    return NotificationListResponse(user_id=user_id, notifications=notifications)

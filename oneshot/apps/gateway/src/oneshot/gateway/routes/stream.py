"""SSE 通知流路由

GET /api/stream/users/{user_id}/notifications: SSE 实时推送用户通知。
支持 Last-Event-ID 断线重连（补发之后的通知）、心跳保活。
"""

import asyncio

from fastapi import APIRouter, Depends, Request
from oneshot.core.config import SSE_HEARTBEAT_INTERVAL
from oneshot.core.models import Notification
from sse_starlette.sse import EventSourceResponse

from ..deps import get_journey_service, get_sse_hub, get_store_group
from ..services.journey_service import JourneyService

router = APIRouter()


def _notification_to_sse(notification: Notification) -> dict:
    return {
        "id": notification.notification_id,
        "event": notification.template.value,
        "data": notification.model_dump_json(),
    }


@router.get("/api/stream/users/{user_id}/notifications")
async def stream_notifications(
    user_id: str,
    request: Request,
    store_group=Depends(get_store_group),
    sse_hub=Depends(get_sse_hub),
    service: JourneyService = Depends(get_journey_service),
):
    """SSE 通知流端点

    1. 携带 Last-Event-ID 时先补发之后已推送过的通知
    2. 推送已到期但尚未推送的延迟通知
    3. 注册到 SSEHub 监听新通知
    4. 心跳保活
    """
    last_event_id = request.headers.get("last-event-id")

    # 先订阅再补发，避免两者之间产生的通知丢失
    queue = await sse_hub.subscribe(user_id)

    async def event_generator():
        sent: set[str] = set()
        try:
            if last_event_id:
                missed = await store_group.notification_store.get_notifications_after(
                    user_id, last_event_id
                )
                for notification in missed:
                    sent.add(notification.notification_id)
                    yield _notification_to_sse(notification)

            # 到期通知经 SSEHub 广播，进入本连接的队列
            await service.deliver_due(user_id)

            while True:
                try:
                    notification = await asyncio.wait_for(
                        queue.get(), timeout=SSE_HEARTBEAT_INTERVAL
                    )
                    if notification.notification_id in sent:
                        continue
                    yield _notification_to_sse(notification)
                except TimeoutError:
                    yield {"comment": "heartbeat"}
        finally:
            await sse_hub.unsubscribe(user_id, queue)

    return EventSourceResponse(event_generator())

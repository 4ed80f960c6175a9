"""Notification Domain Model

调度器产出的待投递通知，由外部推送/邮件服务消费。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import NotificationTemplate


class Notification(BaseModel):
    """待投递通知"""

    notification_id: str = Field(description="唯一标识，ULID 格式")
    user_id: str
    task_key: str | None = Field(default=None, description="关联任务（成就通知为空）")
    template: NotificationTemplate
    title: str
    message: str
    cta_text: str = Field(default="")
    cta_url: str = Field(default="")
    scheduled_for: datetime
    priority: int = Field(default=5, ge=1, le=10, description="1-10，越大越紧急")
    created_at: datetime
    delivered_at: datetime | None = Field(default=None, description="推送时间，未到期的通知为空")

"""ProgressEvent Domain Model

事件表 append-only，不允许更新或删除。
event_id 使用 ULID 格式，时间有序。
user_seq 同一用户内严格单调递增。
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import ActorType, EventType


class EventCausality(BaseModel):
    """事件因果链信息"""

    parent_event_id: str | None = Field(default=None, description="父事件 ID")
    idempotency_key: str | None = Field(
        default=None,
        description="幂等键，带副作用操作（完成任务、授予成就）必填",
    )


class ProgressEvent(BaseModel):
    """用户进度事件"""

    event_id: str = Field(description="唯一标识，ULID 格式，时间有序")
    user_id: str = Field(description="关联用户 ID")
    user_seq: int = Field(description="用户内序号，严格单调递增")
    ts: datetime = Field(description="事件时间戳")
    type: EventType = Field(description="事件类型")
    schema_version: int = Field(default=1, description="Schema 版本号")
    actor: ActorType = Field(description="操作者")
    task_key: str | None = Field(default=None, description="关联任务 key")
    payload: dict[str, Any] = Field(default_factory=dict, description="结构化 payload")
    trace_id: str = Field(description="追踪标识，同一用户共享")
    causality: EventCausality = Field(
        default_factory=EventCausality,
        description="因果链信息",
    )

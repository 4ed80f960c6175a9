"""ProgressEvent 构造辅助"""

from datetime import datetime
from typing import Any

from ulid import ULID

from .models.enums import ActorType, EventType
from .models.event import EventCausality, ProgressEvent


def user_trace_id(user_id: str) -> str:
    """同一用户的事件共享 trace_id"""
    return f"trace-user-{user_id}"


def build_event(
    user_id: str,
    user_seq: int,
    event_type: EventType,
    ts: datetime,
    actor: ActorType = ActorType.SYSTEM,
    task_key: str | None = None,
    payload: dict[str, Any] | None = None,
    idempotency_key: str | None = None,
    parent_event_id: str | None = None,
) -> ProgressEvent:
    return ProgressEvent(
        event_id=str(ULID()),
        user_id=user_id,
        user_seq=user_seq,
        ts=ts,
        type=event_type,
        actor=actor,
        task_key=task_key,
        payload=payload or {},
        trace_id=user_trace_id(user_id),
        causality=EventCausality(
            parent_event_id=parent_event_id,
            idempotency_key=idempotency_key,
        ),
    )

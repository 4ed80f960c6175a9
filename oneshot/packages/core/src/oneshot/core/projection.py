"""Projection 重建模块

从 progress_events 表重建 task_states / journeys 表（物化视图），
确保事件溯源的一致性。支持单事件应用和全量重建两种模式。
"""

import time

import aiosqlite
import structlog

from .models.enums import (
    ActorType,
    EventType,
    JourneyPhase,
    NotificationTemplate,
    TaskStatus,
)
from .models.event import ProgressEvent
from .models.task_state import Journey, TaskState
from .store.protocols import EventStore, JourneyStore, TaskStateStore

log = structlog.get_logger()

_TRANSITION_EVENTS = {
    EventType.TASK_TRIGGERED,
    EventType.TASK_COMPLETED,
    EventType.TASK_DISMISSED,
}

StateMap = dict[tuple[str, str], TaskState]


def _apply_transition(states: StateMap, event: ProgressEvent) -> None:
    key = (event.user_id, event.task_key or "")
    to_status = TaskStatus(event.payload.get("to_status", TaskStatus.TRIGGERED))
    current = states.get(key)
    update: dict = {"status": to_status, "updated_at": event.ts}
    if to_status == TaskStatus.TRIGGERED:
        update["triggered_at"] = event.ts
    elif to_status == TaskStatus.COMPLETED:
        update["completed_at"] = event.ts

    if current is None:
        states[key] = TaskState(
            user_id=event.user_id,
            task_key=event.task_key or "",
            **update,
        )
    else:
        update["version"] = current.version + 1
        states[key] = current.model_copy(update=update)


def _apply_evaluation(
    states: StateMap,
    journeys: dict[str, Journey],
    event: ProgressEvent,
) -> None:
    payload = event.payload
    triggered = set(payload.get("triggered_task_keys", []))
    shown = set(payload.get("shown_task_keys", []))

    for (user_id, task_key), state in list(states.items()):
        if user_id != event.user_id:
            continue
        update: dict = {}
        # 本次评估不再触发的任务回落为 UNLOCKED
        if state.status == TaskStatus.TRIGGERED and task_key not in triggered:
            update["status"] = TaskStatus.UNLOCKED
        if task_key in shown:
            update["last_shown_at"] = event.ts
        if update:
            update["updated_at"] = event.ts
            update["version"] = state.version + 1
            states[(user_id, task_key)] = state.model_copy(update=update)

    journey = journeys.get(event.user_id) or Journey(user_id=event.user_id)
    journeys[event.user_id] = journey.model_copy(
        update={
            "phase": JourneyPhase(payload.get("phase", JourneyPhase.ONBOARDING)),
            "completion_pct": payload.get("completion_pct", 0.0),
            "has_blocking_tasks": payload.get("has_blocking_tasks", False),
            "generated_at": event.ts,
            "generation_version": payload.get(
                "generation_version", journey.generation_version + 1
            ),
            "sport": payload.get("sport"),
            "role": payload.get("role"),
        }
    )


def apply_event(
    states: StateMap,
    journeys: dict[str, Journey],
    event: ProgressEvent,
) -> None:
    """将单个事件应用到内存中的 task_states / journeys

    Args:
        states: (user_id, task_key) -> TaskState（会被就地修改）
        journeys: user_id -> Journey（会被就地修改）
        event: 要应用的事件
    """
    if event.type in _TRANSITION_EVENTS and event.task_key:
        _apply_transition(states, event)
    elif event.type == EventType.JOURNEY_EVALUATED:
        _apply_evaluation(states, journeys, event)
    elif (
        event.type == EventType.NOTIFICATION_SCHEDULED
        and event.payload.get("template") != NotificationTemplate.ACHIEVEMENT
    ):
        # 成就通知不占用通知节奏
        journey = journeys.get(event.user_id) or Journey(user_id=event.user_id)
        journeys[event.user_id] = journey.model_copy(update={"last_notified_at": event.ts})

    if event.actor == ActorType.USER:
        journey = journeys.get(event.user_id) or Journey(user_id=event.user_id)
        journeys[event.user_id] = journey.model_copy(update={"last_activity_at": event.ts})


async def rebuild_all(
    conn: aiosqlite.Connection,
    event_store: EventStore,
    task_state_store: TaskStateStore,
    journey_store: JourneyStore,
) -> int:
    """从 progress_events 表重建 task_states 与 journeys 表

    流程：
    1. 读取所有事件（按 user_id, user_seq 排序）
    2. 在内存中应用所有事件
    3. 清空两张 projection 表
    4. 写入重建结果

    Returns:
        处理的事件总数
    """
    start_time = time.monotonic()

    events = await event_store.get_all_events()
    event_count = len(events)

    await log.ainfo("projection_rebuild_started", event_count=event_count)

    states: StateMap = {}
    journeys: dict[str, Journey] = {}
    for event in events:
        apply_event(states, journeys, event)

    try:
        await conn.execute("DELETE FROM task_states")
        await conn.execute("DELETE FROM journeys")

        for state in states.values():
            await task_state_store.upsert_state(state)
        for journey in journeys.values():
            await journey_store.save_journey(journey)

        await conn.commit()
    except Exception:
        await conn.rollback()
        raise

    elapsed_ms = int((time.monotonic() - start_time) * 1000)
    await log.ainfo(
        "projection_rebuild_completed",
        event_count=event_count,
        task_state_count=len(states),
        journey_count=len(journeys),
        elapsed_ms=elapsed_ms,
    )

    return event_count

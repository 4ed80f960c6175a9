"""SQLite Store 测试

测试内容：
1. task_states upsert 与 version 自增
2. journeys 写入/读取/活动时间
3. achievements 唯一约束（重复授予静默忽略）
4. progress_events 用户内序号、幂等键唯一
5. notifications 增量查询（SSE 重连）与延迟通知的到期领取
6. 事务原子性与重启持久性
"""

from datetime import UTC, datetime, timedelta
from pathlib import Path

import aiosqlite
import pytest
from oneshot.core.events import build_event
from oneshot.core.models import (
    AwardedAchievement,
    EventType,
    Journey,
    JourneyPhase,
    Notification,
    NotificationTemplate,
    TaskState,
    TaskStatus,
)
from oneshot.core.store import create_store_group, verify_wal_mode
from oneshot.core.store.transaction import (
    append_events_and_update_states,
    award_achievements,
    claim_due_notifications,
)

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=UTC)


def _state(task_key: str, status: TaskStatus = TaskStatus.TRIGGERED, user_id: str = "u1") -> TaskState:
    return TaskState(
        user_id=user_id,
        task_key=task_key,
        status=status,
        triggered_at=NOW if status == TaskStatus.TRIGGERED else None,
        updated_at=NOW,
    )


def _notification(
    notification_id: str, user_id: str = "u1", minutes: int = 0, delivered: bool = True
) -> Notification:
    ts = NOW + timedelta(minutes=minutes)
    return Notification(
        notification_id=notification_id,
        user_id=user_id,
        task_key="complete_basic_profile",
        template=NotificationTemplate.CRITICAL,
        title="Important: Action needed",
        message="Your profile is blocking sharing.",
        scheduled_for=ts,
        priority=9,
        created_at=ts,
        delivered_at=ts if delivered else None,
    )


def _achievement(key: str, user_id: str = "u1", minutes: int = 0) -> AwardedAchievement:
    return AwardedAchievement(
        user_id=user_id,
        achievement_key=key,
        title=key.replace("_", " ").title(),
        created_at=NOW + timedelta(minutes=minutes),
    )


class TestTaskStateStore:
    """task_states projection 表"""

    async def test_upsert_and_get(self, store_group):
        store = store_group.task_state_store
        await store.upsert_state(_state("complete_basic_profile"))
        await store_group.conn.commit()

        state = await store.get_state("u1", "complete_basic_profile")
        assert state is not None
        assert state.status == TaskStatus.TRIGGERED
        assert state.triggered_at == NOW
        assert state.version == 1

    async def test_overwrite_bumps_version(self, store_group):
        store = store_group.task_state_store
        await store.upsert_state(_state("add_gpa_academics"))
        await store.upsert_state(_state("add_gpa_academics", TaskStatus.COMPLETED))
        await store_group.conn.commit()

        state = await store.get_state("u1", "add_gpa_academics")
        assert state.status == TaskStatus.COMPLETED
        assert state.version == 2

    async def test_missing_state(self, store_group):
        assert await store_group.task_state_store.get_state("u1", "nope") is None

    async def test_list_filters_by_status(self, store_group):
        store = store_group.task_state_store
        await store.upsert_state(_state("a", TaskStatus.COMPLETED))
        await store.upsert_state(_state("b", TaskStatus.TRIGGERED))
        await store.upsert_state(_state("c", TaskStatus.COMPLETED, user_id="u2"))
        await store_group.conn.commit()

        completed = await store.list_states("u1", status=TaskStatus.COMPLETED)
        assert [s.task_key for s in completed] == ["a"]
        assert set(await store.get_states_map("u1")) == {"a", "b"}
        assert await store.list_user_ids() == ["u1", "u2"]


class TestJourneyStore:
    """journeys 表"""

    async def test_save_and_get(self, store_group):
        journey = Journey(
            user_id="u1",
            phase=JourneyPhase.BUILDING,
            completion_pct=55.0,
            has_blocking_tasks=True,
            generated_at=NOW,
            generation_version=3,
        )
        await store_group.journey_store.save_journey(journey)
        await store_group.conn.commit()

        assert await store_group.journey_store.get_journey("u1") == journey

    async def test_touch_activity_creates_row(self, store_group):
        await store_group.journey_store.touch_activity("u9", NOW)
        await store_group.conn.commit()

        journey = await store_group.journey_store.get_journey("u9")
        assert journey.last_activity_at == NOW
        assert journey.phase == JourneyPhase.ONBOARDING
        assert journey.generation_version == 0

    async def test_touch_activity_keeps_other_fields(self, store_group):
        store = store_group.journey_store
        await store.save_journey(Journey(user_id="u1", completion_pct=80.0))
        await store.touch_activity("u1", NOW)
        await store_group.conn.commit()

        journey = await store.get_journey("u1")
        assert journey.completion_pct == 80.0
        assert journey.last_activity_at == NOW


class TestAchievementStore:
    """achievements 表唯一约束"""

    async def test_award_once(self, store_group):
        store = store_group.achievement_store
        assert await store.award(_achievement("first_task_complete")) is True
        assert await store.award(_achievement("first_task_complete", minutes=5)) is False
        await store_group.conn.commit()

        assert await store.get_awarded_keys("u1") == {"first_task_complete"}

    async def test_list_newest_first(self, store_group):
        store = store_group.achievement_store
        await store.award(_achievement("first_task_complete", minutes=0))
        await store.award(_achievement("first_video_upload", minutes=10))
        await store.award(_achievement("task_streak_5", minutes=20))
        await store_group.conn.commit()

        listed = await store.list_achievements("u1")
        assert [a.achievement_key for a in listed] == [
            "task_streak_5",
            "first_video_upload",
            "first_task_complete",
        ]
        assert len(await store.list_achievements("u1", limit=2)) == 2


class TestEventStore:
    """progress_events 表"""

    async def test_next_seq(self, store_group):
        store = store_group.event_store
        assert await store.get_next_user_seq("u1") == 1

        await store.append_event(build_event("u1", 1, EventType.TASK_TRIGGERED, NOW, task_key="a"))
        await store.append_event(build_event("u1", 2, EventType.JOURNEY_EVALUATED, NOW))
        await store_group.conn.commit()

        assert await store.get_next_user_seq("u1") == 3
        assert await store.get_next_user_seq("u2") == 1

    async def test_payload_round_trip(self, store_group):
        store = store_group.event_store
        event = build_event(
            "u1",
            1,
            EventType.TASK_COMPLETED,
            NOW,
            task_key="add_gpa_academics",
            payload={"from_status": "TRIGGERED", "to_status": "COMPLETED"},
            idempotency_key="completed:u1:add_gpa_academics",
        )
        await store.append_event(event)
        await store_group.conn.commit()

        [loaded] = await store.get_events_for_user("u1")
        assert loaded == event
        assert loaded.trace_id == "trace-user-u1"

    async def test_duplicate_seq_rejected(self, store_group):
        store = store_group.event_store
        await store.append_event(build_event("u1", 1, EventType.TASK_TRIGGERED, NOW))
        with pytest.raises(aiosqlite.IntegrityError):
            await store.append_event(build_event("u1", 1, EventType.TASK_TRIGGERED, NOW))

    async def test_idempotency_key_unique(self, store_group):
        store = store_group.event_store
        first = build_event("u1", 1, EventType.TASK_COMPLETED, NOW, idempotency_key="k1")
        await store.append_event(first)
        await store_group.conn.commit()

        assert await store.check_idempotency_key("k1") == first.event_id
        assert await store.check_idempotency_key("k2") is None
        with pytest.raises(aiosqlite.IntegrityError):
            await store.append_event(
                build_event("u1", 2, EventType.TASK_COMPLETED, NOW, idempotency_key="k1")
            )

    async def test_all_events_ordered(self, store_group):
        store = store_group.event_store
        await store.append_event(build_event("u2", 1, EventType.JOURNEY_EVALUATED, NOW))
        await store.append_event(build_event("u1", 2, EventType.JOURNEY_EVALUATED, NOW))
        await store.append_event(build_event("u1", 1, EventType.JOURNEY_EVALUATED, NOW))
        await store_group.conn.commit()

        events = await store.get_all_events()
        assert [(e.user_id, e.user_seq) for e in events] == [("u1", 1), ("u1", 2), ("u2", 1)]


class TestNotificationStore:
    """notifications 表"""

    async def test_list_newest_first(self, store_group):
        store = store_group.notification_store
        await store.add_notification(_notification("01JNTF0000000000000000001", minutes=0))
        await store.add_notification(_notification("01JNTF0000000000000000002", minutes=1))
        await store.add_notification(_notification("01JNTF0000000000000000003", user_id="u2"))
        await store_group.conn.commit()

        listed = await store.list_notifications("u1")
        assert [n.notification_id for n in listed] == [
            "01JNTF0000000000000000002",
            "01JNTF0000000000000000001",
        ]
        assert listed[0].template == NotificationTemplate.CRITICAL
        assert len(await store.list_notifications("u1", limit=1)) == 1

    async def test_after_id(self, store_group):
        store = store_group.notification_store
        for i in range(1, 4):
            await store.add_notification(_notification(f"01JNTF000000000000000000{i}", minutes=i))
        await store_group.conn.commit()

        after = await store.get_notifications_after("u1", "01JNTF0000000000000000001")
        assert [n.notification_id for n in after] == [
            "01JNTF0000000000000000002",
            "01JNTF0000000000000000003",
        ]

    async def test_replay_skips_undelivered(self, store_group):
        store = store_group.notification_store
        await store.add_notification(_notification("01JNTF0000000000000000001"))
        await store.add_notification(
            _notification("01JNTF0000000000000000002", minutes=60, delivered=False)
        )
        await store_group.conn.commit()

        after = await store.get_notifications_after("u1", None)
        assert [n.notification_id for n in after] == ["01JNTF0000000000000000001"]

    async def test_pending_due_and_mark_delivered(self, store_group):
        store = store_group.notification_store
        await store.add_notification(
            _notification("01JNTF0000000000000000001", minutes=10, delivered=False)
        )
        await store.add_notification(
            _notification("01JNTF0000000000000000002", minutes=60, delivered=False)
        )
        await store_group.conn.commit()

        due = await store.list_pending_due("u1", NOW + timedelta(minutes=30))
        assert [n.notification_id for n in due] == ["01JNTF0000000000000000001"]

        await store.mark_delivered(["01JNTF0000000000000000001"], NOW + timedelta(minutes=30))
        await store_group.conn.commit()
        assert await store.list_pending_due("u1", NOW + timedelta(minutes=30)) == []
        listed = await store.list_notifications("u1")
        delivered = {n.notification_id: n.delivered_at for n in listed}
        assert delivered["01JNTF0000000000000000001"] == NOW + timedelta(minutes=30)
        assert delivered["01JNTF0000000000000000002"] is None


class TestTransactions:
    """事件 + projection 同一事务"""

    async def test_atomic_success(self, store_group):
        event = build_event("u1", 1, EventType.TASK_TRIGGERED, NOW, task_key="a")
        notification = _notification("01JNTF0000000000000000001")
        await append_events_and_update_states(
            store_group.conn,
            store_group.event_store,
            store_group.task_state_store,
            [event],
            [_state("a")],
            journey_store=store_group.journey_store,
            journey=Journey(user_id="u1", last_notified_at=NOW),
            notification_store=store_group.notification_store,
            notifications=[notification],
        )

        assert len(await store_group.event_store.get_events_for_user("u1")) == 1
        assert await store_group.task_state_store.get_state("u1", "a") is not None
        assert (await store_group.journey_store.get_journey("u1")).last_notified_at == NOW
        assert len(await store_group.notification_store.list_notifications("u1")) == 1

    async def test_rollback_on_failure(self, store_group):
        """第二个事件 user_seq 冲突时整体回滚"""
        events = [
            build_event("u1", 1, EventType.TASK_TRIGGERED, NOW, task_key="a"),
            build_event("u1", 1, EventType.JOURNEY_EVALUATED, NOW),
        ]
        with pytest.raises(aiosqlite.IntegrityError):
            await append_events_and_update_states(
                store_group.conn,
                store_group.event_store,
                store_group.task_state_store,
                events,
                [_state("a")],
            )

        assert await store_group.event_store.get_events_for_user("u1") == []
        assert await store_group.task_state_store.get_state("u1", "a") is None

    async def test_award_achievements_idempotent(self, store_group):
        def _award(seq: int):
            return (
                _achievement("first_task_complete"),
                build_event(
                    "u1",
                    seq,
                    EventType.ACHIEVEMENT_AWARDED,
                    NOW,
                    idempotency_key=f"achievement:u1:first_task_complete:{seq}",
                ),
            )

        first = await award_achievements(
            store_group.conn,
            store_group.achievement_store,
            store_group.event_store,
            [_award(1)],
        )
        second = await award_achievements(
            store_group.conn,
            store_group.achievement_store,
            store_group.event_store,
            [_award(2)],
        )

        assert [a.achievement_key for a in first] == ["first_task_complete"]
        assert second == []
        # 重复授予不写事件
        assert len(await store_group.event_store.get_events_for_user("u1")) == 1

    async def test_claim_due_notifications_once(self, store_group):
        store = store_group.notification_store
        await store.add_notification(
            _notification("01JNTF0000000000000000001", minutes=5, delivered=False)
        )
        await store_group.conn.commit()

        claim_at = NOW + timedelta(minutes=5)
        claimed = await claim_due_notifications(store_group.conn, store, "u1", claim_at)
        assert [n.notification_id for n in claimed] == ["01JNTF0000000000000000001"]
        assert claimed[0].delivered_at == claim_at
        assert await claim_due_notifications(store_group.conn, store, "u1", claim_at) == []


class TestDurability:
    """连接关闭后数据仍在"""

    async def test_data_survives_restart(self, tmp_path: Path):
        db_path = str(tmp_path / "nested" / "durability.db")

        sg1 = await create_store_group(db_path)
        await append_events_and_update_states(
            sg1.conn,
            sg1.event_store,
            sg1.task_state_store,
            [build_event("u1", 1, EventType.TASK_COMPLETED, NOW, task_key="a")],
            [_state("a", TaskStatus.COMPLETED)],
        )
        assert await verify_wal_mode(sg1.conn)
        await sg1.conn.close()

        sg2 = await create_store_group(db_path)
        try:
            state = await sg2.task_state_store.get_state("u1", "a")
            assert state.status == TaskStatus.COMPLETED
            assert await sg2.event_store.get_next_user_seq("u1") == 2
        finally:
            await sg2.conn.close()

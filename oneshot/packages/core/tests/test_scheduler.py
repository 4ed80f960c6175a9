"""Priority/Notification Scheduler 测试

测试内容：
1. rank 排序键：blocking 优先 -> 分数降序 -> 预估时间升序 -> task_key
2. 高峰月份与生效季节事件加成
3. 模板选择：reminder / critical / seasonal / nudge
4. 通知节奏：critical 立即投递，其余按活跃度间隔限流
"""

from datetime import UTC, datetime, timedelta

from oneshot.core.catalog import Catalog
from oneshot.core.config import EngineConfig
from oneshot.core.models import (
    EngagementLevel,
    EvaluatedTask,
    NotificationTemplate,
    TaskDefinition,
    TaskPriority,
    TaskState,
    TaskStatus,
)
from oneshot.core.scheduler import (
    achievement_notification,
    notification_delay,
    notification_priority,
    plan_notification,
    rank,
    select_template,
)


def _evaluated(task: TaskDefinition, blocking: bool = False) -> EvaluatedTask:
    return EvaluatedTask(
        task=task,
        status=TaskStatus.TRIGGERED,
        unlocked=True,
        triggered=True,
        blocking=blocking,
    )


def _task(make_task, key: str, **overrides) -> TaskDefinition:
    return TaskDefinition.model_validate(make_task(key, **overrides))


def _state(task_key: str, last_shown_at: datetime | None = None) -> TaskState:
    return TaskState(
        user_id="42",
        task_key=task_key,
        status=TaskStatus.TRIGGERED,
        last_shown_at=last_shown_at,
        updated_at=datetime(2025, 1, 1, tzinfo=UTC),
    )


class TestRank:
    """排序与加成"""

    def test_blocking_first(self, make_task, offseason_now):
        blocker = _task(make_task, "blocker", priority="low", blocksSharing=True)
        urgent = _task(make_task, "urgent", priority="critical")
        ranked = rank([_evaluated(urgent), _evaluated(blocker, blocking=True)], [], offseason_now)
        assert [r.task_key for r in ranked] == ["blocker", "urgent"]

    def test_score_then_time_then_key(self, make_task, offseason_now):
        tasks = [
            _task(make_task, "slow_critical", priority="critical", estimatedTimeMinutes=30),
            _task(make_task, "quick_critical", priority="critical", estimatedTimeMinutes=5),
            _task(make_task, "b_medium", priority="medium"),
            _task(make_task, "a_medium", priority="medium"),
        ]
        ranked = rank([_evaluated(t) for t in tasks], [], offseason_now)
        assert [r.task_key for r in ranked] == [
            "quick_critical",
            "slow_critical",
            "a_medium",
            "b_medium",
        ]
        assert ranked[0].score == 4
        assert ranked[-1].score == 2

    def test_peak_month_boost(self, catalog: Catalog):
        september = datetime(2025, 9, 10, tzinfo=UTC)
        task = catalog.get_task("upload_highlight_video")
        ranked = rank([_evaluated(task, blocking=True)], [], september)
        assert ranked[0].score == 6
        assert ranked[0].seasonal_boost == 2
        assert ranked[0].season_name == "September"

    def test_no_boost_outside_peak(self, catalog: Catalog, offseason_now):
        task = catalog.get_task("upload_highlight_video")
        ranked = rank([_evaluated(task)], [], offseason_now)
        assert ranked[0].score == 4
        assert ranked[0].seasonal_boost == 0
        assert ranked[0].season_name is None

    def test_active_event_boost(self, catalog: Catalog, summer_now):
        task = catalog.get_task("create_coach_contact_list")
        event = catalog.seasonal_events["recruiting_season_start"]
        ranked = rank([_evaluated(task)], [event], summer_now)
        # high(3) + 高峰月(2) + 事件(2)
        assert ranked[0].score == 7
        assert ranked[0].season_name == event.title

    def test_unreferenced_event_ignored(self, catalog: Catalog, offseason_now):
        task = catalog.get_task("add_gpa_academics")
        event = catalog.seasonal_events["recruiting_season_start"]
        ranked = rank([_evaluated(task)], [event], offseason_now)
        assert ranked[0].score == 3

    def test_empty(self, offseason_now):
        assert rank([], [], offseason_now) == []


class TestSelectTemplate:
    """模板选择"""

    def test_reminder_after_threshold(self, make_task, offseason_now):
        ranked = rank([_evaluated(_task(make_task, "t"), blocking=True)], [], offseason_now)[0]
        state = _state("t", last_shown_at=offseason_now - timedelta(days=7))
        assert select_template(ranked, state, offseason_now) == NotificationTemplate.REMINDER

    def test_critical_when_blocking_and_never_shown(self, make_task, offseason_now):
        ranked = rank([_evaluated(_task(make_task, "t"), blocking=True)], [], offseason_now)[0]
        assert select_template(ranked, None, offseason_now) == NotificationTemplate.CRITICAL

    def test_blocking_recently_shown_is_nudge(self, make_task, offseason_now):
        ranked = rank([_evaluated(_task(make_task, "t"), blocking=True)], [], offseason_now)[0]
        state = _state("t", last_shown_at=offseason_now - timedelta(days=1))
        assert select_template(ranked, state, offseason_now) == NotificationTemplate.NUDGE

    def test_seasonal_when_boosted(self, catalog: Catalog, summer_now):
        task = catalog.get_task("create_coach_contact_list")
        ranked = rank([_evaluated(task)], [], summer_now)[0]
        assert select_template(ranked, None, summer_now) == NotificationTemplate.SEASONAL

    def test_custom_reminder_threshold(self, make_task, offseason_now):
        ranked = rank([_evaluated(_task(make_task, "t"))], [], offseason_now)[0]
        state = _state("t", last_shown_at=offseason_now - timedelta(days=3))
        assert (
            select_template(ranked, state, offseason_now, reminder_after_days=3)
            == NotificationTemplate.REMINDER
        )


class TestPlanNotification:
    """通知规划与节奏"""

    def test_no_triggered_tasks(self, offseason_now):
        config = EngineConfig()
        assert (
            plan_notification("42", [], {}, EngagementLevel.MEDIUM, None, offseason_now, config)
            is None
        )

    def test_critical_immediate_and_ignores_cadence(self, catalog: Catalog, offseason_now):
        task = catalog.get_task("complete_basic_profile")
        ranked = rank([_evaluated(task, blocking=True)], [], offseason_now)
        notification = plan_notification(
            "42",
            ranked,
            {},
            EngagementLevel.LOW,
            offseason_now - timedelta(minutes=5),
            offseason_now,
            EngineConfig(),
        )
        assert notification is not None
        assert notification.template == NotificationTemplate.CRITICAL
        assert notification.scheduled_for == offseason_now
        assert notification.priority == 9
        assert notification.cta_url == "/dashboard/tasks/complete_basic_profile"
        assert task.title in notification.message

    def test_nudge_scheduled_after_delay(self, make_task, offseason_now):
        ranked = rank([_evaluated(_task(make_task, "t", estimatedTimeMinutes=12))], [], offseason_now)
        last = offseason_now - timedelta(hours=5)
        notification = plan_notification(
            "42", ranked, {}, EngagementLevel.HIGH, last, offseason_now, EngineConfig()
        )
        assert notification.template == NotificationTemplate.NUDGE
        assert notification.scheduled_for == offseason_now + timedelta(hours=4)
        assert "12 minutes" in notification.message

    def test_first_notification_immediate(self, make_task, offseason_now):
        ranked = rank([_evaluated(_task(make_task, "t"))], [], offseason_now)
        notification = plan_notification(
            "42", ranked, {}, EngagementLevel.LOW, None, offseason_now, EngineConfig()
        )
        assert notification.template == NotificationTemplate.NUDGE
        assert notification.scheduled_for == offseason_now

    def test_cadence_gate(self, make_task, offseason_now):
        ranked = rank([_evaluated(_task(make_task, "t"))], [], offseason_now)
        config = EngineConfig()
        recent = offseason_now - timedelta(hours=23)
        assert (
            plan_notification("42", ranked, {}, EngagementLevel.MEDIUM, recent, offseason_now, config)
            is None
        )
        old = offseason_now - timedelta(hours=24)
        assert (
            plan_notification("42", ranked, {}, EngagementLevel.MEDIUM, old, offseason_now, config)
            is not None
        )

    def test_reminder_mentions_days(self, make_task, offseason_now):
        ranked = rank([_evaluated(_task(make_task, "t"))], [], offseason_now)
        states = {"t": _state("t", last_shown_at=offseason_now - timedelta(days=10))}
        notification = plan_notification(
            "42", ranked, states, EngagementLevel.MEDIUM, None, offseason_now, EngineConfig()
        )
        assert notification.template == NotificationTemplate.REMINDER
        assert "10 days" in notification.message


class TestPriorities:
    def test_notification_priority(self):
        assert notification_priority(TaskPriority.CRITICAL, True) == 9
        assert notification_priority(TaskPriority.HIGH, False) == 6
        assert notification_priority(TaskPriority.LOW, False) == 2

    def test_delay_by_engagement(self):
        config = EngineConfig()
        assert notification_delay(EngagementLevel.HIGH, config) == timedelta(hours=4)
        assert notification_delay(EngagementLevel.MEDIUM, config) == timedelta(hours=24)
        assert notification_delay(EngagementLevel.LOW, config) == timedelta(hours=72)

    def test_achievement_notification(self, catalog: Catalog, offseason_now):
        definition = catalog.achievements["first_task_complete"]
        notification = achievement_notification("42", definition, offseason_now)
        assert notification.template == NotificationTemplate.ACHIEVEMENT
        assert notification.task_key is None
        assert notification.scheduled_for == offseason_now
        assert definition.title in notification.message

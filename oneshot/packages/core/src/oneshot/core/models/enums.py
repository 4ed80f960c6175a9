"""枚举定义

包含 TaskPriority、TaskStatus 状态机、EventType、NotificationTemplate 等枚举，
以及 VALID_TRANSITIONS 合法流转映射和 TERMINAL_STATES 终态集合。
"""

from enum import StrEnum


class TaskPriority(StrEnum):
    """任务优先级"""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# 优先级基础分（排序用）
PRIORITY_SCORES: dict[TaskPriority, int] = {
    TaskPriority.CRITICAL: 4,
    TaskPriority.HIGH: 3,
    TaskPriority.MEDIUM: 2,
    TaskPriority.LOW: 1,
}


class TaskStatus(StrEnum):
    """单用户单任务的状态机"""

    LOCKED = "LOCKED"
    UNLOCKED = "UNLOCKED"
    TRIGGERED = "TRIGGERED"

    # 终态
    COMPLETED = "COMPLETED"
    DISMISSED = "DISMISSED"


VALID_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.LOCKED: {TaskStatus.UNLOCKED, TaskStatus.TRIGGERED},
    TaskStatus.UNLOCKED: {
        TaskStatus.TRIGGERED,
        TaskStatus.COMPLETED,
        TaskStatus.DISMISSED,
    },
    TaskStatus.TRIGGERED: {
        TaskStatus.UNLOCKED,
        TaskStatus.COMPLETED,
        TaskStatus.DISMISSED,
    },
    # 终态不可再流转
    TaskStatus.COMPLETED: set(),
    TaskStatus.DISMISSED: set(),
}

TERMINAL_STATES: set[TaskStatus] = {
    TaskStatus.COMPLETED,
    TaskStatus.DISMISSED,
}


class EngagementLevel(StrEnum):
    """用户活跃度"""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class JourneyPhase(StrEnum):
    """招募旅程阶段"""

    ONBOARDING = "onboarding"
    BUILDING = "building"
    ACTIVE = "active"


class NotificationTemplate(StrEnum):
    """通知模板类型"""

    NUDGE = "nudge"
    SEASONAL = "seasonal"
    CRITICAL = "critical"
    ACHIEVEMENT = "achievement"
    REMINDER = "reminder"


class EventType(StrEnum):
    """进度事件类型（progress_events 表 append-only）"""

    TASK_TRIGGERED = "TASK_TRIGGERED"
    TASK_COMPLETED = "TASK_COMPLETED"
    TASK_DISMISSED = "TASK_DISMISSED"
    ACHIEVEMENT_AWARDED = "ACHIEVEMENT_AWARDED"
    JOURNEY_EVALUATED = "JOURNEY_EVALUATED"
    NOTIFICATION_SCHEDULED = "NOTIFICATION_SCHEDULED"


class ActorType(StrEnum):
    """操作者类型"""

    USER = "user"
    SYSTEM = "system"


def validate_transition(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    """验证状态流转是否合法

    Args:
        from_status: 当前状态
        to_status: 目标状态

    Returns:
        True 如果流转合法，否则 False
    """
    allowed = VALID_TRANSITIONS.get(from_status, set())
    return to_status in allowed

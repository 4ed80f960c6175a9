"""OneShot Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .catalog import (
    AchievementDefinition,
    SeasonalEvent,
    SeasonalRelevance,
    TaskDefinition,
)
from .enums import (
    PRIORITY_SCORES,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    ActorType,
    EngagementLevel,
    EventType,
    JourneyPhase,
    NotificationTemplate,
    TaskPriority,
    TaskStatus,
    validate_transition,
)
from .evaluation import EvaluatedTask, RankedTask
from .event import EventCausality, ProgressEvent
from .notification import Notification
from .payloads import (
    AchievementAwardedPayload,
    JourneyEvaluatedPayload,
    NotificationScheduledPayload,
    TaskTransitionPayload,
)
from .snapshot import UserProfileSnapshot
from .task_state import AwardedAchievement, Journey, TaskState
from .triggers import (
    EngagementPredicate,
    FieldMissingPredicate,
    GraduationProximityPredicate,
    ProfileCompletionPredicate,
    RolePredicate,
    SeasonalPredicate,
    TriggerPredicate,
)

__all__ = [
    # 枚举
    "TaskPriority",
    "TaskStatus",
    "EngagementLevel",
    "JourneyPhase",
    "NotificationTemplate",
    "EventType",
    "ActorType",
    "PRIORITY_SCORES",
    # 状态机
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
    "validate_transition",
    # 目录
    "TaskDefinition",
    "SeasonalRelevance",
    "SeasonalEvent",
    "AchievementDefinition",
    # 触发条件
    "TriggerPredicate",
    "FieldMissingPredicate",
    "ProfileCompletionPredicate",
    "GraduationProximityPredicate",
    "RolePredicate",
    "SeasonalPredicate",
    "EngagementPredicate",
    # 快照与状态
    "UserProfileSnapshot",
    "TaskState",
    "Journey",
    "AwardedAchievement",
    # 评估结果
    "EvaluatedTask",
    "RankedTask",
    # Event
    "ProgressEvent",
    "EventCausality",
    "Notification",
    # Payloads
    "TaskTransitionPayload",
    "AchievementAwardedPayload",
    "JourneyEvaluatedPayload",
    "NotificationScheduledPayload",
]

"""任务目录 Domain Models

TaskDefinition / SeasonalEvent / AchievementDefinition 由目录作者编写，
运行期不可变（仅 is_active 可切换，需重新加载目录）。
所有模型同时接受 camelCase（seed/JSON 格式）与 snake_case 字段名。
"""

from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .enums import TaskPriority
from .triggers import TriggerPredicate, normalize_triggers

# 每月最大天数；二月按 29 天计，窗口每年重复
_DAYS_IN_MONTH = (31, 29, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)


class CatalogModel(BaseModel):
    """目录模型公共配置"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class SeasonalRelevance(CatalogModel):
    """任务的季节相关性：peak 月份内追加 urgency_boost"""

    peak_months: list[int] = Field(default_factory=list, description="高峰月份 1-12")
    urgency_boost: int = Field(default=0, ge=0, description="高峰期追加分")

    @field_validator("peak_months")
    @classmethod
    def _check_months(cls, value: list[int]) -> list[int]:
        for month in value:
            if not 1 <= month <= 12:
                raise ValueError(f"peak month out of range: {month}")
        return value


class TaskDefinition(CatalogModel):
    """任务定义（目录中的一条记录）"""

    task_key: str = Field(min_length=1, description="唯一标识")
    title: str
    description: str = Field(default="")
    why_it_matters: str = Field(default="", description="面向用户的理由说明")
    how_to_complete: str = Field(default="", description="完成方式说明")
    estimated_time_minutes: int = Field(default=10, ge=0)
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM)
    dependencies: tuple[str, ...] = Field(default=(), description="依赖的 task_key")
    triggers: tuple[TriggerPredicate, ...] = Field(
        default=(),
        description="触发条件，AND 组合；为空时依赖满足即触发",
    )
    blocks_sharing: bool = Field(default=False, description="未完成时阻止公开分享")
    applicable_sports: tuple[str, ...] = Field(default=("football",))
    applicable_roles: tuple[str, ...] = Field(default=("high_school", "transfer_portal"))
    seasonal_relevance: SeasonalRelevance | None = Field(default=None)
    version: int = Field(default=1, ge=1)
    is_active: bool = Field(default=True)

    @field_validator("triggers", mode="before")
    @classmethod
    def _normalize_triggers(cls, value: Any, info: ValidationInfo) -> Any:
        return normalize_triggers(value, info.data.get("task_key"))

    def applies_to(self, sport: str | None, role: str | None) -> bool:
        """是否适用于给定运动项目与角色

        sport/role 缺失（None）时不做该项过滤，与 SeasonalEvent.applies_to 一致。
        """
        if sport is not None and sport not in self.applicable_sports:
            return False
        if role is not None and role not in self.applicable_roles:
            return False
        return True

    def seasonal_event_keys(self) -> list[str]:
        """seasonal 触发条件引用的事件 key"""
        keys: list[str] = []
        for predicate in self.triggers:
            if predicate.kind == "seasonal":
                keys.extend(predicate.events)
        return keys


class SeasonalEvent(CatalogModel):
    """季节事件：每年重复的日期窗口（可跨年，如 12/1 - 2/28）"""

    event_key: str = Field(min_length=1)
    title: str
    description: str = Field(default="")
    start_month: int = Field(ge=1, le=12)
    start_day: int = Field(default=1, ge=1, le=31)
    end_month: int | None = Field(default=None, ge=1, le=12)
    end_day: int | None = Field(default=None, ge=1, le=31)
    sport: str = Field(default="football")
    applicable_roles: tuple[str, ...] = Field(default=("high_school", "transfer_portal"))
    priority_boost: int = Field(default=0, ge=0)
    triggers_notifications: bool = Field(default=False)
    is_active: bool = Field(default=True)

    @model_validator(mode="after")
    def _check_dates(self) -> "SeasonalEvent":
        """日期须在对应月份内存在（如 2/31 非法，2/29 合法）"""
        end_month = self.end_month or self.start_month
        for month, day in ((self.start_month, self.start_day), (end_month, self.end_day)):
            if day is not None and day > _DAYS_IN_MONTH[month - 1]:
                raise ValueError(f"invalid date for {self.event_key}: {month}/{day}")
        return self

    def applies_to(self, sport: str | None, role: str | None) -> bool:
        """sport/role 为 None 时不做过滤"""
        if sport is not None and sport != self.sport:
            return False
        if role is not None and role not in self.applicable_roles:
            return False
        return True


class AchievementDefinition(CatalogModel):
    """成就定义"""

    achievement_key: str = Field(min_length=1)
    title: str
    description: str = Field(default="")
    icon: str = Field(default="")

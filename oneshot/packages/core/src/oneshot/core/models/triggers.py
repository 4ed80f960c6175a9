"""触发条件（Trigger Predicate）-- tagged union

目录作者以对象形式书写触发条件，每个 key 对应一种 predicate：

    {"fieldMissing": ["gpa"], "graduationProximity": {"yearsThreshold": 2}}

加载时转换为带 kind 标签的 predicate 列表，多个 predicate 之间为 AND 关系。
未知 kind 在加载期抛出 UnknownPredicateError。
"""

from typing import Annotated, Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..exceptions import UnknownPredicateError
from .enums import EngagementLevel


class _Predicate(BaseModel):
    """predicate 公共配置：camelCase 别名，不可变"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    # 简写形式（值为列表时）对应的字段名
    list_field: ClassVar[str | None] = None


class FieldMissingPredicate(_Predicate):
    """任一字段缺失/为空时成立"""

    kind: Literal["fieldMissing"] = "fieldMissing"
    fields: list[str] = Field(min_length=1, description="需要检查的 profile 字段")

    list_field: ClassVar[str | None] = "fields"


class ProfileCompletionPredicate(_Predicate):
    """profile 完成度与阈值比较"""

    kind: Literal["profileCompletion"] = "profileCompletion"
    threshold: float = Field(ge=0, le=100)
    comparison: Literal["less_than", "greater_than"]


class GraduationProximityPredicate(_Predicate):
    """距毕业年数 <= 阈值时成立"""

    kind: Literal["graduationProximity"] = "graduationProximity"
    years_threshold: int


class RolePredicate(_Predicate):
    """用户角色属于给定集合"""

    kind: Literal["role"] = "role"
    roles: list[str] = Field(min_length=1)

    list_field: ClassVar[str | None] = "roles"


class SeasonalPredicate(_Predicate):
    """当前日期落在任一指定季节事件窗口内"""

    kind: Literal["seasonal"] = "seasonal"
    events: list[str] = Field(min_length=1, description="SeasonalEvent event_key 列表")

    list_field: ClassVar[str | None] = "events"


class EngagementPredicate(_Predicate):
    """用户活跃度属于给定集合"""

    kind: Literal["engagement"] = "engagement"
    levels: list[EngagementLevel] = Field(min_length=1)

    list_field: ClassVar[str | None] = "levels"


TriggerPredicate = Annotated[
    FieldMissingPredicate
    | ProfileCompletionPredicate
    | GraduationProximityPredicate
    | RolePredicate
    | SeasonalPredicate
    | EngagementPredicate,
    Field(discriminator="kind"),
]

PREDICATE_TYPES: dict[str, type[_Predicate]] = {
    "fieldMissing": FieldMissingPredicate,
    "profileCompletion": ProfileCompletionPredicate,
    "graduationProximity": GraduationProximityPredicate,
    "role": RolePredicate,
    "seasonal": SeasonalPredicate,
    "engagement": EngagementPredicate,
}


def _normalize_entry(kind: str, value: Any, task_key: str | None) -> dict[str, Any]:
    predicate_type = PREDICATE_TYPES.get(kind)
    if predicate_type is None:
        raise UnknownPredicateError(kind, task_key)

    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True)
    if isinstance(value, list | tuple) and predicate_type.list_field:
        return {"kind": kind, predicate_type.list_field: list(value)}
    if isinstance(value, dict):
        return {**value, "kind": kind}
    # 交给 pydantic 报告结构错误
    return {"kind": kind, "value": value}


def normalize_triggers(raw: Any, task_key: str | None = None) -> list[Any]:
    """将目录中的 triggers 转换为带 kind 标签的列表（交给 pydantic 校验）

    支持两种写法：
    - 对象形式 {"fieldMissing": [...], ...}（seed 数据格式）
    - 列表形式 [{"kind": "fieldMissing", "fields": [...]}, ...]（序列化格式）

    Raises:
        UnknownPredicateError: 出现未知的 predicate 类型
    """
    if raw is None:
        return []

    if isinstance(raw, dict):
        return [_normalize_entry(kind, value, task_key) for kind, value in raw.items()]

    if isinstance(raw, list | tuple):
        entries = []
        for item in raw:
            if isinstance(item, BaseModel):
                entries.append(item)
                continue
            kind = item.get("kind") if isinstance(item, dict) else None
            if kind not in PREDICATE_TYPES:
                raise UnknownPredicateError(str(kind), task_key)
            entries.append(item)
        return entries

    return raw

"""UserProfileSnapshot -- profile 子系统提供的只读快照

类型错误的字段不会抛出异常：值被置为 None，并记入 missing_fields，
在 predicate 求值时按"字段缺失"处理。
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from .enums import EngagementLevel

# 需要宽松校验的字段；coerce 返回 None 表示值非法
_INT_FIELDS = ("graduation_year",)
_FLOAT_FIELDS = ("completion_pct",)
_STR_FIELDS = ("role", "sport")


def _coerce_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def _coerce_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _coerce_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


class UserProfileSnapshot(BaseModel):
    """用户 profile 快照（评估器只读）"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    user_id: str = Field(default="", description="用户 ID（HTTP 接口中由路径提供）")
    role: str | None = Field(default=None, description="high_school / transfer_portal")
    sport: str | None = Field(default="football")
    graduation_year: int | None = Field(default=None)
    completion_pct: float | None = Field(default=None, description="profile 完成度 0-100")
    missing_fields: tuple[str, ...] = Field(default=(), description="缺失字段名（camelCase）")
    profile_fields: dict[str, Any] | None = Field(
        default=None,
        description="原始 profile 字段值，提供时空值也视为缺失",
    )
    engagement_level: EngagementLevel | None = Field(default=None)

    @model_validator(mode="before")
    @classmethod
    def _lenient_fields(cls, data: Any) -> Any:
        """将类型错误的字段降级为缺失"""
        if not isinstance(data, dict):
            return data

        data = dict(data)
        user_key = "userId" if "userId" in data else "user_id"
        if user_key in data and not isinstance(data[user_key], str):
            data[user_key] = "" if data[user_key] is None else str(data[user_key])

        missing = data.get("missingFields", data.get("missing_fields"))
        missing_list = (
            [m for m in missing if isinstance(m, str)]
            if isinstance(missing, list | tuple)
            else []
        )

        def _fix(name: str, coerce) -> None:
            alias = to_camel(name)
            key = alias if alias in data else name
            if key not in data or data[key] is None:
                return
            value = coerce(data[key])
            if value is None:
                data[key] = None
                if alias not in missing_list:
                    missing_list.append(alias)
            else:
                data[key] = value

        for name in _INT_FIELDS:
            _fix(name, _coerce_int)
        for name in _FLOAT_FIELDS:
            _fix(name, _coerce_float)
        for name in _STR_FIELDS:
            _fix(name, _coerce_str)

        engagement_key = "engagementLevel" if "engagementLevel" in data else "engagement_level"
        engagement = data.get(engagement_key)
        if engagement is not None and engagement not in {e.value for e in EngagementLevel}:
            data[engagement_key] = None

        profile_key = "profileFields" if "profileFields" in data else "profile_fields"
        if profile_key in data and not isinstance(data[profile_key], dict | None):
            data[profile_key] = None

        data.pop("missing_fields", None)
        data["missingFields"] = missing_list
        return data

    def is_field_missing(self, field: str) -> bool:
        """字段是否缺失

        字段列在 missing_fields 中即视为缺失；
        提供了 profile_fields 时，值不存在或为空（None/""/[]/{}) 也视为缺失。
        """
        if field in self.missing_fields:
            return True
        if self.profile_fields is None:
            return False
        value = self.profile_fields.get(field)
        if value is None:
            return True
        if isinstance(value, str):
            return not value.strip()
        if isinstance(value, list | dict | tuple):
            return len(value) == 0
        return False

"""配置模块 -- 可通过环境变量覆盖

包含数据库路径、任务目录文件路径、SSE 心跳等可配置常量，
以及调度器参数 EngineConfig（提醒阈值、通知节奏等）。
"""

import os
from pathlib import Path

import structlog
from pydantic import BaseModel, Field

log = structlog.get_logger()


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("ONESHOT_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "ONESHOT_DB_PATH",
        str(_get_base_dir() / "sqlite" / "oneshot.db"),
    )


def get_catalog_path() -> Path | None:
    """获取任务目录 JSON 文件路径，未配置时返回 None（使用内置 seed）"""
    value = os.environ.get("ONESHOT_CATALOG_PATH")
    return Path(value) if value else None


# SSE 心跳间隔（秒）
SSE_HEARTBEAT_INTERVAL: int = int(
    os.environ.get("ONESHOT_SSE_HEARTBEAT_INTERVAL", "15")
)

# 通知 CTA 链接前缀
TASK_CTA_URL_PREFIX: str = "/dashboard/tasks"


class EngineConfig(BaseModel):
    """调度器/仪表盘参数 -- 从环境变量加载

    环境变量:
        ONESHOT_REMINDER_AFTER_DAYS: 任务多少天未展示后改用 reminder 模板（默认 7）
        ONESHOT_NEXT_TASKS_LIMIT: 仪表盘 "What's Next" 展示任务数（默认 3）
    """

    reminder_after_days: int = Field(
        default=7,
        ge=1,
        description="任务未被展示超过该天数时使用 reminder 模板",
    )
    next_tasks_limit: int = Field(
        default=3,
        ge=1,
        description="仪表盘展示的下一步任务数",
    )
    # 按活跃度决定的通知间隔（小时）
    notification_delay_hours: dict[str, int] = Field(
        default_factory=lambda: {"high": 4, "medium": 24, "low": 72},
        description="engagement level -> 通知间隔（小时）",
    )


def _read_int_env(env_var: str, fallback: int) -> int | None:
    """读取整数环境变量，非法值记录 warning 并返回 None（使用默认值）"""
    val = os.environ.get(env_var)
    if not val:
        return None
    try:
        return int(val)
    except ValueError:
        log.warning(
            "invalid_engine_config",
            env_var=env_var,
            value=val,
            fallback=fallback,
        )
        return None


def load_engine_config() -> EngineConfig:
    """从环境变量加载 EngineConfig，非法值不阻塞启动"""
    kwargs: dict = {}

    if (days := _read_int_env("ONESHOT_REMINDER_AFTER_DAYS", 7)) is not None:
        kwargs["reminder_after_days"] = days

    if (limit := _read_int_env("ONESHOT_NEXT_TASKS_LIMIT", 3)) is not None:
        kwargs["next_tasks_limit"] = limit

    return EngineConfig(**kwargs)

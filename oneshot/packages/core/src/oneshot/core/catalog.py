"""Catalog -- 已校验的不可变任务目录

启动时加载一次并做完整性校验（重复 key、悬空依赖、依赖环、未知 predicate、
未知季节事件），任何错误都抛出 CatalogError 子类，服务拒绝启动。
校验通过后作为显式参数传给评估器，运行期不修改。
"""

import json
from collections.abc import Iterable, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

import structlog
from pydantic import ValidationError

from .config import get_catalog_path
from .exceptions import (
    CatalogValidationError,
    DanglingDependencyError,
    DependencyCycleError,
    DuplicateKeyError,
    UnknownSeasonalEventError,
)
from .models.catalog import AchievementDefinition, SeasonalEvent, TaskDefinition
from .seed import default_catalog_data

log = structlog.get_logger()


def _index_unique(kind: str, items: Iterable, key_attr: str) -> dict:
    index: dict = {}
    for item in items:
        key = getattr(item, key_attr)
        if key in index:
            raise DuplicateKeyError(kind, key)
        index[key] = item
    return index


def topological_order(tasks: Mapping[str, TaskDefinition]) -> list[str]:
    """依赖图拓扑排序（Kahn 算法），依赖在前

    同层按 task_key 字典序输出，保证结果确定。

    Raises:
        DanglingDependencyError: 依赖引用不存在的任务
        DependencyCycleError: 依赖图存在环
    """
    in_degree: dict[str, int] = {key: 0 for key in tasks}
    dependents: dict[str, list[str]] = {key: [] for key in tasks}

    for key, task in tasks.items():
        for dep in task.dependencies:
            if dep not in tasks:
                raise DanglingDependencyError(key, dep)
            in_degree[key] += 1
            dependents[dep].append(key)

    ready = sorted(key for key, degree in in_degree.items() if degree == 0)
    order: list[str] = []
    while ready:
        key = ready.pop(0)
        order.append(key)
        for child in dependents[key]:
            in_degree[child] -= 1
            if in_degree[child] == 0:
                ready.append(child)
        ready.sort()

    if len(order) != len(tasks):
        remaining = sorted(key for key, degree in in_degree.items() if degree > 0)
        raise DependencyCycleError(remaining)

    return order


class Catalog:
    """已校验的任务目录（只读）"""

    def __init__(
        self,
        tasks: Iterable[TaskDefinition],
        seasonal_events: Iterable[SeasonalEvent] = (),
        achievements: Iterable[AchievementDefinition] = (),
    ) -> None:
        task_index = _index_unique("task", tasks, "task_key")
        event_index = _index_unique("seasonal event", seasonal_events, "event_key")
        achievement_index = _index_unique("achievement", achievements, "achievement_key")

        order = topological_order(task_index)

        for key in order:
            for event_key in task_index[key].seasonal_event_keys():
                if event_key not in event_index:
                    raise UnknownSeasonalEventError(key, event_key)

        self._tasks = MappingProxyType(task_index)
        self._events = MappingProxyType(event_index)
        self._achievements = MappingProxyType(achievement_index)
        self._order = tuple(order)

    @classmethod
    def from_raw(cls, data: Mapping[str, Any]) -> "Catalog":
        """从原始 dict（seed 或 JSON 文件内容）构建并校验目录

        Raises:
            CatalogError: 结构或完整性校验失败
        """
        try:
            tasks = [TaskDefinition.model_validate(t) for t in data.get("tasks", [])]
            events = [
                SeasonalEvent.model_validate(e)
                for e in data.get("seasonalEvents", data.get("seasonal_events", []))
            ]
            achievements = [
                AchievementDefinition.model_validate(a)
                for a in data.get("achievements", [])
            ]
        except ValidationError as e:
            raise CatalogValidationError(
                f"Invalid catalog record: {e.error_count()} error(s)",
                errors=e.errors(include_url=False),
            ) from e
        return cls(tasks, events, achievements)

    @property
    def tasks(self) -> Mapping[str, TaskDefinition]:
        return self._tasks

    @property
    def seasonal_events(self) -> Mapping[str, SeasonalEvent]:
        return self._events

    @property
    def achievements(self) -> Mapping[str, AchievementDefinition]:
        return self._achievements

    @property
    def order(self) -> tuple[str, ...]:
        """拓扑序（依赖在前）"""
        return self._order

    def get_task(self, task_key: str) -> TaskDefinition | None:
        return self._tasks.get(task_key)

    def ordered_tasks(self) -> list[TaskDefinition]:
        """按拓扑序返回全部任务定义"""
        return [self._tasks[key] for key in self._order]

    def to_raw(self) -> dict[str, Any]:
        """序列化为目录文件格式（camelCase）"""
        return {
            "tasks": [t.model_dump(mode="json", by_alias=True) for t in self.ordered_tasks()],
            "seasonalEvents": [
                e.model_dump(mode="json", by_alias=True) for e in self._events.values()
            ],
            "achievements": [
                a.model_dump(mode="json", by_alias=True) for a in self._achievements.values()
            ],
        }


def load_catalog_file(path: str | Path) -> Catalog:
    """从 JSON 文件加载目录

    Raises:
        CatalogError: 文件内容非法
        OSError: 文件不可读
    """
    file_path = Path(path)
    try:
        data = json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise CatalogValidationError(f"Catalog file {file_path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise CatalogValidationError(f"Catalog file {file_path} must contain a JSON object")
    return Catalog.from_raw(data)


def load_default_catalog() -> Catalog:
    """加载内置 seed 目录"""
    return Catalog.from_raw(default_catalog_data())


def load_catalog(path: str | Path | None = None) -> Catalog:
    """加载目录：显式路径 > ONESHOT_CATALOG_PATH > 内置 seed"""
    effective = Path(path) if path is not None else get_catalog_path()
    if effective is None:
        catalog = load_default_catalog()
        source = "embedded"
    else:
        catalog = load_catalog_file(effective)
        source = str(effective)

    log.info(
        "catalog_loaded",
        source=source,
        task_count=len(catalog.tasks),
        seasonal_event_count=len(catalog.seasonal_events),
        achievement_count=len(catalog.achievements),
    )
    return catalog

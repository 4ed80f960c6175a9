"""OneShot Core 异常体系

CatalogError 系列：任务目录完整性/配置错误，加载时即失败，服务拒绝启动。
JourneyError 系列：单个用户操作的业务错误，由 gateway 映射为 HTTP 状态码。
"""


class CatalogError(Exception):
    """任务目录基础异常（加载期致命错误）"""


class CatalogValidationError(CatalogError):
    """目录记录结构非法（字段类型、枚举值等）"""

    def __init__(self, message: str, errors: list[dict] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class DuplicateKeyError(CatalogError):
    """目录中出现重复的 task_key / event_key / achievement_key"""

    def __init__(self, kind: str, key: str) -> None:
        super().__init__(f"Duplicate {kind} key: {key}")
        self.kind = kind
        self.key = key


class DanglingDependencyError(CatalogError):
    """依赖引用了不存在的 task_key"""

    def __init__(self, task_key: str, missing_key: str) -> None:
        super().__init__(
            f"Task {task_key!r} depends on unknown task {missing_key!r}"
        )
        self.task_key = task_key
        self.missing_key = missing_key


class DependencyCycleError(CatalogError):
    """依赖图存在环，无法拓扑排序"""

    def __init__(self, cycle_keys: list[str]) -> None:
        super().__init__(
            "Dependency cycle detected among tasks: " + ", ".join(cycle_keys)
        )
        self.cycle_keys = cycle_keys


class UnknownPredicateError(CatalogError):
    """触发条件中出现未知的 predicate 类型"""

    def __init__(self, kind: str, task_key: str | None = None) -> None:
        where = f" in task {task_key!r}" if task_key else ""
        super().__init__(f"Unknown trigger predicate {kind!r}{where}")
        self.kind = kind
        self.task_key = task_key


class UnknownSeasonalEventError(CatalogError):
    """seasonal 触发条件引用了不存在的季节事件"""

    def __init__(self, task_key: str, event_key: str) -> None:
        super().__init__(
            f"Task {task_key!r} references unknown seasonal event {event_key!r}"
        )
        self.task_key = task_key
        self.event_key = event_key


class JourneyError(Exception):
    """用户旅程操作基础异常"""


class TaskNotFoundError(JourneyError):
    """目录中不存在该 task_key"""

    def __init__(self, task_key: str) -> None:
        super().__init__(f"Task with key {task_key} does not exist")
        self.task_key = task_key


class InvalidTaskTransitionError(JourneyError):
    """任务状态流转非法"""

    def __init__(self, task_key: str, from_status: str, to_status: str, reason: str = "") -> None:
        message = f"Cannot transition task {task_key} from {from_status} to {to_status}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.task_key = task_key
        self.from_status = from_status
        self.to_status = to_status

"""评估与排序结果模型"""

from pydantic import BaseModel, ConfigDict, Field

from .catalog import TaskDefinition
from .enums import TaskStatus


class EvaluatedTask(BaseModel):
    """单任务评估结果"""

    model_config = ConfigDict(frozen=True)

    task: TaskDefinition
    status: TaskStatus = Field(description="评估后的任务状态")
    unlocked: bool = Field(description="依赖是否全部完成")
    triggered: bool = Field(description="依赖满足且触发条件成立且未完成/忽略")
    blocking: bool = Field(description="触发中且 blocks_sharing")

    @property
    def task_key(self) -> str:
        return self.task.task_key


class RankedTask(BaseModel):
    """排序后的任务"""

    model_config = ConfigDict(frozen=True)

    task: TaskDefinition
    blocking: bool
    score: int = Field(description="基础分 + 季节加成")
    seasonal_boost: int = Field(default=0, description="季节加成合计")
    season_name: str | None = Field(default=None, description="加成来源（事件标题或月份）")

    @property
    def task_key(self) -> str:
        return self.task.task_key

"""Task Domain Model

Task 属于当前认证用户，task_id 由持久化服务分配，客户端从不生成。
TaskFilter 是纯读侧视图，不修改存储的集合。
"""

from collections.abc import Iterable
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class Task(BaseModel):
    """待办任务"""

    model_config = ConfigDict(frozen=True)

    task_id: str = Field(description="持久化服务分配的唯一标识")
    title: str = Field(min_length=1, description="任务标题")
    completed: bool = Field(default=False, description="是否已完成")


class TaskFilter(BaseModel):
    """任务可见集过滤条件

    标题不区分大小写包含 query，且 completed_only 时仅保留已完成任务。
    空 query 匹配所有任务。两个谓词可交换。
    """

    model_config = ConfigDict(frozen=True)

    query: str = Field(default="", description="搜索文本")
    completed_only: bool = Field(default=False, description="仅显示已完成任务")

    def matches(self, task: Task) -> bool:
        if self.completed_only and not task.completed:
            return False
        return self.query.casefold() in task.title.casefold()

    def apply(self, tasks: Iterable[Task]) -> list[Task]:
        """计算可见集，保持原有顺序"""
        return [task for task in tasks if self.matches(task)]


class TaskListSnapshot(BaseModel):
    """TaskStore 发布给观察者的不可变快照"""

    model_config = ConfigDict(frozen=True)

    tasks: tuple[Task, ...] = Field(default=(), description="按持久化服务返回顺序排列")
    loaded: bool = Field(default=False, description="是否已完成过一次 fetch")
    last_error: str = Field(default="", description="最近一次远程失败信息")


class OperationResult(BaseModel):
    """TaskStore 操作结果"""

    model_config = ConfigDict(frozen=True)

    ok: bool
    error_kind: Literal["validation", "remote", "stale"] | None = None
    error_message: str = ""
    task: Task | None = None

    @classmethod
    def success(cls, task: Task | None = None) -> "OperationResult":
        return cls(ok=True, task=task)

    @classmethod
    def validation_failed(cls, message: str) -> "OperationResult":
        return cls(ok=False, error_kind="validation", error_message=message)

    @classmethod
    def remote_failed(cls, message: str) -> "OperationResult":
        return cls(ok=False, error_kind="remote", error_message=message)

    @classmethod
    def stale(cls, message: str) -> "OperationResult":
        """请求完成前会话已结束，结果被丢弃"""
        return cls(ok=False, error_kind="stale", error_message=message)

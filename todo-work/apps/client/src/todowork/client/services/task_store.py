"""TaskStore -- 当前用户任务列表的可观察缓存

所有写操作先完成远程调用，成功后才更新本地集合；失败时本地集合不变，
错误通过 OperationResult 返回并写入快照的 last_error 供展示。
没有离线队列，也没有自动重试。

clear() 会丢弃整个集合并推进 epoch，此前发起、之后才返回的请求结果会被丢弃，
保证集合中只有当前会话用户的任务。
"""

from collections.abc import Callable

import structlog
from todowork.core.config import TASK_TITLE_MAX_LENGTH
from todowork.core.exceptions import RemoteCallFailure, SessionMismatchError
from todowork.core.models import OperationResult, Task, TaskFilter, TaskListSnapshot
from todowork.core.store.protocols import TaskPersistenceService

from .state_hub import StateHub

log = structlog.get_logger()

# 当前会话用户 ID 提供者，未认证时返回 None
UserIdProvider = Callable[[], str | None]

UNEXPECTED_ERROR_MESSAGE = "Something went wrong, please try again"
STALE_SESSION_MESSAGE = "The session ended before the request completed"


class TaskStore:
    """任务列表控制器"""

    def __init__(
        self,
        persistence: TaskPersistenceService,
        current_user: UserIdProvider,
        hub: StateHub[TaskListSnapshot] | None = None,
    ) -> None:
        self._persistence = persistence
        self._current_user = current_user
        self._hub: StateHub[TaskListSnapshot] = hub or StateHub(
            TaskListSnapshot(), name="tasks"
        )
        self._epoch = 0

    @property
    def snapshot(self) -> TaskListSnapshot:
        return self._hub.snapshot

    @property
    def tasks(self) -> tuple[Task, ...]:
        return self._hub.snapshot.tasks

    def subscribe(self, replay: bool = True):
        return self._hub.subscribe(replay=replay)

    def unsubscribe(self, queue) -> None:
        self._hub.unsubscribe(queue)

    async def fetch_tasks(self) -> OperationResult:
        """拉取当前用户的全部任务，整体替换本地集合并保持服务端顺序"""
        user_id = self._require_user("fetch_tasks")
        epoch = self._epoch
        try:
            tasks = await self._persistence.list_tasks(user_id)
        except Exception as e:
            return self._failed("fetch_tasks", e, epoch)

        if self._is_stale(epoch, user_id):
            return self._discarded("fetch_tasks")

        self._publish(tuple(tasks))
        log.debug("task_collection_fetched", user_id=user_id, count=len(tasks))
        return OperationResult.success()

    async def add_task(self, title: str) -> OperationResult:
        """创建任务，成功后追加到本地集合末尾

        空白标题直接返回 validation 失败，不发起远程调用。
        """
        normalized = title.strip()
        if not normalized:
            return OperationResult.validation_failed("Task title must not be blank")
        if len(normalized) > TASK_TITLE_MAX_LENGTH:
            return OperationResult.validation_failed(
                f"Task title must be at most {TASK_TITLE_MAX_LENGTH} characters"
            )

        user_id = self._require_user("add_task")
        epoch = self._epoch
        try:
            task = await self._persistence.create_task(user_id, normalized)
        except Exception as e:
            return self._failed("add_task", e, epoch)

        if self._is_stale(epoch, user_id):
            return self._discarded("add_task")

        self._publish((*self.snapshot.tasks, task))
        log.info("task_added", task_id=task.task_id)
        return OperationResult.success(task)

    async def update_task_completion(self, task_id: str, completed: bool) -> OperationResult:
        """更新完成状态，成功后只修改本地对应任务的 completed 字段"""
        user_id = self._require_user("update_task_completion")
        epoch = self._epoch
        try:
            await self._persistence.update_completion(user_id, task_id, completed)
        except Exception as e:
            return self._failed("update_task_completion", e, epoch)

        if self._is_stale(epoch, user_id):
            return self._discarded("update_task_completion")

        tasks = self.snapshot.tasks
        if not any(task.task_id == task_id for task in tasks):
            # 本地不存在该 ID 时视为空补丁
            log.debug("task_patch_target_missing", task_id=task_id)
            return OperationResult.success()

        patched = tuple(
            task.model_copy(update={"completed": completed})
            if task.task_id == task_id
            else task
            for task in tasks
        )
        self._publish(patched)
        return OperationResult.success(
            next(task for task in patched if task.task_id == task_id)
        )

    async def delete_task(self, task_id: str) -> OperationResult:
        """删除任务，成功后从本地集合移除"""
        user_id = self._require_user("delete_task")
        epoch = self._epoch
        try:
            await self._persistence.delete_task(user_id, task_id)
        except Exception as e:
            return self._failed("delete_task", e, epoch)

        if self._is_stale(epoch, user_id):
            return self._discarded("delete_task")

        self._publish(tuple(task for task in self.snapshot.tasks if task.task_id != task_id))
        log.info("task_deleted", task_id=task_id)
        return OperationResult.success()

    def visible_tasks(self, query: str = "", completed_only: bool = False) -> list[Task]:
        """读侧过滤视图，不修改存储的集合"""
        return TaskFilter(query=query, completed_only=completed_only).apply(
            self.snapshot.tasks
        )

    def clear(self) -> None:
        """丢弃整个集合（退出登录时调用）"""
        self._epoch += 1
        current = self.snapshot
        if current == TaskListSnapshot():
            return
        self._hub.publish(TaskListSnapshot())
        log.info("task_collection_cleared", discarded=len(current.tasks))

    def _require_user(self, operation: str) -> str:
        user_id = self._current_user()
        if not user_id:
            raise SessionMismatchError(operation)
        return user_id

    def _is_stale(self, epoch: int, user_id: str) -> bool:
        return epoch != self._epoch or self._current_user() != user_id

    def _publish(self, tasks: tuple[Task, ...]) -> None:
        self._hub.publish(TaskListSnapshot(tasks=tasks, loaded=True, last_error=""))

    def _discarded(self, operation: str) -> OperationResult:
        log.info("task_result_discarded_stale_session", operation=operation)
        return OperationResult.stale(STALE_SESSION_MESSAGE)

    def _failed(self, operation: str, error: Exception, epoch: int) -> OperationResult:
        """远程调用失败：本地集合不变，记录 last_error 并返回失败结果"""
        if isinstance(error, RemoteCallFailure):
            message = error.message
            log.warning(
                "task_operation_failed",
                operation=operation,
                error_type=type(error).__name__,
                error=message,
            )
        else:
            message = UNEXPECTED_ERROR_MESSAGE
            log.error(
                "task_operation_failed",
                operation=operation,
                error_type=type(error).__name__,
                exc_info=error,
            )

        if epoch == self._epoch:
            current = self.snapshot
            self._hub.publish(
                TaskListSnapshot(
                    tasks=current.tasks,
                    loaded=current.loaded,
                    last_error=message,
                )
            )
        return OperationResult.remote_failed(message)

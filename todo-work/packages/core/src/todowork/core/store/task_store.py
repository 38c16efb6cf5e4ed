"""TaskPersistenceService SQLite 实现 -- 本地后端

task_id 使用 ULID 由服务端分配；seq 自增列保证 list_tasks 按创建顺序返回。
每次写操作单独提交，失败时回滚并包装为 RemoteCallFailure。
"""

from datetime import UTC, datetime

import aiosqlite
from ulid import ULID

from ..exceptions import RecordNotFoundError, RemoteCallFailure
from ..models.task import Task


class SqliteTaskService:
    """TaskPersistenceService 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def list_tasks(self, user_id: str) -> list[Task]:
        """查询用户任务列表，按创建顺序"""
        try:
            cursor = await self._conn.execute(
                """
                SELECT task_id, title, completed FROM tasks
                WHERE user_id = ? ORDER BY seq ASC
                """,
                (user_id,),
            )
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise RemoteCallFailure(
                f"Task storage failed: {e}", operation="list_tasks"
            ) from e
        return [self._row_to_task(row) for row in rows]

    async def create_task(self, user_id: str, title: str) -> Task:
        """创建任务记录"""
        task = Task(task_id=str(ULID()), title=title, completed=False)
        try:
            await self._conn.execute(
                """
                INSERT INTO tasks (task_id, user_id, title, completed, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    task.task_id,
                    user_id,
                    task.title,
                    0,
                    datetime.now(UTC).isoformat(),
                ),
            )
            await self._conn.commit()
        except aiosqlite.Error as e:
            await self._conn.rollback()
            raise RemoteCallFailure(
                f"Task storage failed: {e}", operation="create_task"
            ) from e
        return task

    async def update_completion(self, user_id: str, task_id: str, completed: bool) -> None:
        """更新任务完成状态"""
        await self._execute_single_row(
            "UPDATE tasks SET completed = ? WHERE user_id = ? AND task_id = ?",
            (1 if completed else 0, user_id, task_id),
            operation="update_completion",
            task_id=task_id,
        )

    async def delete_task(self, user_id: str, task_id: str) -> None:
        """删除任务记录"""
        await self._execute_single_row(
            "DELETE FROM tasks WHERE user_id = ? AND task_id = ?",
            (user_id, task_id),
            operation="delete_task",
            task_id=task_id,
        )

    async def _execute_single_row(
        self,
        sql: str,
        params: tuple,
        operation: str,
        task_id: str,
    ) -> None:
        """执行只应影响一行的写操作，未命中时抛出 RecordNotFoundError"""
        try:
            cursor = await self._conn.execute(sql, params)
            affected = cursor.rowcount
            if affected == 0:
                await self._conn.rollback()
                raise RecordNotFoundError(operation, task_id)
            await self._conn.commit()
        except aiosqlite.Error as e:
            await self._conn.rollback()
            raise RemoteCallFailure(
                f"Task storage failed: {e}", operation=operation
            ) from e

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> Task:
        """将数据库行转换为 Task 模型"""
        return Task(task_id=row[0], title=row[1], completed=bool(row[2]))

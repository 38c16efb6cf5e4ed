"""todowork Core Store -- 协作方接口与本地 SQLite 后端

提供工厂函数创建共享数据库连接的后端实例组。
"""

from pathlib import Path

import aiosqlite

from .account_store import SqliteAccountService, normalize_email
from .profile_store import SqliteProfileStore
from .protocols import AccountService, ProfileStore, SessionListener, TaskPersistenceService
from .sqlite_init import init_db
from .task_store import SqliteTaskService


class BackendGroup:
    """本地后端实例组 -- 共享同一个数据库连接"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self.conn = conn
        self.account_service = SqliteAccountService(conn)
        self.profile_store = SqliteProfileStore(conn)
        self.task_service = SqliteTaskService(conn)

    async def close(self) -> None:
        await self.conn.close()


async def create_backend_group(db_path: str) -> BackendGroup:
    """创建本地后端实例组

    Args:
        db_path: SQLite 数据库文件路径

    Returns:
        BackendGroup 实例
    """
    # 确保数据库目录存在
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    try:
        await init_db(conn)
    except BaseException:
        await conn.close()
        raise

    return BackendGroup(conn=conn)


__all__ = [
    "AccountService",
    "ProfileStore",
    "TaskPersistenceService",
    "SessionListener",
    "BackendGroup",
    "create_backend_group",
    "SqliteAccountService",
    "SqliteProfileStore",
    "SqliteTaskService",
    "init_db",
    "normalize_email",
]

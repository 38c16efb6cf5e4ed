"""CLI 入口模块 -- python -m todowork.core <command>

支持的命令：
  init-db              初始化本地 SQLite 后端
  list-tasks <email>   按存储顺序列出本地用户的任务
"""

import asyncio
import sys

from .config import get_db_path


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        _print_usage()
        sys.exit(1)

    command = sys.argv[1]

    if command == "init-db":
        asyncio.run(init_local_db())
    elif command == "list-tasks":
        if len(sys.argv) < 3:
            print("用法: python -m todowork.core list-tasks <email>")
            sys.exit(1)
        found = asyncio.run(list_local_tasks(sys.argv[2]))
        if not found:
            sys.exit(1)
    else:
        print(f"未知命令: {command}")
        print("可用命令: init-db, list-tasks")
        sys.exit(1)


def _print_usage() -> None:
    print("用法: python -m todowork.core <command>")
    print("命令:")
    print("  init-db              初始化本地 SQLite 后端")
    print("  list-tasks <email>   列出本地用户的任务")


async def init_local_db() -> None:
    """创建并初始化本地数据库"""
    from .store import create_backend_group

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")

    backend = await create_backend_group(db_path)
    await backend.close()
    print("初始化完成")


async def list_local_tasks(email: str) -> bool:
    """打印指定用户的任务，用户不存在时返回 False"""
    from .store import create_backend_group

    backend = await create_backend_group(get_db_path())
    try:
        user_id = await backend.account_service.find_user_id(email)
        if user_id is None:
            print(f"用户不存在: {email}")
            return False
        tasks = await backend.task_service.list_tasks(user_id)
        for task in tasks:
            mark = "x" if task.completed else " "
            print(f"[{mark}] {task.task_id}  {task.title}")
        print(f"共 {len(tasks)} 条任务")
        return True
    finally:
        await backend.close()


if __name__ == "__main__":
    main()

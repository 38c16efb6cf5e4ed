"""协作方 Protocol 接口定义

定义 AccountService、ProfileStore、TaskPersistenceService 的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
本地 SQLite 后端与 Firebase 后端均实现这些接口。

所有失败统一抛出 RemoteCallFailure 及其子类。
"""

from collections.abc import Callable
from typing import Protocol

from ..models.session import SessionHandle, UserProfile
from ..models.task import Task

# 会话变更监听器：收到当前有效会话，或 None 表示会话失效
SessionListener = Callable[[SessionHandle | None], None]


class AccountService(Protocol):
    """账号服务接口"""

    async def sign_in(self, email: str, password: str) -> SessionHandle:
        """邮箱密码登录"""
        ...

    async def sign_up(self, email: str, password: str) -> SessionHandle:
        """注册新账号并建立会话"""
        ...

    async def sign_out(self) -> None:
        """退出当前会话"""
        ...

    async def current_session(self) -> SessionHandle | None:
        """查询当前有效会话"""
        ...

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """订阅会话变更，返回取消订阅函数"""
        ...


class ProfileStore(Protocol):
    """用户资料存储接口"""

    async def get_profile(self, user_id: str) -> UserProfile | None:
        """读取用户资料，不存在时返回 None"""
        ...

    async def set_profile(self, user_id: str, profile: UserProfile) -> None:
        """写入（覆盖）用户资料"""
        ...


class TaskPersistenceService(Protocol):
    """任务持久化服务接口（按用户隔离）"""

    async def list_tasks(self, user_id: str) -> list[Task]:
        """按创建顺序返回用户的全部任务"""
        ...

    async def create_task(self, user_id: str, title: str) -> Task:
        """创建任务，服务端分配 task_id 且 completed=False"""
        ...

    async def update_completion(self, user_id: str, task_id: str, completed: bool) -> None:
        """更新任务完成状态"""
        ...

    async def delete_task(self, user_id: str, task_id: str) -> None:
        """删除任务"""
        ...

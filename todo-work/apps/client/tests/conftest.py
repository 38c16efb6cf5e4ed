"""apps/client 测试配置 -- 内存版协作方实现

FakeAccountService / FakeProfileStore / FakeTaskService 满足 core 中的 Protocol，
可以注入失败、阻塞调用，用于验证控制器的状态发布与错误路径。
"""

import asyncio
from collections.abc import Callable

import pytest
from todowork.client.services.auth_controller import AuthController
from todowork.client.services.task_store import TaskStore
from todowork.core.exceptions import AuthRejectedError, RecordNotFoundError
from todowork.core.models import SessionHandle, Task, UserProfile
from todowork.core.store.protocols import SessionListener


class _FaultInjection:
    """按操作名注入失败或阻塞"""

    def __init__(self) -> None:
        self.failures: dict[str, Exception] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.calls: list[str] = []

    def fail_next(self, operation: str, error: Exception) -> None:
        self.failures[operation] = error

    def block(self, operation: str) -> asyncio.Event:
        """阻塞指定操作，直到返回的 Event 被 set"""
        gate = asyncio.Event()
        self.gates[operation] = gate
        return gate

    async def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        gate = self.gates.pop(operation, None)
        if gate is not None:
            await gate.wait()
        error = self.failures.pop(operation, None)
        if error is not None:
            raise error


class FakeAccountService(_FaultInjection):
    """内存账号服务"""

    def __init__(self) -> None:
        super().__init__()
        self.accounts: dict[str, tuple[str, str]] = {}
        self.current: SessionHandle | None = None
        self._listeners: list[SessionListener] = []
        self._next_id = 1

    def add_account(self, email: str, password: str) -> str:
        user_id = f"user-{self._next_id}"
        self._next_id += 1
        self.accounts[email] = (user_id, password)
        return user_id

    async def sign_in(self, email: str, password: str) -> SessionHandle:
        await self._enter("sign_in")
        record = self.accounts.get(email)
        if record is None or record[1] != password:
            raise AuthRejectedError("Invalid email or password", operation="sign_in")
        self._set_current(SessionHandle(user_id=record[0], email=email))
        return self.current

    async def sign_up(self, email: str, password: str) -> SessionHandle:
        await self._enter("sign_up")
        if email in self.accounts:
            raise AuthRejectedError("The email address is already in use", operation="sign_up")
        user_id = self.add_account(email, password)
        self._set_current(SessionHandle(user_id=user_id, email=email))
        return self.current

    async def sign_out(self) -> None:
        await self._enter("sign_out")
        if self.current is not None:
            self._set_current(None)

    async def current_session(self) -> SessionHandle | None:
        await self._enter("current_session")
        return self.current

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def expire_session(self) -> None:
        """模拟服务端使会话失效"""
        self._set_current(None)

    def _set_current(self, handle: SessionHandle | None) -> None:
        self.current = handle
        for listener in list(self._listeners):
            listener(handle)


class FakeProfileStore(_FaultInjection):
    """内存 Profile 存储"""

    def __init__(self) -> None:
        super().__init__()
        self.profiles: dict[str, UserProfile] = {}

    async def get_profile(self, user_id: str) -> UserProfile | None:
        await self._enter("get_profile")
        return self.profiles.get(user_id)

    async def set_profile(self, user_id: str, profile: UserProfile) -> None:
        await self._enter("set_profile")
        self.profiles[user_id] = profile


class FakeTaskService(_FaultInjection):
    """内存任务持久化，按用户隔离并保持插入顺序"""

    def __init__(self) -> None:
        super().__init__()
        self.tasks: dict[str, list[Task]] = {}
        self._next_id = 1

    async def list_tasks(self, user_id: str) -> list[Task]:
        await self._enter("list_tasks")
        return list(self.tasks.get(user_id, []))

    async def create_task(self, user_id: str, title: str) -> Task:
        await self._enter("create_task")
        task = Task(task_id=f"task-{self._next_id}", title=title)
        self._next_id += 1
        self.tasks.setdefault(user_id, []).append(task)
        return task

    async def update_completion(self, user_id: str, task_id: str, completed: bool) -> None:
        await self._enter("update_completion")
        stored = self.tasks.get(user_id, [])
        for index, task in enumerate(stored):
            if task.task_id == task_id:
                stored[index] = task.model_copy(update={"completed": completed})
                return
        raise RecordNotFoundError("update_completion", task_id)

    async def delete_task(self, user_id: str, task_id: str) -> None:
        await self._enter("delete_task")
        stored = self.tasks.get(user_id, [])
        remaining = [task for task in stored if task.task_id != task_id]
        if len(remaining) == len(stored):
            raise RecordNotFoundError("delete_task", task_id)
        self.tasks[user_id] = remaining


@pytest.fixture
def account_service() -> FakeAccountService:
    return FakeAccountService()


@pytest.fixture
def profile_store() -> FakeProfileStore:
    return FakeProfileStore()


@pytest.fixture
def task_service() -> FakeTaskService:
    return FakeTaskService()


@pytest.fixture
def auth(account_service, profile_store) -> AuthController:
    controller = AuthController(account_service, profile_store)
    controller.start()
    yield controller
    controller.close()


@pytest.fixture
def signed_in_user() -> dict[str, str]:
    """TaskStore 测试中可切换的当前用户"""
    return {"user_id": "user-1"}


@pytest.fixture
def task_store(task_service, signed_in_user) -> TaskStore:
    return TaskStore(task_service, lambda: signed_in_user.get("user_id"))

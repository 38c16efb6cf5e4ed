"""AppShell -- 组装认证控制器与任务缓存，决定启动路由

生命周期：
1. open_app() 初始化日志并按 RemoteConfig 选择后端（local / firebase）
2. AppShell.start() 订阅账号服务会话变更，并在会话离开 AUTHENTICATED 时清空任务
3. resolve_start_route() 同时等待会话检查与最短启动页时长
4. 退出时关闭后端连接
"""

import asyncio
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from enum import StrEnum

import structlog
from todowork.core.config import MIN_SPLASH_DURATION_S, get_db_path
from todowork.core.models import AuthStatus, Session
from todowork.core.store import create_backend_group
from todowork.core.store.protocols import (
    AccountService,
    ProfileStore,
    TaskPersistenceService,
)
from todowork.remote import FirebaseBackend, RemoteConfig, load_remote_config

from .logging_config import setup_logging
from .services.auth_controller import AuthController
from .services.task_store import TaskStore

log = structlog.get_logger()


class StartRoute(StrEnum):
    """启动页结束后的初始页面"""

    HOME = "home"
    LOGIN = "login"


class AppShell:
    """应用外壳 -- 持有 AuthController 与 TaskStore"""

    def __init__(
        self,
        account_service: AccountService,
        profile_store: ProfileStore,
        task_service: TaskPersistenceService,
        min_splash_s: float = MIN_SPLASH_DURATION_S,
    ) -> None:
        self.auth = AuthController(account_service, profile_store)
        self.tasks = TaskStore(task_service, self._current_user_id)
        self._min_splash_s = min_splash_s
        self._unwatch: Callable[[], None] | None = None

    def _current_user_id(self) -> str | None:
        session = self.auth.snapshot
        return session.user_id if session.is_authenticated else None

    def start(self) -> None:
        self.auth.start()
        if self._unwatch is None:
            self._unwatch = self.auth.hub.watch(self._on_session)

    def close(self) -> None:
        if self._unwatch is not None:
            self._unwatch()
            self._unwatch = None
        self.auth.close()

    def _on_session(self, session: Session) -> None:
        # 只要不是已认证状态，任务集合就不能保留上一个用户的数据
        if session.status != AuthStatus.AUTHENTICATED:
            self.tasks.clear()

    async def resolve_start_route(self) -> StartRoute | None:
        """等待会话检查和最短启动页时长，返回初始页面

        会话仍未确定（LOADING / ERROR）时返回 None，由调用方继续展示启动页。
        """
        session, _ = await asyncio.gather(
            self.auth.check_session(),
            asyncio.sleep(self._min_splash_s),
        )
        if session.status == AuthStatus.AUTHENTICATED:
            route = StartRoute.HOME
        elif session.status == AuthStatus.UNAUTHENTICATED:
            route = StartRoute.LOGIN
        else:
            route = None
        log.info("start_route_resolved", status=session.status, route=route)
        return route


@asynccontextmanager
async def open_app(
    config: RemoteConfig | None = None,
    db_path: str | None = None,
    min_splash_s: float | None = None,
    configure_logging: bool = True,
) -> AsyncGenerator[AppShell, None]:
    """创建并启动 AppShell，退出时释放后端资源

    Args:
        config: 后端配置，默认从环境变量加载
        db_path: 本地后端数据库路径，默认 get_db_path()
        min_splash_s: 最短启动页时长，默认 MIN_SPLASH_DURATION_S
        configure_logging: 是否初始化 structlog
    """
    if configure_logging:
        setup_logging()

    config = config or load_remote_config()
    if config.backend == "firebase":
        backend = FirebaseBackend(config)
        log.info("backend_initialized", backend="firebase", project_id=config.project_id)
    else:
        path = db_path or get_db_path()
        backend = await create_backend_group(path)
        log.info("backend_initialized", backend="local", db_path=path)

    shell: AppShell | None = None
    try:
        shell = AppShell(
            backend.account_service,
            backend.profile_store,
            backend.task_service,
            min_splash_s=MIN_SPLASH_DURATION_S if min_splash_s is None else min_splash_s,
        )
        shell.start()
        yield shell
    finally:
        if shell is not None:
            shell.close()
        await backend.close()

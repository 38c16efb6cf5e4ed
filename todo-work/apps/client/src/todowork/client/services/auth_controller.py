"""AuthController -- 认证状态机

会话状态的唯一可信来源，负责登录、注册、退出和启动时的会话检查。
状态变更只在完整调用链（主调用 + 依赖的 Profile 读写）完成或失败后发布一次。

流程：
1. sign_in / sign_up 校验输入后发布 LOADING
2. 调用 AccountService（sign_up 额外写入 Profile）
3. 成功 -> 读取 Profile -> 发布 AUTHENTICATED
4. 失败 -> 发布 ERROR(message)，允许重试
"""

from collections.abc import Callable

import structlog
from todowork.core.exceptions import (
    InputValidationError,
    InvalidTransitionError,
    RemoteCallFailure,
)
from todowork.core.models import (
    AuthStatus,
    Session,
    SessionHandle,
    UserProfile,
    validate_transition,
)
from todowork.core.store.protocols import AccountService, ProfileStore

from .state_hub import StateHub

log = structlog.get_logger()

# 非 RemoteCallFailure 的意外异常对外展示的信息，细节只写日志
UNEXPECTED_ERROR_MESSAGE = "Something went wrong, please try again"


def _require_fields(**fields: str) -> None:
    """所有字段必须非空白，否则抛出 InputValidationError"""
    for name, value in fields.items():
        if not value or not value.strip():
            raise InputValidationError(name)


class AuthController:
    """认证控制器"""

    def __init__(
        self,
        account_service: AccountService,
        profile_store: ProfileStore,
        hub: StateHub[Session] | None = None,
    ) -> None:
        self._account = account_service
        self._profiles = profile_store
        self._hub: StateHub[Session] = hub or StateHub(Session.loading(), name="session")
        # 每次发起新操作递增；旧操作完成时若已被后续操作取代则丢弃结果
        self._op_seq = 0
        self._unsubscribe_account: Callable[[], None] | None = None

    @property
    def snapshot(self) -> Session:
        return self._hub.snapshot

    @property
    def hub(self) -> StateHub[Session]:
        return self._hub

    def subscribe(self, replay: bool = True):
        return self._hub.subscribe(replay=replay)

    def unsubscribe(self, queue) -> None:
        self._hub.unsubscribe(queue)

    def start(self) -> None:
        """订阅账号服务的会话变更通知"""
        if self._unsubscribe_account is None:
            self._unsubscribe_account = self._account.subscribe(self._on_session_changed)

    def close(self) -> None:
        """取消会话变更订阅"""
        if self._unsubscribe_account is not None:
            self._unsubscribe_account()
            self._unsubscribe_account = None

    async def check_session(self) -> Session:
        """启动时查询已有会话

        仅在 LOADING 状态下生效；其他状态直接返回当前快照。
        会话查询失败视为未登录，Profile 读取失败保留占位值。
        """
        if self.snapshot.status != AuthStatus.LOADING:
            log.debug("auth_check_session_skipped", status=self.snapshot.status)
            return self.snapshot

        seq = self._next_seq()
        try:
            handle = await self._account.current_session()
        except RemoteCallFailure as e:
            log.warning(
                "auth_session_check_failed",
                error_type=type(e).__name__,
                error=e.message,
            )
            handle = None
        except Exception as e:
            log.error(
                "auth_session_check_failed",
                error_type=type(e).__name__,
                exc_info=e,
            )
            handle = None

        if handle is None:
            self._publish_if_current(seq, Session.unauthenticated())
            return self.snapshot

        profile = await self._load_profile(handle.user_id)
        self._publish_if_current(seq, Session.authenticated(handle.user_id, profile))
        return self.snapshot

    async def sign_in(self, email: str, password: str) -> Session:
        """邮箱密码登录

        Raises:
            InputValidationError: email 或 password 为空白
        """
        _require_fields(email=email, password=password)
        seq = self._begin_operation()

        try:
            handle = await self._account.sign_in(email, password)
        except Exception as e:
            self._fail(seq, "sign_in", e)
            return self.snapshot

        profile = await self._load_profile(handle.user_id)
        self._publish_if_current(seq, Session.authenticated(handle.user_id, profile))
        log.info("auth_signed_in", user_id=handle.user_id)
        return self.snapshot

    async def sign_up(
        self,
        email: str,
        password: str,
        display_name: str,
        secondary_id: str,
    ) -> Session:
        """注册账号并写入 Profile

        账号创建成功但 Profile 写入失败时进入 ERROR，账号不回滚。

        Raises:
            InputValidationError: 任一字段为空白
        """
        _require_fields(
            email=email,
            password=password,
            display_name=display_name,
            secondary_id=secondary_id,
        )
        seq = self._begin_operation()
        profile = UserProfile(
            display_name=display_name.strip(),
            secondary_id=secondary_id.strip(),
        )

        handle: SessionHandle | None = None
        try:
            handle = await self._account.sign_up(email, password)
            await self._profiles.set_profile(handle.user_id, profile)
        except Exception as e:
            if handle is not None:
                log.warning("auth_profile_write_failed", user_id=handle.user_id)
            self._fail(seq, "sign_up", e)
            return self.snapshot

        self._publish_if_current(seq, Session.authenticated(handle.user_id, profile))
        log.info("auth_signed_up", user_id=handle.user_id)
        return self.snapshot

    async def sign_out(self) -> Session:
        """退出登录，无论之前处于何种状态最终都是 UNAUTHENTICATED"""
        self._next_seq()
        try:
            await self._account.sign_out()
        except Exception as e:
            # 本地会话对退出操作具有权威性
            log.warning(
                "auth_sign_out_remote_failed",
                error_type=type(e).__name__,
            )
        self._publish(Session.unauthenticated())
        log.info("auth_signed_out")
        return self.snapshot

    def _on_session_changed(self, handle: SessionHandle | None) -> None:
        """账号服务的会话变更通知：只处理已认证会话失效"""
        if handle is None and self.snapshot.status == AuthStatus.AUTHENTICATED:
            log.info("auth_session_invalidated", user_id=self.snapshot.user_id)
            self._next_seq()
            self._publish(Session.unauthenticated())

    async def _load_profile(self, user_id: str) -> UserProfile | None:
        """读取 Profile，失败不致命"""
        try:
            return await self._profiles.get_profile(user_id)
        except RemoteCallFailure as e:
            log.warning(
                "auth_profile_fetch_failed",
                user_id=user_id,
                error_type=type(e).__name__,
            )
            return None
        except Exception as e:
            log.error(
                "auth_profile_fetch_failed",
                user_id=user_id,
                error_type=type(e).__name__,
                exc_info=e,
            )
            return None

    def _fail(self, seq: int, operation: str, error: Exception) -> None:
        """认证操作失败：发布 ERROR"""
        if isinstance(error, RemoteCallFailure):
            message = error.message
            log.info(
                f"auth_{operation}_failed",
                error_type=type(error).__name__,
                error=message,
            )
        else:
            message = UNEXPECTED_ERROR_MESSAGE
            log.error(
                f"auth_{operation}_failed",
                error_type=type(error).__name__,
                exc_info=error,
            )
        self._publish_if_current(seq, Session.error(message))

    def _next_seq(self) -> int:
        self._op_seq += 1
        return self._op_seq

    def _begin_operation(self) -> int:
        seq = self._next_seq()
        self._publish(Session.loading())
        return seq

    def _publish_if_current(self, seq: int, session: Session) -> None:
        if seq != self._op_seq:
            log.info(
                "auth_result_superseded",
                dropped_status=session.status,
                current_status=self.snapshot.status,
            )
            return
        self._publish(session)

    def _publish(self, session: Session) -> None:
        """校验流转后发布新快照；与当前快照相同时不重复发布"""
        current = self.snapshot
        if session == current:
            return
        if not validate_transition(current.status, session.status):
            raise InvalidTransitionError(current.status, session.status)
        log.debug(
            "auth_state_transition",
            from_status=current.status,
            to_status=session.status,
        )
        self._hub.publish(session)

"""FirebaseAccountService -- Identity Toolkit / Secure Token REST 封装

通过 httpx 调用 accounts:signInWithPassword / accounts:signUp，
会话句柄（含 idToken）保存在进程内存中，供 Firestore 客户端读取。

idToken 约一小时过期：Firestore 返回 401 时用 refresh token 换取新令牌，
refresh token 被拒绝则清除会话并通知监听器。
配置了 session_path 时 refresh token 写入会话文件，重启后据此恢复会话。
"""

import asyncio
from collections.abc import Callable
from pathlib import Path

import httpx
import structlog
from pydantic import ValidationError
from todowork.core.exceptions import AuthRejectedError, RemoteCallFailure
from todowork.core.models import SessionHandle
from todowork.core.store.protocols import SessionListener

from .config import DEFAULT_AUTH_URL, DEFAULT_TOKEN_URL
from .exceptions import (
    CONNECTION_ERROR_TYPES,
    ServiceUnreachableError,
    auth_error_code,
    auth_error_from_response,
)

log = structlog.get_logger()

# 会话文件只保存恢复会话所需的字段
_STORED_FIELDS = {"user_id", "email", "refresh_token"}


def _email_domain(email: str) -> str:
    """日志中只记录邮箱域名"""
    return email.rsplit("@", 1)[-1] if "@" in email else ""


class FirebaseAccountService:
    """AccountService 的 Firebase 实现"""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: str,
        auth_base_url: str = DEFAULT_AUTH_URL,
        token_base_url: str = DEFAULT_TOKEN_URL,
        session_path: str | Path | None = None,
    ) -> None:
        """
        Args:
            http_client: 共享的 httpx.AsyncClient（超时在 client 上配置）
            api_key: Firebase Web API Key
            auth_base_url: Identity Toolkit 基础 URL
            token_base_url: Secure Token 基础 URL
            session_path: 会话文件路径，None 表示不持久化
        """
        self._http = http_client
        self._api_key = api_key
        self._auth_base_url = auth_base_url.rstrip("/")
        self._token_base_url = token_base_url.rstrip("/")
        self._session_path = Path(session_path) if session_path else None
        self._current: SessionHandle | None = None
        self._listeners: list[SessionListener] = []
        self._refresh_lock = asyncio.Lock()
        self._restored = False

    async def sign_in(self, email: str, password: str) -> SessionHandle:
        return await self._password_call(
            "accounts:signInWithPassword", email, password, operation="sign_in"
        )

    async def sign_up(self, email: str, password: str) -> SessionHandle:
        return await self._password_call(
            "accounts:signUp", email, password, operation="sign_up"
        )

    async def sign_out(self) -> None:
        """丢弃本地令牌与会话文件（REST API 无服务端退出端点）"""
        self._restored = True
        if self._current is None:
            self._forget_stored_session()
            return
        self._set_current(None)

    async def current_session(self) -> SessionHandle | None:
        """当前会话；进程内尚无会话时尝试从会话文件恢复一次

        Raises:
            ServiceUnreachableError: 恢复会话时无法连接（会话文件保留，下次启动重试）
        """
        if self._current is None and not self._restored:
            await self._restore_session()
        return self._current

    def id_token(self) -> str | None:
        """当前会话的 idToken，未登录时为 None"""
        return None if self._current is None else self._current.id_token

    async def refresh_id_token(self, stale_token: str | None = None) -> str | None:
        """用 refresh token 换取新的 idToken

        并发的 401 只触发一次刷新：stale_token 已被替换时直接返回当前令牌。
        refresh token 被拒绝或缺失时清除会话并通知监听器，返回 None。

        Raises:
            ServiceUnreachableError: 连接失败（会话保留）
            RemoteCallFailure: 令牌服务 5xx 等非拒绝类错误（会话保留）
        """
        async with self._refresh_lock:
            current = self._current
            if current is None:
                return None
            if stale_token is not None and current.id_token != stale_token:
                return current.id_token
            if not current.refresh_token:
                log.info("firebase_session_invalidated", reason="missing_refresh_token")
                self._set_current(None)
                return None

            try:
                refreshed = await self._exchange_refresh_token(current, "refresh_token")
            except AuthRejectedError as e:
                log.info(
                    "firebase_session_invalidated",
                    reason="refresh_rejected",
                    code=e.code,
                    user_id=current.user_id,
                )
                if self._current is current:
                    self._set_current(None)
                return None

            if self._current is not current:
                # 刷新期间已退出或切换账号
                return self.id_token()
            self._set_current(refreshed, notify=False)
            log.info("firebase_token_refreshed", user_id=refreshed.user_id)
            return refreshed.id_token

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def _password_call(
        self,
        endpoint: str,
        email: str,
        password: str,
        operation: str,
    ) -> SessionHandle:
        """发送邮箱密码请求并解析会话句柄

        Raises:
            ServiceUnreachableError: 连接失败或超时
            AuthRejectedError: 凭证错误、邮箱已注册等
            RemoteCallFailure: 其他服务端错误或响应格式异常
        """
        url = f"{self._auth_base_url}/{endpoint}"
        try:
            response = await self._http.post(
                url,
                params={"key": self._api_key},
                json={
                    "email": email.strip(),
                    "password": password,
                    "returnSecureToken": True,
                },
            )
        except CONNECTION_ERROR_TYPES as e:
            log.warning(
                "firebase_auth_unreachable",
                operation=operation,
                error_type=type(e).__name__,
            )
            raise ServiceUnreachableError(operation, e) from e

        if not response.is_success:
            error = auth_error_from_response(response, operation)
            log.info(
                "firebase_auth_rejected",
                operation=operation,
                status_code=response.status_code,
                code=getattr(error, "code", ""),
                email_domain=_email_domain(email),
            )
            raise error

        try:
            data = response.json()
            handle = SessionHandle(
                user_id=data["localId"],
                email=data.get("email", email.strip()),
                id_token=data.get("idToken"),
                refresh_token=data.get("refreshToken"),
            )
        except (ValueError, KeyError, TypeError) as e:
            raise RemoteCallFailure(
                "Unexpected response from the authentication service",
                operation=operation,
            ) from e

        log.info("firebase_auth_succeeded", operation=operation, user_id=handle.user_id)
        self._restored = True
        self._set_current(handle)
        return handle

    async def _exchange_refresh_token(
        self, handle: SessionHandle, operation: str
    ) -> SessionHandle:
        """调用 Secure Token 端点换取新的 idToken / refresh token

        Raises:
            ServiceUnreachableError: 连接失败或超时
            AuthRejectedError: 4xx，refresh token 已失效或账号被禁用
            RemoteCallFailure: 5xx 或响应格式异常
        """
        try:
            response = await self._http.post(
                f"{self._token_base_url}/token",
                params={"key": self._api_key},
                data={
                    "grant_type": "refresh_token",
                    "refresh_token": handle.refresh_token or "",
                },
            )
        except CONNECTION_ERROR_TYPES as e:
            log.warning(
                "firebase_token_unreachable",
                operation=operation,
                error_type=type(e).__name__,
            )
            raise ServiceUnreachableError(operation, e) from e

        if not response.is_success:
            error = auth_error_from_response(response, operation)
            if response.status_code < 500 and not isinstance(error, AuthRejectedError):
                error = AuthRejectedError(
                    "Your session has expired, please sign in again",
                    operation=operation,
                    code=auth_error_code(response),
                )
            raise error

        try:
            data = response.json()
            return SessionHandle(
                user_id=data.get("user_id", handle.user_id),
                email=handle.email,
                id_token=data["id_token"],
                refresh_token=data.get("refresh_token", handle.refresh_token),
            )
        except (ValueError, KeyError, TypeError) as e:
            raise RemoteCallFailure(
                "Unexpected response from the authentication service",
                operation=operation,
            ) from e

    async def _restore_session(self) -> None:
        stored = self._read_stored_session()
        if stored is None:
            self._restored = True
            return

        try:
            handle = await self._exchange_refresh_token(stored, "restore_session")
        except AuthRejectedError as e:
            log.info("firebase_session_restore_rejected", code=e.code)
            self._restored = True
            self._forget_stored_session()
            return

        self._restored = True
        log.info("firebase_session_restored", user_id=handle.user_id)
        self._set_current(handle)

    def _read_stored_session(self) -> SessionHandle | None:
        if self._session_path is None or not self._session_path.exists():
            return None
        try:
            stored = SessionHandle.model_validate_json(self._session_path.read_text())
        except (OSError, ValidationError) as e:
            log.warning("firebase_session_file_invalid", error_type=type(e).__name__)
            self._forget_stored_session()
            return None
        return stored if stored.refresh_token else None

    def _write_stored_session(self, handle: SessionHandle) -> None:
        if self._session_path is None or not handle.refresh_token:
            return
        try:
            self._session_path.parent.mkdir(parents=True, exist_ok=True)
            self._session_path.write_text(handle.model_dump_json(include=_STORED_FIELDS))
        except OSError as e:
            log.warning("firebase_session_file_write_failed", error_type=type(e).__name__)

    def _forget_stored_session(self) -> None:
        if self._session_path is None:
            return
        try:
            self._session_path.unlink(missing_ok=True)
        except OSError as e:
            log.warning("firebase_session_file_remove_failed", error_type=type(e).__name__)

    def _set_current(self, handle: SessionHandle | None, notify: bool = True) -> None:
        self._current = handle
        if handle is None:
            self._forget_stored_session()
        else:
            self._write_stored_session(handle)
        if not notify:
            return
        for listener in list(self._listeners):
            try:
                listener(handle)
            except Exception:
                log.exception("session_listener_failed")

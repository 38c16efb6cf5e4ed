"""AccountService SQLite 实现 -- 本地后端

密码以 PBKDF2-SHA256 + 每账号随机 salt 存储。
当前会话保存在进程内存中，登录/注册/退出时通知会话监听器。
"""

import asyncio
import hashlib
import hmac
import secrets
from collections.abc import Callable
from datetime import UTC, datetime

import aiosqlite
import structlog
from ulid import ULID

from ..exceptions import AuthRejectedError, RemoteCallFailure
from ..models.session import SessionHandle
from .protocols import SessionListener

log = structlog.get_logger()

_PBKDF2_ITERATIONS = 200_000
_MIN_PASSWORD_LENGTH = 6
_UNKNOWN_ACCOUNT_SALT = "00" * 16


def normalize_email(email: str) -> str:
    """邮箱归一化：去除首尾空白并转小写"""
    return email.strip().lower()


def _hash_password(password: str, salt: str) -> str:
    """PBKDF2 计算耗时较长，调用方通过 asyncio.to_thread 在线程中执行"""
    digest = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        bytes.fromhex(salt),
        _PBKDF2_ITERATIONS,
    )
    return digest.hex()


class SqliteAccountService:
    """AccountService 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn
        self._current: SessionHandle | None = None
        self._listeners: list[SessionListener] = []

    async def sign_up(self, email: str, password: str) -> SessionHandle:
        """注册账号，成功后即建立会话"""
        normalized = normalize_email(email)
        if len(password) < _MIN_PASSWORD_LENGTH:
            raise AuthRejectedError(
                f"Password should be at least {_MIN_PASSWORD_LENGTH} characters",
                operation="sign_up",
                code="WEAK_PASSWORD",
            )

        user_id = str(ULID())
        salt = secrets.token_hex(16)
        password_hash = await asyncio.to_thread(_hash_password, password, salt)
        try:
            await self._conn.execute(
                """
                INSERT INTO accounts (user_id, email, password_salt, password_hash, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    normalized,
                    salt,
                    password_hash,
                    datetime.now(UTC).isoformat(),
                ),
            )
            await self._conn.commit()
        except aiosqlite.IntegrityError as e:
            await self._conn.rollback()
            raise AuthRejectedError(
                "The email address is already in use",
                operation="sign_up",
                code="EMAIL_EXISTS",
            ) from e
        except aiosqlite.Error as e:
            await self._conn.rollback()
            raise RemoteCallFailure(
                f"Account storage failed: {e}", operation="sign_up"
            ) from e

        handle = SessionHandle(user_id=user_id, email=normalized)
        self._set_current(handle)
        return handle

    async def sign_in(self, email: str, password: str) -> SessionHandle:
        """邮箱密码登录"""
        normalized = normalize_email(email)
        try:
            cursor = await self._conn.execute(
                "SELECT user_id, password_salt, password_hash FROM accounts WHERE email = ?",
                (normalized,),
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise RemoteCallFailure(
                f"Account storage failed: {e}", operation="sign_in"
            ) from e

        # 账号不存在时同样计算一次哈希，响应时间不暴露邮箱是否已注册
        salt, expected = (row[1], row[2]) if row is not None else (_UNKNOWN_ACCOUNT_SALT, "")
        password_hash = await asyncio.to_thread(_hash_password, password, salt)
        if row is None or not hmac.compare_digest(password_hash, expected):
            raise AuthRejectedError(
                "Invalid email or password",
                operation="sign_in",
                code="INVALID_LOGIN_CREDENTIALS",
            )

        handle = SessionHandle(user_id=row[0], email=normalized)
        self._set_current(handle)
        return handle

    async def sign_out(self) -> None:
        """清除当前会话（无会话时为空操作）"""
        if self._current is None:
            return
        self._set_current(None)

    async def current_session(self) -> SessionHandle | None:
        return self._current

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """订阅会话变更"""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def find_user_id(self, email: str) -> str | None:
        """按邮箱查询 user_id（维护命令使用）"""
        cursor = await self._conn.execute(
            "SELECT user_id FROM accounts WHERE email = ?",
            (normalize_email(email),),
        )
        row = await cursor.fetchone()
        return None if row is None else row[0]

    def _set_current(self, handle: SessionHandle | None) -> None:
        self._current = handle
        for listener in list(self._listeners):
            try:
                listener(handle)
            except Exception:
                log.exception("session_listener_failed")

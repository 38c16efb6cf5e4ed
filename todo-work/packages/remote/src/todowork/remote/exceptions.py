"""Firebase 错误映射

将 Identity Toolkit 错误码与 Firestore HTTP 状态码映射到
todowork.core.exceptions 中的 RemoteCallFailure 体系。
"""

import httpx
from todowork.core.exceptions import (
    AuthRejectedError,
    PermissionDeniedError,
    RecordNotFoundError,
    RemoteCallFailure,
    ServiceUnreachableError,
)

# Identity Toolkit 错误码 -> 可展示信息
AUTH_ERROR_MESSAGES: dict[str, str] = {
    "EMAIL_NOT_FOUND": "Invalid email or password",
    "INVALID_PASSWORD": "Invalid email or password",
    "INVALID_LOGIN_CREDENTIALS": "Invalid email or password",
    "INVALID_EMAIL": "The email address is badly formatted",
    "EMAIL_EXISTS": "The email address is already in use",
    "WEAK_PASSWORD": "Password should be at least 6 characters",
    "USER_DISABLED": "This account has been disabled",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many attempts, try again later",
    "OPERATION_NOT_ALLOWED": "Password sign-in is disabled for this project",
    # Secure Token 端点（refresh token 换取 idToken）
    "TOKEN_EXPIRED": "Your session has expired, please sign in again",
    "INVALID_REFRESH_TOKEN": "Your session has expired, please sign in again",
    "USER_NOT_FOUND": "This account no longer exists",
}

# 连接类异常类型集合（映射为 ServiceUnreachableError）
CONNECTION_ERROR_TYPES = (
    ConnectionError,
    TimeoutError,
    httpx.TransportError,
)


def auth_error_code(response: httpx.Response) -> str:
    """从 Identity Toolkit 错误响应中提取错误码

    错误信息形如 "WEAK_PASSWORD : Password should be at least 6 characters"，
    只取冒号前的错误码。
    """
    try:
        message = response.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return ""
    return str(message).split(":", 1)[0].strip()


def auth_error_from_response(response: httpx.Response, operation: str) -> RemoteCallFailure:
    """将 Identity Toolkit 非 2xx 响应转换为异常"""
    code = auth_error_code(response)
    message = AUTH_ERROR_MESSAGES.get(code)
    if message is not None:
        return AuthRejectedError(message, operation=operation, code=code)
    return RemoteCallFailure(
        f"Authentication service error (HTTP {response.status_code})",
        operation=operation,
    )


def raise_for_firestore_status(
    response: httpx.Response,
    operation: str,
    record_id: str = "",
) -> None:
    """Firestore 响应状态检查，非 2xx 时抛出对应异常"""
    if response.is_success:
        return
    if response.status_code == 404:
        raise RecordNotFoundError(operation, record_id)
    if response.status_code in (401, 403):
        raise PermissionDeniedError(operation)
    raise RemoteCallFailure(
        f"Data service error (HTTP {response.status_code})",
        operation=operation,
    )


__all__ = [
    "AUTH_ERROR_MESSAGES",
    "CONNECTION_ERROR_TYPES",
    "ServiceUnreachableError",
    "auth_error_code",
    "auth_error_from_response",
    "raise_for_firestore_status",
]

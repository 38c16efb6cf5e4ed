"""枚举定义 -- AuthStatus 认证状态机

包含 AuthStatus 枚举，以及 VALID_TRANSITIONS 合法流转映射。
AuthController 发布新 Session 前必须经过 validate_transition 校验。
"""

from enum import StrEnum


class AuthStatus(StrEnum):
    """认证状态机"""

    LOADING = "LOADING"
    AUTHENTICATED = "AUTHENTICATED"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    ERROR = "ERROR"


# 合法状态流转
# - ERROR 只能由 LOADING（一次失败的 sign-in/sign-up）进入
# - UNAUTHENTICATED -> AUTHENTICATED 必须经过新一轮认证的 LOADING
VALID_TRANSITIONS: dict[AuthStatus, set[AuthStatus]] = {
    AuthStatus.LOADING: {
        AuthStatus.AUTHENTICATED,
        AuthStatus.UNAUTHENTICATED,
        AuthStatus.ERROR,
    },
    AuthStatus.AUTHENTICATED: {
        AuthStatus.LOADING,
        AuthStatus.UNAUTHENTICATED,
    },
    # sign-out 幂等：UNAUTHENTICATED -> UNAUTHENTICATED 合法
    AuthStatus.UNAUTHENTICATED: {
        AuthStatus.LOADING,
        AuthStatus.UNAUTHENTICATED,
    },
    AuthStatus.ERROR: {
        AuthStatus.LOADING,
        AuthStatus.UNAUTHENTICATED,
    },
}


def validate_transition(from_status: AuthStatus, to_status: AuthStatus) -> bool:
    """验证状态流转是否合法

    Args:
        from_status: 当前状态
        to_status: 目标状态

    Returns:
        True 如果流转合法，否则 False
    """
    allowed = VALID_TRANSITIONS.get(from_status, set())
    return to_status in allowed

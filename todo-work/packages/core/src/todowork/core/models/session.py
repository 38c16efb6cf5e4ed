"""Session Domain Model

Session 是 AuthController 发布给观察者的不可变快照。
display_name / secondary_id 仅在 AUTHENTICATED 状态下有意义。
"""

from pydantic import BaseModel, ConfigDict, Field

from ..config import PLACEHOLDER_DISPLAY_NAME, PLACEHOLDER_SECONDARY_ID
from ..exceptions import SessionMismatchError
from .enums import AuthStatus


class UserProfile(BaseModel):
    """用户资料记录（Profile Store 中按 user_id 存储）"""

    model_config = ConfigDict(frozen=True)

    display_name: str = Field(description="显示名称")
    secondary_id: str = Field(description="辅助标识（如学号）")


class SessionHandle(BaseModel):
    """账号服务返回的会话句柄"""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(description="账号唯一标识")
    email: str = Field(default="", description="登录邮箱")
    id_token: str | None = Field(default=None, repr=False, description="访问令牌")
    refresh_token: str | None = Field(default=None, repr=False, description="刷新令牌")


class Session(BaseModel):
    """认证会话快照"""

    model_config = ConfigDict(frozen=True)

    status: AuthStatus = Field(default=AuthStatus.LOADING, description="当前认证状态")
    user_id: str | None = Field(default=None, description="仅 AUTHENTICATED 时有值")
    display_name: str = Field(default=PLACEHOLDER_DISPLAY_NAME, description="显示名称")
    secondary_id: str = Field(default=PLACEHOLDER_SECONDARY_ID, description="辅助标识")
    error_message: str = Field(default="", description="仅 ERROR 时有值")

    @classmethod
    def loading(cls) -> "Session":
        return cls(status=AuthStatus.LOADING)

    @classmethod
    def unauthenticated(cls) -> "Session":
        return cls(status=AuthStatus.UNAUTHENTICATED)

    @classmethod
    def error(cls, message: str) -> "Session":
        return cls(
            status=AuthStatus.ERROR,
            error_message=message or "Authentication failed",
        )

    @classmethod
    def authenticated(cls, user_id: str, profile: UserProfile | None = None) -> "Session":
        """构造已认证会话

        profile 缺失或字段为空白时回退为占位值，保证渲染层永远拿到非空字段。
        """
        display_name = PLACEHOLDER_DISPLAY_NAME
        secondary_id = PLACEHOLDER_SECONDARY_ID
        if profile is not None:
            if profile.display_name.strip():
                display_name = profile.display_name
            if profile.secondary_id.strip():
                secondary_id = profile.secondary_id
        return cls(
            status=AuthStatus.AUTHENTICATED,
            user_id=user_id,
            display_name=display_name,
            secondary_id=secondary_id,
        )

    @property
    def is_authenticated(self) -> bool:
        return self.status == AuthStatus.AUTHENTICATED

    def require_user_id(self, operation: str = "") -> str:
        """返回当前用户 ID；未认证时抛出 SessionMismatchError"""
        if self.status != AuthStatus.AUTHENTICATED or not self.user_id:
            raise SessionMismatchError(operation)
        return self.user_id

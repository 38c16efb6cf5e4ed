"""RemoteConfig -- 后端配置加载

从环境变量加载配置，选择本地 SQLite 后端或 Firebase 后端。
"""

import os
from typing import Literal

import structlog
from pydantic import BaseModel, Field, SecretStr, model_validator
from todowork.core.config import get_session_path

log = structlog.get_logger()

DEFAULT_AUTH_URL = "https://identitytoolkit.googleapis.com/v1"
DEFAULT_TOKEN_URL = "https://securetoken.googleapis.com/v1"
DEFAULT_FIRESTORE_URL = "https://firestore.googleapis.com/v1"
DEFAULT_TIMEOUT_S = 30


class RemoteConfig(BaseModel):
    """后端配置 -- 从环境变量加载

    环境变量:
        TODOWORK_BACKEND: 后端模式（local/firebase）
        FIREBASE_API_KEY: Web API Key
        FIREBASE_PROJECT_ID: Firebase 项目 ID
        FIREBASE_AUTH_URL: Identity Toolkit 基础 URL
        FIREBASE_TOKEN_URL: Secure Token 基础 URL
        FIREBASE_FIRESTORE_URL: Firestore REST 基础 URL
        FIREBASE_SESSION_PATH: 会话文件路径（默认 data/firebase/session.json）
        TODOWORK_HTTP_TIMEOUT_S: HTTP 调用超时（秒，默认 30）
    """

    backend: Literal["local", "firebase"] = Field(
        default="local",
        description="后端模式：local / firebase",
    )
    api_key: SecretStr = Field(
        default=SecretStr(""),
        description="Firebase Web API Key",
    )
    project_id: str = Field(default="", description="Firebase 项目 ID")
    auth_base_url: str = Field(
        default=DEFAULT_AUTH_URL,
        description="Identity Toolkit REST 基础 URL",
    )
    token_base_url: str = Field(
        default=DEFAULT_TOKEN_URL,
        description="Secure Token REST 基础 URL（刷新 idToken）",
    )
    firestore_base_url: str = Field(
        default=DEFAULT_FIRESTORE_URL,
        description="Firestore REST 基础 URL",
    )
    session_path: str = Field(
        default="",
        description="会话文件路径；为空时会话只保存在内存中",
    )
    timeout_s: int = Field(
        default=DEFAULT_TIMEOUT_S,
        ge=1,
        description="HTTP 调用超时（秒）",
    )

    @model_validator(mode="after")
    def _check_firebase_credentials(self) -> "RemoteConfig":
        if self.backend == "firebase":
            if not self.api_key.get_secret_value():
                raise ValueError("FIREBASE_API_KEY is required for the firebase backend")
            if not self.project_id:
                raise ValueError("FIREBASE_PROJECT_ID is required for the firebase backend")
        return self

    @property
    def documents_url(self) -> str:
        """Firestore 默认数据库的 documents 根路径"""
        base = self.firestore_base_url.rstrip("/")
        return f"{base}/projects/{self.project_id}/databases/(default)/documents"


def load_remote_config() -> RemoteConfig:
    """从环境变量加载后端配置

    Returns:
        RemoteConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("TODOWORK_BACKEND"):
        kwargs["backend"] = val

    if val := os.environ.get("FIREBASE_API_KEY"):
        kwargs["api_key"] = SecretStr(val)

    if val := os.environ.get("FIREBASE_PROJECT_ID"):
        kwargs["project_id"] = val

    if val := os.environ.get("FIREBASE_AUTH_URL"):
        kwargs["auth_base_url"] = val

    if val := os.environ.get("FIREBASE_TOKEN_URL"):
        kwargs["token_base_url"] = val

    if val := os.environ.get("FIREBASE_FIRESTORE_URL"):
        kwargs["firestore_base_url"] = val

    kwargs["session_path"] = get_session_path()

    if val := os.environ.get("TODOWORK_HTTP_TIMEOUT_S"):
        try:
            kwargs["timeout_s"] = int(val)
        except ValueError:
            log.warning(
                "invalid_timeout_config",
                env_var="TODOWORK_HTTP_TIMEOUT_S",
                value=val,
                fallback=DEFAULT_TIMEOUT_S,
            )
            # 使用默认值，不阻塞启动

    return RemoteConfig(**kwargs)

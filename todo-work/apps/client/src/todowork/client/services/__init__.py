"""客户端服务层：快照广播、认证控制器、任务缓存"""

from .auth_controller import AuthController
from .state_hub import StateHub
from .task_store import TaskStore, UserIdProvider

__all__ = [
    "AuthController",
    "StateHub",
    "TaskStore",
    "UserIdProvider",
]

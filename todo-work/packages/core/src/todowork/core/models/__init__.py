"""todowork Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .enums import VALID_TRANSITIONS, AuthStatus, validate_transition
from .session import Session, SessionHandle, UserProfile
from .task import OperationResult, Task, TaskFilter, TaskListSnapshot

__all__ = [
    # 枚举
    "AuthStatus",
    # 状态机
    "VALID_TRANSITIONS",
    "validate_transition",
    # Session
    "Session",
    "SessionHandle",
    "UserProfile",
    # Task
    "Task",
    "TaskFilter",
    "TaskListSnapshot",
    "OperationResult",
]

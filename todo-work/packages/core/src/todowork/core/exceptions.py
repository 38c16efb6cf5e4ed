"""todowork 异常体系

- InputValidationError: 用户输入未通过前置校验，不发起任何远程调用
- RemoteCallFailure: Account / Profile / Task 服务调用失败，携带可展示的错误信息
- SessionMismatchError: 未认证状态下调用了需要会话的操作（调用方契约违例）
- InvalidTransitionError: 非法的认证状态流转（编程错误）
"""


class TodoWorkError(Exception):
    """todowork 基础异常"""

    def __init__(self, message: str, recoverable: bool = True) -> None:
        """
        Args:
            message: 错误描述（可直接展示给用户）
            recoverable: 是否可通过重试恢复
        """
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable


class InputValidationError(TodoWorkError):
    """用户输入校验失败（空白字段等），在本地解决"""

    def __init__(self, field: str, message: str | None = None) -> None:
        super().__init__(message or f"{field} must not be blank", recoverable=True)
        self.field = field


class RemoteCallFailure(TodoWorkError):
    """远程协作方调用失败（网络、权限、不存在、冲突等）"""

    def __init__(self, message: str, operation: str = "", recoverable: bool = True) -> None:
        """
        Args:
            message: 人类可读的失败原因
            operation: 失败的协作方操作名（如 "sign_in"、"create_task"）
            recoverable: 是否可重试
        """
        super().__init__(message, recoverable=recoverable)
        self.operation = operation


class ServiceUnreachableError(RemoteCallFailure):
    """服务不可达（连接失败、超时、DNS 解析失败等）"""

    def __init__(self, operation: str, original_error: Exception) -> None:
        super().__init__(
            "Unable to reach the server, check your network connection",
            operation=operation,
            recoverable=True,
        )
        self.original_error = original_error


class AuthRejectedError(RemoteCallFailure):
    """账号服务拒绝请求（凭证错误、邮箱已注册、密码过弱等）"""

    def __init__(self, message: str, operation: str = "", code: str = "") -> None:
        super().__init__(message, operation=operation, recoverable=True)
        self.code = code


class RecordNotFoundError(RemoteCallFailure):
    """目标记录不存在"""

    def __init__(self, operation: str, record_id: str) -> None:
        super().__init__(
            f"Record {record_id} no longer exists",
            operation=operation,
            recoverable=False,
        )
        self.record_id = record_id


class PermissionDeniedError(RemoteCallFailure):
    """当前会话无权访问目标记录"""

    def __init__(self, operation: str) -> None:
        super().__init__(
            "Permission denied for this account",
            operation=operation,
            recoverable=False,
        )


class SessionMismatchError(TodoWorkError):
    """未认证时调用了需要会话的操作"""

    def __init__(self, operation: str = "") -> None:
        super().__init__(
            f"{operation or 'operation'} requires an authenticated session",
            recoverable=False,
        )
        self.operation = operation


class InvalidTransitionError(TodoWorkError):
    """非法认证状态流转"""

    def __init__(self, from_status: str, to_status: str) -> None:
        super().__init__(
            f"Cannot transition from {from_status} to {to_status}",
            recoverable=False,
        )
        self.from_status = from_status
        self.to_status = to_status

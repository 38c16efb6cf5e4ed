"""todowork Client -- 认证状态机、任务缓存与应用外壳"""

from .shell import AppShell, StartRoute, open_app

__all__ = [
    "AppShell",
    "StartRoute",
    "open_app",
]

"""配置常量模块 -- 可通过环境变量覆盖

包含本地数据库路径、启动页最短展示时长、快照队列容量、
Profile 占位值等可配置常量。
"""

import os
from pathlib import Path


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("TODOWORK_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取本地 SQLite 后端数据库路径"""
    return os.environ.get(
        "TODOWORK_DB_PATH",
        str(_get_base_dir() / "sqlite" / "todowork.db"),
    )


def get_session_path() -> str:
    """获取 Firebase 后端会话文件路径（保存 refresh token，用于重启后恢复会话）"""
    return os.environ.get(
        "FIREBASE_SESSION_PATH",
        str(_get_base_dir() / "firebase" / "session.json"),
    )


def get_min_splash_duration() -> float:
    """获取启动页最短展示时长（秒）

    会话检查完成前后都至少等待该时长再决定初始路由；0 表示不等待。
    """
    raw = os.environ.get("TODOWORK_MIN_SPLASH_S", "5.0")
    try:
        return max(0.0, float(raw))
    except ValueError:
        return 5.0


# 启动页最短展示时长（秒）
MIN_SPLASH_DURATION_S: float = get_min_splash_duration()

# 快照订阅队列容量（队列写满的订阅者会被移除）
SNAPSHOT_QUEUE_MAXSIZE: int = int(
    os.environ.get("TODOWORK_SNAPSHOT_QUEUE_MAXSIZE", "100")
)

# Profile 缺失或读取失败时的占位值
PLACEHOLDER_DISPLAY_NAME: str = "User"
PLACEHOLDER_SECONDARY_ID: str = "00000000000"

# 任务标题最大长度
TASK_TITLE_MAX_LENGTH: int = 500

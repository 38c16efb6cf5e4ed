"""全局 pytest 配置 -- 临时 SQLite 数据库 fixture"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from todowork.core.store import BackendGroup, create_backend_group


@pytest_asyncio.fixture
async def tmp_db_path(tmp_path: Path) -> Path:
    """提供临时 SQLite 数据库路径"""
    return tmp_path / "sqlite" / "test.db"


@pytest_asyncio.fixture
async def local_backend(tmp_db_path: Path) -> AsyncGenerator[BackendGroup, None]:
    """提供已初始化的本地后端实例组"""
    backend = await create_backend_group(str(tmp_db_path))
    yield backend
    await backend.close()

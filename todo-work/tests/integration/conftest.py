"""集成测试共享 fixture"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from todowork.client.shell import AppShell, open_app
from todowork.remote import RemoteConfig


@pytest_asyncio.fixture
async def app_shell(tmp_path: Path) -> AsyncGenerator[AppShell, None]:
    """使用本地 SQLite 后端的 AppShell"""
    async with open_app(
        config=RemoteConfig(backend="local"),
        db_path=str(tmp_path / "sqlite" / "integration.db"),
        min_splash_s=0,
        configure_logging=False,
    ) as shell:
        yield shell

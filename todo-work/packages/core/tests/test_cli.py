"""CLI 入口测试 -- python -m todowork.core"""

import sys
from pathlib import Path

import pytest
from todowork.core.__main__ import init_local_db, list_local_tasks, main
from todowork.core.store import BackendGroup


class TestCli:
    """维护命令"""

    async def test_init_db_creates_file(self, tmp_db_path: Path, monkeypatch, capsys):
        monkeypatch.setenv("TODOWORK_DB_PATH", str(tmp_db_path))
        await init_local_db()
        assert tmp_db_path.exists()
        assert "初始化完成" in capsys.readouterr().out

    async def test_list_tasks(
        self, local_backend: BackendGroup, tmp_db_path: Path, monkeypatch, capsys
    ):
        handle = await local_backend.account_service.sign_up("alice@example.com", "secret123")
        task = await local_backend.task_service.create_task(handle.user_id, "Buy milk")
        await local_backend.task_service.update_completion(handle.user_id, task.task_id, True)
        monkeypatch.setenv("TODOWORK_DB_PATH", str(tmp_db_path))

        assert await list_local_tasks("Alice@Example.com") is True

        out = capsys.readouterr().out
        assert f"[x] {task.task_id}  Buy milk" in out
        assert "共 1 条任务" in out

    async def test_list_tasks_unknown_user(self, local_backend, tmp_db_path, monkeypatch, capsys):
        monkeypatch.setenv("TODOWORK_DB_PATH", str(tmp_db_path))
        assert await list_local_tasks("nobody@example.com") is False
        assert "用户不存在" in capsys.readouterr().out

    def test_unknown_command_exits(self, monkeypatch):
        monkeypatch.setattr(sys, "argv", ["todowork.core", "drop-everything"])
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == 1

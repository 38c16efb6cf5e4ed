"""Domain Models 单元测试

测试内容：
1. Session 构造与占位值回退
2. Task / TaskListSnapshot 校验与不可变性
3. TaskFilter 可见集计算
4. OperationResult 工厂方法
"""

import pytest
from pydantic import ValidationError
from todowork.core.config import PLACEHOLDER_DISPLAY_NAME, PLACEHOLDER_SECONDARY_ID
from todowork.core.exceptions import SessionMismatchError
from todowork.core.models import (
    AuthStatus,
    OperationResult,
    Session,
    Task,
    TaskFilter,
    TaskListSnapshot,
    UserProfile,
)


class TestSession:
    """Session 快照"""

    def test_default_is_loading(self):
        session = Session()
        assert session.status == AuthStatus.LOADING
        assert session.user_id is None
        assert session.error_message == ""

    def test_authenticated_with_profile(self):
        profile = UserProfile(display_name="Alice", secondary_id="2207000001")
        session = Session.authenticated("u-1", profile)
        assert session.is_authenticated
        assert session.user_id == "u-1"
        assert session.display_name == "Alice"
        assert session.secondary_id == "2207000001"

    def test_authenticated_without_profile_uses_placeholders(self):
        """Profile 缺失时使用占位值"""
        session = Session.authenticated("u-1")
        assert session.display_name == PLACEHOLDER_DISPLAY_NAME == "User"
        assert session.secondary_id == PLACEHOLDER_SECONDARY_ID == "00000000000"

    def test_blank_profile_fields_fall_back(self):
        """Profile 字段为空白时逐字段回退"""
        session = Session.authenticated(
            "u-1", UserProfile(display_name="  ", secondary_id="123")
        )
        assert session.display_name == PLACEHOLDER_DISPLAY_NAME
        assert session.secondary_id == "123"

    def test_error_carries_message(self):
        session = Session.error("Invalid email or password")
        assert session.status == AuthStatus.ERROR
        assert session.error_message == "Invalid email or password"

    def test_error_message_never_empty(self):
        assert Session.error("").error_message != ""

    def test_require_user_id(self):
        assert Session.authenticated("u-1").require_user_id() == "u-1"
        with pytest.raises(SessionMismatchError):
            Session.unauthenticated().require_user_id("fetch_tasks")

    def test_frozen(self):
        session = Session.unauthenticated()
        with pytest.raises(ValidationError):
            session.status = AuthStatus.AUTHENTICATED


class TestTaskModels:
    """Task / TaskListSnapshot"""

    def test_task_defaults(self):
        task = Task(task_id="t-1", title="Buy milk")
        assert task.completed is False

    def test_empty_title_rejected(self):
        with pytest.raises(ValidationError):
            Task(task_id="t-1", title="")

    def test_snapshot_defaults(self):
        snapshot = TaskListSnapshot()
        assert snapshot.tasks == ()
        assert snapshot.loaded is False
        assert snapshot.last_error == ""

    def test_snapshot_equality(self):
        """相同内容的快照相等（用于去重发布）"""
        task = Task(task_id="t-1", title="A")
        assert TaskListSnapshot(tasks=(task,)) == TaskListSnapshot(tasks=(task,))


class TestTaskFilter:
    """TaskFilter 可见集"""

    @pytest.fixture
    def tasks(self) -> list[Task]:
        return [
            Task(task_id="1", title="Buy milk", completed=False),
            Task(task_id="2", title="Milk the cow", completed=True),
            Task(task_id="3", title="Call mom", completed=True),
        ]

    def test_empty_query_matches_all(self, tasks):
        assert TaskFilter().apply(tasks) == tasks

    def test_query_is_case_insensitive(self, tasks):
        visible = TaskFilter(query="MILK").apply(tasks)
        assert [t.task_id for t in visible] == ["1", "2"]

    def test_completed_only(self, tasks):
        visible = TaskFilter(completed_only=True).apply(tasks)
        assert [t.task_id for t in visible] == ["2", "3"]

    def test_query_and_completed_only(self, tasks):
        visible = TaskFilter(query="milk", completed_only=True).apply(tasks)
        assert [t.task_id for t in visible] == ["2"]

    def test_predicates_commute(self, tasks):
        """先按 query 再按完成状态，与反向顺序结果一致"""
        by_query_first = TaskFilter(completed_only=True).apply(
            TaskFilter(query="m").apply(tasks)
        )
        by_completed_first = TaskFilter(query="m").apply(
            TaskFilter(completed_only=True).apply(tasks)
        )
        assert by_query_first == by_completed_first

    def test_no_match(self, tasks):
        assert TaskFilter(query="zzz").apply(tasks) == []

    def test_apply_does_not_mutate(self, tasks):
        original = list(tasks)
        TaskFilter(query="milk", completed_only=True).apply(tasks)
        assert tasks == original


class TestOperationResult:
    """OperationResult 工厂方法"""

    def test_success(self):
        task = Task(task_id="t-1", title="A")
        result = OperationResult.success(task)
        assert result.ok
        assert result.error_kind is None
        assert result.task == task

    def test_validation_failed(self):
        result = OperationResult.validation_failed("blank")
        assert not result.ok
        assert result.error_kind == "validation"
        assert result.error_message == "blank"

    def test_remote_failed(self):
        result = OperationResult.remote_failed("offline")
        assert result.error_kind == "remote"

    def test_stale(self):
        result = OperationResult.stale("session ended")
        assert not result.ok
        assert result.error_kind == "stale"

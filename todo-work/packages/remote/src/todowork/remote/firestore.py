"""Firestore REST 客户端 -- ProfileStore / TaskPersistenceService 的 Firebase 实现

文档布局：
  users/{uid}                 字段 username / nim（用户资料）
  users/{uid}/tasks/{taskId}  字段 title / completed / created_at

所有请求携带 Authorization: Bearer <idToken>。
"""

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

import httpx
import structlog
from todowork.core.exceptions import (
    PermissionDeniedError,
    RecordNotFoundError,
    RemoteCallFailure,
)
from todowork.core.models import Task, UserProfile

from .exceptions import (
    CONNECTION_ERROR_TYPES,
    ServiceUnreachableError,
    raise_for_firestore_status,
)

log = structlog.get_logger()

# 单页拉取的最大文档数
LIST_PAGE_SIZE = 300

TokenProvider = Callable[[], str | None]
# 入参为被拒绝的旧令牌，返回新令牌；会话已失效时返回 None
TokenRefresher = Callable[[str], Awaitable[str | None]]


def _document_id(name: str) -> str:
    """从完整文档名中取出最后一段作为 ID"""
    return name.rsplit("/", 1)[-1]


def _string_field(fields: dict[str, Any], key: str) -> str:
    return str(fields.get(key, {}).get("stringValue", ""))


def _bool_field(fields: dict[str, Any], key: str) -> bool:
    return bool(fields.get(key, {}).get("booleanValue", False))


def task_from_document(document: dict[str, Any]) -> Task:
    """将 Firestore 文档转换为 Task 模型"""
    fields = document.get("fields", {})
    return Task(
        task_id=_document_id(document["name"]),
        title=_string_field(fields, "title"),
        completed=_bool_field(fields, "completed"),
    )


class _FirestoreClient:
    """Firestore REST 调用基类：鉴权头 + 连接错误 / 状态码映射"""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        documents_url: str,
        token_provider: TokenProvider,
        token_refresher: TokenRefresher | None = None,
    ) -> None:
        self._http = http_client
        self._documents_url = documents_url.rstrip("/")
        self._token_provider = token_provider
        self._token_refresher = token_refresher

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        record_id: str = "",
        **kwargs: Any,
    ) -> httpx.Response:
        """发送请求；401 时刷新一次令牌后重试"""
        token = self._token_provider()
        if not token:
            raise PermissionDeniedError(operation)

        response = await self._send(method, path, operation, token, **kwargs)
        if response.status_code == 401 and self._token_refresher is not None:
            log.info("firestore_token_expired", operation=operation)
            token = await self._token_refresher(token)
            if not token:
                raise PermissionDeniedError(operation)
            response = await self._send(method, path, operation, token, **kwargs)

        if not response.is_success:
            log.info(
                "firestore_call_failed",
                operation=operation,
                status_code=response.status_code,
            )
        raise_for_firestore_status(response, operation, record_id)
        return response

    async def _send(
        self,
        method: str,
        path: str,
        operation: str,
        token: str,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            return await self._http.request(
                method,
                f"{self._documents_url}/{path}",
                headers={"Authorization": f"Bearer {token}"},
                **kwargs,
            )
        except CONNECTION_ERROR_TYPES as e:
            log.warning(
                "firestore_unreachable",
                operation=operation,
                error_type=type(e).__name__,
            )
            raise ServiceUnreachableError(operation, e) from e

    @staticmethod
    def _json(response: httpx.Response, operation: str) -> dict[str, Any]:
        try:
            return response.json()
        except ValueError as e:
            raise RemoteCallFailure(
                "Unexpected response from the data service",
                operation=operation,
            ) from e


class FirestoreProfileStore(_FirestoreClient):
    """ProfileStore 的 Firestore 实现"""

    async def get_profile(self, user_id: str) -> UserProfile | None:
        try:
            response = await self._request(
                "GET", f"users/{user_id}", operation="get_profile", record_id=user_id
            )
        except RecordNotFoundError:
            return None
        fields = self._json(response, "get_profile").get("fields", {})
        return UserProfile(
            display_name=_string_field(fields, "username"),
            secondary_id=_string_field(fields, "nim"),
        )

    async def set_profile(self, user_id: str, profile: UserProfile) -> None:
        await self._request(
            "PATCH",
            f"users/{user_id}",
            operation="set_profile",
            record_id=user_id,
            params={"updateMask.fieldPaths": ["username", "nim"]},
            json={
                "fields": {
                    "username": {"stringValue": profile.display_name},
                    "nim": {"stringValue": profile.secondary_id},
                }
            },
        )


class FirestoreTaskService(_FirestoreClient):
    """TaskPersistenceService 的 Firestore 实现"""

    async def list_tasks(self, user_id: str) -> list[Task]:
        """按 created_at 升序分页拉取全部任务"""
        tasks: list[Task] = []
        page_token: str | None = None
        while True:
            params: dict[str, Any] = {
                "orderBy": "created_at",
                "pageSize": LIST_PAGE_SIZE,
            }
            if page_token:
                params["pageToken"] = page_token
            response = await self._request(
                "GET", f"users/{user_id}/tasks", operation="list_tasks", params=params
            )
            data = self._json(response, "list_tasks")
            for document in data.get("documents", []):
                try:
                    tasks.append(task_from_document(document))
                except (KeyError, ValueError, TypeError, AttributeError) as e:
                    # 单个损坏文档不影响其余任务
                    log.warning(
                        "firestore_task_document_skipped",
                        user_id=user_id,
                        document=document.get("name", "") if isinstance(document, dict) else "",
                        error_type=type(e).__name__,
                    )
            page_token = data.get("nextPageToken")
            if not page_token:
                return tasks

    async def create_task(self, user_id: str, title: str) -> Task:
        response = await self._request(
            "POST",
            f"users/{user_id}/tasks",
            operation="create_task",
            json={
                "fields": {
                    "title": {"stringValue": title},
                    "completed": {"booleanValue": False},
                    "created_at": {"timestampValue": datetime.now(UTC).isoformat()},
                }
            },
        )
        try:
            return task_from_document(self._json(response, "create_task"))
        except (KeyError, ValueError) as e:
            raise RemoteCallFailure(
                "Unexpected task document from the data service",
                operation="create_task",
            ) from e

    async def update_completion(self, user_id: str, task_id: str, completed: bool) -> None:
        await self._request(
            "PATCH",
            f"users/{user_id}/tasks/{task_id}",
            operation="update_completion",
            record_id=task_id,
            params={
                "updateMask.fieldPaths": "completed",
                "currentDocument.exists": "true",
            },
            json={"fields": {"completed": {"booleanValue": completed}}},
        )

    async def delete_task(self, user_id: str, task_id: str) -> None:
        await self._request(
            "DELETE",
            f"users/{user_id}/tasks/{task_id}",
            operation="delete_task",
            record_id=task_id,
            params={"currentDocument.exists": "true"},
        )

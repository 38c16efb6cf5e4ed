"""todowork Remote -- Firebase 后端适配层

packages/remote 的公开接口导出。
"""

import httpx

from .auth import FirebaseAccountService
from .config import RemoteConfig, load_remote_config
from .firestore import FirestoreProfileStore, FirestoreTaskService


class FirebaseBackend:
    """Firebase 后端实例组 -- 共享同一个 httpx.AsyncClient"""

    def __init__(self, config: RemoteConfig, http_client: httpx.AsyncClient | None = None) -> None:
        self.http_client = http_client or httpx.AsyncClient(timeout=config.timeout_s)
        self.account_service = FirebaseAccountService(
            self.http_client,
            api_key=config.api_key.get_secret_value(),
            auth_base_url=config.auth_base_url,
            token_base_url=config.token_base_url,
            session_path=config.session_path or None,
        )
        token_provider = self.account_service.id_token
        token_refresher = self.account_service.refresh_id_token
        self.profile_store = FirestoreProfileStore(
            self.http_client, config.documents_url, token_provider, token_refresher
        )
        self.task_service = FirestoreTaskService(
            self.http_client, config.documents_url, token_provider, token_refresher
        )

    async def close(self) -> None:
        await self.http_client.aclose()


__all__ = [
    "FirebaseBackend",
    "FirebaseAccountService",
    "FirestoreProfileStore",
    "FirestoreTaskService",
    "RemoteConfig",
    "load_remote_config",
]

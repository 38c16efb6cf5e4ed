"""ProfileStore SQLite 实现 -- 本地后端"""

from datetime import UTC, datetime

import aiosqlite

from ..exceptions import RemoteCallFailure
from ..models.session import UserProfile


class SqliteProfileStore:
    """ProfileStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def get_profile(self, user_id: str) -> UserProfile | None:
        """读取用户资料"""
        try:
            cursor = await self._conn.execute(
                "SELECT display_name, secondary_id FROM profiles WHERE user_id = ?",
                (user_id,),
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise RemoteCallFailure(
                f"Profile storage failed: {e}", operation="get_profile"
            ) from e
        if row is None:
            return None
        return UserProfile(display_name=row[0], secondary_id=row[1])

    async def set_profile(self, user_id: str, profile: UserProfile) -> None:
        """写入用户资料（已存在则覆盖）"""
        try:
            await self._conn.execute(
                """
                INSERT INTO profiles (user_id, display_name, secondary_id, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    display_name = excluded.display_name,
                    secondary_id = excluded.secondary_id,
                    updated_at = excluded.updated_at
                """,
                (
                    user_id,
                    profile.display_name,
                    profile.secondary_id,
                    datetime.now(UTC).isoformat(),
                ),
            )
            await self._conn.commit()
        except aiosqlite.Error as e:
            await self._conn.rollback()
            raise RemoteCallFailure(
                f"Profile storage failed: {e}", operation="set_profile"
            ) from e

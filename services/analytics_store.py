"""
Analytics Store
===============
Учёт уникальных пользователей и их обращений к боту.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from config import config
from services.storage import JsonDocumentStore
from utils.helpers import hash_user_id

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class UserRecord:
    """Пользователь (данные на момент первого визита)"""
    id: int
    username: Optional[str]
    first_name: Optional[str]
    joined_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "firstName": self.first_name,
            "joinedAt": self.joined_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UserRecord":
        return cls(
            id=data["id"],
            username=data.get("username"),
            first_name=data.get("firstName"),
            joined_at=data.get("joinedAt", ""),
        )


@dataclass
class InteractionEvent:
    """Одно обращение пользователя (запись только добавляется)"""
    user_id: int
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        return {"userId": self.user_id, "timestamp": self.timestamp}


@dataclass
class StatsReport:
    total_users: int
    total_interactions: int
    active_today: int


class AnalyticsStore(JsonDocumentStore):
    """Хранилище статистики: users + logins"""

    def __init__(self, path: str = None, clock: Callable[[], datetime] = utc_now):
        super().__init__(path or config.STATS_DB_PATH)
        self._clock = clock

    def _default_document(self) -> dict[str, Any]:
        return {"users": [], "logins": []}

    def _load(self) -> dict[str, Any]:
        data = self._read()
        data.setdefault("users", [])
        data.setdefault("logins", [])
        return data

    def _now_iso(self) -> str:
        return self._clock().astimezone(timezone.utc).isoformat()

    async def register_user(
        self,
        user_id: int,
        username: Optional[str] = None,
        first_name: Optional[str] = None
    ) -> bool:
        """
        Регистрирует пользователя, если он новый.

        Повторные вызовы не обновляют username/first_name —
        сохраняются данные первого визита.

        Returns:
            True если пользователь добавлен впервые
        """
        async with self._lock:
            data = self._load()
            if any(u.get("id") == user_id for u in data["users"]):
                return False
            record = UserRecord(
                id=user_id,
                username=username,
                first_name=first_name,
                joined_at=self._now_iso(),
            )
            data["users"].append(record.to_dict())
            self._write(data)
        logger.info(f"[STATS] Новый пользователь: {hash_user_id(user_id)}")
        return True

    async def log_interaction(self, user_id: int) -> None:
        """Добавляет запись об обращении (без дедупликации)"""
        async with self._lock:
            data = self._load()
            event = InteractionEvent(user_id=user_id, timestamp=self._now_iso())
            data["logins"].append(event.to_dict())
            self._write(data)

    async def get_stats(self) -> StatsReport:
        """Общее число пользователей, обращений и активных за сегодня (UTC)"""
        data = self._load()
        today = self._clock().astimezone(timezone.utc).date().isoformat()
        active = {
            login.get("userId")
            for login in data["logins"]
            if str(login.get("timestamp") or "").startswith(today)
        }
        return StatsReport(
            total_users=len(data["users"]),
            total_interactions=len(data["logins"]),
            active_today=len(active),
        )

    async def get_recent_users(self, limit: int = 5) -> list[UserRecord]:
        """Последние limit зарегистрированных, в порядке регистрации"""
        if limit <= 0:
            return []
        users = self._load()["users"]
        return [UserRecord.from_dict(u) for u in users[-limit:]]

"""
Access Gate
===========
Проверка подписки на обязательный канал перед доступом к контенту.
"""

import logging
from typing import Awaitable, Callable, Iterable, Optional, Union

from utils.helpers import hash_user_id

logger = logging.getLogger(__name__)


# Статусы участника канала, при которых доступ открыт
ACCEPTED_STATUSES = frozenset({"creator", "administrator", "member", "restricted"})

ChatId = Union[int, str]
MembershipLookup = Callable[[ChatId, int], Awaitable[str]]


class AccessGate:
    """
    Порядок проверки:
    1. Админ — всегда пропускаем.
    2. Канал не задан — пропускаем всех.
    3. Иначе спрашиваем статус в канале; ошибка запроса = отказ.
    """

    def __init__(
        self,
        admin_ids: Iterable[int],
        required_channel_id: Optional[ChatId],
        membership_lookup: MembershipLookup
    ):
        self.admin_ids = frozenset(admin_ids or ())
        self.required_channel_id = required_channel_id or None
        self.membership_lookup = membership_lookup

    def is_admin(self, user_id: int) -> bool:
        return user_id in self.admin_ids

    async def is_allowed(self, user_id: int) -> bool:
        if self.is_admin(user_id):
            return True

        if not self.required_channel_id:
            return True

        try:
            status = await self.membership_lookup(self.required_channel_id, user_id)
        except Exception as e:
            logger.error(f"Ошибка проверки подписки {hash_user_id(user_id)}: {e}")
            return False

        status = str(getattr(status, "value", status))
        logger.info(f"Проверка подписки: {hash_user_id(user_id)} — '{status}'")
        return status in ACCEPTED_STATUSES

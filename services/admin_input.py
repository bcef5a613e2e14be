"""
Admin Input Manager
===================
Пошаговый ввод текста администратором: добавление раздела
(заголовок → содержимое), редактирование раздела и текста прокси.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from services.content_store import ContentStore
from utils.helpers import hash_user_id

logger = logging.getLogger(__name__)


class AdminAction(Enum):
    """Чего ждём от администратора"""
    AWAITING_TITLE = "awaiting_title"
    AWAITING_CONTENT = "awaiting_content"
    AWAITING_EDIT_CONTENT = "awaiting_edit_content"
    AWAITING_PROXY_TEXT = "awaiting_proxy_text"


class InputOutcome(Enum):
    """Результат обработки текстового сообщения"""
    IGNORED = "ignored"                      # Нет активного ввода
    TITLE_ACCEPTED = "title_accepted"        # Заголовок принят, ждём текст
    SECTION_ADDED = "section_added"
    SECTION_UPDATED = "section_updated"
    SECTION_NOT_FOUND = "section_not_found"  # Раздел удалили, пока шло редактирование
    PROXY_TEXT_SAVED = "proxy_text_saved"


@dataclass
class AdminInputState:
    """Состояние ввода одного администратора"""
    action: AdminAction
    temp_title: Optional[str] = None
    section_id: Optional[str] = None
    started_at: datetime = field(default_factory=datetime.now)


@dataclass
class InputResult:
    outcome: InputOutcome
    title: Optional[str] = None
    section_id: Optional[str] = None


class AdminInputManager:
    """
    Менеджер состояний ввода.

    Одно состояние на пользователя: новое действие затирает незаконченное.
    Состояния живут в памяти процесса и без TTL.
    """

    def __init__(self, content_store: ContentStore):
        self.content_store = content_store
        self._states: dict[int, AdminInputState] = {}
        self._locks: dict[int, asyncio.Lock] = {}
        self._in_flight: dict[int, int] = {}

    def _user_lock(self, user_id: int) -> asyncio.Lock:
        if user_id not in self._locks:
            self._locks[user_id] = asyncio.Lock()
        return self._locks[user_id]

    def _set_state(self, user_id: int, state: AdminInputState) -> AdminInputState:
        previous = self._states.get(user_id)
        if previous is not None:
            logger.info(
                f"Незаконченный ввод {hash_user_id(user_id)} "
                f"(начат {previous.started_at:%H:%M:%S}) заменён на {state.action.value}"
            )
        self._states[user_id] = state
        return state

    def start_add(self, user_id: int) -> AdminInputState:
        """Начинает добавление раздела"""
        return self._set_state(user_id, AdminInputState(action=AdminAction.AWAITING_TITLE))

    def start_edit(self, user_id: int, section_id: str) -> AdminInputState:
        """Начинает редактирование содержимого раздела"""
        return self._set_state(
            user_id,
            AdminInputState(action=AdminAction.AWAITING_EDIT_CONTENT, section_id=section_id)
        )

    def start_proxy_edit(self, user_id: int) -> AdminInputState:
        """Начинает редактирование текста прокси"""
        return self._set_state(user_id, AdminInputState(action=AdminAction.AWAITING_PROXY_TEXT))

    def cancel(self, user_id: int) -> bool:
        """Сбрасывает ввод. False — отменять было нечего"""
        return self._states.pop(user_id, None) is not None

    def get_state(self, user_id: int) -> Optional[AdminInputState]:
        return self._states.get(user_id)

    def has_state(self, user_id: int) -> bool:
        return user_id in self._states

    async def handle_text(self, user_id: int, text: str) -> InputResult:
        """
        Продвигает ввод пользователя на один шаг.

        Сообщения одного пользователя обрабатываются строго по очереди.
        Если запись в хранилище упала, StorageError пробрасывается,
        а состояние остаётся прежним — можно прислать текст ещё раз.

        Args:
            user_id: ID пользователя
            text: Текст сообщения

        Returns:
            Что произошло с вводом
        """
        lock = self._user_lock(user_id)
        self._in_flight[user_id] = self._in_flight.get(user_id, 0) + 1
        try:
            async with lock:
                return await self._advance(user_id, text)
        finally:
            # Блокировка нужна, только пока есть сообщения в обработке
            self._in_flight[user_id] -= 1
            if not self._in_flight[user_id]:
                del self._in_flight[user_id]
                self._locks.pop(user_id, None)

    def _finish(self, user_id: int, state: AdminInputState):
        # Пока шла запись, админ мог начать новое действие
        if self._states.get(user_id) is state:
            del self._states[user_id]

    async def _advance(self, user_id: int, text: str) -> InputResult:
        state = self._states.get(user_id)
        if state is None or not text or not text.strip():
            return InputResult(InputOutcome.IGNORED)

        if state.action == AdminAction.AWAITING_TITLE:
            state.temp_title = text
            state.action = AdminAction.AWAITING_CONTENT
            return InputResult(InputOutcome.TITLE_ACCEPTED, title=text)

        if state.action == AdminAction.AWAITING_CONTENT:
            section_id = await self.content_store.add_section(state.temp_title, text)
            self._finish(user_id, state)
            return InputResult(
                InputOutcome.SECTION_ADDED,
                title=state.temp_title,
                section_id=section_id
            )

        if state.action == AdminAction.AWAITING_EDIT_CONTENT:
            updated = await self.content_store.update_section(state.section_id, text)
            self._finish(user_id, state)
            outcome = InputOutcome.SECTION_UPDATED if updated else InputOutcome.SECTION_NOT_FOUND
            return InputResult(outcome, section_id=state.section_id)

        # AWAITING_PROXY_TEXT
        await self.content_store.set_proxy_text(text)
        self._finish(user_id, state)
        return InputResult(InputOutcome.PROXY_TEXT_SAVED)

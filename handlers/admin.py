"""
Admin Handler
=============
Панель управления: разделы, порядок, текст прокси, статистика
и пошаговый ввод текста администратором.
"""

import html
import logging
from typing import Optional

from config import config
from services.admin_input import AdminInputManager, InputOutcome
from services.analytics_store import AnalyticsStore
from services.content_store import ContentStore
from services.storage import StorageError
from utils.helpers import Reply, hash_user_id, truncate_text, validate_message_length
from utils.keyboards import (
    get_admin_panel_keyboard,
    get_back_to_panel_keyboard,
    get_delete_keyboard,
    get_edit_keyboard,
    get_reorder_keyboard,
    parse_move,
)

logger = logging.getLogger(__name__)


PANEL_TEXT = "⚙️ <b>Панель управления</b>"
DELETE_LIST_TEXT = "Выберите раздел для удаления:"
EDIT_LIST_TEXT = "Выберите раздел для изменения:"
REORDER_TEXT = "🔃 Меняйте порядок разделов стрелками:"
STORAGE_FAILURE_TEXT = "❌ Не удалось сохранить изменения. Попробуйте отправить текст ещё раз."
STATS_FAILURE_TEXT = "❌ Не удалось прочитать статистику"
PREVIEW_LENGTH = 3500


class AdminHandler:
    """Обработчик действий администратора"""

    def __init__(
        self,
        content_store: ContentStore,
        analytics_store: AnalyticsStore,
        input_manager: AdminInputManager
    ):
        self.content_store = content_store
        self.analytics_store = analytics_store
        self.input_manager = input_manager

    def panel(self) -> Reply:
        return Reply(PANEL_TEXT, get_admin_panel_keyboard())

    # ==================== СПИСКИ ====================

    async def delete_list(self) -> Reply:
        sections = await self.content_store.list_sections()
        return Reply(DELETE_LIST_TEXT, get_delete_keyboard(sections))

    async def edit_list(self) -> Reply:
        sections = await self.content_store.list_sections()
        return Reply(EDIT_LIST_TEXT, get_edit_keyboard(sections))

    async def reorder_list(self) -> Reply:
        sections = await self.content_store.list_sections()
        return Reply(REORDER_TEXT, get_reorder_keyboard(sections))

    # ==================== ДЕЙСТВИЯ ====================

    async def delete(self, section_id: str) -> tuple[bool, Reply]:
        """Удаляет раздел и возвращает обновлённый список"""
        deleted = await self.content_store.delete_section(section_id)
        return deleted, await self.delete_list()

    async def move(self, data: str) -> tuple[bool, Reply]:
        """
        Обрабатывает нажатие стрелки.

        Args:
            data: callback data вида "move:up:<id>"

        Returns:
            (был ли сдвиг, обновлённый список)
        """
        parsed = parse_move(data)
        moved = False
        if parsed is not None:
            direction, section_id = parsed
            moved = await self.content_store.move_section(section_id, direction)
        return moved, await self.reorder_list()

    def start_add(self, user_id: int) -> Reply:
        self.input_manager.start_add(user_id)
        return Reply("📝 Отправьте заголовок нового раздела:")

    async def start_edit(self, user_id: int, section_id: str) -> Optional[Reply]:
        """Начинает редактирование. None — раздел не найден"""
        section = await self.content_store.get_section(section_id)
        if section is None:
            return None
        self.input_manager.start_edit(user_id, section_id)
        text = (
            f"📝 Текущий текст раздела «{html.escape(section.title)}»:\n\n"
            f"{html.escape(truncate_text(section.content, PREVIEW_LENGTH))}\n\n"
            "👇 Отправьте новый текст:"
        )
        return Reply(text)

    async def start_proxy_edit(self, user_id: int) -> Reply:
        self.input_manager.start_proxy_edit(user_id)
        current = await self.content_store.get_proxy_text()
        preview = html.escape(truncate_text(current, PREVIEW_LENGTH))
        return Reply(f"🌐 Текущий текст прокси:\n\n{preview}\n\n👇 Отправьте новый текст:")

    def cancel(self, user_id: int) -> Reply:
        if self.input_manager.cancel(user_id):
            return Reply("🗑 Ввод отменён.", get_back_to_panel_keyboard())
        return Reply("Нечего отменять.")

    async def stats(self) -> Optional[Reply]:
        """Отчёт по статистике. None — файл статистики не читается"""
        try:
            report = await self.analytics_store.get_stats()
            recent = await self.analytics_store.get_recent_users(config.RECENT_USERS_LIMIT)
        except StorageError as e:
            logger.error(f"Ошибка чтения статистики: {e}")
            return None

        lines = [
            "📊 <b>Статистика бота</b>\n",
            f"👥 Всего пользователей: {report.total_users}",
            f"🔄 Всего обращений (/start): {report.total_interactions}",
            f"📅 Активных сегодня: {report.active_today}\n",
            f"🆕 <b>Последние {len(recent)}:</b>",
        ]
        for user in recent:
            name = html.escape(user.first_name or "Без имени")
            username = html.escape(user.username or "NoUser")
            lines.append(f"- {name} (@{username})")

        return Reply("\n".join(lines), get_back_to_panel_keyboard())

    # ==================== ВВОД ТЕКСТА ====================

    async def handle_text(self, user_id: int, text: str) -> Optional[Reply]:
        """
        Передаёт текст в менеджер ввода.

        Returns:
            Ответ администратору или None, если ввод не ожидался
        """
        if not self.input_manager.has_state(user_id):
            return None

        is_valid, error = validate_message_length(text)
        if not is_valid:
            return Reply(f"⚠️ {error}")

        try:
            result = await self.input_manager.handle_text(user_id, text)
        except StorageError as e:
            logger.error(f"Ошибка сохранения ввода {hash_user_id(user_id)}: {e}")
            return Reply(STORAGE_FAILURE_TEXT)

        if result.outcome == InputOutcome.IGNORED:
            return None
        if result.outcome == InputOutcome.TITLE_ACCEPTED:
            return Reply(
                f"✅ Заголовок: {html.escape(result.title)}\n\nТеперь отправьте текст раздела:"
            )
        if result.outcome == InputOutcome.SECTION_ADDED:
            return Reply("✅ Раздел добавлен!", get_back_to_panel_keyboard())
        if result.outcome == InputOutcome.SECTION_UPDATED:
            return Reply("✅ Текст раздела обновлён!", get_back_to_panel_keyboard())
        if result.outcome == InputOutcome.SECTION_NOT_FOUND:
            return Reply("❌ Не удалось обновить: раздел не найден.", get_back_to_panel_keyboard())
        return Reply("✅ Текст прокси сохранён!", get_back_to_panel_keyboard())

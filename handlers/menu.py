"""
Menu Handler
============
Пользовательская часть: главное меню, просмотр разделов,
сообщение о необходимости подписки.
"""

import html
import logging
from typing import Optional

from config import config
from services.analytics_store import AnalyticsStore
from services.content_store import ContentStore
from services.storage import StorageError
from utils.helpers import Reply, hash_user_id, truncate_text
from utils.keyboards import get_main_menu_keyboard, get_join_keyboard

logger = logging.getLogger(__name__)


WELCOME_TEXT = "👋 Добро пожаловать в обучающий бот по CPA!\n\nВыберите раздел:"
ADMIN_HINT = "\n\n🔧 <b>Панель управления</b> 👇"
PROXY_NOT_FOUND_TEXT = "⚠️ Информация о прокси не найдена."
QUIZ_UNAVAILABLE_TEXT = "Пока тестов нет."
SECTION_NOT_FOUND_TEXT = "Этот раздел больше не существует."


class MenuHandler:
    """Обработчик пользовательского меню"""

    def __init__(self, content_store: ContentStore, analytics_store: AnalyticsStore):
        self.content_store = content_store
        self.analytics_store = analytics_store

    async def record_start(self, user_id: int, username: Optional[str], first_name: Optional[str]) -> bool:
        """
        Учитывает /start в статистике.

        Сбой статистики не мешает показать меню: ошибка только логируется.
        """
        try:
            await self.analytics_store.register_user(user_id, username, first_name)
            await self.analytics_store.log_interaction(user_id)
        except StorageError as e:
            logger.error(f"Не удалось записать статистику {hash_user_id(user_id)}: {e}")
            return False
        return True

    async def main_menu(self, is_admin: bool = False) -> Reply:
        """Приветствие и кнопки разделов"""
        sections = await self.content_store.list_sections()
        text = WELCOME_TEXT
        if is_admin:
            text += ADMIN_HINT
        return Reply(text, get_main_menu_keyboard(sections, is_admin=is_admin))

    def join_required(self, first_visit: bool = True) -> Reply:
        """Просьба подписаться на канал"""
        if first_visit:
            text = "👋 Добро пожаловать!\n\nЧтобы пользоваться ботом, подпишитесь на канал:"
        else:
            text = "⚠️ Сначала подпишитесь на канал:"
        if config.CHANNEL_INVITE_LINK:
            text += f"\n{config.CHANNEL_INVITE_LINK}"
        return Reply(text, get_join_keyboard())

    async def joined(self, is_admin: bool = False) -> Reply:
        """Подписка подтверждена — показываем меню"""
        menu = await self.main_menu(is_admin=is_admin)
        return Reply("✅ Подписка подтверждена!\n\n" + menu.text, menu.keyboard)

    async def view_section(self, section_id: str) -> Optional[Reply]:
        """Текст раздела. None — раздел не найден"""
        section = await self.content_store.get_section(section_id)
        if section is None:
            return None
        # Лимит Telegram считается после разбора HTML
        content = truncate_text(section.content, config.MAX_MESSAGE_LENGTH - len(section.title) - 10)
        return Reply(f"📚 <b>{html.escape(section.title)}</b>\n\n{html.escape(content)}")

    async def start_quiz(self) -> Optional[Reply]:
        """Первый тест из хранилища. None — тестов нет"""
        quizzes = await self.content_store.list_quizzes()
        if not quizzes:
            return None
        quiz = quizzes[0]
        lines = [f"❓ <b>{html.escape(quiz.question)}</b>"]
        for i, option in enumerate(quiz.options, 1):
            lines.append(f"{i}. {html.escape(option)}")
        return Reply("\n".join(lines))

    async def request_proxy(self) -> Reply:
        """Старая кнопка запроса прокси — показываем раздел прокси"""
        section = await self.content_store.find_proxy_section()
        if section is None:
            return Reply(PROXY_NOT_FOUND_TEXT)
        return Reply(html.escape(truncate_text(section.content)))

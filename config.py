"""
Централизованная конфигурация приложения
=========================================
Все настройки в одном месте для удобного управления.
"""

import os
from dotenv import load_dotenv

load_dotenv()


def parse_admin_ids(raw: str) -> set[int]:
    """Разбирает список admin user_id через запятую, мусор отбрасывается"""
    return {int(x.strip()) for x in raw.split(",") if x.strip().isdigit()}


class Config:
    """Конфигурация приложения"""

    # === Telegram ===
    TELEGRAM_BOT_TOKEN: str = os.getenv("TELEGRAM_BOT_TOKEN", "")

    # === Admin ===
    # Список admin user_id через запятую: "123456,789012"
    # Старое имя переменной ADMIN_ID тоже принимается
    ADMIN_IDS: set[int] = parse_admin_ids(
        os.getenv("ADMIN_IDS", "") or os.getenv("ADMIN_ID", "")
    )

    # === Обязательная подписка ===
    # Пусто — проверка подписки отключена
    REQUIRED_CHANNEL_ID: str = os.getenv("REQUIRED_CHANNEL_ID", "")
    CHANNEL_INVITE_LINK: str = os.getenv("CHANNEL_INVITE_LINK", "")

    # === Хранилища ===
    DATA_DIR: str = os.getenv("DATA_DIR", "./data")
    CONTENT_DB_PATH: str = os.getenv("CONTENT_DB_PATH", os.path.join(DATA_DIR, "db.json"))
    STATS_DB_PATH: str = os.getenv("STATS_DB_PATH", os.path.join(DATA_DIR, "stats.json"))

    # === Контент ===
    # Заголовок раздела, в который переносится старый текст прокси
    PROXY_SECTION_TITLE: str = os.getenv("PROXY_SECTION_TITLE", "Запрос прокси")
    RECENT_USERS_LIMIT: int = int(os.getenv("RECENT_USERS_LIMIT", "5"))

    # === Limits ===
    MAX_MESSAGE_LENGTH: int = int(os.getenv("MAX_MESSAGE_LENGTH", "4000"))
    MAX_INPUT_LENGTH: int = int(os.getenv("MAX_INPUT_LENGTH", "4000"))

    @classmethod
    def is_admin(cls, user_id: int) -> bool:
        """Проверяет, является ли пользователь админом"""
        return user_id in cls.ADMIN_IDS

    @classmethod
    def validate(cls) -> list[str]:
        """Проверяет обязательные настройки, возвращает список ошибок"""
        errors = []
        if not cls.TELEGRAM_BOT_TOKEN:
            errors.append("TELEGRAM_BOT_TOKEN не установлен")
        return errors


# Синглтон для удобного импорта
config = Config()

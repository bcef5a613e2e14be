"""
Bot Commands Setup
==================
Регистрация команд бота для показа в меню "/" в Telegram.
"""

import logging
from aiogram import Bot
from aiogram.types import BotCommand, BotCommandScopeDefault, BotCommandScopeChat

logger = logging.getLogger(__name__)


# Команды для всех пользователей
USER_COMMANDS = [
    BotCommand(command="start", description="🚀 Главное меню"),
]

# Дополнительные команды для админов
ADMIN_COMMANDS = [
    BotCommand(command="start", description="🚀 Главное меню"),
    BotCommand(command="admin", description="⚙️ Панель управления"),
    BotCommand(command="cancel", description="❌ Отменить ввод"),
]


async def setup_bot_commands(bot: Bot, admin_ids: list[int]) -> None:
    """
    Устанавливает команды бота для меню "/" в Telegram.

    Args:
        bot: Экземпляр бота
        admin_ids: Список ID администраторов
    """
    try:
        await bot.set_my_commands(
            commands=USER_COMMANDS,
            scope=BotCommandScopeDefault()
        )
        logger.info("✅ Команды бота установлены для всех пользователей")

        for admin_id in admin_ids:
            try:
                await bot.set_my_commands(
                    commands=ADMIN_COMMANDS,
                    scope=BotCommandScopeChat(chat_id=admin_id)
                )
                logger.info(f"✅ Админ-команды установлены для user_id={admin_id}")
            except Exception as e:
                # Админ мог не начать чат с ботом — это нормально
                logger.warning(f"⚠️ Не удалось установить команды для admin_id={admin_id}: {e}")

    except Exception as e:
        logger.error(f"❌ Ошибка установки команд бота: {e}")

"""
CPA Education Bot - Telegram Bot
================================
Обучающий бот: разделы меню под обязательной подпиской,
панель управления для админов и простая статистика.
"""

import asyncio
import logging

from aiogram import Bot, Dispatcher, types, F
from aiogram.enums import ChatMemberStatus
from aiogram.filters import Command, CommandStart
from aiogram.fsm.storage.memory import MemoryStorage

from config import config

# Настройка логирования
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def main():
    """Главная функция запуска бота"""

    # Проверяем конфигурацию
    errors = config.validate()
    if errors:
        for err in errors:
            logger.error(f"Config error: {err}")
        return

    # Импорты внутри async функции
    from services.access_gate import AccessGate
    from services.admin_input import AdminInputManager
    from services.analytics_store import AnalyticsStore
    from services.bot_commands import setup_bot_commands
    from services.content_store import ContentStore
    from services.storage import StorageError
    from handlers.admin import AdminHandler, STATS_FAILURE_TEXT
    from handlers.menu import MenuHandler, QUIZ_UNAVAILABLE_TEXT, SECTION_NOT_FOUND_TEXT
    from utils.helpers import Reply, hash_user_id, safe_edit
    from utils.keyboards import (
        CB_ADMIN_ADD,
        CB_ADMIN_DELETE_LIST,
        CB_ADMIN_EDIT_LIST,
        CB_ADMIN_EDIT_PROXY,
        CB_ADMIN_PANEL,
        CB_ADMIN_REORDER,
        CB_ADMIN_STATS,
        CB_BACK_HOME,
        CB_CHECK_JOIN,
        CB_DELETE,
        CB_EDIT,
        CB_MOVE,
        CB_NOOP,
        CB_REQUEST_PROXY,
        CB_START_QUIZ,
        CB_VIEW,
    )

    # Инициализация
    bot = Bot(token=config.TELEGRAM_BOT_TOKEN)
    storage = MemoryStorage()
    dp = Dispatcher(storage=storage)

    async def lookup_membership(chat_id, user_id: int) -> str:
        """Статус пользователя в канале"""
        member = await bot.get_chat_member(chat_id, user_id)
        # Ограниченный участник, который уже вышел из канала
        if member.status == ChatMemberStatus.RESTRICTED and not getattr(member, "is_member", True):
            return ChatMemberStatus.LEFT.value
        return member.status

    # Компоненты
    content_store = ContentStore()
    analytics_store = AnalyticsStore()
    content_store.ensure_initialized()
    analytics_store.ensure_initialized()

    access_gate = AccessGate(
        admin_ids=config.ADMIN_IDS,
        required_channel_id=config.REQUIRED_CHANNEL_ID,
        membership_lookup=lookup_membership
    )
    input_manager = AdminInputManager(content_store)

    menu_handler = MenuHandler(content_store, analytics_store)
    admin_handler = AdminHandler(content_store, analytics_store, input_manager)

    async def send_reply(message: types.Message, reply: Reply):
        await message.answer(reply.text, parse_mode="HTML", reply_markup=reply.keyboard)

    async def edit_reply(callback: types.CallbackQuery, reply: Reply):
        await safe_edit(callback.message, reply.text, reply_markup=reply.keyboard)

    async def ensure_access(callback: types.CallbackQuery) -> bool:
        """Проверка подписки перед любым действием с контентом"""
        if await access_gate.is_allowed(callback.from_user.id):
            return True
        await callback.answer("⚠️ Сначала подпишитесь на канал!", show_alert=True)
        await send_reply(callback.message, menu_handler.join_required(first_visit=False))
        return False

    # ==================== КОМАНДЫ ====================

    @dp.message(CommandStart())
    async def cmd_start(message: types.Message):
        """Обработчик команды /start"""
        user = message.from_user

        # Статистика
        await menu_handler.record_start(user.id, user.username, user.first_name)

        if not await access_gate.is_allowed(user.id):
            await send_reply(message, menu_handler.join_required())
            return

        reply = await menu_handler.main_menu(is_admin=access_gate.is_admin(user.id))
        await send_reply(message, reply)

    @dp.message(Command("admin"))
    async def cmd_admin(message: types.Message):
        """Панель управления (только для админов)"""
        if not config.is_admin(message.from_user.id):
            return
        await send_reply(message, admin_handler.panel())

    @dp.message(Command("cancel"))
    async def cmd_cancel(message: types.Message):
        """Отменить пошаговый ввод"""
        if not config.is_admin(message.from_user.id):
            return
        await send_reply(message, admin_handler.cancel(message.from_user.id))

    # ==================== CALLBACK: ПОЛЬЗОВАТЕЛИ ====================

    @dp.callback_query(F.data == CB_CHECK_JOIN)
    async def cb_check_join(callback: types.CallbackQuery):
        """Повторная проверка подписки"""
        user_id = callback.from_user.id
        if not await access_gate.is_allowed(user_id):
            await callback.answer("❌ Вы ещё не подписались на канал!", show_alert=True)
            return
        await callback.answer()
        reply = await menu_handler.joined(is_admin=access_gate.is_admin(user_id))
        await send_reply(callback.message, reply)

    @dp.callback_query(F.data.startswith(CB_VIEW))
    async def cb_view(callback: types.CallbackQuery):
        """Просмотр раздела"""
        if not await ensure_access(callback):
            return
        section_id = callback.data[len(CB_VIEW):]
        reply = await menu_handler.view_section(section_id)
        if reply is None:
            await callback.answer(SECTION_NOT_FOUND_TEXT, show_alert=True)
            return
        await callback.answer()
        await send_reply(callback.message, reply)

    @dp.callback_query(F.data == CB_BACK_HOME)
    async def cb_back_home(callback: types.CallbackQuery):
        if not await ensure_access(callback):
            return
        await callback.answer()
        reply = await menu_handler.main_menu(is_admin=access_gate.is_admin(callback.from_user.id))
        await edit_reply(callback, reply)

    @dp.callback_query(F.data == CB_REQUEST_PROXY)
    async def cb_request_proxy(callback: types.CallbackQuery):
        """Старая кнопка прокси из сообщений, отправленных до миграции"""
        if not await ensure_access(callback):
            return
        await callback.answer()
        await send_reply(callback.message, await menu_handler.request_proxy())

    @dp.callback_query(F.data == CB_START_QUIZ)
    async def cb_start_quiz(callback: types.CallbackQuery):
        if not await ensure_access(callback):
            return
        reply = await menu_handler.start_quiz()
        if reply is None:
            await callback.answer(QUIZ_UNAVAILABLE_TEXT, show_alert=True)
            return
        await callback.answer()
        await send_reply(callback.message, reply)

    @dp.callback_query(F.data == CB_NOOP)
    async def cb_noop(callback: types.CallbackQuery):
        await callback.answer()

    # ==================== CALLBACK: ADMIN ====================

    async def ensure_admin(callback: types.CallbackQuery) -> bool:
        if not await ensure_access(callback):
            return False
        if not config.is_admin(callback.from_user.id):
            logger.warning(f"Админ-действие от не-админа {hash_user_id(callback.from_user.id)}")
            await callback.answer()
            return False
        return True

    @dp.callback_query(F.data == CB_ADMIN_PANEL)
    async def cb_admin_panel(callback: types.CallbackQuery):
        if not await ensure_admin(callback):
            return
        await callback.answer()
        await edit_reply(callback, admin_handler.panel())

    @dp.callback_query(F.data == CB_ADMIN_ADD)
    async def cb_admin_add(callback: types.CallbackQuery):
        if not await ensure_admin(callback):
            return
        await callback.answer()
        await send_reply(callback.message, admin_handler.start_add(callback.from_user.id))

    @dp.callback_query(F.data == CB_ADMIN_DELETE_LIST)
    async def cb_admin_delete_list(callback: types.CallbackQuery):
        if not await ensure_admin(callback):
            return
        await callback.answer()
        await edit_reply(callback, await admin_handler.delete_list())

    @dp.callback_query(F.data.startswith(CB_DELETE))
    async def cb_delete(callback: types.CallbackQuery):
        if not await ensure_admin(callback):
            return
        section_id = callback.data[len(CB_DELETE):]
        try:
            deleted, reply = await admin_handler.delete(section_id)
        except StorageError as e:
            logger.error(f"Ошибка удаления раздела {section_id}: {e}")
            await callback.answer("❌ Не удалось сохранить изменения", show_alert=True)
            return
        await callback.answer("✅ Удалено" if deleted else "Раздел уже удалён")
        await edit_reply(callback, reply)

    @dp.callback_query(F.data == CB_ADMIN_EDIT_LIST)
    async def cb_admin_edit_list(callback: types.CallbackQuery):
        if not await ensure_admin(callback):
            return
        await callback.answer()
        await edit_reply(callback, await admin_handler.edit_list())

    @dp.callback_query(F.data.startswith(CB_EDIT))
    async def cb_edit(callback: types.CallbackQuery):
        if not await ensure_admin(callback):
            return
        section_id = callback.data[len(CB_EDIT):]
        reply = await admin_handler.start_edit(callback.from_user.id, section_id)
        if reply is None:
            await callback.answer("Раздел не найден!", show_alert=True)
            return
        await callback.answer()
        await send_reply(callback.message, reply)

    @dp.callback_query(F.data == CB_ADMIN_REORDER)
    async def cb_admin_reorder(callback: types.CallbackQuery):
        if not await ensure_admin(callback):
            return
        await callback.answer()
        await edit_reply(callback, await admin_handler.reorder_list())

    @dp.callback_query(F.data.startswith(CB_MOVE))
    async def cb_move(callback: types.CallbackQuery):
        if not await ensure_admin(callback):
            return
        try:
            _, reply = await admin_handler.move(callback.data)
        except StorageError as e:
            logger.error(f"Ошибка перестановки разделов: {e}")
            await callback.answer("❌ Не удалось сохранить изменения", show_alert=True)
            return
        await callback.answer()
        await edit_reply(callback, reply)

    @dp.callback_query(F.data == CB_ADMIN_EDIT_PROXY)
    async def cb_admin_edit_proxy(callback: types.CallbackQuery):
        if not await ensure_admin(callback):
            return
        await callback.answer()
        await send_reply(callback.message, await admin_handler.start_proxy_edit(callback.from_user.id))

    @dp.callback_query(F.data == CB_ADMIN_STATS)
    async def cb_admin_stats(callback: types.CallbackQuery):
        if not await ensure_admin(callback):
            return
        reply = await admin_handler.stats()
        if reply is None:
            await callback.answer(STATS_FAILURE_TEXT, show_alert=True)
            return
        await callback.answer()
        await edit_reply(callback, reply)

    @dp.callback_query()
    async def cb_unknown(callback: types.CallbackQuery):
        """Кнопки из старых версий бота"""
        logger.debug(f"Неизвестный callback: {callback.data}")
        await callback.answer()

    # ==================== ОБРАБОТКА СООБЩЕНИЙ ====================

    @dp.message(F.text)
    async def handle_text(message: types.Message):
        """Текст для пошагового ввода админа; остальное — обычная переписка"""
        text = message.text

        # Пропускаем команды
        if text.startswith("/"):
            return

        reply = await admin_handler.handle_text(message.from_user.id, text)
        if reply is not None:
            await send_reply(message, reply)

    @dp.channel_post()
    async def handle_channel_post(message: types.Message):
        """Помогает узнать ID канала для REQUIRED_CHANNEL_ID"""
        logger.info(f"📢 Пост в канале! Channel ID: {message.chat.id}, title: {message.chat.title}")

    # ==================== ЗАПУСК ====================

    logger.info("🚀 Starting CPA Education Bot...")
    if not config.REQUIRED_CHANNEL_ID:
        logger.warning(
            "⚠️ REQUIRED_CHANNEL_ID не задан — обязательная подписка отключена. "
            "Отправьте пост в канал и найдите в логах 'Channel ID'."
        )
    if not config.ADMIN_IDS:
        logger.warning("⚠️ ADMIN_IDS не задан — панель управления недоступна")

    try:
        await bot.delete_webhook(drop_pending_updates=True)
        logger.info("✅ Webhook удалён, pending updates очищены")
    except Exception as e:
        logger.warning(f"Не удалось очистить webhook: {e}")

    # Устанавливаем команды бота (меню "/" в Telegram)
    await setup_bot_commands(bot, list(config.ADMIN_IDS))

    try:
        await dp.start_polling(
            bot,
            allowed_updates=dp.resolve_used_update_types(),
            close_bot_session=True
        )
    except Exception as e:
        logger.error(f"Ошибка polling: {e}")
        raise


if __name__ == "__main__":
    asyncio.run(main())

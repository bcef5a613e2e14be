"""
Inline Keyboards
================
Все клавиатуры бота в одном месте.
"""

from typing import Optional

from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton

from services.content_store import Section, MOVE_UP, MOVE_DOWN


# ==================== CALLBACK DATA ====================

CB_CHECK_JOIN = "check_join"
CB_BACK_HOME = "back_home"
CB_NOOP = "noop"
CB_REQUEST_PROXY = "request_proxy"
CB_START_QUIZ = "start_quiz"

CB_ADMIN_PANEL = "admin_panel"
CB_ADMIN_ADD = "admin_add"
CB_ADMIN_DELETE_LIST = "admin_delete_list"
CB_ADMIN_EDIT_LIST = "admin_edit_list"
CB_ADMIN_REORDER = "admin_reorder"
CB_ADMIN_EDIT_PROXY = "admin_edit_proxy"
CB_ADMIN_STATS = "admin_stats"

# Префиксы с параметром: "view:<id>", "move:up:<id>"
CB_VIEW = "view:"
CB_DELETE = "delete:"
CB_EDIT = "edit:"
CB_MOVE = "move:"


def parse_move(data: str) -> Optional[tuple[str, str]]:
    """'move:up:<id>' -> ('up', '<id>'); None если формат неверный"""
    parts = data.split(":", 2)
    if len(parts) != 3 or parts[1] not in (MOVE_UP, MOVE_DOWN) or not parts[2]:
        return None
    return parts[1], parts[2]


# ==================== ГЛАВНОЕ МЕНЮ ====================

def get_main_menu_keyboard(sections: list[Section], is_admin: bool = False) -> InlineKeyboardMarkup:
    """Разделы по порядку + панель управления для админа"""
    buttons = [
        [InlineKeyboardButton(text=s.title, callback_data=f"{CB_VIEW}{s.id}")]
        for s in sections
    ]
    if is_admin:
        buttons.append([
            InlineKeyboardButton(text="⚙️ Панель управления", callback_data=CB_ADMIN_PANEL)
        ])
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def get_join_keyboard() -> InlineKeyboardMarkup:
    """Кнопка повторной проверки подписки"""
    return InlineKeyboardMarkup(inline_keyboard=[
        [
            InlineKeyboardButton(text="✅ Я подписался", callback_data=CB_CHECK_JOIN),
        ],
    ])


# ==================== ADMIN ====================

def get_admin_panel_keyboard() -> InlineKeyboardMarkup:
    """Панель управления"""
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="➕ Добавить раздел", callback_data=CB_ADMIN_ADD)],
        [InlineKeyboardButton(text="❌ Удалить раздел", callback_data=CB_ADMIN_DELETE_LIST)],
        [InlineKeyboardButton(text="🔃 Порядок разделов", callback_data=CB_ADMIN_REORDER)],
        [InlineKeyboardButton(text="📝 Изменить раздел", callback_data=CB_ADMIN_EDIT_LIST)],
        [InlineKeyboardButton(text="🌐 Текст прокси", callback_data=CB_ADMIN_EDIT_PROXY)],
        [InlineKeyboardButton(text="📊 Статистика", callback_data=CB_ADMIN_STATS)],
        [InlineKeyboardButton(text="🔙 Назад", callback_data=CB_BACK_HOME)],
    ])


def get_back_to_panel_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="⚙️ Вернуться в панель", callback_data=CB_ADMIN_PANEL)],
    ])


def _section_list_keyboard(sections: list[Section], icon: str, prefix: str) -> InlineKeyboardMarkup:
    buttons = [
        [InlineKeyboardButton(text=f"{icon} {s.title}", callback_data=f"{prefix}{s.id}")]
        for s in sections
    ]
    buttons.append([InlineKeyboardButton(text="🔙 Назад", callback_data=CB_ADMIN_PANEL)])
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def get_delete_keyboard(sections: list[Section]) -> InlineKeyboardMarkup:
    """Выбор раздела для удаления"""
    return _section_list_keyboard(sections, "🗑", CB_DELETE)


def get_edit_keyboard(sections: list[Section]) -> InlineKeyboardMarkup:
    """Выбор раздела для редактирования"""
    return _section_list_keyboard(sections, "✏️", CB_EDIT)


def get_reorder_keyboard(sections: list[Section]) -> InlineKeyboardMarkup:
    """Раздел + стрелки вверх/вниз в одной строке"""
    buttons = [
        [
            InlineKeyboardButton(text=s.title, callback_data=CB_NOOP),
            InlineKeyboardButton(text="⬆️", callback_data=f"{CB_MOVE}{MOVE_UP}:{s.id}"),
            InlineKeyboardButton(text="⬇️", callback_data=f"{CB_MOVE}{MOVE_DOWN}:{s.id}"),
        ]
        for s in sections
    ]
    buttons.append([InlineKeyboardButton(text="🔙 Назад", callback_data=CB_ADMIN_PANEL)])
    return InlineKeyboardMarkup(inline_keyboard=buttons)

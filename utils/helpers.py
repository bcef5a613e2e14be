"""
Вспомогательные утилиты
=======================
Работа с сообщениями Telegram и вспомогательные функции.
"""

import hashlib
import logging
from dataclasses import dataclass
from typing import Optional

from aiogram import types
from aiogram.exceptions import TelegramBadRequest
from aiogram.types import InlineKeyboardMarkup

from config import config

logger = logging.getLogger(__name__)


def hash_user_id(user_id: int) -> str:
    """Хеширует user_id для логов (приватность)"""
    return hashlib.sha256(str(user_id).encode()).hexdigest()[:8]


def truncate_text(text: str, max_length: int = None) -> str:
    """Обрезает текст до максимальной длины"""
    max_length = max_length or config.MAX_MESSAGE_LENGTH
    if len(text) <= max_length:
        return text
    return text[:max_length - 3] + "..."


def validate_message_length(text: str) -> tuple[bool, str]:
    """
    Проверяет длину входящего сообщения.

    Returns:
        (is_valid, error_message)
    """
    if len(text) > config.MAX_INPUT_LENGTH:
        return False, f"Сообщение слишком длинное (максимум {config.MAX_INPUT_LENGTH} символов)"
    return True, ""


def is_not_modified_error(error: TelegramBadRequest) -> bool:
    return "message is not modified" in str(error).lower()


async def safe_edit(
    message: types.Message,
    text: str,
    reply_markup: Optional[InlineKeyboardMarkup] = None,
    parse_mode: Optional[str] = "HTML"
) -> None:
    """
    Редактирует сообщение, игнорируя ошибку "message is not modified".
    Остальные ошибки Telegram пробрасываются.
    """
    try:
        await message.edit_text(text, parse_mode=parse_mode, reply_markup=reply_markup)
    except TelegramBadRequest as e:
        if not is_not_modified_error(e):
            raise
        logger.debug("Сообщение не изменилось, редактирование пропущено")


@dataclass
class Reply:
    """Ответ обработчика: текст + клавиатура"""
    text: str
    keyboard: Optional[InlineKeyboardMarkup] = None

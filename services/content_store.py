"""
Content Store
=============
Упорядоченный список разделов меню: CRUD, перестановка,
перенос старого текста прокси в обычный раздел.
"""

import logging
import secrets
from dataclasses import dataclass, field
from typing import Any, Optional

from config import config
from services.storage import JsonDocumentStore

logger = logging.getLogger(__name__)


PROXY_TEXT_PLACEHOLDER = "⚠️ Текст для запроса прокси ещё не задан."

MOVE_UP = "up"
MOVE_DOWN = "down"

# Разделы, с которыми создаётся новое хранилище
DEFAULT_SECTIONS = [
    {
        "id": "cpa_intro",
        "title": "Что такое CPA?",
        "content": (
            "CPA (Cost Per Action) — модель оплаты за действие. Рекламодатель платит "
            "издателю, когда пользователь совершает целевое действие: заполняет анкету "
            "или устанавливает приложение."
        ),
    },
    {
        "id": "surveys",
        "title": "Заработок на опросах",
        "content": (
            "Опросы — способ получать вознаграждение за своё мнение. Отвечайте честно "
            "и выбирайте проверенные компании."
        ),
    },
    {
        "id": "games",
        "title": "Заработок на играх",
        "content": (
            "Можно зарабатывать, проходя игры до определённого уровня. Такие офферы "
            "требуют времени, но хорошо оплачиваются."
        ),
    },
]


@dataclass
class Section:
    """Раздел меню"""
    id: str
    title: str
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "title": self.title, "content": self.content}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Section":
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", "")),
            content=str(data.get("content", "")),
        )


@dataclass
class Quiz:
    """Тест (точка расширения, только чтение)"""
    id: str
    question: str
    options: list[str] = field(default_factory=list)
    answer: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "question": self.question,
            "options": list(self.options),
            "answer": self.answer,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Quiz":
        return cls(
            id=str(data["id"]),
            question=str(data.get("question", "")),
            options=[str(o) for o in data.get("options") or []],
            answer=data.get("answer"),
        )


@dataclass
class ContentDocument:
    """
    Содержимое хранилища.

    legacy_proxy_text — устаревшее поле верхнего уровня (ключ "proxyText"
    в файле), есть только в данных старых версий бота.
    """
    sections: list[Section] = field(default_factory=list)
    legacy_proxy_text: Optional[str] = None
    quizzes: list[Quiz] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ContentDocument":
        legacy = data.get("proxyText")
        return cls(
            sections=[Section.from_dict(s) for s in data.get("sections") or []],
            # Пустая строка в старых данных означала "не задано"
            legacy_proxy_text=legacy if legacy else None,
            quizzes=[Quiz.from_dict(q) for q in data.get("quizzes") or []],
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"sections": [s.to_dict() for s in self.sections]}
        if self.quizzes:
            data["quizzes"] = [q.to_dict() for q in self.quizzes]
        if self.legacy_proxy_text is not None:
            data["proxyText"] = self.legacy_proxy_text
        return data

    def find_index(self, section_id: str) -> int:
        for i, section in enumerate(self.sections):
            if section.id == section_id:
                return i
        return -1

    def find_by_title(self, title: str) -> Optional[Section]:
        for section in self.sections:
            if section.title == title:
                return section
        return None

    def new_id(self, prefix: str = "") -> str:
        """Генерирует id, которого ещё нет в документе"""
        existing = {s.id for s in self.sections}
        while True:
            candidate = f"{prefix}{secrets.token_hex(6)}"
            if candidate not in existing:
                return candidate


def normalize(document: ContentDocument, proxy_title: str) -> bool:
    """
    Переносит устаревший текст прокси в обычный раздел.

    Идемпотентно: если раздел с заголовком proxy_title уже есть,
    старое поле просто отбрасывается без создания дубля.

    Returns:
        True если документ изменился и его нужно сохранить
    """
    if document.legacy_proxy_text is None:
        return False

    if document.find_by_title(proxy_title) is None:
        document.sections.append(Section(
            id=document.new_id(prefix="proxy_request_"),
            title=proxy_title,
            content=document.legacy_proxy_text,
        ))
        logger.info("Старый текст прокси перенесён в раздел")
    else:
        logger.info("Раздел прокси уже существует, старое поле удалено")

    document.legacy_proxy_text = None
    return True


class ContentStore(JsonDocumentStore):
    """Хранилище разделов меню"""

    def __init__(self, path: str = None, proxy_title: str = None):
        super().__init__(path or config.CONTENT_DB_PATH)
        self.proxy_title = proxy_title or config.PROXY_SECTION_TITLE

    def _default_document(self) -> dict[str, Any]:
        return {"sections": [dict(s) for s in DEFAULT_SECTIONS]}

    def _load(self) -> ContentDocument:
        return ContentDocument.from_dict(self._read())

    def _save(self, document: ContentDocument) -> None:
        self._write(document.to_dict())

    # ==================== ЧТЕНИЕ ====================

    async def list_sections(self) -> list[Section]:
        """Возвращает разделы по порядку, предварительно выполнив миграцию"""
        async with self._lock:
            document = self._load()
            if normalize(document, self.proxy_title):
                self._save(document)
            return document.sections

    async def get_section(self, section_id: str) -> Optional[Section]:
        """Ищет раздел по id без побочных эффектов"""
        document = self._load()
        index = document.find_index(section_id)
        if index == -1:
            return None
        return document.sections[index]

    async def find_proxy_section(self) -> Optional[Section]:
        """Раздел с текстом для запроса прокси"""
        for section in await self.list_sections():
            if section.title == self.proxy_title:
                return section
        return None

    async def list_quizzes(self) -> list[Quiz]:
        return self._load().quizzes

    async def get_quiz(self, quiz_id: str) -> Optional[Quiz]:
        for quiz in self._load().quizzes:
            if quiz.id == quiz_id:
                return quiz
        return None

    # ==================== ИЗМЕНЕНИЕ ====================

    async def add_section(self, title: str, content: str) -> str:
        """Добавляет раздел в конец списка, возвращает его id"""
        async with self._lock:
            document = self._load()
            section_id = document.new_id()
            document.sections.append(Section(id=section_id, title=title, content=content))
            self._save(document)
        logger.info(f"Добавлен раздел {section_id}: {title[:50]}")
        return section_id

    async def delete_section(self, section_id: str) -> bool:
        """Удаляет раздел. False — такого id нет"""
        async with self._lock:
            document = self._load()
            index = document.find_index(section_id)
            if index == -1:
                return False
            del document.sections[index]
            self._save(document)
        logger.info(f"Удалён раздел {section_id}")
        return True

    async def update_section(self, section_id: str, new_content: str) -> bool:
        """Заменяет текст раздела, заголовок и позиция не меняются"""
        async with self._lock:
            document = self._load()
            index = document.find_index(section_id)
            if index == -1:
                return False
            document.sections[index].content = new_content
            self._save(document)
        logger.info(f"Обновлён раздел {section_id}")
        return True

    async def move_section(self, section_id: str, direction: str) -> bool:
        """
        Меняет раздел местами с соседом сверху или снизу.

        Returns:
            False если раздел не найден, уже на границе списка
            или направление неизвестно
        """
        async with self._lock:
            document = self._load()
            index = document.find_index(section_id)
            if index == -1:
                return False

            if direction == MOVE_UP and index > 0:
                other = index - 1
            elif direction == MOVE_DOWN and index < len(document.sections) - 1:
                other = index + 1
            else:
                return False

            sections = document.sections
            sections[index], sections[other] = sections[other], sections[index]
            self._save(document)
        return True

    # ==================== СОВМЕСТИМОСТЬ ====================

    async def get_proxy_text(self) -> str:
        """Текст раздела прокси или заглушка"""
        section = await self.find_proxy_section()
        if section is not None:
            return section.content
        return PROXY_TEXT_PLACEHOLDER

    async def set_proxy_text(self, text: str) -> None:
        """Создаёт или обновляет раздел прокси (старое поле не восстанавливается)"""
        async with self._lock:
            document = self._load()
            # Старое поле устарело, новый текст важнее
            document.legacy_proxy_text = None
            section = document.find_by_title(self.proxy_title)
            if section is not None:
                section.content = text
            else:
                document.sections.append(Section(
                    id=document.new_id(prefix="proxy_request_"),
                    title=self.proxy_title,
                    content=text,
                ))
            self._save(document)
        logger.info("Текст прокси обновлён")

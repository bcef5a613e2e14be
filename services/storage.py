"""
JSON Document Storage
=====================
Базовое файловое хранилище: один JSON-документ на файл,
атомарная запись (tmp-файл + replace) и блокировка на запись.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Ошибка чтения или записи хранилища"""
    pass


class JsonDocumentStore:
    """
    Хранилище одного JSON-документа.

    Документ не кэшируется: каждая операция читает файл заново,
    изменяет и записывает обратно под self._lock. Если запись упала,
    на диске остаётся прежняя версия и в памяти нечего откатывать.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _default_document(self) -> dict[str, Any]:
        """Документ для пустого хранилища (переопределяется наследниками)"""
        return {}

    def ensure_initialized(self) -> None:
        """Создаёт файл с документом по умолчанию, если его ещё нет"""
        if not self.path.exists():
            self._write(self._default_document())
            logger.info(f"Создано хранилище {self.path}")

    def _read(self) -> dict[str, Any]:
        """Читает документ с диска"""
        if not self.path.exists():
            return self._default_document()
        try:
            raw = self.path.read_text(encoding="utf-8")
            data = json.loads(raw)
        except (OSError, ValueError) as e:
            logger.error(f"Ошибка чтения {self.path}: {e}")
            raise StorageError(f"Не удалось прочитать {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Неверный формат {self.path}: ожидался объект")
        return data

    def _write(self, data: dict[str, Any]) -> None:
        """Атомарно записывает документ на диск"""
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            raw = json.dumps(data, ensure_ascii=False, indent=2) + "\n"
            tmp_path.write_text(raw, encoding="utf-8")
            tmp_path.replace(self.path)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Ошибка записи {self.path}: {e}")
            raise StorageError(f"Не удалось сохранить {self.path}: {e}") from e

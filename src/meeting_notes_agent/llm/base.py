"""
Базовые типы для генеративной модели.

Контракт провайдера:
- upload_file: загрузить аудио, получить ссылку (с ожиданием готовности)
- generate_text: свободный текст по prompt (+ ссылка на файл)
- generate_json: структурированный ответ по JSON-схеме
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass
class UploadedFile:
    """
    Ссылка на файл, загруженный в провайдера.
    """

    uri: str
    mime_type: str
    name: str | None = None
    state: str | None = None


@dataclass
class Part:
    """
    Часть запроса: текст или ссылка на загруженный файл.
    """

    text: str | None = None
    file: UploadedFile | None = None

    @classmethod
    def of_text(cls, text: str) -> Part:
        return cls(text=text)

    @classmethod
    def of_file(cls, file: UploadedFile) -> Part:
        return cls(file=file)


class GenerativeProvider(ABC):
    """
    Интерфейс провайдера генеративной модели.
    """

    model: str

    @abstractmethod
    def upload_file(self, *, data: bytes, mime_type: str, display_name: str) -> UploadedFile:
        raise NotImplementedError

    @abstractmethod
    def generate_text(self, *, parts: list[Part], temperature: float = 0.4) -> str:
        raise NotImplementedError

    @abstractmethod
    def generate_json(
        self, *, parts: list[Part], schema: dict[str, Any], temperature: float = 0.2
    ) -> str:
        """
        Вернуть JSON-текст, соответствующий schema (парсинг в оркестраторе).
        """
        raise NotImplementedError

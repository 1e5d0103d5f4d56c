#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Типы ошибок ассистента.

- RateLimitedError: провайдер модели вернул 429 (квота исчерпана)
- ModelCallError: любая другая ошибка API модели
- ToolExecutionError / UnknownToolError: некорректный вызов инструмента
- IngestionError: не удалось загрузить исходный документ
"""


class BpRagError(Exception):
    """Базовая ошибка пакета."""


class RateLimitedError(BpRagError):
    """Сервис модели сообщил об исчерпании квоты."""


class ModelCallError(BpRagError):
    pass


class ToolExecutionError(BpRagError):
    pass


class UnknownToolError(ToolExecutionError):
    """Модель запросила инструмент, которого нет в реестре."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool requested: {name}")
        self.name = name


class IngestionError(BpRagError):
    pass

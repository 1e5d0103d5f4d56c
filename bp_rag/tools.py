#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Реестр инструментов, которые модель может вызвать во время ответа."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, Iterator, List, Mapping

from .errors import UnknownToolError

ToolHandler = Callable[[Mapping[str, Any]], Awaitable[Mapping[str, Any]]]


@dataclass(frozen=True)
class ToolCallRequest:
    """Вызов инструмента, предложенный моделью (id нужен для ответа function-response)."""
    id: str
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolSpec:
    """Объявление инструмента: JSON-схема параметров и асинхронный обработчик."""
    name: str
    description: str
    parameters: Dict[str, Any]
    handler: ToolHandler

    def declaration(self) -> Dict[str, Any]:
        """Описание в формате `tools` Chat Completions API."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


class ToolRegistry:
    """Статическое отображение имя → (схема, обработчик).

    Неизвестное имя отклоняется в resolve() до вызова какого-либо обработчика.
    Ошибки самих обработчиков не перехватываются.
    """

    def __init__(self, tools: Iterable[ToolSpec] = ()) -> None:
        self._tools: Dict[str, ToolSpec] = {}
        for spec in tools:
            self.register(spec)

    def register(self, spec: ToolSpec) -> None:
        if spec.name in self._tools:
            raise ValueError(f"Tool already registered: {spec.name}")
        self._tools[spec.name] = spec

    def declarations(self) -> List[Dict[str, Any]]:
        return [spec.declaration() for spec in self._tools.values()]

    def resolve(self, name: str) -> ToolSpec:
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownToolError(name) from None

    async def invoke(self, call: ToolCallRequest) -> Dict[str, Any]:
        spec = self.resolve(call.name)
        result = await spec.handler(call.arguments)
        return dict(result)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[ToolSpec]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)


STOCK_PRICES: Dict[str, int] = {"AAPL": 220, "TSLA": 180, "GOOGL": 150}
STOCK_NOT_FOUND = "Тикер не найден"


async def get_stock_price(args: Mapping[str, Any]) -> Dict[str, Any]:
    """Возвращает последнюю цену акции из статической таблицы."""
    symbol = str(args["symbol"]).upper()
    return {"price": STOCK_PRICES.get(symbol, STOCK_NOT_FOUND)}


STOCK_PRICE_TOOL = ToolSpec(
    name="getStockPrice",
    description="Запрашивает последнюю цену акции",
    parameters={
        "type": "object",
        "properties": {
            "symbol": {"type": "string", "description": "Тикер акции, например AAPL"},
        },
        "required": ["symbol"],
    },
    handler=get_stock_price,
)


def default_registry() -> ToolRegistry:
    return ToolRegistry([STOCK_PRICE_TOOL])

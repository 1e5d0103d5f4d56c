#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""История диалога по пользователям."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Literal, Protocol, Sequence

MAX_HISTORY_TURNS = 10  # 5 обменов user/model


@dataclass(frozen=True)
class ConversationTurn:
    role: Literal["user", "model"]
    text: str


class SessionStore(Protocol):
    """Хранилище истории диалогов с интерфейсом {get, append}.

    Оркестратор читает историю в начале хода и дописывает её в конце;
    эта пара не атомарна. Если для одного user_id одновременно идут
    несколько ходов, каждый из них видит историю без соседнего хода,
    а порядок их записей в историю не определён.
    """

    def get(self, user_id: str) -> List[ConversationTurn]:
        ...

    def append(self, user_id: str, turns: Sequence[ConversationTurn]) -> None:
        ...


class InMemorySessionStore:
    """Хранилище в памяти процесса: после рестарта история теряется.

    После каждого append остаются только последние max_turns записей.
    """

    def __init__(self, max_turns: int = MAX_HISTORY_TURNS) -> None:
        if max_turns <= 0:
            raise ValueError("max_turns must be positive")
        self.max_turns = max_turns
        self._histories: Dict[str, List[ConversationTurn]] = {}

    def get(self, user_id: str) -> List[ConversationTurn]:
        return list(self._histories.get(user_id, ()))

    def append(self, user_id: str, turns: Sequence[ConversationTurn]) -> None:
        history = self._histories.get(user_id, []) + list(turns)
        self._histories[user_id] = history[-self.max_turns:]

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from openai import APIError, AsyncOpenAI, RateLimitError

from .config import LLMConfig
from .errors import ModelCallError, RateLimitedError, ToolExecutionError
from .tools import ToolCallRequest


@dataclass(frozen=True)
class ChatReply:
    """Нормализованный ответ модели: текст и (не более одного) вызов инструмента."""
    text: str
    tool_call: Optional[ToolCallRequest] = None


class OpenAIChatLLM:
    """Асинхронный клиент OpenAI-совместимого Chat Completions API.

    Переводит ошибки SDK в ошибки пакета: 429 → RateLimitedError,
    прочие ошибки API → ModelCallError. Встроенные повторы SDK отключены,
    повторами занимается RetryExecutor.
    """
    def __init__(
        self,
        base_url: str,
        api_key: str,
        model_name: str,
        temperature: float = 0.3,
        top_p: float = 0.9,
        max_tokens: int = 800,
    ) -> None:
        self._client = AsyncOpenAI(base_url=base_url, api_key=api_key, max_retries=0)
        self._model = model_name
        self._temperature = float(temperature)
        self._top_p = float(top_p)
        self._max_tokens = int(max_tokens)

    @classmethod
    def from_config(cls, cfg: LLMConfig) -> "OpenAIChatLLM":
        return cls(
            base_url=cfg.base_url,
            api_key=cfg.api_key,
            model_name=cfg.model_name,
            temperature=cfg.temperature,
            top_p=cfg.top_p,
            max_tokens=cfg.max_tokens,
        )

    async def chat(self, messages: List[Dict[str, Any]], tools: Optional[List[Dict[str, Any]]] = None) -> ChatReply:
        """Один вызов модели. Если модель запросила инструменты, берётся только первый вызов."""
        extra: Dict[str, Any] = {}
        if tools:
            extra["tools"] = tools
        try:
            resp = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                temperature=self._temperature,
                top_p=self._top_p,
                max_tokens=self._max_tokens,
                **extra,
            )
        except RateLimitError as exc:
            raise RateLimitedError(str(exc)) from exc
        except APIError as exc:
            raise ModelCallError(str(exc)) from exc

        message = resp.choices[0].message
        tool_call = None
        if message.tool_calls:
            first = message.tool_calls[0]
            tool_call = ToolCallRequest(
                id=first.id or f"call_{first.function.name}",
                name=first.function.name,
                arguments=_parse_arguments(first.function.arguments),
            )
        return ChatReply(text=(message.content or "").strip(), tool_call=tool_call)

    async def aclose(self) -> None:
        await self._client.close()


def _parse_arguments(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        args = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ToolExecutionError(f"Tool arguments are not valid JSON: {raw!r}") from exc
    if not isinstance(args, dict):
        raise ToolExecutionError(f"Tool arguments must be an object, got {type(args).__name__}")
    return args

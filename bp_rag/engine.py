#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import json
from typing import Any, Dict, List, Optional, Sequence

import structlog
from llama_index.core import PromptTemplate

from .config import AppSettings, RetrievalConfig
from .embeddings import OpenAICompatEmbedding
from .llm import ChatReply, OpenAIChatLLM
from .memory import ConversationTurn, InMemorySessionStore, SessionStore
from .retry import RetryExecutor, RetryPolicy
from .tools import ToolCallRequest, ToolRegistry, default_registry
from .vectorstore import ChunkVectorStore, StoredRecord, make_weaviate_client

logger = structlog.get_logger(__name__)

DEFAULT_USER_ID = "anonymous"

DOMAIN_INSTRUCTION = (
    "Ты ассистент по руководству пользователя тонометра (измерителя артериального давления). "
    "Отвечай только на основе контекста из руководства. "
    "Если вопрос не касается тонометра и его руководства, вежливо откажись отвечать. "
    "Для вопросов о цене акций используй доступный инструмент."
)

QA_PROMPT = PromptTemplate(
    (
        "Контекст из руководства:\n"
        "---------------------\n"
        "{context_str}\n"
        "---------------------\n"
        "{instruction_str}\n"
        "Вопрос: {query_str}"
    )
)

NO_CONTEXT = "(подходящих фрагментов не найдено)"

_ROLE_TO_API = {"user": "user", "model": "assistant"}


class ChatOrchestrator:
    """Один ход диалога: извлечение → промпт → модель → (инструмент → модель) → история.

    - ошибка извлечения не прерывает ход: ответ строится без контекста
    - в историю пишется исходный вопрос, а не расширенный промпт
    - за ход выполняется не больше одного вызова инструмента
    - оба вызова модели идут через RetryExecutor
    """
    def __init__(
        self,
        llm: OpenAIChatLLM,
        store: ChunkVectorStore,
        embed_model: OpenAICompatEmbedding,
        tools: ToolRegistry,
        memory: SessionStore,
        retry: RetryExecutor,
        ret_cfg: Optional[RetrievalConfig] = None,
    ) -> None:
        self._llm = llm
        self._store = store
        self._embed_model = embed_model
        self._tools = tools
        self._memory = memory
        self._retry = retry
        self._ret_cfg = ret_cfg or RetrievalConfig()

    async def handle(self, message: str, user_id: Optional[str] = None) -> str:
        """Обрабатывает сообщение пользователя и возвращает текст финального ответа."""
        user_id = user_id or DEFAULT_USER_ID
        history = self._memory.get(user_id)
        records = await self._retrieve(message)

        messages = self._history_messages(history)
        messages.append({"role": "user", "content": self.build_prompt(message, records)})

        reply = await self._call_model(messages, tools=self._tools.declarations())
        if reply.tool_call is not None:
            answer = await self._resolve_tool_call(messages, reply.tool_call)
        else:
            answer = reply.text

        self._memory.append(
            user_id,
            [ConversationTurn(role="user", text=message), ConversationTurn(role="model", text=answer)],
        )
        logger.info(
            "chat.turn.completed",
            user_id=user_id,
            context_chunks=len(records),
            tool=reply.tool_call.name if reply.tool_call else None,
        )
        return answer

    async def _retrieve(self, message: str) -> List[StoredRecord]:
        try:
            vector = await self._embed_model.aget_query_embedding(message)
            return await self._store.asearch(vector, self._ret_cfg.similarity_top_k)
        except Exception as exc:
            logger.warning("chat.retrieval.failed", error=str(exc), error_type=type(exc).__name__)
            return []

    @staticmethod
    def build_prompt(message: str, records: Sequence[StoredRecord]) -> str:
        context = "\n\n".join(r.text for r in records) if records else NO_CONTEXT
        return QA_PROMPT.format(context_str=context, instruction_str=DOMAIN_INSTRUCTION, query_str=message)

    @staticmethod
    def _history_messages(history: Sequence[ConversationTurn]) -> List[Dict[str, Any]]:
        return [{"role": _ROLE_TO_API[t.role], "content": t.text} for t in history]

    async def _call_model(self, messages: List[Dict[str, Any]], tools: Optional[List[Dict[str, Any]]] = None) -> ChatReply:
        return await self._retry.execute(lambda: self._llm.chat(messages, tools=tools))

    async def _resolve_tool_call(self, messages: List[Dict[str, Any]], call: ToolCallRequest) -> str:
        """Выполняет запрошенный инструмент и делает второй вызов модели с его результатом."""
        logger.info("chat.tool.requested", tool=call.name, arguments=call.arguments)
        result = await self._tools.invoke(call)

        followup = list(messages)
        followup.append(
            {
                "role": "assistant",
                "content": None,
                "tool_calls": [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {"name": call.name, "arguments": json.dumps(call.arguments, ensure_ascii=False)},
                    }
                ],
            }
        )
        followup.append({"role": "tool", "tool_call_id": call.id, "content": json.dumps(result, ensure_ascii=False)})

        final = await self._call_model(followup)
        return final.text

    async def aclose(self) -> None:
        self._store.close()
        await self._llm.aclose()
        await self._embed_model.aclose()


def build_orchestrator(settings: AppSettings) -> ChatOrchestrator:
    """Собирает оркестратор из боевых компонентов по настройкам окружения."""
    vs_cfg = settings.vector_store_config()
    client = make_weaviate_client(vs_cfg)
    return ChatOrchestrator(
        llm=OpenAIChatLLM.from_config(settings.llm_config()),
        store=ChunkVectorStore(client, vs_cfg.index_name),
        embed_model=OpenAICompatEmbedding.from_config(settings.embedding_config()),
        tools=default_registry(),
        memory=InMemorySessionStore(),
        retry=RetryExecutor(RetryPolicy(max_retries=settings.retry_max_retries, delay_ms=settings.retry_delay_ms)),
        ret_cfg=settings.retrieval_config(),
    )

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from llama_index.core.bridge.pydantic import PrivateAttr
from llama_index.core.embeddings import BaseEmbedding
from openai import AsyncOpenAI, OpenAI

from .chunker import DocumentChunk
from .config import EmbeddingConfig


@dataclass(frozen=True)
class EmbeddedChunk:
    """Чанк вместе с его вектором фиксированной размерности."""
    chunk: DocumentChunk
    vector: Tuple[float, ...]


class OpenAICompatEmbedding(BaseEmbedding):
    """Адаптер LlamaIndex BaseEmbedding для OpenAI-совместимого Embeddings API.

    По умолчанию смотрит в OpenAI-совместимый endpoint Gemini. Синхронный
    клиент используется при индексации (батчами), асинхронный — для
    эмбеддинга вопроса во время чата.
    """

    _client: OpenAI = PrivateAttr()
    _aclient: AsyncOpenAI = PrivateAttr()

    def __init__(self, base_url: str, api_key: str, model_name: str, embed_batch_size: int = 32) -> None:
        super().__init__(model_name=model_name, embed_batch_size=embed_batch_size)
        self._client = OpenAI(base_url=base_url, api_key=api_key)
        self._aclient = AsyncOpenAI(base_url=base_url, api_key=api_key)

    @classmethod
    def from_config(cls, cfg: EmbeddingConfig) -> "OpenAICompatEmbedding":
        return cls(
            base_url=cfg.base_url,
            api_key=cfg.api_key,
            model_name=cfg.model_name,
            embed_batch_size=cfg.embed_batch_size,
        )

    @classmethod
    def class_name(cls) -> str:
        return "OpenAICompatEmbedding"

    def _embed(self, texts: List[str]) -> List[List[float]]:
        resp = self._client.embeddings.create(model=self.model_name, input=texts)
        return [item.embedding for item in resp.data]

    async def _aembed(self, texts: List[str]) -> List[List[float]]:
        resp = await self._aclient.embeddings.create(model=self.model_name, input=texts)
        return [item.embedding for item in resp.data]

    def _get_query_embedding(self, query: str) -> List[float]:
        return self._embed([query])[0]

    async def _aget_query_embedding(self, query: str) -> List[float]:
        return (await self._aembed([query]))[0]

    def _get_text_embedding(self, text: str) -> List[float]:
        return self._embed([text])[0]

    def _get_text_embeddings(self, texts: List[str]) -> List[List[float]]:
        return self._embed(texts)

    async def _aget_text_embeddings(self, texts: List[str]) -> List[List[float]]:
        return await self._aembed(texts)

    async def aclose(self) -> None:
        self._client.close()
        await self._aclient.close()


def embed_chunks(embed_model: BaseEmbedding, chunks: Sequence[DocumentChunk]) -> List[EmbeddedChunk]:
    """Строит эмбеддинги для всех чанков (батчами размера embed_batch_size)."""
    if not chunks:
        return []
    vectors = embed_model.get_text_embedding_batch([c.text for c in chunks])
    if len(vectors) != len(chunks):
        raise RuntimeError(f"Embedding count mismatch: {len(vectors)} vectors for {len(chunks)} chunks")
    return [EmbeddedChunk(chunk=c, vector=tuple(v)) for c, v in zip(chunks, vectors)]

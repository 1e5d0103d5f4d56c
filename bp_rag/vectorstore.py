#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Клиент Weaviate (embedded/remote) и обёртка над коллекцией чанков."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlparse

import weaviate
from weaviate.classes.init import Auth
from llama_index.core.schema import TextNode
from llama_index.core.vector_stores.types import VectorStoreQuery
from llama_index.vector_stores.weaviate import WeaviateVectorStore

from .config import VectorStoreConfig
from .embeddings import EmbeddedChunk


def make_weaviate_client(cfg: VectorStoreConfig) -> weaviate.WeaviateClient:
    """Создаёт подключённый клиент Weaviate в зависимости от конфигурации.

    - embedded: локальный встроенный сервер Weaviate (без внешних сервисов)
    - remote: подключение по строке вида http(s)://host:port, опционально с API‑ключом
    """
    if cfg.use_embedded:
        return weaviate.connect_to_embedded()
    if not cfg.weaviate_url:
        raise RuntimeError("Remote Weaviate запрошен, но URL не указан.")

    url = urlparse(cfg.weaviate_url)
    if not url.hostname:
        raise RuntimeError(f"Некорректный URL Weaviate: {cfg.weaviate_url}")
    secure = url.scheme == "https"
    auth = Auth.api_key(cfg.weaviate_api_key) if cfg.weaviate_api_key else None
    return weaviate.connect_to_custom(
        http_host=url.hostname,
        http_port=url.port or (443 if secure else 8080),
        http_secure=secure,
        grpc_host=url.hostname,
        grpc_port=cfg.grpc_port,
        grpc_secure=secure,
        auth_credentials=auth,
    )


@dataclass(frozen=True)
class StoredRecord:
    """Строка коллекции в том виде, в каком её возвращает поиск."""
    id: str
    text: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    vector: Optional[Tuple[float, ...]] = None
    score: Optional[float] = None


class ChunkVectorStore:
    """Коллекция чанков руководства в Weaviate.

    Хранит (id, вектор, text, metadata); коллекция создаётся при первом
    обращении, если её ещё нет. Повторная запись тех же чанков добавляет
    дубликаты.
    """

    def __init__(self, client: weaviate.WeaviateClient, index_name: str) -> None:
        self._client = client
        self.index_name = index_name
        self._store = WeaviateVectorStore(weaviate_client=client, index_name=index_name, text_key="text")

    def add(self, embedded: Sequence[EmbeddedChunk]) -> List[str]:
        """Записывает чанки с готовыми векторами, возвращает их id."""
        nodes = [
            TextNode(text=item.chunk.text, metadata=dict(item.chunk.metadata), embedding=list(item.vector))
            for item in embedded
        ]
        if not nodes:
            return []
        return self._store.add(nodes)

    def query(self, vector: Sequence[float], top_k: int) -> List[StoredRecord]:
        """Ищет top_k ближайших к вектору чанков (по убыванию близости)."""
        result = self._store.query(VectorStoreQuery(query_embedding=list(vector), similarity_top_k=top_k))
        similarities = result.similarities or []
        records: List[StoredRecord] = []
        for i, node in enumerate(result.nodes or []):
            records.append(
                StoredRecord(
                    id=node.node_id,
                    text=node.get_content(),
                    metadata=dict(node.metadata or {}),
                    score=similarities[i] if i < len(similarities) else None,
                )
            )
        return records

    async def asearch(self, vector: Sequence[float], top_k: int) -> List[StoredRecord]:
        # синхронный клиент Weaviate не должен блокировать event loop
        return await asyncio.to_thread(self.query, vector, top_k)

    def close(self) -> None:
        self._client.close()

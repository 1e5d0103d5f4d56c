#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import sys
from pathlib import Path
from typing import List, Optional

import structlog
from llama_index.core import Document, SimpleDirectoryReader

from .chunker import split_documents
from .config import AppSettings, EmbeddingConfig, IndexingConfig, VectorStoreConfig
from .embeddings import OpenAICompatEmbedding, embed_chunks
from .errors import IngestionError
from .logging_config import configure_logging
from .vectorstore import ChunkVectorStore, make_weaviate_client

logger = structlog.get_logger(__name__)


class RAGIndexer:
    """Индексатор руководства в Weaviate.

    1) Загружает исходный документ (PDF постранично)
    2) Режет страницы на чанки с перекрытием
    3) Строит эмбеддинги батчами
    4) Записывает чанки в коллекцию (создаёт её, если нет)

    Запуск не идемпотентен: повторная индексация в ту же коллекцию
    добавляет дубликаты.
    """
    def __init__(self, vs_cfg: VectorStoreConfig, emb_cfg: EmbeddingConfig) -> None:
        self.vs_cfg = vs_cfg
        self.emb_cfg = emb_cfg

        self._embed_model = OpenAICompatEmbedding.from_config(emb_cfg)
        self._client = make_weaviate_client(self.vs_cfg)

    def _load_documents(self, source_path: str) -> List[Document]:
        """Читает исходный документ. Ошибка здесь прерывает индексацию до любой записи."""
        p = Path(source_path)
        if not p.is_file():
            raise IngestionError(f"Source document not found: {p}")
        try:
            docs = SimpleDirectoryReader(input_files=[str(p)]).load_data()
        except Exception as exc:
            raise IngestionError(f"Failed to load {p}: {exc}") from exc
        if not any((d.text or "").strip() for d in docs):
            raise IngestionError(f"No extractable text in {p}")
        return docs

    def ingest(self, source_path: str, idx_cfg: IndexingConfig, index_name: Optional[str] = None) -> int:
        """Индексирует документ в коллекцию index_name, возвращает число записанных чанков."""
        target = index_name or self.vs_cfg.index_name
        docs = self._load_documents(source_path)
        logger.info("ingest.loaded", source=source_path, pages=len(docs))

        chunks = split_documents(docs, idx_cfg.chunk_size, idx_cfg.chunk_overlap)
        logger.info("ingest.chunked", chunks=len(chunks), chunk_size=idx_cfg.chunk_size, overlap=idx_cfg.chunk_overlap)

        embedded = embed_chunks(self._embed_model, chunks)
        store = ChunkVectorStore(self._client, target)
        ids = store.add(embedded)
        logger.info("ingest.completed", index_name=target, records=len(ids))
        return len(ids)

    def close(self) -> None:
        self._client.close()


def main() -> int:
    """Разовая индексация руководства: путь и коллекция берутся из настроек.

    Возвращает код выхода: 0 — успех, 1 — любая ошибка.
    """
    indexer: Optional[RAGIndexer] = None
    try:
        settings = AppSettings()
        configure_logging(settings.log_level, settings.log_json)
        print(f"Читаю руководство к тонометру ({settings.source_path})...")
        indexer = RAGIndexer(settings.vector_store_config(), settings.embedding_config())
        count = indexer.ingest(settings.source_path, settings.indexing_config(), settings.index_name)
        print(f"Готово: {count} фрагментов записано в коллекцию {settings.index_name}.")
        return 0
    except Exception as exc:
        logger.exception("ingest.failed")
        print(f"Ошибка индексации: {exc}")
        return 1
    finally:
        if indexer is not None:
            indexer.close()


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from dataclasses import dataclass
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"


@dataclass
class EmbeddingConfig:
    """Параметры модели эмбеддингов (OpenAI-совместимый API).

    - base_url, api_key: endpoint и ключ сервиса эмбеддингов
    - model_name: имя модели эмбеддингов
    - embed_batch_size: размер батча при индексации
    """
    api_key: str
    base_url: str = GEMINI_OPENAI_BASE_URL
    model_name: str = "text-embedding-004"
    embed_batch_size: int = 32


@dataclass
class VectorStoreConfig:
    """Параметры векторного хранилища (Weaviate).

    - index_name: имя коллекции (таблицы) с чанками руководства
    - use_embedded: использовать ли встроенный (embedded) Weaviate
    - weaviate_url: строка подключения к удалённому Weaviate
    - weaviate_api_key: API-ключ для удалённого Weaviate (опционально)
    - grpc_port: gRPC-порт удалённого Weaviate
    """
    index_name: str = "BpDocs"
    use_embedded: bool = False
    weaviate_url: Optional[str] = None
    weaviate_api_key: Optional[str] = None
    grpc_port: int = 50051


@dataclass
class LLMConfig:
    """Параметры чат-модели (OpenAI-совместимый API).

    - base_url: базовый URL сервиса LLM
    - api_key: ключ доступа
    - model_name: имя модели
    - temperature, top_p, max_tokens: параметры генерации
    """
    api_key: str
    base_url: str = GEMINI_OPENAI_BASE_URL
    model_name: str = "gemini-2.0-flash"
    temperature: float = 0.3
    top_p: float = 0.9
    max_tokens: int = 800


@dataclass
class IndexingConfig:
    """Параметры нарезки руководства на чанки.

    Небольшой chunk_size позволяет точно находить короткие справки
    (например, расшифровку кода ошибки), overlap сохраняет текст на стыках.
    """
    chunk_size: int = 500
    chunk_overlap: int = 50


@dataclass
class RetrievalConfig:
    """Параметры извлечения: сколько ближайших чанков подставлять в промпт."""
    similarity_top_k: int = 3


class AppSettings(BaseSettings):
    """Конфигурация процесса из переменных окружения (и файла .env).

    WEAVIATE_URL и GEMINI_API_KEY обязательны: без них приложение
    не стартует (ValidationError).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    weaviate_url: str = Field(..., description="URL Weaviate или 'embedded'")
    weaviate_api_key: Optional[SecretStr] = None
    weaviate_grpc_port: int = Field(default=50051, ge=1, le=65535)
    gemini_api_key: SecretStr = Field(..., description="Ключ для чат-модели и эмбеддингов")

    llm_base_url: str = GEMINI_OPENAI_BASE_URL
    llm_model: str = "gemini-2.0-flash"
    embedding_model: str = "text-embedding-004"

    index_name: str = "BpDocs"
    source_path: str = "data/bp.pdf"
    chunk_size: int = Field(default=500, gt=0)
    chunk_overlap: int = Field(default=50, ge=0)
    top_k: int = Field(default=3, gt=0)

    retry_max_retries: int = Field(default=1, ge=0)
    retry_delay_ms: int = Field(default=3000, ge=0)

    log_level: str = "INFO"
    log_json: bool = False

    def vector_store_config(self) -> VectorStoreConfig:
        embedded = self.weaviate_url.strip().lower() == "embedded"
        return VectorStoreConfig(
            index_name=self.index_name,
            use_embedded=embedded,
            weaviate_url=None if embedded else self.weaviate_url,
            weaviate_api_key=self.weaviate_api_key.get_secret_value() if self.weaviate_api_key else None,
            grpc_port=self.weaviate_grpc_port,
        )

    def embedding_config(self) -> EmbeddingConfig:
        return EmbeddingConfig(
            api_key=self.gemini_api_key.get_secret_value(),
            base_url=self.llm_base_url,
            model_name=self.embedding_model,
        )

    def llm_config(self) -> LLMConfig:
        return LLMConfig(
            api_key=self.gemini_api_key.get_secret_value(),
            base_url=self.llm_base_url,
            model_name=self.llm_model,
        )

    def indexing_config(self) -> IndexingConfig:
        return IndexingConfig(chunk_size=self.chunk_size, chunk_overlap=self.chunk_overlap)

    def retrieval_config(self) -> RetrievalConfig:
        return RetrievalConfig(similarity_top_k=self.top_k)

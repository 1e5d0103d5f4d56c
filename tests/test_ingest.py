"""
Тесты индексации руководства (RAGIndexer и точка входа ingest).

Сценарии:
- Успешная индексация (моки Weaviate и эмбеддингов, настоящий загрузчик файлов)
- Нет исходного файла -> IngestionError до любой записи
- Ошибка записи в хранилище пробрасывается наружу
- main(): код выхода 0 при успехе, 1 при ошибке и при отсутствии настроек

Запуск тестов:
  pytest -q tests/test_ingest.py

Ручная индексация (нужны WEAVIATE_URL и GEMINI_API_KEY):
  python ingest.py
"""

from pathlib import Path
from typing import Any, List

import pytest

from bp_rag import indexer as idx_mod
from bp_rag.config import EmbeddingConfig, IndexingConfig, VectorStoreConfig
from bp_rag.errors import IngestionError


class _DummyClient:
    def __init__(self) -> None:
        self.closed = False

    def close(self) -> None:
        self.closed = True


class _DummyEmbed:
    """Эмбеддер без сети: вектор из длины текста."""

    def __init__(self) -> None:
        self.batches: List[List[str]] = []

    @classmethod
    def from_config(cls, cfg: Any) -> "_DummyEmbed":
        return cls()

    def get_text_embedding_batch(self, texts: List[str], **kwargs: Any) -> List[List[float]]:
        self.batches.append(list(texts))
        return [[float(len(t)), 1.0] for t in texts]


class _DummyStore:
    instances: List["_DummyStore"] = []

    def __init__(self, client: Any, index_name: str) -> None:
        self.client = client
        self.index_name = index_name
        self.rows: List[Any] = []
        _DummyStore.instances.append(self)

    def add(self, embedded) -> List[str]:
        self.rows.extend(embedded)
        return [str(i) for i in range(len(embedded))]


class _FailingStore(_DummyStore):
    def add(self, embedded) -> List[str]:
        raise ConnectionError("weaviate unavailable")


@pytest.fixture
def patched(monkeypatch):
    _DummyStore.instances = []
    client = _DummyClient()
    monkeypatch.setattr(idx_mod, "make_weaviate_client", lambda cfg: client)
    monkeypatch.setattr(idx_mod, "OpenAICompatEmbedding", _DummyEmbed)
    monkeypatch.setattr(idx_mod, "ChunkVectorStore", _DummyStore)
    return client


def _indexer() -> idx_mod.RAGIndexer:
    return idx_mod.RAGIndexer(VectorStoreConfig(index_name="BpDocs"), EmbeddingConfig(api_key="test"))


def test_ingest_happy_path_mocked(patched, tmp_path: Path) -> None:
    source = tmp_path / "bp.txt"
    source.write_text("E1: манжета надета слишком свободно. " * 40, encoding="utf-8")

    count = _indexer().ingest(str(source), IndexingConfig(chunk_size=100, chunk_overlap=10), "TestDocs")

    store = _DummyStore.instances[-1]
    assert store.index_name == "TestDocs"
    assert count == len(store.rows) > 1
    assert all(len(row.chunk.text) <= 100 for row in store.rows)
    assert all(row.chunk.metadata["source"] == "bp.txt" for row in store.rows)
    assert [row.chunk.metadata["chunk_index"] for row in store.rows] == list(range(count))
    assert store.rows[0].vector == (100.0, 1.0)


def test_ingest_defaults_to_configured_index(patched, tmp_path: Path) -> None:
    source = tmp_path / "bp.txt"
    source.write_text("E2: движение во время измерения.", encoding="utf-8")

    assert _indexer().ingest(str(source), IndexingConfig()) == 1
    assert _DummyStore.instances[-1].index_name == "BpDocs"


def test_ingest_missing_source_aborts_before_write(patched, tmp_path: Path) -> None:
    with pytest.raises(IngestionError):
        _indexer().ingest(str(tmp_path / "missing.pdf"), IndexingConfig())
    assert _DummyStore.instances == []


def test_ingest_write_error_propagates(patched, monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr(idx_mod, "ChunkVectorStore", _FailingStore)
    source = tmp_path / "bp.txt"
    source.write_text("E3: давление в манжете выше допустимого.", encoding="utf-8")

    with pytest.raises(ConnectionError):
        _indexer().ingest(str(source), IndexingConfig())


def test_main_exit_codes(patched, monkeypatch, tmp_path: Path, capsys) -> None:
    monkeypatch.chdir(tmp_path)
    source = tmp_path / "bp.txt"
    source.write_text("E1: манжета надета слишком свободно.", encoding="utf-8")
    monkeypatch.setenv("WEAVIATE_URL", "http://localhost:8080")
    monkeypatch.setenv("GEMINI_API_KEY", "test")
    monkeypatch.setenv("SOURCE_PATH", str(source))

    assert idx_mod.main() == 0
    assert "Готово: 1 " in capsys.readouterr().out
    assert patched.closed

    monkeypatch.setenv("SOURCE_PATH", str(tmp_path / "missing.pdf"))
    assert idx_mod.main() == 1


def test_main_without_configuration_fails(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("WEAVIATE_URL", raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)

    assert idx_mod.main() == 1

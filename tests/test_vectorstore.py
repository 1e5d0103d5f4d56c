"""
Тесты векторного хранилища и эмбеддингов без внешних сервисов.

Сценарии:
- ChunkVectorStore.add: чанки превращаются в узлы с векторами и метаданными
- ChunkVectorStore.query: узлы -> StoredRecord, score совпадает с позицией
- make_weaviate_client: разбор URL (https -> 443/secure), ошибки конфигурации
- OpenAICompatEmbedding: батчи по embed_batch_size, асинхронный запрос, aclose

Запуск тестов:
  pytest -q tests/test_vectorstore.py
"""

import asyncio
from types import SimpleNamespace
from typing import Any, List

import pytest
from llama_index.core.schema import TextNode

from bp_rag import vectorstore as vs_mod
from bp_rag.chunker import DocumentChunk
from bp_rag.config import VectorStoreConfig
from bp_rag.embeddings import EmbeddedChunk, OpenAICompatEmbedding


class _DummyWeaviateStore:
    def __init__(self, weaviate_client: Any, index_name: str, text_key: str = "text") -> None:
        self.client = weaviate_client
        self.index_name = index_name
        self.added: List[TextNode] = []
        self.queries: List[Any] = []
        self.result = SimpleNamespace(nodes=[], similarities=[])

    def add(self, nodes: List[TextNode]) -> List[str]:
        self.added.extend(nodes)
        return [n.node_id for n in nodes]

    def query(self, query: Any) -> Any:
        self.queries.append(query)
        return self.result


class _DummyClient:
    def __init__(self) -> None:
        self.closed = False

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def store(monkeypatch):
    monkeypatch.setattr(vs_mod, "WeaviateVectorStore", _DummyWeaviateStore)
    return vs_mod.ChunkVectorStore(_DummyClient(), "BpDocs")


def test_add_writes_nodes_with_vectors(store) -> None:
    embedded = [
        EmbeddedChunk(DocumentChunk("E1: cuff too loose", {"page_label": "12", "chunk_index": 0}), (0.1, 0.2)),
        EmbeddedChunk(DocumentChunk("E2: movement", {"page_label": "12", "chunk_index": 1}), (0.3, 0.4)),
    ]

    ids = store.add(embedded)

    nodes = store._store.added
    assert ids == [n.node_id for n in nodes]
    assert len(set(ids)) == 2
    assert [n.get_content() for n in nodes] == ["E1: cuff too loose", "E2: movement"]
    assert nodes[1].embedding == [0.3, 0.4]
    assert nodes[0].metadata == {"page_label": "12", "chunk_index": 0}


def test_add_nothing_skips_write(store) -> None:
    assert store.add([]) == []
    assert store._store.added == []


def test_query_maps_nodes_to_records(store) -> None:
    store._store.result = SimpleNamespace(
        nodes=[
            TextNode(id_="a", text="E1: cuff too loose", metadata={"page_label": "12"}),
            TextNode(id_="b", text="E2: movement"),
        ],
        similarities=[0.91, 0.75],
    )

    records = store.query([0.1, 0.2], top_k=3)

    assert store._store.queries[0].similarity_top_k == 3
    assert store._store.queries[0].query_embedding == [0.1, 0.2]
    assert [(r.id, r.text, r.score) for r in records] == [("a", "E1: cuff too loose", 0.91), ("b", "E2: movement", 0.75)]
    assert records[0].metadata == {"page_label": "12"}


def test_query_without_similarities(store) -> None:
    store._store.result = SimpleNamespace(nodes=[TextNode(id_="a", text="x")], similarities=None)

    records = asyncio.run(store.asearch([0.0], top_k=1))

    assert records[0].score is None


def test_close_closes_client(store) -> None:
    store.close()
    assert store._client.closed


def _patch_weaviate(monkeypatch) -> List[dict]:
    calls: List[dict] = []

    def connect_to_custom(**kwargs: Any) -> str:
        calls.append(kwargs)
        return "remote"

    monkeypatch.setattr(
        vs_mod,
        "weaviate",
        SimpleNamespace(connect_to_custom=connect_to_custom, connect_to_embedded=lambda: "embedded"),
    )
    return calls


def test_https_url_is_secure_on_443(monkeypatch) -> None:
    calls = _patch_weaviate(monkeypatch)

    client = vs_mod.make_weaviate_client(VectorStoreConfig(weaviate_url="https://weaviate.example.com", grpc_port=443))

    assert client == "remote"
    assert calls[0]["http_host"] == "weaviate.example.com"
    assert calls[0]["http_port"] == 443
    assert calls[0]["http_secure"] is True
    assert calls[0]["grpc_secure"] is True
    assert calls[0]["auth_credentials"] is None


def test_http_url_keeps_explicit_port_and_key(monkeypatch) -> None:
    calls = _patch_weaviate(monkeypatch)

    vs_mod.make_weaviate_client(VectorStoreConfig(weaviate_url="http://localhost:9090", weaviate_api_key="k"))

    assert calls[0]["http_port"] == 9090
    assert calls[0]["http_secure"] is False
    assert calls[0]["grpc_port"] == 50051
    assert calls[0]["auth_credentials"] is not None


def test_embedded_client(monkeypatch) -> None:
    _patch_weaviate(monkeypatch)
    assert vs_mod.make_weaviate_client(VectorStoreConfig(use_embedded=True)) == "embedded"


@pytest.mark.parametrize("url", [None, "", "not-a-url"])
def test_missing_host_fails(monkeypatch, url) -> None:
    _patch_weaviate(monkeypatch)
    with pytest.raises(RuntimeError):
        vs_mod.make_weaviate_client(VectorStoreConfig(weaviate_url=url))


class _DummyEmbeddings:
    """Имитация client.embeddings: вектор из длины текста."""

    def __init__(self) -> None:
        self.inputs: List[List[str]] = []

    def _result(self, input: List[str]) -> Any:
        self.inputs.append(list(input))
        return SimpleNamespace(data=[SimpleNamespace(embedding=[float(len(t))]) for t in input])


class _SyncClient:
    def __init__(self, embeddings: _DummyEmbeddings) -> None:
        self.embeddings = SimpleNamespace(create=lambda model, input: embeddings._result(input))
        self.closed = False

    def close(self) -> None:
        self.closed = True


class _AsyncClient:
    def __init__(self, embeddings: _DummyEmbeddings) -> None:
        async def create(model: str, input: List[str]) -> Any:
            return embeddings._result(input)

        self.embeddings = SimpleNamespace(create=create)
        self.closed = False

    async def close(self) -> None:
        self.closed = True


def _embed_model(batch_size: int = 2):
    model = OpenAICompatEmbedding(base_url="http://localhost:8080/v1", api_key="test", model_name="m", embed_batch_size=batch_size)
    calls = _DummyEmbeddings()
    model._client = _SyncClient(calls)
    model._aclient = _AsyncClient(calls)
    return model, calls


def test_embedding_batches_by_configured_size() -> None:
    model, calls = _embed_model(batch_size=2)

    vectors = model.get_text_embedding_batch(["a", "bb", "ccc", "dddd", "eeeee"])

    assert vectors == [[1.0], [2.0], [3.0], [4.0], [5.0]]
    assert calls.inputs == [["a", "bb"], ["ccc", "dddd"], ["eeeee"]]


def test_query_embedding_is_async() -> None:
    model, calls = _embed_model()

    assert asyncio.run(model.aget_query_embedding("E1?")) == [3.0]
    assert calls.inputs == [["E1?"]]


def test_embedding_aclose_closes_both_clients() -> None:
    model, _ = _embed_model()

    asyncio.run(model.aclose())

    assert model._client.closed and model._aclient.closed

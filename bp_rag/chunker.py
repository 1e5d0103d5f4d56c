#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from llama_index.core import Document


@dataclass(frozen=True)
class DocumentChunk:
    """Фрагмент исходного документа фиксированной длины (не длиннее chunk_size)."""
    text: str
    metadata: Dict[str, Any] = field(default_factory=dict)


def split_text(
    text: str,
    size: int,
    overlap: int,
    metadata: Optional[Dict[str, Any]] = None,
) -> List[DocumentChunk]:
    """Режет текст на окна по `size` символов с перекрытием `overlap`.

    Соседние чанки делят ровно `overlap` символов, последний может быть
    короче. Порядок сохраняется, пустых чанков нет.
    В metadata каждого чанка добавляется start_char (смещение в тексте).
    """
    if size <= 0:
        raise ValueError(f"chunk size must be positive, got {size}")
    if overlap < 0 or overlap >= size:
        raise ValueError(f"chunk overlap must be in [0, {size}), got {overlap}")

    base = dict(metadata or {})
    step = size - overlap
    chunks: List[DocumentChunk] = []
    start = 0
    while start < len(text):
        end = min(start + size, len(text))
        chunks.append(DocumentChunk(text=text[start:end], metadata={**base, "start_char": start}))
        if end == len(text):
            break
        start += step
    return chunks


def split_documents(documents: Iterable[Document], size: int, overlap: int) -> List[DocumentChunk]:
    """Режет загруженные страницы на чанки и нумерует их сквозным chunk_index.

    Пустые страницы пропускаются. В метаданные попадают source и page_label.
    """
    chunks: List[DocumentChunk] = []
    for doc in documents:
        text = doc.text or ""
        if not text.strip():
            continue
        meta = doc.metadata or {}
        page_meta: Dict[str, Any] = {"source": meta.get("file_name") or meta.get("source") or "unknown"}
        if meta.get("page_label") is not None:
            page_meta["page_label"] = str(meta["page_label"])
        for piece in split_text(text, size, overlap, page_meta):
            chunks.append(DocumentChunk(text=piece.text, metadata={**piece.metadata, "chunk_index": len(chunks)}))
    return chunks

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence

import numpy as np
from langchain_text_splitters import RecursiveCharacterTextSplitter

from qa_graph.rag.embedder import Embedder
from qa_graph.rag.loaders import DocumentLike, load_documents, load_url

logger = logging.getLogger(__name__)

NO_RESULTS_MESSAGE = "No results found. Make sure documents have been ingested."
PREVIEW_CHARS = 200


@dataclass(frozen=True)
class KBChunk:
    id: str
    text: str
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class IngestReport:
    source: str
    chunk_count: int
    documents: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "chunks": self.chunk_count,
            "pages": len(self.documents),
            "documents": list(self.documents),
        }


def _l2_normalize(vectors: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(vectors, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return vectors / norms


def _preview(text: str) -> str:
    if len(text) <= PREVIEW_CHARS:
        return text
    return text[:PREVIEW_CHARS] + "..."


class KnowledgeService:
    """
    In-memory knowledge base: documents are split, embedded and appended to a
    FAISS inner-product index over L2-normalised vectors (cosine similarity).

    The index lives for the lifetime of the process. Ingest and search may be
    called from concurrent requests; index mutation is serialised by a lock.
    """

    def __init__(
        self,
        embedder: Embedder,
        *,
        chunk_size: int = 1000,
        chunk_overlap: int = 200,
        top_k: int = 1,
    ):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if chunk_overlap >= chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")
        self._embedder = embedder
        self._splitter = RecursiveCharacterTextSplitter(chunk_size=chunk_size, chunk_overlap=chunk_overlap)
        self.top_k = top_k
        self._index: Any = None
        self._chunks: List[KBChunk] = []
        self._lock = asyncio.Lock()

    @property
    def chunk_count(self) -> int:
        return len(self._chunks)

    def _split(self, documents: Sequence[DocumentLike]) -> List[KBChunk]:
        texts = [doc["text"] for doc in documents]
        metadatas = [dict(doc["metadata"]) for doc in documents]
        chunks: List[KBChunk] = []
        offset = len(self._chunks)
        for doc in self._splitter.create_documents(texts, metadatas=metadatas):
            content = doc.page_content.strip()
            if not content:
                continue
            chunks.append(
                KBChunk(
                    id=f"chunk-{offset + len(chunks):05d}",
                    text=content,
                    metadata=dict(doc.metadata or {}),
                )
            )
        return chunks

    def _add_to_index(self, vectors: np.ndarray) -> None:
        try:
            import faiss  # type: ignore
        except Exception as exc:  # pragma: no cover
            raise RuntimeError("faiss is required for the knowledge index") from exc

        if self._index is None:
            self._index = faiss.IndexFlatIP(int(vectors.shape[1]))
        elif self._index.d != vectors.shape[1]:
            raise ValueError(f"embedding dimension changed: {self._index.d} != {vectors.shape[1]}")
        self._index.add(vectors)

    async def ingest_documents(self, documents: Sequence[DocumentLike], *, source: str) -> IngestReport:
        previews = [
            {
                "page": idx + 1,
                "page_content": _preview(doc["text"]),
                "metadata": dict(doc["metadata"]),
            }
            for idx, doc in enumerate(documents)
        ]
        async with self._lock:
            chunks = self._split(documents)
            if chunks:
                vectors = await asyncio.to_thread(self._embedder.embed_texts, [c.text for c in chunks])
                if vectors.size == 0:
                    raise ValueError("no embeddings produced for the ingested documents")
                vectors = _l2_normalize(np.asarray(vectors, dtype="float32"))
                self._add_to_index(vectors)
                self._chunks.extend(chunks)

        logger.info(
            json.dumps(
                {
                    "event": "kb_ingest",
                    "source": source,
                    "documents": len(documents),
                    "chunks": len(chunks),
                    "total_chunks": self.chunk_count,
                },
                ensure_ascii=False,
            )
        )
        return IngestReport(source=source, chunk_count=len(chunks), documents=previews)

    async def ingest_text(self, text: str, *, source: str = "inline") -> IngestReport:
        return await self.ingest_documents([{"text": text, "metadata": {"source": source}}], source=source)

    async def ingest_file(self, path: str | Path, *, original_name: str | None = None) -> IngestReport:
        source = original_name or str(path)
        documents = await asyncio.to_thread(load_documents, path, source=source)
        return await self.ingest_documents(documents, source=source)

    async def ingest_url(self, url: str) -> IngestReport:
        if not url or not url.strip():
            raise ValueError("url must not be empty")
        documents = await asyncio.to_thread(load_url, url)
        return await self.ingest_documents(documents, source=url)

    async def search(self, query: str, *, top_k: int | None = None) -> Dict[str, Any]:
        if not query or not query.strip():
            raise ValueError("query must not be empty")
        top_k = int(top_k or self.top_k)

        if self._index is None or not self._chunks:
            logger.info(json.dumps({"event": "kb_search", "top_k": top_k, "results": 0}, ensure_ascii=False))
            return {"message": NO_RESULTS_MESSAGE, "results": []}

        query_vec = await asyncio.to_thread(self._embedder.embed_texts, [query])
        query_vec = _l2_normalize(np.asarray(query_vec, dtype="float32"))
        async with self._lock:
            distances, indices = self._index.search(query_vec, min(top_k, len(self._chunks)))
            chunks = list(self._chunks)

        results: List[Dict[str, Any]] = []
        for score, idx in zip(distances[0], indices[0]):
            if idx < 0 or idx >= len(chunks):
                continue
            chunk = chunks[int(idx)]
            results.append({"content": chunk.text, "metadata": chunk.metadata, "score": float(score)})

        logger.info(json.dumps({"event": "kb_search", "top_k": top_k, "results": len(results)}, ensure_ascii=False))
        if not results:
            return {"message": NO_RESULTS_MESSAGE, "results": []}
        return {"message": f"Found {len(results)} result(s)", "results": results}

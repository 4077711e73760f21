from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Iterable, Optional, Protocol

import numpy as np
from langchain_openai import OpenAIEmbeddings

from qa_graph.secrets import get_secret


class Embedder(Protocol):
    def embed_texts(self, texts: Iterable[str]) -> np.ndarray:
        ...


@dataclass
class LocalEmbedder:
    model_path: str = os.path.join(os.getenv("QA_GRAPH_MODELS_DIR", "embeddings_models"), "all-MiniLM-L6-v2")
    device: Optional[str] = None
    batch_size: int = 32
    normalize: bool = True

    def __post_init__(self) -> None:
        try:
            from sentence_transformers import SentenceTransformer  # type: ignore
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(
                "sentence-transformers is required to build local embeddings"
            ) from exc

        self._model = SentenceTransformer(self.model_path, device=self.device)

    def embed_texts(self, texts: Iterable[str]) -> np.ndarray:
        text_list = list(texts)
        if not text_list:
            return np.zeros((0, 0), dtype="float32")
        vectors = self._model.encode(
            text_list,
            batch_size=self.batch_size,
            convert_to_numpy=True,
            normalize_embeddings=self.normalize,
        )
        if not isinstance(vectors, np.ndarray):
            vectors = np.array(vectors)
        return vectors.astype("float32")


@dataclass
class OpenAIEmbedder:
    model: str = "text-embedding-3-small"
    api_key: Optional[str] = None

    def __post_init__(self) -> None:
        self._client = OpenAIEmbeddings(
            model=self.model,
            api_key=self.api_key or get_secret("OPENAI_API_KEY", required=True),
        )

    def embed_texts(self, texts: Iterable[str]) -> np.ndarray:
        text_list = list(texts)
        if not text_list:
            return np.zeros((0, 0), dtype="float32")
        return np.array(self._client.embed_documents(text_list), dtype="float32")


def build_embedder(provider: str, *, model: str | None = None) -> Embedder:
    provider = (provider or "openai").strip().lower()
    if provider == "openai":
        return OpenAIEmbedder(model=model) if model else OpenAIEmbedder()
    if provider == "local":
        return LocalEmbedder(model_path=model) if model else LocalEmbedder()
    raise ValueError(f"Unknown embedding provider: {provider}")

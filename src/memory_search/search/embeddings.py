"""
Query embedding collaborator.

The vector channel depends only on EmbeddingServiceProtocol. The
production adapter wraps a sentence-transformers model, loaded on first
use and run in a worker thread so encoding never blocks the event loop.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class EmbeddingServiceProtocol(Protocol):
    """Protocol for embedding services."""

    @property
    def model_name(self) -> str:
        """Get the model name."""
        ...

    async def embed(self, text: str) -> list[float]:
        """Embed one text."""
        ...


class SentenceTransformerEmbedder:
    """Embedding service backed by a SentenceTransformer model.

    E5-family models expect a "query: " prefix on search queries; it is
    added automatically for model names containing "e5".

    Usage:
        embedder = SentenceTransformerEmbedder(settings.embedding_model)
        vector = await embedder.embed("machine learning")
    """

    def __init__(
        self,
        model_name: str,
        dimensions: int | None = None,
        query_prefix: str | None = None,
    ) -> None:
        """Initialize without loading the model.

        Args:
            model_name: sentence-transformers model id
            dimensions: Expected vector size, checked on first load
            query_prefix: Text prepended to every query
        """
        self._model_name = model_name
        self._dimensions = dimensions
        if query_prefix is None:
            query_prefix = "query: " if "e5" in model_name.lower() else ""
        self._query_prefix = query_prefix
        self._model: Any = None
        self._lock = threading.Lock()

    @property
    def model_name(self) -> str:
        """Get the model name."""
        return self._model_name

    @property
    def is_loaded(self) -> bool:
        """True once the model has been loaded."""
        return self._model is not None

    def _load_model(self) -> Any:
        """Load the SentenceTransformer model once."""
        with self._lock:
            if self._model is None:
                from sentence_transformers import SentenceTransformer

                logger.info("Loading embedding model", extra={"model": self._model_name})
                model = SentenceTransformer(self._model_name)
                dimension = model.get_sentence_embedding_dimension()
                if self._dimensions is not None and dimension != self._dimensions:
                    raise ValueError(
                        f"Embedding model {self._model_name} produces {dimension}-dimensional "
                        f"vectors, expected {self._dimensions}"
                    )
                self._model = model
        return self._model

    def _encode(self, text: str) -> list[float]:
        model = self._load_model()
        embedding = model.encode(
            self._query_prefix + text,
            convert_to_numpy=True,
            normalize_embeddings=True,
        )
        return [float(value) for value in embedding.tolist()]

    async def embed(self, text: str) -> list[float]:
        """Embed a query in a worker thread."""
        return await asyncio.to_thread(self._encode, text)

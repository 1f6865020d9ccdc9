"""Embedding generation for evidence chunks and investor profile fields.

Any LangChain :class:`~langchain_core.embeddings.Embeddings` can back the
generator. Two are wired to configuration:

* ``hash``: :class:`HashEmbeddings`, deterministic unit vectors derived
  from a SHA-256 stream of the text. Same text, same vector; useful until
  a real embedding service is plugged in, and in tests.
* ``huggingface``: a sentence-transformer model through
  ``langchain-huggingface``.
"""

from __future__ import annotations

import hashlib
import logging
import math
import struct
from dataclasses import dataclass

from langchain_core.embeddings import Embeddings

from investor_ingest.config import EMBEDDING_DEFAULTS, settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmbeddingResult:
    embedding: list[float]
    model: str
    dimension: int


class HashEmbeddings(Embeddings):
    """Deterministic placeholder embeddings.

    Parameters
    ----------
    dimension:
        Length of every produced vector.
    """

    def __init__(self, dimension: int = 1536) -> None:
        if dimension <= 0:
            raise ValueError(f"dimension must be positive, got {dimension}")
        self.dimension = dimension

    def _vector(self, text: str) -> list[float]:
        seed = text.encode("utf-8")
        values: list[float] = []
        counter = 0
        while len(values) < self.dimension:
            digest = hashlib.sha256(seed + counter.to_bytes(4, "big")).digest()
            for (word,) in struct.iter_unpack(">I", digest):
                values.append(word / 0xFFFFFFFF - 0.5)
            counter += 1
        values = values[: self.dimension]

        norm = math.sqrt(sum(v * v for v in values))
        return [v / norm for v in values] if norm else values

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self._vector(text) for text in texts]

    def embed_query(self, text: str) -> list[float]:
        return self._vector(text)


def get_embedding_function(
    backend: str | None = None,
    *,
    model_name: str | None = None,
    dimension: int | None = None,
) -> Embeddings:
    """Return the configured LangChain embedding function.

    A *backend* other than the configured one starts from its own defaults
    in :data:`~investor_ingest.config.EMBEDDING_DEFAULTS`.
    """
    backend = backend or settings.embedding_backend
    if backend not in EMBEDDING_DEFAULTS:
        raise ValueError(f"Unsupported embedding_backend={backend!r}. Choose from: hash, huggingface.")
    if backend == settings.embedding_backend:
        default_model, default_dim = settings.embedding_model, settings.embedding_dim
    else:
        default_model, default_dim = EMBEDDING_DEFAULTS[backend]

    if backend == "hash":
        return HashEmbeddings(dimension or default_dim)
    from langchain_huggingface import HuggingFaceEmbeddings

    return HuggingFaceEmbeddings(
        model_name=model_name or default_model,
        encode_kwargs={"normalize_embeddings": True},
    )


class EmbeddingGenerator:
    """Embeds texts in bounded batches and tags results with the model id.

    Parameters
    ----------
    embeddings:
        Backing LangChain embedding function. Defaults to the configured one.
    model:
        Model identifier stored next to every vector.
    batch_size:
        Number of texts sent to the backend per call.
    """

    def __init__(
        self,
        embeddings: Embeddings | None = None,
        *,
        model: str | None = None,
        batch_size: int | None = None,
    ) -> None:
        self._embeddings = embeddings or get_embedding_function()
        self.model = model or settings.embedding_model
        self.batch_size = batch_size or settings.embedding_batch_size
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")

    def embed_text(self, text: str) -> EmbeddingResult:
        """Embed a single text."""
        return self.embed_texts([text])[0]

    def embed_texts(self, texts: list[str]) -> list[EmbeddingResult]:
        """Embed *texts*, one result per input, in input order."""
        results: list[EmbeddingResult] = []
        for start in range(0, len(texts), self.batch_size):
            batch = texts[start : start + self.batch_size]
            vectors = self._embeddings.embed_documents(batch)
            if len(vectors) != len(batch):
                raise RuntimeError(
                    f"Embedding backend returned {len(vectors)} vectors for {len(batch)} texts"
                )
            results.extend(
                EmbeddingResult(embedding=list(vec), model=self.model, dimension=len(vec))
                for vec in vectors
            )
            logger.debug("  embedded %d / %d", len(results), len(texts))
        return results

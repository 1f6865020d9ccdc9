"""Chroma implementation of the chunk-store contract."""

from __future__ import annotations

import logging
from typing import Any

import chromadb

from investor_ingest.config import settings
from investor_ingest.models import EvidenceChunk, SourceLocator
from investor_ingest.stores.base import ChunkStore

logger = logging.getLogger(__name__)

# Chroma metadata values must be flat str/int/float/bool; ``None`` is dropped.
_LOCATOR_KEYS = {"url": "url", "page": "page", "line_start": "line_start", "line_end": "line_end"}


def _to_metadata(chunk: EvidenceChunk) -> dict[str, Any]:
    meta: dict[str, Any] = {
        "investor_id": chunk.investor_id,
        "document_id": chunk.document_id,
        "section_type": chunk.section_type,
        "title": chunk.title,
        "content_hash": chunk.content_hash,
        "chunk_index": chunk.chunk_index,
        "embedding_model": chunk.embedding_model,
    }
    locator = chunk.source_locator.model_dump()
    for field, key in _LOCATOR_KEYS.items():
        meta[key] = locator.get(field)
    return {k: v for k, v in meta.items() if v is not None}


def _from_record(chunk_id: str, content: str, meta: dict[str, Any], embedding: Any) -> EvidenceChunk:
    embedding_model = meta.get("embedding_model")
    return EvidenceChunk(
        id=chunk_id,
        investor_id=meta["investor_id"],
        document_id=meta["document_id"],
        section_type=meta.get("section_type", "general"),
        title=meta.get("title"),
        content=content or "",
        content_hash=meta["content_hash"],
        chunk_index=int(meta["chunk_index"]),
        source_locator=SourceLocator(**{field: meta.get(key) for field, key in _LOCATOR_KEYS.items()}),
        # Vectors written before the embed step are zero placeholders.
        embedding=[float(x) for x in embedding] if embedding_model and embedding is not None else None,
        embedding_model=embedding_model,
    )


class ChromaChunkStore(ChunkStore):
    """Chroma-backed evidence chunk store.

    Chroma stores a vector for every record, so chunks inserted before the
    embed step carry a zero vector of ``embedding_dim`` until
    :meth:`update_embeddings` replaces it.

    Parameters
    ----------
    collection_name:
        Name of the Chroma collection.
    host / port:
        Chroma server location (ignored when *client* is given).
    embedding_dim:
        Dimension of the placeholder vector.
    client:
        Pre-built Chroma client, e.g. ``chromadb.EphemeralClient()``.
    """

    def __init__(
        self,
        collection_name: str = settings.chroma_collection,
        *,
        host: str = settings.chroma_host,
        port: int = settings.chroma_port,
        embedding_dim: int = settings.embedding_dim,
        client: Any = None,
    ) -> None:
        self.collection_name = collection_name
        self.embedding_dim = embedding_dim
        self._client = client if client is not None else chromadb.HttpClient(host=host, port=port)
        self._collection = self._client.get_or_create_collection(
            name=collection_name,
            embedding_function=None,
        )

    # -- ChunkStore overrides --------------------------------------------------

    def delete_for_investor(self, investor_id: str) -> int:
        existing = self._collection.get(where={"investor_id": investor_id}, include=[])
        ids = existing.get("ids") or []
        if ids:
            self._collection.delete(ids=ids)
        return len(ids)

    def insert_chunks(self, chunks: list[EvidenceChunk]) -> None:
        if not chunks:
            return
        placeholder = [0.0] * self.embedding_dim
        self._collection.add(
            ids=[c.id for c in chunks],
            documents=[c.content for c in chunks],
            metadatas=[_to_metadata(c) for c in chunks],
            embeddings=[c.embedding or placeholder for c in chunks],
        )
        logger.debug("Inserted %d chunks into %s", len(chunks), self.collection_name)

    def list_chunks(self, investor_id: str) -> list[EvidenceChunk]:
        results = self._collection.get(
            where={"investor_id": investor_id},
            include=["documents", "metadatas", "embeddings"],
        )
        ids = results.get("ids") or []
        docs = results.get("documents")
        metas = results.get("metadatas")
        embeddings = results.get("embeddings")

        chunks = [
            _from_record(
                chunk_id,
                docs[i] if docs is not None else "",
                metas[i] if metas is not None else {},
                embeddings[i] if embeddings is not None else None,
            )
            for i, chunk_id in enumerate(ids)
        ]
        return sorted(chunks, key=lambda c: (c.document_id, c.chunk_index))

    def update_embeddings(self, chunks: list[EvidenceChunk]) -> None:
        if not chunks:
            return
        self._collection.update(
            ids=[c.id for c in chunks],
            embeddings=[c.embedding for c in chunks],
            metadatas=[_to_metadata(c) for c in chunks],
        )

    def health_check(self) -> bool:
        try:
            self._client.heartbeat()
            return True
        except Exception:
            logger.warning("Chroma health-check failed", exc_info=True)
            return False

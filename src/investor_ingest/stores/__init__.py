"""
Stores: persistence contracts and their implementations.

Public surface
--------------
- :class:`DocumentStore`, :class:`RunStore`, :class:`ChunkStore`,
  :class:`ProfileStore`: abstract contracts.
- :class:`Stores`: the bundle handed to the workflow.
- :func:`in_memory_stores`: thread-safe in-process implementations.
- :class:`ChromaChunkStore`: Chroma-backed chunk store.
"""

from investor_ingest.stores.base import ChunkStore, DocumentStore, ProfileStore, RunStore, Stores
from investor_ingest.stores.memory import in_memory_stores

__all__ = [
    "ChromaChunkStore",
    "ChunkStore",
    "DocumentStore",
    "ProfileStore",
    "RunStore",
    "Stores",
    "in_memory_stores",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import ChromaChunkStore to avoid pulling in chromadb at import time."""
    if name == "ChromaChunkStore":
        from investor_ingest.stores.chroma_store import ChromaChunkStore

        return ChromaChunkStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

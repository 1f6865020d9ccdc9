"""Thread-safe in-memory store implementations.

Used by the CLI, the default worker wiring and the test-suite. Records
are copied on the way in and out so callers never share mutable state
with the store.
"""

from __future__ import annotations

import copy
import threading
from typing import Any, TypeVar

from pydantic import BaseModel

from investor_ingest.errors import NotFoundError
from investor_ingest.models import (
    Document,
    DocumentStatus,
    EvidenceChunk,
    IngestionRun,
    InvestorProfile,
    RunStatus,
    StepState,
    utcnow,
)
from investor_ingest.stores.base import ChunkStore, DocumentStore, ProfileStore, RunStore, Stores

M = TypeVar("M", bound=BaseModel)


def _copy(model: M) -> M:
    return model.model_copy(deep=True)


def _apply(model: M, changes: dict[str, Any]) -> M:
    unknown = set(changes) - set(type(model).model_fields)
    if unknown:
        raise ValueError(f"Unknown fields for {type(model).__name__}: {sorted(unknown)}")
    return model.model_copy(update=copy.deepcopy(changes), deep=True)


class InMemoryDocumentStore(DocumentStore):
    def __init__(self) -> None:
        self._docs: dict[str, Document] = {}
        self._lock = threading.Lock()

    def add_document(self, document: Document) -> Document:
        with self._lock:
            self._docs[document.id] = _copy(document)
        return _copy(document)

    def get_by_content_hash(self, user_id: str, content_hash: str) -> Document | None:
        with self._lock:
            for doc in self._docs.values():
                if doc.user_id == user_id and doc.content_hash == content_hash:
                    return _copy(doc)
        return None

    def list_documents(self, investor_id: str) -> list[Document]:
        with self._lock:
            docs = [_copy(d) for d in self._docs.values() if d.investor_id == investor_id]
        return sorted(docs, key=lambda d: d.created_at)

    def update_document(self, document_id: str, **changes: Any) -> Document:
        with self._lock:
            doc = self._docs.get(document_id)
            if doc is None:
                raise NotFoundError("Document", document_id)
            updated = _apply(doc, {**changes, "updated_at": utcnow()})
            self._docs[document_id] = updated
        return _copy(updated)

    def set_status_for_investor(self, investor_id: str, status: DocumentStatus) -> int:
        count = 0
        with self._lock:
            for doc_id, doc in self._docs.items():
                if doc.investor_id == investor_id:
                    self._docs[doc_id] = _apply(doc, {"status": status, "updated_at": utcnow()})
                    count += 1
        return count


class InMemoryRunStore(RunStore):
    def __init__(self) -> None:
        self._runs: dict[str, IngestionRun] = {}
        self._lock = threading.Lock()

    def create_run(self, run: IngestionRun) -> IngestionRun:
        with self._lock:
            self._runs[run.id] = _copy(run)
        return _copy(run)

    def get_run(self, run_id: str) -> IngestionRun | None:
        with self._lock:
            run = self._runs.get(run_id)
        return _copy(run) if run is not None else None

    def update_step_state(self, run_id: str, step_state: StepState) -> None:
        with self._lock:
            run = self._runs.get(run_id)
            if run is None:
                raise NotFoundError("Ingestion run", run_id)
            self._runs[run_id] = _apply(run, {"step_state": step_state})

    def finish_run(
        self,
        run_id: str,
        status: RunStatus,
        *,
        error: str | None = None,
        step_state: StepState | None = None,
    ) -> IngestionRun:
        with self._lock:
            run = self._runs.get(run_id)
            if run is None:
                raise NotFoundError("Ingestion run", run_id)
            if run.is_terminal:
                raise ValueError(f"Ingestion run {run_id} is already {run.status}")
            changes: dict[str, Any] = {"status": status, "finished_at": utcnow(), "error": error}
            if step_state is not None:
                changes["step_state"] = step_state
            finished = _apply(run, changes)
            self._runs[run_id] = finished
        return _copy(finished)

    def latest_run_for_investor(self, investor_id: str) -> IngestionRun | None:
        with self._lock:
            runs = [r for r in self._runs.values() if r.investor_id == investor_id]
        if not runs:
            return None
        return _copy(max(runs, key=lambda r: r.started_at))


class InMemoryChunkStore(ChunkStore):
    def __init__(self) -> None:
        self._chunks: dict[str, EvidenceChunk] = {}
        self._lock = threading.Lock()

    def delete_for_investor(self, investor_id: str) -> int:
        with self._lock:
            doomed = [cid for cid, c in self._chunks.items() if c.investor_id == investor_id]
            for cid in doomed:
                del self._chunks[cid]
        return len(doomed)

    def insert_chunks(self, chunks: list[EvidenceChunk]) -> None:
        with self._lock:
            keys = {(c.investor_id, c.document_id, c.content_hash) for c in self._chunks.values()}
            for chunk in chunks:
                key = (chunk.investor_id, chunk.document_id, chunk.content_hash)
                if key in keys:
                    raise ValueError(f"Duplicate chunk for document {chunk.document_id}: {chunk.content_hash}")
                keys.add(key)
                self._chunks[chunk.id] = _copy(chunk)

    def list_chunks(self, investor_id: str) -> list[EvidenceChunk]:
        with self._lock:
            chunks = [_copy(c) for c in self._chunks.values() if c.investor_id == investor_id]
        return sorted(chunks, key=lambda c: (c.document_id, c.chunk_index))

    def update_embeddings(self, chunks: list[EvidenceChunk]) -> None:
        with self._lock:
            for chunk in chunks:
                stored = self._chunks.get(chunk.id)
                if stored is None:
                    raise NotFoundError("Evidence chunk", chunk.id)
                self._chunks[chunk.id] = _apply(
                    stored,
                    {"embedding": chunk.embedding, "embedding_model": chunk.embedding_model},
                )


class InMemoryProfileStore(ProfileStore):
    def __init__(self) -> None:
        self._profiles: dict[str, InvestorProfile] = {}
        self._lock = threading.Lock()

    def create_profile(self, profile: InvestorProfile) -> InvestorProfile:
        with self._lock:
            self._profiles[profile.id] = _copy(profile)
        return _copy(profile)

    def get_profile(self, investor_id: str) -> InvestorProfile | None:
        with self._lock:
            profile = self._profiles.get(investor_id)
        return _copy(profile) if profile is not None else None

    def update_profile(self, investor_id: str, **changes: Any) -> InvestorProfile:
        with self._lock:
            profile = self._profiles.get(investor_id)
            if profile is None:
                raise NotFoundError("Investor", investor_id)
            updated = _apply(profile, {**changes, "updated_at": utcnow()})
            self._profiles[investor_id] = updated
        return _copy(updated)


def in_memory_stores() -> Stores:
    """A fresh, empty set of in-memory stores."""
    return Stores(
        documents=InMemoryDocumentStore(),
        runs=InMemoryRunStore(),
        chunks=InMemoryChunkStore(),
        profiles=InMemoryProfileStore(),
    )

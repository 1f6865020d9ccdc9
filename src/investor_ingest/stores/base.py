"""Abstract store contracts consumed by the ingestion workflow.

The workflow never talks to a database directly: it receives one
implementation of each contract at construction time. Adding a backend
(Postgres, Chroma, …) only requires subclassing these and implementing
the abstract methods.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from investor_ingest.models import (
    Document,
    DocumentStatus,
    EvidenceChunk,
    IngestionRun,
    InvestorProfile,
    RunStatus,
    StepState,
)


class DocumentStore(ABC):
    """Source documents attached to investors."""

    @abstractmethod
    def add_document(self, document: Document) -> Document:
        """Persist a new document and return it."""
        ...

    @abstractmethod
    def get_by_content_hash(self, user_id: str, content_hash: str) -> Document | None:
        """Return the user's document with *content_hash*, if any."""
        ...

    @abstractmethod
    def list_documents(self, investor_id: str) -> list[Document]:
        """All documents of an investor, oldest first."""
        ...

    @abstractmethod
    def update_document(self, document_id: str, **changes: Any) -> Document:
        """Apply *changes* (``status``, ``extracted_text``, ``metadata``, ``error``)."""
        ...

    @abstractmethod
    def set_status_for_investor(self, investor_id: str, status: DocumentStatus) -> int:
        """Set *status* on every document of the investor; return the count."""
        ...


class RunStore(ABC):
    """Ingestion run records and their step-state checkpoints."""

    @abstractmethod
    def create_run(self, run: IngestionRun) -> IngestionRun:
        ...

    @abstractmethod
    def get_run(self, run_id: str) -> IngestionRun | None:
        ...

    @abstractmethod
    def update_step_state(self, run_id: str, step_state: StepState) -> None:
        """Replace the run's persisted step state."""
        ...

    @abstractmethod
    def finish_run(
        self,
        run_id: str,
        status: RunStatus,
        *,
        error: str | None = None,
        step_state: StepState | None = None,
    ) -> IngestionRun:
        """Write the terminal fields of a run.

        Implementations **must** refuse to finish a run twice: terminal
        fields are immutable once written.
        """
        ...

    @abstractmethod
    def latest_run_for_investor(self, investor_id: str) -> IngestionRun | None:
        ...


class ChunkStore(ABC):
    """Evidence chunks, rebuilt wholesale on every run."""

    @abstractmethod
    def delete_for_investor(self, investor_id: str) -> int:
        """Delete every chunk of the investor; return how many were removed."""
        ...

    @abstractmethod
    def insert_chunks(self, chunks: list[EvidenceChunk]) -> None:
        """Bulk insert. ``(investor_id, document_id, content_hash)`` is unique."""
        ...

    @abstractmethod
    def list_chunks(self, investor_id: str) -> list[EvidenceChunk]:
        """Chunks of the investor ordered by document, then ``chunk_index``."""
        ...

    @abstractmethod
    def update_embeddings(self, chunks: list[EvidenceChunk]) -> None:
        """Persist ``embedding`` / ``embedding_model`` of the given chunks."""
        ...


class ProfileStore(ABC):
    """Investor profiles."""

    @abstractmethod
    def create_profile(self, profile: InvestorProfile) -> InvestorProfile:
        ...

    @abstractmethod
    def get_profile(self, investor_id: str) -> InvestorProfile | None:
        ...

    @abstractmethod
    def update_profile(self, investor_id: str, **changes: Any) -> InvestorProfile:
        ...


@dataclass
class Stores:
    """The four collaborators the workflow is constructed with."""

    documents: DocumentStore
    runs: RunStore
    chunks: ChunkStore
    profiles: ProfileStore

"""Domain models for documents, evidence chunks, runs and investor profiles.

Every model serialises with camelCase aliases (``model_dump(by_alias=True)``)
so the persisted ``stepState`` and the HTTP payloads share one wire shape,
while Python code keeps using snake_case attribute names.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DocumentType = Literal["url", "pdf", "pasted"]
DocumentStatus = Literal["queued", "processing", "ready", "failed"]
SectionType = Literal["thesis", "criteria", "portfolio", "team", "general"]
RunStatus = Literal["running", "succeeded", "failed", "canceled"]
InvestorStatus = Literal["draft", "processing", "needs_review", "ready", "failed"]

TERMINAL_RUN_STATUSES: frozenset[str] = frozenset({"succeeded", "failed", "canceled"})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid4().hex


class WireModel(BaseModel):
    """Base model with camelCase aliases on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """Return the JSON-compatible camelCase representation."""
        return self.model_dump(mode="json", by_alias=True)


# ── Documents ─────────────────────────────────────────────────────────


class Document(WireModel):
    """A raw source attached to an investor.

    ``url`` is the source reference of ``url`` documents, ``storage_key``
    the one of ``pdf`` documents.
    """

    id: str = Field(default_factory=new_id)
    investor_id: str
    user_id: str
    type: DocumentType
    url: str | None = None
    storage_key: str | None = None
    content_hash: str
    status: DocumentStatus = "queued"
    extracted_text: str | None = None
    metadata: dict[str, Any] | None = None
    error: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def source_ref(self) -> str | None:
        return self.url if self.type == "url" else self.storage_key


# ── Evidence chunks ───────────────────────────────────────────────────


class SourceLocator(WireModel):
    """Pointer back to where a chunk originated."""

    url: str | None = None
    page: int | None = None
    line_start: int | None = None
    line_end: int | None = None


class EvidenceChunk(WireModel):
    """A typed, hashed segment of a document's extracted text.

    Uniqueness is ``(investor_id, document_id, content_hash)``;
    ``chunk_index`` is 0-based and strictly increasing within a document.
    """

    id: str = Field(default_factory=new_id)
    investor_id: str
    document_id: str
    section_type: SectionType = "general"
    title: str | None = None
    content: str
    content_hash: str
    chunk_index: int = Field(ge=0)
    source_locator: SourceLocator = Field(default_factory=SourceLocator)
    embedding: list[float] | None = None
    embedding_model: str | None = None


# ── Ingestion runs ────────────────────────────────────────────────────


class DocumentCounts(WireModel):
    total: int = 0
    processed: int = 0
    failed: int = 0


class StepState(WireModel):
    """Persisted checkpoint of a run's progress.

    Wire shape::

        {"currentStep": str, "completedSteps": [str],
         "documentCounts": {"total": int, "processed": int, "failed": int},
         "lastUpdated": "<ISO-8601>"}
    """

    current_step: str = "load"
    completed_steps: list[str] = Field(default_factory=list)
    document_counts: DocumentCounts = Field(default_factory=DocumentCounts)
    last_updated: datetime = Field(default_factory=utcnow)


class IngestionRun(WireModel):
    """One execution attempt of the pipeline for one investor."""

    id: str = Field(default_factory=new_id)
    investor_id: str
    user_id: str
    status: RunStatus = "running"
    started_at: datetime = Field(default_factory=utcnow)
    finished_at: datetime | None = None
    step_state: StepState = Field(default_factory=StepState)
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_RUN_STATUSES


# ── Investor profile ──────────────────────────────────────────────────


class ExtractedProfile(WireModel):
    """Content fields derived heuristically from an investor's corpus."""

    thesis_summary: str | None = None
    check_size_min: int | None = None
    check_size_max: int | None = None
    stages: list[str] = Field(default_factory=list)
    geographies: list[str] = Field(default_factory=list)
    focus_sectors: list[str] = Field(default_factory=list)
    excluded_sectors: list[str] = Field(default_factory=list)


class InvestorProfile(ExtractedProfile):
    """The investor entity, restricted to what ingestion reads and writes."""

    id: str = Field(default_factory=new_id)
    user_id: str
    name: str | None = None
    firm: str | None = None
    website: str | None = None
    coverage_score: int = Field(default=0, ge=0, le=100)
    missing_fields: list[str] = Field(default_factory=list)
    status: InvestorStatus = "draft"
    review_notes: str | None = None
    thesis_embedding: list[float] | None = None
    sectors_embedding: list[float] | None = None
    embedding_model: str | None = None
    embedding_dim: int | None = None
    updated_at: datetime = Field(default_factory=utcnow)


class ProfileUpdate(WireModel):
    """Reviewer edits to an investor profile; unset fields are left alone."""

    name: str | None = None
    firm: str | None = None
    website: str | None = None
    thesis_summary: str | None = None
    check_size_min: int | None = Field(default=None, gt=0)
    check_size_max: int | None = Field(default=None, gt=0)
    stages: list[str] | None = None
    geographies: list[str] | None = None
    focus_sectors: list[str] | None = None
    excluded_sectors: list[str] | None = None
    review_notes: str | None = None

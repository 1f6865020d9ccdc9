"""Pipeline steps: each method is one stage of the ingestion workflow.

Step contract
-------------
* Accepts the :class:`WorkflowContext` of the run.
* Reads everything it needs from the stores and writes its results back,
  so it can be re-executed from persisted data alone.
* Raises on fatal problems; per-document extraction failures are recorded
  on the document instead.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any

from investor_ingest.config import settings
from investor_ingest.errors import ExtractionError, NotFoundError
from investor_ingest.ingestion.chunker import chunk_text
from investor_ingest.ingestion.embedder import EmbeddingGenerator
from investor_ingest.ingestion.fetch import extract_url_text
from investor_ingest.ingestion.loader import extract_pdf_text
from investor_ingest.models import (
    Document,
    DocumentCounts,
    DocumentType,
    EvidenceChunk,
    IngestionRun,
    StepState,
    utcnow,
)
from investor_ingest.profile.coverage import compute_coverage, coverage_status
from investor_ingest.profile.extractor import build_corpus, extract_investor_profile
from investor_ingest.stores.base import Stores
from investor_ingest.workflow.state import STEP_ORDER, ExtractionOutcome, WorkflowContext

logger = logging.getLogger(__name__)

# Both extractors return an object with ``text`` and ``meta`` attributes.
Extractor = Callable[[str], Any]


class IngestionSteps:
    """The nine pipeline steps, bound to one set of stores.

    Parameters
    ----------
    stores:
        Document, run, chunk and profile stores.
    embedder:
        Embedding generator for chunks and investor vectors.
    url_extractor / pdf_extractor:
        ``source_ref -> extraction`` callables; default to the real
        network and PDF extractors.
    concurrency:
        Maximum number of documents extracted in parallel.
    """

    def __init__(
        self,
        stores: Stores,
        *,
        embedder: EmbeddingGenerator | None = None,
        url_extractor: Extractor | None = None,
        pdf_extractor: Extractor | None = None,
        concurrency: int | None = None,
    ) -> None:
        self.stores = stores
        self.embedder = embedder or EmbeddingGenerator()
        self.url_extractor = url_extractor or extract_url_text
        self.pdf_extractor = pdf_extractor or extract_pdf_text
        self.concurrency = concurrency or settings.extraction_concurrency

    # -- checkpoints -----------------------------------------------------------

    def _get_run(self, ctx: WorkflowContext) -> IngestionRun:
        run = self.stores.runs.get_run(ctx.run_id)
        if run is None:
            raise NotFoundError("Ingestion run", ctx.run_id)
        return run

    def save_progress(self, ctx: WorkflowContext, *, current_step: str, completed_steps: list[str]) -> None:
        """Persist ``currentStep`` / ``completedSteps``, keeping the counts."""
        state = self._get_run(ctx).step_state
        self.stores.runs.update_step_state(
            ctx.run_id,
            state.model_copy(
                update={
                    "current_step": current_step,
                    "completed_steps": list(completed_steps),
                    "last_updated": utcnow(),
                }
            ),
        )

    def _save_counts(self, ctx: WorkflowContext, counts: DocumentCounts) -> None:
        state = self._get_run(ctx).step_state
        self.stores.runs.update_step_state(
            ctx.run_id,
            state.model_copy(update={"document_counts": counts.model_copy(), "last_updated": utcnow()}),
        )

    # -- 1. LOAD -----------------------------------------------------------------

    def load(self, ctx: WorkflowContext) -> None:
        if self.stores.profiles.get_profile(ctx.investor_id) is None:
            raise NotFoundError("Investor", ctx.investor_id)
        self._get_run(ctx)

        documents = self.stores.documents.list_documents(ctx.investor_id)
        self._save_counts(ctx, DocumentCounts(total=len(documents)))
        logger.info("Loaded %d documents for investor %s", len(documents), ctx.investor_id)

    # -- 2. MARK PROCESSING ------------------------------------------------------

    def mark_processing(self, ctx: WorkflowContext) -> None:
        self.stores.documents.set_status_for_investor(ctx.investor_id, "processing")

    # -- 3/4. EXTRACT ------------------------------------------------------------

    def extract_urls(self, ctx: WorkflowContext) -> None:
        self._extract_documents(ctx, "url", self.url_extractor)

    def extract_pdfs(self, ctx: WorkflowContext) -> None:
        self._extract_documents(ctx, "pdf", self.pdf_extractor)

    def _extract_documents(self, ctx: WorkflowContext, doc_type: DocumentType, extractor: Extractor) -> None:
        documents = [
            d for d in self.stores.documents.list_documents(ctx.investor_id) if d.type == doc_type
        ]
        if not documents:
            return

        counts = self._get_run(ctx).step_state.document_counts.model_copy()
        with ThreadPoolExecutor(max_workers=self.concurrency) as pool:
            futures = [pool.submit(_run_extractor, doc, extractor) for doc in documents]
            for future in as_completed(futures):
                outcome = future.result()
                self._record_outcome(outcome, documents)
                if outcome.succeeded:
                    counts.processed += 1
                else:
                    counts.failed += 1
                self._save_counts(ctx, counts)

        logger.info(
            "Extracted %s documents: %d processed, %d failed so far",
            doc_type,
            counts.processed,
            counts.failed,
        )

    def _record_outcome(self, outcome: ExtractionOutcome, documents: list[Document]) -> None:
        document = next(d for d in documents if d.id == outcome.document_id)
        if outcome.succeeded:
            metadata = {
                **outcome.meta,
                "extractedAt": utcnow().isoformat(),
                "source": document.type,
            }
            self.stores.documents.update_document(
                document.id, extracted_text=outcome.text, metadata=metadata, error=None
            )
            logger.info("  ✓ %s (%d chars)", document.source_ref, len(outcome.text))
        else:
            self.stores.documents.update_document(document.id, error=outcome.reason)
            logger.warning("  ✗ %s: %s", document.source_ref or document.id, outcome.reason)

    # -- 5. MARK READY -----------------------------------------------------------

    def mark_ready(self, ctx: WorkflowContext) -> None:
        for doc in self.stores.documents.list_documents(ctx.investor_id):
            if doc.error:
                self.stores.documents.update_document(doc.id, status="failed")
            elif doc.extracted_text:
                self.stores.documents.update_document(doc.id, status="ready")

    # -- 6. CHUNK ----------------------------------------------------------------

    def chunk(self, ctx: WorkflowContext) -> None:
        removed = self.stores.chunks.delete_for_investor(ctx.investor_id)
        if removed:
            logger.info("Removed %d stale chunks", removed)

        chunks: list[EvidenceChunk] = []
        for doc in self._ready_documents(ctx):
            page_offsets = (doc.metadata or {}).get("pageOffsets") if doc.type == "pdf" else None
            for piece in chunk_text(
                doc.extracted_text or "",
                url=doc.url if doc.type == "url" else None,
                page_offsets=page_offsets,
            ):
                chunks.append(
                    EvidenceChunk(
                        investor_id=ctx.investor_id,
                        document_id=doc.id,
                        section_type=piece.section_type,
                        title=piece.title,
                        content=piece.content,
                        content_hash=piece.content_hash,
                        chunk_index=piece.chunk_index,
                        source_locator=piece.source_locator,
                    )
                )

        self.stores.chunks.insert_chunks(chunks)
        logger.info("Created %d chunks", len(chunks))

    def _ready_documents(self, ctx: WorkflowContext) -> list[Document]:
        return [
            d
            for d in self.stores.documents.list_documents(ctx.investor_id)
            if d.status == "ready" and d.extracted_text
        ]

    # -- 7. EXTRACT PROFILE ------------------------------------------------------

    def extract_profile(self, ctx: WorkflowContext) -> None:
        corpus = build_corpus([d.extracted_text or "" for d in self._ready_documents(ctx)])
        extracted = extract_investor_profile(corpus)
        self.stores.profiles.update_profile(ctx.investor_id, **extracted.model_dump())
        logger.info(
            "Extracted profile: check size %s-%s, %d stages, %d sectors",
            extracted.check_size_min,
            extracted.check_size_max,
            len(extracted.stages),
            len(extracted.focus_sectors),
        )

    # -- 8. EMBED ----------------------------------------------------------------

    def embed(self, ctx: WorkflowContext) -> None:
        chunks = self.stores.chunks.list_chunks(ctx.investor_id)
        if chunks:
            results = self.embedder.embed_texts([c.content for c in chunks])
            embedded = [
                c.model_copy(update={"embedding": r.embedding, "embedding_model": r.model})
                for c, r in zip(chunks, results)
            ]
            self.stores.chunks.update_embeddings(embedded)
        logger.info("Embedded %d chunks", len(chunks))

        profile = self.stores.profiles.get_profile(ctx.investor_id)
        if profile is None:
            raise NotFoundError("Investor", ctx.investor_id)

        thesis = self.embedder.embed_text(profile.thesis_summary) if profile.thesis_summary else None
        sectors_text = ", ".join(profile.focus_sectors + profile.stages + profile.geographies)
        sectors = self.embedder.embed_text(sectors_text) if sectors_text else None

        reference = thesis or sectors
        self.stores.profiles.update_profile(
            ctx.investor_id,
            thesis_embedding=thesis.embedding if thesis else None,
            sectors_embedding=sectors.embedding if sectors else None,
            embedding_model=reference.model if reference else None,
            embedding_dim=reference.dimension if reference else None,
        )

    # -- 9. FINALIZE -------------------------------------------------------------

    def finalize(self, ctx: WorkflowContext) -> None:
        profile = self.stores.profiles.get_profile(ctx.investor_id)
        if profile is None:
            raise NotFoundError("Investor", ctx.investor_id)

        coverage = compute_coverage(profile)
        status = coverage_status(coverage.score)
        self.stores.profiles.update_profile(
            ctx.investor_id,
            coverage_score=coverage.score,
            missing_fields=coverage.missing_fields,
            status=status,
        )

        counts = self._get_run(ctx).step_state.document_counts
        self.stores.runs.finish_run(
            ctx.run_id,
            "succeeded",
            step_state=StepState(
                current_step=STEP_ORDER[-1],
                completed_steps=list(STEP_ORDER),
                document_counts=counts,
            ),
        )
        logger.info("Investor %s finalized: coverage %d%% (%s)", ctx.investor_id, coverage.score, status)


def _run_extractor(document: Document, extractor: Extractor) -> ExtractionOutcome:
    """Extract one document; failures become an ``error`` outcome."""
    ref = document.source_ref
    if not ref:
        field = "url" if document.type == "url" else "storage key"
        return ExtractionOutcome.error(document.id, f"Document has no {field}")
    try:
        result = extractor(ref)
    except ExtractionError as exc:
        return ExtractionOutcome.error(document.id, str(exc))
    except Exception as exc:
        logger.exception("Unexpected error extracting %s", ref)
        return ExtractionOutcome.error(document.id, f"{type(exc).__name__}: {exc}")
    return ExtractionOutcome.ok(document.id, result.text, dict(result.meta))

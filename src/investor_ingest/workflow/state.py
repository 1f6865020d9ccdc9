"""Workflow state definition, shared across all pipeline steps.

The LangGraph state only carries identifiers and the list of completed
steps. Everything else (documents, chunks, counts) lives in the stores,
so a step can always be re-executed from persisted data alone.
"""

from __future__ import annotations

import operator
from dataclasses import dataclass, field
from typing import Annotated, Any, Literal, TypedDict

STEP_ORDER: tuple[str, ...] = (
    "load",
    "mark-processing",
    "extract-urls",
    "extract-pdfs",
    "mark-ready",
    "chunk",
    "extract-profile",
    "embed",
    "finalize",
)

FAILED_STEP = "failed"


@dataclass(frozen=True)
class WorkflowContext:
    """Identifies one run of the pipeline for one investor."""

    run_id: str
    investor_id: str
    user_id: str


@dataclass(frozen=True)
class ExtractionOutcome:
    """Tagged result of extracting one document.

    Extractors never raise out of the extraction steps; the thread pool
    returns one of these per document and the orchestrating thread folds
    them into the run's counters.

    Attributes
    ----------
    document_id:
        The document the outcome belongs to.
    kind:
        ``"ok"`` or ``"error"``.
    text:
        Extracted text (``ok`` only).
    meta:
        Extractor metadata (``ok`` only).
    reason:
        Human-readable failure reason (``error`` only).
    """

    document_id: str
    kind: Literal["ok", "error"]
    text: str = ""
    meta: dict[str, Any] = field(default_factory=dict)
    reason: str = ""

    @classmethod
    def ok(cls, document_id: str, text: str, meta: dict[str, Any]) -> ExtractionOutcome:
        return cls(document_id=document_id, kind="ok", text=text, meta=meta)

    @classmethod
    def error(cls, document_id: str, reason: str) -> ExtractionOutcome:
        return cls(document_id=document_id, kind="error", reason=reason)

    @property
    def succeeded(self) -> bool:
        return self.kind == "ok"


class IngestionState(TypedDict):
    """Typed state that flows through the ingestion graph.

    Attributes
    ----------
    run_id / investor_id / user_id:
        Copied from the :class:`WorkflowContext`.
    completed_steps:
        Names of the steps that finished, in execution order. Each node
        returns ``[its_name]`` and the ``operator.add`` reducer appends it.
    """

    run_id: str
    investor_id: str
    user_id: str
    completed_steps: Annotated[list[str], operator.add]


def create_initial_state(ctx: WorkflowContext) -> dict[str, Any]:
    """Build the initial state dict for ``graph.invoke()``."""
    return {
        "run_id": ctx.run_id,
        "investor_id": ctx.investor_id,
        "user_id": ctx.user_id,
        "completed_steps": [],
    }

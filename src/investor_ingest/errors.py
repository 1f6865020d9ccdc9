"""Typed errors raised by the ingestion pipeline.

- ``NotFoundError``: a referenced investor / run is missing; fatal to a run.
- ``ExtractionError`` / ``ExtractionTimeout``: one document could not be
  fetched or parsed; recorded on the document, never fatal to a run.
- ``WorkflowError``: anything else raised inside a workflow step; fatal.
"""

from __future__ import annotations


class IngestionError(Exception):
    """Base class for every error raised by :mod:`investor_ingest`."""


class NotFoundError(IngestionError):
    """An investor, run or document referenced by id does not exist."""

    def __init__(self, kind: str, identifier: str) -> None:
        super().__init__(f"{kind} not found: {identifier}")
        self.kind = kind
        self.identifier = identifier


class ExtractionError(IngestionError):
    """Per-document fetch / parse failure."""

    def __init__(self, message: str, *, source: str | None = None) -> None:
        super().__init__(message)
        self.source = source


class ExtractionTimeout(ExtractionError):
    """The network fetch for a document exceeded its deadline."""


class WorkflowError(IngestionError):
    """A workflow step failed; the run is aborted."""

    def __init__(self, message: str, *, step: str) -> None:
        super().__init__(message)
        self.step = step


class DuplicateDocumentError(IngestionError):
    """A document with the same content hash already exists for the user."""


class RunInProgressError(IngestionError):
    """An ingestion run is already running for the investor."""

    def __init__(self, investor_id: str, run_id: str) -> None:
        super().__init__(f"Investor {investor_id} already has a running ingestion run ({run_id})")
        self.investor_id = investor_id
        self.run_id = run_id

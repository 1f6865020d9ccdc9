"""PDF loader: resolve a storage key and parse the PDF with LangChain."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from langchain_community.document_loaders import PyPDFLoader

from investor_ingest.config import settings
from investor_ingest.errors import ExtractionError

logger = logging.getLogger(__name__)

PAGE_SEPARATOR = "\n\n"


@dataclass
class PdfExtraction:
    """Plain text of every page of one PDF plus page metadata."""

    text: str
    meta: dict[str, Any] = field(default_factory=dict)


def resolve_storage_key(storage_key: str, storage_dir: str | Path | None = None) -> Path:
    """Map *storage_key* to a file below *storage_dir*.

    Keys that would escape the storage directory are rejected.
    """
    root = Path(storage_dir if storage_dir is not None else settings.pdf_storage_dir).resolve()
    path = (root / storage_key).resolve()
    if not path.is_relative_to(root):
        raise ExtractionError(f"Storage key escapes storage directory: {storage_key}", source=storage_key)
    return path


def extract_pdf_text(storage_key: str, *, storage_dir: str | Path | None = None) -> PdfExtraction:
    """Extract the text of the PDF stored under *storage_key*.

    Pages are joined with a blank line. ``meta["pageOffsets"]`` holds the
    character offset at which each page starts in ``text`` so chunks can be
    traced back to a page.

    Raises
    ------
    ExtractionError
        The file is missing, cannot be parsed, or has no extractable text.
    """
    path = resolve_storage_key(storage_key, storage_dir)
    if not path.is_file():
        raise ExtractionError(f"PDF not found for storage key: {storage_key}", source=storage_key)

    try:
        pages = PyPDFLoader(str(path)).load()
    except Exception as exc:
        raise ExtractionError(f"Could not parse PDF {storage_key}: {exc}", source=storage_key) from exc

    parts: list[str] = []
    offsets: list[int] = []
    cursor = 0
    for page in pages:
        content = page.page_content.strip()
        if parts:
            cursor += len(PAGE_SEPARATOR)
        offsets.append(cursor)
        parts.append(content)
        cursor += len(content)

    text = PAGE_SEPARATOR.join(parts)
    if not text.strip():
        raise ExtractionError(f"No extractable text in PDF: {storage_key}", source=storage_key)

    logger.debug("Parsed %s: %d pages, %d chars", storage_key, len(pages), len(text))
    return PdfExtraction(
        text=text,
        meta={
            "pageCount": len(pages),
            "storageKey": storage_key,
            "pageOffsets": offsets,
        },
    )

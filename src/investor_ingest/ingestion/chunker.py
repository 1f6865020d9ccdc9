"""Text chunking: heading-aware sections split into overlapping windows.

The chunker is deterministic: the same text always yields the same
ordered chunks (content, titles, hashes and locators).
"""

from __future__ import annotations

import hashlib
import re
from bisect import bisect_right
from collections.abc import Iterator, Sequence
from dataclasses import dataclass

from investor_ingest.config import settings
from investor_ingest.models import SectionType, SourceLocator

HEADING_PATTERN = re.compile(r"^#{1,3}[ \t]+\S.*$", re.MULTILINE)
NUMERIC_LINE = re.compile(r"^[\d\s]+$")

# Evaluated top to bottom; the first list with a substring hit wins.
SECTION_KEYWORDS: tuple[tuple[SectionType, tuple[str, ...]], ...] = (
    (
        "thesis",
        (
            "investment thesis",
            "thesis",
            "our approach",
            "investment philosophy",
            "how we invest",
            "what we look for",
            "investment strategy",
        ),
    ),
    (
        "criteria",
        (
            "investment criteria",
            "criteria",
            "check size",
            "stage",
            "geography",
            "sector",
            "focus",
            "requirements",
            "what we invest in",
            "sweet spot",
        ),
    ),
    (
        "portfolio",
        (
            "portfolio",
            "investments",
            "companies",
            "our companies",
            "selected investments",
            "portfolio companies",
        ),
    ),
    (
        "team",
        (
            "team",
            "partners",
            "about us",
            "our team",
            "people",
            "who we are",
            "principals",
        ),
    ),
)


@dataclass(frozen=True)
class Chunk:
    """One evidence chunk of a document, before it is bound to an investor."""

    chunk_index: int
    title: str | None
    content: str
    section_type: SectionType
    content_hash: str
    source_locator: SourceLocator


@dataclass(frozen=True)
class _Section:
    title: str | None
    body: str
    offset: int  # position of ``body`` in the original text


def hash_content(content: str) -> str:
    """Short content hash used for chunk uniqueness."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:16]


def detect_section_type(text: str) -> SectionType:
    """Classify *text* with the ordered keyword table; ``general`` if nothing hits."""
    lowered = text.lower()
    for section_type, keywords in SECTION_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return section_type
    return "general"


def _looks_like_title(line: str) -> bool:
    return (
        bool(line)
        and len(line) < 100
        and not line.endswith((".", "!", "?"))
        and not NUMERIC_LINE.match(line)
    )


def _make_section(segment: str, start: int) -> _Section | None:
    body = segment.strip()
    if not body:
        return None
    offset = start + len(segment) - len(segment.lstrip())

    first_line, newline, rest = body.partition("\n")
    label = first_line.strip()
    remainder = rest.strip()
    if newline and remainder and _looks_like_title(label):
        skipped = len(first_line) + 1 + len(rest) - len(rest.lstrip())
        return _Section(
            title=label.lstrip("#").strip() or label,
            body=remainder,
            offset=offset + skipped,
        )
    return _Section(title=None, body=body, offset=offset)


def split_sections(text: str) -> list[_Section]:
    """Split *text* at markdown headings (``#`` to ``###``).

    Text before the first heading forms its own section; without any
    heading the whole text is a single section.
    """
    boundaries = sorted({0, *(m.start() for m in HEADING_PATTERN.finditer(text))})
    boundaries.append(len(text))

    sections: list[_Section] = []
    for start, end in zip(boundaries, boundaries[1:]):
        section = _make_section(text[start:end], start)
        if section is not None:
            sections.append(section)
    return sections


def _windows(body: str, max_chunk_size: int, overlap_size: int) -> Iterator[tuple[int, str]]:
    """Yield ``(offset, window)`` pairs covering *body*.

    A window that does not reach the end of the body is cut at the last
    ``". "`` or newline found past its midpoint.
    """
    if len(body) <= max_chunk_size:
        yield 0, body
        return

    start = 0
    while start < len(body):
        end = min(start + max_chunk_size, len(body))
        window = body[start:end]
        if end < len(body):
            break_point = max(window.rfind(". "), window.rfind("\n"))
            if break_point > max_chunk_size * 0.5:
                window = window[: break_point + 1]
        yield start, window

        if start + len(window) >= len(body):
            return
        start = max(start + len(window) - overlap_size, start + 1)


def _line_number(text: str, offset: int) -> int:
    return text.count("\n", 0, offset) + 1


def chunk_text(
    text: str,
    *,
    url: str | None = None,
    page_offsets: Sequence[int] | None = None,
    max_chunk_size: int | None = None,
    overlap_size: int | None = None,
) -> list[Chunk]:
    """Split extracted document text into ordered evidence chunks.

    Parameters
    ----------
    text:
        Extracted plain text of one document.
    url:
        Originating URL, copied into every chunk's locator.
    page_offsets:
        Character offsets at which each page starts (PDF documents); when
        given, locators carry the 1-based page of the chunk start.
    max_chunk_size:
        Maximum number of characters per chunk.
    overlap_size:
        Number of characters shared by consecutive windows of a section.

    Returns
    -------
    list[Chunk]
        Chunks with ``chunk_index`` 0..n-1. Repeated content within the
        document is emitted once.
    """
    max_chunk_size = settings.max_chunk_size if max_chunk_size is None else max_chunk_size
    overlap_size = settings.chunk_overlap if overlap_size is None else overlap_size
    if overlap_size < 0 or overlap_size >= max_chunk_size:
        raise ValueError(
            f"overlap_size ({overlap_size}) must be >= 0 and < max_chunk_size ({max_chunk_size})"
        )

    if not text or not text.strip():
        return []

    chunks: list[Chunk] = []
    seen: set[str] = set()
    for section in split_sections(text):
        section_type = detect_section_type(f"{section.title or ''} {section.body}")

        for position, (start, window) in enumerate(_windows(section.body, max_chunk_size, overlap_size)):
            content = window.strip()
            if not content:
                continue
            content_hash = hash_content(content)
            if content_hash in seen:
                continue
            seen.add(content_hash)

            begin = section.offset + start + len(window) - len(window.lstrip())
            locator = SourceLocator(
                url=url,
                line_start=_line_number(text, begin),
                line_end=_line_number(text, begin + len(content)),
                page=bisect_right(page_offsets, begin) if page_offsets else None,
            )
            chunks.append(
                Chunk(
                    chunk_index=len(chunks),
                    title=section.title if position == 0 else None,
                    content=content,
                    section_type=section_type,
                    content_hash=content_hash,
                    source_locator=locator,
                )
            )
    return chunks

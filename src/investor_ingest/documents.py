"""Investor and document intake, with per-user deduplication."""

from __future__ import annotations

import hashlib
import logging

from investor_ingest.errors import DuplicateDocumentError, NotFoundError
from investor_ingest.models import Document, InvestorProfile
from investor_ingest.stores.base import Stores

logger = logging.getLogger(__name__)


def normalize_url(url: str) -> str:
    """Canonical form used for duplicate detection: no trailing slash, lower-case."""
    return url.strip().rstrip("/").lower()


def hash_string(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


def create_investor(
    stores: Stores,
    *,
    user_id: str,
    name: str,
    firm: str | None = None,
    website: str | None = None,
) -> InvestorProfile:
    """Create a ``draft`` investor profile."""
    cleaned = _clean(name)
    if cleaned is None:
        raise ValueError("Investor name is required")
    profile = stores.profiles.create_profile(
        InvestorProfile(user_id=user_id, name=cleaned, firm=_clean(firm), website=_clean(website))
    )
    logger.info("Created investor %s (%s)", profile.id, profile.name)
    return profile


def _add_document(stores: Stores, document: Document) -> Document:
    profile = stores.profiles.get_profile(document.investor_id)
    if profile is None or profile.user_id != document.user_id:
        raise NotFoundError("Investor", document.investor_id)
    existing = stores.documents.get_by_content_hash(document.user_id, document.content_hash)
    if existing is not None:
        raise DuplicateDocumentError(
            f"This {document.type} has already been added (document {existing.id})"
        )
    return stores.documents.add_document(document)


def add_url_document(stores: Stores, *, investor_id: str, user_id: str, url: str) -> Document:
    """Queue a web page for ingestion.

    Raises
    ------
    DuplicateDocumentError
        The user already added the same normalized URL.
    """
    normalized = normalize_url(url)
    if not normalized:
        raise ValueError("URL is required")
    return _add_document(
        stores,
        Document(
            investor_id=investor_id,
            user_id=user_id,
            type="url",
            url=normalized,
            content_hash=hash_string(normalized),
        ),
    )


def add_pdf_document(stores: Stores, *, investor_id: str, user_id: str, storage_key: str) -> Document:
    """Queue an uploaded PDF, identified by its storage key, for ingestion."""
    key = storage_key.strip()
    if not key:
        raise ValueError("Storage key is required")
    return _add_document(
        stores,
        Document(
            investor_id=investor_id,
            user_id=user_id,
            type="pdf",
            storage_key=key,
            content_hash=hash_string(key),
        ),
    )

"""URL extraction: fetch a web page and reduce it to readable plain text.

Output contract::

    UrlExtraction(
        text="<normalised plain-text body>",
        meta={
            "finalUrl":      "<URL after redirects>",
            "title":         "<title> or og:title, else None",
            "description":   "meta description or og:description, else None",
            "truncated":     bool,
            "contentLength": 1234,
        },
    )

Failures (non-2xx status, network error, timeout) raise
:class:`~investor_ingest.errors.ExtractionError`; the caller decides how
to record them.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass, field
from typing import Any

import requests
from bs4 import BeautifulSoup
from bs4.dammit import EncodingDetector

from investor_ingest.config import settings
from investor_ingest.errors import ExtractionError, ExtractionTimeout

logger = logging.getLogger(__name__)

DROPPED_TAGS = ["script", "style", "noscript"]

BLOCK_TAGS = [
    "h1", "h2", "h3", "h4", "h5", "h6", "p", "div", "li", "tr", "td", "th",
    "blockquote", "pre", "article", "section", "header", "footer", "nav",
    "aside", "ul", "ol", "table", "thead", "tbody", "main", "dl", "dt", "dd",
    "figure", "figcaption", "form", "hr",
]

ACCEPT_HEADER = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


@dataclass
class UrlExtraction:
    """Plain text extracted from one URL plus page metadata."""

    text: str
    meta: dict[str, Any] = field(default_factory=dict)


# ── helpers ───────────────────────────────────────────────────────────


def normalise_text(text: str) -> str:
    """Unicode NFC, collapse whitespace, keep at most one blank line."""
    text = unicodedata.normalize("NFC", text)
    text = text.replace("\xa0", " ")
    text = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f]", "", text)  # ctrl chars
    text = re.sub(r"[^\S\n]+", " ", text)      # collapse spaces (keep \n)
    text = re.sub(r" *\n *", "\n", text)        # trim around newlines
    text = re.sub(r"\n{3,}", "\n\n", text)      # max one blank line
    return text.strip()


def _meta_content(soup: BeautifulSoup, **attrs: str) -> str | None:
    tag = soup.find("meta", attrs=attrs)
    if tag is None:
        return None
    content = (tag.get("content") or "").strip()
    return content or None


def extract_title(soup: BeautifulSoup) -> str | None:
    """``<title>`` first, then ``og:title``."""
    if soup.title and soup.title.string and soup.title.string.strip():
        return soup.title.string.strip()
    return _meta_content(soup, property="og:title")


def extract_description(soup: BeautifulSoup) -> str | None:
    """Meta description first, then ``og:description``."""
    return _meta_content(soup, name="description") or _meta_content(
        soup, property="og:description"
    )


def html_to_text(soup: BeautifulSoup) -> str:
    """Render parsed HTML as plain text.

    Script/style/noscript blocks are dropped, block-level elements become
    line breaks and links are rendered as ``"text [href]"``. Entities are
    already decoded by the parser.
    """
    for tag in soup(DROPPED_TAGS):
        tag.decompose()

    for anchor in soup.find_all("a", href=True):
        label = anchor.get_text(" ", strip=True)
        anchor.replace_with(f"{label} [{anchor['href']}]" if label else f"[{anchor['href']}]")

    for br in soup.find_all("br"):
        br.replace_with("\n")

    for tag in soup.find_all(BLOCK_TAGS):
        tag.insert_before("\n")
        tag.insert_after("\n")

    root = soup.body or soup
    return normalise_text(root.get_text())


# ── public API ────────────────────────────────────────────────────────


def extract_url_text(
    url: str,
    *,
    max_chars: int | None = None,
    timeout: float | None = None,
) -> UrlExtraction:
    """Fetch *url* and return its readable text.

    Parameters
    ----------
    url:
        Page to fetch; redirects are followed.
    max_chars:
        Character budget; longer text is truncated and flagged.
    timeout:
        Request timeout in seconds.

    Raises
    ------
    ExtractionTimeout
        The request did not complete within *timeout*.
    ExtractionError
        Network failure or a non-2xx response.
    """
    max_chars = settings.url_max_chars if max_chars is None else max_chars
    timeout = settings.url_fetch_timeout if timeout is None else timeout

    headers = {"User-Agent": settings.user_agent, "Accept": ACCEPT_HEADER}
    try:
        resp = requests.get(url, headers=headers, timeout=timeout, allow_redirects=True)
    except requests.Timeout as exc:
        raise ExtractionTimeout(f"Request timeout after {timeout:g}s", source=url) from exc
    except requests.RequestException as exc:
        raise ExtractionError(f"Request failed: {exc}", source=url) from exc

    if not 200 <= resp.status_code < 300:
        raise ExtractionError(f"HTTP {resp.status_code}: {resp.reason or ''}".rstrip(), source=url)

    if "charset=" not in resp.headers.get("Content-Type", "").lower():
        # requests falls back to ISO-8859-1 for text/html without a charset
        resp.encoding = EncodingDetector.find_declared_encoding(resp.content, is_html=True) or "utf-8"

    soup = BeautifulSoup(resp.text, "html.parser")
    title = extract_title(soup)
    description = extract_description(soup)
    text = html_to_text(soup)

    truncated = len(text) > max_chars
    if truncated:
        text = text[:max_chars]
        logger.info("Truncated %s to %d chars", url, max_chars)

    return UrlExtraction(
        text=text,
        meta={
            "finalUrl": resp.url or url,
            "title": title,
            "description": description,
            "truncated": truncated,
            "contentLength": len(text),
        },
    )

"""Heuristic extraction of structured investor profile fields.

:func:`extract_investor_profile` is a pure function of the corpus text:
no I/O, same input, same output. The heuristics live in
:mod:`investor_ingest.profile.patterns`.
"""

from __future__ import annotations

from investor_ingest.models import ExtractedProfile
from investor_ingest.profile.patterns import (
    CHECK_SIZE_RULES,
    EXCLUSION_RULES,
    EXCLUSION_WINDOW,
    GEOGRAPHY_RULES,
    PARAGRAPH_SPLIT,
    SECTOR_RULES,
    STAGE_RULES,
    THESIS_KEYWORDS,
    UNIT_MULTIPLIERS,
    PatternRule,
)

CORPUS_SEPARATOR = "\n\n---\n\n"


def build_corpus(texts: list[str]) -> str:
    """Concatenate extracted document texts into one corpus."""
    return CORPUS_SEPARATOR.join(texts)


def _dedupe(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))


def _amount(value: str, unit: str | None) -> float:
    return float(value) * UNIT_MULTIPLIERS.get((unit or "").lower(), 1)


def extract_check_size(text: str) -> tuple[int | None, int | None]:
    """Return ``(min, max)`` in dollars from the first matching check-size rule.

    ``"$500K - $2M"`` → ``(500000, 2000000)``; ``"$1-5M"`` → the lower
    bound inherits the upper unit; a single amount sets both bounds.
    """
    for rule in CHECK_SIZE_RULES:
        match = rule.pattern.search(text)
        if not match:
            continue
        if rule.label == "range":
            low_value, low_unit, high_value, high_unit = match.groups()
            low = _amount(low_value, low_unit or high_unit)
            high = _amount(high_value, high_unit)
        else:
            value, unit = match.groups()
            low = high = _amount(value, unit)
        low, high = sorted((round(low), round(high)))
        return low, high
    return None, None


def _match_vocabulary(text: str, rules: tuple[PatternRule, ...]) -> list[str]:
    return _dedupe([rule.label for rule in rules if rule.pattern.search(text)])


def extract_stages(text: str) -> list[str]:
    return _match_vocabulary(text, STAGE_RULES)


def extract_geographies(text: str) -> list[str]:
    return _match_vocabulary(text, GEOGRAPHY_RULES)


def _is_excluded(text: str, position: int) -> bool:
    window = text[max(0, position - EXCLUSION_WINDOW) : position + EXCLUSION_WINDOW]
    return any(rule.pattern.search(window) for rule in EXCLUSION_RULES)


def extract_sectors(text: str) -> tuple[list[str], list[str]]:
    """Return ``(focus, excluded)`` sector labels.

    Every occurrence of a sector is judged on its own: exclusion language
    within ±``EXCLUSION_WINDOW`` characters of the match start makes that
    occurrence an exclusion. A sector can therefore end up in both lists.
    """
    focus: list[str] = []
    excluded: list[str] = []
    for rule in SECTOR_RULES:
        for match in rule.pattern.finditer(text):
            target = excluded if _is_excluded(text, match.start()) else focus
            target.append(rule.label)
    return _dedupe(focus), _dedupe(excluded)


def extract_thesis_summary(text: str) -> str | None:
    """First paragraph that reads like an investment thesis.

    Prefers a 50–1000 character paragraph mentioning an intent keyword,
    then falls back to the first 100–500 character paragraph.
    """
    paragraphs = [p.strip() for p in PARAGRAPH_SPLIT.split(text)]

    for para in paragraphs:
        if not 50 <= len(para) <= 1000:
            continue
        lowered = para.lower()
        if any(keyword in lowered for keyword in THESIS_KEYWORDS):
            return para

    for para in paragraphs:
        if 100 <= len(para) <= 500:
            return para
    return None


def extract_investor_profile(corpus: str) -> ExtractedProfile:
    """Derive profile fields from the concatenated text of all ready documents."""
    check_min, check_max = extract_check_size(corpus)
    focus, excluded = extract_sectors(corpus)
    return ExtractedProfile(
        thesis_summary=extract_thesis_summary(corpus),
        check_size_min=check_min,
        check_size_max=check_max,
        stages=extract_stages(corpus),
        geographies=extract_geographies(corpus),
        focus_sectors=focus,
        excluded_sectors=excluded,
    )

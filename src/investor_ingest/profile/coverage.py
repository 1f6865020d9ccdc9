"""Profile completeness scoring and the review gate."""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, NamedTuple

from investor_ingest.models import InvestorProfile, InvestorStatus, ProfileUpdate, utcnow


class CoverageField(NamedTuple):
    field: str
    label: str
    weight: int


# Weights sum to 100.
COVERAGE_FIELDS: tuple[CoverageField, ...] = (
    CoverageField("name", "Name", 5),
    CoverageField("firm", "Firm", 5),
    CoverageField("website", "Website", 5),
    CoverageField("thesis_summary", "Thesis Summary", 20),
    CoverageField("check_size_min", "Check Size Min", 10),
    CoverageField("check_size_max", "Check Size Max", 10),
    CoverageField("stages", "Stages", 15),
    CoverageField("geographies", "Geographies", 10),
    CoverageField("focus_sectors", "Focus Sectors", 15),
    CoverageField("excluded_sectors", "Excluded Sectors", 5),
)

REVIEW_THRESHOLD = 70


@dataclass(frozen=True)
class CoverageResult:
    score: int
    missing_fields: list[str] = field(default_factory=list)


def has_value(value: Any) -> bool:
    """Whether a profile field counts as populated."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, set)):
        return len(value) > 0
    if isinstance(value, float):
        return not math.isnan(value)
    if isinstance(value, int):
        return True
    return bool(value)


def _field_value(profile: Any, name: str) -> Any:
    if isinstance(profile, Mapping):
        return profile.get(name)
    return getattr(profile, name, None)


def compute_coverage(profile: InvestorProfile | Mapping[str, Any]) -> CoverageResult:
    """Weighted share of populated fields, as an integer percentage.

    Returns
    -------
    CoverageResult
        ``score`` in ``[0, 100]`` and the labels of the empty fields in
        table order.
    """
    total = 0
    achieved = 0
    missing: list[str] = []
    for entry in COVERAGE_FIELDS:
        total += entry.weight
        if has_value(_field_value(profile, entry.field)):
            achieved += entry.weight
        else:
            missing.append(entry.label)

    # Half-up rounding; ``round`` would round halves to even.
    score = math.floor(100 * achieved / total + 0.5) if total else 0
    return CoverageResult(score=min(100, max(0, score)), missing_fields=missing)


def needs_review(score: int) -> bool:
    """Profiles below the threshold go to manual review."""
    return score < REVIEW_THRESHOLD


def coverage_status(score: int) -> InvestorStatus:
    return "needs_review" if needs_review(score) else "ready"


def apply_review_update(profile: InvestorProfile, update: ProfileUpdate) -> InvestorProfile:
    """Merge reviewer edits into *profile* and recompute coverage.

    Blank strings and empty lists leave the stored value untouched, so a
    reviewer cannot accidentally wipe an extracted field by submitting an
    empty form control.
    """
    changes: dict[str, Any] = {}
    for name, value in update.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        if isinstance(value, str):
            value = value.strip()
            if not value and name != "review_notes":
                continue
        if isinstance(value, list) and not value:
            continue
        changes[name] = value

    merged = profile.model_copy(update=changes)
    result = compute_coverage(merged)
    return merged.model_copy(
        update={
            "coverage_score": result.score,
            "missing_fields": result.missing_fields,
            "status": coverage_status(result.score),
            "updated_at": utcnow(),
        }
    )

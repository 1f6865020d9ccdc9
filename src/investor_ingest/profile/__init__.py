"""
Profile: heuristic extraction of structured investor fields and
coverage scoring.

Public API
----------
- :func:`extract_investor_profile`: corpus → :class:`ExtractedProfile`.
- :func:`compute_coverage`: weighted completeness of a profile.
- :func:`apply_review_update`: merge reviewer edits and re-score.
"""

from investor_ingest.profile.coverage import apply_review_update, compute_coverage, needs_review
from investor_ingest.profile.extractor import extract_investor_profile

__all__ = [
    "apply_review_update",
    "compute_coverage",
    "extract_investor_profile",
    "needs_review",
]

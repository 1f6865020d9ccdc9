"""Unit tests for profile extraction and coverage scoring."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from investor_ingest.models import InvestorProfile, ProfileUpdate
from investor_ingest.profile.coverage import (
    COVERAGE_FIELDS,
    apply_review_update,
    compute_coverage,
    coverage_status,
    has_value,
    needs_review,
)
from investor_ingest.profile.extractor import (
    build_corpus,
    extract_check_size,
    extract_geographies,
    extract_investor_profile,
    extract_sectors,
    extract_stages,
    extract_thesis_summary,
)

THESIS = (
    "Acme Ventures backs technical founders building fintech and SaaS infrastructure. "
    "We believe the best companies are built by small teams."
)

CORPUS = build_corpus(
    [
        f"# Investment Thesis\n{THESIS}",
        "We lead Seed and Series A rounds with check sizes from $500K - $2M. "
        "We invest in the United States and Europe.",
        "We do not invest in crypto.",
    ]
)


def _full_profile() -> InvestorProfile:
    return InvestorProfile(
        user_id="u1",
        name="Jane Doe",
        firm="Acme Ventures",
        website="https://acme.vc",
        thesis_summary=THESIS,
        check_size_min=500_000,
        check_size_max=2_000_000,
        stages=["Seed"],
        geographies=["Europe"],
        focus_sectors=["FinTech"],
        excluded_sectors=["Crypto/Web3"],
    )


# ── Check size ────────────────────────────────────────────────────────


class TestCheckSize:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("We write checks of $500K - $2M.", (500_000, 2_000_000)),
            ("Typically $1-5M per deal", (1_000_000, 5_000_000)),
            ("Between $3 million to $10 million", (3_000_000, 10_000_000)),
            ("$250k–$1.5m", (250_000, 1_500_000)),
            ("Check size: $250k", (250_000, 250_000)),
            ("check sizes up to $2M", (2_000_000, 2_000_000)),
        ],
    )
    def test_patterns(self, text: str, expected: tuple[int, int]) -> None:
        assert extract_check_size(text) == expected

    def test_no_match(self) -> None:
        assert extract_check_size("We invest early.") == (None, None)

    def test_range_wins_over_single(self) -> None:
        text = "Check size: $100k. Usually $500K - $2M."
        assert extract_check_size(text) == (500_000, 2_000_000)


# ── Vocabularies ──────────────────────────────────────────────────────


class TestVocabularies:
    def test_stages_in_table_order(self) -> None:
        text = "Occasionally Series A, mostly pre-seed and Seed."
        assert extract_stages(text) == ["Pre-Seed", "Seed", "Series A"]

    def test_growth_and_early_stage(self) -> None:
        assert extract_stages("early stage and growth stage") == ["Growth", "Early Stage"]

    def test_geographies(self) -> None:
        assert extract_geographies("We invest across the US and Europe.") == ["United States", "Europe"]

    def test_lowercase_us_is_not_a_country(self) -> None:
        assert extract_geographies("Contact us today.") == []

    def test_north_america_is_not_united_states(self) -> None:
        assert extract_geographies("Based in North America") == ["North America"]

    def test_latin_america(self) -> None:
        assert extract_geographies("LatAm founders") == ["Latin America"]


# ── Sectors ───────────────────────────────────────────────────────────


class TestSectors:
    def test_focus_sectors(self) -> None:
        focus, excluded = extract_sectors("We focus on fintech and SaaS companies.")
        assert focus == ["FinTech", "SaaS"]
        assert excluded == []

    def test_negation_excludes(self) -> None:
        focus, excluded = extract_sectors("We do not invest in Crypto")
        assert focus == []
        assert excluded == ["Crypto/Web3"]

    def test_exclusion_is_local(self) -> None:
        text = "We love biotech. " + "x " * 60 + "We avoid hardware."
        focus, excluded = extract_sectors(text)
        assert focus == ["Biotech"]
        assert excluded == ["Hardware"]

    def test_each_occurrence_judged_separately(self) -> None:
        text = "Fintech is our core. " + "y " * 60 + "We don't do consumer fintech."
        focus, excluded = extract_sectors(text)
        assert "FinTech" in focus
        assert "FinTech" in excluded


# ── Thesis summary ────────────────────────────────────────────────────


class TestThesisSummary:
    def test_first_keyword_paragraph(self) -> None:
        text = "Short.\n\n" + THESIS + "\n\nAnother paragraph about investing in many things."
        assert extract_thesis_summary(text) == THESIS

    def test_fallback_to_medium_paragraph(self) -> None:
        para = "Acme Ventures was founded in 2012 in Berlin. " * 3
        assert extract_thesis_summary(para.strip()) == para.strip()

    def test_none(self) -> None:
        assert extract_thesis_summary("Tiny.") is None


# ── Full profile ──────────────────────────────────────────────────────


class TestExtractInvestorProfile:
    def test_corpus_separator(self) -> None:
        assert build_corpus(["a", "b"]) == "a\n\n---\n\nb"

    def test_full_extraction(self) -> None:
        profile = extract_investor_profile(CORPUS)
        assert profile.check_size_min == 500_000
        assert profile.check_size_max == 2_000_000
        assert profile.stages == ["Seed", "Series A"]
        assert profile.geographies == ["United States", "Europe"]
        assert profile.focus_sectors == ["FinTech", "SaaS"]
        assert profile.excluded_sectors == ["Crypto/Web3"]
        assert profile.thesis_summary is not None
        assert "technical founders" in profile.thesis_summary

    def test_empty_corpus(self) -> None:
        profile = extract_investor_profile("")
        assert profile.model_dump() == {
            "thesis_summary": None,
            "check_size_min": None,
            "check_size_max": None,
            "stages": [],
            "geographies": [],
            "focus_sectors": [],
            "excluded_sectors": [],
        }


# ── Coverage ──────────────────────────────────────────────────────────


class TestCoverage:
    def test_weights_sum_to_100(self) -> None:
        assert sum(f.weight for f in COVERAGE_FIELDS) == 100

    def test_empty_profile(self) -> None:
        result = compute_coverage(InvestorProfile(user_id="u1"))
        assert result.score == 0
        assert len(result.missing_fields) == len(COVERAGE_FIELDS)
        assert result.missing_fields[0] == "Name"

    def test_full_profile(self) -> None:
        result = compute_coverage(_full_profile())
        assert result.score == 100
        assert result.missing_fields == []

    def test_partial_profile(self) -> None:
        result = compute_coverage(
            {"name": "Jane", "firm": "Acme", "website": "acme.vc", "thesis_summary": THESIS}
        )
        assert result.score == 35
        assert "Stages" in result.missing_fields
        assert "Thesis Summary" not in result.missing_fields

    def test_blank_values_count_as_missing(self) -> None:
        result = compute_coverage({"name": "   ", "stages": []})
        assert result.score == 0

    def test_adding_a_field_never_lowers_the_score(self) -> None:
        profile = InvestorProfile(user_id="u1")
        previous = compute_coverage(profile).score
        full = _full_profile()
        for entry in COVERAGE_FIELDS:
            profile = profile.model_copy(update={entry.field: getattr(full, entry.field)})
            score = compute_coverage(profile).score
            assert 0 <= score <= 100
            assert score >= previous
            previous = score
        assert previous == 100

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(None, False), ("", False), ("  ", False), ("x", True), ([], False), (["a"], True),
         (0, True), (float("nan"), False), (1.5, True)],
    )
    def test_has_value(self, value: object, expected: bool) -> None:
        assert has_value(value) is expected

    def test_review_threshold(self) -> None:
        assert needs_review(69) is True
        assert needs_review(70) is False
        assert coverage_status(69) == "needs_review"
        assert coverage_status(70) == "ready"


class TestApplyReviewUpdate:
    def test_merges_and_rescores(self) -> None:
        profile = InvestorProfile(user_id="u1", name="Jane", stages=["Seed"])
        updated = apply_review_update(
            profile,
            ProfileUpdate(firm="Acme Ventures", check_size_min=100_000, check_size_max=1_000_000),
        )
        assert updated.firm == "Acme Ventures"
        assert updated.stages == ["Seed"]
        assert updated.coverage_score == 5 + 5 + 10 + 10 + 15
        assert updated.status == "needs_review"
        assert "Firm" not in updated.missing_fields

    def test_blank_inputs_keep_existing_values(self) -> None:
        profile = InvestorProfile(user_id="u1", name="Jane", firm="Acme", stages=["Seed"])
        updated = apply_review_update(profile, ProfileUpdate(firm="  ", stages=[]))
        assert updated.firm == "Acme"
        assert updated.stages == ["Seed"]

    def test_reaching_threshold_marks_ready(self) -> None:
        full = _full_profile()
        profile = full.model_copy(update={"thesis_summary": None, "stages": []})
        updated = apply_review_update(profile, ProfileUpdate(thesis_summary=THESIS, stages=["Seed"]))
        assert updated.coverage_score == 100
        assert updated.status == "ready"

    def test_accepts_camel_case_payload(self) -> None:
        update = ProfileUpdate.model_validate({"checkSizeMin": 250_000, "focusSectors": ["SaaS"]})
        assert update.check_size_min == 250_000
        assert update.focus_sectors == ["SaaS"]

    def test_rejects_non_positive_check_size(self) -> None:
        with pytest.raises(ValidationError):
            ProfileUpdate(check_size_min=0)

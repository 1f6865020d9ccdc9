"""Declarative heuristic tables for investor profile extraction.

Each table is an ordered tuple of :class:`PatternRule` rows. Extractors
evaluate rows top to bottom and rely on that order ("first match wins"
for check sizes, output order for vocabularies), so rows must not be
re-sorted.
"""

from __future__ import annotations

import re
from typing import Literal, NamedTuple

Polarity = Literal["include", "exclude"]


class PatternRule(NamedTuple):
    pattern: re.Pattern[str]
    label: str
    polarity: Polarity = "include"


def _rule(pattern: str, label: str, polarity: Polarity = "include") -> PatternRule:
    return PatternRule(re.compile(pattern, re.IGNORECASE), label, polarity)


_AMOUNT = r"(\d+(?:\.\d+)?)"
_UNIT = r"(thousand|million|k|m)\b"

# ── check size ────────────────────────────────────────────────────────
# Range rows capture (low, low_unit?, high, high_unit); the single row
# captures (amount, unit).
CHECK_SIZE_RULES: tuple[PatternRule, ...] = (
    _rule(rf"\${_AMOUNT}\s*(?:{_UNIT})?\s*(?:-|–|—|to)\s*\$?{_AMOUNT}\s*{_UNIT}", "range"),
    _rule(rf"check\s*sizes?[:\s]+(?:of\s+|up\s+to\s+)?\$?{_AMOUNT}\s*{_UNIT}", "single"),
)

UNIT_MULTIPLIERS: dict[str, int] = {
    "k": 1_000,
    "thousand": 1_000,
    "m": 1_000_000,
    "million": 1_000_000,
}

# ── stages ────────────────────────────────────────────────────────────
STAGE_RULES: tuple[PatternRule, ...] = (
    _rule(r"pre.?seed", "Pre-Seed"),
    _rule(r"\bseed\b", "Seed"),
    _rule(r"series\s*a\b", "Series A"),
    _rule(r"series\s*b\b", "Series B"),
    _rule(r"series\s*c\b", "Series C"),
    _rule(r"growth\s*stage", "Growth"),
    _rule(r"late\s*stage", "Late Stage"),
    _rule(r"early\s*stage", "Early Stage"),
)

# ── geographies ───────────────────────────────────────────────────────
GEOGRAPHY_RULES: tuple[PatternRule, ...] = (
    _rule(
        r"\bunited\s*states\b|(?-i:\bU\.S\.(?:A\.)?|\bUSA?\b)|(?<!north )(?<!latin )\bamerica\b",
        "United States",
    ),
    _rule(r"\bnorth\s*america\b", "North America"),
    _rule(r"\beurope\b|\beu\b", "Europe"),
    _rule(r"\basia\b|\bapac\b", "Asia"),
    _rule(r"\buk\b|\bunited\s*kingdom\b|\bbritain\b", "United Kingdom"),
    _rule(r"\bglobal\b|\bworldwide\b", "Global"),
    _rule(r"\bcanada\b", "Canada"),
    _rule(r"\blatin\s*america\b|\blatam\b", "Latin America"),
    _rule(r"\bisrael\b", "Israel"),
    _rule(r"\bindia\b", "India"),
)

# ── sectors ───────────────────────────────────────────────────────────
SECTOR_RULES: tuple[PatternRule, ...] = (
    _rule(r"\b(?:artificial\s*intelligence|ai|machine\s*learning|ml)\b", "AI/ML"),
    _rule(r"\bfintech\b|\bfinancial\s*technology\b", "FinTech"),
    _rule(r"\bhealthtech\b|\bhealth\s*tech\b|\bdigital\s*health\b", "HealthTech"),
    _rule(r"\bsaas\b|\bsoftware\s*as\s*a\s*service\b", "SaaS"),
    _rule(r"\be-?commerce\b|\bretail\s*tech\b", "E-commerce"),
    _rule(r"\bedtech\b|\beducation\s*tech\b", "EdTech"),
    _rule(r"\bclean\s*tech\b|\bclimate\s*tech\b|\bsustainability\b", "CleanTech"),
    _rule(r"\bcybersecurity\b|\bsecurity\b", "Cybersecurity"),
    _rule(r"\bdeep\s*tech\b|\bfrontier\b", "DeepTech"),
    _rule(r"\bb2b\b|\benterprise\b", "Enterprise"),
    _rule(r"\bb2c\b|\bconsumer\b", "Consumer"),
    _rule(r"\bmarketplace\b", "Marketplace"),
    _rule(r"\bproptech\b|\breal\s*estate\s*tech\b", "PropTech"),
    _rule(r"\binsurtech\b", "InsurTech"),
    _rule(r"\bhardware\b", "Hardware"),
    _rule(r"\bbiotech\b|\blife\s*sciences\b", "Biotech"),
    _rule(r"\bcrypto\b|\bblockchain\b|\bweb3\b", "Crypto/Web3"),
)

# Cues that flip a nearby sector mention into an exclusion.
EXCLUSION_RULES: tuple[PatternRule, ...] = (
    _rule(r"we\s*do\s*not", "we do not", "exclude"),
    _rule(r"\bdo\s*not\b", "do not", "exclude"),
    _rule(r"\bdon['’]t\b", "don't", "exclude"),
    _rule(r"\bdoesn['’]t\b", "doesn't", "exclude"),
    _rule(r"\bavoid", "avoid", "exclude"),
    _rule(r"no\s*interest\s*in", "no interest in", "exclude"),
    _rule(r"not\s*investing\s*in", "not investing in", "exclude"),
    _rule(r"\bexclude[ds]?\b|\bexclusions?\b", "excluded", "exclude"),
)

# Half-width of the text window searched for exclusion cues around a
# sector match.
EXCLUSION_WINDOW = 50

# ── thesis summary ────────────────────────────────────────────────────
THESIS_KEYWORDS: tuple[str, ...] = (
    "invest",
    "thesis",
    "approach",
    "focus",
    "partner",
    "back",
    "support",
    "look for",
    "believe",
    "seek",
)

PARAGRAPH_SPLIT = re.compile(r"\n\s*\n")

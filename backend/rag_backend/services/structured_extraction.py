"""Deterministic extraction from a patient document's raw text and test results.

These rules back up vector retrieval: they run when the document has no
usable vectors, and for medication and abnormal-finding questions they run
regardless so that the answer is anchored to what the document literally says.
The rule tables are plain data so new markers can be added without touching
the matching code.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

from rag_backend.models.rag import PatientDocument

NO_MEDICATIONS_MARKER = (
    "NO MEDICATIONS FOUND IN PATIENT DOCUMENT: this patient's document does not "
    "mention any current or prescribed medications."
)
CLINICAL_SIGNIFICANCE_FLAG = (
    "CLINICAL SIGNIFICANCE: Abnormal cardiac findings detected in the patient's "
    "document that require medical evaluation."
)
MEDICATIONS_FOUND_PREFIX = "MEDICATIONS FOUND IN PATIENT DOCUMENT: "

MEDICATION_KEYWORDS = (
    "medication",
    "medicine",
    "drug",
    "prescription",
    "taking",
    "prescribed",
)
FINDING_KEYWORDS = (
    "abnormal",
    "diagnosis",
    "findings",
    "hfpef",
    "heart failure",
    "diastolic",
    "stenosis",
    "recommendation",
    "suggest",
)

_MEDICATION_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"\bcurrent medications?\s*:?\s*([^.\n]+)",
        r"\bmedications?\s*:+\s*([^.\n]+)",
        r"\bdrugs?\s*:+\s*([^.\n]+)",
        r"\bprescriptions?\s*:+\s*([^.\n]+)",
        r"\btaking\s*:?\s*([^.\n]+)",
        r"\bprescribed\s*:?\s*([^.\n]+)",
    )
)
# A mention is negated only when it opens with one of these words
_NEGATED_MENTION = re.compile(r"(?:none|no|nil|n/a|any)\b", re.IGNORECASE)
_NEGATED_KEYWORD = re.compile(
    r"\b(?:not|no|never|denies|denied)\s+$", re.IGNORECASE
)
_NEGATION_WINDOW = 12

_QUERY_TERM = re.compile(r"[a-z0-9]+")
_STOP_WORDS = frozenset(
    {
        "the", "and", "are", "was", "were", "what", "which", "who", "how",
        "why", "when", "does", "did", "can", "could", "should", "would",
        "about", "with", "for", "from", "this", "that", "these", "those",
        "have", "has", "had", "you", "your", "mine", "tell", "show", "any",
        "there",
    }
)
_MAX_RAW_LINES = 5


@dataclass(frozen=True)
class FindingRule:
    """A named marker in the document text and how to phrase it for the patient."""

    name: str
    pattern: re.Pattern[str]
    describe: Callable[[re.Match[str]], str]
    categories: tuple[str, ...]
    abnormal: Callable[[re.Match[str]], bool] = lambda m: True


def _not_normal(match: re.Match[str]) -> bool:
    return (match.group(1) or "").lower() != "normal"


FINDING_RULES: tuple[FindingRule, ...] = (
    FindingRule(
        name="mcg_summary",
        pattern=re.compile(r"MCG Summary\W*([A-Za-z]+)", re.IGNORECASE),
        describe=lambda m: f"MCG Summary: {m.group(1)}",
        categories=("cardiovascular",),
        abnormal=_not_normal,
    ),
    FindingRule(
        name="pcg_summary",
        pattern=re.compile(r"PCG Summary\W*([A-Za-z]+)", re.IGNORECASE),
        describe=lambda m: f"PCG Summary: {m.group(1)}",
        categories=("cardiovascular",),
        abnormal=_not_normal,
    ),
    FindingRule(
        name="hfpef_score",
        pattern=re.compile(r"HFpEF-score\s*:?\s*(\d+)", re.IGNORECASE),
        describe=lambda m: (
            f"HFpEF Score: {m.group(1)} (probability of heart failure with "
            "preserved ejection fraction; 2-5 is intermediate, 6 or more is high)"
        ),
        categories=("hfpef", "heart_failure", "diagnostic_criteria"),
    ),
    FindingRule(
        name="impaired_relaxation",
        pattern=re.compile(r"Impaired Relaxation|\bDDIM\b"),
        describe=lambda m: (
            "Impaired Relaxation (DDIM): early stage diastolic dysfunction"
        ),
        categories=("diastolic_dysfunction", "diagnostic_criteria"),
    ),
    FindingRule(
        name="aortic_stenosis",
        pattern=re.compile(r"\bAV Stenosis\b(?:\s*\(AS\))?\s*:?\s*([A-Za-z]+)?"),
        describe=lambda m: (
            f"AV Stenosis (AS): {m.group(1) or 'noted'} - requires quantitative assessment"
        ),
        categories=("aortic_stenosis", "diagnostic_criteria"),
        abnormal=_not_normal,
    ),
    FindingRule(
        name="systolic_performance",
        pattern=re.compile(r"SPI - Systolic Perf"),
        describe=lambda m: (
            "SPI - Systolic Performance: Abnormal - reduced heart muscle contractility"
        ),
        categories=("cardiac_performance", "diagnostic_criteria"),
    ),
    FindingRule(
        name="myocardial_perfusion",
        pattern=re.compile(r"MPI - Myocardial Perf"),
        describe=lambda m: (
            "MPI - Myocardial Perfusion: Abnormal - possible reduced blood flow "
            "to heart muscle"
        ),
        categories=("myocardial_perfusion", "diagnostic_criteria"),
    ),
)


def _mentions_any(query: str, keywords: tuple[str, ...]) -> bool:
    lowered = query.lower()
    return any(keyword in lowered for keyword in keywords)


def is_medication_query(query: str) -> bool:
    return _mentions_any(query, MEDICATION_KEYWORDS)


def is_finding_query(query: str) -> bool:
    return _mentions_any(query, FINDING_KEYWORDS)


def significant_terms(query: str) -> list[str]:
    """Lower-cased alphanumeric query tokens longer than two characters."""
    return [
        term
        for term in _QUERY_TERM.findall(query.lower())
        if len(term) > 2 and term not in _STOP_WORDS
    ]


def find_medications(content: str) -> list[str]:
    """Medication mentions in document order, de-duplicated, negations dropped.

    "Medications: none" and "not taking any medications" are negations;
    "Lisinopril 10 mg, no side effects" is a mention.
    """
    found: list[str] = []
    for pattern in _MEDICATION_PATTERNS:
        for match in pattern.finditer(content):
            mention = match.group(1).strip(" :;,-")
            if not mention or _NEGATED_MENTION.match(mention):
                continue
            preceding = content[max(0, match.start() - _NEGATION_WINDOW) : match.start()]
            if _NEGATED_KEYWORD.search(preceding):
                continue
            if mention.lower() not in (m.lower() for m in found):
                found.append(mention)
    return found


def medication_lines(content: str) -> list[str]:
    """One line listing medications, or the explicit no-medications marker."""
    medications = find_medications(content)
    if not medications:
        return [NO_MEDICATIONS_MARKER]
    return [MEDICATIONS_FOUND_PREFIX + ", ".join(medications)]


def extract_findings(content: str) -> tuple[list[str], list[str]]:
    """Plain-language finding lines plus the knowledge categories they point at.

    A clinical-significance flag line is appended only when at least one
    finding is abnormal; a normal summary is reported without it.
    """
    lines: list[str] = []
    categories: list[str] = []
    any_abnormal = False
    for rule in FINDING_RULES:
        match = rule.pattern.search(content)
        if not match:
            continue
        lines.append(rule.describe(match))
        any_abnormal = any_abnormal or rule.abnormal(match)
        for category in rule.categories:
            if category not in categories:
                categories.append(category)
    if any_abnormal:
        lines.append(CLINICAL_SIGNIFICANCE_FLAG)
    return lines, categories


def fallback_lines(query: str, document: PatientDocument) -> list[str]:
    """Structured search used when the document yields no vector evidence.

    Test results are matched first; raw document lines are only scanned when
    no test result matches.
    """
    terms = significant_terms(query)
    if not terms:
        return []

    lines: list[str] = []
    for key, result in document.test_results.items():
        name = result.name.lower()
        value = result.value.lower()
        if any(term in name or term in value or term in key for term in terms):
            lines.append(result.describe())
    if lines:
        return lines

    for raw_line in document.content.split("\n"):
        lowered = raw_line.lower()
        if raw_line.strip() and any(term in lowered for term in terms):
            lines.append(f"Patient's document: {raw_line.strip()}")
            if len(lines) >= _MAX_RAW_LINES:
                break
    return lines

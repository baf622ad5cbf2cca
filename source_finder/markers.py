"""
Text feature detectors used by the criterion evaluators.

Patterns are data: `MARKER_PATTERNS` maps a marker name to one regex, and
`MARKERS_VERSION` changes whenever a pattern does. Each predicate below reads
exactly one marker so it can be tested on its own.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, Pattern

MARKERS_VERSION = "2026.2"

MARKER_PATTERNS: Dict[str, str] = {
    # Accuracy
    "doi_link": r"doi\.org/\d+\.\d+/[^\s\"'<>)]+",
    "institutional_link": r"https?://[a-z0-9.-]+\.(?:gov|edu|int)(?:\.[a-z]{2})?(?::\d+)?/",
    # Matched against one heading text or one line of visible text
    "references_heading": (
        r"^[ \t]*(?:references|citations|bibliography|works cited|sources cited|notes and references)"
        r"[ \t]*:?(?:[ \t]*\[[ \t]*edit(?: source)?[ \t]*\])?[ \t]*$"
    ),
    # Objectivity
    "opinion": r"\b(?:opinion|editorial|op-ed)\b",
    "methods_or_references": r"\b(?:methods|methodology|references|bibliography)\b",
    # Purpose
    "advertising": r"\b(?:advert\w*|sponsored|promo(?:tion|tional)?|affiliate link|buy now|shop now|discount code)\b",
    "informational": (
        r"\b(?:research|report|methods?|methodology|policy|guidelines?|white[- ]paper|dataset|data set)\b"
    ),
    # Audience
    "marketing": (
        r"\b(?:customers?|free trial|sign up|subscribe|pricing|limited time|order now|our products?|get started)\b"
    ),
    "technical": (
        r"\b(?:abstract|hypothesis|statistically|regression|cohort|confidence interval|peer[- ]reviewed|"
        r"meta-analysis|p\s?<\s?0?\.\d+)\b"
    ),
}

_COMPILED: Dict[str, Pattern[str]] = {
    name: re.compile(pat, re.IGNORECASE | re.MULTILINE)
    for name, pat in MARKER_PATTERNS.items()
}


def marker(name: str) -> Pattern[str]:
    return _COMPILED[name]


def count_marker(name: str, text: str) -> int:
    if not text:
        return 0
    return sum(1 for _ in _COMPILED[name].finditer(text))


def has_marker(name: str, text: str) -> bool:
    return bool(text) and _COMPILED[name].search(text) is not None


def count_doi_links(text: str) -> int:
    return count_marker("doi_link", text)


def count_institutional_links(text: str) -> int:
    """Occurrences of gov/edu/int URLs (including national gov.<cc> forms)."""
    return count_marker("institutional_link", text)


def has_references_heading(text: str) -> bool:
    return has_marker("references_heading", text)


def has_references_section(headings: Iterable[str], text: str = "") -> bool:
    """A heading element that reads as a reference list, or a line of text that does."""
    return any(has_references_heading(h) for h in headings) or has_references_heading(text)


def has_opinion_markers(text: str) -> bool:
    return has_marker("opinion", text)


def has_methods_section(text: str) -> bool:
    return has_marker("methods_or_references", text)


def has_advertising_markers(text: str) -> bool:
    return has_marker("advertising", text)


def count_advertising_markers(text: str) -> int:
    return count_marker("advertising", text)


def has_research_markers(text: str) -> bool:
    return has_marker("informational", text)


def count_research_markers(text: str) -> int:
    return count_marker("informational", text)


def count_marketing_markers(text: str) -> int:
    return count_marker("marketing", text)


def has_technical_language(text: str) -> bool:
    return has_marker("technical", text)


def count_technical_markers(text: str) -> int:
    return count_marker("technical", text)

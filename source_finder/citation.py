"""Bibliographic citation strings built from page metadata."""

from __future__ import annotations

import re
from typing import List

from .extract import PRECISION_DAY, PRECISION_MONTH, parse_partial_date
from .models import PageMetadata
from .trust import host_of

MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
NO_DATE = "n.d."

_SITE_SUFFIX = re.compile(r"^(.*\S)\s+[-|–—·]\s+[^-|–—·]+$")


def _initials(tokens: List[str]) -> str:
    out = []
    for tok in tokens:
        letter = next((ch for ch in tok if ch.isalpha()), "")
        if letter:
            out.append(f"{letter.upper()}.")
    return " ".join(out)


def format_author(author: str) -> str:
    """
    "Smith, John A." -> "Smith, J. A."; "John A. Smith" -> "Smith, J. A.".
    A lone name is returned as-is.
    """
    author = re.sub(r"\s+", " ", (author or "")).strip()
    if not author:
        return ""
    if "," in author:
        surname, rest = author.split(",", 1)
        surname = surname.strip()
        given = [t for t in re.split(r"[\s.]+", rest) if t]
    else:
        parts = author.split(" ")
        surname = parts[-1]
        given = [t for t in re.split(r"[\s.]+", " ".join(parts[:-1])) if t]
    initials = _initials(given)
    if not surname:
        return initials
    return f"{surname}, {initials}" if initials else surname


def format_date_token(*candidates: str) -> str:
    """
    First parseable date as "YYYY, Month D", "YYYY, Month" or "YYYY" to the
    precision it was written with, else "n.d.".
    """
    for value in candidates:
        parsed = parse_partial_date(value)
        if not parsed:
            continue
        dt, precision = parsed
        if precision == PRECISION_DAY:
            return f"{dt.year}, {MONTHS[dt.month - 1]} {dt.day}"
        if precision == PRECISION_MONTH:
            return f"{dt.year}, {MONTHS[dt.month - 1]}"
        return str(dt.year)
    return NO_DATE


def strip_site_suffix(title: str) -> str:
    """Drop a trailing " - Site Name" (or "|", en/em dash) segment."""
    title = re.sub(r"\s+", " ", (title or "")).strip()
    m = _SITE_SUFFIX.match(title)
    return m.group(1).strip() if m else title


def format_citation(author: str, date_token: str, title: str, publisher: str, url: str) -> str:
    title = strip_site_suffix(title).rstrip(".") or url
    formatted_author = format_author(author)
    if formatted_author:
        return f"{formatted_author} ({date_token}). {title}. {publisher}. {url}"
    return f"{title}. ({date_token}). {publisher}. {url}"


def citation_for(meta: PageMetadata, title: str = "") -> str:
    return format_citation(
        author=meta.author,
        date_token=format_date_token(meta.modified_date, meta.published_date),
        title=title or meta.title,
        publisher=meta.publisher or host_of(meta.url),
        url=meta.url,
    )

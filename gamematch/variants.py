"""Alternate search strings for one raw title."""

import re
from typing import Dict, List, Tuple

from .normalize import normalize_display_title

# first subtitle / edition delimiter
_SUBTITLE_SPLIT_RE = re.compile(r"[:\-–—|]")
_GLYPH_RE = re.compile(r"[™©®]")
_WHITESPACE_RE = re.compile(r"\s+")


def truncate_subtitle(title: str) -> str:
    """Text before the first of ': - – — |', trimmed."""
    return _SUBTITLE_SPLIT_RE.split(title, maxsplit=1)[0].strip()


def strip_glyphs(title: str) -> str:
    return _WHITESPACE_RE.sub(" ", _GLYPH_RE.sub("", title)).strip()


def generate_variants(raw_title: str) -> List[str]:
    """
    Cover-search variants in cascade order: original, truncated, glyph-free.

    Works on the surface text so delimiters are still visible. Empty and
    duplicate variants are dropped.
    """
    original = (raw_title or "").strip()
    variants: List[str] = []
    for variant in (original, truncate_subtitle(original), strip_glyphs(original)):
        if variant and variant not in variants:
            variants.append(variant)
    return variants


def simplify_title(display_title: str) -> str:
    """Detail-search fallback: before the first ':' then before the first '-'."""
    return display_title.split(":", 1)[0].split("-", 1)[0].strip()


def alias_key(title: str) -> str:
    """Lookup key for the alias table: display-normalized, lowercased."""
    return normalize_display_title(title).lower()


def lookup_aliases(title: str, aliases: Dict[str, List[str]]) -> List[str]:
    """Aliases configured for a title, matching keys written with or without accents."""
    key = alias_key(title)
    for configured, alternates in aliases.items():
        if alias_key(configured) == key:
            return list(alternates)
    return []


def detail_query_plan(raw_title: str, aliases: Dict[str, List[str]]) -> List[Tuple[str, bool]]:
    """
    Detail-search cascade as (term, exclude_versions) pairs.

    Order: display title restricted to parent releases, simplified title,
    then any hand-curated aliases for the title. Empty terms and exact
    repeats are dropped.
    """
    base = normalize_display_title(raw_title)
    plan: List[Tuple[str, bool]] = [(base, True), (simplify_title(base), False)]
    plan.extend((alias.strip(), False) for alias in lookup_aliases(base, aliases))

    steps: List[Tuple[str, bool]] = []
    for step in plan:
        if step[0] and step not in steps:
            steps.append(step)
    return steps

import re
import unicodedata
from typing import Iterable, List, Optional, Set

from .config import DEFAULT_STOPWORDS

_COMBINING_RE = re.compile(r"[\u0300-\u036f]")
_APOSTROPHE_RE = re.compile(r"['\u2019]")
_NON_TOKEN_RE = re.compile(r"[^a-z0-9\s]")
_WHITESPACE_RE = re.compile(r"\s+")

ROMAN_NUMERALS = {
    "i": "1", "ii": "2", "iii": "3", "iv": "4", "v": "5",
    "vi": "6", "vii": "7", "viii": "8", "ix": "9", "x": "10",
    "xi": "11", "xii": "12", "xiii": "13", "xiv": "14", "xv": "15",
    "xvi": "16", "xvii": "17", "xviii": "18", "xix": "19", "xx": "20",
}

DISTINCTIVE_MIN_LENGTH = 4


def normalize_text(s: str) -> str:
    """Trim, lowercase and collapse whitespace. Used for lookup keys."""
    return " ".join(s.strip().lower().split())


def normalize_title(title: str) -> str:
    """
    Canonical form of a title for tokenizing.

    Strips diacritics (NFD), drops apostrophes ("Marvel's" -> "marvels"),
    spells out "&" and lowercases. Idempotent.
    """
    text = unicodedata.normalize("NFD", title or "")
    text = _COMBINING_RE.sub("", text)
    text = _APOSTROPHE_RE.sub("", text)
    text = text.replace("&", " and ")
    # lowercasing can reintroduce marks (e.g. "İ")
    text = unicodedata.normalize("NFD", text.lower())
    return _COMBINING_RE.sub("", text)


def normalize_display_title(title: str) -> str:
    """Display-safe title used for search terms: NFKD, no marks, one apostrophe form."""
    text = unicodedata.normalize("NFKD", title or "")
    text = _COMBINING_RE.sub("", text)
    text = text.replace("\u2019", "'")
    return _WHITESPACE_RE.sub(" ", text).strip()


def tokenize(normalized: str) -> List[str]:
    """Split a normalized title into [a-z0-9] tokens, Roman numerals as digits."""
    cleaned = _NON_TOKEN_RE.sub(" ", normalized)
    return [ROMAN_NUMERALS.get(tok, tok) for tok in cleaned.split()]


def filter_stopwords(tokens: Iterable[str], stopwords: Optional[Iterable[str]] = None) -> List[str]:
    words = DEFAULT_STOPWORDS if stopwords is None else stopwords
    return [tok for tok in tokens if tok not in words]


def distinctive_tokens(tokens: Iterable[str]) -> Set[str]:
    """Tokens long enough (or numeric enough) to require in any accepted match."""
    return {tok for tok in tokens if len(tok) >= DISTINCTIVE_MIN_LENGTH or tok.isdigit()}


def title_tokens(title: str, stopwords: Optional[Iterable[str]] = None) -> List[str]:
    """Full pipeline: normalize, tokenize, drop stopwords."""
    return filter_stopwords(tokenize(normalize_title(title)), stopwords)


def token_set(names: Iterable[str], stopwords: Optional[Iterable[str]] = None) -> Set[str]:
    """TokenSet over a bundle of names (e.g. a candidate's name plus alternates)."""
    tokens: Set[str] = set()
    for name in names:
        if name:
            tokens.update(title_tokens(name, stopwords))
    return tokens

"""
Rating and metadata refresh.

A game already linked to IGDB is looked up by id. Otherwise the display
title is searched among parent releases and the single top hit is taken,
provided it carries every distinctive token of the local title. The hit's
ratings, release date, companies, languages and preferred age rating
become the fields to store.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, Optional, Tuple

from .config import MatchSettings
from .logger import get_logger
from .normalize import distinctive_tokens, normalize_display_title, title_tokens, token_set
from .schema import Candidate, RatingMatch
from .scoring import covers_all
from .search import build_rating_query, build_rating_query_by_id

logger = get_logger()

NOT_RATED = "Not Rated"
UNRATED_LABELS = ("Not Rated", "NR")

# IGDB age_ratings.category
AGE_RATING_SYSTEMS = {1: "ESRB", 2: "PEGI", 3: "CERO", 4: "USK"}
PREFERRED_SYSTEMS = ("ESRB", "PEGI", "USK", "CERO")

# IGDB age_ratings.rating -> display code, per system
AGE_RATING_CODES: Dict[str, Dict[int, str]] = {
    "ESRB": {6: "E", 7: "E10+", 8: "T", 9: "M", 10: "AO", 12: "RP"},
    "PEGI": {1: "3", 2: "7", 3: "12", 4: "16", 5: "18"},
    "CERO": {1: "A", 2: "B", 3: "C", 4: "D", 5: "Z"},
    "USK": {0: "0", 1: "6", 2: "12", 3: "16", 4: "18"},
}


@dataclass(frozen=True)
class AgeRating:
    system: str
    label: str
    code: Optional[str] = None


def age_rating_label(category: Optional[int], rating: Optional[int]) -> Optional[AgeRating]:
    """Label for one IGDB age rating row, or None when either half is missing."""
    if category is None or rating is None:
        return None
    system = AGE_RATING_SYSTEMS.get(category)
    if system is None:
        return AgeRating("IARC", NOT_RATED)
    code = AGE_RATING_CODES[system].get(rating)
    if code is None:
        return AgeRating(system, f"{system} {NOT_RATED}", "NR")
    return AgeRating(system, f"{system} {code}", code)


def pick_age_rating(rows: Iterable[Tuple[Optional[int], Optional[int]]]) -> Optional[AgeRating]:
    """
    Preferred age rating among IGDB rows.

    ESRB wins over PEGI, then USK, then CERO. Anything else falls back to
    the first row that produced a label.
    """
    labels = [r for r in (age_rating_label(c, v) for c, v in rows or []) if r is not None]
    if not labels:
        return None
    for system in PREFERRED_SYSTEMS:
        for label in labels:
            if label.system == system:
                return label
    return labels[0]


def is_unrated(label: Optional[str]) -> bool:
    return label is None or label.strip() == "" or label in UNRATED_LABELS


def release_date(epoch_seconds: Optional[int]) -> Optional[date]:
    if epoch_seconds is None:
        return None
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).date()


def _round1(value: Optional[float]) -> Optional[float]:
    return round(value, 1) if value is not None else None


def rating_fields(candidate: Candidate) -> Dict[str, Any]:
    """Columns to store for one IGDB hit. Values IGDB did not return are left out."""
    age = pick_age_rating(candidate.age_ratings)
    fields = {
        "igdb_id": candidate.igdb_id,
        "igdb_slug": candidate.slug,
        "igdb_rating": _round1(candidate.total_rating),
        "igdb_user_rating": _round1(candidate.rating),
        "igdb_critic_rating": _round1(candidate.aggregated_rating),
        "igdb_rating_count": candidate.rating_count,
        "first_release_date": release_date(candidate.first_release_date),
        "developers": candidate.developers or None,
        "publishers": candidate.publishers or None,
        "languages": candidate.languages or None,
        "age_rating_system": age.system if age else None,
        "age_rating_label": age.label if age else None,
        "age_rating_code": age.code if age else None,
    }
    return {k: v for k, v in fields.items() if v is not None}


class RatingMatcher:
    def __init__(self, search_client, settings: Optional[MatchSettings] = None):
        self.search_client = search_client
        self.settings = settings or MatchSettings()

    def match(self, title: str, igdb_id: Optional[int] = None) -> Optional[RatingMatch]:
        if igdb_id:
            query = f"id {igdb_id}"
            candidates = self.search_client.search(build_rating_query_by_id(igdb_id))
        else:
            query = normalize_display_title(title)
            if not query:
                return None
            candidates = self.search_client.search(build_rating_query(query))

        if not candidates or candidates[0].igdb_id is None:
            return None
        candidate = candidates[0]

        if not igdb_id and not self._passes_gate(title, candidate):
            logger.debug("Rating candidate rejected", title=title, candidate=candidate.name)
            return None

        return RatingMatch(
            name=candidate.name,
            igdb_id=candidate.igdb_id,
            fields=rating_fields(candidate),
            query=query,
        )

    def _passes_gate(self, title: str, candidate: Candidate) -> bool:
        stopwords = self.settings.stopwords
        required = distinctive_tokens(title_tokens(title, stopwords))
        return covers_all(token_set(candidate.names, stopwords), required)

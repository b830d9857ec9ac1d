from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from .normalize import normalize_text

ALLOWED_IMAGE_HOSTS = {
    "images.igdb.com",
    "image.api.playstation.com",
    "shared.akamai.steamstatic.com",
    "bnetcmsus-a.akamaihd.net",
    "res.cloudinary.com",
}


@dataclass(frozen=True)
class CatalogRecord:
    """A locally stored catalog title and the fields we may backfill."""

    id: int
    title: str
    description: Optional[str] = None
    genres: List[str] = field(default_factory=list)
    cover_url: Optional[str] = None
    igdb_id: Optional[int] = None
    age_rating_label: Optional[str] = None


@dataclass(frozen=True)
class Candidate:
    """One external search hit."""

    name: str
    igdb_id: Optional[int] = None
    alternative_names: List[str] = field(default_factory=list)
    image_id: Optional[str] = None
    summary: Optional[str] = None
    genres: List[str] = field(default_factory=list)
    slug: Optional[str] = None
    first_release_date: Optional[int] = None  # epoch seconds
    rating: Optional[float] = None  # users
    rating_count: Optional[int] = None
    aggregated_rating: Optional[float] = None  # critics
    total_rating: Optional[float] = None
    developers: List[str] = field(default_factory=list)
    publishers: List[str] = field(default_factory=list)
    languages: List[str] = field(default_factory=list)
    age_ratings: List[Tuple[Optional[int], Optional[int]]] = field(default_factory=list)  # (category, rating)

    @property
    def names(self) -> List[str]:
        return [self.name, *self.alternative_names]


@dataclass(frozen=True)
class CoverMatch:
    url: str
    source: str  # "search" or "override"
    name: Optional[str] = None
    image_id: Optional[str] = None
    score: Optional[float] = None


@dataclass(frozen=True)
class DetailMatch:
    name: str
    description: Optional[str]
    genres: List[str]
    external_genres: List[str]
    query: str


@dataclass(frozen=True)
class RatingMatch:
    name: str
    igdb_id: int
    fields: Dict[str, Any]  # column name -> value, only what IGDB returned
    query: str


def _is_non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and v.strip() != ""


def _valid_url(v: str) -> bool:
    try:
        p = urlparse(v)
        return bool(p.scheme and p.netloc)
    except ValueError:
        return False


def is_allowed_cover_url(url: str) -> bool:
    """https URL on one of the image hosts the catalog accepts."""
    if not _is_non_empty_str(url) or not _valid_url(url):
        return False
    p = urlparse(url)
    return p.scheme == "https" and (p.hostname or "").lower() in ALLOWED_IMAGE_HOSTS


def parse_candidate(payload: Dict[str, Any]) -> Optional[Candidate]:
    """
    Build a Candidate from one IGDB game object.

    Returns None when the payload has no usable name. A cover given as a
    bare id (not expanded) has no image_id.
    """
    if not isinstance(payload, dict) or not _is_non_empty_str(payload.get("name")):
        return None

    cover = payload.get("cover")
    image_id = None
    if isinstance(cover, dict) and _is_non_empty_str(cover.get("image_id")):
        image_id = cover["image_id"].strip()

    alt_names = [
        a["name"] for a in payload.get("alternative_names") or []
        if isinstance(a, dict) and _is_non_empty_str(a.get("name"))
    ]
    genres = [
        g["name"] for g in payload.get("genres") or []
        if isinstance(g, dict) and _is_non_empty_str(g.get("name"))
    ]
    summary = payload.get("summary")
    slug = payload.get("slug")

    companies = [c for c in payload.get("involved_companies") or [] if isinstance(c, dict)]
    languages = [
        _nested_name(l.get("language")) for l in payload.get("language_supports") or []
        if isinstance(l, dict)
    ]
    age_ratings = [
        (_int_or_none(a.get("category")), _int_or_none(a.get("rating")))
        for a in payload.get("age_ratings") or [] if isinstance(a, dict)
    ]

    igdb_id = payload.get("id")
    return Candidate(
        name=payload["name"].strip(),
        igdb_id=_int_or_none(igdb_id),
        alternative_names=alt_names,
        image_id=image_id,
        summary=summary.strip() if _is_non_empty_str(summary) else None,
        genres=genres,
        slug=slug.strip() if _is_non_empty_str(slug) else None,
        first_release_date=_int_or_none(payload.get("first_release_date")),
        rating=_number_or_none(payload.get("rating")),
        rating_count=_int_or_none(payload.get("rating_count")),
        aggregated_rating=_number_or_none(payload.get("aggregated_rating")),
        total_rating=_number_or_none(payload.get("total_rating")),
        developers=_unique(_nested_name(c.get("company")) for c in companies if c.get("developer")),
        publishers=_unique(_nested_name(c.get("company")) for c in companies if c.get("publisher")),
        languages=_unique(languages),
        age_ratings=age_ratings,
    )


def _int_or_none(v: Any) -> Optional[int]:
    return v if isinstance(v, int) and not isinstance(v, bool) else None


def _number_or_none(v: Any) -> Optional[float]:
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return None
    return float(v)


def _nested_name(obj: Any) -> Optional[str]:
    if isinstance(obj, dict) and _is_non_empty_str(obj.get("name")):
        return obj["name"].strip()
    return None


def _unique(names) -> List[str]:
    """Non-empty names in first-seen order."""
    seen: List[str] = []
    for name in names:
        if name and name not in seen:
            seen.append(name)
    return seen


def parse_candidates(data: Any) -> List[Candidate]:
    if not isinstance(data, list):
        return []
    candidates = []
    for item in data:
        candidate = parse_candidate(item)
        if candidate is not None:
            candidates.append(candidate)
    return candidates


def _override_entries(data: Any) -> List[Any]:
    if isinstance(data, dict):
        return [{"title": k, "url": v} for k, v in data.items()]
    if isinstance(data, list):
        return data
    return []


def validate_overrides(data: Any) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.

    Accepts either {"title": "url", ...} or [{"title": ..., "url": ...}].
    """
    if not isinstance(data, (dict, list)):
        return ["Overrides must be a JSON object or a list of {title, url} objects"]

    errors: List[str] = []
    for i, entry in enumerate(_override_entries(data)):
        if not isinstance(entry, dict):
            errors.append(f"Override #{i}: must be an object with 'title' and 'url'")
            continue
        if not _is_non_empty_str(entry.get("title")):
            errors.append(f"Override #{i}: 'title' must be a non-empty string")
        if not _is_non_empty_str(entry.get("url")) or not _valid_url(entry["url"]):
            errors.append(f"Override #{i}: 'url' must be a valid absolute URL (scheme + host)")
    return errors


def build_override_map(data: Any) -> Dict[str, str]:
    """Normalized title -> URL. Invalid entries are skipped (see validate_overrides)."""
    overrides: Dict[str, str] = {}
    for entry in _override_entries(data):
        if not isinstance(entry, dict):
            continue
        title, url = entry.get("title"), entry.get("url")
        if _is_non_empty_str(title) and _is_non_empty_str(url):
            overrides[normalize_text(title)] = url.strip()
    return overrides


def validate_catalog_entry(data: Any) -> List[str]:
    """Validation for titles fed to `gamematch import`."""
    if isinstance(data, str):
        return [] if data.strip() else ["Title must be a non-empty string"]
    if not isinstance(data, dict):
        return ["Entry must be a title string or an object"]

    errors: List[str] = []
    if not _is_non_empty_str(data.get("title")):
        errors.append("Field 'title' must be a non-empty string")
    for f in ("description", "cover_url", "age_rating_label"):
        if f in data and data[f] is not None and not isinstance(data[f], str):
            errors.append(f"Field '{f}' must be a string if provided")
    genres = data.get("genres")
    if genres is not None and not (isinstance(genres, list) and all(isinstance(g, str) for g in genres)):
        errors.append("Field 'genres' must be a list of strings if provided")
    return errors

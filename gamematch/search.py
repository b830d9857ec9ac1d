"""IGDB query bodies (Apicalypse syntax) for the match passes."""

COVER_FIELDS = ["name", "cover.image_id", "alternative_names.name"]
DETAIL_FIELDS = ["name", "summary", "genres.name"]
RATING_FIELDS = [
    "id", "name", "slug", "alternative_names.name", "first_release_date",
    "rating", "rating_count", "aggregated_rating", "total_rating",
    "age_ratings.category", "age_ratings.rating",
    "involved_companies.company.name", "involved_companies.developer",
    "involved_companies.publisher", "language_supports.language.name",
]


def escape_term(term: str) -> str:
    """Quote-safe search term: escape backslashes and double quotes."""
    return term.replace("\\", "\\\\").replace('"', '\\"')


def build_search_query(
    term: str,
    fields: list[str],
    limit: int = 1,
    exclude_versions: bool = False,
) -> str:
    """
    Returns the request body for POST /v4/games.
    term: free-text search string (escaped here).
    exclude_versions: keep only parent releases (no editions/bundles).
    """
    parts = [f'search "{escape_term(term)}";', f"fields {', '.join(fields)};"]
    if exclude_versions:
        parts.append("where version_parent = null;")
    parts.append(f"limit {limit};")
    return " ".join(parts)


def build_cover_query(term: str, limit: int = 7) -> str:
    return build_search_query(term, COVER_FIELDS, limit=limit)


def build_detail_query(term: str, exclude_versions: bool = False) -> str:
    return build_search_query(term, DETAIL_FIELDS, limit=1, exclude_versions=exclude_versions)


def build_rating_query(term: str) -> str:
    return build_search_query(term, RATING_FIELDS, limit=1, exclude_versions=True)


def build_rating_query_by_id(igdb_id: int) -> str:
    """Lookup of an already linked game; no search, no version filter."""
    return f"fields {', '.join(RATING_FIELDS)}; where id = {int(igdb_id)}; limit 1;"

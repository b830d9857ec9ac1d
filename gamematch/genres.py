from typing import Iterable, List, Mapping, Optional

from .config import DEFAULT_GENRE_MAP


def map_genres(external: Iterable[str], genre_map: Optional[Mapping[str, str]] = None) -> List[str]:
    """
    Collapse external genre labels into product genres.

    Unknown labels are dropped. Output is deduplicated, first-seen order.
    """
    table = DEFAULT_GENRE_MAP if genre_map is None else genre_map
    mapped: List[str] = []
    for label in external:
        genre = table.get((label or "").strip())
        if genre and genre not in mapped:
            mapped.append(genre)
    return mapped

"""
Match settings and editorial data.

The stopword list, alias table and genre map are hand-curated data, not
rules. They ship as defaults here and can be replaced or extended from a
JSON settings file (see load_settings).
"""

import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional

from .errors import ConfigurationError

DEFAULT_STOPWORDS = frozenset({
    # edition / marketing filler (en + es)
    "edition", "editions", "deluxe", "ultimate", "definitive", "remastered",
    "remake", "goty", "complete", "collection", "director", "directors",
    "cut", "hd", "enhanced", "year", "gold", "platinum",
    "edicion", "definitiva", "remasterizado", "remasterizada", "completa",
    "coleccion", "aniversario",
    # generic nouns
    "juego", "videojuego",
    # trademark glyphs
    "tm", "©", "®",
    # spanish function words
    "el", "la", "los", "las", "de", "del", "y",
})

DEFAULT_TITLE_ALIASES: Dict[str, List[str]] = {
    "marvel's spiderman": ["marvel's spider-man"],
    "resident evil 8": ["resident evil village", "re8"],
}

DEFAULT_GENRE_MAP: Dict[str, str] = {
    "Action": "Acción",
    "Adventure": "Acción",
    "Fighting": "Acción",
    "Platform": "Acción",
    "Hack and slash/Beat 'em up": "Acción",
    "Role-playing (RPG)": "RPG",
    "Racing": "Carreras",
    "Shooter": "Shooter",
    "Strategy": "Estrategia",
    "Tactical": "Estrategia",
    "Real Time Strategy (RTS)": "Estrategia",
    "Turn-based strategy (TBS)": "Estrategia",
    "Simulator": "Sandbox",
    "Indie": "Sandbox",
    "Puzzle": "Sandbox",
    "Sport": "Deportes",
    "Sports": "Deportes",
}


@dataclass(frozen=True)
class MatchSettings:
    """Tunables shared by the matchers and the batch driver."""

    min_score: float = 0.55
    early_exit_score: float = 0.75
    search_limit: int = 7
    query_delay: float = 0.25
    rating_delay: float = 0.18
    translate_target: str = "es"
    max_text_length: int = 4000
    sample_size: int = 10
    stopwords: FrozenSet[str] = DEFAULT_STOPWORDS
    title_aliases: Dict[str, List[str]] = field(default_factory=lambda: dict(DEFAULT_TITLE_ALIASES))
    genre_map: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_GENRE_MAP))

    def with_overrides(self, **overrides: Any) -> "MatchSettings":
        """Return a copy with the non-None overrides applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        updated = replace(self, **values)
        validate_settings(updated)
        return updated


_FLOAT_KEYS = ("min_score", "early_exit_score", "query_delay", "rating_delay")
_INT_KEYS = ("search_limit", "max_text_length", "sample_size")


def validate_settings(settings: MatchSettings) -> None:
    """Raise ConfigurationError if any tunable is out of range."""
    for key in ("min_score", "early_exit_score"):
        value = getattr(settings, key)
        if not 0.0 <= value <= 1.0:
            raise ConfigurationError(f"{key} must be between 0 and 1 (got {value})")
    if settings.early_exit_score < settings.min_score:
        raise ConfigurationError(
            f"early_exit_score ({settings.early_exit_score}) must not be below min_score ({settings.min_score})"
        )
    if settings.search_limit < 1:
        raise ConfigurationError("search_limit must be at least 1")
    for key in ("query_delay", "rating_delay"):
        if getattr(settings, key) < 0:
            raise ConfigurationError(f"{key} must not be negative")
    if settings.max_text_length < 1:
        raise ConfigurationError("max_text_length must be at least 1")
    if settings.sample_size < 0:
        raise ConfigurationError("sample_size must not be negative")


def _list_of_words(data: Dict[str, Any], key: str) -> List[str]:
    value = data.get(key, [])
    if not isinstance(value, list):
        raise ConfigurationError(f"'{key}' must be a list of strings")
    return [str(w).lower() for w in value]


def _mapping(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key, {})
    if not isinstance(value, dict):
        raise ConfigurationError(f"'{key}' must be a JSON object")
    return value


def load_settings(path: Optional[Path] = None) -> MatchSettings:
    """
    Build MatchSettings from defaults plus an optional JSON file.

    Recognised keys: the scalar tunables, "stopwords" (replaces the
    default set), "extra_stopwords" (extends it), "title_aliases" and
    "genre_map" (merged over the defaults).
    """
    settings = MatchSettings()
    if path is None:
        return settings

    if not path.exists():
        raise ConfigurationError(f"Settings file not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Settings file is not valid JSON: {path} ({e})")
    if not isinstance(data, dict):
        raise ConfigurationError("Settings file must contain a JSON object")

    values: Dict[str, Any] = {}
    try:
        for key in _FLOAT_KEYS:
            if key in data:
                values[key] = float(data[key])
        for key in _INT_KEYS:
            if key in data:
                values[key] = int(data[key])
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid numeric setting: {e}")

    if "translate_target" in data:
        values["translate_target"] = str(data["translate_target"])

    stopwords = set(settings.stopwords)
    if "stopwords" in data:
        stopwords = set(_list_of_words(data, "stopwords"))
    stopwords.update(_list_of_words(data, "extra_stopwords"))
    values["stopwords"] = frozenset(stopwords)

    aliases = dict(settings.title_aliases)
    for title, alts in _mapping(data, "title_aliases").items():
        if isinstance(alts, str):
            alts = [alts]
        if not isinstance(alts, list):
            raise ConfigurationError(f"Aliases for '{title}' must be a string or a list of strings")
        aliases[title.strip().lower()] = [str(a) for a in alts]
    values["title_aliases"] = aliases

    genre_map = dict(settings.genre_map)
    genre_map.update({str(k): str(v) for k, v in _mapping(data, "genre_map").items()})
    values["genre_map"] = genre_map

    settings = replace(settings, **values)
    validate_settings(settings)
    return settings

"""
Pytest configuration, in-memory collaborators and shared fixtures.
"""

import re
from typing import Dict, List

import pytest

from gamematch.config import MatchSettings
from gamematch.schema import Candidate, CatalogRecord
from gamematch.storage import SqlCatalogStore, needs_cover, needs_details, needs_ratings

_SEARCH_TERM_RE = re.compile(r'^search "((?:[^"\\]|\\.)*)";')
_BY_ID_RE = re.compile(r"where id = (\d+);")


def search_term(query: str) -> str:
    """Unescaped search term of an IGDB query body, or "#<id>" for an id lookup."""
    by_id = _BY_ID_RE.search(query)
    if by_id and not query.startswith("search"):
        return f"#{by_id.group(1)}"
    match = _SEARCH_TERM_RE.match(query)
    assert match, f"not a search query: {query}"
    return re.sub(r"\\(.)", r"\1", match.group(1))


class FakeSearchClient:
    """Catalog search keyed by search term. Unknown terms return nothing."""

    def __init__(self, responses: Dict[str, object] = None):
        self.responses = responses or {}
        self.queries: List[str] = []
        self.authenticated = 0

    def authenticate(self):
        self.authenticated += 1

    def search(self, query: str) -> List[Candidate]:
        self.queries.append(query)
        result = self.responses.get(search_term(query), [])
        if isinstance(result, Exception):
            raise result
        return list(result)

    @property
    def terms(self) -> List[str]:
        return [search_term(q) for q in self.queries]


class FailingAuthSearchClient(FakeSearchClient):
    def __init__(self, error: Exception):
        super().__init__()
        self.error = error

    def authenticate(self):
        raise self.error


class FakeTranslator:
    def __init__(self, prefix: str = "ES: ", error: Exception = None):
        self.prefix = prefix
        self.error = error
        self.calls: List[str] = []

    def translate(self, text: str) -> str:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return f"{self.prefix}{text}"


class FakeCatalogStore:
    """In-memory store; ids listed in fail_ids raise on persist."""

    def __init__(self, records: List[CatalogRecord], fail_ids=()):
        self.records = list(records)
        self.fail_ids = set(fail_ids)
        self.persisted: List[tuple] = []

    def count_records(self):
        return len(self.records)

    def list_pending_covers(self, overwrite=False):
        return [r for r in self.records if needs_cover(r, overwrite)]

    def list_pending_details(self, overwrite=False):
        return [r for r in self.records if needs_details(r, overwrite)]

    def list_pending_ratings(self, only_missing=True):
        return [r for r in self.records if needs_ratings(r, only_missing)]

    def persist(self, record_id, fields):
        if record_id in self.fail_ids:
            raise RuntimeError("database is locked")
        self.persisted.append((record_id, dict(fields)))


def cover_candidate(name: str, image_id: str = "co1abc", alt_names=()) -> Candidate:
    return Candidate(name=name, image_id=image_id, alternative_names=list(alt_names))


def detail_candidate(name: str, summary: str = "A game.", genres=()) -> Candidate:
    return Candidate(name=name, summary=summary, genres=list(genres))


def rating_candidate(name: str, igdb_id: int = 1942, alt_names=(), **fields) -> Candidate:
    return Candidate(name=name, igdb_id=igdb_id, alternative_names=list(alt_names), **fields)


@pytest.fixture
def settings() -> MatchSettings:
    return MatchSettings()


@pytest.fixture
def no_sleep():
    """Sleep replacement that records requested delays."""
    delays: List[float] = []

    def _sleep(seconds: float):
        delays.append(seconds)

    _sleep.delays = delays
    return _sleep


@pytest.fixture
def sample_records() -> List[CatalogRecord]:
    return [
        CatalogRecord(id=1, title="The Witcher 3: Wild Hunt"),
        CatalogRecord(id=2, title="Hollow Knight", cover_url="https://images.igdb.com/igdb/image/upload/t_cover_big/co93cr.jpg"),
        CatalogRecord(id=3, title="Celeste", description="Climb the mountain.", genres=["Acción"]),
        CatalogRecord(id=4, title="Unknown Indie Thing"),
    ]


@pytest.fixture
def sql_store(tmp_path):
    store = SqlCatalogStore(tmp_path / "catalog.db")
    yield store
    store.close()

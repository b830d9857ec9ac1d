from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import sessionmaker

from .database import Game, get_engine, init_database
from .normalize import normalize_text
from .ratings import is_unrated
from .schema import CatalogRecord, is_allowed_cover_url

RATING_FIELDS = (
    "igdb_id", "igdb_slug", "igdb_rating", "igdb_user_rating", "igdb_critic_rating",
    "igdb_rating_count", "first_release_date", "developers", "publishers", "languages",
    "age_rating_system", "age_rating_label", "age_rating_code",
)
WRITABLE_FIELDS = ("cover_url", "description", "genres") + RATING_FIELDS


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


def merge_fields(record: CatalogRecord, fields: Dict[str, Any], overwrite: bool = False) -> Dict[str, Any]:
    """
    Subset of `fields` that should be written to `record`.

    Empty new values are never written. Existing values are kept unless
    overwrite is set.
    """
    merged = {}
    for key, value in fields.items():
        if _is_blank(value):
            continue
        if overwrite or _is_blank(getattr(record, key, None)):
            merged[key] = value
    return merged


def needs_cover(record: CatalogRecord, overwrite: bool = False) -> bool:
    return overwrite or _is_blank(record.cover_url)


def needs_details(record: CatalogRecord, overwrite: bool = False) -> bool:
    return overwrite or _is_blank(record.description) or _is_blank(record.genres)


def needs_ratings(record: CatalogRecord, only_missing: bool = True) -> bool:
    """Without only_missing every record is refreshed."""
    return not only_missing or is_unrated(record.age_rating_label)


def record_from_game(game: Game) -> CatalogRecord:
    return CatalogRecord(
        id=game.id,
        title=game.title,
        description=game.description,
        genres=list(game.genres or []),
        cover_url=game.cover_url,
        igdb_id=game.igdb_id,
        age_rating_label=game.age_rating_label,
    )


class SqlCatalogStore:
    """Catalog store on SQLite. Lists pending records and persists resolved fields."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        init_database(self.db_path)
        self._engine = get_engine(self.db_path)
        self._Session = sessionmaker(bind=self._engine)

    def close(self) -> None:
        self._engine.dispose()

    def list_records(self) -> List[CatalogRecord]:
        session = self._Session()
        try:
            return [record_from_game(g) for g in session.query(Game).order_by(Game.id).all()]
        finally:
            session.close()

    def count_records(self) -> int:
        session = self._Session()
        try:
            return session.query(Game).count()
        finally:
            session.close()

    def get_record(self, record_id: int) -> Optional[CatalogRecord]:
        session = self._Session()
        try:
            game = session.get(Game, record_id)
            return record_from_game(game) if game is not None else None
        finally:
            session.close()

    def list_pending_covers(self, overwrite: bool = False) -> List[CatalogRecord]:
        return [r for r in self.list_records() if needs_cover(r, overwrite)]

    def list_pending_details(self, overwrite: bool = False) -> List[CatalogRecord]:
        return [r for r in self.list_records() if needs_details(r, overwrite)]

    def list_pending_ratings(self, only_missing: bool = True) -> List[CatalogRecord]:
        return [r for r in self.list_records() if needs_ratings(r, only_missing)]

    def persist(self, record_id: int, fields: Dict[str, Any]) -> None:
        """
        Write resolved fields for one record.

        Raises:
            KeyError: record does not exist
            ValueError: unknown field or a cover URL on a host we don't accept
        """
        unknown = set(fields) - set(WRITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot write fields: {', '.join(sorted(unknown))}")
        if "cover_url" in fields and not is_allowed_cover_url(fields["cover_url"]):
            raise ValueError(f"Image host not allowed: {fields['cover_url']}")

        session = self._Session()
        try:
            game = session.get(Game, record_id)
            if game is None:
                raise KeyError(f"Game {record_id} not found")
            for key, value in fields.items():
                setattr(game, key, list(value) if isinstance(value, (list, tuple)) else value)
            if set(fields) & set(RATING_FIELDS):
                game.last_igdb_sync_at = datetime.now()
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def add_titles(self, entries: Iterable[Any]) -> Dict[str, int]:
        """
        Insert catalog titles (strings or dicts with 'title' and optional
        fields). Titles already present (case/whitespace-insensitive) are
        skipped.
        """
        session = self._Session()
        added = skipped = 0
        try:
            existing = {normalize_text(t) for (t,) in session.query(Game.title).all()}
            for entry in entries:
                data = {"title": entry} if isinstance(entry, str) else dict(entry)
                key = normalize_text(data["title"])
                if key in existing:
                    skipped += 1
                    continue
                existing.add(key)
                session.add(Game(
                    title=data["title"].strip(),
                    description=data.get("description"),
                    genres=data.get("genres"),
                    cover_url=data.get("cover_url"),
                    age_rating_label=data.get("age_rating_label"),
                ))
                added += 1
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
        return {"added": added, "skipped": skipped}

"""
Tests for the SQLite catalog store and field merging.
"""

from datetime import date

import pytest

from gamematch.database import Game, get_session
from gamematch.schema import CatalogRecord
from gamematch.storage import merge_fields, needs_cover, needs_details, needs_ratings

IGDB_COVER = "https://images.igdb.com/igdb/image/upload/t_cover_big_2x/co1wyy.jpg"


class TestMergeFields:
    """Test the fill-only-empty merge policy."""

    def test_fills_empty_fields(self):
        record = CatalogRecord(id=1, title="Hades")
        merged = merge_fields(record, {"description": "Escape.", "genres": ["Acción"]})
        assert merged == {"description": "Escape.", "genres": ["Acción"]}

    def test_keeps_existing_values(self):
        record = CatalogRecord(id=1, title="Hades", description="Sinopsis.")
        merged = merge_fields(record, {"description": "Escape.", "genres": ["Acción"]})
        assert merged == {"genres": ["Acción"]}

    def test_overwrite_replaces(self):
        record = CatalogRecord(id=1, title="Hades", description="Sinopsis.", genres=["RPG"])
        merged = merge_fields(record, {"description": "Escape.", "genres": ["Acción"]}, overwrite=True)
        assert merged == {"description": "Escape.", "genres": ["Acción"]}

    def test_empty_new_values_never_written(self):
        record = CatalogRecord(id=1, title="Hades", description="Sinopsis.", genres=["RPG"])
        merged = merge_fields(record, {"description": "  ", "genres": []}, overwrite=True)
        assert merged == {}

    def test_blank_existing_counts_as_empty(self):
        record = CatalogRecord(id=1, title="Hades", description="   ")
        assert merge_fields(record, {"description": "Escape."}) == {"description": "Escape."}


class TestPendingPredicates:
    def test_needs_cover(self):
        assert needs_cover(CatalogRecord(id=1, title="a"))
        assert not needs_cover(CatalogRecord(id=1, title="a", cover_url=IGDB_COVER))
        assert needs_cover(CatalogRecord(id=1, title="a", cover_url=IGDB_COVER), overwrite=True)

    def test_needs_details_when_either_missing(self):
        assert needs_details(CatalogRecord(id=1, title="a", description="x"))
        assert needs_details(CatalogRecord(id=1, title="a", genres=["RPG"]))
        assert not needs_details(CatalogRecord(id=1, title="a", description="x", genres=["RPG"]))

    def test_needs_ratings_only_when_unrated(self):
        assert needs_ratings(CatalogRecord(id=1, title="a"))
        assert needs_ratings(CatalogRecord(id=1, title="a", age_rating_label="NR"))
        assert needs_ratings(CatalogRecord(id=1, title="a", age_rating_label="Not Rated"))
        assert not needs_ratings(CatalogRecord(id=1, title="a", age_rating_label="PEGI 12"))
        assert needs_ratings(CatalogRecord(id=1, title="a", age_rating_label="PEGI 12"), only_missing=False)


class TestSqlCatalogStore:
    """Test the SQLAlchemy-backed store."""

    def test_add_titles_and_list(self, sql_store):
        counts = sql_store.add_titles(["Celeste", {"title": "Hades", "genres": ["Acción"]}])

        assert counts == {"added": 2, "skipped": 0}
        records = sql_store.list_records()
        assert [r.title for r in records] == ["Celeste", "Hades"]
        assert records[1].genres == ["Acción"]
        assert records[0].genres == []

    def test_add_titles_skips_existing(self, sql_store):
        sql_store.add_titles(["Hollow Knight"])

        counts = sql_store.add_titles(["  hollow   KNIGHT ", "Celeste", "celeste"])

        assert counts == {"added": 1, "skipped": 2}

    def test_pending_lists(self, sql_store):
        sql_store.add_titles([
            "Celeste",
            {"title": "Hades", "cover_url": IGDB_COVER, "description": "x", "genres": ["RPG"]},
        ])

        assert [r.title for r in sql_store.list_pending_covers()] == ["Celeste"]
        assert [r.title for r in sql_store.list_pending_details()] == ["Celeste"]
        assert len(sql_store.list_pending_covers(overwrite=True)) == 2

    def test_persist_cover(self, sql_store):
        sql_store.add_titles(["Celeste"])
        record_id = sql_store.list_records()[0].id

        sql_store.persist(record_id, {"cover_url": IGDB_COVER})

        assert sql_store.get_record(record_id).cover_url == IGDB_COVER
        assert sql_store.list_pending_covers() == []

    def test_persist_details(self, sql_store):
        sql_store.add_titles(["Hades"])
        record_id = sql_store.list_records()[0].id

        sql_store.persist(record_id, {"description": "Escapa del inframundo.", "genres": ["Acción", "RPG"]})

        record = sql_store.get_record(record_id)
        assert record.description == "Escapa del inframundo."
        assert record.genres == ["Acción", "RPG"]

    def test_persist_rejects_disallowed_host(self, sql_store):
        sql_store.add_titles(["Celeste"])
        record_id = sql_store.list_records()[0].id

        with pytest.raises(ValueError):
            sql_store.persist(record_id, {"cover_url": "https://evil.example.com/c.jpg"})
        assert sql_store.get_record(record_id).cover_url is None

    def test_persist_rejects_unknown_field(self, sql_store):
        sql_store.add_titles(["Celeste"])

        with pytest.raises(ValueError):
            sql_store.persist(sql_store.list_records()[0].id, {"title": "Renamed"})

    def test_persist_missing_record(self, sql_store):
        with pytest.raises(KeyError):
            sql_store.persist(999, {"description": "x"})

    def test_get_missing_record(self, sql_store):
        assert sql_store.get_record(42) is None

    def test_count_records_includes_completed(self, sql_store):
        sql_store.add_titles([
            "Celeste",
            {"title": "Hades", "cover_url": IGDB_COVER, "description": "x", "genres": ["RPG"]},
        ])

        assert sql_store.count_records() == 2
        assert len(sql_store.list_pending_covers()) == 1

    def test_pending_ratings(self, sql_store):
        sql_store.add_titles([
            "Celeste",
            {"title": "Hades", "age_rating_label": "ESRB T"},
            {"title": "Halo Infinite", "age_rating_label": "NR"},
        ])

        assert [r.title for r in sql_store.list_pending_ratings()] == ["Celeste", "Halo Infinite"]
        assert len(sql_store.list_pending_ratings(only_missing=False)) == 3

    def test_persist_ratings_stamps_sync_time(self, sql_store):
        sql_store.add_titles(["Hades"])
        record_id = sql_store.list_records()[0].id

        sql_store.persist(record_id, {
            "igdb_id": 113112,
            "igdb_rating": 92.5,
            "first_release_date": date(2020, 9, 18),
            "developers": ["Supergiant Games"],
            "age_rating_label": "ESRB T",
        })

        record = sql_store.get_record(record_id)
        assert record.igdb_id == 113112
        assert record.age_rating_label == "ESRB T"
        session = get_session(sql_store.db_path)
        try:
            game = session.get(Game, record_id)
            assert game.first_release_date == date(2020, 9, 18)
            assert game.developers == ["Supergiant Games"]
            assert game.last_igdb_sync_at is not None
        finally:
            session.close()

    def test_cover_write_leaves_sync_time_unset(self, sql_store):
        sql_store.add_titles(["Celeste"])
        record_id = sql_store.list_records()[0].id

        sql_store.persist(record_id, {"cover_url": IGDB_COVER})

        session = get_session(sql_store.db_path)
        try:
            assert session.get(Game, record_id).last_igdb_sync_at is None
        finally:
            session.close()

"""
Batch backfill runs.

Each run pulls pending records from the store, truncates them to `limit`,
and resolves titles one at a time. Per-title failures become notes in the
summary sample; only a ConfigurationError (credentials) aborts the run.
"""

import time
from typing import Any, Callable, Dict, List, Optional

from .config import MatchSettings
from .covers import CoverMatcher
from .details import DetailMatcher
from .errors import ConfigurationError, NoMatchFound
from .logger import get_logger
from .ratings import RatingMatcher
from .schema import CatalogRecord, is_allowed_cover_url
from .storage import merge_fields

logger = get_logger()

NOTE_NO_MATCH = "no match in IGDB"
NOTE_URL_NOT_ALLOWED = "URL not allowed"
NOTE_NOTHING_TO_UPDATE = "nothing to update"
PREVIEW_LENGTH = 160


def _truncate(records: List[CatalogRecord], limit: Optional[int]) -> List[CatalogRecord]:
    if limit is None:
        return records
    return records[: max(0, limit)]


def preview(text: Optional[str], length: int = PREVIEW_LENGTH) -> str:
    if not text:
        return ""
    return text[:length] + ("…" if len(text) > length else "")


def _summary(
    total: int,
    pending: List[CatalogRecord],
    batch: List[CatalogRecord],
    updated: int,
    sample: List[Dict[str, Any]],
    settings: MatchSettings,
    **flags: Any,
) -> Dict[str, Any]:
    return {
        "candidates": total,
        "pending": len(pending),
        "processed": len(batch),
        "updated": updated,
        **flags,
        "sample": sample[: settings.sample_size],
    }


def run_cover_backfill(
    store,
    search_client,
    settings: Optional[MatchSettings] = None,
    overrides: Optional[Dict[str, str]] = None,
    dry_run: bool = False,
    overwrite: bool = False,
    size2x: bool = True,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    """Resolve and persist cover URLs for records without one."""
    settings = settings or MatchSettings()
    pending = store.list_pending_covers(overwrite)
    batch = _truncate(pending, limit)
    logger.info("Starting cover backfill", pending=len(pending), batch=len(batch),
                dry_run=dry_run, overwrite=overwrite)
    if batch:
        search_client.authenticate()

    matcher = CoverMatcher(search_client, settings)
    updated = 0
    sample: List[Dict[str, Any]] = []

    for record in batch:
        logger.record_match_attempt("covers")
        try:
            found = matcher.match(record.title, overrides, size2x)
            if found is None:
                raise NoMatchFound(record.title)
        except NoMatchFound:
            logger.record_match_failure("covers", "no_match")
            sample.append({"title": record.title, "note": NOTE_NO_MATCH})
            continue
        except ConfigurationError:
            raise
        except Exception as e:
            logger.record_match_failure("covers", type(e).__name__)
            logger.error("Cover match failed", title=record.title, error=str(e))
            sample.append({"title": record.title, "note": f"error: {e}"})
            continue

        outcome: Dict[str, Any] = {"title": record.title, "match": found.name, "url": found.url}
        if found.score is not None:
            outcome["score"] = round(found.score, 3)
        if found.source == "override":
            outcome["source"] = "override"

        if not is_allowed_cover_url(found.url):
            logger.record_match_failure("covers", "url_not_allowed")
            sample.append({**outcome, "note": NOTE_URL_NOT_ALLOWED})
            continue

        if not dry_run:
            try:
                store.persist(record.id, {"cover_url": found.url})
            except Exception as e:
                logger.record_match_failure("covers", "persist_failed")
                logger.error("Could not save cover", title=record.title, error=str(e))
                sample.append({**outcome, "note": f"persist failed: {e}"})
                continue
            updated += 1

        logger.record_match_success("covers")
        logger.info("Cover resolved", title=record.title, match=found.name, score=outcome.get("score"))
        sample.append(outcome)

    logger.info("Cover backfill finished", processed=len(batch), updated=updated)
    return _summary(store.count_records(), pending, batch, updated, sample, settings,
                    dry_run=dry_run, overwrite=overwrite, size2x=size2x)


def run_detail_backfill(
    store,
    search_client,
    translator=None,
    settings: Optional[MatchSettings] = None,
    dry_run: bool = False,
    overwrite: bool = False,
    limit: Optional[int] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Dict[str, Any]:
    """Resolve synopsis and genres for records missing either."""
    settings = settings or MatchSettings()
    pending = store.list_pending_details(overwrite)
    batch = _truncate(pending, limit)
    logger.info("Starting detail backfill", pending=len(pending), batch=len(batch),
                dry_run=dry_run, overwrite=overwrite)
    if batch:
        search_client.authenticate()

    matcher = DetailMatcher(search_client, translator, settings, sleep=sleep)
    updated = 0
    sample: List[Dict[str, Any]] = []

    for record in batch:
        logger.record_match_attempt("details")
        try:
            found = matcher.match(record.title)
            if found is None:
                raise NoMatchFound(record.title)
        except NoMatchFound:
            logger.record_match_failure("details", "no_match")
            sample.append({"title": record.title, "note": NOTE_NO_MATCH})
            continue
        except ConfigurationError:
            raise
        except Exception as e:
            logger.record_match_failure("details", type(e).__name__)
            logger.error("Detail match failed", title=record.title, error=str(e))
            sample.append({"title": record.title, "note": f"error: {e}"})
            continue

        fields = merge_fields(
            record,
            {"description": found.description, "genres": found.genres},
            overwrite=overwrite,
        )

        if dry_run:
            sample.append({
                "title": record.title,
                "match": found.name,
                "genres_external": found.external_genres,
                "genres": found.genres,
                "description_preview": preview(found.description),
            })
            logger.record_match_success("details")
            continue

        if not fields:
            logger.record_match_success("details")
            sample.append({"title": record.title, "match": found.name, "note": NOTE_NOTHING_TO_UPDATE})
            continue

        try:
            store.persist(record.id, fields)
        except Exception as e:
            logger.record_match_failure("details", "persist_failed")
            logger.error("Could not save details", title=record.title, error=str(e))
            sample.append({"title": record.title, "match": found.name, "note": f"persist failed: {e}"})
            continue

        updated += 1
        logger.record_match_success("details")
        logger.info("Details resolved", title=record.title, match=found.name, fields=sorted(fields))
        sample.append({"title": record.title, "match": found.name, "fields": sorted(fields)})

    logger.info("Detail backfill finished", processed=len(batch), updated=updated)
    return _summary(store.count_records(), pending, batch, updated, sample, settings,
                    dry_run=dry_run, overwrite=overwrite)


def run_rating_backfill(
    store,
    search_client,
    settings: Optional[MatchSettings] = None,
    dry_run: bool = False,
    only_missing: bool = True,
    limit: Optional[int] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Dict[str, Any]:
    """
    Refresh IGDB ratings, release date, companies, languages and age rating.

    Unlike the other passes this one overwrites stored values. With
    only_missing (the default) only records without a usable age rating are visited.
    """
    settings = settings or MatchSettings()
    pending = store.list_pending_ratings(only_missing)
    batch = _truncate(pending, limit)
    logger.info("Starting rating refresh", pending=len(pending), batch=len(batch),
                dry_run=dry_run, only_missing=only_missing)
    if batch:
        search_client.authenticate()

    matcher = RatingMatcher(search_client, settings)
    updated = 0
    sample: List[Dict[str, Any]] = []

    for i, record in enumerate(batch):
        # pause between titles to stay under the IGDB rate limit
        if i:
            sleep(settings.rating_delay)
        logger.record_match_attempt("ratings")
        try:
            found = matcher.match(record.title, record.igdb_id)
            if found is None:
                raise NoMatchFound(record.title)
        except NoMatchFound:
            logger.record_match_failure("ratings", "no_match")
            sample.append({"title": record.title, "note": NOTE_NO_MATCH})
            continue
        except ConfigurationError:
            raise
        except Exception as e:
            logger.record_match_failure("ratings", type(e).__name__)
            logger.error("Rating match failed", title=record.title, error=str(e))
            sample.append({"title": record.title, "note": f"error: {e}"})
            continue

        outcome: Dict[str, Any] = {
            "title": record.title,
            "match": found.name,
            "igdb_id": found.igdb_id,
            "age_rating": found.fields.get("age_rating_label"),
            "fields": sorted(found.fields),
        }

        if not dry_run:
            try:
                store.persist(record.id, found.fields)
            except Exception as e:
                logger.record_match_failure("ratings", "persist_failed")
                logger.error("Could not save ratings", title=record.title, error=str(e))
                sample.append({**outcome, "note": f"persist failed: {e}"})
                continue
            updated += 1

        logger.record_match_success("ratings")
        logger.info("Ratings refreshed", title=record.title, match=found.name, igdb_id=found.igdb_id)
        sample.append(outcome)

    logger.info("Rating refresh finished", processed=len(batch), updated=updated)
    return _summary(store.count_records(), pending, batch, updated, sample, settings,
                    dry_run=dry_run, only_missing=only_missing)

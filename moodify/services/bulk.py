"""Bulk track ingestion.

A batch is validated up front, then split into tracks that already exist
(skipped) and tracks that don't (inserted). The split and the insert run in
one ``BEGIN IMMEDIATE`` transaction, so other writers wait on the write lock
instead of slipping a row in between. If the insert still fails on the UNIQUE
constraint, the transaction is rolled back and the batch is partitioned again.
"""

import sqlite3
from collections import Counter
from collections.abc import Mapping
from eliot import start_action
from moodify import config
from moodify.errors import PersistenceError, ValidationError, is_unique_violation
from moodify.logging import ingest_logger, log_database_operation, log_error, log_ingest_event
from moodify.services.albums import format_artists, is_missing
from moodify.services.database import DatabaseService, encode_palette
from moodify.services.enrichment import feature_columns
from moodify.services.palette import normalize_palette
from typing import Any

BULK_REQUIRED_FIELDS = ("spotify_id", "title", "artists")

PARTIAL_SUCCESS_MESSAGE = "Partial success - some tracks were inserted, others already existed"


def _insert_tracks(cursor: sqlite3.Cursor, rows: list[dict[str, Any]]) -> None:
    """Insert prepared track rows with a single executemany per column layout."""
    layouts: dict[tuple[str, ...], list[tuple]] = {}
    for row in rows:
        layouts.setdefault(tuple(row), []).append(tuple(row.values()))

    for columns, values in layouts.items():
        column_sql = ", ".join(f'"{column}"' for column in columns)
        placeholders = ", ".join("?" for _ in columns)
        cursor.executemany(f"INSERT INTO tracks ({column_sql}) VALUES ({placeholders})", values)


class BulkIngestor:
    """All-or-nothing creation of many tracks at once."""

    def __init__(self, db: DatabaseService, max_attempts: int | None = None):
        self.db = db
        self.max_attempts = max(1, config.BULK_MAX_ATTEMPTS if max_attempts is None else max_attempts)

    def create_bulk(self, payloads: list[dict[str, Any]]) -> dict[str, Any]:
        """Create every track in the batch whose Spotify id is not stored yet.

        Album resolution is not performed here: bulk-created tracks keep a
        NULL album_id.

        Returns:
            ``{"success", "inserted": {"count", "ids"}, "skipped": {"count",
            "records"}, "total": {"processed", "inserted", "skipped"}}``

        Raises:
            ValidationError: Before any store access, for an empty batch,
                incomplete items or ids repeated within the batch
            PersistenceError: For store failures other than a UNIQUE conflict
        """
        self._validate(payloads)
        rows = {payload["spotify_id"]: self._build_row(payload) for payload in payloads}
        spotify_ids = list(rows)

        for attempt in range(1, self.max_attempts + 1):
            with start_action(ingest_logger, "bulk_insert", attempt=attempt, processed=len(spotify_ids)):
                try:
                    return self._attempt(spotify_ids, rows)
                except sqlite3.IntegrityError as e:
                    if not is_unique_violation(e):
                        log_error(ingest_logger, e, operation="bulk_insert")
                        raise PersistenceError("Bulk insert failed; no tracks were written") from e
                    log_ingest_event("bulk_conflict", attempt=attempt, message="Concurrent insert detected, re-partitioning batch")
                except sqlite3.Error as e:
                    log_error(ingest_logger, e, operation="bulk_insert")
                    raise PersistenceError("Bulk insert failed; no tracks were written") from e

        log_ingest_event("bulk_partial", processed=len(spotify_ids), message=PARTIAL_SUCCESS_MESSAGE)
        return {
            "success": True,
            "partial": True,
            "message": PARTIAL_SUCCESS_MESSAGE,
            "inserted": {"count": 0, "ids": []},
            "skipped": {"count": None, "records": []},
            "total": {"processed": len(spotify_ids), "inserted": 0, "skipped": None},
        }

    def _attempt(self, spotify_ids: list[str], rows: dict[str, dict[str, Any]]) -> dict[str, Any]:
        """Run one partition + insert pass; rolls back on any failure."""
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            try:
                # Existence check and insert share one write transaction
                cursor.execute("BEGIN IMMEDIATE")
                existing = self._partition(cursor, spotify_ids)
                new_ids = [spotify_id for spotify_id in spotify_ids if spotify_id not in existing]
                skipped = [{"id": existing[spotify_id], "spotify_id": spotify_id} for spotify_id in spotify_ids if spotify_id in existing]
                log_ingest_event("bulk_partition", new=len(new_ids), skipped=len(skipped))

                inserted: list[dict[str, Any]] = []
                if new_ids:
                    log_database_operation("INSERT", "tracks", count=len(new_ids))
                    _insert_tracks(cursor, [rows[spotify_id] for spotify_id in new_ids])
                    stored = self._lookup_ids(cursor, new_ids)
                    inserted = [{"id": stored[spotify_id], "spotify_id": spotify_id} for spotify_id in new_ids]

                conn.commit()
            except Exception:
                conn.rollback()
                raise

        log_ingest_event(
            "bulk_committed",
            inserted=len(inserted),
            skipped=len(skipped),
            message=f"Bulk insert committed: {len(inserted)} inserted, {len(skipped)} skipped",
        )
        return {
            "success": True,
            "inserted": {"count": len(inserted), "ids": inserted},
            "skipped": {"count": len(skipped), "records": skipped},
            "total": {"processed": len(spotify_ids), "inserted": len(inserted), "skipped": len(skipped)},
        }

    def _partition(self, cursor: sqlite3.Cursor, spotify_ids: list[str]) -> dict[str, int]:
        """Find which of the submitted ids are already stored.

        Returns:
            Mapping of stored spotify_id to its internal id
        """
        return self._lookup_ids(cursor, spotify_ids)

    @staticmethod
    def _lookup_ids(cursor: sqlite3.Cursor, spotify_ids: list[str]) -> dict[str, int]:
        placeholders = ", ".join("?" for _ in spotify_ids)
        cursor.execute(f"SELECT id, spotify_id FROM tracks WHERE spotify_id IN ({placeholders})", spotify_ids)
        return {row["spotify_id"]: row["id"] for row in cursor.fetchall()}

    @staticmethod
    def _validate(payloads: Any) -> None:
        if not isinstance(payloads, list) or not payloads:
            raise ValidationError("Request body must be a non-empty array of track objects")

        invalid = [
            payload.get("spotify_id") if isinstance(payload, Mapping) and payload.get("spotify_id") else "unknown"
            for payload in payloads
            if not isinstance(payload, Mapping) or any(is_missing(payload.get(field)) for field in BULK_REQUIRED_FIELDS)
        ]
        if invalid:
            raise ValidationError(
                f"Some items are missing required fields ({', '.join(BULK_REQUIRED_FIELDS)})",
                detail={"invalid_items": invalid},
            )

        counts = Counter(payload["spotify_id"] for payload in payloads)
        duplicates = [spotify_id for spotify_id, count in counts.items() if count > 1]
        if duplicates:
            raise ValidationError(
                f"Request contains duplicate spotify_ids: {', '.join(map(str, duplicates))}",
                detail={"duplicate_ids": duplicates},
            )

    @staticmethod
    def _build_row(payload: dict[str, Any]) -> dict[str, Any]:
        return {
            "spotify_id": payload["spotify_id"],
            "title": payload["title"],
            "artists": format_artists(payload["artists"]),
            "album": payload.get("album") or "",
            "album_cover": payload.get("album_cover") or "",
            "song_url": payload.get("song_url") or "",
            "preview_url": payload.get("preview_url"),
            "colour_palette": encode_palette(normalize_palette(payload.get("colour_palette"), "colour_palette")),
            **feature_columns(payload),
        }

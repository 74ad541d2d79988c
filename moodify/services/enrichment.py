"""Enrichment status machine for track audio features.

Tracks start ``unprocessed``. An out-of-band worker lists or claims them,
moves them to ``processing`` and writes the features back as ``processed``
(or marks them ``failed``). Tracks submitted with features already attached
are ``imported``.
"""

import sqlite3
from enum import Enum
from moodify import config
from moodify.errors import NotFoundError, PersistenceError, ValidationError, is_check_violation
from moodify.logging import enrichment_logger, log_database_operation, log_error, log_ingest_event
from moodify.services.database import AUDIO_FEATURE_FIELDS, DatabaseService, track_from_row
from typing import Any


class EnrichmentStatus(str, Enum):
    """Audio-feature processing status of a track."""

    UNPROCESSED = "unprocessed"
    PROCESSING = "processing"
    PROCESSED = "processed"
    FAILED = "failed"
    IMPORTED = "imported"


# Statuses a worker may report together with a feature write-back
FEATURE_WRITE_STATUSES = (EnrichmentStatus.PROCESSED, EnrichmentStatus.FAILED)


def coerce_status(value: Any) -> EnrichmentStatus:
    """Convert a raw value to an EnrichmentStatus.

    Raises:
        ValidationError: If the value is outside the closed status set
    """
    try:
        return EnrichmentStatus(value)
    except ValueError as e:
        allowed = ", ".join(s.value for s in EnrichmentStatus)
        raise ValidationError(
            f"Invalid audio_features_status '{value}': must be one of {allowed}",
            detail={"field": "audio_features_status", "allowed": [s.value for s in EnrichmentStatus]},
        ) from e


def feature_columns(payload: dict[str, Any]) -> dict[str, Any]:
    """Pick the audio-feature columns to write for a newly created track.

    Present (non-null) feature attributes are copied. An explicit status is
    validated and kept; otherwise any present feature implies ``imported``.
    With neither, nothing is returned and the store default applies. A track
    that arrives with features is never left ``unprocessed``.
    """
    columns = {field: payload[field] for field in AUDIO_FEATURE_FIELDS if payload.get(field) is not None}

    status = payload.get("audio_features_status")
    if status is not None:
        status = coerce_status(status)
    if columns and status in (None, EnrichmentStatus.UNPROCESSED):
        status = EnrichmentStatus.IMPORTED
    if status is not None:
        columns["audio_features_status"] = status.value

    return columns


class EnrichmentService:
    """Status transitions used by the audio-feature enrichment pipeline."""

    def __init__(self, db: DatabaseService):
        self.db = db

    def list_unprocessed(self, limit: int | None = None) -> list[dict[str, Any]]:
        """List unprocessed tracks, oldest first."""
        limit = self._check_limit(limit)
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT * FROM tracks
                WHERE audio_features_status = ?
                ORDER BY created_at ASC, id ASC
                LIMIT ?
            """,
                (EnrichmentStatus.UNPROCESSED.value, limit),
            )
            return [track_from_row(row) for row in cursor.fetchall()]

    def claim_unprocessed(self, limit: int | None = None) -> list[dict[str, Any]]:
        """Atomically move the oldest unprocessed tracks to processing.

        The select and the transition run under one write lock, so two
        workers never claim the same track.

        Returns:
            The claimed track records, now in ``processing``
        """
        limit = self._check_limit(limit)
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute("BEGIN IMMEDIATE")
                cursor.execute(
                    """
                    SELECT id FROM tracks
                    WHERE audio_features_status = ?
                    ORDER BY created_at ASC, id ASC
                    LIMIT ?
                """,
                    (EnrichmentStatus.UNPROCESSED.value, limit),
                )
                ids = [row["id"] for row in cursor.fetchall()]
                if not ids:
                    conn.commit()
                    return []

                placeholders = ", ".join("?" for _ in ids)
                cursor.execute(
                    f"""
                    UPDATE tracks SET
                        audio_features_status = ?,
                        updated_at = CURRENT_TIMESTAMP
                    WHERE id IN ({placeholders}) AND audio_features_status = ?
                """,
                    (EnrichmentStatus.PROCESSING.value, *ids, EnrichmentStatus.UNPROCESSED.value),
                )
                cursor.execute(f"SELECT * FROM tracks WHERE id IN ({placeholders}) ORDER BY created_at ASC, id ASC", ids)
                claimed = [track_from_row(row) for row in cursor.fetchall()]
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                log_error(enrichment_logger, e, operation="claim_unprocessed")
                raise PersistenceError("Failed to claim unprocessed tracks") from e

        log_ingest_event("tracks_claimed", count=len(claimed), message=f"Claimed {len(claimed)} tracks for enrichment")
        return claimed

    def update_audio_features(
        self,
        spotify_id: str,
        features: dict[str, Any],
        status: str | EnrichmentStatus = EnrichmentStatus.PROCESSED,
    ) -> dict[str, Any]:
        """Write back a full set of audio features together with a new status.

        Feature attributes not present in ``features`` are cleared.

        Raises:
            ValidationError: If the status is not processed or failed
            NotFoundError: If no track has this spotify_id
        """
        new_status = coerce_status(status)
        if new_status not in FEATURE_WRITE_STATUSES:
            raise ValidationError(
                f"Invalid audio_features_status '{new_status.value}' for a feature update: must be processed or failed",
                detail={"field": "audio_features_status"},
            )

        assignments = ", ".join(f'"{field}" = ?' for field in AUDIO_FEATURE_FIELDS)
        values = [features.get(field) for field in AUDIO_FEATURE_FIELDS]
        log_database_operation("UPDATE", "tracks", spotify_id=spotify_id, status=new_status.value)
        record = self._update(
            spotify_id,
            f"{assignments}, audio_features_status = ?",
            (*values, new_status.value),
        )
        log_ingest_event("features_updated", spotify_id=spotify_id, status=new_status.value)
        return record

    def update_status(self, spotify_id: str, status: str | EnrichmentStatus) -> dict[str, Any]:
        """Set a track's processing status without touching its features.

        Raises:
            ValidationError: If the status is outside the closed set
            NotFoundError: If no track has this spotify_id
        """
        new_status = coerce_status(status)
        log_database_operation("UPDATE", "tracks", spotify_id=spotify_id, status=new_status.value)
        record = self._update(spotify_id, "audio_features_status = ?", (new_status.value,))
        log_ingest_event("status_updated", spotify_id=spotify_id, status=new_status.value)
        return record

    def _update(self, spotify_id: str, assignments: str, params: tuple) -> dict[str, Any]:
        """Apply an update matched by spotify_id and return the fresh record."""
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    f"UPDATE tracks SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE spotify_id = ?",
                    (*params, spotify_id),
                )
                conn.commit()
            except sqlite3.IntegrityError as e:
                conn.rollback()
                if is_check_violation(e):
                    raise ValidationError("Rejected by the audio_features_status constraint", detail={"spotify_id": spotify_id}) from e
                raise PersistenceError(f"Failed to update track {spotify_id}") from e

            if cursor.rowcount == 0:
                raise NotFoundError(f"Track with spotify_id {spotify_id} not found", detail={"spotify_id": spotify_id})

            cursor.execute("SELECT * FROM tracks WHERE spotify_id = ?", (spotify_id,))
            return track_from_row(cursor.fetchone())

    @staticmethod
    def _check_limit(limit: int | None) -> int:
        if limit is None:
            return config.UNPROCESSED_DEFAULT_LIMIT
        if limit < 1:
            raise ValidationError("limit must be a positive integer", detail={"field": "limit"})
        return limit

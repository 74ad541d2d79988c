"""Single-track creation and track queries."""

import sqlite3
from moodify.errors import NotFoundError, PersistenceError, ValidationError, is_unique_violation
from moodify.logging import ingest_logger, log_database_operation, log_error, log_ingest_event
from moodify.services.albums import AlbumResolver, format_artists, is_missing
from moodify.services.database import DatabaseService, encode_palette, track_from_row
from moodify.services.enrichment import feature_columns
from moodify.services.palette import normalize_palette
from typing import Any

TRACK_REQUIRED_FIELDS = ("spotify_id", "title", "artists", "album_spotify_id", "album_cover", "album_colour_palette")
TRACK_PATCH_FIELDS = ("title", "artists", "album", "album_cover", "song_url", "preview_url", "colour_palette")

TRACK_EXISTS_MESSAGE = "Track with this spotify_id already exists - no changes made"


class TrackWriter:
    """Idempotent track creation plus the read side of the tracks table."""

    def __init__(self, db: DatabaseService, albums: AlbumResolver):
        self.db = db
        self.albums = albums

    # ==================== Queries ====================

    def get_track(self, spotify_id: str) -> dict[str, Any] | None:
        """Get a track by its Spotify id."""
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM tracks WHERE spotify_id = ?", (spotify_id,))
            return track_from_row(cursor.fetchone())

    def get_tracks(self, spotify_ids: list[str]) -> list[dict[str, Any]]:
        """Get tracks by Spotify id, in the order the ids were given.

        Unknown ids are left out of the result.
        """
        if not isinstance(spotify_ids, list) or not spotify_ids:
            raise ValidationError("Invalid or empty spotify_ids list", detail={"field": "ids"})

        unique_ids = list(dict.fromkeys(spotify_ids))
        placeholders = ", ".join("?" for _ in unique_ids)
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT * FROM tracks WHERE spotify_id IN ({placeholders})", unique_ids)
            by_id = {row["spotify_id"]: track_from_row(row) for row in cursor.fetchall()}

        return [by_id[spotify_id] for spotify_id in unique_ids if spotify_id in by_id]

    def get_tracks_by_album(self, album_spotify_id: str) -> list[dict[str, Any]]:
        """Get all tracks linked to an album; empty when the album is unknown."""
        album = self.albums.get_album(album_spotify_id)
        if not album:
            return []

        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM tracks WHERE album_id = ? ORDER BY id ASC", (album["id"],))
            return [track_from_row(row) for row in cursor.fetchall()]

    # ==================== Writes ====================

    def create_track(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Create a track and, if needed, the album it belongs to.

        Returns:
            ``{"created": True, "record": track}`` for a new track, or
            ``{"created": False, "record": existing, "message": ...}`` when the
            Spotify id is already stored
        """
        missing = [field for field in TRACK_REQUIRED_FIELDS if is_missing(payload.get(field))]
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(TRACK_REQUIRED_FIELDS)} are required",
                detail={"missing": missing},
            )

        spotify_id = payload["spotify_id"]
        # Checked before touching the store
        palette = normalize_palette(payload.get("colour_palette"), "colour_palette")
        features = feature_columns(payload)

        existing = self.get_track(spotify_id)
        if existing:
            log_ingest_event("track_exists", spotify_id=spotify_id)
            return {"created": False, "record": existing, "message": TRACK_EXISTS_MESSAGE}

        album = self.albums.resolve(
            payload["album_spotify_id"],
            {
                "album": payload.get("album"),
                "artists": payload["artists"],
                "album_cover": payload["album_cover"],
                "colour_palette": payload["album_colour_palette"],
            },
        )

        row = {
            "spotify_id": spotify_id,
            "title": payload["title"],
            "artists": format_artists(payload["artists"]),
            "album": payload.get("album") or "",
            "album_cover": payload["album_cover"],
            "song_url": payload.get("song_url") or "",
            "preview_url": payload.get("preview_url"),
            "colour_palette": encode_palette(palette),
            "album_id": album["id"],
            **features,
        }

        columns = ", ".join(f'"{column}"' for column in row)
        placeholders = ", ".join("?" for _ in row)
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            log_database_operation("INSERT", "tracks", spotify_id=spotify_id, album_id=album["id"])
            try:
                cursor.execute(f"INSERT INTO tracks ({columns}) VALUES ({placeholders})", tuple(row.values()))
                conn.commit()
            except sqlite3.IntegrityError as e:
                conn.rollback()
                if not is_unique_violation(e):
                    log_error(ingest_logger, e, table="tracks", spotify_id=spotify_id)
                    raise PersistenceError(f"Failed to create track {spotify_id}") from e
                # Another request stored the same track between our lookup and insert
                cursor.execute("SELECT * FROM tracks WHERE spotify_id = ?", (spotify_id,))
                winner = track_from_row(cursor.fetchone())
                if winner is None:
                    raise PersistenceError(f"Track {spotify_id} conflicted but could not be re-fetched") from e
                log_ingest_event("track_exists", spotify_id=spotify_id, race=True)
                return {"created": False, "record": winner, "message": TRACK_EXISTS_MESSAGE}

            cursor.execute("SELECT * FROM tracks WHERE id = ?", (cursor.lastrowid,))
            track = track_from_row(cursor.fetchone())

        log_ingest_event(
            "track_created",
            spotify_id=spotify_id,
            album_id=album["id"],
            status=track["audio_features_status"],
            message=f"Created track {track['title']}",
        )
        return {"created": True, "record": track}

    def update_track(self, spotify_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        """Patch descriptive track fields.

        Raises:
            ValidationError: If none of the patchable fields are present
            NotFoundError: If no track has this Spotify id
        """
        updates = {field: fields[field] for field in TRACK_PATCH_FIELDS if field in fields}
        if not updates:
            raise ValidationError(
                f"No valid fields to update: expected one of {', '.join(TRACK_PATCH_FIELDS)}",
                detail={"allowed": list(TRACK_PATCH_FIELDS)},
            )
        if "colour_palette" in updates:
            updates["colour_palette"] = encode_palette(normalize_palette(updates["colour_palette"], "colour_palette"))
        if "artists" in updates:
            updates["artists"] = format_artists(updates["artists"])

        assignments = ", ".join(f"{field} = ?" for field in updates)
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    f"UPDATE tracks SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE spotify_id = ?",
                    (*updates.values(), spotify_id),
                )
                conn.commit()
            except sqlite3.IntegrityError as e:
                conn.rollback()
                raise ValidationError(f"Invalid track update: {e}", detail={"spotify_id": spotify_id}) from e

            if cursor.rowcount == 0:
                raise NotFoundError(f"Track with spotify_id {spotify_id} not found", detail={"spotify_id": spotify_id})

            cursor.execute("SELECT * FROM tracks WHERE spotify_id = ?", (spotify_id,))
            track = track_from_row(cursor.fetchone())

        log_ingest_event("track_updated", spotify_id=spotify_id, fields=sorted(updates))
        return track

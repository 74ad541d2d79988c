"""Album resolution and album writes."""

import sqlite3
from moodify.errors import NotFoundError, PersistenceError, ValidationError, is_unique_violation
from moodify.logging import ingest_logger, log_database_operation, log_error, log_ingest_event
from moodify.services.database import DatabaseService, album_from_row, encode_palette
from moodify.services.palette import normalize_palette
from typing import Any

ALBUM_REQUIRED_FIELDS = ("spotify_id", "album", "artists")
ALBUM_PATCH_FIELDS = ("album", "artists", "album_cover", "colour_palette")


def is_missing(value: Any) -> bool:
    """A required field counts as missing when absent, None or an empty string."""
    return value is None or (isinstance(value, str) and not value.strip())


def format_artists(artists: Any) -> Any:
    """Flatten a list of artist names into the stored comma-separated string."""
    if isinstance(artists, (list, tuple)):
        return ", ".join(str(artist) for artist in artists)
    return artists


class AlbumResolver:
    """Find-or-create for albums keyed by their Spotify id."""

    def __init__(self, db: DatabaseService):
        self.db = db

    def get_album(self, spotify_id: str) -> dict[str, Any] | None:
        """Get an album by its Spotify id."""
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM albums WHERE spotify_id = ?", (spotify_id,))
            return album_from_row(cursor.fetchone())

    def resolve(self, spotify_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        """Return the album with this Spotify id, creating it if absent.

        An existing album is returned unchanged; album data in ``fields`` is
        only used when the album has to be created.

        Args:
            spotify_id: External album id
            fields: album, artists, album_cover, colour_palette

        Returns:
            The album record, including its internal id
        """
        existing = self.get_album(spotify_id)
        if existing:
            return existing

        album, _ = self._insert({**fields, "spotify_id": spotify_id})
        return album

    def create_album(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Create an album directly.

        Returns:
            ``{"created": True, "record": album}`` or, when the Spotify id is
            already stored, ``{"created": False, "record": existing, "message": ...}``
        """
        missing = [field for field in ALBUM_REQUIRED_FIELDS if is_missing(payload.get(field))]
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(ALBUM_REQUIRED_FIELDS)} are required",
                detail={"missing": missing},
            )

        existing = self.get_album(payload["spotify_id"])
        if existing:
            log_ingest_event("album_exists", spotify_id=payload["spotify_id"])
            return {
                "created": False,
                "record": existing,
                "message": "Album with this spotify_id already exists - no changes made",
            }

        album, created = self._insert(payload)
        if not created:
            return {
                "created": False,
                "record": album,
                "message": "Album with this spotify_id already exists - no changes made",
            }
        return {"created": True, "record": album}

    def update_album(self, spotify_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        """Patch the given album fields.

        Raises:
            ValidationError: If none of the patchable fields are present
            NotFoundError: If no album has this Spotify id
        """
        updates = {field: fields[field] for field in ALBUM_PATCH_FIELDS if field in fields}
        if not updates:
            raise ValidationError(
                f"No valid fields to update: expected one of {', '.join(ALBUM_PATCH_FIELDS)}",
                detail={"allowed": list(ALBUM_PATCH_FIELDS)},
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
                    f"UPDATE albums SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE spotify_id = ?",
                    (*updates.values(), spotify_id),
                )
                conn.commit()
            except sqlite3.IntegrityError as e:
                conn.rollback()
                raise ValidationError(f"Invalid album update: {e}", detail={"spotify_id": spotify_id}) from e

            if cursor.rowcount == 0:
                raise NotFoundError(f"Album with spotify_id {spotify_id} not found", detail={"spotify_id": spotify_id})

            cursor.execute("SELECT * FROM albums WHERE spotify_id = ?", (spotify_id,))
            album = album_from_row(cursor.fetchone())

        log_ingest_event("album_updated", spotify_id=spotify_id, fields=sorted(updates))
        return album

    def _insert(self, fields: dict[str, Any]) -> tuple[dict[str, Any], bool]:
        """Insert an album, falling back to the stored row if another writer got there first.

        Returns:
            Tuple of (album record, whether this call created it)
        """
        missing = [field for field in ALBUM_REQUIRED_FIELDS if is_missing(fields.get(field))]
        if missing:
            raise ValidationError(
                f"Cannot create album: missing required fields {', '.join(missing)}",
                detail={"missing": missing},
            )

        spotify_id = fields["spotify_id"]
        palette = normalize_palette(fields.get("colour_palette"), "album_colour_palette")

        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            log_database_operation("INSERT", "albums", spotify_id=spotify_id)
            try:
                cursor.execute(
                    """
                    INSERT INTO albums (spotify_id, album, artists, album_cover, colour_palette)
                    VALUES (?, ?, ?, ?, ?)
                """,
                    (
                        spotify_id,
                        fields["album"],
                        format_artists(fields["artists"]),
                        fields.get("album_cover") or "",
                        encode_palette(palette),
                    ),
                )
                conn.commit()
            except sqlite3.IntegrityError as e:
                conn.rollback()
                if not is_unique_violation(e):
                    log_error(ingest_logger, e, table="albums", spotify_id=spotify_id)
                    raise PersistenceError(f"Failed to create album {spotify_id}") from e

                cursor.execute("SELECT * FROM albums WHERE spotify_id = ?", (spotify_id,))
                winner = album_from_row(cursor.fetchone())
                if winner is None:
                    raise PersistenceError(f"Album {spotify_id} conflicted but could not be re-fetched") from e
                log_ingest_event("album_race_resolved", spotify_id=spotify_id, album_id=winner["id"])
                return winner, False

            cursor.execute("SELECT * FROM albums WHERE id = ?", (cursor.lastrowid,))
            album = album_from_row(cursor.fetchone())

        log_ingest_event("album_created", spotify_id=spotify_id, album_id=album["id"], message=f"Created album {fields['album']}")
        return album, True

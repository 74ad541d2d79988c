"""Database service for the Moodify catalog backend.

Owns the SQLite schema, its migrations and connection handling. The engine
services receive a ``DatabaseService`` explicitly and run their own queries
through ``get_connection()``.
"""

import json
import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from moodify import config
from moodify.logging import log_database_operation
from pathlib import Path
from typing import Any

ENRICHMENT_STATUSES = ("unprocessed", "processing", "processed", "failed", "imported")
_STATUS_VALUES = ", ".join(f"'{status}'" for status in ENRICHMENT_STATUSES)

# Audio-feature columns on the tracks table, in schema order
AUDIO_FEATURE_FIELDS = (
    "album_name",
    "track_name",
    "popularity",
    "duration_ms",
    "explicit",
    "danceability",
    "energy",
    "key",
    "loudness",
    "mode",
    "speechiness",
    "acousticness",
    "instrumentalness",
    "liveness",
    "valence",
    "tempo",
    "time_signature",
    "track_genre",
)

DB_TABLES = {
    "albums": """
        CREATE TABLE IF NOT EXISTS albums (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            spotify_id TEXT NOT NULL UNIQUE,
            album TEXT NOT NULL,
            artists TEXT NOT NULL,
            album_cover TEXT NOT NULL DEFAULT '',
            colour_palette TEXT NOT NULL DEFAULT '[]',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """,
    "tracks": f"""
        CREATE TABLE IF NOT EXISTS tracks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            spotify_id TEXT NOT NULL UNIQUE,
            title TEXT NOT NULL,
            artists TEXT NOT NULL,
            album TEXT NOT NULL DEFAULT '',
            album_cover TEXT NOT NULL DEFAULT '',
            song_url TEXT NOT NULL DEFAULT '',
            colour_palette TEXT NOT NULL DEFAULT '[]',
            album_id INTEGER,
            album_name TEXT,
            track_name TEXT,
            popularity INTEGER,
            duration_ms INTEGER,
            explicit INTEGER,
            danceability REAL,
            energy REAL,
            "key" INTEGER,
            loudness REAL,
            mode INTEGER,
            speechiness REAL,
            acousticness REAL,
            instrumentalness REAL,
            liveness REAL,
            valence REAL,
            tempo REAL,
            time_signature INTEGER,
            track_genre TEXT,
            audio_features_status TEXT NOT NULL DEFAULT 'unprocessed'
                CHECK (audio_features_status IN ({_STATUS_VALUES})),
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (album_id) REFERENCES albums(id)
        )
    """,
}

DB_INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_tracks_album_id ON tracks (album_id)",
    "CREATE INDEX IF NOT EXISTS idx_tracks_audio_status_created ON tracks (audio_features_status, created_at)",
)


class DatabaseService:
    """SQLite store for albums and tracks.

    Every connection enables foreign keys and waits at most ``timeout``
    seconds for a lock, which bounds each store call.
    """

    def __init__(self, db_path: str | Path, timeout: float | None = None):
        """Initialize the database service.

        Args:
            db_path: Path to the SQLite database file
            timeout: Seconds to wait on a locked database (defaults to MOODIFY_DB_TIMEOUT)
        """
        self.db_path = Path(db_path)
        self.timeout = config.DB_TIMEOUT if timeout is None else timeout
        self._ensure_tables()

    def _ensure_tables(self) -> None:
        """Create database tables and indexes if they don't exist."""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            for table_sql in DB_TABLES.values():
                cursor.execute(table_sql)
            conn.commit()
            self._run_migrations(conn)
            for index_sql in DB_INDEXES:
                cursor.execute(index_sql)
            conn.commit()

    def _run_migrations(self, conn: sqlite3.Connection) -> None:
        """Run database migrations for schema updates."""
        cursor = conn.cursor()

        # Migration: Add preview_url column to tracks table
        cursor.execute("PRAGMA table_info(tracks)")
        track_columns = {row[1] for row in cursor.fetchall()}
        if "preview_url" not in track_columns:
            cursor.execute("ALTER TABLE tracks ADD COLUMN preview_url TEXT")
            conn.commit()
            log_database_operation("ALTER", "tracks", column="preview_url")

    @contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with automatic cleanup.

        Yields:
            SQLite connection that will be automatically closed
        """
        conn = sqlite3.connect(str(self.db_path), timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
        finally:
            conn.close()

    def ping(self) -> bool:
        """Run a trivial query to check the database is reachable."""
        with self.get_connection() as conn:
            conn.execute("SELECT 1")
        return True


def encode_palette(palette: Any) -> str:
    """Serialize a canonical palette for storage."""
    return json.dumps(palette)


def decode_palette(raw: str | None) -> Any:
    """Deserialize a stored palette; empty storage reads back as an empty palette."""
    if not raw:
        return []
    return json.loads(raw)


def album_from_row(row: sqlite3.Row | None) -> dict[str, Any] | None:
    """Convert an albums row to a record dict."""
    if row is None:
        return None
    album = dict(row)
    album["colour_palette"] = decode_palette(album.get("colour_palette"))
    return album


def track_from_row(row: sqlite3.Row | None) -> dict[str, Any] | None:
    """Convert a tracks row to a record dict."""
    if row is None:
        return None
    track = dict(row)
    track["colour_palette"] = decode_palette(track.get("colour_palette"))
    if track.get("explicit") is not None:
        track["explicit"] = bool(track["explicit"])
    return track

"""SQLite persistence for the audio cache index."""

import sqlite3
from datetime import datetime
from pathlib import Path

from ..errors import StorageError
from .models import CachedArtifact, CacheIndex


class IndexStorage:
    """SQLite-based storage for the cache index.

    The whole index is written in one transaction on every save; audio files
    are stored separately on the filesystem.
    """

    def __init__(self, cache_dir: Path):
        """Initialize index storage with database in given directory.

        Args:
            cache_dir: Directory containing the index database

        Raises:
            StorageError: If the database cannot be created
        """
        self.cache_dir = cache_dir
        cache_dir.mkdir(parents=True, exist_ok=True)

        self.db_path = cache_dir / "index.db"

        try:
            conn = self._get_connection()
            try:
                self._init_db(conn)
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to initialize cache index: {e}", e) from e

    def _get_connection(self) -> sqlite3.Connection:
        """Get a new database connection with WAL mode for concurrency."""
        conn = sqlite3.connect(
            str(self.db_path),
            timeout=30.0,
            check_same_thread=False,  # saves run in worker threads
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA busy_timeout=30000")
        conn.execute("PRAGMA synchronous=NORMAL")
        return conn

    def _init_db(self, conn: sqlite3.Connection) -> None:
        """Initialize database schema."""
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS artifacts (
                cache_key TEXT PRIMARY KEY,
                audio_path TEXT NOT NULL,
                size_kb REAL NOT NULL,
                duration REAL,
                created_at TEXT NOT NULL,
                voice_id TEXT NOT NULL,
                request_id TEXT NOT NULL,
                format TEXT NOT NULL,
                quality TEXT NOT NULL,
                text TEXT
            )
        """)

        # Single row holding index-level fields; absent until the first save
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS index_state (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                total_size_mb REAL NOT NULL,
                last_maintenance TEXT
            )
        """)

        conn.commit()

    def save(self, index: CacheIndex) -> None:
        """Replace the persisted index with ``index``.

        Raises:
            StorageError: If the write fails
        """
        conn = self._get_connection()
        try:
            with conn:
                conn.execute("DELETE FROM artifacts")
                conn.executemany(
                    """
                    INSERT INTO artifacts (
                        cache_key, audio_path, size_kb, duration, created_at,
                        voice_id, request_id, format, quality, text
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                    [
                        (
                            key,
                            str(artifact.audio_path),
                            artifact.size_kb,
                            artifact.duration,
                            artifact.created_at.isoformat(),
                            artifact.voice_id,
                            artifact.request_id,
                            artifact.format,
                            artifact.quality,
                            artifact.text,
                        )
                        for key, artifact in index.entries.items()
                    ],
                )
                conn.execute(
                    """
                    INSERT OR REPLACE INTO index_state (id, total_size_mb, last_maintenance)
                    VALUES (1, ?, ?)
                """,
                    (
                        index.total_size_mb,
                        index.last_maintenance.isoformat()
                        if index.last_maintenance
                        else None,
                    ),
                )
        except sqlite3.Error as e:
            raise StorageError(f"Failed to save cache index: {e}", e) from e
        finally:
            conn.close()

    def load(self) -> CacheIndex | None:
        """Load the persisted index.

        Returns:
            The stored index, or None if nothing has been saved yet

        Raises:
            StorageError: If the database cannot be read
        """
        conn = self._get_connection()
        try:
            state = conn.execute(
                "SELECT total_size_mb, last_maintenance FROM index_state WHERE id = 1"
            ).fetchone()
            if state is None:
                return None

            rows = conn.execute(
                """
                SELECT cache_key, audio_path, size_kb, duration, created_at,
                       voice_id, request_id, format, quality, text
                FROM artifacts
            """
            ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to load cache index: {e}", e) from e
        finally:
            conn.close()

        entries = {
            row["cache_key"]: CachedArtifact(
                audio_path=Path(row["audio_path"]),
                size_kb=row["size_kb"],
                duration=row["duration"],
                created_at=datetime.fromisoformat(row["created_at"]),
                voice_id=row["voice_id"],
                request_id=row["request_id"],
                format=row["format"],
                quality=row["quality"],
                text=row["text"],
            )
            for row in rows
        }

        last_maintenance = state["last_maintenance"]
        return CacheIndex(
            entries=entries,
            total_size_mb=state["total_size_mb"],
            last_maintenance=datetime.fromisoformat(last_maintenance)
            if last_maintenance
            else None,
        )


import sqlite3
import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Generator, List, Optional, Set

from .errors import StorageError
from .models import Recording, UploadStatus

logger = logging.getLogger("CallSync.Store")

_COLUMNS = (
    "id", "file_name", "file_path", "phone_number", "contact_name", "call_type",
    "duration", "recorded_at", "upload_status", "created_at", "remote_url", "storage_path",
)

# Refreshed on re-ingest; upload_status, created_at, remote_url and storage_path are not
_METADATA_COLUMNS = (
    "file_name", "file_path", "phone_number", "contact_name", "call_type", "duration", "recorded_at",
)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS recordings (
    id            TEXT PRIMARY KEY,
    file_name     TEXT NOT NULL,
    file_path     TEXT NOT NULL,
    phone_number  TEXT NOT NULL DEFAULT '',
    contact_name  TEXT NOT NULL DEFAULT '',
    call_type     TEXT NOT NULL DEFAULT 'unknown',
    duration      INTEGER NOT NULL DEFAULT 0,
    recorded_at   INTEGER NOT NULL,
    upload_status TEXT NOT NULL DEFAULT 'pending',
    created_at    INTEGER NOT NULL,
    remote_url    TEXT,
    storage_path  TEXT
)
"""

_CREATE_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_recordings_status ON recordings(upload_status)",
    "CREATE INDEX IF NOT EXISTS idx_recordings_recorded_at ON recordings(recorded_at)",
]

Listener = Callable[[], None]


class RecordingStore:
    """
    Durable table of Recordings keyed by id.

    Writes are serialized through a single lock; aggregate counts are
    recomputed on every read. Listeners registered with add_listener()
    are called after each committed write.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._write_lock = threading.RLock()
        self._listeners: List[Listener] = []
        self._create_tables()

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        conn = None
        try:
            conn = sqlite3.connect(self.db_path, timeout=30)
            conn.row_factory = sqlite3.Row
            yield conn
        except sqlite3.Error as e:
            raise StorageError(f"Database error: {e}") from e
        finally:
            if conn:
                conn.close()

    def _create_tables(self) -> None:
        with self._get_connection() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute(_CREATE_TABLE)
            for statement in _CREATE_INDEXES:
                conn.execute(statement)
            conn.commit()

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                logger.error(f"Store listener failed: {e}")

    @staticmethod
    def _to_row(recording: Recording) -> tuple:
        data = recording.model_dump(mode="json")
        return tuple(data[c] for c in _COLUMNS)

    @staticmethod
    def _from_row(row: sqlite3.Row) -> Recording:
        return Recording(**dict(row))

    # Writes

    def insert_or_replace(self, recording: Recording) -> None:
        placeholders = ", ".join("?" for _ in _COLUMNS)
        sql = f"INSERT OR REPLACE INTO recordings ({', '.join(_COLUMNS)}) VALUES ({placeholders})"
        with self._write_lock:
            with self._get_connection() as conn:
                conn.execute(sql, self._to_row(recording))
                conn.commit()
        logger.debug(f"Stored recording {recording.id} ({recording.file_name})")
        self._notify()

    def upsert_metadata(self, recording: Recording) -> Recording:
        """
        Insert a new recording, or refresh the file metadata of a known one.

        For an existing id only the metadata columns are rewritten; upload
        status, creation time and remote references stay as stored, even if
        an upload finished while the caller was building `recording`.

        Returns:
            The row as stored after the write.
        """
        placeholders = ", ".join("?" for _ in _COLUMNS)
        refreshed = ", ".join(f"{c} = excluded.{c}" for c in _METADATA_COLUMNS)
        sql = (
            f"INSERT INTO recordings ({', '.join(_COLUMNS)}) VALUES ({placeholders}) "
            f"ON CONFLICT(id) DO UPDATE SET {refreshed}"
        )
        with self._write_lock:
            with self._get_connection() as conn:
                conn.execute(sql, self._to_row(recording))
                conn.commit()
                row = conn.execute("SELECT * FROM recordings WHERE id = ?", (recording.id,)).fetchone()
        stored = self._from_row(row)
        logger.debug(f"Upserted recording {stored.id} ({stored.file_name}, {stored.upload_status.value})")
        self._notify()
        return stored

    def update(self, recording: Recording) -> bool:
        """Overwrite an existing row. Returns False if the id is unknown."""
        assignments = ", ".join(f"{c} = ?" for c in _COLUMNS[1:])
        sql = f"UPDATE recordings SET {assignments} WHERE id = ?"
        row = self._to_row(recording)
        with self._write_lock:
            with self._get_connection() as conn:
                cursor = conn.execute(sql, row[1:] + (row[0],))
                conn.commit()
                changed = cursor.rowcount > 0
        if changed:
            self._notify()
        return changed

    def delete(self, recording: Recording) -> bool:
        with self._write_lock:
            with self._get_connection() as conn:
                cursor = conn.execute("DELETE FROM recordings WHERE id = ?", (recording.id,))
                conn.commit()
                removed = cursor.rowcount > 0
        if removed:
            logger.info(f"Deleted recording {recording.id} ({recording.file_name})")
            self._notify()
        return removed

    def update_status(self, recording_id: str, status: UploadStatus, **fields) -> Optional[Recording]:
        """
        Read-modify-write of the upload status (plus optional extra fields).

        Missing ids are ignored: a recording may be deleted while its upload
        is still running. Transitions outside the state machine are logged
        and skipped.

        Returns:
            The updated Recording, or None if nothing was written.
        """
        with self._write_lock:
            recording = self.get_by_id(recording_id)
            if recording is None:
                logger.debug(f"Status update for unknown recording {recording_id} ignored")
                return None

            current = recording.upload_status
            if current != status and not current.can_transition_to(status):
                logger.warning(
                    f"Refusing status change {current.value} -> {status.value} for {recording_id}"
                )
                return None

            updated = recording.model_copy(update={"upload_status": status, **fields})
            self.update(updated)
            return updated

    # Reads

    def get_by_id(self, recording_id: str) -> Optional[Recording]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM recordings WHERE id = ?", (recording_id,)).fetchone()
        return self._from_row(row) if row else None

    def list_all(self) -> List[Recording]:
        with self._get_connection() as conn:
            rows = conn.execute("SELECT * FROM recordings ORDER BY recorded_at DESC").fetchall()
        return [self._from_row(r) for r in rows]

    def list_by_status(self, *statuses: UploadStatus) -> List[Recording]:
        if not statuses:
            return []
        placeholders = ", ".join("?" for _ in statuses)
        sql = (
            f"SELECT * FROM recordings WHERE upload_status IN ({placeholders}) "
            "ORDER BY recorded_at DESC"
        )
        with self._get_connection() as conn:
            rows = conn.execute(sql, [s.value for s in statuses]).fetchall()
        return [self._from_row(r) for r in rows]

    def file_paths(self) -> Set[str]:
        with self._get_connection() as conn:
            rows = conn.execute("SELECT file_path FROM recordings").fetchall()
        return {r["file_path"] for r in rows}

    def pending_count(self) -> int:
        """Recordings still waiting for a successful upload (pending or failed)."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM recordings WHERE upload_status IN (?, ?)",
                (UploadStatus.PENDING.value, UploadStatus.FAILED.value),
            ).fetchone()
        return row[0]

    def today_count(self, now: Optional[datetime] = None) -> int:
        """Recordings whose recorded_at falls on the current local calendar day."""
        now = now or datetime.now()
        start = datetime(now.year, now.month, now.day)
        end = start + timedelta(days=1)
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM recordings WHERE recorded_at >= ? AND recorded_at < ?",
                (int(start.timestamp() * 1000), int(end.timestamp() * 1000)),
            ).fetchone()
        return row[0]

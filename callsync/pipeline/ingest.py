import logging
from pathlib import Path
from typing import Callable, Optional

from ..audio import read_duration
from ..core.errors import IngestError, StorageError
from ..core.models import CallerInfo, Recording, UploadStatus, recording_id_for
from ..core.store import RecordingStore
from ..correlator import CallLogCorrelator

logger = logging.getLogger("CallSync.Ingest")


class IngestionPipeline:
    """Turns a file on disk into a persisted Recording."""

    def __init__(
        self,
        store: RecordingStore,
        correlator: CallLogCorrelator,
        duration_reader: Callable[[Path], int] = read_duration,
    ):
        self.store = store
        self.correlator = correlator
        self.duration_reader = duration_reader

    def is_known(self, file_path: Path) -> bool:
        return self.store.get_by_id(recording_id_for(file_path)) is not None

    def ingest(self, file_path: Path, caller: Optional[CallerInfo] = None) -> Recording:
        """
        Build and upsert the Recording for file_path.

        Re-ingesting a known path refreshes its metadata but keeps its upload
        state, creation time and remote reference.

        Args:
            file_path: The recording file.
            caller: Caller info resolved earlier (e.g. during a scan); resolved
                from the call log / file name when omitted.

        Raises:
            IngestError: The file vanished or the store could not persist it.
        """
        path = Path(file_path).absolute()
        try:
            recorded_at = int(path.stat().st_mtime * 1000)
        except OSError as e:
            raise IngestError(f"Cannot read {path.name}: {e}") from e

        if caller is None:
            caller = self.correlator.resolve(path.name, recorded_at)

        recording = Recording(
            id=recording_id_for(path),
            file_name=path.name,
            file_path=str(path),
            phone_number=caller.phone_number,
            contact_name=caller.contact_name,
            call_type=caller.call_type,
            duration=self._safe_duration(path),
            recorded_at=recorded_at,
            upload_status=UploadStatus.PENDING,
        )

        try:
            # Single statement: an upload finishing meanwhile keeps its status
            recording = self.store.upsert_metadata(recording)
        except StorageError as e:
            logger.error(f"Failed to store {path.name}: {e}")
            raise IngestError(f"Failed to store {path.name}: {e}") from e

        logger.info(f"Ingested {path.name} ({recording.phone_number or recording.contact_name or 'unknown caller'})")
        return recording

    def _safe_duration(self, path: Path) -> int:
        try:
            return self.duration_reader(path)
        except Exception as e:
            logger.debug(f"Duration unavailable for {path.name}: {e}")
            return 0

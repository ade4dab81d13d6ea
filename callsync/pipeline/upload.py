import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable, List, Optional, Set

from ..core.errors import AuthorizationError, MissingFileError, RemoteStoreError, StorageError
from ..core.models import Identity, Recording, UploadMetadata, UploadStatus
from ..core.store import RecordingStore
from ..providers.base import IdentityProvider, RemoteStore

logger = logging.getLogger("CallSync.Upload")

MSG_LOGIN_REQUIRED = "Login required"
MSG_APPROVAL_REQUIRED = "Administrator approval required"
MSG_UPLOAD_COMPLETE = "Upload complete: {name}"
MSG_UPLOAD_FAILED = "Upload failed: {reason}"

Listener = Callable[[], None]


def storage_key_for(recording: Recording, uploader_id: str) -> str:
    return f"{uploader_id}_{recording.recorded_at}_{recording.file_name}"


class InFlightSet:
    """Thread-safe set of recording ids with an upload in progress."""

    def __init__(self):
        self._ids: Set[str] = set()
        self._lock = threading.Lock()

    def try_add(self, recording_id: str) -> bool:
        """Claim the slot for recording_id. False if it is already taken."""
        with self._lock:
            if recording_id in self._ids:
                return False
            self._ids.add(recording_id)
            return True

    def discard(self, recording_id: str) -> None:
        with self._lock:
            self._ids.discard(recording_id)

    def __contains__(self, recording_id: str) -> bool:
        with self._lock:
            return recording_id in self._ids

    def snapshot(self) -> frozenset:
        with self._lock:
            return frozenset(self._ids)


class UploadOrchestrator:
    """
    Drives recordings through pending -> uploading -> done | failed.

    Every transition is written to the RecordingStore. Failures never
    retry on their own; call upload() again or upload_all_pending().
    At most one upload per recording id runs at a time.
    """

    def __init__(
        self,
        store: RecordingStore,
        identity: IdentityProvider,
        remote: RemoteStore,
        max_workers: int = 4,
    ):
        self.store = store
        self.identity = identity
        self.remote = remote
        self.in_flight = InFlightSet()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="upload")
        self._last_message: Optional[str] = None
        self._listeners: List[Listener] = []

    # State exposed to the presentation layer

    @property
    def last_message(self) -> Optional[str]:
        return self._last_message

    @property
    def uploading_ids(self) -> frozenset:
        return self.in_flight.snapshot()

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def clear_message(self) -> None:
        self._last_message = None
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                logger.error(f"Upload listener failed: {e}")

    def _report(self, message: str) -> None:
        self._last_message = message
        self._notify()

    # Identity

    def authorized_identity(self) -> Identity:
        """
        Raises:
            AuthorizationError: nobody is signed in, or the user is not approved.
        """
        identity = self.identity.current_identity()
        if identity is None:
            raise AuthorizationError(MSG_LOGIN_REQUIRED)
        if not self.identity.is_authorized(identity.id):
            raise AuthorizationError(MSG_APPROVAL_REQUIRED)
        return identity

    def can_upload(self) -> bool:
        try:
            self.authorized_identity()
            return True
        except Exception:
            return False

    # Transitions

    def upload(self, recording: Recording) -> Optional[UploadStatus]:
        """
        Upload one recording synchronously.

        Returns:
            The final status (done or failed), or None when the call was a
            no-op: already in flight, deleted, or not in a retryable state.
        """
        if not self.in_flight.try_add(recording.id):
            logger.debug(f"Upload of {recording.id} already in progress, skipping")
            return None
        self._notify()

        try:
            current = self.store.update_status(recording.id, UploadStatus.UPLOADING)
            if current is None:
                return None
            return self._run_upload(current)
        except StorageError as e:
            logger.error(f"Store error while uploading {recording.file_name}: {e}")
            self._report(MSG_UPLOAD_FAILED.format(reason=e))
            return UploadStatus.FAILED
        finally:
            self.in_flight.discard(recording.id)
            self._notify()

    def _run_upload(self, recording: Recording) -> UploadStatus:
        try:
            identity = self.authorized_identity()
        except AuthorizationError as e:
            logger.warning(f"Upload of {recording.file_name} refused: {e}")
            self.store.update_status(recording.id, UploadStatus.FAILED)
            self._report(str(e))
            return UploadStatus.FAILED
        except Exception as e:
            logger.error(f"Identity check failed for {recording.file_name}: {e}")
            self.store.update_status(recording.id, UploadStatus.FAILED)
            self._report(MSG_UPLOAD_FAILED.format(reason=e))
            return UploadStatus.FAILED

        try:
            local_file = Path(recording.file_path)
            if not local_file.is_file():
                raise MissingFileError(f"File not found: {recording.file_name}")

            storage_key = storage_key_for(recording, identity.id)
            metadata = UploadMetadata(
                id=recording.id,
                file_name=recording.file_name,
                phone_number=recording.phone_number,
                contact_name=recording.contact_name,
                call_type=recording.call_type,
                duration=recording.duration,
                recorded_at=recording.recorded_at,
                uploader_id=identity.id,
                uploader_name=identity.display_name,
                uploader_email=identity.email,
                file_size=local_file.stat().st_size,
            )

            logger.info(f"Uploading {recording.file_name} as {storage_key}")
            reference = self.remote.upload(local_file, storage_key, metadata)
        except Exception as e:
            if isinstance(e, (RemoteStoreError, MissingFileError, OSError)):
                logger.error(f"Upload of {recording.file_name} failed: {e}")
            else:
                logger.exception(f"Unexpected error uploading {recording.file_name}")
            self.store.update_status(recording.id, UploadStatus.FAILED)
            self._report(MSG_UPLOAD_FAILED.format(reason=e))
            return UploadStatus.FAILED

        fields = {}
        if reference is not None:
            fields = {"remote_url": reference.url, "storage_path": reference.storage_path}
        self.store.update_status(recording.id, UploadStatus.DONE, **fields)
        logger.info(f"Uploaded {recording.file_name}")
        self._report(MSG_UPLOAD_COMPLETE.format(name=recording.file_name))
        return UploadStatus.DONE

    # Scheduling

    def submit(self, recording: Recording) -> Future:
        """Schedule upload() on the worker pool."""
        return self._executor.submit(self.upload, recording)

    def retryable(self) -> List[Recording]:
        """Pending and failed recordings, plus uploads orphaned by an unclean shutdown."""
        in_flight = self.in_flight.snapshot()
        stale = [
            r for r in self.store.list_by_status(UploadStatus.UPLOADING)
            if r.id not in in_flight
        ]
        return self.store.list_by_status(UploadStatus.PENDING, UploadStatus.FAILED) + stale

    def upload_all_pending(self) -> List[Future]:
        """Schedule an independent upload for every retryable recording."""
        recordings = self.retryable()
        logger.info(f"Retrying {len(recordings)} recording(s)")
        return [self.submit(r) for r in recordings]

    def recover_stale(self) -> int:
        """Mark uploads left in 'uploading' by a previous process as failed."""
        in_flight = self.in_flight.snapshot()
        recovered = 0
        for recording in self.store.list_by_status(UploadStatus.UPLOADING):
            if recording.id in in_flight:
                continue
            if self.store.update_status(recording.id, UploadStatus.FAILED) is not None:
                recovered += 1
        if recovered:
            logger.info(f"Recovered {recovered} interrupted upload(s)")
        return recovered

    # Deletion

    def delete(self, recording_id: str) -> bool:
        """
        Delete a recording locally and, if it was uploaded, remotely.

        A failed remote deletion is reported but does not undo the local one.
        """
        recording = self.store.get_by_id(recording_id)
        if recording is None:
            return False

        self.store.delete(recording)
        if recording.storage_path:
            try:
                self.remote.delete(recording.storage_path, recording.id)
            except Exception as e:
                logger.error(f"Remote delete of {recording.storage_path} failed: {e}")
                self._report(f"Remote delete failed: {e}")
                return True
        self._report(f"Deleted: {recording.file_name}")
        return True

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

"""Session state and commands for a front end (CLI, GUI, web)."""

import logging
import threading
from concurrent.futures import Future
from datetime import timedelta
from pathlib import Path
from typing import Callable, List, Optional, Set

from .core.errors import IngestError
from .core.factory import ProviderFactory
from .core.models import ConfigContext, DeviceFile, Recording, WatcherConfig
from .core.store import RecordingStore
from .correlator import CallLogCorrelator
from .pipeline.ingest import IngestionPipeline
from .pipeline.upload import UploadOrchestrator
from .scanner import DirectoryScanner
from .watcher import FileWatcher

logger = logging.getLogger("CallSync.Session")

Listener = Callable[[], None]


class RecorderSession:
    """
    Everything a front end needs: live views over the store and the
    orchestrator, the last scan result, the current selection, and the
    user commands. Listeners fire after any change.
    """

    def __init__(
        self,
        store: RecordingStore,
        scanner: DirectoryScanner,
        pipeline: IngestionPipeline,
        orchestrator: UploadOrchestrator,
    ):
        self.store = store
        self.scanner = scanner
        self.pipeline = pipeline
        self.orchestrator = orchestrator
        self._device_files: List[DeviceFile] = []
        self._selected: Set[str] = set()
        self._lock = threading.Lock()
        self._listeners: List[Listener] = []

        store.add_listener(self._notify)
        orchestrator.add_listener(self._notify)

    @classmethod
    def from_config(cls, context: ConfigContext) -> "RecorderSession":
        store = RecordingStore(Path(context.paths.database))
        correlator = CallLogCorrelator(
            ProviderFactory.create_call_history(context.correlator),
            ProviderFactory.create_contacts(context.correlator),
            tolerance=timedelta(minutes=context.correlator.tolerance_minutes),
        )
        remote_name = context.upload.remote
        orchestrator = UploadOrchestrator(
            store,
            ProviderFactory.create_identity_provider(context),
            ProviderFactory.create_remote_store(remote_name, context.providers.get(remote_name)),
            max_workers=context.upload.max_workers,
        )
        return cls(
            store=store,
            scanner=DirectoryScanner(context.paths.candidate_dirs(), store, correlator),
            pipeline=IngestionPipeline(store, correlator),
            orchestrator=orchestrator,
        )

    def create_watcher(self, config: WatcherConfig) -> FileWatcher:
        return FileWatcher(
            directory=self.scanner.directory,
            pipeline=self.pipeline,
            orchestrator=self.orchestrator,
            settle_delay=config.settle_delay_seconds,
            auto_upload=config.auto_upload,
        )

    # Live views

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                logger.error(f"Session listener failed: {e}")

    @property
    def recordings(self) -> List[Recording]:
        return self.store.list_all()

    @property
    def today_count(self) -> int:
        return self.store.today_count()

    @property
    def pending_count(self) -> int:
        return self.store.pending_count()

    @property
    def uploading_ids(self) -> frozenset:
        return self.orchestrator.uploading_ids

    @property
    def last_message(self) -> Optional[str]:
        return self.orchestrator.last_message

    @property
    def device_files(self) -> List[DeviceFile]:
        with self._lock:
            return list(self._device_files)

    @property
    def selected(self) -> frozenset:
        with self._lock:
            return frozenset(self._selected)

    # Commands

    def scan(self) -> List[DeviceFile]:
        device_files = self.scanner.scan()
        with self._lock:
            self._device_files = device_files
            self._selected = set()
        self._notify()
        return device_files

    def toggle_select(self, path: str) -> None:
        with self._lock:
            if path in self._selected:
                self._selected.discard(path)
            else:
                self._selected.add(path)
        self._notify()

    def select_all(self) -> None:
        """Select every scanned file that is not in the store yet."""
        with self._lock:
            self._selected = {f.absolute_path for f in self._device_files if not f.is_already_added}
        self._notify()

    def clear_selection(self) -> None:
        with self._lock:
            self._selected = set()
        self._notify()

    def toggle_select_all(self) -> None:
        with self._lock:
            selectable = {f.absolute_path for f in self._device_files if not f.is_already_added}
            all_selected = len(self._selected) == len(selectable)
        if all_selected:
            self.clear_selection()
        else:
            self.select_all()

    def ingest_and_upload_selected(self) -> List[Future]:
        """Ingest every selected file, schedule its upload, then rescan."""
        with self._lock:
            chosen = [f for f in self._device_files if f.absolute_path in self._selected]

        futures = []
        for device_file in chosen:
            try:
                recording = self.pipeline.ingest(device_file.path, caller=device_file.caller)
            except IngestError as e:
                logger.error(str(e))
                continue
            futures.append(self.orchestrator.submit(recording))

        self.clear_selection()
        self.scan()
        return futures

    def upload(self, recording_id: str) -> Optional[Future]:
        recording = self.store.get_by_id(recording_id)
        if recording is None:
            logger.warning(f"Unknown recording {recording_id}")
            return None
        return self.orchestrator.submit(recording)

    def upload_all_pending(self) -> List[Future]:
        return self.orchestrator.upload_all_pending()

    def delete(self, recording_id: str) -> bool:
        return self.orchestrator.delete(recording_id)

    def close(self, wait: bool = True) -> None:
        self.orchestrator.shutdown(wait=wait)

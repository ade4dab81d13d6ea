"""File system watcher for the call recording directory."""

import queue
import threading
import time
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Iterator, List, Optional
from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler, FileCreatedEvent, FileMovedEvent

from .core.errors import IngestError
from .core.models import AUDIO_EXTENSIONS
from .pipeline.ingest import IngestionPipeline
from .pipeline.upload import UploadOrchestrator
from .scanner import list_recording_files

logger = logging.getLogger("CallSync.Watcher")

_CLOSED = object()


class RecordingEventHandler(FileSystemEventHandler):
    """Forwards new audio files (created or moved in) to a callback."""

    def __init__(self, on_file: Callable[[Path], None]):
        self.on_file = on_file

    def on_created(self, event: FileCreatedEvent):
        if event.is_directory:
            return
        self._forward(event.src_path)

    def on_moved(self, event: FileMovedEvent):
        if event.is_directory:
            return
        self._forward(event.dest_path)

    def _forward(self, raw_path) -> None:
        path = Path(raw_path)
        if path.name.startswith("."):
            return
        if path.suffix.lower() not in AUDIO_EXTENSIONS:
            return
        self.on_file(path)


class WatchSubscription:
    """
    Cancellable stream of new recording files in one directory.

    Iterating blocks until the next event and ends once cancel() is
    called. A subscription cannot be restarted after cancellation.
    """

    def __init__(self, directory: Path, observer_factory: Callable[[], Observer] = Observer):
        self.directory = Path(directory)
        self._events: "queue.Queue" = queue.Queue()
        self._observer = observer_factory()
        self._started = False
        self._cancelled = False

    def start(self) -> "WatchSubscription":
        if self._cancelled or self._started:
            raise RuntimeError("Watch subscription cannot be restarted")
        handler = RecordingEventHandler(self._events.put)
        self._observer.schedule(handler, str(self.directory), recursive=False)
        self._observer.start()
        self._started = True
        return self

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._started:
            self._observer.stop()
            self._observer.join()
        self._events.put(_CLOSED)

    def __iter__(self) -> Iterator[Path]:
        while not self._cancelled or not self._events.empty():
            item = self._events.get()
            if item is _CLOSED:
                return
            yield item

    def __enter__(self) -> "WatchSubscription":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cancel()


class FileWatcher:
    """Watches the recording directory and ingests new files as they settle."""

    def __init__(
        self,
        directory: Optional[Path],
        pipeline: IngestionPipeline,
        orchestrator: Optional[UploadOrchestrator] = None,
        settle_delay: float = 3.0,
        auto_upload: bool = True,
        max_workers: int = 4,
        sleep: Callable[[float], None] = time.sleep,
        observer_factory: Callable[[], Observer] = Observer,
    ):
        self.directory = directory
        self.pipeline = pipeline
        self.orchestrator = orchestrator
        self.settle_delay = settle_delay
        self.auto_upload = auto_upload
        self._sleep = sleep
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="ingest")
        self._processing = set()
        self._lock = threading.Lock()
        self._subscription: Optional[WatchSubscription] = None
        self._observer_factory = observer_factory
        self._dispatcher: Optional[threading.Thread] = None

    def handle_new_file(self, file_path: Path, wait: bool = True) -> None:
        """Ingest one file after the settling delay. Never raises."""
        path = Path(file_path).absolute()
        with self._lock:
            if path in self._processing:
                logger.debug(f"Already processing {path.name}, skipping")
                return
            self._processing.add(path)

        try:
            if wait and self.settle_delay > 0:
                # Recorders write incrementally; give the writer time to finish
                self._sleep(self.settle_delay)

            if not path.is_file():
                logger.warning(f"File {path.name} disappeared before processing")
                return

            logger.info(f"New recording detected: {path.name}")
            try:
                recording = self.pipeline.ingest(path)
            except IngestError as e:
                logger.error(f"Ingest failed for {path.name}, will retry on next scan: {e}")
                return

            if self.auto_upload and self.orchestrator is not None:
                # Without an approved login the recording stays pending for a manual upload
                if self.orchestrator.can_upload():
                    self.orchestrator.upload(recording)
                else:
                    logger.info(f"Not signed in; {path.name} left pending")
        except Exception:
            logger.exception(f"Unexpected error processing {path.name}")
        finally:
            with self._lock:
                self._processing.discard(path)

    def catch_up(self) -> List[Future]:
        """Queue every file in the directory that is not in the store yet."""
        if self.directory is None or not self.directory.is_dir():
            return []
        futures = []
        for path in list_recording_files(self.directory):
            if not self.pipeline.is_known(path):
                futures.append(self._executor.submit(self.handle_new_file, path, False))
        if futures:
            logger.info(f"Catching up on {len(futures)} unprocessed recording(s)")
        return futures

    def start(self, scan_on_start: bool = True) -> Optional[WatchSubscription]:
        if self.directory is None or not self.directory.is_dir():
            logger.warning("No recording directory found; watcher not started")
            return None

        self._subscription = WatchSubscription(self.directory, self._observer_factory).start()
        logger.info(f"📥 Watching for recordings in: {self.directory}")
        if scan_on_start:
            self.catch_up()
        return self._subscription

    def run(self) -> None:
        """
        Dispatch events until the subscription is cancelled.

        Only one thread dispatches at a time; a second caller returns
        immediately.
        """
        if self._subscription is None or not self._claim_dispatch():
            return
        try:
            self._dispatch_events()
        finally:
            self._release_dispatch()

    def _claim_dispatch(self) -> bool:
        with self._lock:
            if self._dispatcher is not None:
                return False
            self._dispatcher = threading.current_thread()
            return True

    def _release_dispatch(self) -> None:
        with self._lock:
            self._dispatcher = None

    def _dispatch_events(self) -> None:
        for path in self._subscription:
            self._executor.submit(self.handle_new_file, path)

    def run_forever(self, scan_on_start: bool = True) -> None:
        if self.start(scan_on_start=scan_on_start) is None:
            return
        logger.info("Press Ctrl+C to stop.")
        dispatcher = threading.Thread(target=self.run, name="watch-dispatch", daemon=True)
        dispatcher.start()
        try:
            while dispatcher.is_alive():
                dispatcher.join(timeout=1)
        except KeyboardInterrupt:
            logger.info("Stopping file watcher...")
        finally:
            self.stop()

    def stop(self, wait: bool = True) -> None:
        """
        Cancel the subscription, hand every already-queued event to the
        worker pool, then shut the pool down.
        """
        if self._subscription is not None:
            self._subscription.cancel()
            self._finish_dispatch()
        self._executor.shutdown(wait=wait)

    def _finish_dispatch(self) -> None:
        # Events queued before cancel() must reach the pool before it closes
        while True:
            if self._claim_dispatch():
                try:
                    self._dispatch_events()
                finally:
                    self._release_dispatch()
                return

            with self._lock:
                dispatcher = self._dispatcher
            if dispatcher is threading.current_thread():
                return
            if dispatcher is not None:
                dispatcher.join()

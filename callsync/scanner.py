"""One-shot enumeration of recordings on local storage."""

import logging
from pathlib import Path
from typing import Iterable, List, Optional

from .core.models import AUDIO_EXTENSIONS, DeviceFile
from .core.store import RecordingStore
from .correlator import CallLogCorrelator

logger = logging.getLogger("CallSync.Scanner")


def locate_recording_directory(candidates: Iterable[Path]) -> Optional[Path]:
    """First candidate that exists and is a directory."""
    for candidate in candidates:
        path = Path(candidate).expanduser()
        if path.is_dir():
            return path
    return None


def is_recording_file(path: Path) -> bool:
    return (
        not path.name.startswith(".")
        and path.suffix.lower() in AUDIO_EXTENSIONS
        and path.is_file()
    )


def modified_millis(path: Path) -> int:
    return int(path.stat().st_mtime * 1000)


def list_recording_files(directory: Path) -> List[Path]:
    """Audio files directly inside directory, newest first."""
    files = [p for p in directory.iterdir() if is_recording_file(p)]
    return sorted(files, key=modified_millis, reverse=True)


class DirectoryScanner:
    """
    Lists candidate recordings and tags the ones already in the store.

    Never writes to the store.
    """

    def __init__(self, candidates: Iterable[Path], store: RecordingStore, correlator: CallLogCorrelator):
        self.candidates = list(candidates)
        self.store = store
        self.correlator = correlator

    @property
    def directory(self) -> Optional[Path]:
        return locate_recording_directory(self.candidates)

    def recording_files(self) -> List[Path]:
        directory = self.directory
        if directory is None:
            logger.info("No recording directory found; nothing to scan")
            return []
        return list_recording_files(directory)

    def scan(self) -> List[DeviceFile]:
        files = self.recording_files()
        if not files:
            return []

        added_paths = self.store.file_paths()
        device_files = []
        for path in files:
            try:
                recorded_at = modified_millis(path)
            except OSError as e:
                logger.warning(f"Skipping {path.name}: {e}")
                continue

            device_files.append(
                DeviceFile(
                    path=path,
                    caller=self.correlator.resolve(path.name, recorded_at),
                    recorded_at=recorded_at,
                    is_already_added=str(path.absolute()) in added_paths,
                )
            )

        logger.info(f"Scanned {len(device_files)} recording(s) in {self.directory}")
        return sorted(device_files, key=lambda f: f.recorded_at, reverse=True)

import logging
from pathlib import Path

from mutagen import File as MutagenFile
from mutagen import MutagenError

logger = logging.getLogger("CallSync.Audio")


def read_duration(file_path: Path) -> int:
    """Duration in whole seconds from the container metadata, 0 if unreadable."""
    try:
        audio = MutagenFile(str(file_path))
    except (MutagenError, OSError) as e:
        logger.debug(f"Could not read audio metadata from {file_path}: {e}")
        return 0

    if audio is None or getattr(audio, "info", None) is None:
        return 0
    length = getattr(audio.info, "length", None) or 0
    return max(int(length), 0)

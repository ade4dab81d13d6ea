import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional
from logging.handlers import TimedRotatingFileHandler
from rich.logging import RichHandler
from callsync.core.console import console as console_manager


NOISY_LOGGERS = ("urllib3", "requests", "watchdog", "charset_normalizer")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def default_log_dir() -> Path:
    """$XDG_STATE_HOME/callsync/logs, falling back to ~/.local/state/callsync/logs."""
    state_home = os.environ.get("XDG_STATE_HOME")
    base = Path(state_home) if state_home else Path.home() / ".local" / "state"
    return base / "callsync" / "logs"


def setup_logging(log_dir: Optional[Path] = None, debug: bool = False, output_mode: str = "standard") -> logging.Logger:
    """
    (Re)configure the ``CallSync`` logger.

    The console gets a RichHandler on the shared rich console unless
    output_mode is 'silent'; the log file always records everything the
    console would, and DEBUG as well in silent or debug mode. Calling
    this again replaces the previous handlers.
    """
    log_dir = Path(log_dir) if log_dir else default_log_dir()
    level = logging.DEBUG if debug else logging.INFO

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger("CallSync")
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if output_mode != "silent":
        console_handler = RichHandler(
            console=console_manager.console, rich_tracebacks=True, markup=False, show_path=False
        )
        console_handler.setLevel(level)
        logger.addHandler(console_handler)

    log_file = log_dir / "callsync.log"
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(log_file, when="midnight", backupCount=30, encoding="utf-8")
    except OSError as e:
        logger.warning(f"Could not open log file {log_file}, logging to console only: {e}")
    else:
        file_handler.setLevel(logging.DEBUG if output_mode == "silent" else level)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(file_handler)

    return logger


def format_duration(seconds: int) -> str:
    minutes, secs = divmod(max(seconds, 0), 60)
    return f"{minutes}:{secs:02d}"


def format_datetime(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%m/%d %H:%M")


def format_file_size(size_bytes: int) -> str:
    if size_bytes < 1024:
        return f"{size_bytes} B"
    if size_bytes < 1024 * 1024:
        return f"{size_bytes // 1024} KB"
    return f"{size_bytes / (1024 * 1024):.1f} MB"

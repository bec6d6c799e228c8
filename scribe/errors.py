"""
Errors for the scribe store, and error logging for the CLI.

Logs full stack traces for debugging while showing clean messages to users.
"""

import os
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


class ScribeError(Exception):
    """Base class for store errors."""


class StorageError(ScribeError):
    """A snapshot file could not be written, deleted or read."""


class SnapshotError(StorageError):
    """A snapshot file is unreadable or malformed."""


def _error_log_path(store_path: Optional[Path] = None) -> Path:
    """Resolve error log path: explicit store, then SCRIBE_STORE_PATH, then ~/.scribe."""
    if store_path is not None:
        return Path(store_path).expanduser() / "scribe-errors.log"
    store = os.environ.get("SCRIBE_STORE_PATH")
    if store:
        return Path(store) / "scribe-errors.log"
    return Path.home() / ".scribe" / "scribe-errors.log"


def log_exception(
    exc: Exception, context: str = "", store_path: Optional[Path] = None
) -> Path:
    """
    Log exception with full traceback to file.

    Args:
        exc: The exception that occurred
        context: Optional context string (e.g., command name)
        store_path: Store directory whose error log to append to

    Returns:
        Path to the error log file
    """
    log_path = _error_log_path(store_path)
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        with os.fdopen(fd, "a") as f:
            f.write(f"\n{'='*60}\n")
            f.write(f"[{timestamp}]")
            if context:
                f.write(f" {context}")
            f.write("\n")
            f.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    except OSError:
        pass  # Can't write error log; don't crash over it
    return log_path

"""
Logging configuration for scribe.

Quiet by default; --verbose or SCRIBE_VERBOSE=1 turns on debug output.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path


def enable_debug_mode():
    """Enable debug-level logging to stderr."""
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Add stderr handler if not already present
    if not any(isinstance(h, logging.StreamHandler) and h.stream == sys.stderr
               for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S"
        ))
        root_logger.addHandler(handler)

    logging.getLogger("scribe").setLevel(logging.DEBUG)


def configure_ops_log(store_path):
    """Configure a persistent operations log for a scribe store.

    Writes to {store_path}/scribe-ops.log using a rotating file handler
    (1MB max, 3 backups).
    Returns the handler so it can be removed on close().
    """
    log_path = Path(store_path) / "scribe-ops.log"
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        str(log_path),
        maxBytes=1_000_000,
        backupCount=3,
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    scribe_logger = logging.getLogger("scribe")
    scribe_logger.addHandler(handler)
    # Ensure scribe logger allows INFO through
    if scribe_logger.level == logging.NOTSET or scribe_logger.level > logging.INFO:
        scribe_logger.setLevel(logging.INFO)

    return handler

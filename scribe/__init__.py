"""
Scribe

A personal note store: resources carry free-text content and user-defined
tags, are addressed by the SHA-1 hash of their content, and are persisted as
one JSON snapshot file each.

Quick Start:
    from scribe import Scribe

    with Scribe() as sc:  # uses ~/.scribe/
        sc.initialize()
        sc.create("remember the milk", tags={"todo"})
        hashes = sc.search(["milk"])

CLI Usage:
    scribe new "remember the milk" -t todo
    scribe tag todo
    scribe search milk
    scribe rm todo

Environment Variables:
    SCRIBE_STORE_PATH  - Override default store location
    SCRIBE_VERBOSE     - Set to 1 for debug logging
"""

__version__ = "0.1.0"

from .api import Scribe
from .errors import ScribeError, SnapshotError, StorageError
from .snapshot_store import SnapshotStore
from .tokenizer import tokenize
from .types import Resource, content_hash

__all__ = [
    "Scribe",
    "Resource",
    "SnapshotStore",
    "content_hash",
    "tokenize",
    "ScribeError",
    "StorageError",
    "SnapshotError",
]

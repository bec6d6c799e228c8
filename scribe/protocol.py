"""
Protocol definitions for the store's storage collaborator.

The Scribe store only talks to its snapshot storage through this
interface, so tests and alternate backends can inject their own.
"""

from pathlib import Path
from typing import Protocol, runtime_checkable

from .types import Resource


@runtime_checkable
class SnapshotStoreProtocol(Protocol):
    """
    Durable storage for resource snapshots.

    Implemented by:
    - SnapshotStore (one JSON file per resource)
    """

    @property
    def directory(self) -> Path: ...

    def load_all(self) -> list[Resource]: ...

    def persist(self, resource: Resource) -> None: ...

    def delete(self, hash: str) -> bool: ...

    def exists(self, hash: str) -> bool: ...

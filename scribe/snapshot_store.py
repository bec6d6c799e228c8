"""
Snapshot store: one JSON file per resource.

Each resource lives in ``<directory>/<hash>.json`` as::

    {"tags": ["a", "b"], "content": "...", "hash": "<hash>"}

The snapshot directory is the durable source of truth between runs; the
in-memory indices are rebuilt from it at startup. A resource without tags
has no snapshot file.

Snapshots loaded from any other path (a nested directory, or a file not
named after its hash) are remembered, and removed the next time that
resource is written or deleted.
"""

import json
import logging
import os
from pathlib import Path

from .errors import SnapshotError, StorageError
from .types import Resource

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = "json"


class SnapshotStore:
    """
    Filesystem-backed snapshot storage for resources.

    Loads every snapshot under a directory at startup, and writes or
    deletes a single resource's snapshot on mutation.
    """

    def __init__(self, directory: Path, extension: str = DEFAULT_EXTENSION):
        """
        Args:
            directory: Base directory holding snapshot files
            extension: Snapshot file extension, without the dot
        """
        self._directory = Path(directory)
        self._extension = extension.lstrip(".")
        # hash -> snapshot paths other than path_for(hash), found by load_all
        self._strays: dict[str, set[Path]] = {}

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def suffix(self) -> str:
        return f".{self._extension}"

    def path_for(self, hash: str) -> Path:
        """Snapshot path for a resource hash."""
        return self._directory / f"{hash}{self.suffix}"

    def stray_paths(self, hash: str) -> list[Path]:
        """Loaded snapshot paths for a hash that aren't its canonical path."""
        return sorted(self._strays.get(hash, ()))

    def exists(self, hash: str) -> bool:
        """Whether any snapshot file for the hash is on disk."""
        if self.path_for(hash).exists():
            return True
        return any(path.exists() for path in self.stray_paths(hash))

    # -------------------------------------------------------------------------
    # Read Operations
    # -------------------------------------------------------------------------

    def load_all(self) -> list[Resource]:
        """
        Load every snapshot file below the directory.

        Walks bottom-up, so files in nested directories come before the
        files of the directories containing them. Within a directory, files
        are read in name order.

        Returns:
            Resources in load order (empty if the directory doesn't exist)

        Raises:
            SnapshotError: If any snapshot is unreadable or malformed
        """
        self._strays = {}
        if not self._directory.is_dir():
            logger.debug("Snapshot directory %s does not exist", self._directory)
            return []

        resources = []
        for root, _dirs, files in os.walk(self._directory, topdown=False):
            for name in sorted(files):
                if not name.endswith(self.suffix):
                    continue
                path = Path(root) / name
                resource = self._load(path)
                if path != self.path_for(resource.hash):
                    self._strays.setdefault(resource.hash, set()).add(path)
                resources.append(resource)
        logger.debug("Loaded %d snapshots from %s", len(resources), self._directory)
        return resources

    def _load(self, path: Path) -> Resource:
        """Deserialize one snapshot file."""
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise SnapshotError(f"Cannot read snapshot {path}: {e}") from e
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise SnapshotError(f"Malformed snapshot {path}: {e}") from e
        try:
            resource = Resource.from_dict(data)
        except SnapshotError as e:
            raise SnapshotError(f"{path}: {e}") from e

        stem = path.name[: -len(self.suffix)]
        if stem != resource.hash:
            logger.warning(
                "Snapshot %s holds hash %s; using the stored hash", path, resource.hash
            )
        return resource

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    def persist(self, resource: Resource) -> None:
        """
        Write a resource's snapshot, or delete it if the resource has no tags.

        Writes go to a temporary sibling first and are moved into place,
        so a crash never leaves a half-written snapshot. Stray copies of
        the snapshot are removed once the canonical file is written.

        Raises:
            StorageError: If the file can't be written or deleted
        """
        if not resource.tags:
            self.delete(resource.hash)
            return

        path = self.path_for(resource.hash)
        tmp = path.with_name(path.name + ".tmp")
        payload = json.dumps(resource.to_dict(), ensure_ascii=False)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            tmp.write_text(payload, encoding="utf-8")
            os.replace(tmp, path)
        except OSError as e:
            try:
                tmp.unlink(missing_ok=True)
            except OSError:
                pass  # the write error is the one to report
            raise StorageError(f"Cannot write snapshot {path}: {e}") from e
        self._remove_strays(resource.hash)

    def delete(self, hash: str) -> bool:
        """
        Delete every snapshot file of a resource.

        Returns:
            True if a file was removed, False if none was present

        Raises:
            StorageError: If a file exists but can't be removed
        """
        removed = self._unlink(self.path_for(hash))
        return self._remove_strays(hash) or removed

    def _remove_strays(self, hash: str) -> bool:
        removed = False
        for path in self.stray_paths(hash):
            if self._unlink(path):
                logger.info("Removed stray snapshot %s of %s", path, hash)
                removed = True
            self._strays[hash].discard(path)
        if not self._strays.get(hash):
            self._strays.pop(hash, None)
        return removed

    def _unlink(self, path: Path) -> bool:
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Cannot delete snapshot {path}: {e}") from e
        return True

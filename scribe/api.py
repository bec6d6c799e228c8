"""
Core API for the resource store.

The store keeps three structures over a set of resources:
- resource table: hash -> Resource (owns every resource)
- tag index: tag -> hashes of resources carrying that tag
- word index: token -> hashes of resources whose content has that token

Both indices are derived from the resource table and are kept consistent
by every public operation. Snapshot files are the durable copy.
"""

import logging
import threading
from pathlib import Path
from typing import Iterable, Optional

from .config import StoreConfig, get_default_store_path, load_or_create_config
from .errors import StorageError
from .protocol import SnapshotStoreProtocol
from .tokenizer import index_terms
from .types import Resource

logger = logging.getLogger(__name__)


class Scribe:
    """
    Tagged resource store with full-text token search.

    Example:
        with Scribe("~/.scribe") as sc:
            sc.initialize()
            sc.create("remember the milk", tags={"todo"})
            hashes = sc.search(["milk"])
    """

    def __init__(
        self,
        store_path: Optional[str | Path] = None,
        *,
        config: Optional[StoreConfig] = None,
        snapshot_store: Optional[SnapshotStoreProtocol] = None,
    ) -> None:
        """
        Open a store. Nothing is loaded until initialize() is called.

        Args:
            store_path: Store directory. Uses the default if not specified.
            config: Pre-loaded StoreConfig (skips config file discovery).
            snapshot_store: Injected snapshot storage (skips default creation).
        """
        if config is not None:
            self._config = config
            self._store_path = Path(config.path)
        else:
            if store_path is not None:
                self._store_path = Path(store_path).expanduser().resolve()
            else:
                self._store_path = get_default_store_path()
            self._config = load_or_create_config(self._store_path)

        self._ops_log_handler = None
        if self._config.ops_log:
            from .logging_config import configure_ops_log
            self._ops_log_handler = configure_ops_log(self._store_path)

        if snapshot_store is not None:
            self._snapshots = snapshot_store
        else:
            from .snapshot_store import SnapshotStore
            self._snapshots = SnapshotStore(
                self._store_path, extension=self._config.snapshot_extension
            )

        self._resources: dict[str, Resource] = {}
        self._tags: dict[str, set[str]] = {}
        self._words: dict[str, set[str]] = {}

        # Removal rebuilds read and write all three structures
        self._lock = threading.RLock()

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def store_path(self) -> Path:
        return self._store_path

    @property
    def snapshots(self) -> SnapshotStoreProtocol:
        return self._snapshots

    def __len__(self) -> int:
        return len(self._resources)

    def __contains__(self, hash: str) -> bool:
        return hash in self._resources

    # -------------------------------------------------------------------------
    # Startup
    # -------------------------------------------------------------------------

    def initialize(self) -> int:
        """
        Load every snapshot into the store without rewriting it.

        Returns:
            Number of snapshots read

        Raises:
            SnapshotError: If a snapshot is unreadable or malformed
        """
        with self._lock:
            loaded = self._snapshots.load_all()
            for resource in loaded:
                self.add_resource(resource, persist=False)
            logger.info(
                "Initialized %s: %d snapshots, %d resources, %d tags",
                self._snapshots.directory, len(loaded), len(self._resources), len(self._tags),
            )
            return len(loaded)

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    def add_resource(self, resource: Resource, persist: bool = True) -> None:
        """
        Add a resource, replacing any resource with the same hash.

        Replacement is not a merge: the previous entry is fully removed
        first, so the new tag set wins.

        Args:
            resource: Resource to add (the store keeps its own copy)
            persist: Write (or, if untagged, delete) the snapshot file

        Raises:
            StorageError: If persisting fails; in-memory state is already updated
        """
        with self._lock:
            replaced = self._remove(resource.hash) is not None
            if replaced:
                logger.debug("Replacing existing resource %s", resource.hash)

            stored = resource.copy()
            self._resources[stored.hash] = stored
            for tag in stored.sorted_tags:
                self._tags.setdefault(tag, set()).add(stored.hash)
            self._index_resource(stored)

            if not persist:
                return
            logger.info("Added %s tags=%s", stored.hash, stored.sorted_tags)
            if replaced:
                # Overwrites or deletes the old snapshot along with the resync
                self.sync()
            else:
                self._snapshots.persist(stored)

    def create(self, content: str, tags: Iterable[str] = ()) -> Resource:
        """
        Build a resource from content and tags, add it and persist it.

        Returns:
            A copy of the stored resource
        """
        resource = Resource.create(tags, content)
        self.add_resource(resource, persist=True)
        return resource.copy()

    def remove_tag(self, tag: str) -> bool:
        """
        Remove a tag from every resource carrying it.

        Resources left without tags lose their snapshot file but stay in
        the resource table until swept or removed.

        Returns:
            True if the tag existed, False if it was unknown (no-op)

        Raises:
            StorageError: If resyncing snapshots fails
        """
        with self._lock:
            hashes = self._tags.pop(tag, None)
            if hashes is None:
                logger.debug("remove_tag: unknown tag %r", tag)
                return False

            for hash in sorted(hashes):
                resource = self._resources.get(hash)
                if resource is not None:
                    resource.remove_tag(tag)

            self.reindex()
            logger.info("Removed tag %r from %d resources", tag, len(hashes))
            self.sync()
            return True

    def remove_resource(self, hash: str) -> bool:
        """
        Remove a resource and its snapshot file.

        Returns:
            True if the resource existed, False if it was unknown (no-op)

        Raises:
            StorageError: If deleting or resyncing snapshots fails
        """
        with self._lock:
            if self._remove(hash) is None:
                logger.debug("remove_resource: unknown hash %s", hash)
                return False
            logger.info("Removed resource %s", hash)
            try:
                self._snapshots.delete(hash)
            finally:
                self.sync()
            return True

    def _remove(self, hash: str) -> Optional[Resource]:
        """Drop a resource from the table and both indices, in memory only."""
        resource = self._resources.pop(hash, None)
        if resource is None:
            return None

        for tag in resource.tags:
            hashes = self._tags.get(tag)
            if hashes is None:
                continue
            hashes.discard(hash)
            if not hashes:
                del self._tags[tag]

        self.reindex()
        return resource

    def sweep(self) -> list[str]:
        """
        Drop resources that no longer carry any tag.

        Every untagged resource leaves memory even if deleting a
        leftover snapshot fails.

        Returns:
            Sorted hashes of the removed resources

        Raises:
            StorageError: Listing every snapshot that couldn't be deleted
        """
        with self._lock:
            untagged = sorted(h for h, r in self._resources.items() if not r.tags)
            if not untagged:
                return []
            for hash in untagged:
                del self._resources[hash]
            self.reindex()
            logger.info("Swept %d untagged resources", len(untagged))

            failures = []
            for hash in untagged:
                try:
                    self._snapshots.delete(hash)
                except StorageError as e:
                    logger.warning("Sweep failed to delete %s: %s", hash, e)
                    failures.append(str(e))
            if failures:
                raise StorageError(
                    f"{len(failures)} snapshot(s) failed to delete: " + "; ".join(failures)
                )
            return untagged

    def sync(self) -> None:
        """
        Write every resource's snapshot (untagged ones are deleted).

        All resources are attempted even if some fail.

        Raises:
            StorageError: Listing every snapshot that failed
        """
        with self._lock:
            failures = []
            for resource in sorted(self._resources.values()):
                try:
                    self._snapshots.persist(resource)
                except StorageError as e:
                    logger.warning("Sync failed for %s: %s", resource.hash, e)
                    failures.append(str(e))
            if failures:
                raise StorageError(
                    f"{len(failures)} snapshot(s) failed to sync: " + "; ".join(failures)
                )

    # -------------------------------------------------------------------------
    # Word Index
    # -------------------------------------------------------------------------

    def _index_resource(self, resource: Resource) -> None:
        for word in index_terms(resource.content):
            self._words.setdefault(word, set()).add(resource.hash)

    def _build_word_index(self) -> dict[str, set[str]]:
        words: dict[str, set[str]] = {}
        for resource in self._resources.values():
            for word in index_terms(resource.content):
                words.setdefault(word, set()).add(resource.hash)
        return words

    def reindex(self) -> None:
        """Rebuild the word index from the content of every resource."""
        with self._lock:
            self._words = self._build_word_index()
            logger.debug(
                "Reindexed %d resources, %d tokens", len(self._resources), len(self._words)
            )

    # -------------------------------------------------------------------------
    # Query Operations
    # -------------------------------------------------------------------------

    def get(self, hash: str) -> Optional[Resource]:
        """Copy of the resource with this hash, or None."""
        with self._lock:
            resource = self._resources.get(hash)
            return resource.copy() if resource is not None else None

    def resources(self, hashes: Optional[Iterable[str]] = None) -> list[Resource]:
        """
        Copies of resources, sorted by hash.

        Args:
            hashes: Restrict to these hashes (unknown ones are skipped)
        """
        with self._lock:
            if hashes is None:
                selected = self._resources.values()
            else:
                selected = [self._resources[h] for h in set(hashes) if h in self._resources]
            return [r.copy() for r in sorted(selected)]

    def lookup_by_tag(self, tag: str) -> set[str]:
        """Hashes of resources carrying a tag (empty if unknown)."""
        with self._lock:
            return set(self._tags.get(tag, ()))

    def lookup_by_token(self, token: str) -> set[str]:
        """Hashes of resources whose content contains a token (empty if unknown)."""
        with self._lock:
            return set(self._words.get(token, ()))

    def lookup_tags(self, tags: Iterable[str]) -> dict[str, set[str]]:
        """One independent lookup per tag, keyed in sorted tag order."""
        return {tag: self.lookup_by_tag(tag) for tag in sorted(set(tags))}

    def search(self, terms: Iterable[str]) -> set[str]:
        """
        Hashes whose content contains every known term.

        Terms are matched verbatim against index tokens. Terms missing
        from the index are skipped rather than emptying the result; if
        no term is known, the result is empty.
        """
        with self._lock:
            found = [self._words[t] for t in terms if t in self._words]
            if not found:
                return set()
            result = set(found[0])
            for hashes in found[1:]:
                result &= hashes
            return result

    def list_tags(self) -> list[str]:
        """All known tags, sorted."""
        with self._lock:
            return sorted(self._tags)

    @property
    def resource_table(self) -> dict[str, Resource]:
        """Snapshot copy of the resource table."""
        with self._lock:
            return {h: r.copy() for h, r in self._resources.items()}

    @property
    def tag_index(self) -> dict[str, set[str]]:
        """Snapshot copy of the tag index."""
        with self._lock:
            return {tag: set(hashes) for tag, hashes in self._tags.items()}

    @property
    def word_index(self) -> dict[str, set[str]]:
        """Snapshot copy of the word index."""
        with self._lock:
            return {word: set(hashes) for word, hashes in self._words.items()}

    # -------------------------------------------------------------------------
    # Consistency
    # -------------------------------------------------------------------------

    def check_consistency(self) -> list[str]:
        """
        Re-derive the indices and compare them with the live ones.

        Returns:
            Human-readable violations; empty when the store is consistent
        """
        problems = []
        with self._lock:
            for hash, resource in self._resources.items():
                if resource.hash != hash:
                    problems.append(f"table key {hash} holds resource {resource.hash}")
                for tag in resource.tags:
                    if hash not in self._tags.get(tag, ()):
                        problems.append(f"tag {tag!r} missing resource {hash}")
                if not resource.tags and self._snapshots.exists(hash):
                    problems.append(f"untagged resource {hash} still has a snapshot")

            for tag, hashes in self._tags.items():
                if not hashes:
                    problems.append(f"tag {tag!r} has no resources")
                for hash in hashes:
                    resource = self._resources.get(hash)
                    if resource is None:
                        problems.append(f"tag {tag!r} refers to unknown resource {hash}")
                    elif tag not in resource.tags:
                        problems.append(f"tag {tag!r} lists {hash}, which lacks the tag")

            if self._build_word_index() != self._words:
                problems.append("word index is stale")
        return problems

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Detach the operations log."""
        if self._ops_log_handler is not None:
            logging.getLogger("scribe").removeHandler(self._ops_log_handler)
            self._ops_log_handler.close()
            self._ops_log_handler = None

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - close resources."""
        self.close()
        return False

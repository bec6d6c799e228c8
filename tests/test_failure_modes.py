"""Tests for storage failures.

Covers:
- runtime write and delete failures surfacing as StorageError, not crashes
- full resync continuing past a failing snapshot
- replace, forget and sweep leaving the indices consistent when the disk fails
- malformed snapshots failing startup
"""

import pytest

from scribe.api import Scribe
from scribe.errors import SnapshotError, StorageError
from scribe.snapshot_store import SnapshotStore


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class FailingSnapshotStore(SnapshotStore):
    """Snapshot store that fails writes or deletes for chosen hashes (or all)."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_all = False
        self.fail_hashes: set[str] = set()
        self.fail_delete_hashes: set[str] = set()

    def persist(self, resource):
        if self.fail_all or resource.hash in self.fail_hashes:
            raise StorageError(f"simulated failure for {resource.hash}")
        super().persist(resource)

    def delete(self, hash):
        if hash in self.fail_delete_hashes:
            raise StorageError(f"simulated delete failure for {hash}")
        return super().delete(hash)


@pytest.fixture
def failing(store_dir):
    return FailingSnapshotStore(store_dir)


@pytest.fixture
def flaky_scribe(store_dir, failing):
    with Scribe(store_dir, snapshot_store=failing) as sc:
        sc.initialize()
        yield sc


class TestRuntimeFailures:

    def test_create_failure_is_recoverable(self, flaky_scribe, failing):
        failing.fail_all = True
        with pytest.raises(StorageError, match="simulated"):
            flaky_scribe.create("unsaved", tags={"a"})

        # Memory state was updated before the write failed
        h = next(iter(flaky_scribe.lookup_by_tag("a")))
        assert flaky_scribe.get(h).content == "unsaved"
        assert flaky_scribe.check_consistency() == []

        # Retrying after the fault clears writes the snapshot
        failing.fail_all = False
        flaky_scribe.sync()
        assert failing.exists(h)

    def test_sync_continues_past_failures(self, flaky_scribe, failing):
        a = flaky_scribe.create("alpha", tags={"x"})
        b = flaky_scribe.create("beta", tags={"x"})
        c = flaky_scribe.create("gamma", tags={"x", "y"})
        for path in failing.directory.glob("*.json"):
            path.unlink()

        failing.fail_hashes = {b.hash}
        with pytest.raises(StorageError, match="1 snapshot"):
            flaky_scribe.sync()
        assert failing.exists(a.hash)
        assert failing.exists(c.hash)
        assert not failing.exists(b.hash)

    def test_remove_tag_failure_keeps_indices_consistent(self, flaky_scribe, failing):
        flaky_scribe.create("alpha", tags={"x", "y"})
        failing.fail_all = True
        with pytest.raises(StorageError):
            flaky_scribe.remove_tag("x")
        assert flaky_scribe.list_tags() == ["y"]
        assert flaky_scribe.check_consistency() == []

    def test_replace_survives_unrelated_sync_failure(self, flaky_scribe, failing,
                                                     read_snapshot):
        other = flaky_scribe.create("other", tags={"o"})
        note = flaky_scribe.create("note", tags={"a"})
        failing.fail_hashes = {other.hash}

        with pytest.raises(StorageError, match="1 snapshot"):
            flaky_scribe.create("note", tags={"b"})

        assert flaky_scribe.get(note.hash).tags == {"b"}
        assert flaky_scribe.list_tags() == ["b", "o"]
        assert read_snapshot(failing.path_for(note.hash))["tags"] == ["b"]
        assert flaky_scribe.check_consistency() == []

    def test_forget_delete_failure_still_resyncs(self, flaky_scribe, failing):
        kept = flaky_scribe.create("kept", tags={"k"})
        gone = flaky_scribe.create("gone", tags={"g"})
        failing.path_for(kept.hash).unlink()
        failing.fail_delete_hashes = {gone.hash}

        with pytest.raises(StorageError, match="simulated delete"):
            flaky_scribe.remove_resource(gone.hash)

        assert gone.hash not in flaky_scribe
        assert flaky_scribe.get(kept.hash).tags == {"k"}
        assert flaky_scribe.list_tags() == ["k"]
        # The resync ran even though the delete failed
        assert failing.exists(kept.hash)
        assert failing.exists(gone.hash)
        assert flaky_scribe.check_consistency() == []

    def test_sweep_delete_failure_keeps_indices_consistent(self, flaky_scribe, failing):
        first = flaky_scribe.create("first orphan", tags={"x"})
        second = flaky_scribe.create("second orphan", tags={"x"})
        tagged = flaky_scribe.create("tagged survivor", tags={"y"})
        flaky_scribe.remove_tag("x")
        failing.fail_delete_hashes = {max(first.hash, second.hash)}

        with pytest.raises(StorageError, match="1 snapshot"):
            flaky_scribe.sweep()

        assert first.hash not in flaky_scribe
        assert second.hash not in flaky_scribe
        assert tagged.hash in flaky_scribe
        assert flaky_scribe.lookup_by_token("orphan") == set()
        assert flaky_scribe.check_consistency() == []

    def test_real_write_failure(self, tmp_path):
        blocker = tmp_path / "blocked"
        blocker.write_text("")
        with Scribe(tmp_path, snapshot_store=SnapshotStore(blocker)) as sc:
            with pytest.raises(StorageError, match="Cannot write snapshot"):
                sc.create("content", tags={"a"})


class TestStartupFailures:

    def test_malformed_snapshot_fails_initialize(self, store_dir):
        (store_dir / "bad.json").write_text("{oops")
        with Scribe(store_dir) as sc:
            with pytest.raises(SnapshotError):
                sc.initialize()

    def test_snapshot_error_is_a_storage_error(self):
        assert issubclass(SnapshotError, StorageError)

"""
Shared pytest fixtures for scribe tests.

Every test gets its own store directory; SCRIBE_STORE_PATH points there so
the error log never lands in the real home directory.
"""

import json
from pathlib import Path

import pytest

from scribe.api import Scribe
from scribe.snapshot_store import SnapshotStore
from scribe.types import Resource


@pytest.fixture(autouse=True)
def isolated_store_env(tmp_path, monkeypatch):
    """Point SCRIBE_STORE_PATH at the test's temp dir."""
    monkeypatch.setenv("SCRIBE_STORE_PATH", str(tmp_path))
    monkeypatch.delenv("SCRIBE_VERBOSE", raising=False)
    return tmp_path


@pytest.fixture
def store_dir(tmp_path) -> Path:
    return tmp_path


@pytest.fixture
def scribe(store_dir):
    """A fresh, initialized store on a temp directory."""
    with Scribe(store_dir) as sc:
        sc.initialize()
        yield sc


@pytest.fixture
def snapshots(store_dir) -> SnapshotStore:
    return SnapshotStore(store_dir)


def _write_snapshot(directory: Path, resource: Resource, name: str | None = None) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / (name or f"{resource.hash}.json")
    path.write_text(json.dumps(resource.to_dict()), encoding="utf-8")
    return path


def _read_snapshot(path: Path) -> dict:
    return json.loads(path.read_text(encoding="utf-8"))


@pytest.fixture
def write_snapshot():
    """Write a snapshot file by hand, bypassing the store."""
    return _write_snapshot


@pytest.fixture
def read_snapshot():
    """Parse a snapshot file."""
    return _read_snapshot

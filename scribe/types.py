"""
Data types for the resource store.
"""

import hashlib
from dataclasses import dataclass, field
from typing import Any, Iterable

from .errors import SnapshotError


def content_hash(content: str) -> str:
    """Content-addressed identifier: hex SHA-1 of the UTF-8 content.

    SHA-1 keeps identities compatible with snapshot directories written by
    earlier versions of the store.
    """
    return hashlib.sha1(content.encode("utf-8")).hexdigest()


@dataclass(order=True, unsafe_hash=True)
class Resource:
    """
    A content item with a stable hash identity and a mutable set of tags.

    Equality, hashing and ordering use ``hash`` only: two resources built
    from the same content are the same resource, whatever their tags.

    Attributes:
        hash: Content hash, fixed at construction
        content: Free-text body, immutable
        tags: Case-sensitive tag names (mutable, iterated sorted)
    """
    hash: str
    content: str = field(compare=False)
    tags: set[str] = field(default_factory=set, compare=False)

    def __setattr__(self, name: str, value: Any) -> None:
        if name in ("hash", "content") and name in self.__dict__:
            raise AttributeError(f"Resource.{name} is immutable")
        super().__setattr__(name, value)

    @classmethod
    def create(cls, tags: Iterable[str], content: str) -> "Resource":
        """Build a resource, hashing its content once."""
        return cls(hash=content_hash(content), content=content, tags=set(tags))

    @property
    def sorted_tags(self) -> list[str]:
        return sorted(self.tags)

    def remove_tag(self, tag: str) -> bool:
        """Drop a tag if present. Returns True if it was there."""
        if tag in self.tags:
            self.tags.discard(tag)
            return True
        return False

    def copy(self) -> "Resource":
        """Detached copy (own tag set)."""
        return Resource(hash=self.hash, content=self.content, tags=set(self.tags))

    def to_dict(self) -> dict[str, Any]:
        """Snapshot representation."""
        return {
            "tags": self.sorted_tags,
            "content": self.content,
            "hash": self.hash,
        }

    @classmethod
    def from_dict(cls, d: Any) -> "Resource":
        """Rebuild a resource from its snapshot dict.

        The stored hash is trusted as-is.

        Raises:
            SnapshotError: If a field is missing or has the wrong type
        """
        if not isinstance(d, dict):
            raise SnapshotError(f"Snapshot must be an object, got {type(d).__name__}")
        try:
            hash_ = d["hash"]
            content = d["content"]
            tags = d["tags"]
        except KeyError as e:
            raise SnapshotError(f"Snapshot missing field: {e.args[0]}") from e
        if not isinstance(hash_, str) or not hash_:
            raise SnapshotError("Snapshot 'hash' must be a non-empty string")
        if not isinstance(content, str):
            raise SnapshotError("Snapshot 'content' must be a string")
        if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
            raise SnapshotError("Snapshot 'tags' must be a list of strings")
        return cls(hash=hash_, content=content, tags=set(tags))

    def __str__(self) -> str:
        tags = " ".join(self.sorted_tags)
        return f"{self.hash[:12]} [{tags}]: {self.content[:60]}"

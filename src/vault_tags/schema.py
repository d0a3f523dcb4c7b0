"""Shared types for the tag index.

Defines the index structures, metadata and the reindex event payload.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class EntryKind(str, Enum):
    """Kinds of entries returned by a content store listing."""

    FILE = "file"
    DIRECTORY = "directory"


class ReindexType(str, Enum):
    """Kinds of index mutation announced on the event bus."""

    FULL = "full"
    UPDATE = "update"
    REMOVE = "remove"
    RENAME = "rename"


@dataclass(frozen=True)
class TagEntry:
    tag: str
    count: int


@dataclass(frozen=True)
class SearchResult:
    """A tag matched by a query. ``score`` is only set for fuzzy matches."""

    tag: str
    count: int
    score: float | None = None


@dataclass
class TagIndexMeta:
    file_count: int = 0
    tag_count: int = 0
    # Epoch milliseconds, 0 when never indexed
    last_indexed: int = 0


@dataclass
class TagIndex:
    """Bidirectional document <-> tag mapping.

    ``files`` and ``tags`` are kept as exact inverses of each other and a tag
    key only exists while at least one document carries it.
    """

    files: dict[str, list[str]] = field(default_factory=dict)
    tags: dict[str, list[str]] = field(default_factory=dict)
    all_tags: list[TagEntry] = field(default_factory=list)


@dataclass(frozen=True)
class ReindexEvent:
    """Payload of the ``tags:reindex`` event."""

    type: ReindexType
    meta: TagIndexMeta
    files_added: list[str] | None = None
    files_removed: list[str] | None = None
    tags_added: list[str] | None = None
    tags_removed: list[str] | None = None

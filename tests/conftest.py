"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from vault_tags.events import TAGS_REINDEX, EventBus
from vault_tags.index import TagIndexer
from vault_tags.persistence import IndexPersistence, MemoryKeyValueStore
from vault_tags.schema import ReindexEvent
from vault_tags.store import FileSystemStore


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def kv_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def events(bus: EventBus) -> list[ReindexEvent]:
    """Every reindex event emitted on ``bus``."""
    received: list[ReindexEvent] = []
    bus.on(TAGS_REINDEX, received.append)
    return received


@pytest.fixture
def tmp_vault(tmp_path: Path) -> Path:
    """Create a temporary vault with notes, hidden files and journal days."""
    vault = tmp_path / "vault"

    project = vault / "Projects" / "test-project.md"
    project.parent.mkdir(parents=True)
    project.write_text(
        """---
tags:
  - project
  - ai
---

# Test Project

Body text with #inline-tag that is not indexed.
""",
        encoding="utf-8",
    )

    memo = vault / "Memo" / "quick-note.md"
    memo.parent.mkdir(parents=True)
    memo.write_text("# Quick Note\n\nNo frontmatter here.\n", encoding="utf-8")

    ideas = vault / "Memo" / "ideas.md"
    ideas.write_text("---\ntags: [ai, ideas]\n---\n\nSome ideas.\n", encoding="utf-8")

    hidden = vault / ".obsidian" / "hidden.md"
    hidden.parent.mkdir(parents=True)
    hidden.write_text("---\ntags: secret\n---\n", encoding="utf-8")

    (vault / "attachment.txt").write_text("---\ntags: txt\n---\n", encoding="utf-8")

    day = vault / "zzz_Daily Notes" / "2024" / "03" / "2024-03-01.yaml"
    day.parent.mkdir(parents=True)
    day.write_text(
        """version: 2
entries:
  - id: e1
    text: Morning run
    tags: [health, ai]
    order: 0
  - id: e2
    text: No tags
    tags: []
    order: 1
""",
        encoding="utf-8",
    )
    (vault / "zzz_Daily Notes" / "2024" / "03" / "notes.yaml").write_text(
        "entries:\n  - id: x\n    tags: [ignored]\n", encoding="utf-8"
    )

    return vault


@pytest.fixture
def indexer(bus: EventBus, kv_store: MemoryKeyValueStore, clock: FakeClock) -> TagIndexer:
    """Indexer without a content store, for incremental operations."""
    return TagIndexer(None, IndexPersistence(kv_store), bus, clock=clock)


@pytest.fixture
def vault_indexer(
    tmp_vault: Path, bus: EventBus, kv_store: MemoryKeyValueStore, clock: FakeClock
) -> TagIndexer:
    """Indexer reading ``tmp_vault`` from disk."""
    return TagIndexer(FileSystemStore(tmp_vault), IndexPersistence(kv_store), bus, clock=clock)


def assert_consistent(indexer: TagIndexer) -> None:
    """Check the structural invariants of the index."""
    index = indexer.index
    for doc, tags in index.files.items():
        assert tags, f"{doc} kept with an empty tag list"
        for tag in tags:
            assert doc in index.tags[tag]
    for tag, docs in index.tags.items():
        assert docs, f"empty bucket for {tag}"
        assert len(docs) == len(set(docs))
        for doc in docs:
            assert tag in index.files[doc]
    assert indexer.meta.file_count == len(index.files)
    assert indexer.meta.tag_count == len(index.tags)

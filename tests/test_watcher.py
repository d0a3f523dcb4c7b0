"""Tests for the vault event handler."""

import pytest
import pytest_asyncio
from watchdog.events import (
    DirModifiedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from conftest import assert_consistent
from vault_tags.watcher import VaultEventHandler


@pytest_asyncio.fixture
async def handler(vault_indexer) -> VaultEventHandler:
    await vault_indexer.build()
    return VaultEventHandler(vault_indexer, vault_indexer.content_store)


@pytest.fixture
def journal_day(tmp_vault):
    return tmp_vault / "zzz_Daily Notes" / "2024" / "03" / "2024-03-01.yaml"


@pytest.mark.asyncio
async def test_created_note(handler, tmp_vault):
    path = tmp_vault / "Memo" / "new.md"
    path.write_text("---\ntags: [fresh]\n---\n", encoding="utf-8")

    handler.on_created(FileCreatedEvent(str(path)))

    assert handler.indexer.get_files_for_tag("fresh") == ["Memo/new.md"]
    assert_consistent(handler.indexer)


@pytest.mark.asyncio
async def test_modified_note(handler, tmp_vault):
    path = tmp_vault / "Projects" / "test-project.md"
    path.write_text("---\ntags: [archived]\n---\n", encoding="utf-8")

    handler.on_modified(FileModifiedEvent(str(path)))

    assert handler.indexer.get_tags_for_document("Projects/test-project.md") == ["archived"]
    assert "project" not in handler.indexer.index.tags


@pytest.mark.asyncio
async def test_deleted_note(handler, tmp_vault):
    path = tmp_vault / "Memo" / "ideas.md"
    path.unlink()

    handler.on_deleted(FileDeletedEvent(str(path)))

    assert "Memo/ideas.md" not in handler.indexer.index.files
    assert "ideas" not in handler.indexer.index.tags


@pytest.mark.asyncio
async def test_modified_event_for_vanished_file(handler, tmp_vault):
    path = tmp_vault / "Memo" / "ideas.md"
    path.unlink()

    handler.on_modified(FileModifiedEvent(str(path)))

    assert "Memo/ideas.md" not in handler.indexer.index.files


@pytest.mark.asyncio
async def test_moved_note(handler, tmp_vault):
    src = tmp_vault / "Memo" / "ideas.md"
    dest = tmp_vault / "Archive" / "ideas.md"
    dest.parent.mkdir()
    src.rename(dest)

    handler.on_moved(FileMovedEvent(str(src), str(dest)))

    assert handler.indexer.get_tags_for_document("Archive/ideas.md") == ["ai", "ideas"]
    assert "Memo/ideas.md" not in handler.indexer.index.files
    assert_consistent(handler.indexer)


@pytest.mark.asyncio
async def test_moved_out_of_markdown(handler, tmp_vault):
    src = tmp_vault / "Memo" / "ideas.md"
    dest = tmp_vault / "Memo" / "ideas.txt"
    src.rename(dest)

    handler.on_moved(FileMovedEvent(str(src), str(dest)))

    assert "Memo/ideas.md" not in handler.indexer.index.files


@pytest.mark.asyncio
async def test_ignores_hidden_and_other_files(handler, tmp_vault, events):
    hidden = tmp_vault / ".obsidian" / "workspace.md"
    hidden.write_text("---\ntags: [nope]\n---\n", encoding="utf-8")
    events.clear()

    handler.on_modified(FileModifiedEvent(str(hidden)))
    handler.on_modified(FileModifiedEvent(str(tmp_vault / "attachment.txt")))
    handler.on_modified(DirModifiedEvent(str(tmp_vault / "Memo")))

    assert events == []


@pytest.mark.asyncio
async def test_journal_edit(handler, journal_day):
    journal_day.write_text(
        """entries:
  - id: e1
    tags: [sleep]
  - id: e3
    tags: [reading]
""",
        encoding="utf-8",
    )

    handler.on_modified(FileModifiedEvent(str(journal_day)))

    indexer = handler.indexer
    assert indexer.get_tags_for_document("journal:2024-03-01:e1") == ["sleep"]
    assert indexer.get_tags_for_document("journal:2024-03-01:e3") == ["reading"]
    assert "health" not in indexer.index.tags
    assert_consistent(indexer)


@pytest.mark.asyncio
async def test_journal_entry_removed(handler, journal_day):
    journal_day.write_text("entries:\n  - id: e2\n    tags: []\n", encoding="utf-8")

    handler.on_modified(FileModifiedEvent(str(journal_day)))

    assert handler.indexer.journal_keys_for_date("2024-03-01") == []


@pytest.mark.asyncio
async def test_journal_file_deleted(handler, journal_day):
    journal_day.unlink()

    handler.on_deleted(FileDeletedEvent(str(journal_day)))

    assert handler.indexer.journal_keys_for_date("2024-03-01") == []
    assert "health" not in handler.indexer.index.tags


@pytest.mark.asyncio
async def test_broken_journal_keeps_index(handler, journal_day):
    journal_day.write_text("entries: [unclosed\n", encoding="utf-8")

    handler.on_modified(FileModifiedEvent(str(journal_day)))

    assert handler.indexer.journal_keys_for_date("2024-03-01") == ["journal:2024-03-01:e1"]

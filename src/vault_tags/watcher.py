"""File system watcher for vault changes.

Maps .md create/modify/move/delete events and journal day edits onto
incremental tag index updates.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from rich.console import Console
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from vault_tags.config import Config
from vault_tags.index import TagIndexer
from vault_tags.parser import (
    create_journal_source_key,
    journal_date_from_filename,
    parse_journal_entries,
    parse_journal_source,
)
from vault_tags.store import FileSystemStore

logger = logging.getLogger(__name__)
console = Console()


class VaultEventHandler(FileSystemEventHandler):
    """Keeps a ``TagIndexer`` in sync with the files of a vault."""

    def __init__(self, indexer: TagIndexer, store: FileSystemStore) -> None:
        super().__init__()
        self.indexer = indexer
        self.store = store

    def _relative(self, path: str | bytes) -> str | None:
        """Vault-relative path, or None for paths outside the vault or hidden ones."""
        try:
            rel = self.store.relative(Path(os.fsdecode(path)))
        except ValueError:
            return None
        if any(part.startswith(".") for part in rel.split("/")):
            return None
        return rel

    def _is_markdown(self, rel: str | None) -> bool:
        return rel is not None and rel.endswith(".md")

    def _is_journal(self, rel: str | None) -> bool:
        if rel is None:
            return False
        folder = self.indexer.daily_notes_folder
        return (
            bool(folder)
            and rel.startswith(f"{folder}/")
            and journal_date_from_filename(rel.rsplit("/", 1)[-1]) is not None
        )

    def on_created(self, event: FileSystemEvent) -> None:
        self.on_modified(event)

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        rel = self._relative(event.src_path)
        if self._is_markdown(rel):
            console.print(f"  ✏️  Changed: [yellow]{rel}[/yellow]")
            self._reindex(rel)
        elif self._is_journal(rel):
            console.print(f"  📓 Journal: [yellow]{rel}[/yellow]")
            self._reindex_journal(rel)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        rel = self._relative(event.src_path)
        if self._is_markdown(rel):
            console.print(f"  🗑  Deleted: [red]{rel}[/red]")
            self.indexer.remove_document(rel)
        elif self._is_journal(rel):
            date = journal_date_from_filename(rel.rsplit("/", 1)[-1])
            for key in self.indexer.journal_keys_for_date(date):
                self.indexer.remove_document(key)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        old_rel = self._relative(event.src_path)
        new_rel = self._relative(event.dest_path)

        if self._is_markdown(old_rel) and self._is_markdown(new_rel):
            console.print(f"  🔀 Renamed: [cyan]{old_rel}[/cyan] → [cyan]{new_rel}[/cyan]")
            self.indexer.rename_document(old_rel, new_rel)
            # Editors often save by moving a temp file over the original
            self._reindex(new_rel)
        elif self._is_markdown(old_rel):
            self.indexer.remove_document(old_rel)
        elif self._is_markdown(new_rel):
            self._reindex(new_rel)

    def _reindex(self, rel: str) -> None:
        """Re-read the tags of a single changed file."""
        try:
            content = self.store.resolve(rel).read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            self.indexer.remove_document(rel)
            return
        except Exception as e:
            logger.error("Failed to re-index %s: %s", rel, e)
            console.print(f"  ✗ Error: {e}")
            return
        self.indexer.update_document(rel, content)

    def _reindex_journal(self, rel: str) -> None:
        date = journal_date_from_filename(rel.rsplit("/", 1)[-1])
        try:
            text = self.store.resolve(rel).read_text(encoding="utf-8")
            entries = parse_journal_entries(text)
        except Exception as e:
            logger.error("Failed to re-index journal %s: %s", rel, e)
            console.print(f"  ✗ Error: {e}")
            return

        current = {entry.id for entry in entries}
        for key in self.indexer.journal_keys_for_date(date):
            if parse_journal_source(key)[1] not in current:
                self.indexer.remove_document(key)
        for entry in entries:
            if entry.tags or self.indexer.get_tags_for_document(create_journal_source_key(date, entry.id)):
                self.indexer.update_journal_entry(date, entry.id, entry.tags)


def watch_vault(config: Config, indexer: TagIndexer) -> None:
    """Start watching the vault for file changes.

    Blocks until interrupted with Ctrl+C.
    """
    vault_path = str(config.vault_path)
    handler = VaultEventHandler(indexer, FileSystemStore(config.vault_path))
    observer = Observer()
    observer.schedule(handler, vault_path, recursive=True)

    console.print(f"\n👁  Watching: [bold]{vault_path}[/bold]")
    console.print("   Press Ctrl+C to stop.\n")

    observer.start()
    try:
        while observer.is_alive():
            observer.join(timeout=1)
    except KeyboardInterrupt:
        console.print("\n  Stopping watcher...")
    finally:
        observer.stop()
        observer.join()

"""Tag index builder and incremental maintenance.

``TagIndexer`` owns the document <-> tag mapping for one vault. A full build
scans the content store; afterwards single documents are updated, removed or
renamed in place. Every mutation recomputes the metadata, saves the index and
announces itself once on the event bus.

The indexer assumes a single writer. Incremental operations never suspend
while the index is being mutated; ``build`` assembles a fresh index and swaps
it in only once the scan has finished.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable

from vault_tags.config import DEFAULT_DAILY_NOTES_FOLDER, DEFAULT_PREFIX_BYTES, Config
from vault_tags.events import TAGS_REINDEX, EventBus
from vault_tags.parser import (
    create_journal_source_key,
    extract_tags,
    journal_date_from_filename,
    parse_journal_entries,
    parse_journal_source,
)
from vault_tags.persistence import (
    DEFAULT_MAX_AGE_MS,
    IndexPersistence,
    JsonFileKeyValueStore,
    is_stale,
    now_ms,
)
from vault_tags.schema import (
    EntryKind,
    ReindexEvent,
    ReindexType,
    SearchResult,
    TagEntry,
    TagIndex,
    TagIndexMeta,
)
from vault_tags.search import FuzzyTagSearch, rank_by_count
from vault_tags.store import ContentStore, ContentStoreError, FileSystemStore

logger = logging.getLogger(__name__)

YEAR_PATTERN = re.compile(r"^\d{4}$")
MONTH_PATTERN = re.compile(r"^\d{2}$")


def _dedupe(tags: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(tags))


def _add_references(index: TagIndex, doc: str, tags: list[str]) -> list[str]:
    """Put ``doc`` into the bucket of every tag. Returns tags that are new."""
    added: list[str] = []
    for tag in tags:
        bucket = index.tags.get(tag)
        if bucket is None:
            bucket = index.tags[tag] = []
            added.append(tag)
        if doc not in bucket:
            bucket.append(doc)
    return added


def _remove_references(index: TagIndex, doc: str) -> list[str]:
    """Take ``doc`` out of its buckets. Returns tags whose bucket emptied."""
    removed: list[str] = []
    for tag in index.files.get(doc, []):
        bucket = index.tags.get(tag)
        if bucket is None:
            continue
        remaining = [d for d in bucket if d != doc]
        if remaining:
            index.tags[tag] = remaining
        else:
            del index.tags[tag]
            removed.append(tag)
    return removed


class TagIndexer:
    """Maintains the tag index, its search engine and its stored copy."""

    def __init__(
        self,
        content_store: ContentStore | None = None,
        persistence: IndexPersistence | None = None,
        bus: EventBus | None = None,
        *,
        search: FuzzyTagSearch | None = None,
        daily_notes_folder: str = DEFAULT_DAILY_NOTES_FOLDER,
        prefix_bytes: int = DEFAULT_PREFIX_BYTES,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.content_store = content_store
        self.persistence = persistence
        self.bus = bus if bus is not None else EventBus()
        self.search_engine = search if search is not None else FuzzyTagSearch()
        self.daily_notes_folder = daily_notes_folder
        self.prefix_bytes = prefix_bytes
        self.clock = clock

        self.index = TagIndex()
        self.meta = TagIndexMeta()

    # ── Queries ───────────────────────────────────────────
    def is_built(self) -> bool:
        return bool(self.index.all_tags) or bool(self.index.files)

    def get_files_for_tag(self, tag: str) -> list[str]:
        return list(self.index.tags.get(tag, []))

    def get_tags_for_document(self, doc: str) -> list[str]:
        return list(self.index.files.get(doc, []))

    def journal_keys_for_date(self, date: str) -> list[str]:
        keys: list[str] = []
        for doc in self.index.files:
            parsed = parse_journal_source(doc)
            if parsed is not None and parsed[0] == date:
                keys.append(doc)
        return keys

    def search(self, query: str, limit: int | None = None) -> list[SearchResult]:
        """Fuzzy search over tag names."""
        return self.search_engine.search(query, limit=limit)

    def all_tags(self) -> list[TagEntry]:
        """All tags sorted by document count, highest first."""
        return rank_by_count(self.index.all_tags)

    def is_stale(self, max_age_ms: int = DEFAULT_MAX_AGE_MS) -> bool:
        return is_stale(self.meta, max_age_ms, now=self.clock())

    # ── Lifecycle ─────────────────────────────────────────
    def reset(self) -> None:
        """Drop the in-memory index. Nothing is saved or announced."""
        self.index = TagIndex()
        self.meta = TagIndexMeta()
        self.search_engine.reset()

    def load_from_storage(self) -> bool:
        """Replace the in-memory index with the stored copy.

        The search engine is left untouched; call ``initialize_search`` once
        this returns True.
        """
        if self.persistence is None:
            return False
        loaded = self.persistence.load()
        if loaded is None:
            return False
        self.index, self.meta = loaded
        logger.info(
            "Loaded tag index: %d files, %d tags", self.meta.file_count, self.meta.tag_count
        )
        return True

    def initialize_search(self) -> None:
        """Build the search engine from the current ``all_tags``."""
        if self.index.all_tags:
            self.search_engine.rebuild_from(self.index.all_tags)

    def clear_storage(self) -> None:
        if self.persistence is not None:
            self.persistence.clear()

    # ── Full build ────────────────────────────────────────
    async def build(self, root: str = "") -> TagIndex:
        """Rebuild the whole index from the content store."""
        if self.content_store is None:
            logger.warning("No content store configured, skipping tag index build")
            return self.index

        fresh = TagIndex()
        await self._scan_directory(fresh, root)
        await self._scan_journal(fresh)

        self.index = fresh
        self._rebuild_search()
        self._touch_meta()
        self._save()
        self._notify(
            ReindexEvent(
                type=ReindexType.FULL,
                meta=self.meta,
                files_added=list(self.index.files),
                tags_added=list(self.index.tags),
            )
        )
        logger.info(
            "Tag index built: %d files, %d tags", self.meta.file_count, self.meta.tag_count
        )
        return self.index

    async def _scan_directory(self, index: TagIndex, base: str) -> None:
        assert self.content_store is not None
        for entry in await self.content_store.list_children(base):
            if entry.name.startswith("."):
                continue
            path = f"{base}/{entry.name}" if base else entry.name

            if entry.kind == EntryKind.DIRECTORY:
                try:
                    await self._scan_directory(index, path)
                except ContentStoreError as e:
                    logger.warning("Skipping folder %s: %s", path, e)
                continue
            if not entry.name.endswith(".md"):
                continue

            try:
                text = await self.content_store.read_prefix(path, self.prefix_bytes)
            except Exception as e:
                logger.error("Error reading file %s: %s", path, e)
                continue

            tags = _dedupe(extract_tags(text))
            if tags:
                index.files[path] = tags
                _add_references(index, path, tags)

    async def _scan_journal(self, index: TagIndex) -> None:
        assert self.content_store is not None
        folder = self.daily_notes_folder
        if not folder:
            return

        store = self.content_store
        try:
            if not await store.exists(folder):
                return

            for year in await store.list_children(folder):
                if year.kind != EntryKind.DIRECTORY or not YEAR_PATTERN.match(year.name):
                    continue
                year_path = f"{folder}/{year.name}"

                for month in await store.list_children(year_path):
                    if month.kind != EntryKind.DIRECTORY or not MONTH_PATTERN.match(month.name):
                        continue
                    month_path = f"{year_path}/{month.name}"

                    for day in await store.list_children(month_path):
                        date = journal_date_from_filename(day.name)
                        if day.kind != EntryKind.FILE or date is None:
                            continue
                        day_path = f"{month_path}/{day.name}"
                        try:
                            entries = parse_journal_entries(await store.read_prefix(day_path))
                        except Exception as e:
                            logger.warning("Error reading journal file %s: %s", day_path, e)
                            continue

                        for entry in entries:
                            tags = _dedupe(entry.tags)
                            if tags:
                                key = create_journal_source_key(date, entry.id)
                                index.files[key] = tags
                                _add_references(index, key, tags)
        except Exception as e:
            logger.warning("Error scanning journal for tags: %s", e)

    # ── Incremental updates ───────────────────────────────
    def update_document(self, doc: str, content: str | None) -> None:
        """Re-read the tags of one document after it was saved."""
        self._apply_tags(doc, extract_tags(content))

    def update_journal_entry(self, date: str, entry_id: str, tags: list[str]) -> None:
        self._apply_tags(create_journal_source_key(date, entry_id), tags)

    def remove_document(self, doc: str) -> None:
        """Forget a deleted document. Unknown documents are ignored."""
        if doc not in self.index.files:
            return

        removed = _remove_references(self.index, doc)
        del self.index.files[doc]

        self._rebuild_search()
        self._touch_meta()
        self._save()
        self._notify(
            ReindexEvent(
                type=ReindexType.REMOVE,
                meta=self.meta,
                files_removed=[doc],
                tags_removed=removed or None,
            )
        )

    def remove_journal_entry(self, date: str, entry_id: str) -> None:
        self.remove_document(create_journal_source_key(date, entry_id))

    def rename_document(self, old_doc: str, new_doc: str) -> None:
        """Move a document's tags to its new identifier.

        Bucket positions are kept. The tag set does not change, so the search
        engine and ``all_tags`` are left as they are unless ``new_doc`` was
        already indexed and had to be dropped first.
        """
        tags = self.index.files.get(old_doc)
        if tags is None or old_doc == new_doc:
            return

        removed: list[str] = []
        replaced = new_doc in self.index.files
        if replaced:
            removed = _remove_references(self.index, new_doc)
            del self.index.files[new_doc]

        self.index.files[new_doc] = tags
        del self.index.files[old_doc]
        for tag in tags:
            bucket = self.index.tags.get(tag)
            if bucket is None:
                continue
            try:
                bucket[bucket.index(old_doc)] = new_doc
            except ValueError:
                continue

        if replaced:
            self._rebuild_search()
        self._touch_meta()
        self._save()
        self._notify(
            ReindexEvent(
                type=ReindexType.RENAME,
                meta=self.meta,
                files_added=[new_doc],
                files_removed=[old_doc],
                tags_removed=removed or None,
            )
        )

    def _apply_tags(self, doc: str, tags: list[str]) -> None:
        new_tags = _dedupe(tags)
        had_tags = bool(self.index.files.get(doc))

        removed = _remove_references(self.index, doc)
        added: list[str] = []
        if new_tags:
            self.index.files[doc] = new_tags
            added = _add_references(self.index, doc, new_tags)
        else:
            self.index.files.pop(doc, None)

        self._rebuild_search()
        self._touch_meta()
        self._save()
        self._notify(
            ReindexEvent(
                type=ReindexType.UPDATE,
                meta=self.meta,
                files_added=[doc] if new_tags else None,
                files_removed=[doc] if had_tags and not new_tags else None,
                tags_added=added or None,
                tags_removed=removed or None,
            )
        )

    # ── Internals ─────────────────────────────────────────
    def _rebuild_search(self) -> None:
        self.index.all_tags = [
            TagEntry(tag=tag, count=len(docs)) for tag, docs in self.index.tags.items()
        ]
        self.search_engine.rebuild_from(self.index.all_tags)

    def _touch_meta(self) -> None:
        self.meta = TagIndexMeta(
            file_count=len(self.index.files),
            tag_count=len(self.index.tags),
            last_indexed=self.clock(),
        )

    def _save(self) -> None:
        if self.persistence is not None:
            self.persistence.save(self.index, self.meta)

    def _notify(self, event: ReindexEvent) -> None:
        self.bus.emit(TAGS_REINDEX, event)


def create_indexer(config: Config, bus: EventBus | None = None) -> TagIndexer:
    """Wire a ``TagIndexer`` to the vault and index file named by ``config``."""
    return TagIndexer(
        FileSystemStore(config.vault_path),
        IndexPersistence(JsonFileKeyValueStore(config.resolved_index_path)),
        bus,
        search=FuzzyTagSearch(threshold=config.search_threshold),
        daily_notes_folder=config.daily_notes_folder,
        prefix_bytes=config.prefix_bytes,
    )


async def load_or_build(indexer: TagIndexer, max_age_ms: int = DEFAULT_MAX_AGE_MS) -> bool:
    """Use the stored index when it is fresh, otherwise rebuild.

    Returns True when a rebuild happened.
    """
    if indexer.load_from_storage() and not indexer.is_stale(max_age_ms):
        indexer.initialize_search()
        return False
    await indexer.build()
    return True

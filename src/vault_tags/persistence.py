"""Tag index persistence.

Stores the index and its metadata as a single JSON blob in a key-value
store, and tells whether a stored index is too old to trust.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from dataclasses import asdict
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, ValidationError

from vault_tags.schema import TagEntry, TagIndex, TagIndexMeta

logger = logging.getLogger(__name__)

STORAGE_KEY = "vault_tags.index"
DEFAULT_MAX_AGE_MS = 24 * 60 * 60 * 1000


def now_ms() -> int:
    return int(time.time() * 1000)


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryKeyValueStore:
    """In-process store, mainly for tests and one-shot runs."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileKeyValueStore:
    """Key-value store kept in one JSON file, rewritten atomically."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        data = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected store contents in {self.path}")
        return data

    def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                json.dump(data, tmp)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get(self, key: str) -> str | None:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        try:
            data = self._read()
        except ValueError as e:
            # The write below replaces the unreadable file
            logger.warning("Discarding unreadable store %s: %s", self.path, e)
            data = {}
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if data.pop(key, None) is not None:
            self._write(data)


# ── Stored shape ──────────────────────────────────────────
class _TagEntryModel(BaseModel):
    tag: str
    count: int


class _IndexModel(BaseModel):
    files: dict[str, list[str]]
    tags: dict[str, list[str]]
    all_tags: list[_TagEntryModel] = []


class _MetaModel(BaseModel):
    file_count: int = 0
    tag_count: int = 0
    last_indexed: int = 0


class IndexSnapshot(BaseModel):
    index: _IndexModel
    meta: _MetaModel


class IndexPersistence:
    """Saves and loads the tag index under a fixed key."""

    def __init__(self, store: KeyValueStore, key: str = STORAGE_KEY) -> None:
        self.store = store
        self.key = key

    def save(self, index: TagIndex, meta: TagIndexMeta) -> bool:
        """Write ``index`` and ``meta``. Failures are logged, never raised."""
        try:
            snapshot = IndexSnapshot.model_validate({"index": asdict(index), "meta": asdict(meta)})
            self.store.set(self.key, snapshot.model_dump_json())
            return True
        except Exception as e:
            logger.error("Failed to save tag index: %s", e)
            return False

    def load(self) -> tuple[TagIndex, TagIndexMeta] | None:
        """Read the stored index, or None when missing or unreadable."""
        try:
            raw = self.store.get(self.key)
        except Exception as e:
            logger.error("Failed to read tag index: %s", e)
            return None
        if not raw:
            return None

        try:
            snapshot = IndexSnapshot.model_validate_json(raw)
        except ValidationError as e:
            logger.error("Failed to load tag index: %s", e)
            return None

        index = TagIndex(
            files={doc: list(tags) for doc, tags in snapshot.index.files.items()},
            tags={tag: list(docs) for tag, docs in snapshot.index.tags.items()},
            all_tags=[TagEntry(tag=e.tag, count=e.count) for e in snapshot.index.all_tags],
        )
        meta = TagIndexMeta(**snapshot.meta.model_dump())
        return index, meta

    def clear(self) -> None:
        try:
            self.store.delete(self.key)
        except Exception as e:
            logger.error("Failed to clear tag index: %s", e)


def is_stale(meta: TagIndexMeta, max_age_ms: int = DEFAULT_MAX_AGE_MS, now: int | None = None) -> bool:
    """True when the index was never built or is older than ``max_age_ms``."""
    if not meta.last_indexed:
        return True
    current = now_ms() if now is None else now
    return current - meta.last_indexed > max_age_ms

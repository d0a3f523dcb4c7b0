"""Content store access for the indexer.

The indexer only needs to list folders and read the head of documents.
``FileSystemStore`` serves a vault directory and runs the blocking file
calls in worker threads so a scan yields to the event loop at every step.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from vault_tags.schema import EntryKind

logger = logging.getLogger(__name__)


class ContentStoreError(Exception):
    """Base error for content store failures."""


class ContentNotFoundError(ContentStoreError):
    """The requested path does not exist."""


class ContentPermissionError(ContentStoreError):
    """The requested path cannot be accessed."""


@dataclass(frozen=True)
class Entry:
    name: str
    kind: EntryKind


class ContentStore(Protocol):
    async def list_children(self, path: str) -> list[Entry]: ...

    async def read_prefix(self, path: str, max_bytes: int | None = None) -> str: ...

    async def exists(self, path: str) -> bool: ...


class FileSystemStore:
    """Content store over a vault directory, addressed by POSIX relative paths."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def resolve(self, path: str) -> Path:
        if not path:
            return self.root
        resolved = (self.root / path).resolve()
        if not resolved.is_relative_to(self.root.resolve()):
            raise ContentPermissionError(f"Path escapes the vault: {path}")
        return resolved

    def relative(self, path: Path | str) -> str:
        """Vault-relative POSIX path for an absolute filesystem path."""
        return Path(path).resolve().relative_to(self.root.resolve()).as_posix()

    async def list_children(self, path: str) -> list[Entry]:
        return await asyncio.to_thread(self._list_children, path)

    async def read_prefix(self, path: str, max_bytes: int | None = None) -> str:
        return await asyncio.to_thread(self._read_prefix, path, max_bytes)

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(lambda: self.resolve(path).exists())

    def _list_children(self, path: str) -> list[Entry]:
        target = self.resolve(path)
        try:
            children = sorted(target.iterdir(), key=lambda p: p.name)
        except FileNotFoundError as e:
            raise ContentNotFoundError(f"Folder not found: {path or '.'}") from e
        except NotADirectoryError as e:
            raise ContentNotFoundError(f"Not a folder: {path}") from e
        except PermissionError as e:
            raise ContentPermissionError(f"Permission denied: {path or '.'}") from e

        entries: list[Entry] = []
        for child in children:
            kind = EntryKind.DIRECTORY if child.is_dir() else EntryKind.FILE
            entries.append(Entry(name=child.name, kind=kind))
        return entries

    def _read_prefix(self, path: str, max_bytes: int | None) -> str:
        target = self.resolve(path)
        try:
            with target.open("rb") as fh:
                data = fh.read() if max_bytes is None else fh.read(max_bytes)
        except FileNotFoundError as e:
            raise ContentNotFoundError(f"File not found: {path}") from e
        except IsADirectoryError as e:
            raise ContentNotFoundError(f"Not a file: {path}") from e
        except PermissionError as e:
            raise ContentPermissionError(f"Permission denied: {path}") from e
        # A truncated read may cut a multi-byte character in half
        return data.decode("utf-8", errors="replace" if max_bytes is None else "ignore")

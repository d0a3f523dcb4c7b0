"""Vault note parser.

Extracts frontmatter tags from markdown notes and tagged entries from
journal day files.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

import yaml

from vault_tags import frontmatter

logger = logging.getLogger(__name__)

JOURNAL_PREFIX = "journal:"
JOURNAL_KEY_PATTERN = re.compile(r"^journal:(\d{4}-\d{2}-\d{2}):(.+)$")
JOURNAL_FILE_PATTERN = re.compile(r"^(\d{4}-\d{2}-\d{2})\.yaml$")


@dataclass
class JournalEntry:
    """A single entry of a journal day file."""

    id: str
    text: str = ""
    tags: list[str] = field(default_factory=list)
    order: int = 0


def extract_tags(content: str | None) -> list[str]:
    """Return the ``tags`` frontmatter field of ``content`` as a list.

    Tags are returned exactly as written; filtering (e.g. task prefixes) is
    left to the caller.
    """
    tags = frontmatter.parse(content).get("tags")
    if not tags:
        return []
    if isinstance(tags, list):
        return tags
    if isinstance(tags, str):
        return [tags]
    return []


def is_journal_source(key: str) -> bool:
    return key.startswith(JOURNAL_PREFIX)


def parse_journal_source(key: str) -> tuple[str, str] | None:
    """Split a journal key into ``(date, entry_id)``."""
    if not is_journal_source(key):
        return None
    match = JOURNAL_KEY_PATTERN.match(key)
    if not match:
        return None
    return match.group(1), match.group(2)


def create_journal_source_key(date: str, entry_id: str) -> str:
    return f"{JOURNAL_PREFIX}{date}:{entry_id}"


def journal_date_from_filename(name: str) -> str | None:
    """``2024-03-01.yaml`` -> ``2024-03-01``; None for anything else."""
    match = JOURNAL_FILE_PATTERN.match(name)
    return match.group(1) if match else None


def parse_journal_entries(text: str) -> list[JournalEntry]:
    """Parse a journal day file into its entries.

    Entries without an id are skipped. Tags that are not a list of strings
    are treated as no tags.

    Raises:
        yaml.YAMLError: If the file is not valid YAML.
    """
    data = yaml.safe_load(text)
    if not isinstance(data, dict):
        return []

    raw_entries = data.get("entries") or []
    if not isinstance(raw_entries, list):
        return []

    entries: list[JournalEntry] = []
    for raw in raw_entries:
        if not isinstance(raw, dict) or raw.get("id") in (None, ""):
            continue
        tags = raw.get("tags") or []
        if not isinstance(tags, list):
            tags = []
        entries.append(
            JournalEntry(
                id=str(raw["id"]),
                text=str(raw.get("text") or ""),
                tags=[str(t) for t in tags if t is not None and str(t)],
                order=raw.get("order") if isinstance(raw.get("order"), int) else 0,
            )
        )
    return entries

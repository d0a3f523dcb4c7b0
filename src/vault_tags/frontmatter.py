"""Frontmatter parsing and key updates for vault notes.

Frontmatter is only recognised at the very start of a document (after an
optional byte-order mark) between two ``---`` delimiters. The payload is read
with a small line parser that understands the subset notes actually use:
scalars, comma lists, ``[a, b]`` arrays and indented ``- item`` lists.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DELIMITER = "---"
BOM = "\ufeff"

FrontmatterValue = str | list[str]


@dataclass(frozen=True)
class FrontmatterResult:
    """Location of a frontmatter block inside a document."""

    raw: str
    end_index: int
    bom_offset: int


@dataclass(frozen=True)
class SplitResult:
    """Document split into raw frontmatter and body."""

    frontmatter: str | None
    body: str


def extract_raw(content: str | None) -> FrontmatterResult | None:
    """Find the frontmatter block at the head of ``content``.

    Returns None when the document does not open with the delimiter or the
    block is never closed. ``content[end_index:]`` is everything after the
    closing delimiter.
    """
    if not content:
        return None

    bom_offset = 0
    text = content
    if text.startswith(BOM):
        bom_offset = 1
        text = text[1:]

    if not text.startswith(DELIMITER):
        return None

    end = text.find(DELIMITER, len(DELIMITER))
    if end == -1:
        logger.debug("Unterminated frontmatter block, treating document as body")
        return None

    return FrontmatterResult(
        raw=text[len(DELIMITER):end].strip(),
        end_index=end + len(DELIMITER) + bom_offset,
        bom_offset=bom_offset,
    )


def _split_items(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def parse(content: str | None) -> dict[str, FrontmatterValue]:
    """Parse the frontmatter of ``content`` into a key -> value map.

    ``key: a, b`` and ``key: [a, b]`` give lists, a single token gives a bare
    string, and ``key:`` followed by ``- item`` lines gives a block list.
    Values with no tokens at all (``key: ,,``) are left out.
    """
    extracted = extract_raw(content)
    if extracted is None:
        return {}

    result: dict[str, FrontmatterValue] = {}
    current_key: str | None = None
    list_items: list[str] = []

    for line in extracted.raw.split("\n"):
        trimmed = line.strip()

        if current_key and trimmed.startswith("- "):
            list_items.append(trimmed[2:].strip())
            continue

        if current_key and list_items:
            result[current_key] = list_items
            list_items = []
            current_key = None

        colon = trimmed.find(":")
        if colon <= 0:
            continue

        key = trimmed[:colon].strip()
        value = trimmed[colon + 1:].strip()

        if not value:
            current_key = key
        elif value.startswith("[") and value.endswith("]"):
            result[key] = _split_items(value[1:-1])
        else:
            items = _split_items(value)
            if len(items) == 1:
                result[key] = items[0]
            elif items:
                result[key] = items

    if current_key and list_items:
        result[current_key] = list_items

    return result


def get_value(content: str | None, key: str) -> FrontmatterValue | None:
    """Return a single parsed frontmatter value, or None if absent."""
    return parse(content).get(key)


def split(content: str | None) -> SplitResult:
    """Split ``content`` into raw frontmatter text and body."""
    if not content:
        return SplitResult(frontmatter=None, body="")

    extracted = extract_raw(content)
    if extracted is None:
        return SplitResult(frontmatter=None, body=content)

    return SplitResult(
        frontmatter=extracted.raw,
        body=content[extracted.end_index:].lstrip(),
    )


def update_key(content: str | None, key: str, value: str) -> str:
    """Set ``key: value`` in the frontmatter of ``content``.

    Only the matching line is rewritten; every other frontmatter line is kept
    as it was. A document without frontmatter gets a new block holding just
    this key, in front of the original text.
    """
    text = content or ""
    extracted = extract_raw(text)

    if extracted is None:
        bom = BOM if text.startswith(BOM) else ""
        body = text[len(bom):]
        return f"{bom}{DELIMITER}\n{key}: {value}\n{DELIMITER}\n\n{body}"

    lines = extracted.raw.split("\n") if extracted.raw else []
    found = False
    updated: list[str] = []
    for line in lines:
        colon = line.find(":")
        if colon > 0 and line[:colon].strip() == key:
            found = True
            updated.append(f"{key}: {value}")
        else:
            updated.append(line)

    if not found:
        updated.append(f"{key}: {value}")

    body = text[extracted.end_index:].lstrip()
    bom = BOM if extracted.bom_offset else ""
    block = "\n".join(updated)
    return f"{bom}{DELIMITER}\n{block}\n{DELIMITER}\n\n{body}"

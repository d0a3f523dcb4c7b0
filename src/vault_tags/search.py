"""Fuzzy tag search.

Wraps the flat tag list in a rapidfuzz matcher. The matcher is rebuilt as a
whole whenever the set of tags changes.
"""

from __future__ import annotations

import logging

from rapidfuzz import fuzz, process, utils

from vault_tags.schema import SearchResult, TagEntry

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.4


class FuzzyTagSearch:
    """Approximate matching over tag names.

    Scores are reported on a 0..1 scale where 0 is an exact match; results
    scoring above ``threshold`` are dropped.
    """

    def __init__(self, threshold: float = DEFAULT_THRESHOLD) -> None:
        self.threshold = threshold
        self._entries: list[TagEntry] = []
        self._choices: list[str] = []
        self._built = False

    @property
    def is_built(self) -> bool:
        return self._built

    def rebuild_from(self, all_tags: list[TagEntry]) -> None:
        self._entries = list(all_tags)
        self._choices = [entry.tag for entry in self._entries]
        self._built = True
        logger.debug("Search index rebuilt with %d tags", len(self._entries))

    def reset(self) -> None:
        self._entries = []
        self._choices = []
        self._built = False

    def search(self, query: str, limit: int | None = None) -> list[SearchResult]:
        """Return tags matching ``query``, best match first."""
        if not query or not self._built:
            return []

        matches = process.extract(
            query,
            self._choices,
            scorer=fuzz.WRatio,
            processor=utils.default_process,
            limit=limit,
            score_cutoff=(1.0 - self.threshold) * 100,
        )
        results: list[SearchResult] = []
        for _choice, similarity, idx in matches:
            entry = self._entries[idx]
            results.append(
                SearchResult(
                    tag=entry.tag,
                    count=entry.count,
                    score=round(1.0 - similarity / 100.0, 4),
                )
            )
        return results

    def all_ranked_by_count(self) -> list[TagEntry]:
        return rank_by_count(self._entries)


def rank_by_count(entries: list[TagEntry]) -> list[TagEntry]:
    """Every tag, most used first. Ties keep their original order."""
    return sorted(entries, key=lambda e: e.count, reverse=True)

"""Ranked completion over the note index.

Three contexts are served: wiki links (``[[``), markdown links (``](``) and
tags (``#``). Every candidate string of a note is scored and the best one
decides the note's rank and label.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from collections.abc import Callable
from pathlib import Path

from .config import QUERY_CACHE_MAX_ENTRIES, IndexConfig
from .index import IndexSnapshot, NoteIndex
from .matcher import best_match
from .models import CompletionContext, CompletionItem, MatchType, Note

_CacheKey = tuple[CompletionContext, str, str]


def markdown_link_target(note: Note) -> str:
    """Relative path usable inside ``[text](...)``."""
    return note.relative_path.replace(" ", "%20")


def _wiki_candidates(note: Note) -> list[tuple[str, str]]:
    candidates = [(note.title, "title"), (note.file_name, "filename")]
    candidates.extend((alias, "alias") for alias in sorted(note.aliases))
    return candidates


def _markdown_candidates(note: Note) -> list[tuple[str, str]]:
    return [(note.title, "title"), (note.relative_path, "path")]


class CompletionService:
    """Answer completion queries against a NoteIndex.

    Results are memoised per (context, query, root) for a few seconds, but
    only while the index generation is unchanged.
    """

    def __init__(
        self,
        index: NoteIndex,
        config: IndexConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.index = index
        self.config = config or index.config
        self._clock = clock
        self._cache: OrderedDict[_CacheKey, tuple[int, float, list[CompletionItem]]] = OrderedDict()
        index.add_invalidation_listener(self.clear_cache)

    def clear_cache(self) -> None:
        self._cache.clear()

    def complete(
        self,
        query: str,
        context: CompletionContext,
        root: Path,
        limit: int | None = None,
    ) -> list[CompletionItem]:
        """Return ranked items for query, best first.

        Args:
            query: Text typed after the trigger, without the trigger itself.
            context: Which kind of link is being completed.
            root: Repository root to index.
            limit: Maximum number of items; defaults to the configured cap.
        """
        snapshot = self.index.ensure_fresh(root)
        return self._complete_from(snapshot, query, context, limit)

    async def complete_async(
        self,
        query: str,
        context: CompletionContext,
        root: Path,
        limit: int | None = None,
    ) -> list[CompletionItem]:
        snapshot = await self.index.ensure_fresh_async(root)
        return self._complete_from(snapshot, query, context, limit)

    def _complete_from(
        self,
        snapshot: IndexSnapshot,
        query: str,
        context: CompletionContext,
        limit: int | None,
    ) -> list[CompletionItem]:
        context = CompletionContext(context)
        cap = self.config.result_cap if limit is None else max(0, limit)
        query = query.strip()

        key = (context, query, str(snapshot.root))
        items = self._cached(key, snapshot.generation)
        if items is None:
            items = self._rank(snapshot, query, context)
            self._store(key, snapshot.generation, items)
        return items[:cap]

    # ------------------------------------------------------------------
    # Ranking
    # ------------------------------------------------------------------

    def _rank(
        self, snapshot: IndexSnapshot, query: str, context: CompletionContext
    ) -> list[CompletionItem]:
        if context is CompletionContext.TAG:
            items = self._tag_items(snapshot, query)
        else:
            items = [
                item
                for note in snapshot.notes
                if (item := self._note_item(note, query, context)) is not None
            ]
        items.sort(key=lambda item: (-item.score, item.label))
        return items

    def _note_item(
        self, note: Note, query: str, context: CompletionContext
    ) -> CompletionItem | None:
        if context is CompletionContext.WIKI_LINK:
            candidates = _wiki_candidates(note)
            insert_text = note.file_name
        else:
            candidates = _markdown_candidates(note)
            insert_text = markdown_link_target(note)

        if not query:
            # Nothing typed: every note is listed with the same rank
            value, label, kind = 0.0, note.title, "title"
        else:
            match = best_match(query, candidates)
            if match is None or match[0] <= 0:
                return None
            value, label, kind = match

        return CompletionItem(
            context=context,
            label=label,
            insert_text=insert_text,
            detail=note.relative_path,
            score=value,
            match_type=_match_type(kind),
            note=note,
        )

    def _tag_items(self, snapshot: IndexSnapshot, query: str) -> list[CompletionItem]:
        query = query.lstrip("#")
        items = []
        for tag, count in snapshot.tag_counts().items():
            if not query:
                value = 0.0
            else:
                match = best_match(query, [(tag, "tag")])
                if match is None or match[0] <= 0:
                    continue
                value = match[0]
            items.append(
                CompletionItem(
                    context=CompletionContext.TAG,
                    label=f"#{tag}",
                    insert_text=tag,
                    detail=f"Used {count} time{'s' if count != 1 else ''}",
                    score=value,
                    match_type="tag",
                )
            )
        return items

    # ------------------------------------------------------------------
    # Result cache
    # ------------------------------------------------------------------

    def _cached(self, key: _CacheKey, generation: int) -> list[CompletionItem] | None:
        entry = self._cache.get(key)
        if entry is None:
            return None
        cached_generation, created_at, items = entry
        age_ms = (self._clock() - created_at) * 1000
        if cached_generation != generation or age_ms > self.config.query_cache_ttl_ms:
            del self._cache[key]
            return None
        self._cache.move_to_end(key)
        return items

    def _store(self, key: _CacheKey, generation: int, items: list[CompletionItem]) -> None:
        self._cache[key] = (generation, self._clock(), items)
        self._cache.move_to_end(key)
        while len(self._cache) > QUERY_CACHE_MAX_ENTRIES:
            self._cache.popitem(last=False)


def _match_type(kind: str) -> MatchType:
    if kind in ("title", "filename", "alias", "path", "tag"):
        return kind  # type: ignore[return-value]
    raise ValueError(f"Unknown match kind: {kind}")

"""Depth-1 link neighborhoods computed from the note index.

Links are compared by their normalized name: the last path component with the
markdown extension stripped, case-insensitively. ``[[notes/Plan.md]]`` and
``[text](../plan)`` both point at a note whose file name is ``Plan``.
"""

from __future__ import annotations

import logging
import time
from collections import defaultdict
from collections.abc import Callable
from pathlib import Path

from .config import IndexConfig
from .index import IndexSnapshot, NoteIndex
from .models import Neighborhood, Note
from .parser import link_name

log = logging.getLogger(__name__)


class LinkGraph:
    """Answers neighborhood queries with a short-lived per-note cache."""

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
        self._cache: dict[str, tuple[int, float, Neighborhood]] = {}
        self._backlinks: dict[str, set[str]] = {}
        self._backlinks_generation: int | None = None
        index.add_invalidation_listener(self.clear)

    def clear(self) -> None:
        """Drop memoised neighborhoods and the backlink table."""
        self._cache.clear()
        self._backlinks = {}
        self._backlinks_generation = None

    def neighborhood(self, note_or_name: Note | str, root: Path | None = None) -> Neighborhood:
        """Return the notes linked from and linking to one note.

        Args:
            note_or_name: A Note or a file name.
            root: When given, the index is refreshed for this root first;
                otherwise the current snapshot is used as is.
        """
        snapshot = self.index.ensure_fresh(root) if root is not None else self.index.snapshot
        name = note_or_name.file_name if isinstance(note_or_name, Note) else note_or_name
        if snapshot is None:
            return Neighborhood(name=name)

        key = name.casefold()
        cached = self._cache.get(key)
        if cached is not None:
            generation, created_at, result = cached
            age_ms = (self._clock() - created_at) * 1000
            if generation == snapshot.generation and age_ms <= self.config.graph_cache_ttl_ms:
                return result

        note = note_or_name if isinstance(note_or_name, Note) else self.index.find_by_name(name)
        result = Neighborhood(
            name=name,
            outgoing=frozenset(self._outgoing(note, key)) if note else frozenset(),
            incoming=frozenset(self._backlink_table(snapshot).get(key, ())),
        )
        self._cache[key] = (snapshot.generation, self._clock(), result)
        return result

    def _outgoing(self, note: Note, self_key: str) -> set[str]:
        names = set()
        for target in note.outbound_links:
            name = link_name(target, self.config.extensions)
            if name and name.casefold() != self_key:
                names.add(name)
        return names

    def _backlink_table(self, snapshot: IndexSnapshot) -> dict[str, set[str]]:
        if self._backlinks_generation == snapshot.generation:
            return self._backlinks

        table: dict[str, set[str]] = defaultdict(set)
        for note in snapshot.notes:
            own_key = note.file_name.casefold()
            for target in note.outbound_links:
                key = link_name(target, self.config.extensions).casefold()
                if key and key != own_key:
                    table[key].add(note.file_name)

        log.debug("Backlink table rebuilt for generation %d", snapshot.generation)
        self._backlinks = dict(table)
        self._backlinks_generation = snapshot.generation
        return self._backlinks

"""Query facade used by the CLI and by editor adapters.

``NoteEngine`` owns one NoteIndex and the services reading it. Every query
accepts an optional root; without one the engine's default root is used.
"""

import time
from collections.abc import Callable
from pathlib import Path

from .completion import CompletionService
from .config import IndexConfig, resolve_root
from .graph import LinkGraph
from .index import NoteIndex
from .models import CompletionContext, CompletionItem, IndexStats, Neighborhood, Note


class NoteEngine:
    """Completion and link-graph queries over one markdown repository.

    Args:
        config: Loaded configuration; defaults to IndexConfig().
        root: Default repository root. When omitted it is resolved from the
            config (root_override, then the git work tree, then the cwd).
        index: Pre-built NoteIndex, mainly for tests.
        clock: Monotonic clock in seconds shared by the index and caches.
    """

    def __init__(
        self,
        config: IndexConfig | None = None,
        root: Path | None = None,
        *,
        index: NoteIndex | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or IndexConfig()
        self.root = Path(root).expanduser().resolve() if root else resolve_root(self.config)
        self.index = index or NoteIndex(self.config, clock=clock)
        self.completion = CompletionService(self.index, self.config, clock=clock)
        self.graph = LinkGraph(self.index, self.config, clock=clock)

    def _root(self, root: Path | None) -> Path:
        return Path(root) if root is not None else self.root

    def complete(
        self,
        query: str,
        context: CompletionContext | str = CompletionContext.WIKI_LINK,
        root: Path | None = None,
        limit: int | None = None,
    ) -> list[CompletionItem]:
        return self.completion.complete(query, CompletionContext(context), self._root(root), limit)

    async def complete_async(
        self,
        query: str,
        context: CompletionContext | str = CompletionContext.WIKI_LINK,
        root: Path | None = None,
        limit: int | None = None,
    ) -> list[CompletionItem]:
        return await self.completion.complete_async(
            query, CompletionContext(context), self._root(root), limit
        )

    def neighborhood(self, name_or_note: Note | str, root: Path | None = None) -> Neighborhood:
        return self.graph.neighborhood(name_or_note, self._root(root))

    def notes(self, root: Path | None = None, tag: str | None = None) -> list[Note]:
        """List indexed notes sorted by relative path, optionally by tag."""
        self.index.ensure_fresh(self._root(root))
        notes = self.index.find_by_tag(tag) if tag else self.index.all_notes()
        return sorted(notes, key=lambda n: n.relative_path)

    def refresh(self, root: Path | None = None) -> IndexStats:
        """Bring the index up to date and report its state."""
        self.index.ensure_fresh(self._root(root))
        return self.index.get_stats()

    def invalidate(self) -> None:
        self.index.invalidate()

    def get_stats(self) -> IndexStats:
        return self.index.get_stats()

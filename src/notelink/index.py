"""In-memory note index with TTL and explicit invalidation.

The index is a sequence of immutable snapshots. A rebuild assembles a
complete new :class:`IndexSnapshot` off to the side and publishes it with a
single reference assignment, so readers always see either the old snapshot or
the new one.

Rebuilds are serialized: ``ensure_fresh`` holds a lock, and
``ensure_fresh_async`` shares one in-flight task between concurrent callers.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections import defaultdict
from collections.abc import Callable, Generator, Iterable, Mapping
from dataclasses import dataclass, field
from itertools import islice
from pathlib import Path
from types import MappingProxyType

from .config import REBUILD_YIELD_EVERY, IndexConfig
from .errors import ParseError
from .locator import Discovery, FileLocator
from .models import IndexStats, Note
from .parser import FrontmatterParser, LinkExtractor

log = logging.getLogger(__name__)

Clock = Callable[[], float]


def _group(pairs: Iterable[tuple[str, Note]]) -> Mapping[str, tuple[Note, ...]]:
    grouped: dict[str, list[Note]] = defaultdict(list)
    for key, note in pairs:
        if note not in grouped[key]:
            grouped[key].append(note)
    return MappingProxyType({key: tuple(notes) for key, notes in grouped.items()})


@dataclass(frozen=True)
class IndexSnapshot:
    """One complete, immutable build of the index."""

    root: Path
    notes: tuple[Note, ...]
    built_at: float
    generation: int
    root_exists: bool
    discovery_source: str = "none"
    skipped_files: int = 0
    by_name: Mapping[str, tuple[Note, ...]] = field(default_factory=dict)
    by_alias: Mapping[str, tuple[Note, ...]] = field(default_factory=dict)
    by_tag: Mapping[str, tuple[Note, ...]] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        root: Path,
        notes: Iterable[Note],
        *,
        built_at: float,
        generation: int,
        root_exists: bool = True,
        discovery_source: str = "none",
        skipped_files: int = 0,
    ) -> IndexSnapshot:
        notes = tuple(notes)
        return cls(
            root=root,
            notes=notes,
            built_at=built_at,
            generation=generation,
            root_exists=root_exists,
            discovery_source=discovery_source,
            skipped_files=skipped_files,
            by_name=_group((n.file_name.casefold(), n) for n in notes),
            by_alias=_group((a.casefold(), n) for n in notes for a in n.aliases),
            by_tag=_group((t, n) for n in notes for t in n.tags),
        )

    def tag_counts(self) -> dict[str, int]:
        """Number of notes carrying each tag."""
        return {tag: len(notes) for tag, notes in self.by_tag.items()}


class NoteIndex:
    """Owns the Note table and rebuilds it from disk when stale.

    Args:
        config: Limits and TTL; defaults to IndexConfig().
        locator: File discovery; built from config when omitted.
        frontmatter_parser: Header parser; built from config when omitted.
        link_extractor: Link/tag scanner; built from config when omitted.
        clock: Monotonic clock in seconds (injectable for tests).
    """

    def __init__(
        self,
        config: IndexConfig | None = None,
        *,
        locator: FileLocator | None = None,
        frontmatter_parser: FrontmatterParser | None = None,
        link_extractor: LinkExtractor | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self.config = config or IndexConfig()
        self._locator = locator or FileLocator.from_config(self.config)
        self._frontmatter = frontmatter_parser or FrontmatterParser(self.config.frontmatter_lines)
        self._links = link_extractor or LinkExtractor(
            self.config.max_scan_lines, self.config.extensions
        )
        self._clock = clock

        self._snapshot: IndexSnapshot | None = None
        self._dirty = False
        self._generation = 0
        self._lock = threading.Lock()
        self._rebuilding = False
        self._inflight: asyncio.Task[IndexSnapshot] | None = None
        self._inflight_root: Path | None = None
        self._listeners: list[Callable[[], None]] = []

    # ------------------------------------------------------------------
    # Freshness
    # ------------------------------------------------------------------

    @property
    def ttl_ms(self) -> int:
        return self.config.ttl_ms

    @property
    def max_entries(self) -> int:
        return self.config.max_files

    @property
    def snapshot(self) -> IndexSnapshot | None:
        return self._snapshot

    @property
    def generation(self) -> int:
        return self._snapshot.generation if self._snapshot else 0

    def _age_ms(self, snapshot: IndexSnapshot) -> float:
        return (self._clock() - snapshot.built_at) * 1000

    def is_stale(self, root: Path) -> bool:
        snapshot = self._snapshot
        if snapshot is None or self._dirty:
            return True
        if snapshot.root != self._normalize_root(root):
            return True
        return self._age_ms(snapshot) > self.ttl_ms

    @staticmethod
    def _normalize_root(root: Path) -> Path:
        return Path(root).expanduser().resolve()

    def ensure_fresh(self, root: Path) -> IndexSnapshot:
        """Rebuild if stale, otherwise return the current snapshot.

        A caller that arrives while another thread is rebuilding waits for
        that rebuild and then reuses its result.
        """
        if not self.is_stale(root):
            return self._snapshot  # type: ignore[return-value]

        with self._lock:
            if not self.is_stale(root):
                return self._snapshot  # type: ignore[return-value]
            root = self._normalize_root(root)
            self._begin_rebuild()
            try:
                discovery = self._discover(root)
                snapshot = _drain(self._build_steps(root, discovery))
            finally:
                self._rebuilding = False
            return self._publish(snapshot)

    async def ensure_fresh_async(self, root: Path) -> IndexSnapshot:
        """Asyncio variant of :meth:`ensure_fresh`.

        Discovery runs in a worker thread and the rebuild yields to the event
        loop every few files. Concurrent callers share the in-flight rebuild.
        """
        root = self._normalize_root(root)
        inflight = self._inflight
        if inflight is not None and not inflight.done() and self._inflight_root == root:
            return await asyncio.shield(inflight)

        if not self.is_stale(root):
            return self._snapshot  # type: ignore[return-value]

        task = asyncio.ensure_future(self._rebuild_async(root))
        self._inflight = task
        self._inflight_root = root
        try:
            return await asyncio.shield(task)
        finally:
            if self._inflight is task and task.done():
                self._inflight = None
                self._inflight_root = None

    async def _rebuild_async(self, root: Path) -> IndexSnapshot:
        self._begin_rebuild()
        try:
            discovery = await asyncio.to_thread(self._discover, root)
            steps = self._build_steps(root, discovery)
            while True:
                try:
                    next(steps)
                except StopIteration as done:
                    snapshot = done.value
                    break
                await asyncio.sleep(0)
        finally:
            self._rebuilding = False
        return self._publish(snapshot)

    def invalidate(self) -> None:
        """Force the next ensure_fresh to rebuild regardless of TTL."""
        self._dirty = True
        for listener in list(self._listeners):
            listener()

    def add_invalidation_listener(self, listener: Callable[[], None]) -> None:
        """Register a callback run on invalidate() and after every rebuild."""
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Rebuild
    # ------------------------------------------------------------------

    def _begin_rebuild(self) -> None:
        # An invalidate() arriving mid-rebuild sets this again
        self._dirty = False
        self._rebuilding = True

    def _discover(self, root: Path) -> Discovery:
        return self._locator.discover(root)

    def _build_steps(self, root: Path, discovery: Discovery) -> Generator[None, None, IndexSnapshot]:
        """Assemble a snapshot, yielding after every batch of files."""
        self._generation += 1
        generation = self._generation

        if not root.is_dir():
            log.info("Index root %s does not exist or is not a directory", root)
            return IndexSnapshot.build(
                root, (), built_at=self._clock(), generation=generation, root_exists=False
            )

        notes: list[Note] = []
        skipped = 0
        for count, path in enumerate(sorted(discovery.paths)[: self.max_entries], start=1):
            try:
                notes.append(self._load_note(path, root))
            except ParseError as e:
                skipped += 1
                log.debug("Skipping %s", e)
            if count % REBUILD_YIELD_EVERY == 0:
                yield

        log.info(
            "Indexed %d notes under %s (%s discovery, %d skipped)",
            len(notes),
            root,
            discovery.source,
            skipped,
        )
        return IndexSnapshot.build(
            root,
            notes,
            built_at=self._clock(),
            generation=generation,
            discovery_source=discovery.source,
            skipped_files=skipped,
        )

    def _read_head(self, path: Path) -> tuple[list[str], float]:
        try:
            mtime = path.stat().st_mtime
            with open(path, encoding="utf-8-sig") as f:
                limit = max(self.config.frontmatter_lines, self.config.max_scan_lines)
                lines = list(islice(f, limit))
        except (OSError, UnicodeDecodeError) as e:
            raise ParseError(path, f"unreadable: {e}") from e
        return lines, mtime

    def _load_note(self, path: Path, root: Path) -> Note:
        lines, mtime = self._read_head(path)
        content = "".join(lines)
        file_name = path.stem

        frontmatter = self._frontmatter.parse_lines(lines)
        title = file_name
        aliases: frozenset[str] = frozenset()
        tags: set[str] = set()
        if frontmatter is not None:
            title = frontmatter.title or file_name
            aliases = frontmatter.aliases
            tags.update(frontmatter.tags)
        tags.update(self._links.extract_tags(content))

        try:
            relative = path.relative_to(root).as_posix()
        except ValueError:
            relative = path.as_posix()

        return Note(
            file_path=path,
            file_name=file_name,
            relative_path=relative,
            title=title,
            aliases=aliases,
            tags=frozenset(tags),
            outbound_links=tuple(self._links.extract(content, file_name)),
            mtime=mtime,
        )

    def _publish(self, snapshot: IndexSnapshot) -> IndexSnapshot:
        self._snapshot = snapshot
        for listener in list(self._listeners):
            listener()
        return snapshot

    # ------------------------------------------------------------------
    # Lookups (read the current snapshot, never trigger a rebuild)
    # ------------------------------------------------------------------

    def all_notes(self) -> tuple[Note, ...]:
        snapshot = self._snapshot
        return snapshot.notes if snapshot else ()

    def find_by_name(self, name: str) -> Note | None:
        """Find a note by file name; an exact-case match wins over others."""
        snapshot = self._snapshot
        if snapshot is None:
            return None
        candidates = snapshot.by_name.get(name.casefold(), ())
        for note in candidates:
            if note.file_name == name:
                return note
        return candidates[0] if candidates else None

    def find_by_alias(self, name: str) -> Note | None:
        """Find a note by alias, ignoring case."""
        snapshot = self._snapshot
        if snapshot is None:
            return None
        candidates = snapshot.by_alias.get(name.casefold(), ())
        return candidates[0] if candidates else None

    def find_by_tag(self, tag: str) -> tuple[Note, ...]:
        snapshot = self._snapshot
        if snapshot is None:
            return ()
        return snapshot.by_tag.get(tag.lstrip("#").lower(), ())

    def get_stats(self) -> IndexStats:
        snapshot = self._snapshot
        if snapshot is None:
            return IndexStats(
                ttl_ms=self.ttl_ms,
                max_entries=self.max_entries,
                rebuilding=self._rebuilding,
            )
        age = self._age_ms(snapshot)
        return IndexStats(
            note_count=len(snapshot.notes),
            cache_age_ms=age,
            cache_valid=not self._dirty and age <= self.ttl_ms,
            root=str(snapshot.root),
            root_dir_exists=snapshot.root_exists,
            discovery_source=snapshot.discovery_source,
            skipped_files=snapshot.skipped_files,
            generation=snapshot.generation,
            rebuilding=self._rebuilding,
            ttl_ms=self.ttl_ms,
            max_entries=self.max_entries,
            tag_count=len(snapshot.by_tag),
        )


def _drain(steps: Generator[None, None, IndexSnapshot]) -> IndexSnapshot:
    while True:
        try:
            next(steps)
        except StopIteration as done:
            return done.value

"""Invalidate the note index when markdown files change on disk."""

import logging
from collections.abc import Callable, Iterable
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .config import DEFAULT_EXCLUDE_DIRS, MARKDOWN_EXTENSIONS
from .index import NoteIndex

logger = logging.getLogger(__name__)


class InvalidatingHandler(FileSystemEventHandler):
    """Calls ``on_change`` for every event touching a tracked markdown file."""

    def __init__(
        self,
        root: Path,
        on_change: Callable[[Path], None],
        extensions: Iterable[str] = MARKDOWN_EXTENSIONS,
        exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
    ):
        super().__init__()
        self._root = root
        self._on_change = on_change
        self._extensions = tuple(ext.lower() for ext in extensions)
        self._exclude_dirs = frozenset(exclude_dirs)

    def is_tracked(self, path: Path) -> bool:
        if not path.name.lower().endswith(self._extensions):
            return False
        try:
            parts = path.relative_to(self._root).parts
        except ValueError:
            return False
        return not any(p.startswith(".") or p in self._exclude_dirs for p in parts)

    def _handle(self, path: str | bytes | None) -> bool:
        if not path:
            return False
        if isinstance(path, bytes):
            path = path.decode()
        changed = Path(path)
        if not self.is_tracked(changed):
            return False
        self._on_change(changed)
        return True

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._handle(event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._handle(event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._handle(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        """Handle file move/rename; either end may be tracked."""
        if event.is_directory:
            return
        if not self._handle(event.src_path):
            self._handle(getattr(event, "dest_path", None))


class NoteWatcher:
    """Watch a repository root and invalidate a NoteIndex on changes.

    Args:
        index: Index to invalidate.
        root: Directory to watch recursively.
    """

    def __init__(self, index: NoteIndex, root: Path):
        self._index = index
        self._root = Path(root).expanduser().resolve()
        self._observer: Observer | None = None
        self._running = False

    def _on_change(self, path: Path) -> None:
        logger.debug("Change detected in %s, invalidating index", path)
        self._index.invalidate()

    def make_handler(self) -> InvalidatingHandler:
        return InvalidatingHandler(
            self._root,
            self._on_change,
            extensions=self._index.config.extensions,
            exclude_dirs=self._index.config.exclude_dirs,
        )

    def start(self) -> None:
        """Start watching for file changes."""
        if self._running:
            return

        if not self._root.is_dir():
            logger.warning("Watch root does not exist: %s", self._root)
            return

        self._observer = Observer()
        self._observer.schedule(self.make_handler(), str(self._root), recursive=True)
        self._observer.start()
        self._running = True
        logger.info("Started watching: %s", self._root)

    def stop(self) -> None:
        """Stop watching for file changes."""
        if not self._running or self._observer is None:
            return

        self._observer.stop()
        self._observer.join(timeout=5.0)
        self._observer = None
        self._running = False
        logger.info("Stopped file watcher")

    @property
    def is_running(self) -> bool:
        return self._running

    def __enter__(self) -> "NoteWatcher":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

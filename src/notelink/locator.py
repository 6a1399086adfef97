"""Markdown file discovery.

ripgrep is tried first; when it is missing, fails or times out the tree is
walked directly with the same filters. Both paths sort and truncate the same
way, so callers never see which one ran except through ``Discovery.source``.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from .config import (
    DEFAULT_EXCLUDE_DIRS,
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_FILES,
    DEFAULT_RG_PATH,
    DEFAULT_SEARCH_TIMEOUT_MS,
    MARKDOWN_EXTENSIONS,
    IndexConfig,
)
from .errors import DiscoveryError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Discovery:
    """Outcome of one locate call.

    ``error`` is set when the external tool failed and the walk was used.
    """

    paths: list[Path]
    source: Literal["external", "walk", "none"]
    error: DiscoveryError | None = None


class FileLocator:
    """Find markdown files under a root directory."""

    def __init__(
        self,
        *,
        extensions: Iterable[str] = MARKDOWN_EXTENSIONS,
        exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
        max_depth: int = DEFAULT_MAX_DEPTH,
        max_files: int = DEFAULT_MAX_FILES,
        rg_path: str | None = DEFAULT_RG_PATH,
        timeout_ms: int = DEFAULT_SEARCH_TIMEOUT_MS,
    ) -> None:
        self.extensions = tuple(extensions)
        self.exclude_dirs = frozenset(exclude_dirs)
        self.max_depth = max_depth
        self.max_files = max_files
        self.rg_path = rg_path
        self.timeout_ms = timeout_ms

    @classmethod
    def from_config(cls, config: IndexConfig) -> FileLocator:
        return cls(
            extensions=config.extensions,
            exclude_dirs=config.exclude_dirs,
            max_depth=config.max_depth,
            max_files=config.max_files,
            rg_path=config.rg_path,
            timeout_ms=config.search_timeout_ms,
        )

    def locate(self, root: Path) -> list[Path]:
        """Return absolute paths of markdown files under root."""
        return self.discover(root).paths

    def discover(self, root: Path) -> Discovery:
        """Locate files, recording which strategy produced them."""
        root = Path(root).expanduser().resolve()
        if not root.is_dir():
            return Discovery(paths=[], source="none")

        try:
            return Discovery(paths=self._finalize(self._run_external(root)), source="external")
        except DiscoveryError as e:
            log.debug("External discovery unavailable, walking %s instead: %s", root, e)
            return Discovery(paths=self._finalize(self._walk(root)), source="walk", error=e)

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def _rg_command(self, executable: str, root: Path) -> list[str]:
        cmd = [
            executable,
            "--files",
            "--no-ignore",
            "--no-messages",
            "--max-depth",
            str(self.max_depth),
        ]
        for ext in self.extensions:
            cmd.extend(["--glob", f"*{ext}"])
        for name in sorted(self.exclude_dirs):
            cmd.extend(["--glob", f"!{name}/"])
        cmd.append(str(root))
        return cmd

    def _run_external(self, root: Path) -> list[Path]:
        if not self.rg_path:
            raise DiscoveryError("rg", "disabled")

        executable = shutil.which(self.rg_path)
        if executable is None:
            raise DiscoveryError(self.rg_path, "not found on PATH")

        try:
            result = subprocess.run(
                self._rg_command(executable, root),
                capture_output=True,
                timeout=self.timeout_ms / 1000,
            )
        except subprocess.TimeoutExpired as e:
            raise DiscoveryError(self.rg_path, f"timed out after {self.timeout_ms} ms") from e
        except OSError as e:
            raise DiscoveryError(self.rg_path, str(e)) from e

        if result.returncode != 0:
            raise DiscoveryError(self.rg_path, f"exit code {result.returncode}")

        # rg prints raw file name bytes; decode them the way os.walk does
        paths = []
        for line in result.stdout.splitlines():
            line = line.strip()
            if not line:
                continue
            path = Path(os.fsdecode(line))
            paths.append(path if path.is_absolute() else root / path)
        return paths

    def _walk(self, root: Path) -> list[Path]:
        paths: list[Path] = []
        for dirpath, dirnames, filenames in os.walk(root):
            current = Path(dirpath)
            depth = len(current.relative_to(root).parts)

            # Prune in place so os.walk never descends into excluded trees
            if depth + 1 >= self.max_depth:
                dirnames[:] = []
            else:
                dirnames[:] = [d for d in dirnames if not self._is_excluded_dir(d)]

            for name in filenames:
                if name.startswith(".") or not name.endswith(self.extensions):
                    continue
                path = current / name
                # rg without --follow lists no symlinked files either
                if path.is_symlink():
                    continue
                paths.append(path)
        return paths

    def _is_excluded_dir(self, name: str) -> bool:
        return name.startswith(".") or name in self.exclude_dirs

    def _finalize(self, paths: list[Path]) -> list[Path]:
        unique = sorted({p for p in paths if _is_utf8_path(p)}, key=lambda p: str(p))
        if len(unique) > self.max_files:
            log.info(
                "Found %d markdown files, keeping the first %d", len(unique), self.max_files
            )
        return unique[: self.max_files]


def _is_utf8_path(path: Path) -> bool:
    """False for names that are not valid UTF-8 (decoded with surrogate escapes)."""
    try:
        str(path).encode("utf-8")
    except UnicodeEncodeError:
        log.debug("Skipping non-UTF-8 file name %r", path)
        return False
    return True

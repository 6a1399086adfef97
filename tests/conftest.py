"""Shared test fixtures for the notelink test suite.

Design:
- vault: two-note repository (a.md <-> b.md) in a temp directory
- write_note: helper for adding markdown files to any root
- clock: fake monotonic clock for TTL tests
- make_index: NoteIndex wired to the fake clock and a scan-counting locator
- runner: CliRunner for CLI tests
"""

import logging
from collections.abc import Callable
from pathlib import Path

import pytest
from click.testing import CliRunner

from notelink._logging import PACKAGE_LOGGER
from notelink.config import IndexConfig
from notelink.index import NoteIndex
from notelink.locator import Discovery, FileLocator


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────


class FakeClock:
    """Monotonic clock in seconds that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000


class CountingLocator(FileLocator):
    """FileLocator that records how many scans were performed."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.calls = 0

    def discover(self, root: Path) -> Discovery:
        self.calls += 1
        return super().discover(root)


def _write(root: Path, relative: str, content: str) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


# ─────────────────────────────────────────────────────────────────────────────
# Isolation
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _isolate(monkeypatch):
    """Clear NOTELINK_* variables and undo logging configuration per test."""
    for name in (
        "NOTELINK_ROOT",
        "NOTELINK_MAX_FILES",
        "NOTELINK_MAX_DEPTH",
        "NOTELINK_TTL_MS",
        "NOTELINK_RESULT_CAP",
        "NOTELINK_EXCLUDE_DIRS",
        "NOTELINK_SEARCH_TIMEOUT_MS",
        "NOTELINK_RG_PATH",
        "NOTELINK_LOG_LEVEL",
        "NOTELINK_QUIET",
    ):
        monkeypatch.delenv(name, raising=False)

    yield

    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


# ─────────────────────────────────────────────────────────────────────────────
# Core Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def write_note() -> Callable[[Path, str, str], Path]:
    """Write a markdown file below a root, creating parent directories."""
    return _write


@pytest.fixture
def vault(tmp_path) -> Path:
    """Repository with a.md (Alpha) and b.md (Beta) linking to each other."""
    root = tmp_path / "vault"
    root.mkdir()
    _write(root, "a.md", "---\ntitle: Alpha\ntags: [work]\n---\n\nSee [[b]].\n")
    _write(root, "b.md", "---\ntitle: Beta\n---\n\nBack to [[a]]. #work #draft\n")
    return root.resolve()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_index(clock) -> Callable[..., NoteIndex]:
    """Factory for NoteIndex instances using the fake clock.

    Keyword arguments become IndexConfig fields. The external search tool is
    disabled so every scan takes the directory walk.
    """

    def _make(**overrides) -> NoteIndex:
        overrides.setdefault("rg_path", "")
        config = IndexConfig(**overrides)
        locator = CountingLocator(
            extensions=config.extensions,
            exclude_dirs=config.exclude_dirs,
            max_depth=config.max_depth,
            max_files=config.max_files,
            rg_path=config.rg_path,
        )
        return NoteIndex(config, locator=locator, clock=clock)

    return _make

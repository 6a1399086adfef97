"""Configuration management for notelink.

This module contains all configurable constants for the index and completion
engine. Magic numbers are documented here rather than scattered throughout
the codebase.

Settings are merged from, lowest to highest precedence:
1. The defaults below
2. A ``.notelink.yaml`` file found by walking up from the working directory
3. ``NOTELINK_*`` environment variables
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigurationError

log = logging.getLogger(__name__)

CONFIG_FILENAME = ".notelink.yaml"


# =============================================================================
# Discovery Limits
# =============================================================================

# Maximum number of markdown files located and indexed per rebuild.
# Paths are sorted before truncation so the same files win on every rebuild.
DEFAULT_MAX_FILES = 2000

# Maximum directory depth below the root, counting the file itself.
# A file directly under the root is at depth 1.
DEFAULT_MAX_DEPTH = 10

# Upper bound for one external search-tool invocation (ripgrep).
# On timeout the locator falls back to walking the tree itself.
DEFAULT_SEARCH_TIMEOUT_MS = 30_000

# Executable used for fast discovery; looked up on PATH.
DEFAULT_RG_PATH = "rg"

# Markdown extensions recognised by discovery and link normalisation.
MARKDOWN_EXTENSIONS = (".md", ".markdown")

# Directories never descended into. Hidden directories are skipped as well.
DEFAULT_EXCLUDE_DIRS = (
    ".git",
    ".hg",
    ".svn",
    ".obsidian",
    ".trash",
    "node_modules",
    "build",
    "dist",
    "target",
    ".venv",
    "venv",
    ".tox",
    "__pycache__",
)


# =============================================================================
# Parsing Limits
# =============================================================================

# Only the head of a file is inspected for a frontmatter block.
FRONTMATTER_MAX_LINES = 20

# Link and tag extraction stops after this many lines of a file.
MAX_SCAN_LINES = 500

# The rebuild yields to the event loop after every batch of this many files.
REBUILD_YIELD_EVERY = 25


# =============================================================================
# Cache Lifetimes
# =============================================================================

# Age after which the note index is rebuilt on the next query.
DEFAULT_TTL_MS = 30_000

# Per-note neighborhood results absorb bursts of redraw requests.
GRAPH_CACHE_TTL_MS = 5_000

# Identical completion queries against the same index generation.
QUERY_CACHE_TTL_MS = 5_000

# Maximum number of memoised completion queries.
QUERY_CACHE_MAX_ENTRIES = 128


# =============================================================================
# Completion
# =============================================================================

# Maximum number of completion items returned per query.
DEFAULT_RESULT_CAP = 50


class IndexConfig(BaseModel):
    """Validated settings for discovery, indexing and completion."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    root_override: Path | None = None
    max_files: int = Field(default=DEFAULT_MAX_FILES, ge=1)
    max_depth: int = Field(default=DEFAULT_MAX_DEPTH, ge=1)
    ttl_ms: int = Field(default=DEFAULT_TTL_MS, ge=0)
    result_cap: int = Field(default=DEFAULT_RESULT_CAP, ge=1)
    exclude_dirs: tuple[str, ...] = DEFAULT_EXCLUDE_DIRS
    extensions: tuple[str, ...] = MARKDOWN_EXTENSIONS
    search_timeout_ms: int = Field(default=DEFAULT_SEARCH_TIMEOUT_MS, ge=1)
    rg_path: str = DEFAULT_RG_PATH
    frontmatter_lines: int = Field(default=FRONTMATTER_MAX_LINES, ge=2)
    max_scan_lines: int = Field(default=MAX_SCAN_LINES, ge=1)
    graph_cache_ttl_ms: int = Field(default=GRAPH_CACHE_TTL_MS, ge=0)
    query_cache_ttl_ms: int = Field(default=QUERY_CACHE_TTL_MS, ge=0)


# Environment variable -> IndexConfig field
_ENV_FIELDS = {
    "NOTELINK_ROOT": "root_override",
    "NOTELINK_MAX_FILES": "max_files",
    "NOTELINK_MAX_DEPTH": "max_depth",
    "NOTELINK_TTL_MS": "ttl_ms",
    "NOTELINK_RESULT_CAP": "result_cap",
    "NOTELINK_EXCLUDE_DIRS": "exclude_dirs",
    "NOTELINK_EXTENSIONS": "extensions",
    "NOTELINK_SEARCH_TIMEOUT_MS": "search_timeout_ms",
    "NOTELINK_RG_PATH": "rg_path",
}

_LIST_FIELDS = {"exclude_dirs", "extensions"}


def _discover_config_file(start_dir: Path | None = None, max_depth: int = 10) -> Path | None:
    """Walk up from start_dir looking for a .notelink.yaml file.

    Args:
        start_dir: Directory to start from (defaults to cwd)
        max_depth: Maximum directories to traverse up

    Returns:
        Path to the config file if found, None otherwise.
    """
    current = Path(start_dir or os.getcwd()).resolve()

    for _ in range(max_depth):
        config_file = current / CONFIG_FILENAME
        if config_file.is_file():
            return config_file

        parent = current.parent
        if parent == current:  # Reached filesystem root
            break
        current = parent

    return None


def _read_config_file(config_file: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot read {config_file}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"{config_file} must contain a mapping of settings")

    # A relative root in the file is relative to the file's directory
    root = data.get("root_override")
    if isinstance(root, str) and not Path(root).expanduser().is_absolute():
        data["root_override"] = str((config_file.parent / root).resolve())

    return data


def _env_overrides() -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for env_name, field_name in _ENV_FIELDS.items():
        value = os.environ.get(env_name)
        if not value:
            continue
        if field_name in _LIST_FIELDS:
            overrides[field_name] = [item.strip() for item in value.split(",") if item.strip()]
        else:
            overrides[field_name] = value
    return overrides


def load_config(start_dir: Path | None = None, **overrides: Any) -> IndexConfig:
    """Build an IndexConfig from the config file, environment and overrides.

    Args:
        start_dir: Where to start looking for .notelink.yaml (defaults to cwd).
        **overrides: Explicit field values; these win over everything else.

    Returns:
        Validated configuration.

    Raises:
        ConfigurationError: If the config file is unreadable or a value is invalid.
    """
    data: dict[str, Any] = {}

    config_file = _discover_config_file(start_dir)
    if config_file:
        log.debug("Loading configuration from %s", config_file)
        data.update(_read_config_file(config_file))

    data.update(_env_overrides())
    data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return IndexConfig.model_validate(data)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            errors.append(f"  - {loc}: {error['msg']}")
        raise ConfigurationError("Invalid configuration:\n" + "\n".join(errors)) from e


def get_git_root(cwd: Path | None = None) -> Path | None:
    """Return the enclosing git work tree, or None outside a repository."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            capture_output=True,
            text=True,
            timeout=2,
            cwd=cwd,
        )
    except (subprocess.TimeoutExpired, OSError) as e:
        log.debug("Could not get git root: %s", e)
        return None

    if result.returncode != 0:
        return None
    top = result.stdout.strip()
    return Path(top) if top else None


def resolve_root(config: IndexConfig, cwd: Path | None = None) -> Path:
    """Pick the repository root to index.

    Discovery order:
    1. config.root_override (also set by NOTELINK_ROOT)
    2. The enclosing git work tree
    3. The working directory
    """
    if config.root_override is not None:
        return config.root_override.expanduser().resolve()

    git_root = get_git_root(cwd)
    if git_root is not None:
        return git_root.resolve()

    return Path(cwd or os.getcwd()).resolve()

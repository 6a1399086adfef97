"""Pydantic models for notes, completion results and index status."""

from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict


class Frontmatter(BaseModel):
    """Fields recognised in a note's leading YAML block."""

    model_config = ConfigDict(frozen=True)

    title: str | None = None
    aliases: frozenset[str] = frozenset()
    tags: frozenset[str] = frozenset()  # Lower-cased, "/" hierarchy kept


class Note(BaseModel):
    """Metadata extracted from one markdown file.

    Notes are immutable: a rebuild replaces every Note instead of editing one.
    """

    model_config = ConfigDict(frozen=True)

    file_path: Path  # Absolute, unique key
    file_name: str  # Stem without extension
    relative_path: str  # POSIX path relative to the indexed root
    title: str
    aliases: frozenset[str] = frozenset()
    tags: frozenset[str] = frozenset()
    outbound_links: tuple[str, ...] = ()  # Raw targets in discovery order
    mtime: float = 0.0


class CompletionContext(str, Enum):
    """What kind of link the user is typing."""

    WIKI_LINK = "wiki"
    MARKDOWN_LINK = "markdown"
    TAG = "tag"


MatchType = Literal["title", "filename", "alias", "path", "tag"]


class CompletionItem(BaseModel):
    """A single ranked completion candidate.

    Adapters for specific completion engines project the fields they need;
    ``context`` tells them which kind of link the item completes.
    """

    model_config = ConfigDict(frozen=True)

    context: CompletionContext
    label: str  # Text shown in the menu (the candidate string that matched)
    insert_text: str
    detail: str  # Relative path for notes, usage count for tags
    score: float
    match_type: MatchType
    note: Note | None = None  # None for tag items


class Neighborhood(BaseModel):
    """Depth-1 link neighborhood of a note, keyed by file name."""

    model_config = ConfigDict(frozen=True)

    name: str
    outgoing: frozenset[str] = frozenset()
    incoming: frozenset[str] = frozenset()


class IndexStats(BaseModel):
    """Inspectable state of a NoteIndex."""

    note_count: int = 0
    cache_age_ms: float | None = None  # None until the first rebuild
    cache_valid: bool = False
    root: str | None = None
    root_dir_exists: bool | None = None  # None until the first rebuild
    discovery_source: Literal["external", "walk", "none"] | None = None
    skipped_files: int = 0
    generation: int = 0
    rebuilding: bool = False
    ttl_ms: int
    max_entries: int
    tag_count: int = 0

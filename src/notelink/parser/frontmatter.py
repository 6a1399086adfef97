"""Frontmatter extraction from the head of a markdown file.

Only the first few lines of a file are read. The block must open on line 1
with ``---`` and close with ``---`` or ``...`` inside that window; anything
else is treated as "no frontmatter".

The block is read one ``key: value`` line at a time rather than as a YAML
document, so one odd line never costs the other keys. Values are an inline
array (``[a, b]``), a block list (``- item`` lines under an empty value) or a
scalar with surrounding quotes removed. Only ``title``, ``aliases``/``alias``
and ``tags``/``tag`` are kept.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from itertools import islice
from pathlib import Path

from ..config import FRONTMATTER_MAX_LINES
from ..models import Frontmatter

log = logging.getLogger(__name__)

DELIMITER = "---"
TERMINATORS = ("---", "...")

KEY_PATTERN = re.compile(r"^([\w-]+):\s*(.*)$")
LIST_ITEM_PATTERN = re.compile(r"^\s*-\s*(.*)$")

_TAG_SEPARATOR_RE = re.compile(r"\s*[/\\]\s*")

Value = str | list[str]


def normalize_tag(tag: str) -> str:
    """Lower-case a tag, drop quotes and a leading ``#``, tidy ``/`` separators."""
    tag = tag.strip().strip("\"'").strip()
    tag = tag.lstrip("#")
    tag = _TAG_SEPARATOR_RE.sub("/", tag)
    return tag.strip("/").lower()


def _unquote(text: str) -> str:
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'":
        return text[1:-1].strip()
    return text


def _parse_value(raw: str) -> Value:
    raw = raw.strip()
    if len(raw) >= 2 and raw.startswith("[") and raw.endswith("]"):
        return [_unquote(item) for item in raw[1:-1].split(",")]
    return _unquote(raw)


def parse_block(lines: Sequence[str]) -> dict[str, Value]:
    """Turn the lines between the delimiters into a key -> value mapping.

    Lines that are not ``key: value`` (comments, nested mappings, stray
    text) are skipped. A later duplicate key replaces an earlier one.
    """
    meta: dict[str, Value] = {}
    i = 0
    while i < len(lines):
        match = KEY_PATTERN.match(lines[i])
        i += 1
        if match is None:
            continue

        key, raw = match.group(1), match.group(2)
        if raw.strip() or i >= len(lines) or not LIST_ITEM_PATTERN.match(lines[i]):
            meta[key] = _parse_value(raw)
            continue

        items = []
        while i < len(lines) and (item := LIST_ITEM_PATTERN.match(lines[i])):
            items.append(_unquote(item.group(1)))
            i += 1
        meta[key] = items
    return meta


def _as_strings(value: Value | None) -> list[str]:
    if value is None:
        return []
    items = value if isinstance(value, list) else [value]
    return [item for item in (i.strip() for i in items) if item]


def _split_scalar_tags(value: Value | None) -> list[str]:
    if isinstance(value, str):
        return [part for part in value.split(",") if part.strip()]
    return _as_strings(value)


def _metadata_to_frontmatter(meta: dict[str, Value]) -> Frontmatter:
    title = meta.get("title")
    title = (title.strip() or None) if isinstance(title, str) else None

    aliases: set[str] = set()
    for key in ("aliases", "alias"):
        aliases.update(_as_strings(meta.get(key)))

    tags: set[str] = set()
    for key in ("tags", "tag"):
        for raw in _split_scalar_tags(meta.get(key)):
            tag = normalize_tag(raw)
            if tag:
                tags.add(tag)

    return Frontmatter(title=title, aliases=frozenset(aliases), tags=frozenset(tags))


class FrontmatterParser:
    """Minimal frontmatter reader for title, alias and tag extraction."""

    def __init__(self, max_lines: int = FRONTMATTER_MAX_LINES) -> None:
        self.max_lines = max_lines

    def parse(self, file_path: Path) -> Frontmatter | None:
        """Read the head of file_path and parse its frontmatter.

        Returns:
            Frontmatter (empty when no key is recognised), or None if the file
            is unreadable or has no complete frontmatter block.
        """
        try:
            with open(file_path, encoding="utf-8-sig") as f:
                lines = list(islice(f, self.max_lines))
        except (OSError, UnicodeDecodeError) as e:
            log.debug("Cannot read frontmatter from %s: %s", file_path, e)
            return None
        return self.parse_lines(lines)

    def parse_lines(self, lines: Iterable[str]) -> Frontmatter | None:
        """Parse frontmatter from already-read lines (only the window is used)."""
        head = [line.rstrip("\r\n") for line in islice(lines, self.max_lines)]
        block = self._find_block(head)
        if block is None:
            return None
        return _metadata_to_frontmatter(parse_block(block))

    def parse_text(self, content: str) -> Frontmatter | None:
        return self.parse_lines(content.splitlines())

    @staticmethod
    def _find_block(head: Sequence[str]) -> list[str] | None:
        if not head or head[0] != DELIMITER:
            return None
        for i in range(1, len(head)):
            if head[i] in TERMINATORS:
                return list(head[1:i])
        # Unterminated inside the read window: no partial parse
        return None

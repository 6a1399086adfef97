"""Link and tag extraction from markdown content."""

from __future__ import annotations

import re
from collections.abc import Iterable
from itertools import islice
from pathlib import PurePosixPath
from urllib.parse import unquote

from ..config import MARKDOWN_EXTENSIONS, MAX_SCAN_LINES
from .frontmatter import normalize_tag

# [[target]], [[target|display]], [[target#heading]], ![[embed]]
WIKILINK_PATTERN = re.compile(r"!?\[\[([^\[\]\n]+?)\]\]")

# [text](target) and [text](<target with spaces> "title"); images excluded
MDLINK_PATTERN = re.compile(
    r"(?<!!)\[[^\]\n]*\]\(\s*(<[^>\n]*>|[^)\s]*)(?:\s+[\"'][^\"'\n]*[\"'])?\s*\)"
)

# #tag or #nested/tag, not inside a word, URL, anchor link or heading
TAG_PATTERN = re.compile(r"(?<![\w/#&(\[`])#(\w[\w/-]*)")

_SCHEME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")
_CODE_SPAN_PATTERN = re.compile(r"`[^`]*`")


def strip_extension(target: str, extensions: Iterable[str] = MARKDOWN_EXTENSIONS) -> str:
    lowered = target.lower()
    for ext in extensions:
        if lowered.endswith(ext):
            return target[: -len(ext)]
    return target


def link_name(target: str, extensions: Iterable[str] = MARKDOWN_EXTENSIONS) -> str:
    """Reduce a link target to the file name it points at.

    ``notes/Project Plan.md`` and ``../Project Plan`` both become
    ``Project Plan``.
    """
    last = target.replace("\\", "/").rstrip("/").rsplit("/", 1)[-1]
    return strip_extension(last, extensions).strip()


class LinkExtractor:
    """Finds wiki links, markdown links and inline tags in note content."""

    def __init__(
        self,
        max_lines: int = MAX_SCAN_LINES,
        extensions: Iterable[str] = MARKDOWN_EXTENSIONS,
    ) -> None:
        self.max_lines = max_lines
        self.extensions = tuple(ext.lower() for ext in extensions)

    def _lines(self, content: str) -> Iterable[str]:
        return islice(content.splitlines(), self.max_lines)

    def extract(self, content: str, self_name: str) -> list[str]:
        """Return link targets in the order they appear.

        Duplicates are kept; links back to self_name are dropped.
        """
        links: list[str] = []
        for line in self._lines(content):
            found: list[tuple[int, str]] = []

            for m in WIKILINK_PATTERN.finditer(line):
                target = self._normalize_wikilink(m.group(1))
                if target:
                    found.append((m.start(), target))

            if "](" in line:
                for m in MDLINK_PATTERN.finditer(line):
                    target = self._normalize_mdlink(m.group(1))
                    if target:
                        found.append((m.start(), target))

            found.sort(key=lambda item: item[0])
            links.extend(
                target for _, target in found if link_name(target, self.extensions) != self_name
            )
        return links

    def extract_tags(self, content: str) -> list[str]:
        """Return inline ``#tags`` (normalized, first-seen order, de-duplicated)."""
        seen: set[str] = set()
        tags: list[str] = []
        in_fence = False
        for line in self._lines(content):
            if line.lstrip().startswith(("```", "~~~")):
                in_fence = not in_fence
                continue
            if in_fence or "#" not in line:
                continue
            for m in TAG_PATTERN.finditer(_CODE_SPAN_PATTERN.sub("", line)):
                tag = normalize_tag(m.group(1))
                if not tag or tag.replace("/", "").isdigit() or tag in seen:
                    continue
                seen.add(tag)
                tags.append(tag)
        return tags

    def _normalize_wikilink(self, inner: str) -> str:
        target = inner.split("|", 1)[0]
        target = re.split(r"[#^]", target, maxsplit=1)[0]
        return strip_extension(target.strip(), self.extensions).strip()

    def _normalize_mdlink(self, raw: str) -> str:
        target = raw.strip()
        if target.startswith("<") and target.endswith(">"):
            target = target[1:-1].strip()
        if not target or _SCHEME_PATTERN.match(target):
            return ""

        target = unquote(target.split("#", 1)[0]).strip()
        if not target:
            return ""

        suffix = PurePosixPath(target.replace("\\", "/")).suffix.lower()
        if suffix and suffix not in self.extensions:
            return ""
        return strip_extension(target, self.extensions)


_default_extractor = LinkExtractor()


def extract_links(content: str, self_name: str = "") -> list[str]:
    """Module-level shortcut using the default limits."""
    return _default_extractor.extract(content, self_name)


def extract_tags(content: str) -> list[str]:
    return _default_extractor.extract_tags(content)

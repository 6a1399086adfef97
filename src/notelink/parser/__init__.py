"""Markdown parsing: frontmatter, links and tags."""

from .frontmatter import FrontmatterParser, normalize_tag
from .links import LinkExtractor, extract_links, extract_tags, link_name, strip_extension

__all__ = [
    "FrontmatterParser",
    "LinkExtractor",
    "extract_links",
    "extract_tags",
    "link_name",
    "normalize_tag",
    "strip_extension",
]

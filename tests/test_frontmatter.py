"""Tests for frontmatter parsing from the head of a note."""

import pytest

from notelink.models import Frontmatter
from notelink.parser import FrontmatterParser, normalize_tag


@pytest.fixture
def parser() -> FrontmatterParser:
    return FrontmatterParser()


class TestParseText:
    def test_full_block(self, parser):
        content = """---
title: Project Plan
aliases: [Plan, Roadmap]
tags:
  - Work
  - "area / infra"
---

Body text.
"""
        fm = parser.parse_text(content)
        assert fm == Frontmatter(
            title="Project Plan",
            aliases=frozenset({"Plan", "Roadmap"}),
            tags=frozenset({"work", "area/infra"}),
        )

    def test_no_frontmatter_returns_none(self, parser):
        assert parser.parse_text("# Heading\n\nJust text.\n") is None

    def test_block_must_start_on_first_line(self, parser):
        assert parser.parse_text("\n---\ntitle: Late\n---\n") is None

    def test_dots_terminator(self, parser):
        fm = parser.parse_text("---\ntitle: Dotted\n...\nbody\n")
        assert fm is not None
        assert fm.title == "Dotted"

    def test_empty_block(self, parser):
        assert parser.parse_text("---\n---\nbody\n") == Frontmatter()

    def test_unterminated_within_window_returns_none(self):
        parser = FrontmatterParser(max_lines=5)
        content = "---\ntitle: Long\n" + "extra: value\n" * 10 + "---\n"
        assert parser.parse_text(content) is None

    def test_unclosed_bracket_is_a_plain_title(self, parser):
        fm = parser.parse_text("---\ntitle: [unclosed\n---\n")
        assert fm == Frontmatter(title="[unclosed")

    def test_non_mapping_block_gives_empty_frontmatter(self, parser):
        assert parser.parse_text("---\n- one\n- two\n---\n") == Frontmatter()

    def test_odd_line_does_not_cost_other_keys(self, parser):
        """A line YAML would reject leaves the remaining keys intact."""
        content = (
            "---\n"
            "title: Meeting: Q3 review\n"
            "aliases: [Q3, Review]\n"
            "bad line without key\n"
            "tags: [work]\n"
            "---\n"
        )
        fm = parser.parse_text(content)
        assert fm == Frontmatter(
            title="Meeting: Q3 review",
            aliases=frozenset({"Q3", "Review"}),
            tags=frozenset({"work"}),
        )

    def test_later_duplicate_key_wins(self, parser):
        fm = parser.parse_text("---\ntitle: First\ntitle: Second\n---\n")
        assert fm.title == "Second"


class TestFields:
    def test_scalar_alias_and_singular_keys(self, parser):
        fm = parser.parse_text("---\nalias: Solo\ntag: single\n---\n")
        assert fm.aliases == frozenset({"Solo"})
        assert fm.tags == frozenset({"single"})

    def test_comma_separated_tags(self, parser):
        fm = parser.parse_text("---\ntags: one, Two ,three\n---\n")
        assert fm.tags == frozenset({"one", "two", "three"})

    def test_hash_prefixed_tags(self, parser):
        fm = parser.parse_text('---\ntags: ["#Draft", "#project/Alpha"]\n---\n')
        assert fm.tags == frozenset({"draft", "project/alpha"})

    def test_values_are_kept_as_text(self, parser):
        assert parser.parse_text("---\ntitle: 2024\n---\n").title == "2024"
        assert parser.parse_text("---\ntitle: yes\n---\n").title == "yes"
        assert parser.parse_text("---\ntitle: 2024-01-01\n---\n").title == "2024-01-01"

    def test_bare_hash_tag_value(self, parser):
        fm = parser.parse_text("---\ntags: #work\n---\n")
        assert fm.tags == frozenset({"work"})

    def test_block_list_aliases(self, parser):
        fm = parser.parse_text("---\naliases:\n  - One\n  - 'Two'\ntitle: T\n---\n")
        assert fm.aliases == frozenset({"One", "Two"})
        assert fm.title == "T"

    def test_list_title_is_ignored(self, parser):
        fm = parser.parse_text("---\ntitle: [A, B]\n---\n")
        assert fm.title is None

    def test_blank_values_ignored(self, parser):
        fm = parser.parse_text("---\ntitle: ''\naliases: [A, '']\ntags: []\n---\n")
        assert fm.title is None
        assert fm.aliases == frozenset({"A"})
        assert fm.tags == frozenset()

    def test_unknown_keys_ignored(self, parser):
        fm = parser.parse_text("---\ntitle: T\ncreated: 2024-01-01\nnested: {a: 1}\n---\n")
        assert fm == Frontmatter(title="T")


class TestParseFile:
    def test_reads_file_with_bom(self, tmp_path, parser):
        path = tmp_path / "bom.md"
        path.write_bytes(b"\xef\xbb\xbf---\ntitle: Bom\n---\n")
        fm = parser.parse(path)
        assert fm is not None
        assert fm.title == "Bom"

    def test_unreadable_path_returns_none(self, tmp_path, parser):
        assert parser.parse(tmp_path / "missing.md") is None

    def test_directory_returns_none(self, tmp_path, parser):
        assert parser.parse(tmp_path) is None


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("Work", "work"),
        ("#Draft", "draft"),
        ("'quoted'", "quoted"),
        ("area / infra", "area/infra"),
        ("area\\infra", "area/infra"),
        ("/trailing/", "trailing"),
    ],
)
def test_normalize_tag(raw, expected):
    assert normalize_tag(raw) == expected

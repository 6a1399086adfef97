"""Tests for depth-1 link neighborhoods."""

import pytest

from notelink.graph import LinkGraph
from notelink.models import Neighborhood


@pytest.fixture
def graph_for(make_index, clock):
    def _make(**overrides) -> LinkGraph:
        return LinkGraph(make_index(**overrides), clock=clock)

    return _make


class TestNeighborhood:
    def test_two_note_cycle(self, graph_for, vault):
        graph = graph_for()
        assert graph.neighborhood("a", vault) == Neighborhood(
            name="a", outgoing=frozenset({"b"}), incoming=frozenset({"b"})
        )
        assert graph.neighborhood("b", vault) == Neighborhood(
            name="b", outgoing=frozenset({"a"}), incoming=frozenset({"a"})
        )

    def test_accepts_note(self, graph_for, vault):
        graph = graph_for()
        graph.index.ensure_fresh(vault)
        note = graph.index.find_by_name("a")
        assert graph.neighborhood(note).outgoing == frozenset({"b"})

    def test_links_normalized_and_deduplicated(self, graph_for, tmp_path, write_note):
        root = tmp_path / "norm"
        write_note(root, "hub.md", "[[sub/Target]] [t](sub/Target.md) [[Other|x]] [[hub]]\n")
        write_note(root, "sub/Target.md", "[[HUB]]\n")
        write_note(root, "Other.md", "")
        graph = graph_for()
        hood = graph.neighborhood("hub", root)
        assert hood.outgoing == frozenset({"Target", "Other"})
        assert hood.incoming == frozenset({"Target"})

    def test_incoming_is_case_insensitive(self, graph_for, tmp_path, write_note):
        root = tmp_path / "case"
        write_note(root, "Target.md", "")
        write_note(root, "src.md", "[[target]]")
        assert graph_for().neighborhood("Target", root).incoming == frozenset({"src"})

    def test_unknown_name_still_reports_backlinks(self, graph_for, tmp_path, write_note):
        root = tmp_path / "ghost"
        write_note(root, "src.md", "[[ghost]]")
        hood = graph_for().neighborhood("ghost", root)
        assert hood.outgoing == frozenset()
        assert hood.incoming == frozenset({"src"})

    def test_no_snapshot_and_no_root(self, graph_for):
        assert graph_for().neighborhood("a") == Neighborhood(name="a")


class TestGraphCache:
    def test_cached_within_ttl(self, graph_for, vault, clock):
        graph = graph_for(graph_cache_ttl_ms=5000)
        first = graph.neighborhood("a", vault)
        clock.advance_ms(4000)
        assert graph.neighborhood("a", vault) is first

    def test_expires_after_ttl(self, graph_for, vault, clock):
        graph = graph_for(graph_cache_ttl_ms=5000)
        first = graph.neighborhood("a", vault)
        clock.advance_ms(5001)
        second = graph.neighborhood("a", vault)
        assert second is not first
        assert second == first

    def test_invalidation_picks_up_new_links(self, graph_for, vault, write_note):
        graph = graph_for()
        assert graph.neighborhood("a", vault).incoming == frozenset({"b"})
        write_note(vault, "c.md", "[[a]]")
        graph.index.invalidate()
        assert graph.neighborhood("a", vault).incoming == frozenset({"b", "c"})

"""Tests for the notelink CLI."""

import json

import pytest

from notelink.cli import cli


@pytest.fixture
def invoke(runner, vault):
    def _invoke(*args: str):
        return runner.invoke(cli, ["--root", str(vault), *args])

    return _invoke


class TestComplete:
    def test_text_output(self, invoke):
        result = invoke("complete", "alp")
        assert result.exit_code == 0, result.output
        assert "Alpha" in result.output
        assert "Beta" not in result.output

    def test_json_output(self, invoke):
        result = invoke("complete", "alp", "--json")
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data[0]["label"] == "Alpha"
        assert data[0]["insert_text"] == "a"
        assert data[0]["context"] == "wiki"
        assert "note" not in data[0]

    def test_tag_context(self, invoke):
        result = invoke("complete", "wo", "--context", "tag", "--json")
        data = json.loads(result.output)
        assert [(d["label"], d["detail"]) for d in data] == [("#work", "Used 2 times")]

    def test_limit(self, invoke):
        data = json.loads(invoke("complete", "", "--limit", "1", "--json").output)
        assert len(data) == 1

    def test_no_matches(self, invoke):
        result = invoke("complete", "zzz")
        assert result.exit_code == 0
        assert "No matches." in result.output

    def test_invalid_context(self, invoke):
        result = invoke("complete", "a", "--context", "html")
        assert result.exit_code != 0


class TestLinks:
    def test_json(self, invoke):
        data = json.loads(invoke("links", "a", "--json").output)
        assert data == {"name": "a", "outgoing": ["b"], "incoming": ["b"]}

    def test_text(self, invoke):
        result = invoke("links", "b")
        assert result.exit_code == 0
        assert "Outgoing (1):" in result.output
        assert "-> a" in result.output
        assert "<- a" in result.output


class TestNotes:
    def test_all_notes(self, invoke):
        data = json.loads(invoke("notes", "--json").output)
        assert [d["relative_path"] for d in data] == ["a.md", "b.md"]
        assert data[1]["tags"] == ["draft", "work"]

    def test_by_tag(self, invoke):
        result = invoke("notes", "--tag", "draft")
        assert result.exit_code == 0
        assert "b.md  Beta" in result.output
        assert "a.md" not in result.output

    def test_unknown_tag(self, invoke):
        assert "No notes found." in invoke("notes", "--tag", "nothing").output


class TestStatus:
    def test_stats_json(self, invoke, vault):
        data = json.loads(invoke("stats", "--json").output)
        assert data["note_count"] == 2
        assert data["root"] == str(vault)
        assert data["root_dir_exists"] is True

    def test_bare_invocation_shows_stats(self, invoke):
        result = invoke()
        assert result.exit_code == 0
        assert "Notes:      2" in result.output

    def test_quiet_flag(self, invoke):
        result = invoke("--quiet", "stats")
        assert result.exit_code == 0


class TestErrors:
    def test_bad_config_reports_error(self, runner, vault):
        (vault / ".notelink.yaml").write_text("max_files: 0\n")
        result = runner.invoke(cli, ["--root", str(vault), "stats"])
        assert result.exit_code == 1
        assert "Error: Invalid configuration" in result.output

    def test_bad_config_json_errors(self, runner, vault):
        (vault / ".notelink.yaml").write_text("max_files: 0\n")
        result = runner.invoke(cli, ["--json-errors", "--root", str(vault), "stats"])
        assert result.exit_code == 1
        assert '"CONFIGURATION_ERROR"' in result.output


def test_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "notelink" in result.output

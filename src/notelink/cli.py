"""
notelink: CLI for querying a markdown note index

Usage:
    notelink complete "alp"              # Wiki-link completion
    notelink complete proj --context tag # Tag completion
    notelink links "Project Plan"        # Incoming and outgoing links
    notelink notes --tag=work            # List indexed notes
    notelink stats                       # Index status
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, NoReturn

import click

from . import __version__ as NOTELINK_VERSION
from .models import CompletionContext, CompletionItem, IndexStats, Note


def _handle_error(ctx: click.Context, error: Exception, exit_code: int = 1) -> NoReturn:
    """Print an error as text or, with --json-errors, as JSON, then exit."""
    from .errors import NotelinkError

    json_errors = ctx.obj.get("json_errors", False) if ctx.obj else False

    if isinstance(error, NotelinkError):
        if json_errors:
            click.echo(error.to_json(), err=True)
        else:
            click.echo(f"Error: {error.message}", err=True)
    elif json_errors:
        click.echo(json.dumps({"error": "INTERNAL_ERROR", "message": str(error)}), err=True)
    else:
        click.echo(f"Error: {error}", err=True)

    sys.exit(exit_code)


def _get_engine(ctx: click.Context):
    """Build the NoteEngine once per invocation from config and --root."""
    from .core import NoteEngine
    from .config import load_config
    from .errors import NotelinkError

    if "engine" in ctx.obj:
        return ctx.obj["engine"]

    root: Path | None = ctx.obj.get("root")
    try:
        config = load_config(root)
        engine = NoteEngine(config, root=root)
    except NotelinkError as e:
        _handle_error(ctx, e)

    ctx.obj["engine"] = engine
    return engine


def _emit_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def _item_to_dict(item: CompletionItem) -> dict[str, Any]:
    return item.model_dump(mode="json", exclude={"note"})


def _note_to_dict(note: Note) -> dict[str, Any]:
    data = note.model_dump(mode="json")
    data["aliases"] = sorted(note.aliases)
    data["tags"] = sorted(note.tags)
    return data


def _format_stats(stats: IndexStats) -> str:
    if stats.root_dir_exists is False:
        return f"Root not found: {stats.root}"

    lines = [
        f"Root:       {stats.root}",
        f"Notes:      {stats.note_count}",
        f"Tags:       {stats.tag_count}",
        f"Discovery:  {stats.discovery_source}",
    ]
    if stats.skipped_files:
        lines.append(f"Skipped:    {stats.skipped_files}")
    lines.append(f"TTL:        {stats.ttl_ms} ms (max {stats.max_entries} files)")
    return "\n".join(lines)


# ─────────────────────────────────────────────────────────────────────────────
# Main CLI Group
# ─────────────────────────────────────────────────────────────────────────────


@click.group(invoke_without_command=True)
@click.version_option(version=NOTELINK_VERSION, prog_name="notelink")
@click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Repository root to index (default: config, git work tree, or cwd)",
)
@click.option(
    "--json-errors",
    "json_errors",
    is_flag=True,
    help="Output errors as JSON (for programmatic use)",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    envvar="NOTELINK_QUIET",
    help="Suppress informational logging",
)
@click.pass_context
def cli(ctx: click.Context, root: Path | None, json_errors: bool, quiet: bool):
    """notelink: completion and link queries for a markdown note repository.

    \b
    Quick start:
      notelink complete "proj"               # Wiki-link completion
      notelink complete "docs/" -c markdown  # Markdown-link completion
      notelink complete "wo" -c tag          # Tag completion
      notelink links "Project Plan"          # Depth-1 link neighborhood
      notelink notes --tag=work              # Notes carrying a tag
    """
    from ._logging import set_quiet_mode

    ctx.ensure_object(dict)
    ctx.obj["root"] = root
    ctx.obj["json_errors"] = json_errors
    ctx.obj["quiet"] = quiet

    if quiet:
        set_quiet_mode(True)

    # Show status when no subcommand is provided
    if ctx.invoked_subcommand is None:
        engine = _get_engine(ctx)
        click.echo(_format_stats(engine.refresh()))


# ─────────────────────────────────────────────────────────────────────────────
# Commands
# ─────────────────────────────────────────────────────────────────────────────


@cli.command()
@click.argument("query", default="")
@click.option(
    "--context",
    "-c",
    "context",
    type=click.Choice([c.value for c in CompletionContext]),
    default=CompletionContext.WIKI_LINK.value,
    show_default=True,
    help="Kind of link being completed",
)
@click.option("--limit", "-n", type=click.IntRange(min=1), default=None, help="Max results")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def complete(ctx: click.Context, query: str, context: str, limit: int | None, as_json: bool):
    """Rank notes (or tags) matching QUERY.

    \b
    Examples:
      notelink complete alp
      notelink complete "" --limit 10        # Everything, alphabetically
    """
    engine = _get_engine(ctx)
    items = engine.complete(query, CompletionContext(context), limit=limit)

    if as_json:
        _emit_json([_item_to_dict(item) for item in items])
        return

    if not items:
        click.echo("No matches.")
        return

    for item in items:
        click.echo(f"{item.score:7.1f}  {item.label}  ->  {item.insert_text}  ({item.detail})")


@cli.command()
@click.argument("name")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def links(ctx: click.Context, name: str, as_json: bool):
    """Show notes linked from and linking to NAME."""
    engine = _get_engine(ctx)
    hood = engine.neighborhood(name)

    if as_json:
        _emit_json(
            {
                "name": hood.name,
                "outgoing": sorted(hood.outgoing),
                "incoming": sorted(hood.incoming),
            }
        )
        return

    click.echo(f"Outgoing ({len(hood.outgoing)}):")
    for target in sorted(hood.outgoing):
        click.echo(f"  -> {target}")
    click.echo(f"Incoming ({len(hood.incoming)}):")
    for source in sorted(hood.incoming):
        click.echo(f"  <- {source}")


@cli.command()
@click.option("--tag", "-t", default=None, help="Only notes with this tag")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def notes(ctx: click.Context, tag: str | None, as_json: bool):
    """List indexed notes."""
    engine = _get_engine(ctx)
    found = engine.notes(tag=tag)

    if as_json:
        _emit_json([_note_to_dict(note) for note in found])
        return

    if not found:
        click.echo("No notes found.")
        return

    for note in found:
        click.echo(f"{note.relative_path}  {note.title}")


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def stats(ctx: click.Context, as_json: bool):
    """Show index status."""
    engine = _get_engine(ctx)
    current = engine.refresh()

    if as_json:
        _emit_json(current.model_dump(mode="json"))
    else:
        click.echo(_format_stats(current))


# ─────────────────────────────────────────────────────────────────────────────
# Entry Point
# ─────────────────────────────────────────────────────────────────────────────


def main():
    """Entry point for notelink CLI."""
    from ._logging import configure_logging

    configure_logging()
    cli()


if __name__ == "__main__":
    main()

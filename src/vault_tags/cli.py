"""CLI interface for Vault Tags.

Commands: build, search, list, files, stats, set-key, watch, web
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from vault_tags.config import Config
from vault_tags.index import TagIndexer, create_indexer, load_or_build

console = Console()


def _run(coro):
    """Run an async coroutine from sync CLI context."""
    return asyncio.run(coro)


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _ready_indexer(config: Config) -> TagIndexer:
    """Load the stored index, rebuilding it when missing or stale."""
    indexer = create_indexer(config)
    if _run(load_or_build(indexer, config.max_age_ms)):
        console.print("  [dim]Index was missing or stale, rebuilt it.[/dim]")
    return indexer


@click.group()
@click.option("--vault", type=click.Path(file_okay=False), default=None, help="Vault root (overrides VAULT_PATH)")
@click.pass_context
def cli(ctx: click.Context, vault: str | None) -> None:
    """tags - vault tag index CLI"""
    ctx.ensure_object(dict)
    config = Config.from_env()
    if vault:
        config.vault_path = Path(vault).expanduser()
    _setup_logging(config.log_level)
    ctx.obj["config"] = config


@cli.command()
@click.pass_context
def build(ctx: click.Context) -> None:
    """Rebuild the tag index from every note in the vault."""
    config: Config = ctx.obj["config"]
    console.print("\n🏷  Building tag index...")
    console.print(f"   Vault: {config.vault_path}")

    indexer = create_indexer(config)
    _run(indexer.build())

    table = Table(title="Index Results")
    table.add_column("Metric", style="bold")
    table.add_column("Count", justify="right")
    table.add_row("Documents", f"[green]{indexer.meta.file_count}[/green]")
    table.add_row("Tags", f"[green]{indexer.meta.tag_count}[/green]")
    console.print(table)
    console.print()


@cli.command()
@click.argument("query")
@click.option("--num", default=10, help="Number of results")
@click.pass_context
def search(ctx: click.Context, query: str, num: int) -> None:
    """Fuzzy search tag names."""
    indexer = _ready_indexer(ctx.obj["config"])
    console.print(f"\n🔍 Searching: [bold]{query}[/bold]\n")

    results = indexer.search(query, limit=num)
    if not results:
        console.print("  No results found.\n")
        return

    for i, r in enumerate(results, 1):
        console.print(f"  [{i}] #{r.tag} [dim]({r.count} notes, score: {r.score:.3f})[/dim]")
    console.print()


@cli.command(name="list")
@click.option("--limit", default=None, type=int, help="Show only the N most used tags")
@click.pass_context
def list_tags(ctx: click.Context, limit: int | None) -> None:
    """List all tags, most used first."""
    indexer = _ready_indexer(ctx.obj["config"])
    entries = indexer.all_tags()
    if limit:
        entries = entries[:limit]

    table = Table(title="Tags")
    table.add_column("Tag", style="bold")
    table.add_column("Notes", justify="right")
    for entry in entries:
        table.add_row(entry.tag, str(entry.count))
    console.print(table)


@cli.command()
@click.argument("tag")
@click.pass_context
def files(ctx: click.Context, tag: str) -> None:
    """Show the notes and journal entries carrying TAG."""
    indexer = _ready_indexer(ctx.obj["config"])
    docs = indexer.get_files_for_tag(tag)
    console.print(f"\n🏷  #{escape(tag)}: {len(docs)} notes\n")
    for doc in docs:
        console.print(f"  • {escape(doc)}")
    console.print()


@cli.command()
@click.pass_context
def stats(ctx: click.Context) -> None:
    """Show tag index statistics."""
    config: Config = ctx.obj["config"]
    indexer = create_indexer(config)
    console.print("\n📊 Tag Index Statistics\n")

    if not indexer.load_from_storage():
        console.print("  No stored index. Run [bold]tags build[/bold] first.\n")
        return

    table = Table()
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Documents", str(indexer.meta.file_count))
    table.add_row("Tags", str(indexer.meta.tag_count))
    table.add_row("Last indexed (ms)", str(indexer.meta.last_indexed))
    stale = indexer.is_stale(config.max_age_ms)
    table.add_row("Stale", "[red]yes[/red]" if stale else "[green]no[/green]")
    console.print(table)
    console.print()


@cli.command(name="set-key")
@click.argument("path")
@click.argument("key")
@click.argument("value")
@click.pass_context
def set_key(ctx: click.Context, path: str, key: str, value: str) -> None:
    """Set a frontmatter KEY to VALUE in the note at PATH (vault-relative)."""
    from vault_tags.frontmatter import update_key

    config: Config = ctx.obj["config"]
    indexer = _ready_indexer(config)
    note = config.vault_path / path
    if not note.is_file():
        raise click.ClickException(f"Note not found: {path}")

    updated = update_key(note.read_text(encoding="utf-8"), key, value)
    note.write_text(updated, encoding="utf-8")
    indexer.update_document(path, updated)
    console.print(f"  ✓ {escape(path)}: [bold]{escape(key)}[/bold] = {escape(value)}")


@cli.command()
@click.pass_context
def watch(ctx: click.Context) -> None:
    """Watch the vault for file changes and update the index automatically."""
    from vault_tags.watcher import watch_vault

    config: Config = ctx.obj["config"]
    watch_vault(config, _ready_indexer(config))


@cli.command()
@click.option("--port", default=8000, help="Server port")
@click.option("--host", default="127.0.0.1", help="Server host")
@click.pass_context
def web(ctx: click.Context, port: int, host: str) -> None:
    """Serve the tag index over HTTP."""
    import os

    import uvicorn

    # The app reads its config from the environment on startup
    os.environ["VAULT_PATH"] = str(ctx.obj["config"].vault_path)

    console.print("\n🌐 Starting tag index API...")
    console.print(f"   → http://{host}:{port}\n")

    uvicorn.run(
        "vault_tags.web:app",
        host=host,
        port=port,
        log_level="info",
    )


if __name__ == "__main__":
    cli()

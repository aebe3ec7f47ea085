"""Remote cache management commands.

The cache holds remote plugins fetched over https, one file per URL, under
the configured cache directory (default: <tempdir>/nako3/remote-cache).
"""

from __future__ import annotations

import click
from rich.table import Table
from rich.text import Text

from ..config import ResolverConfig
from ..console import console
from ..utils.remote_cache import clear_cache
from ..utils.remote_cache import scan_cache


def _format_size(size_bytes: int) -> str:
    """Format bytes as human-readable size."""
    size_float = float(size_bytes)
    for unit in ["B", "KB", "MB", "GB"]:
        if size_float < 1024:
            return f"{size_float:.1f} {unit}"
        size_float /= 1024
    return f"{size_float:.1f} TB"


def _config(ctx: click.Context) -> ResolverConfig:
    obj = ctx.find_object(dict) or {}
    return obj.get("config") or ResolverConfig()


@click.group(invoke_without_command=True)
@click.pass_context
def cache(ctx: click.Context):
    """Manage the remote plugin cache."""
    if ctx.invoked_subcommand is None:
        click.echo("\n" + ctx.get_help())
        ctx.exit()


@cache.command(name="path")
@click.pass_context
def cache_path(ctx: click.Context):
    """Show the cache directory path."""
    cache_dir = _config(ctx).cache_dir
    console.print(Text(str(cache_dir), style="cyan"))

    if cache_dir.exists():
        console.print("[dim]Status: exists[/dim]")
    else:
        console.print("[dim]Status: not created yet[/dim]")


@cache.command(name="list")
@click.pass_context
def cache_list(ctx: click.Context):
    """List cached remote plugins with sizes."""
    cache_dir = _config(ctx).cache_dir
    entries = scan_cache(cache_dir)

    if not entries:
        console.print("[dim]No cached remote plugins found.[/dim]")
        return

    table = Table(title="Cached Remote Plugins")
    table.add_column("File", style="cyan")
    table.add_column("Cached at", style="dim")
    table.add_column("Size", justify="right")

    total_size = 0
    for entry in entries:
        total_size += entry.size
        table.add_row(Text(entry.name), entry.cached_at, _format_size(entry.size))

    console.print(table)
    console.print(f"\n[bold]Total:[/bold] {len(entries)} files, {_format_size(total_size)}")


@cache.command(name="clean")
@click.option("--force", "-f", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def cache_clean(ctx: click.Context, force: bool):
    """Delete every cached remote plugin."""
    cache_dir = _config(ctx).cache_dir
    entries = scan_cache(cache_dir)

    if not entries:
        console.print("[dim]No cached remote plugins found - nothing to clean.[/dim]")
        return

    total_size = sum(e.size for e in entries)
    console.print(f"\n[bold]Will clean {len(entries)} cached files ({_format_size(total_size)}).[/bold]")

    if not force and not click.confirm("\nProceed with cleaning cache?"):
        console.print("[yellow]Aborted.[/yellow]")
        return

    cleared, failed = clear_cache(cache_dir)
    console.print(f"[green]✓[/green] Cleared {cleared} files")
    if failed:
        console.print(f"[yellow]Could not clear {failed} files (see log)[/yellow]")

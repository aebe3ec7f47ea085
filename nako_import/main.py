"""nako-import CLI - diagnostics for import resolution and loading."""

import asyncio
import sys
from pathlib import Path

import click
from rich.table import Table
from rich.text import Text

from .commands.cache import cache as cache_group
from .config import ResolverConfig
from .config import load_config
from .console import console
from .driver import DependencyDriver
from .driver import PluginRegistry
from .errors import ImportResolutionError
from .loader import ContentLoader
from .logging_setup import init_json_logging
from .resolver import CandidateResolver
from .ui import display_import_error
from .ui import trace_table
from .utils.error_format import escape_markup


@click.group(invoke_without_command=True)
@click.version_option(package_name="nako-import")
@click.option(
    "--settings",
    "settings_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Settings YAML file (default: .nako/settings.yaml)",
)
@click.option("--log-file", type=click.Path(dir_okay=False), default=None, help="Write JSONL logs to this file")
@click.option("--log-level", default=None, help="Log level for --log-file (default: INFO)")
@click.pass_context
def cli(ctx: click.Context, settings_path: Path | None, log_file: str | None, log_level: str | None):
    """Resolve and load Nadesiko import directives."""
    if log_file:
        init_json_logging(log_file, log_level)

    ctx.ensure_object(dict)
    ctx.obj["config"] = load_config(settings_path)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit()


@cli.command()
@click.argument("reference")
@click.option(
    "--from",
    "requesting_file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=Path("main.nako3"),
    show_default=True,
    help="File containing the import directive",
)
@click.option("--release/--no-release", default=None, help="Search pre-bundled release directories")
@click.option("--trace", "show_trace", is_flag=True, help="Show every probed path even on success")
@click.pass_context
def resolve(ctx: click.Context, reference: str, requesting_file: Path, release: bool | None, show_trace: bool):
    """Resolve REFERENCE as an import directive in --from."""
    config: ResolverConfig = ctx.obj["config"]
    resolver = CandidateResolver(config)

    try:
        resolution = resolver.resolve(reference, requesting_file, allow_release_roots=release)
    except ImportResolutionError as e:
        display_import_error(console, e)
        sys.exit(1)

    if resolution.artifact is None:
        console.print(f"[bold red]Not found:[/bold red] {escape_markup(reference)} [dim]({resolution.kind.value})[/dim]")
        console.print(trace_table(resolution.trace))
        sys.exit(1)

    artifact = resolution.artifact
    console.print(f"[green]✓[/green] {escape_markup(reference)} [dim]({resolution.kind.value})[/dim]")
    console.print(f"  [dim]Kind:[/dim] {artifact.kind.value}")
    console.print("  [dim]Location:[/dim] ", Text(artifact.location, style="cyan"), sep="")
    if show_trace and resolution.trace:
        console.print(trace_table(resolution.trace))


@cli.command()
@click.argument("source_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--release/--no-release", default=None, help="Search pre-bundled release directories")
@click.option("--verbose", "-v", is_flag=True, help="Show tracebacks for failures")
@click.pass_context
def check(ctx: click.Context, source_file: Path, release: bool | None, verbose: bool):
    """Resolve and load every import of SOURCE_FILE, reporting all failures."""
    config: ResolverConfig = ctx.obj["config"]
    registry = PluginRegistry()
    driver = DependencyDriver(
        CandidateResolver(config),
        ContentLoader(config),
        host=registry,
        allow_release_roots=release,
    )

    source_text = source_file.read_text(encoding="utf-8")
    try:
        asyncio.run(driver.load_all(source_text, str(source_file.resolve())))
        failed = False
    except ImportResolutionError as e:
        display_import_error(console, e, verbose=verbose)
        failed = True

    _print_registry(registry)
    if failed:
        sys.exit(1)


def _print_registry(registry: PluginRegistry) -> None:
    if not registry.order:
        console.print("[dim]No dependencies registered.[/dim]")
        return

    table = Table(title="Registered Dependencies")
    table.add_column("Name", style="cyan")
    table.add_column("Kind", style="dim")
    table.add_column("Location")

    for plugin in registry.plugins.values():
        table.add_row(Text(plugin.name), "plugin", Text(plugin.location))
    for module in registry.modules:
        table.add_row(Text(module.name), "source module", Text(module.location))
    console.print(table)


cli.add_command(cache_group)


def main():
    cli(obj={})


if __name__ == "__main__":
    main()

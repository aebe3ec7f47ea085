"""Clean error display for import resolution and loading failures."""

from collections.abc import Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..errors import CacheWriteError
from ..errors import DependencyLoadError
from ..errors import DescriptorInvalidError
from ..errors import ImportResolutionError
from ..errors import LoadError
from ..errors import MissingRequesterContextError
from ..errors import NotFoundError
from ..errors import RemoteLibraryNotFoundError
from ..errors import SourceReadError
from ..errors import TransportError
from ..models import TraceEntry
from ..utils.error_format import format_error_message

_TITLES: list[tuple[type[ImportResolutionError], str, str]] = [
    (NotFoundError, "Module Not Found", "Place the file in one of the searched directories, or set NAKO_LIB."),
    (DescriptorInvalidError, "Invalid Package Descriptor", "Fix the JSON and make sure it declares a 'main' entry."),
    (RemoteLibraryNotFoundError, "Remote Library Not Found", "Check the library name and version in the URL."),
    (TransportError, "Download Failed", "Check the URL and your network connection."),
    (CacheWriteError, "Cache Write Failed", "Check permissions of the remote cache directory."),
    (SourceReadError, "Source Read Failed", "Check the file's permissions and encoding (UTF-8)."),
    (LoadError, "Plugin Load Failed", "Fix the error inside the plugin; it was found but could not be loaded."),
    (MissingRequesterContextError, "Missing Requesting File", "Pass the path of the file containing the import."),
]


def _title_and_tip(error: ImportResolutionError) -> tuple[str, str]:
    for error_type, title, tip in _TITLES:
        if isinstance(error, error_type):
            return title, tip
    return "Import Failed", ""


def trace_table(trace: Sequence[TraceEntry]) -> Table:
    """Build a table of every path probed, in probe order."""
    table = Table(show_header=True, box=None, padding=(0, 1))
    table.add_column("#", style="dim", justify="right")
    table.add_column("", width=2)
    table.add_column("Search root", style="bold")
    table.add_column("Path", style="dim")

    for index, entry in enumerate(trace, start=1):
        mark = Text("✓", style="green") if entry.found else Text("✗", style="red")
        table.add_row(str(index), mark, Text(entry.description), Text(entry.path))
    return table


def display_import_error(console: Console, error: Exception, verbose: bool = False) -> bool:
    """Display an import failure (or an aggregate of them) with Rich formatting.

    Args:
        console: Rich console for output
        error: The error to display
        verbose: If True, also print traceback

    Returns:
        True if the error was an import error and was displayed, False otherwise
    """
    if isinstance(error, DependencyLoadError):
        for child in error.errors:
            _display_one(console, child)
        console.print(f"[bold red]{format_error_message(error, include_type=False)}[/bold red]")
    elif isinstance(error, ImportResolutionError):
        _display_one(console, error)
    else:
        return False

    if verbose:
        console.print("[dim]─── Traceback ───[/dim]")
        console.print_exception()
    return True


def _display_one(console: Console, error: ImportResolutionError) -> None:
    title, tip = _title_and_tip(error)

    content = Text()
    if error.token is not None and error.token.file:
        content.append("At: ", style="dim")
        content.append(str(error.token), style="bold cyan")
        content.append("\n")
    content.append(error.message)

    console.print()
    console.print(Panel(content, title=f"[bold red]{title}[/bold red]", border_style="red", padding=(1, 2)))

    if isinstance(error, NotFoundError) and error.trace:
        console.print(trace_table(error.trace))

    if tip:
        console.print(f"[dim]Tip: {tip}[/dim]")

"""
Output utility for the kubeinventory CLI with colors, spinners, and verbosity control.

Provides a centralized output manager using the Rich library for CLI output
with colors, tables, and formatted messages.
"""

from enum import IntEnum
from typing import Optional, List, Iterator
from contextlib import contextmanager

from rich.console import Console
from rich.table import Table
from rich import box


class Verbosity(IntEnum):
    """Verbosity levels for output."""

    QUIET = 0  # Only errors and final results
    NORMAL = 1  # Standard output with colors
    VERBOSE = 2  # Per-resource progress during probing


class OutputManager:
    """
    Centralized output manager for the kubeinventory CLI.

    Provides methods for formatted output with colors, spinners,
    and verbosity control.
    """

    def __init__(self, verbosity: Verbosity = Verbosity.NORMAL):
        """
        Initialize the output manager.

        Args:
            verbosity: Verbosity level for output
        """
        self.verbosity = verbosity
        self.console = Console()
        self.error_console = Console(stderr=True)

    def error(self, message: str, suggestion: Optional[str] = None) -> None:
        """Print an error message in red to stderr."""
        self.error_console.print(f"✗ {message}", style="red", markup=False, soft_wrap=True)
        if suggestion and self.verbosity >= Verbosity.NORMAL:
            self.error_console.print(f"💡 {suggestion}", style="yellow", markup=False)

    def warning(self, message: str) -> None:
        """Print a warning message in yellow to stderr; shown even in quiet mode."""
        self.error_console.print(f"⚠ {message}", style="yellow", markup=False, soft_wrap=True)

    def info(self, message: str) -> None:
        """Print an info message in blue."""
        if self.verbosity >= Verbosity.NORMAL:
            self.console.print(f"ℹ {message}", style="blue", markup=False, soft_wrap=True)

    def result(self, message: str) -> None:
        """Print a final result line, unstyled and regardless of verbosity."""
        self.console.print(message, markup=False, highlight=False, emoji=False, soft_wrap=True)

    def verbose(self, message: str) -> None:
        """Print a verbose message (only shown in VERBOSE mode)."""
        if self.verbosity >= Verbosity.VERBOSE:
            self.console.print(message, style="dim", markup=False, soft_wrap=True)

    def section(self, title: str) -> None:
        """Print a section header."""
        if self.verbosity != Verbosity.QUIET:
            self.console.print(f"\n[bold cyan]{title}[/bold cyan]")

    def table(
        self,
        title: str,
        columns: List[str],
        rows: List[List[str]],
        show_header: bool = True,
    ) -> None:
        """Print a table. Tables are final results and are printed in quiet mode too."""
        table = Table(title=title, show_header=show_header, box=box.ROUNDED)
        for col in columns:
            table.add_column(col)
        for row in rows:
            table.add_row(*row)
        self.console.print(table)

    @contextmanager
    def spinner(self, message: str) -> Iterator[None]:
        """
        Context manager for spinner (indeterminate progress).

        The spinner is suppressed in quiet and verbose mode, where it would
        interleave with per-resource lines.

        Args:
            message: Message to display with spinner

        Yields:
            None
        """
        if self.verbosity != Verbosity.NORMAL or not self.console.is_terminal:
            yield
            return

        with self.console.status(f"[cyan]{message}[/cyan]"):
            yield


# Global output manager instance
_output_manager: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """
    Get the global output manager instance.

    Returns:
        OutputManager instance
    """
    global _output_manager
    if _output_manager is None:
        _output_manager = OutputManager()
    return _output_manager


def set_output(manager: OutputManager) -> None:
    """Set the global output manager instance."""
    global _output_manager
    _output_manager = manager

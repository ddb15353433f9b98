"""Console output formatting for the CLI."""

import json
import sys
from typing import Any, Optional

from rich.console import Console
from rich.table import Table


class OutputFormatter:
    """Formats CLI output as Rich text or JSON."""

    def __init__(
        self,
        json_output: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
    ):
        """Initialize output formatter.

        Args:
            json_output: Emit machine-readable JSON instead of text
            quiet: Suppress informational messages
            console: Console to write to (defaults to stdout)
        """
        self.json_output = json_output
        self.quiet = quiet
        self.console = console or Console(highlight=False)
        self.err_console = Console(stderr=True, highlight=False)

    def print(self, message: str = "") -> None:
        if not self.quiet and not self.json_output:
            self.console.print(message)

    def info(self, message: str) -> None:
        if not self.quiet and not self.json_output:
            self.console.print(message)

    def success(self, message: str) -> None:
        if not self.json_output:
            self.console.print(f"[green]{message}[/green]")

    def warning(self, message: str) -> None:
        if not self.quiet:
            self.err_console.print(f"[yellow]{message}[/yellow]")

    def error(self, message: str) -> None:
        self.err_console.print(f"[red]Error:[/red] {message}")

    def output_json(self, data: Any) -> None:
        """Write data as indented JSON to stdout."""
        sys.stdout.write(json.dumps(data, indent=2) + "\n")

    def output_table(
        self,
        rows: list[dict[str, Any]],
        columns: list[str],
        headers: dict[str, str],
    ) -> None:
        """Render rows as a table (or a JSON list in JSON mode).

        Args:
            rows: One dictionary per row
            columns: Keys to display, in order
            headers: Column header per key
        """
        if self.json_output:
            self.output_json(rows)
            return

        table = Table(show_header=True, header_style="bold")
        for column in columns:
            table.add_column(headers.get(column, column))
        for row in rows:
            table.add_row(
                *("" if row.get(c) is None else str(row.get(c)) for c in columns)
            )
        self.console.print(table)

    def print_summary(self, title: str, items: list[tuple[str, str]]) -> None:
        """Print a titled list of label/value pairs."""
        if self.quiet or self.json_output:
            return
        self.console.print(f"\n[bold]{title}[/bold]")
        for label, value in items:
            self.console.print(f"  {label}: {value}")

#!/usr/bin/env python3
"""
Console UI Module using Rich

All operator-facing output of kleidi: styled status messages, the run header
and configuration table, one line per reported key, and the final summary.
Key bytes and value previews are escaped before printing so they are never
read as Rich markup.
"""

from typing import Any, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table


class ConsoleUI:
    """Console UI handler using Rich"""

    def __init__(self, force_terminal: Optional[bool] = None, console: Optional[Console] = None):
        """Initialize console with optional terminal forcing or an injected Console"""
        self.console = console or Console(force_terminal=force_terminal, highlight=False, emoji=False)

    # Basic styled output methods
    def print_success(self, message: str):
        """Print success message in green"""
        self.console.print(message, style="green")

    def print_error(self, message: str):
        """Print error message in red"""
        self.console.print(escape(message), style="red bold", soft_wrap=True)

    def print_warning(self, message: str):
        """Print warning message in yellow"""
        self.console.print(message, style="yellow")

    def print_info(self, message: str):
        """Print info message in cyan"""
        self.console.print(message, style="cyan")

    def print_plain(self, message: str):
        """Print message in plain white"""
        self.console.print(message, style="white")

    def print_header(self, title: str, subtitle: Optional[str] = None):
        """Print a header with optional subtitle"""
        if subtitle:
            header_text = f"[bold]{title}[/bold]\n[dim]{escape(subtitle)}[/dim]"
        else:
            header_text = f"[bold]{title}[/bold]"

        panel = Panel(header_text, box=box.ROUNDED, padding=(0, 1))
        self.console.print(panel)

    # Configuration display
    def show_configuration(self, config: dict[str, Any]):
        """Display configuration in a formatted table"""
        table = Table(show_header=False, box=box.SIMPLE)
        table.add_column("Setting", style="cyan dim", min_width=12, justify="right")
        table.add_column("Value", style="cyan", min_width=30)

        for key, value in config.items():
            if isinstance(value, list):
                value = ", ".join(str(v) for v in value)
            table.add_row(key, escape(str(value)))

        self.console.print(table)

    def create_activity_progress(self):
        """Create a Rich progress context manager for activity-only display (no counts)"""
        from rich.progress import (
            Progress,
            SpinnerColumn,
            TextColumn,
            TimeElapsedColumn,
        )

        return Progress(
            SpinnerColumn(),
            TextColumn("{task.description}"),
            TimeElapsedColumn(),
            console=self.console,
            transient=True,
        )

    # Per-key lines
    def show_binary_key(self, hex_key: str, raw_key: str, value_preview: str):
        self.console.print(
            f"[green]BINARY KEY[/green]: hex={hex_key}, raw={escape(raw_key)}, value={escape(value_preview)}",
            soft_wrap=True,
        )

    def show_text_key(self, raw_key: str, value_preview: str):
        self.console.print(
            f"[blue]UTF8 KEY[/blue]: {escape(raw_key)}, value={escape(value_preview)}",
            soft_wrap=True,
        )

    def show_would_delete(self, raw_key: str):
        self.console.print(f"[yellow]Delete key[/yellow]: {escape(raw_key)} (dry-run)", soft_wrap=True)

    def show_deleted(self, raw_key: str):
        self.console.print(f"[red]Deleted key[/red]: {escape(raw_key)}", soft_wrap=True)

    def show_delete_failed(self, raw_key: str, error: str):
        self.console.print(
            f"Failed to delete key: {escape(raw_key)}, error: {escape(error)}",
            style="red bold",
            soft_wrap=True,
        )

    # Summary
    def show_report(self, lines):
        """Print summary lines produced by scan_report.render_report"""
        self.console.print()
        for line in lines:
            label = f"[{line.style}]{line.label}[/{line.style}]" if line.style else line.label
            text = " " * line.indent + f"{label}:"
            if line.value:
                text = f"{text} {escape(line.value)}"
            self.console.print(text)

    def show_stats(self, last_run: Optional[str], stats: dict[str, int]):
        """Display persisted run history"""
        if not stats.get("total_runs"):
            self.print_info("No scans recorded yet.")
            return

        table = Table(title="Scan History", box=box.ROUNDED)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right")
        table.add_row("Runs", f"{stats.get('total_runs', 0):,}")
        table.add_row("Keys scanned", f"{stats.get('total_scanned', 0):,}")
        table.add_row("Binary keys found", f"{stats.get('total_binary', 0):,}")
        table.add_row("Keys deleted", f"{stats.get('total_deleted', 0):,}")
        table.add_row("Last run", last_run or "never")
        self.console.print(table)

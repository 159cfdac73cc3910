"""Console output and activity log for the CLI."""

import json
import logging
from collections import deque
from datetime import datetime
from typing import Any, Optional

from rich.console import Console
from rich.status import Status
from rich.table import Table

from .utils import ACTIVITY_LOG_SIZE


class OutputFormatter:
    """Formats CLI output with rich, honouring quiet and JSON modes."""

    def __init__(
        self,
        json_output: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
    ):
        self.json_output = json_output
        self.quiet = quiet
        self.console = console or Console(highlight=False)
        self.err_console = Console(stderr=True, highlight=False)

    def print(self, message: str = "", markup: bool = True) -> None:
        if not self.quiet and not self.json_output:
            self.console.print(message, markup=markup)

    def info(self, message: str) -> None:
        self.print(message)

    def success(self, message: str) -> None:
        if not self.quiet and not self.json_output:
            self.console.print(f"[green]{message}[/green]")

    def warning(self, message: str) -> None:
        if not self.json_output:
            self.err_console.print(f"[yellow]{message}[/yellow]")

    def error(self, message: str) -> None:
        self.err_console.print(f"[red]Error:[/red] {message}")

    def output_json(self, data: Any) -> None:
        self.console.print_json(json.dumps(data, default=str))

    def print_summary(self, title: str, items: list[tuple[str, Any]]) -> None:
        """Print a two-column summary table.

        Args:
            title: Table title
            items: (label, value) pairs
        """
        if self.quiet or self.json_output:
            return
        table = Table(title=title, show_header=False)
        table.add_column("Field", style="bold")
        table.add_column("Value")
        for label, value in items:
            table.add_row(label, str(value))
        self.console.print(table)


class ActivityLog(logging.Handler):
    """Logging handler keeping the most recent event lines.

    Each line is prefixed with the local time as ``HHMMSS``. When an output
    formatter is given, every line is also echoed to it.
    """

    def __init__(
        self,
        max_lines: int = ACTIVITY_LOG_SIZE,
        output: Optional[OutputFormatter] = None,
        level: int = logging.INFO,
    ):
        super().__init__(level=level)
        self.lines: deque[str] = deque(maxlen=max_lines)
        self.output = output

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = f"{datetime.fromtimestamp(record.created):%H%M%S} {record.getMessage()}"
        except Exception:
            self.handleError(record)
            return
        self.lines.append(line)
        if self.output is not None:
            self.output.print(line, markup=False)

    def text(self) -> str:
        return "\n".join(self.lines)


class ActivityIndicator:
    """Spinner line showing whether FTP traffic is in progress.

    Used as a context manager around the watch loop. Nothing is displayed in
    quiet or JSON mode.
    """

    IDLE = "Watching for changes"
    ACTIVE = "[bold cyan]FTP transfer in progress[/bold cyan]"

    def __init__(self, output: OutputFormatter):
        self.output = output
        self.active = False
        self._status: Optional[Status] = None

    def update(self, active: bool) -> None:
        """Light or clear the indicator."""
        self.active = active
        if self._status is not None:
            self._status.update(self.ACTIVE if active else self.IDLE)

    def __enter__(self) -> "ActivityIndicator":
        if not self.output.quiet and not self.output.json_output:
            self._status = self.output.console.status(
                self.ACTIVE if self.active else self.IDLE
            )
            self._status.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None

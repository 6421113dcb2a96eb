"""
Rich console output and progress bars for the ecoaudio CLI.
"""

from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

console = Console()


class ProgressBar:
    """
    Progress bar for batch operations.

    Example:
        >>> with ProgressBar(total=len(files), description="Indices") as pb:
        ...     service.set_progress_callback(lambda p: pb.update(completed=p.completed))
    """

    def __init__(self, total: Optional[int] = None, description: str = "Processing", transient: bool = False, disable: bool = False) -> None:
        self.total = total
        self.description = description
        self.transient = transient
        self.disable = disable
        self._progress: Optional[Progress] = None
        self._task_id: Optional[TaskID] = None
        self._completed = 0

    def __enter__(self) -> "ProgressBar":
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(bar_width=40),
            TaskProgressColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console,
            transient=self.transient,
            disable=self.disable,
        )
        self._progress.start()
        self._task_id = self._progress.add_task(self.description, total=self.total)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._progress:
            self._progress.stop()

    def advance(self, amount: int = 1) -> None:
        if self._progress and self._task_id is not None:
            self._progress.advance(self._task_id, amount)
            self._completed += amount

    def update(self, completed: Optional[int] = None, total: Optional[int] = None) -> None:
        if self._progress and self._task_id is not None:
            if completed is not None:
                self._completed = completed
            self._progress.update(self._task_id, completed=completed, total=total)

    @property
    def completed(self) -> int:
        return self._completed


def print_success(message: str) -> None:
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    console.print(f"[red]✗[/red] {message}")


def print_table(title: str, columns: list, rows: list, show_header: bool = True) -> None:
    """
    Print a formatted table.

    Args:
        title: Table title
        columns: Column names
        rows: Row data (each row is a list of values)
        show_header: Whether to show column headers
    """
    table = Table(title=title, show_header=show_header)
    for col in columns:
        table.add_column(col)
    for row in rows:
        table.add_row(*[f"{v:.4g}" if isinstance(v, float) else str(v) for v in row])
    console.print(table)


def print_summary(title: str, stats: dict, style: str = "blue") -> None:
    lines = []
    for key, value in stats.items():
        if isinstance(value, float):
            lines.append(f"[bold]{key}:[/bold] {value:.3f}")
        else:
            lines.append(f"[bold]{key}:[/bold] {value}")
    console.print(Panel("\n".join(lines), title=title, border_style=style))

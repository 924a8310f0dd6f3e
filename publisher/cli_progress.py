"""Console rendering and progress helpers for publisher CLI."""
from __future__ import annotations

from typing import Dict, Optional, Sequence, Tuple

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskID, TextColumn
from rich.table import Table

from .models import PublishResult, PublishStatus
from .orchestrator.models import PublishState

console = Console()
error_console = Console(stderr=True)

STATE_LABELS: Dict[PublishState, str] = {
    PublishState.START: "Starting",
    PublishState.TICKET_REQUESTED: "Requesting upload ticket and building archive",
    PublishState.ARCHIVE_READY: "Uploading package",
    PublishState.UPLOADED: "Confirming upload",
    PublishState.CONFIRMED: "Published",
    PublishState.FAILED: "Failed",
}
PROTOCOL_STEPS = 4


def render_configuration_summary(rows: Sequence[Tuple[str, Optional[str]]], title: str = "publish") -> None:
    """Show which package goes to which server before the upload starts."""
    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column(style="bold cyan", no_wrap=True)
    table.add_column(overflow="fold")
    for label, value in rows:
        table.add_row(label, escape(value) if value else "[dim]-[/dim]")
    console.print(Panel.fit(table, title=f"[bold]{escape(title)}[/bold]", border_style="cyan"))


def print_notice(message: str) -> None:
    error_console.print(f"[yellow]{escape(message)}[/yellow]", highlight=False, soft_wrap=True)


def print_error(message: str) -> None:
    error_console.print(f"[red]ERROR:[/red] {escape(message)}", highlight=False, soft_wrap=True)


class PublishProgress:
    """Spinner that follows the publish protocol states."""

    def __init__(self, package_name: str):
        self.package_name = package_name
        self._task_id: Optional[TaskID] = None
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold cyan]{task.fields[package]}", justify="left"),
            BarColumn(bar_width=24),
            TextColumn("{task.description}"),
            expand=False,
            console=console,
            transient=True,
        )

    def start(self) -> None:
        if self._task_id is not None:
            return
        self._progress.start()
        self._task_id = self._progress.add_task(
            STATE_LABELS[PublishState.START],
            package=self.package_name[:60],
            total=PROTOCOL_STEPS,
        )

    def on_state(self, state: PublishState) -> None:
        if self._task_id is None:
            self.start()
        assert self._task_id is not None
        if state == PublishState.FAILED:
            self._progress.update(self._task_id, description=STATE_LABELS[state])
            return
        if state == PublishState.TICKET_REQUESTED:
            # A retried attempt starts over
            self._progress.update(self._task_id, description=STATE_LABELS[state], completed=1)
            return
        self._progress.update(self._task_id, description=STATE_LABELS[state], advance=1)

    def stop(self) -> None:
        self._progress.stop()

    def complete(self, result: PublishResult) -> None:
        self.stop()
        if result.success:
            # Server message is printed verbatim
            console.print(result.message, markup=False, highlight=False, soft_wrap=True)
            return
        if result.status == PublishStatus.AUTH_EXPIRED:
            print_error(f"authorization expired: {result.error}")
            return
        print_error(result.error or "publish failed")

    def get_callback(self):
        def callback(state: PublishState) -> None:
            self.on_state(state)

        return callback

"""Rich progress bar for long-running CLI commands."""

from __future__ import annotations

from typing_extensions import override

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from .protocols import ProgressReporter


class CliProgressReporter(ProgressReporter):
    """Shows one transient task at a time on stderr so command output stays readable."""

    def __init__(self, console: Console | None = None) -> None:
        self._progress = Progress(
            TextColumn("[bold]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console or Console(stderr=True),
            transient=True,
        )
        self._task_id: TaskID | None = None

    @override
    def start(self, label: str, total: int | None) -> None:
        if self._task_id is None:
            self._progress.start()
        else:
            self._progress.remove_task(self._task_id)
        self._task_id = self._progress.add_task(label, total=total)

    @override
    def advance(self, count: int) -> None:
        if self._task_id is not None:
            self._progress.advance(self._task_id, count)

    @override
    def finish(self) -> None:
        if self._task_id is None:
            return
        self._progress.remove_task(self._task_id)
        self._task_id = None
        self._progress.stop()

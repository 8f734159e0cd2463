"""Terminal progress bar for archive downloads."""

from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TransferSpeedColumn,
)


class DownloadProgress:
    """Progress sink rendering a rich progress bar.

    Use as a context manager around the download; the instance is then the
    ``progress`` callable handed to the downloader.
    """

    def __init__(self, description: str, console: Console | None = None) -> None:
        self.description = description
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            console=console,
            transient=True,
        )
        self._task: TaskID | None = None

    def __enter__(self) -> "DownloadProgress":
        self._progress.start()
        self._task = self._progress.add_task(self.description, total=None)
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._progress.stop()

    def __call__(self, written: int, total: int | None) -> None:
        if self._task is None:
            return
        self._progress.update(self._task, completed=written, total=total)

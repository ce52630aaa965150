"""Console output for pydtheme commands."""

from typing import Optional

from rich.console import Console


class OutputFormatter:
    """Prints status lines with a symbol and color per level.

    Info and progress lines are suppressed in quiet mode; errors and
    success lines are always shown.
    """

    def __init__(self, quiet: bool = False, console: Optional[Console] = None):
        self.quiet = quiet
        self._console = console

    @property
    def console(self) -> Console:
        # Resolved lazily so output follows a replaced sys.stdout
        return self._console or Console(highlight=False, soft_wrap=True)

    def _emit(self, message: str, style: Optional[str]) -> None:
        self.console.print(message, style=style, markup=False, highlight=False)

    def info(self, message: str) -> None:
        if not self.quiet:
            self._emit(f"i {message}", "blue")

    def progress(self, message: str) -> None:
        if not self.quiet:
            self._emit(f"» {message}", "yellow")

    def success(self, message: str) -> None:
        self._emit(f"✔ {message}", "green")

    def error(self, message: str) -> None:
        self._emit(f"✘ {message}", "red")

"""Verbosity-gated console logger passed explicitly through the toolkit."""

from rich.console import Console
from rich.table import Table
from rich.traceback import Traceback

from .ui import console as default_console


class Spinner:
    def __init__(self, logger: "Logger", message: str):
        self._logger = logger
        self.message = message

    def succeed(self, message: str | None = None):
        self._logger._emit(f"[green]✓[/green] {message or self.message}")

    def fail(self, message: str | None = None):
        self._logger._emit(f"[red]✗[/red] {message or self.message}")


class Logger:
    """Rich-backed logger. Only ``error`` prints when verbose is off."""

    def __init__(self, verbose: bool = False, console: Console | None = None):
        self.verbose = verbose
        self.console = console or default_console

    def _emit(self, message: str):
        if self.verbose:
            self.console.print(message)

    def info(self, message: str):
        self._emit(f"[cyan][INFO][/cyan] {message}")

    def success(self, message: str):
        self._emit(f"[green][SUCCESS][/green] {message}")

    def warn(self, message: str):
        self._emit(f"[yellow][WARNING][/yellow] {message}")

    def debug(self, message: str):
        self._emit(f"[bright_black][DEBUG] {message}[/bright_black]")

    def error(self, message: str, error: BaseException | None = None):
        self.console.print(f"[red][ERROR][/red] {message}")
        if error is not None and self.verbose:
            if error.__traceback__ is not None:
                self.console.print(Traceback.from_exception(type(error), error, error.__traceback__))
            else:
                self.console.print(f"[red]{error}[/red]")

    def step(self, step: int, total: int, message: str):
        self._emit(f"[bold cyan][{step}/{total}][/bold cyan] {message}")

    def table(self, data: dict):
        if not self.verbose:
            return
        table = Table.grid(padding=(0, 2))
        table.add_column(style="yellow", width=20)
        table.add_column(style="white")
        for key, value in data.items():
            table.add_row(key, str(value))
        self.console.print(table)

    def list(self, items, prefix: str = "•"):
        for item in items:
            self._emit(f"  {prefix} {item}")

    def spinner(self, message: str) -> Spinner:
        self._emit(f"[cyan]…[/cyan] {message}")
        return Spinner(self, message)

from __future__ import annotations

from typing import Any, Protocol, Sequence

from rich import box
from rich.console import Console
from rich.table import Table


class Renderer(Protocol):
    def render(self, title: str, headers: Sequence[str], rows: Sequence[Sequence[Any]]) -> None: ...


def _cell(value: Any) -> str:
    return "" if value is None else str(value)


class RichTableRenderer:
    def __init__(self, console: Console | None = None, empty_message: str = "No data to display."):
        self.console = console or Console()
        self.empty_message = empty_message

    def build_table(self, title: str, headers: Sequence[str], rows: Sequence[Sequence[Any]]) -> Table:
        table = Table(title=title, show_header=True, header_style="bold", box=box.SIMPLE_HEAVY)
        for header in headers:
            table.add_column(header, overflow="fold")
        for row in rows:
            table.add_row(*(_cell(value) for value in row))
        return table

    def render(self, title: str, headers: Sequence[str], rows: Sequence[Sequence[Any]]) -> None:
        if not rows:
            self.console.print(f"[dim]{self.empty_message}[/]")
            return
        self.console.print(self.build_table(title, headers, rows))

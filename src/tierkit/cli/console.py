from collections.abc import Sequence
from dataclasses import dataclass

from rich.console import Console
from rich.style import Style
from rich.table import Table


@dataclass(frozen=True, slots=True)
class SpecCliTheme:
    h1: str = "#7C3AED"
    h2: str = "#00FFFF"
    h3: str = "#4ADE80"


class CliHeadings:
    def __init__(
        self, *, console: Console | None = None, theme: SpecCliTheme | None = None
    ):
        self.console = console or Console()
        self.theme = theme or SpecCliTheme()

    def h1(self, text: str) -> None:
        self.console.rule(
            f"[bold]{text}[/bold]",
            style=Style(color=self.theme.h1, bold=True),
            characters="=",
        )

    def h2(self, text: str) -> None:
        self.console.rule(text, style=Style(color=self.theme.h2), characters="─")

    def table(
        self, rows: Sequence[Sequence[str]], *, headers: Sequence[str] | None = None
    ) -> None:
        """Print a string matrix; without ``headers`` columns are numbered."""
        n_cols = max((len(_row) for _row in rows), default=len(headers or ()))
        l_headers = list(headers) if headers else [str(_i + 1) for _i in range(n_cols)]
        cls_table = Table(header_style=Style(color=self.theme.h3, bold=True))
        for _header in l_headers:
            cls_table.add_column(_header)
        for _row in rows:
            cls_table.add_row(*_row)
        self.console.print(cls_table)

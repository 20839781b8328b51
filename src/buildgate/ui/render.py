"""Human-readable CLI output.

Purpose
- Render tables and short status lines through ``rich``.
- Honor ``--no-color`` and the ``NO_COLOR`` environment variable.

Functional requirements
- JSON output never goes through this layer; the CLI prints it verbatim.
- Output stays readable when stdout is not a terminal (no markup interpretation,
  no hard wrapping of long paths).
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from collections.abc import Sequence


class CLIRenderer:
    def __init__(self, *, no_color: bool = False, verbose: bool = False) -> None:
        self.verbose = verbose
        self.console = Console(
            no_color=no_color or bool(os.environ.get("NO_COLOR")),
            highlight=False,
            soft_wrap=True,
        )

    def kv(self, key: str, value: object) -> None:
        self.console.print(f"{key}: {value}", markup=False)

    def text(self, line: str) -> None:
        self.console.print(line, markup=False)

    def section(self, title: str) -> None:
        self.console.print()
        self.console.print(title, style="bold", markup=False)

    def items(self, entries: Sequence[str], *, prefix: str = "- ") -> None:
        for entry in entries:
            self.console.print(f"  {prefix}{entry}", markup=False)

    def ok(self, label: str) -> None:
        self.console.print(f"  OK  {label}", style="green", markup=False)

    def table(
        self,
        headers: Sequence[str],
        rows: Sequence[Sequence[str]],
        *,
        title: str | None = None,
    ) -> None:
        """Print ``rows`` under an optional bold title; an empty row set prints nothing."""

        if not rows:
            return
        if title:
            self.section(title)
        grid = Table(box=None, show_edge=False, pad_edge=False, header_style="bold")
        for header in headers:
            grid.add_column(header, overflow="fold")
        for row in rows:
            grid.add_row(*map(str, row))
        self.console.print(grid)


def create_renderer(*, no_color: bool = False, verbose: bool = False) -> CLIRenderer:
    return CLIRenderer(no_color=no_color, verbose=verbose)


__all__ = ["CLIRenderer", "create_renderer"]

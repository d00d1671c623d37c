from __future__ import annotations

from typing import List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from titledraft.merge.engine import (
    EMPTY_DOCUMENTS_MESSAGE,
    Blank,
    Block,
    DeedTable,
    Heading,
    Paragraph,
    PropertySection,
)


def _text_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> List[str]:
    widths = [len(header) for header in headers]
    for row in rows:
        widths = [max(width, len(cell)) for width, cell in zip(widths, row)]

    def line(cells: Sequence[str]) -> str:
        return " | ".join(cell.ljust(width) for cell, width in zip(cells, widths)).rstrip()

    return [line(headers), "-+-".join("-" * width for width in widths)] + [line(row) for row in rows]


def render_text(blocks: Sequence[Block]) -> str:
    """Plain-text rendering of preview blocks."""
    lines: List[str] = []
    for block in blocks:
        if isinstance(block, Heading):
            lines.append(block.text.upper())
        elif isinstance(block, Paragraph):
            lines.append(block.text)
        elif isinstance(block, Blank):
            lines.append("")
        elif isinstance(block, DeedTable):
            lines.extend(_text_table(block.headers, [row.cells() for row in block.rows]))
        elif isinstance(block, PropertySection):
            lines.append(block.title)
            if not block.entries:
                lines.append(EMPTY_DOCUMENTS_MESSAGE)
            for entry in block.entries:
                lines.append(entry.heading)
                lines.extend(f"{numeral}) {label}: {value}" for numeral, label, value in entry.rows)
    return "\n".join(lines)


def render_console(blocks: Sequence[Block], console: Optional[Console] = None) -> None:
    """
    Print preview blocks to a rich console.

    Deed tables and property documents are drawn as bordered tables;
    headings are bold and underlined.
    """
    console = console or Console()

    for block in blocks:
        if isinstance(block, Heading):
            console.print(block.text, style="bold underline")
        elif isinstance(block, Paragraph):
            console.print(block.text)
        elif isinstance(block, Blank):
            console.print()
        elif isinstance(block, DeedTable):
            table = Table(box=box.SQUARE, show_lines=True)
            for header in block.headers:
                table.add_column(header, overflow="fold")
            for row in block.rows:
                table.add_row(*row.cells())
            console.print(table)
        elif isinstance(block, PropertySection):
            console.print(block.title, style="bold underline", justify="center")
            if not block.entries:
                console.print(f"[dim]{EMPTY_DOCUMENTS_MESSAGE}[/dim]", justify="center")
            for entry in block.entries:
                table = Table(title=entry.heading, box=box.SQUARE, show_header=False, show_lines=True)
                table.add_column(style="cyan", no_wrap=True)
                table.add_column(style="bold")
                table.add_column()
                for numeral, label, value in entry.rows:
                    table.add_row(numeral, label, value)
                console.print(table)


__all__ = ["render_console", "render_text"]

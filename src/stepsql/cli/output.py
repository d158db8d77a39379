"""
This module provides methods for formatted output to stdout, including tables of
query results.
"""

from __future__ import annotations

import enum
from typing import Any, Iterable, Sequence

import click
from rich.console import Console
from rich.table import Table, Column
from rich.text import Text


# ==== printing structured data to console =============================================


def rich_table(*headers: Column | str) -> Table:
    return Table(*headers, padding=(0, 2, 0, 0), box=None, show_header=len(headers) > 0)


def format_value(value: Any) -> Text:
    """
    Formats a column value for display. NULL is shown dimmed, blobs by their size.

    :param value: Column value.
    :returns: Renderable text.
    """
    if value is None:
        return Text("NULL", style="bright_black")
    if isinstance(value, bytes):
        return Text(f"<{len(value)} bytes>", style="bright_black")
    return Text(str(value), no_wrap=True)


def print_rows(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> None:
    """
    Prints rows as a table.

    :param headers: Column names.
    :param rows: Rows of column values.
    """
    table = rich_table(*headers)

    for row in rows:
        table.add_row(*(format_value(value) for value in row))

    console = Console()
    console.print(table)


# ==== printing messages to console ====================================================


class Prefix(enum.Enum):
    """Prefix for command line output"""

    Ok = 0
    Warn = 1
    NONE = 2


def echo(message: str, nl: bool = True, prefix: Prefix = Prefix.NONE) -> None:
    """
    Print a message to stdout.

    :param message: The string to output.
    :param nl: Whether to end with a new line.
    :param prefix: Any prefix to output before the message,
    """
    if prefix is Prefix.Ok:
        pre = click.style("✓", fg="green") + " "
    elif prefix is Prefix.Warn:
        pre = click.style("!", fg="red") + " "
    else:
        pre = ""

    click.echo(f"{pre}{message}", nl=nl)


def warn(message: str, nl: bool = True) -> None:
    """
    Print a warning to stdout. Will be prefixed with an exclamation mark.

    :param message: The string to output.
    :param nl: Whether to end with a new line.
    """
    echo(message, nl=nl, prefix=Prefix.Warn)


def ok(message: str, nl: bool = True) -> None:
    """
    Print a confirmation to stdout. Will be prefixed with a checkmark.

    :param message: The string to output.
    :param nl: Whether to end with a new line.
    """
    echo(message, nl=nl, prefix=Prefix.Ok)

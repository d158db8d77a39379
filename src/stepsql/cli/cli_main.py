from __future__ import annotations

import logging
from typing import IO

import click

from .. import __version__
from .common import convert_db_errors, database_argument, parameters_argument
from .output import echo, ok


@click.group(help="Run SQL against SQLite databases.")
@click.version_option(version=__version__, message="%(version)s")
@click.option(
    "-v", "--verbose", is_flag=True, default=False, help="Print debug logs to stderr."
)
def main(verbose: bool) -> None:
    if verbose:
        from ..logging import setup_logging

        setup_logging(logging.DEBUG)


@main.command(name="exec", help="Execute a single statement.")
@database_argument
@click.argument("sql")
@parameters_argument
@convert_db_errors
def exec_(database: str, sql: str, parameters: tuple[str, ...]) -> None:
    from .common import parse_parameter
    from ..connection import Connection

    with Connection(database) as db:
        changes = db.execute(sql, *(parse_parameter(p) for p in parameters))

    ok(f"Changed {changes} row{'' if changes == 1 else 's'}")


@main.command(help="Run a query and print the result rows.")
@database_argument
@click.argument("sql")
@parameters_argument
@convert_db_errors
def query(database: str, sql: str, parameters: tuple[str, ...]) -> None:
    from .common import parse_parameter
    from .output import print_rows
    from ..connection import Connection

    with Connection(database) as db:
        with db.prepare(sql) as statement:
            statement.bind_all(*(parse_parameter(p) for p in parameters))
            headers = statement.column_names()
            rows = [row.values() for row in statement]

    print_rows(headers, rows)


@main.command(help="Execute all statements of an SQL script file.")
@database_argument
@click.argument("script", type=click.File("r"))
@convert_db_errors
def script(database: str, script: IO[str]) -> None:
    from ..connection import Connection

    with Connection(database) as db:
        db.executescript(script.read())
        changes = db.total_changes()

    ok(f"Script executed, {changes} row{'' if changes == 1 else 's'} changed")


@main.command(help="Fill an in-memory table and print its content.")
@convert_db_errors
def demo() -> None:
    from ..connection import Connection

    with Connection(":memory:") as db:
        db.prepare(
            "CREATE TABLE store ("
            "article  TEXT,"
            "category TEXT,"
            "amount   INT"
            ")"
        ).exec()

        with db.prepare(
            "INSERT INTO store (article, category, amount) VALUES (?, ?, ?)"
        ) as insert:
            insert.bind(1, "apple")
            insert.bind(2, "fruit")
            insert.bind(3, 125)
            insert.exec()

            insert.bind_all("banana", "fruit", 70)
            insert.exec()

        for row in db.prepare("SELECT article, amount FROM store"):
            echo(f"{row[0]}: {row[1]}")

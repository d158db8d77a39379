from __future__ import annotations

import ast
import sys
import functools
from typing import Any, Callable, TypeVar

import click

from .output import warn


F = TypeVar("F", bound=Callable[..., Any])


def convert_db_errors(func: F) -> F:
    """
    Decorator that catches a StepsqlError and prints a formatted error message to
    stdout before exiting. Calls ``sys.exit(1)`` after printing the error to stdout.
    """

    from ..errors import StepsqlError

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except StepsqlError as exc:
            warn(f"{exc.title}. {exc.message}")
            sys.exit(1)

    return wrapper  # type: ignore[return-value]


def parse_parameter(value: str) -> int | float | str | None:
    """
    Converts a command line argument to a value to bind. Python literals for
    integers, floats, strings and None are evaluated, anything else is kept as text.

    :param value: Command line argument.
    :returns: Value to bind.
    """
    try:
        parsed = ast.literal_eval(value)
    except (SyntaxError, ValueError):
        return value

    if parsed is None or isinstance(parsed, (int, float, str)):
        return parsed

    return value


database_argument = click.argument(
    "database", type=click.Path(dir_okay=False, allow_dash=False)
)

parameters_argument = click.argument("parameters", nargs=-1)

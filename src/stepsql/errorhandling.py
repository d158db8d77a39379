"""
This module contains functions to translate native SQLite result codes and the error
state of a database handle to instances of :exc:`stepsql.errors.DatabaseError`.
"""

from __future__ import annotations

import ctypes
import logging
import contextlib
from typing import Iterator, Type, TypeVar

from .errors import Diagnostic, DatabaseError, MisuseError
from .native import SQLITE_OK, SQLITE_ROW, SQLITE_DONE, SQLITE_MISUSE


__all__ = [
    "BENIGN_CODES",
    "diagnostic_from_handle",
    "diagnostic_from_code",
    "check_result",
    "misuse",
    "suppress_cleanup_errors",
]

logger = logging.getLogger(__name__)

BENIGN_CODES = frozenset({SQLITE_OK, SQLITE_ROW, SQLITE_DONE})

E = TypeVar("E", bound=DatabaseError)


def _decode(raw: bytes | None) -> str:
    if raw is None:
        return ""
    return raw.decode("utf-8", errors="replace")


def diagnostic_from_code(lib: ctypes.CDLL, code: int, message: str = "") -> Diagnostic:
    """
    Creates a diagnostic for a result code which was not reported through a database
    handle.

    :param lib: Loaded SQLite library.
    :param code: SQLite result code.
    :param message: Context message. Defaults to the generic description of the code.
    :returns: Diagnostic.
    """
    description = _decode(lib.sqlite3_errstr(code & 0xFF))
    return Diagnostic(
        code=code & 0xFF,
        message=message or description,
        description=description,
        extended_code=code,
    )


def diagnostic_from_handle(lib: ctypes.CDLL, db: int | None) -> Diagnostic:
    """
    Reads the last error of a database handle. All values are copied immediately,
    the handle may be closed afterwards.

    :param lib: Loaded SQLite library.
    :param db: Native database handle.
    :returns: Diagnostic.
    """
    if not db:
        return diagnostic_from_code(lib, SQLITE_MISUSE, "no database handle")

    code = lib.sqlite3_errcode(db)
    return Diagnostic(
        code=code,
        message=_decode(lib.sqlite3_errmsg(db)),
        description=_decode(lib.sqlite3_errstr(code)),
        extended_code=lib.sqlite3_extended_errcode(db),
    )


def check_result(
    lib: ctypes.CDLL, rc: int, db: int | None, exc_type: Type[E], title: str
) -> int:
    """
    Raises an exception for a non-benign result code.

    :param lib: Loaded SQLite library.
    :param rc: Result code returned by a native call.
    :param db: Database handle which holds the error state for ``rc``.
    :param exc_type: Exception type to raise.
    :param title: Title of the raised exception.
    :returns: The result code if it is one of SQLITE_OK, SQLITE_ROW or SQLITE_DONE.
    :raises DatabaseError: of type ``exc_type`` for any other result code.
    """
    if rc in BENIGN_CODES:
        return rc

    diagnostic = diagnostic_from_handle(lib, db)

    if diagnostic.code != rc & 0xFF:
        # The handle's error state was overwritten or never set, report rc itself.
        diagnostic = diagnostic_from_code(lib, rc, diagnostic.message)

    raise exc_type(title, diagnostic)


def misuse(
    lib: ctypes.CDLL, message: str, exc_type: Type[DatabaseError] = MisuseError
) -> DatabaseError:
    """
    Creates an error for an API misuse which is detected before reaching SQLite.

    :param lib: Loaded SQLite library.
    :param message: Explanation of the misuse.
    :param exc_type: Exception type to create.
    :returns: Exception instance, to be raised by the caller.
    """
    diagnostic = diagnostic_from_code(lib, SQLITE_MISUSE, message)
    return exc_type("Invalid use of the database API", diagnostic)


@contextlib.contextmanager
def suppress_cleanup_errors(action: str) -> Iterator[None]:
    """
    A context manager that logs and discards database errors. Used for releasing
    resources and for the automatic rollback, which may run while another exception
    propagates.

    :param action: Description of the cleanup action for the log message.
    """
    try:
        yield
    except DatabaseError as exc:
        logger.debug("Ignoring error during %s: %s", action, exc)

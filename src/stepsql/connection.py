"""
This module defines :class:`Connection`, the owner of a native SQLite database handle
and the factory for prepared statements.
"""

from __future__ import annotations

import os
import ctypes
import logging
from weakref import WeakSet
from types import TracebackType
from typing import Any, Union

from .config import get_config
from .errors import OpenError, PrepareError
from .errorhandling import (
    check_result,
    diagnostic_from_code,
    diagnostic_from_handle,
    misuse,
)
from .native import (
    SQLITE_OK,
    SQLITE_MISUSE,
    SQLITE_OPEN_READONLY,
    SQLITE_OPEN_READWRITE,
    SQLITE_OPEN_CREATE,
    SQLITE_OPEN_URI,
    load_library,
)
from .statement import Statement
from .transaction import Transaction, TransactionMode
from .types import BindValue


__all__ = ["Connection", "open"]

logger = logging.getLogger(__name__)

PathType = Union[str, "os.PathLike[str]"]


class Connection:
    """
    A connection to an SQLite database

    The connection owns its native handle. The handle is released by :meth:`close`,
    when leaving a ``with`` block or when the connection is garbage collected. Closing
    also finalizes all statements prepared on the connection which are still alive.

    Connections cannot be copied. Pass the object itself to transfer ownership or use
    :meth:`swap` to exchange the handles of two connections.

    :param path: Database path, ``":memory:"`` for an in-memory database. If not
        given, the connection is created closed and must be opened with :meth:`open`.
    :param create: Create the database file if it does not exist.
    :param readonly: Open the database read-only.
    :param uri: Interpret ``path`` as a URI filename.
    :param busy_timeout: Milliseconds to retry when the database is locked.
    :raises OpenError: if the database cannot be opened.
    """

    def __init__(
        self,
        path: PathType | None = None,
        *,
        create: bool | None = None,
        readonly: bool | None = None,
        uri: bool | None = None,
        busy_timeout: int | None = None,
    ) -> None:
        self._lib = load_library()
        self._handle: int | None = None
        self._path: str | None = None
        self._statements: WeakSet[Statement] = WeakSet()

        if path is not None:
            self.open(
                path,
                create=create,
                readonly=readonly,
                uri=uri,
                busy_timeout=busy_timeout,
            )

    # ==== ownership ===================================================================

    @property
    def lib(self) -> ctypes.CDLL:
        """The loaded SQLite library."""
        return self._lib

    @property
    def handle(self) -> int | None:
        """The native database handle or None if closed."""
        return self._handle

    @property
    def path(self) -> str | None:
        """The path of the open database or None if closed."""
        return self._path

    @property
    def is_open(self) -> bool:
        """Whether the connection holds an open database handle."""
        return self._handle is not None

    def open(
        self,
        path: PathType,
        *,
        create: bool | None = None,
        readonly: bool | None = None,
        uri: bool | None = None,
        busy_timeout: int | None = None,
    ) -> None:
        """
        Opens a database. A database which is already open on this connection is
        closed first. Options which are not given are taken from the ``[connection]``
        section of the config.

        :param path: Database path, ``":memory:"`` for an in-memory database.
        :param create: Create the database file if it does not exist.
        :param readonly: Open the database read-only.
        :param uri: Interpret ``path`` as a URI filename.
        :param busy_timeout: Milliseconds to retry when the database is locked.
        :raises OpenError: if the database cannot be opened. The connection is closed
            in this case.
        """
        if self._handle is not None:
            self.close()

        conf = get_config()

        if create is None:
            create = conf.get("connection", "create")
        if readonly is None:
            readonly = conf.get("connection", "readonly")
        if uri is None:
            uri = conf.get("connection", "uri")
        if busy_timeout is None:
            busy_timeout = conf.get("connection", "busy_timeout")

        if readonly:
            flags = SQLITE_OPEN_READONLY
        else:
            flags = SQLITE_OPEN_READWRITE
            if create:
                flags |= SQLITE_OPEN_CREATE

        if uri:
            flags |= SQLITE_OPEN_URI

        path_str = os.fspath(path)
        handle = ctypes.c_void_p()
        rc = self._lib.sqlite3_open_v2(
            path_str.encode("utf-8"), ctypes.byref(handle), flags, None
        )

        if rc != SQLITE_OK:
            if handle.value:
                diagnostic = diagnostic_from_handle(self._lib, handle.value)
                # SQLite allocates a handle even on most failures, it must be released.
                self._lib.sqlite3_close_v2(handle.value)
            else:
                diagnostic = diagnostic_from_code(self._lib, rc)
            raise OpenError(f"Could not open database {path_str!r}", diagnostic)

        self._handle = handle.value
        self._path = path_str
        logger.debug("Opened %s with handle %#x", path_str, self._handle)

        if busy_timeout:
            self.set_busy_timeout(busy_timeout)

    def close(self) -> None:
        """
        Closes the database. Statements prepared on this connection are finalized.
        Safe to call multiple times, never raises.
        """
        if self._handle is None:
            return

        for statement in list(self._statements):
            statement.finalize()

        handle = self._handle
        self._handle = None
        self._path = None
        self._statements = WeakSet()

        rc = self._lib.sqlite3_close_v2(handle)

        if rc != SQLITE_OK:
            logger.debug("Ignoring result code %s when closing %#x", rc, handle)
        else:
            logger.debug("Closed database handle %#x", handle)

    def swap(self, other: Connection) -> None:
        """
        Exchanges the database handles of two connections, including the ownership of
        their prepared statements.

        :param other: Connection to swap with.
        """
        self._handle, other._handle = other._handle, self._handle
        self._path, other._path = other._path, self._path
        self._statements, other._statements = other._statements, self._statements

        for statement in self._statements:
            statement._connection = self
        for statement in other._statements:
            statement._connection = other

    def _register(self, statement: Statement) -> None:
        self._statements.add(statement)

    def _unregister(self, statement: Statement) -> None:
        self._statements.discard(statement)

    def _require_handle(self) -> int:
        if self._handle is None:
            raise misuse(self._lib, "connection is not open")
        return self._handle

    def __copy__(self) -> Connection:
        raise TypeError("Connections cannot be copied")

    def __deepcopy__(self, memo: Any) -> Connection:
        raise TypeError("Connections cannot be copied")

    def __reduce__(self) -> Any:
        raise TypeError("Connections cannot be pickled")

    def __enter__(self) -> Connection:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __del__(self) -> None:
        if getattr(self, "_handle", None) is not None:
            self.close()

    # ==== statements ==================================================================

    def _prepare(self, sql: str) -> tuple[Statement | None, str]:
        """
        Compiles the first statement of ``sql``.

        :returns: The statement, or None if ``sql`` holds no statement, and the
            remaining SQL text.
        """
        db = self._require_handle()
        encoded = sql.encode("utf-8")
        buffer = ctypes.create_string_buffer(encoded)
        start = ctypes.addressof(buffer)
        stmt = ctypes.c_void_p()
        tail = ctypes.c_void_p()

        rc = self._lib.sqlite3_prepare_v2(
            db, start, len(encoded) + 1, ctypes.byref(stmt), ctypes.byref(tail)
        )

        check_result(self._lib, rc, db, PrepareError, "Could not prepare statement")

        remaining = encoded[tail.value - start :] if tail.value else b""

        if not stmt.value:
            return None, remaining.decode("utf-8")

        statement = Statement(self, stmt.value)
        self._register(statement)
        logger.debug("Prepared statement %#x: %s", stmt.value, sql)

        return statement, remaining.decode("utf-8")

    def prepare(self, sql: str) -> Statement:
        """
        Compiles SQL text into a statement. Only the first statement in ``sql`` is
        compiled, use :meth:`executescript` to run multiple statements.

        :param sql: SQL text.
        :returns: Prepared statement.
        :raises PrepareError: if the SQL text cannot be compiled or holds no
            statement.
        :raises MisuseError: if the connection is closed.
        """
        statement, _ = self._prepare(sql)

        if statement is None:
            diagnostic = diagnostic_from_code(
                self._lib, SQLITE_MISUSE, "SQL text holds no statement"
            )
            raise PrepareError("Could not prepare statement", diagnostic)

        return statement

    def execute(self, sql: str, *args: BindValue) -> int:
        """
        Prepares and executes a single statement.

        :param sql: SQL statement to execute.
        :param args: Parameters to substitute for placeholders in the statement.
        :returns: Number of rows changed by the statement.
        """
        with self.prepare(sql) as statement:
            statement.bind_all(*args)
            statement.exec()
        return self.changes()

    def executescript(self, script: str) -> None:
        """
        Executes all statements in an SQL script, one after another.

        :param script: SQL script to execute.
        :raises PrepareError: if a statement cannot be compiled, also when text after
            a NUL character would be skipped. Statements before it have been executed.
        """
        remaining = script

        while remaining.strip():
            statement, tail = self._prepare(remaining)

            if statement is None:
                if tail.strip():
                    # SQLite stops compiling at a NUL character.
                    raise PrepareError(
                        "Could not prepare statement",
                        diagnostic_from_code(
                            self._lib,
                            SQLITE_MISUSE,
                            f"SQL text cannot be compiled: {tail[:40]!r}",
                        ),
                    )
                break

            remaining = tail

            with statement:
                statement.exec()

    def query(self, sql: str, *args: BindValue) -> list[tuple[Any, ...]]:
        """
        Prepares and runs a query and returns all result rows.

        :param sql: SQL query.
        :param args: Parameters to substitute for placeholders in the query.
        :returns: List of rows with values typed by their SQLite datatype.
        """
        with self.prepare(sql) as statement:
            statement.bind_all(*args)
            return [row.values() for row in statement]

    # ==== transactions ================================================================

    def begin_transaction(
        self, mode: TransactionMode | str = TransactionMode.Deferred
    ) -> Transaction:
        """
        Begins a transaction. The transaction is rolled back when the returned scope
        ends, unless it is committed.

        :param mode: Transaction mode, see :class:`TransactionMode`.
        :returns: Transaction scope.
        :raises StepError: if the transaction cannot be started.
        """
        mode = TransactionMode.from_value(mode)
        self.execute(f"BEGIN {mode.value}")
        logger.debug("Began %s transaction", mode.value.lower())
        return Transaction(self, mode)

    # ==== database state ==============================================================

    def changes(self) -> int:
        """Returns the number of rows changed by the most recent statement."""
        return int(self._lib.sqlite3_changes(self._require_handle()))

    def total_changes(self) -> int:
        """Returns the number of rows changed since the database was opened."""
        return int(self._lib.sqlite3_total_changes(self._require_handle()))

    def last_insert_rowid(self) -> int:
        """Returns the rowid of the most recent successful INSERT."""
        return int(self._lib.sqlite3_last_insert_rowid(self._require_handle()))

    def set_busy_timeout(self, ms: int) -> None:
        """
        Sets for how long to retry when a table is locked.

        :param ms: Timeout in milliseconds, zero or negative to disable.
        """
        self._lib.sqlite3_busy_timeout(self._require_handle(), ms)

    def __repr__(self) -> str:
        state = repr(self._path) if self.is_open else "closed"
        return f"<{self.__class__.__name__}({state})>"


def open(path: PathType, **kwargs: Any) -> Connection:
    """
    Opens a database connection.

    :param path: Database path, ``":memory:"`` for an in-memory database.
    :param kwargs: Options passed to :class:`Connection`.
    :returns: Open connection.
    :raises OpenError: if the database cannot be opened.
    """
    return Connection(path, **kwargs)

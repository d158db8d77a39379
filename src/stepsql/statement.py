"""
This module defines :class:`Statement`, the owner of one compiled SQLite statement.
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import TYPE_CHECKING, Any, Iterator

from .cursor import Cursor, Row
from .errors import BindError, StepError
from .errorhandling import check_result, misuse
from .native import SQLITE_OK
from .types import SqlType, BindValue, TypedValue, typed

if TYPE_CHECKING:
    from .connection import Connection


__all__ = ["Statement"]

logger = logging.getLogger(__name__)

PARAMETER_PREFIXES = (":", "@", "$", "?")


class Statement:
    """
    A prepared statement. Instances are created by :meth:`Connection.prepare` and
    release the native statement exactly once, on :meth:`finalize`, when leaving a
    ``with`` block, when garbage collected or when the connection is closed.

    A statement can be executed directly with :meth:`exec` or iterated over. Iteration
    resets the statement and yields :class:`stepsql.cursor.Row` instances until all
    rows have been consumed.

    Statements cannot be copied. Use :meth:`swap` to exchange the native handles of
    two instances.

    :param connection: Connection which compiled the statement.
    :param handle: Native statement handle.
    """

    def __init__(self, connection: Connection, handle: int) -> None:
        self._connection = connection
        self._lib = connection.lib
        self._handle: int | None = handle
        # Incremented whenever the result stream is restarted or discarded. Cursors
        # record the value they were created with.
        self._generation = 0

    # ==== ownership ===================================================================

    @property
    def handle(self) -> int | None:
        """The native statement handle or None if finalized."""
        return self._handle

    @property
    def connection(self) -> Connection:
        """The connection which compiled this statement."""
        return self._connection

    @property
    def is_finalized(self) -> bool:
        """Whether the native statement has been released."""
        return self._handle is None

    def finalize(self) -> None:
        """
        Releases the native statement. Safe to call multiple times, never raises.
        """
        if self._handle is None:
            return

        handle = self._handle
        self._handle = None
        self._generation += 1

        # The return value repeats the last step error, if any. It is not relevant
        # for releasing the statement.
        self._lib.sqlite3_finalize(handle)
        logger.debug("Finalized statement %#x", handle)

    def swap(self, other: Statement) -> None:
        """
        Exchanges native handles and connections with another statement. Cursors of
        either statement are invalidated.

        :param other: Statement to swap with.
        """
        self._connection._unregister(self)
        other._connection._unregister(other)
        self._connection, other._connection = other._connection, self._connection
        self._lib, other._lib = other._lib, self._lib
        self._handle, other._handle = other._handle, self._handle
        self._generation += 1
        other._generation += 1
        self._connection._register(self)
        other._connection._register(other)

    def __copy__(self) -> Statement:
        raise TypeError("Statements cannot be copied")

    def __deepcopy__(self, memo: Any) -> Statement:
        raise TypeError("Statements cannot be copied")

    def __reduce__(self) -> Any:
        raise TypeError("Statements cannot be pickled")

    def __enter__(self) -> Statement:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.finalize()

    def __del__(self) -> None:
        if getattr(self, "_handle", None) is not None:
            self.finalize()

    def _require_handle(self) -> int:
        if self._handle is None:
            raise misuse(self._lib, "statement has been finalized")
        if not self._connection.is_open:
            raise misuse(self._lib, "connection has been closed")
        return self._handle

    def _db(self) -> int | None:
        return self._connection.handle

    # ==== execution ===================================================================

    def reset(self) -> None:
        """
        Returns the statement to its initial state so that it can be executed again.
        Parameter bindings are retained. Any cursor over this statement is
        invalidated.
        """
        handle = self._require_handle()
        self._generation += 1
        # sqlite3_reset repeats the error of the last failed step, which has already
        # been reported by that step.
        self._lib.sqlite3_reset(handle)

    def exec(self) -> None:
        """
        Performs a single execution step and resets the statement. A produced row is
        discarded. Use this for statements without results, such as INSERT, UPDATE or
        CREATE TABLE.

        :raises StepError: if the step fails.
        """
        handle = self._require_handle()
        rc = self._lib.sqlite3_step(handle)

        try:
            check_result(
                self._lib, rc, self._db(), StepError, "Could not execute statement"
            )
        finally:
            self.reset()

    def begin(self) -> Cursor:
        """
        Resets the statement and returns a cursor positioned on the first result row.
        Any previous cursor over this statement is invalidated.

        :returns: Active cursor or an exhausted cursor if there are no rows.
        :raises StepError: if the first step fails.
        """
        self.reset()
        return Cursor(self)

    def end(self) -> Cursor:
        """
        :returns: An exhausted cursor which compares equal to any other exhausted
            cursor.
        """
        return Cursor()

    def __iter__(self) -> Iterator[Row]:
        return self.begin()

    def _step(self) -> int:
        """Performs one step and returns SQLITE_ROW or SQLITE_DONE."""
        handle = self._require_handle()
        rc = self._lib.sqlite3_step(handle)
        return check_result(
            self._lib, rc, self._db(), StepError, "Could not fetch the next row"
        )

    # ==== parameter binding ===========================================================

    def bind(
        self, parameter: int | str, value: BindValue, sql_type: SqlType[Any] | None = None
    ) -> None:
        """
        Binds a value to a statement parameter. Bound values are retained until they
        are replaced or cleared, also across :meth:`reset`.

        :param parameter: 1-based parameter position or parameter name. Names may be
            given with or without their prefix character, e.g. ``":id"`` or ``"id"``.
        :param value: Value to bind. Integers, floats, strings, bytes, None
            and :class:`stepsql.types.TypedValue` are accepted.
        :param sql_type: SQL type to bind the value as. Inferred from the value if not
            given.
        :raises BindError: if SQLite rejects the binding, for instance because the
            position is out of range, or if the parameter name is unknown.
        """
        if isinstance(parameter, str):
            position = self.parameter_index(parameter)
            if position == 0:
                raise misuse(
                    self._lib, f"no parameter named {parameter!r}", exc_type=BindError
                )
        else:
            position = parameter

        tagged = typed(value) if sql_type is None else TypedValue(sql_type, value)
        handle = self._require_handle()
        rc = tagged.type.bind(self._lib, handle, position, tagged.value)

        if rc != SQLITE_OK:
            check_result(
                self._lib,
                rc,
                self._db(),
                BindError,
                f"Could not bind parameter {parameter!r}",
            )

    def bind_all(self, *values: BindValue) -> None:
        """
        Binds values to consecutive parameters, starting at position 1. The number of
        values does not need to match :meth:`parameter_count`.

        :param values: Values to bind, in parameter order.
        """
        for position, value in enumerate(values, start=1):
            self.bind(position, value)

    def clear_bindings(self) -> None:
        """Resets all parameters to NULL."""
        self._lib.sqlite3_clear_bindings(self._require_handle())

    def parameter_count(self) -> int:
        """Returns the largest parameter index used by the statement."""
        return int(self._lib.sqlite3_bind_parameter_count(self._require_handle()))

    def parameter_index(self, name: str) -> int:
        """
        Returns the position of a named parameter.

        :param name: Parameter name. If given without a prefix character, the prefixes
            ``:``, ``@``, ``$`` and ``?`` are tried in this order.
        :returns: 1-based position or 0 if there is no such parameter.
        """
        handle = self._require_handle()

        if name.startswith(PARAMETER_PREFIXES):
            candidates = [name]
        else:
            candidates = [name] + [prefix + name for prefix in PARAMETER_PREFIXES]

        for candidate in candidates:
            index = self._lib.sqlite3_bind_parameter_index(handle, candidate.encode())
            if index:
                return int(index)

        return 0

    def parameter_name(self, index: int) -> str | None:
        """
        Returns the name of a parameter, including its prefix.

        :param index: 1-based parameter position.
        :returns: Parameter name or None for nameless or out of range parameters.
        """
        name = self._lib.sqlite3_bind_parameter_name(self._require_handle(), index)
        return name.decode() if name is not None else None

    # ==== result metadata =============================================================

    @property
    def sql(self) -> str:
        """The SQL text of the statement."""
        return self._lib.sqlite3_sql(self._require_handle()).decode()

    def column_count(self) -> int:
        """Returns the number of result columns, zero for statements without results."""
        return int(self._lib.sqlite3_column_count(self._require_handle()))

    def column_name(self, index: int) -> str | None:
        """
        :param index: 0-based column index.
        :returns: Result column name or None if the index is out of range.
        """
        name = self._lib.sqlite3_column_name(self._require_handle(), index)
        return name.decode() if name is not None else None

    def column_names(self) -> list[str]:
        """Returns the names of all result columns."""
        return [self.column_name(i) or "" for i in range(self.column_count())]

    def __repr__(self) -> str:
        if self._handle is None:
            return f"<{self.__class__.__name__}(finalized)>"
        sql = (self._lib.sqlite3_sql(self._handle) or b"").decode()
        return f"<{self.__class__.__name__}({sql!r})>"

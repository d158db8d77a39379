"""
This module defines the step-driven :class:`Cursor` over the result rows of a
statement and the :class:`Row` view on a single result row.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterator

from .errors import StepError, CursorInvalidatedError
from .errorhandling import misuse
from .native import SQLITE_ROW, load_library
from .types import SqlType, SqlInt, SqlInt64, SqlFloat, SqlString, read_column

if TYPE_CHECKING:
    from .statement import Statement


__all__ = ["Cursor", "Row"]

_STRING = SqlString()
_INT = SqlInt()
_INT64 = SqlInt64()
_FLOAT = SqlFloat()


class Cursor:
    """
    A single-pass iterator over the result rows of a statement

    A cursor borrows the native handle of its statement. It is either *active*, i.e.
    positioned on a row, or *exhausted*. Creating a cursor for a statement performs the
    first step. Advancing performs another step until SQLite reports that there are no
    more rows. An exhausted cursor cannot be restarted, call
    :meth:`Statement.begin` instead.

    Only one cursor may consume a statement at a time. Resetting the statement or
    starting a new iteration invalidates the cursor and any further use raises
    :exc:`stepsql.errors.CursorInvalidatedError`.

    Two cursors compare equal if both are exhausted or if both wrap the same native
    statement. ``Cursor()`` creates an exhausted sentinel.

    :param statement: Statement to iterate over. If None, the cursor is exhausted.
    """

    def __init__(self, statement: Statement | None = None) -> None:
        self._statement = statement
        self._handle = statement.handle if statement is not None else None
        self._generation = statement._generation if statement is not None else 0
        self._row_number = -1
        self._row_consumed = False

        if statement is not None:
            self._step()

    # ==== state =======================================================================

    @property
    def is_active(self) -> bool:
        """Whether the cursor is positioned on a row."""
        return self._handle is not None

    @property
    def is_exhausted(self) -> bool:
        """Whether all rows have been consumed."""
        return self._handle is None

    @property
    def row_number(self) -> int:
        """0-based number of the current row, -1 before the first row."""
        return self._row_number

    def _release(self) -> None:
        self._statement = None
        self._handle = None

    def _check_valid(self) -> Statement:
        statement = self._statement

        if statement is None:
            raise misuse(load_library(), "cursor is not positioned on a row")

        if statement.handle != self._handle or statement._generation != self._generation:
            self._release()
            raise misuse(
                load_library(),
                "statement was reset or iterated again",
                exc_type=CursorInvalidatedError,
            )

        return statement

    def _step(self) -> None:
        statement = self._check_valid()

        try:
            rc = statement._step()
        except StepError:
            self._release()
            raise

        if rc == SQLITE_ROW:
            self._row_number += 1
            self._row_consumed = False
        else:
            self._release()

    def advance(self) -> Cursor:
        """
        Steps to the next row. The cursor becomes exhausted after the last row.

        :returns: The cursor itself.
        :raises StepError: if stepping fails. The cursor is exhausted afterwards.
        :raises MisuseError: if the cursor is already exhausted.
        """
        self._step()
        return self

    # ==== iteration ===================================================================

    def __iter__(self) -> Cursor:
        return self

    def __next__(self) -> Row:
        if self._row_consumed and self.is_active:
            self._step()

        if self.is_exhausted:
            raise StopIteration

        self._row_consumed = True
        return Row(self, self._row_number)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Cursor):
            return NotImplemented
        return self._handle == other._handle

    __hash__ = None  # type: ignore[assignment]

    # ==== column access ===============================================================

    def column_count(self) -> int:
        """Returns the number of columns in the current row."""
        statement = self._check_valid()
        return int(statement._lib.sqlite3_column_count(self._handle))

    def _column_index(self, statement: Statement, index: int) -> int:
        count = statement._lib.sqlite3_column_count(self._handle)

        if index < 0:
            index += count

        if not 0 <= index < count:
            raise IndexError("column index out of range")

        return index

    def read(self, index: int, sql_type: SqlType[Any]) -> Any:
        """
        Reads a column of the current row.

        :param index: 0-based column index. Negative indices count from the end.
        :param sql_type: Type to read the column as.
        :returns: Column value.
        :raises IndexError: if the column index is out of range.
        :raises MisuseError: if the cursor is exhausted or invalidated.
        """
        statement = self._check_valid()
        index = self._column_index(statement, index)
        return sql_type.read(statement._lib, self._handle, index)  # type: ignore[arg-type]

    def column(self, index: int) -> Any:
        """
        Reads a column with the Python type matching its SQLite datatype.

        :param index: 0-based column index.
        :returns: int, float, str, bytes or None.
        """
        statement = self._check_valid()
        index = self._column_index(statement, index)
        return read_column(statement._lib, self._handle, index)  # type: ignore[arg-type]

    def as_str(self, index: int) -> str | None:
        """Reads a column as text. NULL is returned as None."""
        return self.read(index, _STRING)

    def as_int(self, index: int) -> int:
        """Reads a column as a 32-bit integer."""
        return self.read(index, _INT)

    def as_int64(self, index: int) -> int:
        """Reads a column as a 64-bit integer."""
        return self.read(index, _INT64)

    def as_float(self, index: int) -> float:
        """Reads a column as a double."""
        return self.read(index, _FLOAT)

    def __getitem__(self, index: int) -> str | None:
        return self.as_str(index)

    def __repr__(self) -> str:
        state = f"row={self._row_number}" if self.is_active else "exhausted"
        return f"<{self.__class__.__name__}({state})>"


class Row:
    """
    A view on the current row of a cursor

    A row reads its values from the cursor on access and becomes invalid once the
    cursor advances. Use :meth:`values` to keep a snapshot. Indexing returns column
    values as text, :meth:`value` and :meth:`values` return them typed.

    :param cursor: Cursor positioned on the row.
    :param row_number: Row number of the cursor when the row was produced.
    """

    __slots__ = ("_cursor", "_row_number")

    def __init__(self, cursor: Cursor, row_number: int) -> None:
        self._cursor = cursor
        self._row_number = row_number

    @property
    def row_number(self) -> int:
        """0-based number of the row in the result."""
        return self._row_number

    def _current(self) -> Cursor:
        cursor = self._cursor
        if not cursor.is_active or cursor.row_number != self._row_number:
            raise misuse(
                load_library(),
                "row is no longer the current row of its cursor",
                exc_type=CursorInvalidatedError,
            )
        return cursor

    def __len__(self) -> int:
        return self._current().column_count()

    def __getitem__(self, index: int) -> str | None:
        return self._current().as_str(index)

    def __iter__(self) -> Iterator[str | None]:
        for index in range(len(self)):
            yield self[index]

    def as_str(self, index: int) -> str | None:
        return self._current().as_str(index)

    def as_int(self, index: int) -> int:
        return self._current().as_int(index)

    def as_int64(self, index: int) -> int:
        return self._current().as_int64(index)

    def as_float(self, index: int) -> float:
        return self._current().as_float(index)

    def value(self, index: int) -> Any:
        """Returns a column value typed by its SQLite datatype."""
        return self._current().column(index)

    def values(self) -> tuple[Any, ...]:
        """Returns a snapshot of all column values, typed by their SQLite datatype."""
        cursor = self._current()
        return tuple(cursor.column(i) for i in range(cursor.column_count()))

    def keys(self) -> list[str]:
        """Returns the column names."""
        cursor = self._current()
        statement = cursor._check_valid()
        return statement.column_names()

    def as_dict(self) -> dict[str, Any]:
        """Returns a snapshot of the row as a mapping from column name to value."""
        return dict(zip(self.keys(), self.values()))

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(row={self._row_number})>"

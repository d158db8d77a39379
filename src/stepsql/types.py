"""
SQL value type definitions, including conversion rules from / to Python types and the
native calls used to bind parameters and read result columns.
"""

from __future__ import annotations

import ctypes
from enum import Enum
from typing import Any, Generic, NamedTuple, TypeVar, Union, cast

from .native import (
    SQLITE_TRANSIENT,
    SQLITE_INTEGER,
    SQLITE_FLOAT,
    SQLITE_TEXT,
    SQLITE_BLOB,
    SQLITE_NULL,
)


__all__ = [
    "SqlType",
    "SqlInt",
    "SqlInt64",
    "SqlFloat",
    "SqlString",
    "SqlBlob",
    "SqlNull",
    "ColumnType",
    "TypedValue",
    "BindValue",
    "typed",
    "read_column",
]

T = TypeVar("T")

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class ColumnType(Enum):
    """Fundamental datatype of a result column value"""

    Integer = SQLITE_INTEGER
    Float = SQLITE_FLOAT
    Text = SQLITE_TEXT
    Blob = SQLITE_BLOB
    Null = SQLITE_NULL


class SqlType(Generic[T]):
    """Base class to represent Python types when talking to SQLite"""

    name = "TEXT"

    def bind(self, lib: ctypes.CDLL, stmt: int, position: int, value: T) -> int:
        """Binds a value to a statement parameter and returns the SQLite result code."""
        raise NotImplementedError()

    def read(self, lib: ctypes.CDLL, stmt: int, column: int) -> T | None:
        """Reads a result column of the current row."""
        raise NotImplementedError()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"


class SqlInt(SqlType[int]):
    """
    Class to represent 32-bit integers

    NULL columns are read as 0.
    """

    name = "INTEGER"

    def bind(self, lib: ctypes.CDLL, stmt: int, position: int, value: int) -> int:
        if not INT32_MIN <= value <= INT32_MAX:
            raise OverflowError(f"{value} does not fit into a 32-bit integer")
        return cast(int, lib.sqlite3_bind_int(stmt, position, value))

    def read(self, lib: ctypes.CDLL, stmt: int, column: int) -> int:
        return cast(int, lib.sqlite3_column_int(stmt, column))


class SqlInt64(SqlType[int]):
    """
    Class to represent 64-bit integers

    SQLite supports up to 64-bit signed integers (-2**63 <= int <= 2**63 - 1).
    """

    name = "INTEGER"

    def bind(self, lib: ctypes.CDLL, stmt: int, position: int, value: int) -> int:
        if not INT64_MIN <= value <= INT64_MAX:
            raise OverflowError(f"{value} does not fit into a 64-bit integer")
        return cast(int, lib.sqlite3_bind_int64(stmt, position, value))

    def read(self, lib: ctypes.CDLL, stmt: int, column: int) -> int:
        return cast(int, lib.sqlite3_column_int64(stmt, column))


class SqlFloat(SqlType[float]):
    """Class to represent Python floats as doubles"""

    name = "REAL"

    def bind(self, lib: ctypes.CDLL, stmt: int, position: int, value: float) -> int:
        return cast(int, lib.sqlite3_bind_double(stmt, position, float(value)))

    def read(self, lib: ctypes.CDLL, stmt: int, column: int) -> float:
        return cast(float, lib.sqlite3_column_double(stmt, column))


class SqlString(SqlType[str]):
    """
    Class to represent Python strings as UTF-8 text

    Bound text is copied by SQLite, the Python string does not need to outlive the
    statement. Any column can be read as text, NULL is read as None.
    """

    name = "TEXT"

    def bind(self, lib: ctypes.CDLL, stmt: int, position: int, value: str) -> int:
        encoded = value.encode("utf-8")
        return cast(
            int,
            lib.sqlite3_bind_text(
                stmt, position, encoded, len(encoded), SQLITE_TRANSIENT
            ),
        )

    def read(self, lib: ctypes.CDLL, stmt: int, column: int) -> str | None:
        # Call order matters: sqlite3_column_bytes must follow the conversion to text.
        ptr = lib.sqlite3_column_text(stmt, column)
        if ptr is None:
            return None
        size = lib.sqlite3_column_bytes(stmt, column)
        return ctypes.string_at(ptr, size).decode("utf-8", errors="replace")


class SqlBlob(SqlType[bytes]):
    """
    Class to represent Python bytes as BLOBs

    Bound data is copied by SQLite. Empty and NULL BLOBs are read as empty bytes.
    """

    name = "BLOB"

    def bind(self, lib: ctypes.CDLL, stmt: int, position: int, value: bytes) -> int:
        data = bytes(value)
        return cast(
            int,
            lib.sqlite3_bind_blob(stmt, position, data, len(data), SQLITE_TRANSIENT),
        )

    def read(self, lib: ctypes.CDLL, stmt: int, column: int) -> bytes:
        ptr = lib.sqlite3_column_blob(stmt, column)
        size = lib.sqlite3_column_bytes(stmt, column)
        if ptr is None or size == 0:
            return b""
        return ctypes.string_at(ptr, size)


class SqlNull(SqlType[None]):
    """Class to represent None as NULL"""

    name = "NULL"

    def bind(self, lib: ctypes.CDLL, stmt: int, position: int, value: None) -> int:
        return cast(int, lib.sqlite3_bind_null(stmt, position))

    def read(self, lib: ctypes.CDLL, stmt: int, column: int) -> None:
        return None


BindValue = Union[int, float, str, bytes, None, "TypedValue"]


class TypedValue(NamedTuple):
    """A value tagged with the SQL type used to bind it"""

    type: SqlType[Any]
    value: Any


def typed(value: BindValue) -> TypedValue:
    """
    Tags a plain Python value with the SQL type to bind it as. Integers are bound as
    32-bit integers when they fit and as 64-bit integers otherwise.

    :param value: Value to bind.
    :returns: Tagged value.
    :raises TypeError: for unsupported value types.
    """
    if isinstance(value, TypedValue):
        return value
    if value is None:
        return TypedValue(SqlNull(), None)
    if isinstance(value, bool):
        return TypedValue(SqlInt(), int(value))
    if isinstance(value, int):
        if INT32_MIN <= value <= INT32_MAX:
            return TypedValue(SqlInt(), value)
        return TypedValue(SqlInt64(), value)
    if isinstance(value, float):
        return TypedValue(SqlFloat(), value)
    if isinstance(value, str):
        return TypedValue(SqlString(), value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return TypedValue(SqlBlob(), bytes(value))

    raise TypeError(f"Cannot bind value of type {type(value).__name__}")


_READERS: dict[ColumnType, SqlType[Any]] = {
    ColumnType.Integer: SqlInt64(),
    ColumnType.Float: SqlFloat(),
    ColumnType.Text: SqlString(),
    ColumnType.Blob: SqlBlob(),
    ColumnType.Null: SqlNull(),
}


def read_column(lib: ctypes.CDLL, stmt: int, column: int) -> Any:
    """
    Reads a result column with the Python type matching its native datatype.

    :param lib: Loaded SQLite library.
    :param stmt: Native statement handle positioned on a row.
    :param column: 0-based column index.
    :returns: int, float, str, bytes or None.
    """
    column_type = ColumnType(lib.sqlite3_column_type(stmt, column))
    return _READERS[column_type].read(lib, stmt, column)

"""
stepsql: typed, resource-safe Python objects over the SQLite C library.

Open a :class:`Connection`, prepare a :class:`Statement`, execute it or iterate over
its result rows, and wrap work in a :class:`Transaction` which rolls back unless it is
committed.
"""

__version__ = "1.0.0"

from .errors import (
    Diagnostic,
    StepsqlError,
    LibraryError,
    DatabaseError,
    OpenError,
    PrepareError,
    BindError,
    StepError,
    MisuseError,
    CursorInvalidatedError,
)
from .native import libversion
from .types import (
    SqlInt,
    SqlInt64,
    SqlFloat,
    SqlString,
    SqlBlob,
    SqlNull,
    TypedValue,
)
from .cursor import Cursor, Row
from .statement import Statement
from .transaction import Transaction, TransactionMode
from .connection import Connection, open


__all__ = [
    "__version__",
    "Connection",
    "Statement",
    "Cursor",
    "Row",
    "Transaction",
    "TransactionMode",
    "Diagnostic",
    "StepsqlError",
    "LibraryError",
    "DatabaseError",
    "OpenError",
    "PrepareError",
    "BindError",
    "StepError",
    "MisuseError",
    "CursorInvalidatedError",
    "SqlInt",
    "SqlInt64",
    "SqlFloat",
    "SqlString",
    "SqlBlob",
    "SqlNull",
    "TypedValue",
    "libversion",
    "open",
]

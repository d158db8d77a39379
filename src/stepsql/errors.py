"""
This module defines stepsql's error classes. It should be kept free of heavy imports
and must not load the native library.

All errors inherit from :class:`StepsqlError` which has title and message attributes
to display the error to the user. Errors which originate from a native SQLite result
code inherit from :class:`DatabaseError` and carry a :class:`Diagnostic`.
"""

from __future__ import annotations

from dataclasses import dataclass, field


__all__ = [
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
]


@dataclass(frozen=True)
class Diagnostic:
    """Snapshot of the native error state of a database handle

    The human-readable :attr:`text` is rendered when the diagnostic is created and
    does not depend on the handle still being open.
    """

    code: int
    """Primary SQLite result code"""
    message: str
    """Contextual message from the engine, e.g., the cause of a syntax error"""
    description: str
    """Generic English description of :attr:`code`"""
    extended_code: int = 0
    """Extended SQLite result code, zero if not known"""
    text: str = field(default="", compare=False)
    """Formatted diagnostic"""

    def __post_init__(self) -> None:
        if not self.text:
            text = f"{self.message} (error code {self.code}: {self.description})"
            object.__setattr__(self, "text", text)

    def __str__(self) -> str:
        return self.text


class StepsqlError(Exception):
    """Base class for stepsql errors

    :param title: A short description of the error type. This can be used in a CLI to
        give a short error summary.
    :param message: A more verbose description of the cause.
    """

    def __init__(self, title: str, message: str = "") -> None:
        super().__init__(title, message)
        self.title = title
        self.message = message

    def __str__(self) -> str:
        return ". ".join([self.title, self.message])


class LibraryError(StepsqlError):
    """Raised when the SQLite library cannot be loaded or is too old."""


class DatabaseError(StepsqlError):
    """Base class for errors reported by SQLite

    :param title: A short description of the failed operation.
    :param diagnostic: Translated native error state.
    """

    def __init__(self, title: str, diagnostic: Diagnostic) -> None:
        super().__init__(title, diagnostic.text)
        self.diagnostic = diagnostic

    @property
    def code(self) -> int:
        """The primary SQLite result code."""
        return self.diagnostic.code


class OpenError(DatabaseError):
    """Raised when a database connection cannot be established."""


class PrepareError(DatabaseError):
    """Raised when SQL text fails to compile into a statement."""


class BindError(DatabaseError):
    """Raised when a value cannot be bound to a statement parameter."""


class StepError(DatabaseError):
    """Raised when executing a statement fails. Running out of rows is not an error."""


class MisuseError(DatabaseError):
    """Raised when using a closed connection, a finalized statement or a cursor which
    is no longer positioned on a row."""


class CursorInvalidatedError(MisuseError):
    """Raised when a cursor or row is used after its statement was reset, iterated
    again or finalized. Only one cursor may consume a statement at a time."""

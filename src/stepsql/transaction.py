"""
This module defines the :class:`Transaction` scope which rolls back unless it is
explicitly committed.
"""

from __future__ import annotations

import logging
from enum import Enum
from types import TracebackType
from typing import TYPE_CHECKING

from .errorhandling import suppress_cleanup_errors

if TYPE_CHECKING:
    from .connection import Connection


__all__ = ["TransactionMode", "Transaction"]

logger = logging.getLogger(__name__)


class TransactionMode(Enum):
    """Enumeration of SQLite transaction modes

    The mode controls when locks are acquired. A deferred transaction acquires no lock
    until the database is first accessed, an immediate transaction acquires a write lock
    right away and an exclusive transaction additionally keeps other connections from
    reading, depending on the journal mode.
    """

    Deferred = "DEFERRED"
    Immediate = "IMMEDIATE"
    Exclusive = "EXCLUSIVE"

    @classmethod
    def from_value(cls, value: TransactionMode | str) -> TransactionMode:
        """
        Converts a mode name to a :class:`TransactionMode`.

        :param value: Mode or case-insensitive mode name.
        :returns: Transaction mode.
        :raises ValueError: for unknown mode names.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ValueError(f"Unknown transaction mode: {value!r}") from None


class Transaction:
    """
    A transaction scope on a connection

    Instances are returned by :meth:`Connection.begin_transaction` after the ``BEGIN``
    statement has been executed. Unless :meth:`commit` is called, the transaction is
    rolled back when the scope ends: when leaving a ``with`` block, also through an
    exception, or when the object is garbage collected. Errors during this automatic
    rollback are logged and suppressed.

    :param connection: Connection on which the transaction was started.
    :param mode: Mode the transaction was started with.
    """

    def __init__(
        self, connection: Connection, mode: TransactionMode = TransactionMode.Deferred
    ) -> None:
        self._connection = connection
        self._mode = mode
        self._committed = False
        self._finished = False

    @property
    def connection(self) -> Connection:
        """The connection of this transaction."""
        return self._connection

    @property
    def mode(self) -> TransactionMode:
        """The mode the transaction was started with."""
        return self._mode

    @property
    def committed(self) -> bool:
        """Whether :meth:`commit` completed successfully."""
        return self._committed

    def commit(self) -> None:
        """
        Commits the transaction. Call this at most once, committing again raises the
        error SQLite reports for a COMMIT without an active transaction.

        :raises StepError: if the commit fails. The scope will still roll back on exit.
        """
        self._connection.execute("COMMIT")
        self._committed = True
        logger.debug("Committed %s transaction", self._mode.value.lower())

    def rollback(self) -> None:
        """
        Rolls back the transaction. This does not change :attr:`committed`, leaving
        the scope will attempt another rollback unless the transaction was committed.

        :raises StepError: if the rollback fails.
        """
        self._connection.execute("ROLLBACK")
        logger.debug("Rolled back %s transaction", self._mode.value.lower())

    def close(self) -> None:
        """
        Ends the scope. Rolls back if the transaction has not been committed. Only the
        first call has an effect and it never raises.
        """
        if self._finished:
            return

        self._finished = True

        if not self._committed:
            with suppress_cleanup_errors("automatic rollback"):
                self.rollback()

    def __enter__(self) -> Transaction:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __del__(self) -> None:
        if not getattr(self, "_finished", True):
            self.close()

    def __repr__(self) -> str:
        state = "committed" if self._committed else "pending"
        return f"<{self.__class__.__name__}(mode={self._mode.value}, {state})>"

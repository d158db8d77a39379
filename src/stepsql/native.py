"""
This module loads the SQLite shared library and declares the ctypes signatures of the
C functions we call. It is the only place which knows about the native library. All
other modules go through the :class:`ctypes.CDLL` instance returned by
:func:`load_library`.
"""

from __future__ import annotations

import os
import sys
import ctypes
import ctypes.util
import logging
import threading
from typing import Iterator

from packaging.version import Version

from .errors import LibraryError


__all__ = [
    "SQLITE_OK",
    "SQLITE_ERROR",
    "SQLITE_BUSY",
    "SQLITE_CANTOPEN",
    "SQLITE_MISUSE",
    "SQLITE_RANGE",
    "SQLITE_ROW",
    "SQLITE_DONE",
    "SQLITE_OPEN_READONLY",
    "SQLITE_OPEN_READWRITE",
    "SQLITE_OPEN_CREATE",
    "SQLITE_OPEN_URI",
    "SQLITE_INTEGER",
    "SQLITE_FLOAT",
    "SQLITE_TEXT",
    "SQLITE_BLOB",
    "SQLITE_NULL",
    "SQLITE_TRANSIENT",
    "MIN_VERSION",
    "load_library",
    "libversion",
    "candidate_paths",
]

logger = logging.getLogger(__name__)


# ==== result codes ====================================================================

SQLITE_OK = 0
SQLITE_ERROR = 1
SQLITE_BUSY = 5
SQLITE_LOCKED = 6
SQLITE_READONLY = 8
SQLITE_CANTOPEN = 14
SQLITE_CONSTRAINT = 19
SQLITE_MISUSE = 21
SQLITE_RANGE = 25
SQLITE_ROW = 100
SQLITE_DONE = 101

# ==== open flags ======================================================================

SQLITE_OPEN_READONLY = 0x00000001
SQLITE_OPEN_READWRITE = 0x00000002
SQLITE_OPEN_CREATE = 0x00000004
SQLITE_OPEN_URI = 0x00000040

# ==== fundamental datatypes ===========================================================

SQLITE_INTEGER = 1
SQLITE_FLOAT = 2
SQLITE_TEXT = 3
SQLITE_BLOB = 4
SQLITE_NULL = 5

# Destructor sentinel which makes SQLite copy bound text before returning.
SQLITE_TRANSIENT = ctypes.c_void_p(-1)

# sqlite3_errstr() and a usable sqlite3_close_v2() are available from here on.
MIN_VERSION = Version("3.7.15")

LIBRARY_ENV_VAR = "STEPSQL_LIBRARY"

_c_void_pp = ctypes.POINTER(ctypes.c_void_p)

# name: (restype, argtypes)
_SIGNATURES = {
    "sqlite3_libversion": (ctypes.c_char_p, []),
    "sqlite3_open_v2": (
        ctypes.c_int,
        [ctypes.c_char_p, _c_void_pp, ctypes.c_int, ctypes.c_char_p],
    ),
    "sqlite3_close_v2": (ctypes.c_int, [ctypes.c_void_p]),
    "sqlite3_busy_timeout": (ctypes.c_int, [ctypes.c_void_p, ctypes.c_int]),
    "sqlite3_prepare_v2": (
        ctypes.c_int,
        [ctypes.c_void_p, ctypes.c_void_p, ctypes.c_int, _c_void_pp, _c_void_pp],
    ),
    "sqlite3_step": (ctypes.c_int, [ctypes.c_void_p]),
    "sqlite3_reset": (ctypes.c_int, [ctypes.c_void_p]),
    "sqlite3_finalize": (ctypes.c_int, [ctypes.c_void_p]),
    "sqlite3_clear_bindings": (ctypes.c_int, [ctypes.c_void_p]),
    "sqlite3_db_handle": (ctypes.c_void_p, [ctypes.c_void_p]),
    "sqlite3_sql": (ctypes.c_char_p, [ctypes.c_void_p]),
    "sqlite3_bind_int": (ctypes.c_int, [ctypes.c_void_p, ctypes.c_int, ctypes.c_int]),
    "sqlite3_bind_int64": (
        ctypes.c_int,
        [ctypes.c_void_p, ctypes.c_int, ctypes.c_int64],
    ),
    "sqlite3_bind_double": (
        ctypes.c_int,
        [ctypes.c_void_p, ctypes.c_int, ctypes.c_double],
    ),
    "sqlite3_bind_text": (
        ctypes.c_int,
        [ctypes.c_void_p, ctypes.c_int, ctypes.c_char_p, ctypes.c_int, ctypes.c_void_p],
    ),
    "sqlite3_bind_blob": (
        ctypes.c_int,
        [ctypes.c_void_p, ctypes.c_int, ctypes.c_char_p, ctypes.c_int, ctypes.c_void_p],
    ),
    "sqlite3_bind_null": (ctypes.c_int, [ctypes.c_void_p, ctypes.c_int]),
    "sqlite3_bind_parameter_count": (ctypes.c_int, [ctypes.c_void_p]),
    "sqlite3_bind_parameter_index": (ctypes.c_int, [ctypes.c_void_p, ctypes.c_char_p]),
    "sqlite3_bind_parameter_name": (ctypes.c_char_p, [ctypes.c_void_p, ctypes.c_int]),
    "sqlite3_column_count": (ctypes.c_int, [ctypes.c_void_p]),
    "sqlite3_column_name": (ctypes.c_char_p, [ctypes.c_void_p, ctypes.c_int]),
    "sqlite3_column_type": (ctypes.c_int, [ctypes.c_void_p, ctypes.c_int]),
    "sqlite3_column_text": (ctypes.c_void_p, [ctypes.c_void_p, ctypes.c_int]),
    "sqlite3_column_blob": (ctypes.c_void_p, [ctypes.c_void_p, ctypes.c_int]),
    "sqlite3_column_bytes": (ctypes.c_int, [ctypes.c_void_p, ctypes.c_int]),
    "sqlite3_column_int": (ctypes.c_int, [ctypes.c_void_p, ctypes.c_int]),
    "sqlite3_column_int64": (ctypes.c_int64, [ctypes.c_void_p, ctypes.c_int]),
    "sqlite3_column_double": (ctypes.c_double, [ctypes.c_void_p, ctypes.c_int]),
    "sqlite3_changes": (ctypes.c_int, [ctypes.c_void_p]),
    "sqlite3_total_changes": (ctypes.c_int, [ctypes.c_void_p]),
    "sqlite3_last_insert_rowid": (ctypes.c_int64, [ctypes.c_void_p]),
    "sqlite3_errcode": (ctypes.c_int, [ctypes.c_void_p]),
    "sqlite3_extended_errcode": (ctypes.c_int, [ctypes.c_void_p]),
    "sqlite3_errmsg": (ctypes.c_char_p, [ctypes.c_void_p]),
    "sqlite3_errstr": (ctypes.c_char_p, [ctypes.c_int]),
}

_lock = threading.Lock()
_library: ctypes.CDLL | None = None


# ==== library discovery ===============================================================


def _mapped_sqlite_paths() -> Iterator[str]:
    """
    Yields the paths of SQLite libraries which the standard sqlite3 module has already
    mapped into this process. Only available on Linux.
    """
    try:
        import sqlite3  # noqa: F401
    except ImportError:
        return

    try:
        with open("/proc/self/maps") as f:
            for line in f:
                path = line.rsplit(" ", 1)[-1].strip()
                if "libsqlite3" in os.path.basename(path):
                    yield path
    except OSError:
        return


def _extension_module_path() -> str | None:
    """Returns the path of the _sqlite3 extension module, SQLite may be linked in."""
    try:
        import _sqlite3
    except ImportError:
        return None

    return getattr(_sqlite3, "__file__", None)


def candidate_paths(configured: str = "") -> Iterator[str]:
    """
    Yields library names and paths to try, in order of preference.

    :param configured: Explicitly configured library path. Takes precedence over all
        other candidates but not over the ``STEPSQL_LIBRARY`` environment variable.
    """
    env_path = os.environ.get(LIBRARY_ENV_VAR)

    if env_path:
        yield env_path

    if configured:
        yield configured

    found = ctypes.util.find_library("sqlite3")

    if found:
        yield found

    if sys.platform == "darwin":
        yield "libsqlite3.dylib"
    elif sys.platform == "win32":
        yield "sqlite3.dll"
        yield "winsqlite3.dll"
    else:
        yield "libsqlite3.so.0"
        yield "libsqlite3.so"

    yield from _mapped_sqlite_paths()

    ext_path = _extension_module_path()

    if ext_path:
        yield ext_path


def _declare_signatures(lib: ctypes.CDLL) -> None:
    for name, (restype, argtypes) in _SIGNATURES.items():
        func = getattr(lib, name)
        func.restype = restype
        func.argtypes = argtypes


def _try_load(path: str) -> ctypes.CDLL | None:
    try:
        lib = ctypes.CDLL(path)
    except OSError as exc:
        logger.debug("Could not load %s: %s", path, exc)
        return None

    try:
        _declare_signatures(lib)
    except AttributeError as exc:
        logger.debug("%s does not export the SQLite API: %s", path, exc)
        return None

    return lib


def load_library(path: str | None = None) -> ctypes.CDLL:
    """
    Loads the SQLite library and declares all function signatures. The library is
    loaded once per process and cached.

    :param path: Library path to use. If not given, the configured path and a number
        of platform defaults are tried.
    :returns: Loaded library.
    :raises LibraryError: if no suitable library can be found or if it is too old.
    """
    global _library

    with _lock:
        if _library is not None and path is None:
            return _library

        if path is None:
            from .config import get_config

            configured = get_config().get("native", "library")
            candidates = list(candidate_paths(configured))
        else:
            candidates = [path]

        for candidate in candidates:
            lib = _try_load(candidate)

            if lib is None:
                continue

            version = Version(lib.sqlite3_libversion().decode())

            if version < MIN_VERSION:
                raise LibraryError(
                    "Incompatible SQLite library",
                    f"{candidate} provides SQLite {version}, at least {MIN_VERSION} "
                    "is required.",
                )

            logger.debug("Loaded SQLite %s from %s", version, candidate)

            if path is None:
                _library = lib

            return lib

        raise LibraryError(
            "Cannot find the SQLite library",
            f"Tried {', '.join(candidates) or 'no candidates'}. Set "
            f"{LIBRARY_ENV_VAR} to the path of libsqlite3.",
        )


def libversion() -> str:
    """Returns the version string of the loaded SQLite library."""
    return load_library().sqlite3_libversion().decode()

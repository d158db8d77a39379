"""
This module contains the default configuration values and functions to load the
configuration from an ini file. Values are stored as strings in the file and converted
back to the type of their default on access.
"""

from __future__ import annotations

import ast
import os
import os.path as osp
import copy
import logging
import threading
import configparser as cp
from typing import Any, Dict


__all__ = [
    "DEFAULTS_CONFIG",
    "CONFIG_ENV_VAR",
    "StepsqlConfig",
    "get_config",
    "reset_config",
]

logger = logging.getLogger(__name__)

_DefaultsType = Dict[str, Dict[str, Any]]

CONFIG_ENV_VAR = "STEPSQL_CONFIG"


# =============================================================================
#  Defaults
# =============================================================================

DEFAULTS_CONFIG: _DefaultsType = {
    "native": {
        "library": "",  # path to libsqlite3, empty for automatic discovery
    },
    "connection": {
        "create": True,  # create database files which do not exist
        "readonly": False,  # open databases read-only
        "uri": False,  # interpret paths as URI filenames
        "busy_timeout": 0,  # ms to retry on a locked database, 0 disables
    },
    "app": {
        "log_level": 20,  # default: INFO
    },
}


class NoDefault:
    pass


class StepsqlConfig(cp.ConfigParser):
    """
    Configuration seeded with :data:`DEFAULTS_CONFIG`. Options read from a file
    override the defaults. Options which are not in the defaults are kept as strings.

    :param path: Path of an ini file to read. Missing files are ignored.
    """

    def __init__(self, path: str | None = None) -> None:
        super().__init__(interpolation=None)

        self._path = path
        self._defaults = copy.deepcopy(DEFAULTS_CONFIG)

        for section, options in self._defaults.items():
            self.add_section(section)
            for option, value in options.items():
                self.set(section, option, str(value))

        if path and osp.isfile(path):
            logger.debug("Reading config from %s", path)
            self.read(path, encoding="utf-8")

    @property
    def config_path(self) -> str | None:
        """The path of the config file, if any."""
        return self._path

    def get_default(self, section: str, option: str) -> Any:
        """
        Get the default value of an option.

        :param section: Config section.
        :param option: Config option.
        :returns: Default value or :class:`NoDefault`.
        """
        return self._defaults.get(section, {}).get(option, NoDefault)

    def get(  # type: ignore[override]
        self, section: str, option: str, default: Any = NoDefault
    ) -> Any:
        """
        Get an option, converted to the type of its default value.

        :param section: Config section to search in.
        :param option: Config option to get.
        :param default: Default value to fall back to if not present.
        :returns: Config value.
        :raises cp.NoSectionError: if the section does not exist.
        :raises cp.NoOptionError: if the option does not exist and no default is given.
        """
        if not self.has_option(section, option):
            if default is NoDefault:
                if not self.has_section(section):
                    raise cp.NoSectionError(section)
                raise cp.NoOptionError(option, section)
            return default

        raw_value: str = super().get(section, option, raw=True)
        default_value = self.get_default(section, option)
        value: Any

        if isinstance(default_value, str) or default_value is NoDefault:
            value = raw_value
        else:
            try:
                value = ast.literal_eval(raw_value)
            except (SyntaxError, ValueError):
                value = raw_value

            if type(default_value) is not type(value):
                logger.error(
                    "Inconsistent config type for [%s][%s]. Expected %s but got %s.",
                    section,
                    option,
                    type(default_value).__name__,
                    type(value).__name__,
                )
                value = default_value

        return value

    def set(self, section: str, option: str, value: Any = None) -> None:
        """
        Set an option. Values are stored as strings and converted back to the type of
        their default on :meth:`get`.

        :param section: Config section.
        :param option: Config option.
        :param value: Value to store.
        """
        if not self.has_section(section):
            self.add_section(section)
        super().set(section, option, str(value))


_lock = threading.Lock()
_config: StepsqlConfig | None = None


def get_config() -> StepsqlConfig:
    """
    Returns the process-wide configuration, read from the path in the
    ``STEPSQL_CONFIG`` environment variable if set.
    """
    global _config

    with _lock:
        if _config is None:
            _config = StepsqlConfig(os.environ.get(CONFIG_ENV_VAR))
        return _config


def reset_config() -> None:
    """Drops the process-wide configuration. It is reloaded on the next access."""
    global _config

    with _lock:
        _config = None

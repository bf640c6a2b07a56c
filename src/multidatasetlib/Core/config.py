"""
Runtime configuration for the library.

Environment variables are parsed and validated in exactly one
place. Everything else consumes the resulting frozen config
rather than reading the environment itself.

Recognized variables:

* MULTIDATASET_MASK_ON_PADDING: Whether merging examples of differing
  sequence length creates a mask even when no example brought one.
  Defaults to true.
* MULTIDATASET_LOG_LEVEL: One of DEBUG, INFO, WARNING, ERROR, CRITICAL.
  Defaults to WARNING.
"""

import os
from dataclasses import dataclass
from typing import Optional

from . import errors as Errors
from . import string_util

MASK_ON_PADDING_ENV = "MULTIDATASET_MASK_ON_PADDING"
LOG_LEVEL_ENV = "MULTIDATASET_LOG_LEVEL"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


@dataclass(frozen=True)
class DataConfig:
    """
    Validated runtime configuration.

    :param mask_on_padding: If true, a merge which has to pad ragged
        time series always produces a mask for that slot.
    :param log_level: The minimum level of log events which are emitted.
    """

    mask_on_padding: bool = True
    log_level: str = "WARNING"

    def __post_init__(self):
        if self.log_level not in LOG_LEVELS:
            reason = f"""\
            The log level '{self.log_level}' is not recognized. It
            must be one of {list(LOG_LEVELS)}
            """
            raise Errors.ConfigurationError(string_util.dedent(reason))

    @classmethod
    def from_env(cls) -> "DataConfig":
        """
        Build a config out of the process environment.

        :raises ConfigurationError: If a variable cannot be parsed.
        """
        mask_on_padding = _parse_bool(MASK_ON_PADDING_ENV, os.getenv(MASK_ON_PADDING_ENV, "true"))
        log_level = os.getenv(LOG_LEVEL_ENV, "WARNING").strip().upper()
        return cls(mask_on_padding=mask_on_padding, log_level=log_level)


def _parse_bool(name: str, raw_value: str) -> bool:
    value = raw_value.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    reason = f"""\
    Invalid {name} value: expected one of {list(_TRUE_VALUES + _FALSE_VALUES)},
    got '{raw_value}'.
    """
    raise Errors.ConfigurationError(string_util.dedent(reason))


_active_config: Optional[DataConfig] = None


def get_config() -> DataConfig:
    """
    Returns the process wide config, building it from the
    environment on first use.
    """
    global _active_config
    if _active_config is None:
        _active_config = DataConfig.from_env()
    return _active_config


def set_config(config: Optional[DataConfig]):
    """
    Replaces the process wide config. Passing None means
    the environment will be read again on next use.
    """
    global _active_config
    _active_config = config

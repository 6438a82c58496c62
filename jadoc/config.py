# Configuration settings should be set in app.config
# The JADOC class attributes hold the defaults, environment variables are used as a last resort
import os
import logging
from flask import current_app
import jadoc
from typing import Any, Optional


def get_config(option: str) -> Optional[Any]:
    """Retrieve a configuration parameter from the app
    :param option: configuration parameter
    :return: configuration value
    """
    try:
        result = current_app.config[option]
    except (KeyError, RuntimeError):
        # KeyError: not set in the app config
        # RuntimeError: working outside of an application context
        result = getattr(jadoc.JADOC, option, None)
    if result is None:
        result = os.environ.get(option, None)
    return result


def get_int_config(option: str, default: int = 0) -> int:
    """
    :param option: configuration parameter
    :param default: value returned if the option is not set or invalid
    :return: integer configuration value
    """
    value = get_config(option)
    try:
        return int(value)
    except (TypeError, ValueError):
        jadoc.log.warning(f"Invalid integer value for {option}: {value!r}")
        return default


def is_debug() -> bool:
    """
    We use the loglevel to check whether we're running in debug mode
    :return: whether the app is in debug mode
    """
    return jadoc.log.getEffectiveLevel() < logging.INFO

"""Logging helpers shared by all genplay components."""

from __future__ import annotations

import logging
import sys
from typing import Optional, Union

_ROOT_LOGGER_NAME = "genplay"
_DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logging.getLogger(_ROOT_LOGGER_NAME).addHandler(logging.NullHandler())


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger that lives under the ``genplay`` logger hierarchy.

    Parameters
    ----------
    name : Optional[str]
        Component name, e.g. ``"PluginCompiler"``. None returns the package logger.

    Returns
    -------
    logging.Logger
        The logger ``genplay.<name>``.
    """
    if not name:
        return logging.getLogger(_ROOT_LOGGER_NAME)
    return logging.getLogger(f"{_ROOT_LOGGER_NAME}.{name}")


def configure_logging(level: Union[int, str] = "INFO", fmt: str = _DEFAULT_FORMAT) -> None:
    """Attach a stderr handler to the ``genplay`` logger and set its level.

    Calling it again replaces the handler installed by the previous call instead of adding
    another one.

    Parameters
    ----------
    level : Union[int, str]
        Logging level name or number.
    fmt : str
        Format string of the handler.
    """
    root = logging.getLogger(_ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        if getattr(handler, "_genplay_handler", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt))
    handler._genplay_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)

"""Logging setup and small shared helpers.

Library modules only create loggers with ``logging.getLogger(__name__)``;
handlers are installed by entry points through :func:`configure_logging`::

    from chainnet.utils import configure_logging
    configure_logging("DEBUG")
"""

from __future__ import annotations

import logging
import sys

_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%H:%M:%S"
_HANDLER_NAME = "chainnet-console"


def configure_logging(level: int | str = logging.INFO) -> logging.Logger:
    """Attach a single console handler to the ``chainnet`` logger.

    Calling it again only updates the level, so repeated CLI invocations in
    one process do not duplicate output.
    """

    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")
        level = resolved

    root = logging.getLogger("chainnet")
    root.setLevel(level)
    if not any(h.get_name() == _HANDLER_NAME for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))
        root.addHandler(handler)
    for handler in root.handlers:
        handler.setLevel(level)
    return root


def get_logger(name: str) -> logging.Logger:
    """Return a logger namespaced under ``chainnet``."""

    if name == "chainnet" or name.startswith("chainnet."):
        return logging.getLogger(name)
    return logging.getLogger(f"chainnet.{name}")


__all__ = ["configure_logging", "get_logger"]

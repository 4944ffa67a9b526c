"""Scenario-aware logging for the harness."""

import logging
import os
import sys

from apiharness.constants import LOG_LEVEL_VARIABLE
from apiharness.logging.filters import (
    ScenarioContextFilter,
    bind_scenario,
    current_scenario,
    unbind_scenario,
)
from apiharness.logging.formatters import ScenarioFormatter

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s - %(message)s"

_QUIET_LOGGERS = ("urllib3", "requests")


def configure_logging(level: str | int | None = None) -> logging.Handler:
    """Install the harness handler on the root logger.

    Replaces a handler installed by an earlier call, so repeated runs in one
    process do not duplicate lines.

    Parameters
    ----------
    level : str | int | None
        Log level; defaults to ``APIHARNESS_LOG_LEVEL`` or INFO

    Returns
    -------
    logging.Handler
        The installed handler
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_VARIABLE, "INFO")
    if isinstance(level, str):
        level = level.upper()

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if getattr(handler, "_apiharness", False):
            root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ScenarioFormatter(LOG_FORMAT))
    handler.addFilter(ScenarioContextFilter())
    handler._apiharness = True
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return handler


__all__ = [
    "LOG_FORMAT",
    "ScenarioContextFilter",
    "ScenarioFormatter",
    "bind_scenario",
    "configure_logging",
    "current_scenario",
    "unbind_scenario",
]

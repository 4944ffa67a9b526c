"""Logging filters carrying per-scenario logging context."""

import logging
from contextvars import ContextVar, Token

_current_scenario: ContextVar[str | None] = ContextVar("apiharness_scenario", default=None)


def bind_scenario(name: str | None) -> Token:
    """Set the scenario name attached to log records on this thread/task.

    Parameters
    ----------
    name : str | None
        Scenario name, or None to clear it

    Returns
    -------
    Token
        Token for ``unbind_scenario``
    """
    return _current_scenario.set(name)


def unbind_scenario(token: Token | None = None) -> None:
    if token is not None:
        _current_scenario.reset(token)
    else:
        _current_scenario.set(None)


def current_scenario() -> str | None:
    return _current_scenario.get()


class ScenarioContextFilter(logging.Filter):
    """Attach the bound scenario name to every record as ``record.scenario``."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "scenario"):
            record.scenario = _current_scenario.get()
        return True

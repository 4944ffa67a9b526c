"""Exception hierarchy for the API test harness.

Every error raised by the harness itself derives from ``HarnessError`` so the
runner can tell engine failures apart from assertion failures, which use the
builtin ``AssertionError``.
"""

from __future__ import annotations

from typing import Any


class HarnessError(Exception):
    """Base exception for harness failures."""


class ConfigError(HarnessError):
    """Raised when a configuration document cannot be loaded."""


class ConfigParseError(ConfigError):
    """Raised when a typed config accessor finds a value of the wrong shape.

    Parameters
    ----------
    key : str
        Dotted configuration key that was requested
    value : str
        Raw value found for the key
    expected : str
        Human-readable name of the expected kind (e.g. "int")
    """

    def __init__(self, key: str, value: str, expected: str) -> None:
        super().__init__(
            f"Configuration key '{key}' has value '{value}' which is not a valid {expected}"
        )
        self.key = key
        self.value = value
        self.expected = expected


class UnknownProtocolError(HarnessError):
    """Raised when no client factory is registered for a protocol.

    Parameters
    ----------
    protocol : str
        Protocol name that was requested
    available : list[str]
        Protocol names that are registered
    """

    def __init__(self, protocol: str, available: list[str]) -> None:
        super().__init__(
            f"No protocol client registered for protocol: {protocol}. "
            f"Available: {available}"
        )
        self.protocol = protocol
        self.available = available


class ClientInitError(HarnessError):
    """Raised when a protocol client cannot be constructed or initialised."""

    def __init__(self, protocol: str, cause: BaseException) -> None:
        super().__init__(f"Failed to initialise client for {protocol}: {cause}")
        self.protocol = protocol


class RequestShapeError(HarnessError):
    """Raised when a request cannot be turned into a call.

    Examples are a missing method, an empty endpoint or a path placeholder
    without a matching path parameter.
    """


class UnsupportedMethodError(HarnessError):
    """Raised when a request method is not supported by the protocol client."""

    def __init__(self, method: str, allowed: tuple[str, ...]) -> None:
        super().__init__(
            f"Unsupported HTTP method: {method}. Allowed: {', '.join(allowed)}"
        )
        self.method = method


class TransportError(HarnessError):
    """Raised when the network call fails before a response is produced."""

    def __init__(self, method: str, url: str, cause: BaseException) -> None:
        super().__init__(f"{method} {url} failed: {cause}")
        self.method = method
        self.url = url


class BagTypeError(HarnessError, TypeError):
    """Raised when a scenario bag value does not have the requested type."""

    def __init__(self, key: str, expected: str, actual: Any) -> None:
        super().__init__(
            f"Scenario value '{key}' is {type(actual).__name__}, expected {expected}"
        )
        self.key = key
        self.expected = expected
        self.actual = actual

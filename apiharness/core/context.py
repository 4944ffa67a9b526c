"""Scenario-scoped state shared between the steps of one scenario."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from apiharness.constants import REST_PROTOCOL
from apiharness.core.config import ConfigResolver
from apiharness.core.messages import ProtocolRequest, ProtocolResponse
from apiharness.exceptions import BagTypeError

if TYPE_CHECKING:
    from apiharness.protocols.registry import ClientRegistry

logger = logging.getLogger(__name__)


class ScenarioContext:
    """Per-scenario state container.

    Holds the request under construction, the last response and a key/value
    bag. The config and client registry are process-wide and only referenced
    here, so ``cleanup`` leaves the shared clients open.

    Parameters
    ----------
    config : ConfigResolver
        Process-wide configuration
    registry : ClientRegistry
        Process-wide protocol client registry
    """

    def __init__(self, config: ConfigResolver, registry: ClientRegistry) -> None:
        self._config = config
        self._registry = registry
        self._current_request: ProtocolRequest | None = None
        self._last_response: ProtocolResponse | None = None
        self._data: dict[str, Any] = {}

    @property
    def config(self) -> ConfigResolver:
        return self._config

    @property
    def registry(self) -> ClientRegistry:
        return self._registry

    def new_request(self) -> ProtocolRequest:
        """Replace the current request with a fresh, empty one and return it."""
        self._current_request = ProtocolRequest()
        return self._current_request

    def current_request(self) -> ProtocolRequest:
        """Return the current request, creating an empty one if none exists."""
        if self._current_request is None:
            self._current_request = ProtocolRequest()
        return self._current_request

    def last_response(self) -> ProtocolResponse | None:
        return self._last_response

    def set_last_response(self, response: ProtocolResponse | None) -> None:
        self._last_response = response

    def execute(self, protocol: str) -> ProtocolResponse:
        """Execute the current request with the named protocol's client.

        Parameters
        ----------
        protocol : str
            Protocol name, e.g. ``REST``

        Returns
        -------
        ProtocolResponse
            Response, also stored as the last response

        Raises
        ------
        UnknownProtocolError
            If no client is registered for the protocol; nothing is sent
        """
        client = self._registry.get_client(protocol)
        response = client.execute(self.current_request())
        self._last_response = response
        return response

    def execute_rest(self) -> ProtocolResponse:
        return self.execute(REST_PROTOCOL)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        """Return a bag value, or ``default`` when it is missing or None."""
        value = self._data.get(key)
        return value if value is not None else default

    def contains(self, key: str) -> bool:
        return key in self._data

    def get_string(self, key: str, default: str | None = None) -> str | None:
        """Return a bag value that must be a string.

        Raises
        ------
        BagTypeError
            If the stored value is not a string
        """
        value = self._data.get(key)
        if value is None:
            return default
        if not isinstance(value, str):
            raise BagTypeError(key, "str", value)
        return value

    def get_int(self, key: str, default: int | None = None) -> int | None:
        """Return a bag value that must be an integer.

        Integral strings such as ``"42"`` are accepted; booleans are not.

        Raises
        ------
        BagTypeError
            If the stored value is not an integer
        """
        value = self._data.get(key)
        if value is None:
            return default
        if isinstance(value, bool):
            raise BagTypeError(key, "int", value)
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                raise BagTypeError(key, "int", value) from None
        raise BagTypeError(key, "int", value)

    def get_json(self, key: str, default: Any = None) -> Any:
        """Return a bag value as a JSON structure.

        Dicts and lists are returned as stored; strings are parsed as JSON.

        Raises
        ------
        BagTypeError
            If the value is neither a JSON structure nor a valid JSON string
        """
        value = self._data.get(key)
        if value is None:
            return default
        if isinstance(value, (dict, list)):
            return value
        if isinstance(value, str):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                raise BagTypeError(key, "JSON", value) from None
        raise BagTypeError(key, "JSON", value)

    def cleanup(self) -> None:
        """Drop scenario state; shared protocol clients stay open."""
        self._data.clear()
        self._current_request = None
        self._last_response = None
        logger.debug("Scenario context cleaned up")

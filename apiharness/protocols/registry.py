"""Protocol client registry.

Maps protocol names to client factories and caches one initialised client
per protocol for the whole process. Factories come from a built-in table,
from entry points in the ``apiharness.protocol_clients`` group, or from
explicit ``register`` calls.
"""

from __future__ import annotations

import importlib
import logging
import threading
from collections.abc import Callable
from importlib.metadata import entry_points

from apiharness.constants import PROTOCOL_ENTRY_POINT_GROUP, REST_PROTOCOL
from apiharness.core.config import ConfigResolver
from apiharness.core.interfaces import ProtocolClient
from apiharness.exceptions import ClientInitError, UnknownProtocolError

logger = logging.getLogger(__name__)

ClientFactory = Callable[[], ProtocolClient]

BUILTIN_CLIENTS: dict[str, str] = {
    REST_PROTOCOL: "apiharness.protocols.rest:RestClient",
}
"""Protocol name to ``module:attribute`` of the factory, registered on discovery."""


def load_factory(target: str) -> ClientFactory:
    """Import a factory from a ``module:attribute`` reference.

    Parameters
    ----------
    target : str
        Reference such as ``apiharness.protocols.rest:RestClient``

    Returns
    -------
    ClientFactory
        The referenced class or callable

    Raises
    ------
    ValueError
        If the reference is malformed
    AttributeError
        If the module has no such attribute
    """
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Factory reference must look like 'module:attribute': {target}")
    module = importlib.import_module(module_name)
    factory = getattr(module, attr, None)
    if factory is None:
        raise AttributeError(f"Factory {attr} not found in {module_name}")
    return factory


class ClientRegistry:
    """Process-wide map of protocol names to clients.

    ``get_client`` initialises each protocol's client at most once, even when
    several scenario threads ask for the same protocol at the same time: one
    thread runs the factory and ``init`` while the others wait for it. A
    failed initialisation leaves nothing in the cache, so the next call
    starts again from scratch.

    Parameters
    ----------
    config : ConfigResolver
        Configuration passed to each client's ``init``
    discover : bool
        Whether to run ``discover()`` during construction

    Attributes
    ----------
    config : ConfigResolver
        Configuration shared by every client
    """

    def __init__(self, config: ConfigResolver, discover: bool = True) -> None:
        self.config = config
        self._factories: dict[str, ClientFactory] = {}
        self._instances: dict[str, ProtocolClient] = {}
        self._init_locks: dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

        if discover:
            self.discover()

    def register(self, protocol_name: str, factory: ClientFactory) -> None:
        """Register a factory for a protocol; later registrations win.

        Parameters
        ----------
        protocol_name : str
            Protocol name, matched case-insensitively
        factory : ClientFactory
            Zero-argument callable (usually the client class) returning a client
        """
        key = protocol_name.upper()
        with self._lock:
            self._factories[key] = factory
        logger.info(
            "Registered protocol client: %s -> %s",
            key,
            getattr(factory, "__name__", repr(factory)),
        )

    def discover(self) -> None:
        """Register built-in clients and clients published as entry points.

        Plugins that fail to load are logged and skipped so one broken
        distribution cannot take the whole registry down.
        """
        for protocol_name, target in BUILTIN_CLIENTS.items():
            self.register(protocol_name, load_factory(target))

        for entry_point in entry_points(group=PROTOCOL_ENTRY_POINT_GROUP):
            try:
                factory = entry_point.load()
            except (ImportError, AttributeError) as e:
                logger.warning(
                    "Skipping protocol client plugin %s (%s): %s",
                    entry_point.name,
                    entry_point.value,
                    e,
                )
                continue
            self.register(entry_point.name, factory)
            logger.info("Auto-discovered protocol client: %s", entry_point.name.upper())

    def get_client(self, protocol_name: str) -> ProtocolClient:
        """Return the initialised client for a protocol, creating it on first use.

        Parameters
        ----------
        protocol_name : str
            Protocol name, e.g. ``REST``; matched case-insensitively

        Returns
        -------
        ProtocolClient
            Shared, initialised client

        Raises
        ------
        UnknownProtocolError
            If no factory is registered for the protocol
        ClientInitError
            If constructing the client or running its ``init`` fails
        """
        key = protocol_name.upper()

        with self._lock:
            client = self._instances.get(key)
            if client is not None:
                return client
            factory = self._factories.get(key)
            if factory is None:
                raise UnknownProtocolError(protocol_name, sorted(self._factories))
            init_lock = self._init_locks.setdefault(key, threading.Lock())

        with init_lock:
            with self._lock:
                client = self._instances.get(key)
            if client is not None:
                return client

            try:
                client = factory()
                client.init(self.config)
            except Exception as e:
                logger.error("Failed to initialise %s client: %s", key, e)
                raise ClientInitError(key, e) from e

            with self._lock:
                self._instances[key] = client
            logger.info("Initialized %s client: %s", key, type(client).__name__)
            return client

    def rest(self) -> ProtocolClient:
        """Return the REST client."""
        return self.get_client(REST_PROTOCOL)

    def registered_protocols(self) -> list[str]:
        with self._lock:
            return sorted(self._factories)

    def active_protocols(self) -> list[str]:
        with self._lock:
            return sorted(self._instances)

    def close_all(self) -> None:
        """Close every live client and empty the cache.

        A client whose ``close`` raises is logged and skipped so the remaining
        clients still get closed.
        """
        with self._lock:
            instances = list(self._instances.items())
            self._instances.clear()

        for key, client in instances:
            try:
                client.close()
                logger.info("Closed %s client", key)
            except Exception as e:
                logger.warning("Error closing %s client: %s", key, e)

"""Interfaces implemented by protocol plugins."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from apiharness.core.config import ConfigResolver
    from apiharness.core.messages import ProtocolRequest, ProtocolResponse


class ProtocolClient(ABC):
    """Client translating generic requests to one wire protocol.

    The registry calls ``init`` exactly once before the client is shared.
    After ``init`` returns, ``execute`` must be safe to call from several
    threads at once.

    To add a protocol, subclass ``ProtocolClient`` and either register the
    class with ``ClientRegistry.register`` or publish it as an entry point in
    the ``apiharness.protocol_clients`` group.
    """

    @abstractmethod
    def init(self, config: ConfigResolver) -> None:
        """Initialise the client from configuration.

        Parameters
        ----------
        config : ConfigResolver
            Process-wide configuration
        """

    @abstractmethod
    def execute(self, request: ProtocolRequest) -> ProtocolResponse:
        """Perform one call and return its response."""

    @abstractmethod
    def protocol_name(self) -> str:
        """Return the protocol identifier, e.g. ``REST``."""

    def close(self) -> None:
        """Release connections and sessions held by the client."""

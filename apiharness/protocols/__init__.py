"""Protocol client registry and built-in protocol clients.

Only REST ships with the harness; other protocols plug in through
``ClientRegistry.register`` or the ``apiharness.protocol_clients`` entry
point group.
"""

from __future__ import annotations

from apiharness.protocols.registry import BUILTIN_CLIENTS, ClientFactory, ClientRegistry, load_factory

__all__ = [
    "BUILTIN_CLIENTS",
    "ClientFactory",
    "ClientRegistry",
    "load_factory",
]

"""REST/HTTP protocol client."""

from __future__ import annotations

from apiharness.protocols.rest.client import RestClient

__all__ = ["RestClient"]

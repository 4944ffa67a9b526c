"""Core harness functionality: configuration, messages, context and reporting."""

from __future__ import annotations

from apiharness.core.config import ConfigResolver
from apiharness.core.interfaces import ProtocolClient
from apiharness.core.messages import ProtocolRequest, ProtocolResponse
from apiharness.core.reporting import Attachment, EventRecorder, ScenarioStatus
from apiharness.core.context import ScenarioContext

__all__ = [
    "Attachment",
    "ConfigResolver",
    "EventRecorder",
    "ProtocolClient",
    "ProtocolRequest",
    "ProtocolResponse",
    "ScenarioContext",
    "ScenarioStatus",
]

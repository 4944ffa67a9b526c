"""Report events emitted by the lifecycle hooks.

The recorder collects scenario and step events in order, thread-safely, so
that downstream report writers can consume them after the run.
"""

from __future__ import annotations

import base64
import json
import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class ScenarioStatus(str, Enum):
    """Final status of a scenario as seen by report writers."""

    PASSED = "PASSED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


class EventType(str, Enum):
    SCENARIO_STARTED = "scenario_started"
    STEP_FINISHED = "step_finished"
    ATTACHMENT = "attachment"
    SCENARIO_FINISHED = "scenario_finished"


_PASSED_STATUSES = {"passed"}
_SKIPPED_STATUSES = {"skipped", "untested"}


def scenario_status(status: Any) -> ScenarioStatus:
    """Map a runner status (behave ``Status`` or its name) to a report status.

    Parameters
    ----------
    status : Any
        Runner status; enum members are matched by name

    Returns
    -------
    ScenarioStatus
        ``PASSED``, ``SKIPPED`` or, for anything else, ``FAILED``
    """
    name = str(getattr(status, "name", status)).lower()
    if name in _PASSED_STATUSES:
        return ScenarioStatus.PASSED
    if name in _SKIPPED_STATUSES:
        return ScenarioStatus.SKIPPED
    return ScenarioStatus.FAILED


@dataclass(frozen=True)
class Attachment:
    """Payload attached to a scenario report.

    Attributes
    ----------
    mime_type : str
        MIME type of the payload, e.g. ``text/plain``
    payload : bytes
        Raw payload
    name : str
        Display name
    """

    mime_type: str
    payload: bytes
    name: str

    def to_dict(self) -> dict[str, str]:
        return {
            "mime_type": self.mime_type,
            "name": self.name,
            "payload": base64.b64encode(self.payload).decode("ascii"),
        }


@dataclass(frozen=True)
class ReportEvent:
    """One entry in the report event stream.

    Attributes
    ----------
    type : EventType
        Event type
    scenario : str
        Name of the scenario the event belongs to
    data : dict[str, Any]
        Event payload
    timestamp : float
        Creation time in seconds since the epoch
    thread_id : int
        Identifier of the thread that recorded the event
    """

    type: EventType
    scenario: str
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)
    thread_id: int = field(default_factory=threading.get_ident)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "scenario": self.scenario,
            "data": self.data,
            "timestamp": self.timestamp,
            "thread_id": self.thread_id,
        }


class EventRecorder:
    """Thread-safe, append-only store of report events."""

    def __init__(self) -> None:
        self._events: list[ReportEvent] = []
        self._lock = threading.Lock()

    def _record(self, event: ReportEvent) -> ReportEvent:
        with self._lock:
            self._events.append(event)
        return event

    def scenario_started(self, scenario: str, tags: list[str]) -> ReportEvent:
        return self._record(
            ReportEvent(EventType.SCENARIO_STARTED, scenario, {"tags": list(tags)})
        )

    def step_finished(
        self,
        scenario: str,
        step: str,
        status: ScenarioStatus,
        error: str | None = None,
    ) -> ReportEvent:
        return self._record(
            ReportEvent(
                EventType.STEP_FINISHED,
                scenario,
                {"step": step, "status": status.value, "error": error},
            )
        )

    def attach(self, scenario: str, attachment: Attachment) -> ReportEvent:
        return self._record(
            ReportEvent(EventType.ATTACHMENT, scenario, attachment.to_dict())
        )

    def scenario_finished(self, scenario: str, status: ScenarioStatus) -> ReportEvent:
        return self._record(
            ReportEvent(EventType.SCENARIO_FINISHED, scenario, {"status": status.value})
        )

    def events(self) -> list[ReportEvent]:
        with self._lock:
            return list(self._events)

    def has_failures(self) -> bool:
        return any(
            event.type is EventType.SCENARIO_FINISHED
            and event.data.get("status") == ScenarioStatus.FAILED.value
            for event in self.events()
        )

    def write_jsonl(self, path: str | Path) -> Path:
        """Write all events to a JSON Lines file and return its path."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        events = self.events()
        with target.open("w", encoding="utf-8") as handle:
            for event in events:
                handle.write(json.dumps(event.to_dict()) + "\n")
        logger.info("Wrote %d report events to %s", len(events), target)
        return target

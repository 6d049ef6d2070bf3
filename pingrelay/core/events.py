"""
Event protocol between the probe supervisor and its host.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional
import time


class EventKind(Enum):
    """Kinds of events published through an EventSink."""

    STARTED = 'probe-started'      # Session spawned, reader about to start
    RESULT = 'probe-result'        # One latency sample
    TIMEOUT = 'probe-timeout'      # One timed out / unreachable cycle
    STOPPED = 'probe-stopped'      # Cancelled by the caller of toggle
    COMPLETE = 'probe-complete'    # Utility exited on its own

    @property
    def is_terminal(self) -> bool:
        return self in (EventKind.STOPPED, EventKind.COMPLETE)


@dataclass(frozen=True)
class ProbeEvent:
    """A single event for one probe identifier."""
    kind: EventKind
    identifier: str
    time_ms: Optional[float] = None
    timestamp: float = field(default_factory=time.time, compare=False)

    def to_payload(self) -> Dict[str, Any]:
        """Host-facing payload, keyed like the event stream contract."""
        payload: Dict[str, Any] = {'identifier': self.identifier}
        if self.kind is EventKind.RESULT:
            payload['time_ms'] = self.time_ms
        return payload


@dataclass(frozen=True)
class LatencySample:
    """Latency parsed from one line of probe output."""
    identifier: str
    time_ms: float

    def to_event(self) -> ProbeEvent:
        return make_result_event(self.identifier, self.time_ms)


@dataclass(frozen=True)
class TimeoutSample:
    """Timeout or unreachable indication parsed from one line."""
    identifier: str

    def to_event(self) -> ProbeEvent:
        return make_timeout_event(self.identifier)


# Factory functions

def make_started_event(identifier: str) -> ProbeEvent:
    return ProbeEvent(kind=EventKind.STARTED, identifier=identifier)


def make_result_event(identifier: str, time_ms: float) -> ProbeEvent:
    return ProbeEvent(kind=EventKind.RESULT, identifier=identifier, time_ms=float(time_ms))


def make_timeout_event(identifier: str) -> ProbeEvent:
    return ProbeEvent(kind=EventKind.TIMEOUT, identifier=identifier)


def make_stopped_event(identifier: str) -> ProbeEvent:
    return ProbeEvent(kind=EventKind.STOPPED, identifier=identifier)


def make_complete_event(identifier: str) -> ProbeEvent:
    return ProbeEvent(kind=EventKind.COMPLETE, identifier=identifier)

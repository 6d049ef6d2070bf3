"""Event sink contract: how the supervisor publishes events to its host."""

from abc import ABC, abstractmethod
from typing import Callable

from .events import ProbeEvent


class EventSink(ABC):
    """
    Receives every event the supervisor produces.

    ``emit`` is called from the caller of ``toggle`` and from per-probe
    reader threads. Implementations must not call back into the registry
    synchronously from a reader thread.
    """

    @abstractmethod
    def emit(self, event: ProbeEvent) -> None:
        ...


class CallbackSink(EventSink):
    """Forward events to a plain callable."""

    def __init__(self, callback: Callable[[ProbeEvent], None]):
        self._callback = callback

    def emit(self, event: ProbeEvent) -> None:
        self._callback(event)

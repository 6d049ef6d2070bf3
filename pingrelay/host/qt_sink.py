"""
Qt event sink: republishes probe events as Qt signals on the sink's thread.
"""

from typing import Optional
from PyQt6.QtCore import QObject, Qt, pyqtSignal, pyqtSlot

from pingrelay.logging import get_logger
logger = get_logger(__name__)

from ..core.events import EventKind, ProbeEvent
from ..core.sink import EventSink


class QtEventSink(QObject):
    """
    EventSink backed by Qt signals.

    ``emit`` may be called from any thread. Every event is posted to the
    sink's own thread through a queued connection, so listeners see events in
    the order they were emitted: samples posted by a reader thread before a
    stop are delivered before the probe-stopped posted by the GUI thread.

    Signals:
        event_emitted: Every event (ProbeEvent)
        probe_started: (identifier)
        probe_result: (identifier, time_ms)
        probe_timeout: (identifier)
        probe_stopped: (identifier)
        probe_complete: (identifier)
    """

    event_emitted = pyqtSignal(object)
    probe_started = pyqtSignal(str)
    probe_result = pyqtSignal(str, float)
    probe_timeout = pyqtSignal(str)
    probe_stopped = pyqtSignal(str)
    probe_complete = pyqtSignal(str)

    _posted = pyqtSignal(object)

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._posted.connect(self._deliver, Qt.ConnectionType.QueuedConnection)

    def emit(self, event: ProbeEvent) -> None:
        self._posted.emit(event)

    @pyqtSlot(object)
    def _deliver(self, event: ProbeEvent) -> None:
        self.event_emitted.emit(event)

        if event.kind is EventKind.STARTED:
            self.probe_started.emit(event.identifier)
        elif event.kind is EventKind.RESULT:
            self.probe_result.emit(event.identifier, event.time_ms)
        elif event.kind is EventKind.TIMEOUT:
            self.probe_timeout.emit(event.identifier)
        elif event.kind is EventKind.STOPPED:
            self.probe_stopped.emit(event.identifier)
        elif event.kind is EventKind.COMPLETE:
            self.probe_complete.emit(event.identifier)
        else:
            logger.warning(f"Unknown event kind: {event.kind}")


EventSink.register(QtEventSink)

"""
Console host: drives a ProbeRegistry from a QCoreApplication event loop and
prints every event as it arrives.
"""

import signal
import sys
from typing import Dict, Iterable, List, Optional, TextIO

from PyQt6.QtCore import QCoreApplication, QObject, QTimer, pyqtSignal

from pingrelay.logging import get_logger
logger = get_logger(__name__)

from ..core.catalog import find_server
from ..core.command import ProbeRequest, spawn_probe
from ..core.errors import ProbeError
from ..core.events import EventKind, ProbeEvent
from ..core.latency_buffer import LatencyBuffer, LatencySummary
from ..core.registry import ProbeRegistry, Spawner
from .qt_sink import QtEventSink

# Lets the Python interpreter run signal handlers while Qt owns the loop
_SIGNAL_POLL_MS = 200


def parse_target(target: str, count: int) -> ProbeRequest:
    """
    Turn a command line target into a request.

    Accepted forms: ``id=address``, a catalog server id, or a bare address
    (the address doubles as the identifier).

    Raises:
        InvalidAddress / InvalidCount: on validation failure.
    """
    if "=" in target:
        identifier, address = target.split("=", 1)
        return ProbeRequest(identifier.strip() or address, address.strip(), count)

    server = find_server(target)
    if server is not None:
        return ProbeRequest(server.id, server.address, count)
    return ProbeRequest(target, target, count)


def _fmt_ms(value: Optional[float]) -> str:
    return "-" if value is None else f"{value:.1f}ms"


def format_event(event: ProbeEvent, address: str = "") -> str:
    if event.kind is EventKind.STARTED:
        return f"[{event.identifier}] pinging {address}".rstrip()
    if event.kind is EventKind.RESULT:
        return f"[{event.identifier}] {event.time_ms:.1f} ms"
    if event.kind is EventKind.TIMEOUT:
        return f"[{event.identifier}] timeout"
    if event.kind is EventKind.STOPPED:
        return f"[{event.identifier}] stopped"
    return f"[{event.identifier}] complete"


def format_summary(identifier: str, summary: LatencySummary) -> str:
    return (
        f"[{identifier}] avg {_fmt_ms(summary.avg_ms)}  min {_fmt_ms(summary.min_ms)}  "
        f"max {_fmt_ms(summary.max_ms)}  jitter {_fmt_ms(summary.jitter_ms)}  "
        f"loss {summary.loss_pct:.0f}% ({summary.count} ok, {summary.timeouts} lost)"
    )


class ConsoleReporter(QObject):
    """
    Prints events for a fixed set of requests and tracks which are done.

    Signals:
        finished: Emitted once every tracked probe has had its terminal event
    """

    finished = pyqtSignal()

    def __init__(
        self,
        sink: QtEventSink,
        requests: Iterable[ProbeRequest],
        stream: Optional[TextIO] = None,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._stream = stream if stream is not None else sys.stdout
        self._requests: Dict[str, ProbeRequest] = {r.identifier: r for r in requests}
        self._buffers: Dict[str, LatencyBuffer] = {
            identifier: LatencyBuffer(identifier) for identifier in self._requests
        }
        self._pending = set(self._requests)
        sink.event_emitted.connect(self._on_event)

    @property
    def pending(self) -> List[str]:
        return sorted(self._pending)

    def buffer(self, identifier: str) -> Optional[LatencyBuffer]:
        return self._buffers.get(identifier)

    def discard(self, identifier: str) -> None:
        """Stop waiting for a probe that never started."""
        self._pending.discard(identifier)
        if not self._pending:
            self.finished.emit()

    def _on_event(self, event: ProbeEvent) -> None:
        buffer = self._buffers.get(event.identifier)
        if buffer is None:
            return
        buffer.add(event)

        request = self._requests[event.identifier]
        print(format_event(event, request.address), file=self._stream, flush=True)

        if event.kind.is_terminal:
            print(format_summary(event.identifier, buffer.summary()), file=self._stream, flush=True)
            self.discard(event.identifier)


def run_console(
    requests: List[ProbeRequest],
    stream: Optional[TextIO] = None,
    spawner: Spawner = spawn_probe,
    timeout_s: Optional[float] = None,
) -> int:
    """
    Probe every request until all are terminal (or Ctrl+C / timeout).

    Returns:
        0 if at least one probe ran, 1 if none could be started.
    """
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication(sys.argv)
        app.setApplicationName("pingrelay")

    sink = QtEventSink()
    registry = ProbeRegistry(sink, spawner=spawner)
    reporter = ConsoleReporter(sink, requests, stream=stream)
    reporter.finished.connect(app.quit)

    started = 0
    for request in requests:
        try:
            registry.toggle_request(request)
            started += 1
        except ProbeError as e:
            logger.error(f"Could not start {request.identifier}: {e}")
            print(f"[{request.identifier}] error: {e}", file=sys.stderr)
            reporter.discard(request.identifier)

    if not started:
        return 1

    previous_handler = signal.signal(signal.SIGINT, lambda *_: app.quit())
    wakeup = QTimer()
    wakeup.timeout.connect(lambda: None)
    wakeup.start(_SIGNAL_POLL_MS)
    deadline = QTimer()
    deadline.setSingleShot(True)
    deadline.timeout.connect(app.quit)
    if timeout_s is not None:
        deadline.start(int(timeout_s * 1000))

    try:
        app.exec()
    finally:
        wakeup.stop()
        deadline.stop()
        signal.signal(signal.SIGINT, previous_handler)
        registry.stop_all()
        reporter.finished.disconnect(app.quit)

    return 0

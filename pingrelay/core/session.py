"""
One running probe: the ping process, its cancellation flag and its reader.

Lifecycle::

    CREATED -> RUNNING -> STOPPING -> STOPPED
                       -> COMPLETED

The reader thread checks the cancellation flag before every line, under the
session's emit lock. ``cancel()`` sets the flag under the same lock, so once
it returns no further sample of this session reaches the sink.
"""

import subprocess
import threading
from enum import Enum, auto
from typing import Callable, Optional

from pingrelay.logging import get_logger
logger = get_logger(__name__)

from .command import ProbeRequest
from .events import ProbeEvent, make_complete_event
from .line_parser import parse_line
from .sink import EventSink

# Seconds the reader waits to reap a child after its stdout closed
REAP_TIMEOUT_S = 5.0


class SessionState(Enum):
    CREATED = auto()
    RUNNING = auto()
    STOPPING = auto()   # Cancel requested, reader not yet exited
    STOPPED = auto()
    COMPLETED = auto()


class ProbeSession:
    """
    Binds a probe identifier to its ping process and reader thread.

    Args:
        request: The accepted request
        process: Spawned process with a text stdout pipe
        sink: Receives sample and completion events
        on_exit: Called once by the reader after the output loop ends.
            Returns whether the session was cancelled; the registry uses it
            to remove its entry and read the flag in one critical section.
        exit_lock: Held while on_exit runs and the completion event is
            published (default: a private lock)
    """

    def __init__(
        self,
        request: ProbeRequest,
        process: subprocess.Popen,
        sink: EventSink,
        on_exit: Optional[Callable[['ProbeSession'], bool]] = None,
        exit_lock: Optional[threading.RLock] = None,
    ):
        self._request = request
        self._process = process
        self._sink = sink
        self._on_exit = on_exit
        self._exit_lock = exit_lock if exit_lock is not None else threading.RLock()

        self._cancelled = threading.Event()
        self._emit_lock = threading.RLock()
        self._state = SessionState.CREATED
        self._thread: Optional[threading.Thread] = None
        self._lines_read = 0

    @property
    def identifier(self) -> str:
        return self._request.identifier

    @property
    def request(self) -> ProbeRequest:
        return self._request

    @property
    def process(self) -> subprocess.Popen:
        return self._process

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def lines_read(self) -> int:
        return self._lines_read

    @property
    def is_alive(self) -> bool:
        """Whether the reader thread is still running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the reader thread."""
        if self._thread is not None:
            raise RuntimeError(f"Session {self.identifier} already started")
        with self._emit_lock:
            if self._state is SessionState.CREATED:
                self._state = SessionState.RUNNING
        self._thread = threading.Thread(
            target=self._read_loop,
            name=f"probe-{self.identifier}",
            daemon=True,
        )
        self._thread.start()

    def cancel(self) -> None:
        """
        Set the cancellation flag and kill the process.

        The kill is best-effort and never raises; it unblocks a reader
        waiting on the next line by closing the pipe.
        """
        with self._emit_lock:
            self._cancelled.set()
            if self._state in (SessionState.CREATED, SessionState.RUNNING):
                self._state = SessionState.STOPPING
        try:
            self._process.kill()
        except OSError as e:
            logger.warning(f"Failed to kill probe {self.identifier} (pid={self._process.pid}): {e}")

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the reader to exit. Returns True if it has."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _read_loop(self) -> None:
        stdout = self._process.stdout
        try:
            for line in stdout:
                with self._emit_lock:
                    if self._cancelled.is_set():
                        break
                    self._lines_read += 1
                    sample = parse_line(self.identifier, line.rstrip("\r\n"))
                    if sample is not None:
                        self._publish(sample.to_event())
        except (OSError, ValueError) as e:
            # Pipe torn down underneath us by a kill
            logger.debug(f"Reader for {self.identifier} stopped reading: {e}")
        finally:
            self._finish()

    def _finish(self) -> None:
        try:
            self._process.stdout.close()
        except OSError:
            pass
        try:
            returncode = self._process.wait(timeout=REAP_TIMEOUT_S)
        except subprocess.TimeoutExpired:
            logger.warning(f"Probe {self.identifier} did not exit after its output closed")
            returncode = None

        # A restart under the same identifier waits on this lock, so its
        # probe-started cannot overtake our probe-complete
        with self._exit_lock:
            if self._on_exit is not None:
                cancelled = self._on_exit(self)
            else:
                cancelled = self._cancelled.is_set()

            logger.debug(
                f"Reader for {self.identifier} exiting: lines={self._lines_read} "
                f"returncode={returncode} cancelled={cancelled}"
            )

            if cancelled:
                # probe-stopped is published by whoever cancelled
                self._state = SessionState.STOPPED
                return

            self._state = SessionState.COMPLETED
            self._publish(make_complete_event(self.identifier))

    def _publish(self, event: ProbeEvent) -> None:
        try:
            self._sink.emit(event)
        except Exception:
            logger.exception(f"Event sink failed for {event.kind.value} ({self.identifier})")

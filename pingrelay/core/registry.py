"""Probe registry - the single arbitration point for starting and stopping probes."""

import subprocess
import threading
from typing import Callable, Dict, List, Optional

from pingrelay.logging import get_logger
logger = get_logger(__name__)

from .command import ProbeRequest, ensure_stdout, spawn_probe
from .errors import ProbeError, SpawnFailure
from .events import ProbeEvent, make_started_event, make_stopped_event
from .session import ProbeSession
from .sink import EventSink

Spawner = Callable[[ProbeRequest], subprocess.Popen]


class ProbeRegistry:
    """
    Map of probe identifier to its running session.

    Holds at most one session per identifier. A single lock guards the map
    together with the flag-set and kill of a session being stopped, and every
    lifecycle event (started, stopped, complete) is published under it. It is
    never held across reads of probe output.

    Args:
        sink: Receives every event
        spawner: Launches the process for a request (default: platform ping)
    """

    def __init__(self, sink: EventSink, spawner: Spawner = spawn_probe):
        self._sink = sink
        self._spawner = spawner
        self._sessions: Dict[str, ProbeSession] = {}
        self._lock = threading.RLock()

    def toggle(self, identifier: str, address: str, count: int) -> bool:
        """
        Start a probe if none runs under ``identifier``, otherwise stop it.

        Returns:
            True if a probe was started, False if one was stopped.

        Raises:
            InvalidAddress: address failed validation; nothing was spawned.
            InvalidCount: count is not a positive integer.
            SpawnFailure: ping could not be launched.
            StreamUnavailable: ping exposed no stdout; the child was reaped.
        """
        with self._lock:
            if identifier in self._sessions:
                self._stop_locked(identifier)
                return False
            self._start_locked(ProbeRequest(identifier, address, count))
            return True

    def toggle_request(self, request: ProbeRequest) -> bool:
        """``toggle`` for an already validated request."""
        return self.toggle(request.identifier, request.address, request.count)

    def stop_all(self) -> None:
        """
        Cancel and kill every session.

        Does not wait for readers and publishes no probe-stopped events.
        """
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
            for session in sessions:
                session.cancel()
        if sessions:
            logger.info(f"Stopped all probes ({len(sessions)})")

    def is_running(self, identifier: str) -> bool:
        with self._lock:
            return identifier in self._sessions

    def session(self, identifier: str) -> Optional[ProbeSession]:
        with self._lock:
            return self._sessions.get(identifier)

    @property
    def active_identifiers(self) -> List[str]:
        with self._lock:
            return list(self._sessions)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, identifier: str) -> bool:
        return self.is_running(identifier)

    def _start_locked(self, request: ProbeRequest) -> None:
        try:
            process = self._spawner(request)
        except ProbeError:
            raise
        except OSError as e:
            raise SpawnFailure(f"Failed to spawn probe for {request.identifier}: {e}") from e
        ensure_stdout(process)

        session = ProbeSession(
            request, process, self._sink,
            on_exit=self._on_session_exit, exit_lock=self._lock,
        )
        self._sessions[request.identifier] = session
        self._publish(make_started_event(request.identifier))
        session.start()
        logger.info(
            f"Started probe {request.identifier} -> {request.address} "
            f"x{request.count} (pid={process.pid})"
        )

    def _stop_locked(self, identifier: str) -> None:
        session = self._sessions.pop(identifier)
        session.cancel()
        self._publish(make_stopped_event(identifier))
        logger.info(f"Stopped probe {identifier}")

    def _on_session_exit(self, session: ProbeSession) -> bool:
        """Reader exit hook: drop the entry if it is still ours, report cancellation."""
        with self._lock:
            if self._sessions.get(session.identifier) is session:
                del self._sessions[session.identifier]
            return session.cancelled

    def _publish(self, event: ProbeEvent) -> None:
        try:
            self._sink.emit(event)
        except Exception:
            logger.exception(f"Event sink failed for {event.kind.value} ({event.identifier})")

"""Shared test fixtures for the pingrelay test suite.

Provides a session QApplication, a thread-safe recording sink and a spawner
factory that runs small Python scripts in place of ``ping`` so registry and
session tests exercise real child processes and pipes.
"""

import os
import subprocess
import sys
import threading

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PyQt6.QtWidgets import QApplication

from pingrelay.core.command import popen_options
from pingrelay.core.sink import EventSink


@pytest.fixture(scope="session")
def qapp():
    """Session-scoped QApplication: shared by all tests."""
    app = QApplication.instance()
    if app is None:
        app = QApplication(sys.argv)
    yield app


class RecordingSink(EventSink):
    """Collects events from any thread; tests block on ``wait_for``."""

    def __init__(self):
        self.events = []
        self._cond = threading.Condition()

    def emit(self, event):
        with self._cond:
            self.events.append(event)
            self._cond.notify_all()

    def for_id(self, identifier):
        with self._cond:
            return [e for e in self.events if e.identifier == identifier]

    def kinds(self, identifier):
        return [e.kind for e in self.for_id(identifier)]

    def count(self, identifier, kind):
        return self.kinds(identifier).count(kind)

    def wait_for(self, predicate, timeout=10.0):
        with self._cond:
            return self._cond.wait_for(lambda: predicate(list(self.events)), timeout)

    def wait_for_kind(self, identifier, kind, n=1, timeout=10.0):
        return self.wait_for(
            lambda events: sum(
                1 for e in events if e.identifier == identifier and e.kind is kind
            ) >= n,
            timeout,
        )

    def wait_for_terminal(self, identifier, timeout=10.0):
        return self.wait_for(
            lambda events: any(
                e.identifier == identifier and e.kind.is_terminal for e in events
            ),
            timeout,
        )


@pytest.fixture
def recording_sink():
    return RecordingSink()


def _ping_lines(count, start_ms=0.5):
    """Linux-style ping output with ``count`` replies."""
    lines = ["PING 127.0.0.1 (127.0.0.1) 56(84) bytes of data."]
    for i in range(count):
        lines.append(
            f"64 bytes from 127.0.0.1: icmp_seq={i + 1} ttl=64 time={start_ms + i:.3f} ms"
        )
    lines.append("")
    lines.append("--- 127.0.0.1 ping statistics ---")
    lines.append(f"{count} packets transmitted, {count} received, 0% packet loss, time 1001ms")
    return lines


def _script_for(lines, delay=0.0, hang=False, repeat_forever=False):
    """Python source printing ``lines`` (optionally forever) then exiting or hanging."""
    body = [
        "import sys, time",
        f"lines = {list(lines)!r}",
        f"delay = {delay!r}",
        "while True:" if repeat_forever else "for _ in range(1):",
        "    for line in lines:",
        "        print(line, flush=True)",
        "        if delay:",
        "            time.sleep(delay)",
    ]
    if hang:
        body.append("time.sleep(60)")
    return "\n".join(body)


@pytest.fixture
def script_spawner():
    """Factory fixture: build a spawner that runs a Python script.

    The returned spawner records every request it was called with in
    ``spawner.requests``. All children are killed on teardown.
    """
    processes = []

    def _make(source, stdout=True):
        requests = []

        def spawn(request):
            requests.append(request)
            options = popen_options()
            if not stdout:
                options["stdout"] = subprocess.DEVNULL
                options["stderr"] = subprocess.DEVNULL
            proc = subprocess.Popen([sys.executable, "-u", "-c", source], **options)
            processes.append(proc)
            return proc

        spawn.requests = requests
        return spawn

    yield _make

    for proc in processes:
        if proc.poll() is None:
            proc.kill()
        proc.wait(timeout=5)
        if proc.stdout is not None:
            proc.stdout.close()


@pytest.fixture
def ping_lines():
    """Factory fixture: Linux-style ping output lines."""
    return _ping_lines


@pytest.fixture
def make_script():
    """Factory fixture: Python source that prints the given lines."""
    return _script_for

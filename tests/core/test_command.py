import subprocess
import sys

import pytest

from pingrelay.core import command
from pingrelay.core.command import (
    CREATE_NO_WINDOW,
    ProbeRequest,
    build_command,
    ensure_stdout,
    popen_options,
    spawn_probe,
    validate_address,
)
from pingrelay.core.errors import (
    InvalidAddress,
    InvalidCount,
    ProbeError,
    SpawnFailure,
    StreamUnavailable,
)


def test_build_command_unix() -> None:
    assert build_command("8.8.8.8", 4, system="Linux") == ["ping", "-c", "4", "8.8.8.8"]
    assert build_command("example.com", 2, system="Darwin") == ["ping", "-c", "2", "example.com"]


def test_build_command_windows() -> None:
    assert build_command("8.8.8.8", 4, system="Windows") == ["ping", "-n", "4", "8.8.8.8"]


def test_popen_options_capture_stdout() -> None:
    options = popen_options(system="Linux")
    assert options["stdout"] is subprocess.PIPE
    assert options["text"] is True
    assert "creationflags" not in options


def test_popen_options_windows_hide_console() -> None:
    assert popen_options(system="Windows")["creationflags"] == CREATE_NO_WINDOW == 0x08000000


@pytest.mark.parametrize("address", [
    "8.8.8.8",
    "pingtest-ams.brawlhalla.com",
    "::1",
    "fe80::1",
    "localhost",
])
def test_valid_addresses(address) -> None:
    assert validate_address(address) == address


@pytest.mark.parametrize("address", [
    "8.8.8.8; rm -rf /",
    "8.8.8.8 -f",
    "$(reboot)",
    "a/b",
    "",
    "-f",
    "--help",
])
def test_invalid_addresses(address) -> None:
    with pytest.raises(InvalidAddress):
        validate_address(address)


def test_invalid_address_is_value_error() -> None:
    with pytest.raises(ValueError):
        ProbeRequest("x", "1.1.1.1|cat", 1)


@pytest.mark.parametrize("count", [0, -1, 1.5, "4", True, None])
def test_invalid_count(count) -> None:
    with pytest.raises(InvalidCount):
        ProbeRequest("x", "1.1.1.1", count)


def test_request_is_immutable() -> None:
    request = ProbeRequest("x", "8.8.8.8", 4)
    with pytest.raises(AttributeError):
        request.count = 5


def test_spawn_failure(monkeypatch) -> None:
    monkeypatch.setattr(command, "PING_EXECUTABLE", "pingrelay-no-such-binary")
    with pytest.raises(SpawnFailure) as excinfo:
        spawn_probe(ProbeRequest("x", "127.0.0.1", 1))
    assert isinstance(excinfo.value, ProbeError)
    assert isinstance(excinfo.value.__cause__, OSError)


def test_ensure_stdout_kills_child_without_stream() -> None:
    proc = subprocess.Popen(
        [sys.executable, "-c", "import time; time.sleep(60)"],
        stdout=subprocess.DEVNULL,
    )
    with pytest.raises(StreamUnavailable):
        ensure_stdout(proc)
    assert proc.poll() is not None


def test_ensure_stdout_passthrough() -> None:
    proc = subprocess.Popen([sys.executable, "-c", "pass"], **popen_options())
    try:
        assert ensure_stdout(proc) is proc
    finally:
        proc.wait(timeout=5)
        proc.stdout.close()

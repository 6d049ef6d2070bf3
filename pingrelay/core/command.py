"""
Probe requests and the platform ping invocation.

The address is passed to ``ping`` as a literal argv element (never through a
shell), and is restricted to alphanumerics plus ``.``, ``-`` and ``:``.
"""

import platform
import subprocess
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pingrelay.logging import get_logger
logger = get_logger(__name__)

from .errors import InvalidAddress, InvalidCount, SpawnFailure, StreamUnavailable

PING_EXECUTABLE = "ping"

# subprocess.CREATE_NO_WINDOW only exists on Windows builds
CREATE_NO_WINDOW = getattr(subprocess, "CREATE_NO_WINDOW", 0x08000000)

_ALLOWED_PUNCTUATION = frozenset(".-:")


def is_windows(system: Optional[str] = None) -> bool:
    return (system or platform.system()) == "Windows"


def validate_address(address: str) -> str:
    """Return the address unchanged, or raise InvalidAddress."""
    if not isinstance(address, str) or not address:
        raise InvalidAddress(address, "Empty address")
    if not all(c.isalnum() or c in _ALLOWED_PUNCTUATION for c in address):
        raise InvalidAddress(address)
    if address.startswith("-"):
        # ping would parse it as an option
        raise InvalidAddress(address, "Address may not start with '-'")
    return address


def validate_count(count) -> int:
    if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
        raise InvalidCount(count)
    return count


@dataclass(frozen=True)
class ProbeRequest:
    """An accepted request to probe ``address`` for ``count`` cycles."""
    identifier: str
    address: str
    count: int

    def __post_init__(self):
        validate_address(self.address)
        validate_count(self.count)


def build_command(address: str, count: int, system: Optional[str] = None) -> List[str]:
    """Build the argv for the host platform's ping utility."""
    count_flag = "-n" if is_windows(system) else "-c"
    return [PING_EXECUTABLE, count_flag, str(count), address]


def popen_options(system: Optional[str] = None) -> Dict[str, Any]:
    """Keyword arguments for Popen: line-buffered text stdout, no console window."""
    options: Dict[str, Any] = {
        "stdin": subprocess.DEVNULL,
        "stdout": subprocess.PIPE,
        # stderr carries "Network is unreachable" and friends on Linux
        "stderr": subprocess.STDOUT,
        "text": True,
        "errors": "replace",
        "bufsize": 1,
    }
    if is_windows(system):
        options["creationflags"] = CREATE_NO_WINDOW
    return options


def ensure_stdout(process: subprocess.Popen) -> subprocess.Popen:
    """
    Check that the child exposes a readable stdout.

    Raises:
        StreamUnavailable: after killing and reaping the child, so it is
            never orphaned.
    """
    if process.stdout is not None:
        return process
    try:
        process.kill()
        process.wait(timeout=1.0)
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning(f"Could not reap probe without stdout (pid={process.pid}): {e}")
    raise StreamUnavailable(f"Probe process {process.pid} has no stdout")


def spawn_probe(request: ProbeRequest) -> subprocess.Popen:
    """
    Launch ping for a request.

    Raises:
        SpawnFailure: if the utility cannot be started.
    """
    argv = build_command(request.address, request.count)
    logger.debug(f"Spawning {argv} for {request.identifier}")
    try:
        return subprocess.Popen(argv, **popen_options())
    except (OSError, ValueError) as e:
        raise SpawnFailure(f"Failed to spawn {PING_EXECUTABLE}: {e}") from e

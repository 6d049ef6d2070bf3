"""Parse one line of ping output into a latency or timeout sample.

Linux/macOS: ``64 bytes from 1.1.1.1: icmp_seq=1 ttl=64 time=12.3 ms``
Windows:     ``Reply from 1.1.1.1: bytes=32 time=12ms TTL=64`` or ``time<1ms``
"""

import re
from typing import Optional, Union

from .events import LatencySample, TimeoutSample

ProbeSample = Union[LatencySample, TimeoutSample]

_DECIMAL_LATENCY = re.compile(r"time[=<](\d+\.?\d*)\s*ms")
_INTEGER_LATENCY = re.compile(r"time[=<](\d+)\s*ms")

TIMEOUT_PHRASES = (
    "request timed out",
    "request timeout",
    "100% packet loss",
    "destination host unreachable",
    "network is unreachable",
)


def parse_latency(line: str) -> Optional[float]:
    """Return the latency in milliseconds, or None if the line carries none."""
    for pattern in (_DECIMAL_LATENCY, _INTEGER_LATENCY):
        match = pattern.search(line)
        if match:
            try:
                return float(match.group(1))
            except ValueError:
                continue
    return None


def is_timeout(line: str) -> bool:
    """Case-insensitive match against the known timeout/unreachable phrases."""
    lower = line.lower()
    return any(phrase in lower for phrase in TIMEOUT_PHRASES)


def parse_line(identifier: str, line: str) -> Optional[ProbeSample]:
    """Map a line to at most one sample; latency takes precedence over timeout."""
    time_ms = parse_latency(line)
    if time_ms is not None:
        return LatencySample(identifier=identifier, time_ms=time_ms)
    if is_timeout(line):
        return TimeoutSample(identifier=identifier)
    return None

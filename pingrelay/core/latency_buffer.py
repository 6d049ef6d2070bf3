"""Per-probe latency history and summary statistics."""

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from pingrelay.logging import get_logger
from .events import EventKind, ProbeEvent

logger = get_logger(__name__)


@dataclass(frozen=True)
class LatencySummary:
    """Statistics for one probe run. Latency fields are None without samples."""
    count: int
    timeouts: int
    avg_ms: Optional[float]
    min_ms: Optional[float]
    max_ms: Optional[float]
    jitter_ms: Optional[float]
    loss_pct: float


@dataclass
class LatencyBuffer:
    """Collect the samples of a single probe identifier."""

    identifier: str
    _latencies: List[float] = field(default_factory=list, init=False, repr=False)
    _timeouts: int = field(default=0, init=False, repr=False)
    _finished: Optional[EventKind] = field(default=None, init=False, repr=False)

    def add(self, event: ProbeEvent) -> None:
        """Fold an event in; events of other identifiers are ignored."""
        if event.identifier != self.identifier:
            return

        if event.kind is EventKind.STARTED:
            self.reset()
        elif event.kind is EventKind.RESULT:
            if self._finished is not None:
                logger.warning(
                    "Sample for %s after %s", self.identifier, self._finished.value
                )
            self._latencies.append(event.time_ms)
        elif event.kind is EventKind.TIMEOUT:
            self._timeouts += 1
        else:
            self._finished = event.kind

    def reset(self) -> None:
        self._latencies.clear()
        self._timeouts = 0
        self._finished = None

    @property
    def latencies(self) -> np.ndarray:
        return np.asarray(self._latencies, dtype=float)

    @property
    def count(self) -> int:
        return len(self._latencies)

    @property
    def timeouts(self) -> int:
        return self._timeouts

    @property
    def finished(self) -> Optional[EventKind]:
        """Terminal event kind seen for the current run, if any."""
        return self._finished

    def summary(self) -> LatencySummary:
        values = self.latencies
        total = values.size + self._timeouts
        loss_pct = (self._timeouts / total) * 100.0 if total else 0.0

        if values.size == 0:
            return LatencySummary(
                count=0, timeouts=self._timeouts,
                avg_ms=None, min_ms=None, max_ms=None, jitter_ms=None,
                loss_pct=loss_pct,
            )

        jitter = float(np.mean(np.abs(np.diff(values)))) if values.size > 1 else 0.0
        return LatencySummary(
            count=int(values.size),
            timeouts=self._timeouts,
            avg_ms=float(np.mean(values)),
            min_ms=float(np.min(values)),
            max_ms=float(np.max(values)),
            jitter_ms=jitter,
            loss_pct=loss_pct,
        )

"""Errors raised synchronously by the probe supervisor."""


class ProbeError(Exception):
    """Base class for every error surfaced by ``ProbeRegistry.toggle``."""
    pass


class InvalidAddress(ProbeError, ValueError):
    """Address contains characters outside ``[A-Za-z0-9.:-]`` or is unusable."""

    def __init__(self, address: str, reason: str = "Invalid address format"):
        super().__init__(f"{reason}: {address!r}")
        self.address = address


class InvalidCount(ProbeError, ValueError):
    """Cycle count is not a positive integer."""

    def __init__(self, count):
        super().__init__(f"Cycle count must be a positive integer, got {count!r}")
        self.count = count


class SpawnFailure(ProbeError):
    """The probe utility could not be launched."""
    pass


class StreamUnavailable(ProbeError):
    """The spawned probe exposes no readable output stream."""
    pass

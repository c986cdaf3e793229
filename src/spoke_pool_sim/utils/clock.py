"""
Clock sources for timestamps and deadlines.
"""

import time


class SystemClock:
    """Wall clock, truncated to whole seconds."""

    def now(self) -> int:
        return int(time.time())


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, timestamp: int) -> None:
        self.timestamp = timestamp

    def now(self) -> int:
        return self.timestamp

    def advance(self, seconds: int) -> int:
        self.timestamp += seconds
        return self.timestamp

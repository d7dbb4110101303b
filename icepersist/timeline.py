"""
Process-wide record of completed remote I/O operations.

Every successful remote read or write reports how long its final blocking call took,
how long the whole operation took including retries, and how many bytes it moved.
Events are kept in a bounded in-memory ring so that throughput of the remote file
system can be inspected or exported without unbounded memory growth.
"""

from __future__ import annotations

import collections
from dataclasses import dataclass
from enum import Enum
import threading
import time
from typing import Deque, Dict, IO, List

from icepersist.encoding import Encoding


class Direction(Enum):
    """Direction of an I/O operation."""

    READ = "read"
    WRITE = "write"


@dataclass
class IOEvent:
    """A single completed I/O operation."""

    # Wall clock time in milliseconds at which the operation (first attempt) started
    start_ms: int

    # Duration of the final, successful attempt
    duration_ns: int

    # Duration of the whole operation including failed attempts and retry delays
    total_ms: int

    direction: str
    size: int
    medium: str


@dataclass
class IOTotals:
    """Aggregated operation count and bytes for one direction."""

    count: int = 0
    size: int = 0
    duration_ns: int = 0


class TimeLine:
    """Thread-safe, bounded collection of I/O events."""

    def __init__(self, max_events: int = 4096) -> None:
        self._events: Deque[IOEvent] = collections.deque(maxlen=max_events)
        self._totals: Dict[str, IOTotals] = collections.defaultdict(IOTotals)
        self._lock = threading.Lock()
        self._encoding = Encoding(IOEvent)

    def record_io(
        self,
        start_ns: int,
        start_io_ms: int,
        direction: Direction,
        size: int,
        medium: str,
    ) -> IOEvent:
        """
        Record a completed I/O operation.

        The start_ns timestamp is a time.monotonic_ns() value taken right before the
        successful attempt and start_io_ms a wall clock timestamp taken before the
        first attempt.
        """
        event = IOEvent(
            start_ms=start_io_ms,
            duration_ns=time.monotonic_ns() - start_ns,
            total_ms=int(time.time() * 1000) - start_io_ms,
            direction=direction.value,
            size=size,
            medium=medium,
        )

        with self._lock:
            self._events.append(event)

            totals = self._totals[event.direction]
            totals.count += 1
            totals.size += event.size
            totals.duration_ns += event.duration_ns

        return event

    def snapshot(self) -> List[IOEvent]:
        """Return the retained events, oldest first."""
        with self._lock:
            return list(self._events)

    def totals(self) -> Dict[str, IOTotals]:
        """Return totals per direction since creation, including evicted events."""
        with self._lock:
            return {
                direction: IOTotals(t.count, t.size, t.duration_ns)
                for direction, t in self._totals.items()
            }

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
            self._totals.clear()

    def pack(self) -> bytes:
        """Serialize the retained events with MessagePack."""
        return self._encoding.pack(self.snapshot())

    def unpack(self, data: bytes) -> List[IOEvent]:
        return self._encoding.unpack(data)

    def dump_json(self, fp: IO[str]) -> None:
        self._encoding.dump_json(self.snapshot(), fp)


# Default telemetry sink shared by the whole process
timeline = TimeLine()

# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# queues.py
# -----------------------------------------------------------------------------
# Purpose:
#   The two queues the kernel is built on: the Future Event List (a min-heap
#   of process resumptions) and the FIFO wait queue of a resource pool.
#
# Design notes:
#   - Events order on (time, sequence). The sequence is a per-list insertion
#     counter, so two resumptions due at the same instant come back in the
#     order they were scheduled. Without it heapq gives no stable order.
#   - pop_next() is the only place the clock moves.
#
# Usage:
#   from dessim.queues import Event, EventList, Request, WaitQueue
# -----------------------------------------------------------------------------

from __future__ import annotations
import heapq
import itertools
import math
from collections import deque
from typing import Any, Deque, Iterator, List, Optional

from .errors import SchedulingError
from .timing import Clock


class Event:
    """Scheduled resumption of a process on the Future Event List (FEL)."""
    __slots__ = ("time", "sequence", "process")

    def __init__(self, time: float, sequence: int, process: Any):
        self.time = time; self.sequence = sequence; self.process = process

    def __lt__(self, other: "Event"):
        return (self.time, self.sequence) < (other.time, other.sequence)

    def __repr__(self):
        return f"Event(t={self.time}, seq={self.sequence}, process={getattr(self.process, 'id', self.process)})"


class EventList:
    """Time-ordered queue of pending process resumptions.

    Attributes
    ----------
    clock : Clock
        Shared simulation clock; advanced by pop_next().
    FEL : list[Event]
        Min-heap of scheduled events.
    """
    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock if clock is not None else Clock()
        self.FEL: List[Event] = []
        self._seq = itertools.count()

    def schedule(self, process: Any, delay: float = 0.0) -> Event:
        if not 0 <= delay < math.inf:
            raise SchedulingError(
                f"Delay {delay} must be finite and non-negative (now={self.clock.now})",
                process=process, time=self.clock.now,
            )
        ev = Event(self.clock.now + delay, next(self._seq), process)
        heapq.heappush(self.FEL, ev)
        return ev

    def pop_next(self) -> Optional[Event]:
        """Remove the earliest event and move the clock to its time.

        Returns None when nothing is scheduled.
        """
        if not self.FEL:
            return None
        ev = heapq.heappop(self.FEL)
        self.clock.advance_to(ev.time)
        return ev

    def peek(self) -> Optional[Event]:
        return self.FEL[0] if self.FEL else None

    def __len__(self):
        return len(self.FEL)

    def __bool__(self):
        return bool(self.FEL)


class Request:
    """A pending demand for pool units; lives only while its process waits."""
    __slots__ = ("process", "units", "enqueue_order", "enqueued_at")

    def __init__(self, process: Any, units: int, enqueue_order: int, enqueued_at: float):
        self.process = process
        self.units = units
        self.enqueue_order = enqueue_order
        self.enqueued_at = enqueued_at

    def __repr__(self):
        return f"Request({getattr(self.process, 'id', self.process)}, units={self.units}, order={self.enqueue_order})"


class WaitQueue:
    """Strict FIFO of blocked requests. No removal other than from the head."""
    def __init__(self):
        self._items: Deque[Request] = deque()
        self._order = itertools.count()

    def append(self, process: Any, units: int, now: float) -> Request:
        req = Request(process, units, next(self._order), now)
        self._items.append(req)
        return req

    def head(self) -> Optional[Request]:
        return self._items[0] if self._items else None

    def popleft(self) -> Request:
        return self._items.popleft()

    def __len__(self):
        return len(self._items)

    def __iter__(self) -> Iterator[Request]:
        return iter(self._items)

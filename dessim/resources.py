# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# resources.py
# -----------------------------------------------------------------------------
# Purpose:
#   ResourcePool: a fixed-capacity, multi-unit shared resource (the "Res"
#   construct) with atomic acquire/release and a strict FIFO wait queue.
#
# Design notes:
#   - Head-of-line blocking: release() grants from the head of the queue and
#     stops at the first request that does not fit. Smaller requests further
#     back are never served ahead of it, so no request starves.
#   - A newcomer is only granted immediately when nobody is waiting; it
#     would otherwise overtake the blocked head.
#   - Granted waiters are put back on the event list at the current time;
#     they resume on a later Scheduler cycle, in grant order.
#   - Statistics integrate busy units and queue length over time, the same
#     way Server._mark_busy integrated busy servers in the queueing model.
#
# Usage:
#   berths = sim.create_pool("Berths", 8)
#   yield self.acquire(berths, 3)
#   self.release(berths, 3)
# -----------------------------------------------------------------------------

from __future__ import annotations
import logging
from typing import Any, Dict, List

from .errors import InvalidRequestError, ResourceIntegrityError
from .process import ProcessState
from .queues import Request, WaitQueue

logger = logging.getLogger(__name__)


def _is_units(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class ResourcePool:
    """Finite pool of identical units shared by processes.

    Parameters
    ----------
    sim : Simulation
        Owning simulation; supplies the clock and the event list.
    name : str
        Pool name for logging/metrics.
    capacity : int
        Number of units, > 0.

    Notes
    -----
    Invariant: 0 <= available <= capacity and
    capacity - available == sum of units held by live grants.
    """
    def __init__(self, sim, name: str, capacity: int):
        if not _is_units(capacity) or capacity <= 0:
            raise ValueError(f"Pool {name!r} needs a positive integer capacity, got {capacity!r}")
        self.sim = sim
        self.name = name
        self.capacity = capacity
        self._available = capacity
        self.queue = WaitQueue()
        self._held: Dict[Any, int] = {}

        # Statistics
        self.users = 0                 # grants made
        self.refused = 0               # requests that had to queue
        self.zero_waits = 0
        self.max_queue_length = 0
        self.total_wait = 0.0
        self.max_wait = 0.0
        self.busy_unit_time = 0.0
        self.queue_time = 0.0
        self.t_start = sim.now
        self.last_change = sim.now
        self._prev_in_use = 0
        self._prev_queue_len = 0

    def __repr__(self):
        return f"<ResourcePool {self.name} {self._available}/{self.capacity} queued={len(self.queue)}>"

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------
    @property
    def available(self) -> int:
        return self._available

    @property
    def in_use(self) -> int:
        return self.capacity - self._available

    @property
    def queue_length(self) -> int:
        return len(self.queue)

    @property
    def holdings(self) -> Dict[str, int]:
        return {p.id: u for p, u in self._held.items()}

    @property
    def waiting(self) -> List[Request]:
        return list(self.queue)

    def held_by(self, process) -> int:
        return self._held.get(process, 0)

    # ------------------------------------------------------------------
    # Acquire / release
    # ------------------------------------------------------------------
    def validate(self, process, units: int):
        """Reject unit counts the pool can never satisfy."""
        if not _is_units(units) or units < 1 or units > self.capacity:
            raise InvalidRequestError(
                f"{getattr(process, 'id', process)} requested {units!r} units from {self.name} "
                f"(capacity {self.capacity})",
                process=process, time=self.sim.now,
            )

    def acquire(self, process, units: int) -> bool:
        """Take ``units`` for ``process``.

        Returns True when granted on the spot (the caller keeps running),
        False when the request was parked in the wait queue.
        """
        self.validate(process, units)
        now = self.sim.now
        if not self.queue and self._available >= units:
            self._grant(process, units, waited=0.0)
            logger.debug("t=%.3f %s took %d from %s (available=%d)", now, process.id, units, self.name, self._available)
            return True
        req = self.queue.append(process, units, now)
        self.refused += 1
        process.state = ProcessState.WAITING
        self.max_queue_length = max(self.max_queue_length, len(self.queue))
        self._mark(now)
        logger.debug("t=%.3f %s queued for %d at %s (order=%d, queue=%d)",
                     now, process.id, units, self.name, req.enqueue_order, len(self.queue))
        return False

    def release(self, process, units: int):
        """Give back ``units`` held by ``process`` and serve the queue head-first."""
        held = self._held.get(process, 0)
        if not _is_units(units) or units < 1 or units > held:
            raise ResourceIntegrityError(
                f"{getattr(process, 'id', process)} tried to release {units!r} units to {self.name} "
                f"but holds {held}",
                process=process, time=self.sim.now,
            )
        now = self.sim.now
        self._available += units
        if units == held:
            del self._held[process]
        else:
            self._held[process] = held - units
        self._mark(now)
        logger.debug("t=%.3f %s returned %d to %s (available=%d)", now, process.id, units, self.name, self._available)
        self._drain(now)

    def _drain(self, now: float):
        while self.queue:
            head = self.queue.head()
            if head.units > self._available:
                break
            req = self.queue.popleft()
            self._grant(req.process, req.units, waited=now - req.enqueued_at)
            self.sim._resume_granted(req.process)
            logger.debug("t=%.3f %s granted %d from %s after %.3f",
                         now, req.process.id, req.units, self.name, now - req.enqueued_at)

    def _grant(self, process, units: int, waited: float):
        self._available -= units
        self._held[process] = self._held.get(process, 0) + units
        self.users += 1
        self.total_wait += waited
        self.max_wait = max(self.max_wait, waited)
        if waited <= 0.0:
            self.zero_waits += 1
        self._mark(self.sim.now)

    # ------------------------------------------------------------------
    # Invariants and statistics
    # ------------------------------------------------------------------
    def check_invariants(self):
        if not 0 <= self._available <= self.capacity:
            raise ResourceIntegrityError(f"{self.name}: available={self._available} outside [0, {self.capacity}]")
        held = sum(self._held.values())
        if self.capacity - self._available != held:
            raise ResourceIntegrityError(
                f"{self.name}: capacity-available={self.capacity - self._available} but grants hold {held}"
            )

    def _mark(self, now: float):
        # Integrate busy units and queue length since the last change
        dt = now - self.last_change
        if dt > 0:
            self.busy_unit_time += self._prev_in_use * dt
            self.queue_time += self._prev_queue_len * dt
        self.last_change = now
        self._prev_in_use = self.in_use
        self._prev_queue_len = len(self.queue)

    def stats(self, now: float | None = None) -> Dict[str, float]:
        """JSON-serialisable summary up to ``now`` (defaults to the clock)."""
        now = self.sim.now if now is None else now
        tail = max(now - self.last_change, 0.0)
        busy = self.busy_unit_time + self._prev_in_use * tail
        queued = self.queue_time + self._prev_queue_len * tail
        elapsed = now - self.t_start
        return {
            "capacity": self.capacity,
            "available": self._available,
            "queue_length": len(self.queue),
            "users": self.users,
            "refused": self.refused,
            "zero_waits": self.zero_waits,
            "max_queue_length": self.max_queue_length,
            "avg_queue_length": queued / elapsed if elapsed > 0 else 0.0,
            "utilization": busy / (self.capacity * elapsed) if elapsed > 0 else 0.0,
            "avg_wait": self.total_wait / self.users if self.users else 0.0,
            "max_wait": self.max_wait,
        }

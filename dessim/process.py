# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# process.py
# -----------------------------------------------------------------------------
# Purpose:
#   Simulation processes: named units of resumable logic whose life cycle is
#   a generator. A process suspends itself by yielding a command, either
#   Hold (time delay) or Acquire (resource wait), and is resumed only by the
#   Simulation run loop.
#
# Design notes:
#   - The suspended generator object is the process's resumption point.
#     The event list or a pool's wait queue holds the process while it is
#     suspended; nothing else calls into the generator.
#   - hold()/acquire() validate eagerly so a bad delay or unit count raises
#     in the process's own frame, which makes the error fatal to that
#     process only.
#   - release() is not a suspension point and runs immediately.
#
# Usage:
#   class Ship(Process):
#       def life_cycle(self):
#           yield self.acquire(berths, 2)
#           yield self.hold(5.0)
#           self.release(berths, 2)
# -----------------------------------------------------------------------------

from __future__ import annotations
import inspect
import math
from enum import Enum
from typing import Any, Callable, Generator, Optional

from .errors import SchedulingError, SimulationError


class ProcessState(Enum):
    CREATED = "created"
    SCHEDULED = "scheduled"
    RUNNING = "running"
    WAITING = "waiting"
    TERMINATED = "terminated"


class Hold:
    """Yielded by a process to resume itself ``delay`` time units later."""
    __slots__ = ("delay",)

    def __init__(self, delay: float):
        self.delay = delay

    def __repr__(self):
        return f"Hold({self.delay})"


class Acquire:
    """Yielded by a process to take ``units`` from ``pool``, waiting if needed."""
    __slots__ = ("pool", "units")

    def __init__(self, pool: Any, units: int):
        self.pool = pool
        self.units = units

    def __repr__(self):
        return f"Acquire({getattr(self.pool, 'name', self.pool)}, {self.units})"


LifeCycle = Callable[["Process"], Optional[Generator[Any, Any, Any]]]


class Process:
    """A named, independently resumable unit of simulation logic.

    Parameters
    ----------
    sim : Simulation
        Owning simulation context. The process registers itself there.
    name : str
        Display name; need not be unique. ``id`` is unique per simulation.
    life_cycle : callable, optional
        Generator function taking the process. If omitted, subclasses
        override ``life_cycle()``.
    show_in_trace : bool
        Whether trace_note()/debug_note() reach the trace sink.
    """
    def __init__(self, sim, name: str = "Process", life_cycle: Optional[LifeCycle] = None,
                 show_in_trace: bool = True):
        self.sim = sim
        self.name = name
        self.show_in_trace = show_in_trace
        self.state = ProcessState.CREATED
        self.error: Optional[SimulationError] = None
        self._life_cycle_fn = life_cycle
        self._gen: Optional[Generator[Any, Any, Any]] = None
        self.id = sim.register(self)

    def __repr__(self):
        return f"<{type(self).__name__} {self.id} {self.state.value}>"

    # ------------------------------------------------------------------
    # Life cycle
    # ------------------------------------------------------------------
    def life_cycle(self):
        if self._life_cycle_fn is None:
            raise SchedulingError(f"{type(self).__name__} defines no life cycle", process=self)
        return self._life_cycle_fn(self)

    @property
    def has_life_cycle(self) -> bool:
        """True when a life_cycle function was given or a subclass overrides life_cycle()."""
        return self._life_cycle_fn is not None or type(self).life_cycle is not Process.life_cycle

    def resume(self, value: Any = None) -> Any:
        """Run until the next yielded command. Called by the Simulation only.

        Raises StopIteration when the life cycle is over.
        """
        if self._gen is None:
            gen = self.life_cycle()
            if not inspect.isgenerator(gen):
                # Plain function: its whole body already ran.
                raise StopIteration
            self._gen = gen
            return next(gen)
        return self._gen.send(value)

    def throw(self, exc: BaseException) -> Any:
        """Raise ``exc`` at the process's current suspension point."""
        if self._gen is None:
            raise exc
        return self._gen.throw(exc)

    @property
    def is_terminated(self) -> bool:
        return self.state is ProcessState.TERMINATED

    # ------------------------------------------------------------------
    # Primitives exposed to process-authoring code
    # ------------------------------------------------------------------
    def activate(self, delay: float = 0.0):
        """Put a freshly created process on the event list."""
        self.sim.activate(self, delay)
        return self

    def hold(self, delay: float) -> Hold:
        if not 0 <= delay < math.inf:
            raise SchedulingError(f"{self.id}: hold({delay}) needs a finite non-negative delay", process=self, time=self.sim.now)
        return Hold(delay)

    def acquire(self, pool, units: int) -> Acquire:
        pool.validate(self, units)
        return Acquire(pool, units)

    def release(self, pool, units: int):
        pool.release(self, units)

    def held_units(self, pool) -> int:
        return pool.held_by(self)

    # ------------------------------------------------------------------
    # Trace
    # ------------------------------------------------------------------
    def trace_note(self, message: str):
        if self.show_in_trace:
            self.sim.trace.note(self.sim.now, self.id, message)

    def debug_note(self, message: str):
        if self.show_in_trace:
            self.sim.trace.debug(self.sim.now, self.id, message)

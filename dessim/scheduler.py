# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# scheduler.py
# -----------------------------------------------------------------------------
# Purpose:
#   Simulation: the explicit context object that owns the clock, the event
#   list, the pools, the processes and the trace sink, and the single
#   threaded run loop that drives every process state transition.
#
# Design notes:
#   - Lifecycle is init() -> run() -> finish(). There is no module-level
#     mutable state; processes and models receive the Simulation.
#   - Exactly one process is RUNNING at a time (`current`). All mutation of
#     the event list and pools happens on this loop's stack.
#   - A process runs until it yields Hold (rescheduled), yields an Acquire
#     that cannot be granted (parked in the pool's queue), or finishes. An
#     Acquire granted on the spot resumes the same process within the step.
#   - A waiting process is woken only by the pool that grants its request;
#     schedule() reschedules the running process and nothing else.
#   - SimulationError escaping a process terminates that process only; it
#     is logged, reported to the trace sink and the loop continues.
#   - The stop condition is checked before every pop. Stopping leaves
#     scheduled and waiting processes suspended; no cleanup is done.
#
# Usage:
#   sim = Simulation(ExperimentConfig(stop_time=1500))
#   berths = sim.create_pool("Berths", 8)
#   Process(sim, "Ship", life_cycle=ship).activate()
#   sim.run()
#   sim.finish()
# -----------------------------------------------------------------------------

from __future__ import annotations
import logging
import math
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Tuple

from .config import ExperimentConfig
from .errors import SchedulingError, SimulationError
from .process import Acquire, Hold, Process, ProcessState
from .queues import Event, EventList
from .resources import ResourcePool
from .timing import Clock
from .trace import TraceRecord, TraceSink

logger = logging.getLogger(__name__)

StopCondition = Callable[["Simulation"], bool]
Observer = Callable[["Simulation"], None]


class Simulation:
    """Simulation context and scheduler.

    Attributes
    ----------
    clock : Clock
        Current simulation time, advanced only by the event list.
    events : EventList
        Future Event List of process resumptions.
    trace : TraceSink
        Collaborator receiving trace notes and error diagnostics.
    pools : dict[str, ResourcePool]
        Pools created through create_pool().
    processes : list[Process]
        Every process registered with this simulation, in creation order.
    failures : list[tuple[Process, SimulationError]]
        Processes terminated by a SimulationError, with the error.
    """
    def __init__(self, config: Optional[ExperimentConfig] = None, trace: Optional[TraceSink] = None,
                 start_time: float = 0.0):
        self.config = config if config is not None else ExperimentConfig()
        self.clock = Clock(start_time)
        self.events = EventList(self.clock)
        self.trace = trace if trace is not None else TraceSink(self.config.trace_window, self.config.debug_window)
        self.pools: Dict[str, ResourcePool] = {}
        self.processes: List[Process] = []
        self.failures: List[Tuple[Process, SimulationError]] = []
        self.current: Optional[Process] = None
        self.dispatched = 0
        self._name_counts: Dict[str, int] = defaultdict(int)
        self._observers: List[Observer] = []
        self._initialised = False
        self._finished = False

    @property
    def now(self) -> float:
        return self.clock.now

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------
    def register(self, process: Process) -> str:
        """Record a new process and hand out its unique id."""
        self._name_counts[process.name] += 1
        self.processes.append(process)
        return f"{process.name}#{self._name_counts[process.name]}"

    def create_pool(self, name: str, capacity: int) -> ResourcePool:
        if name in self.pools:
            raise ValueError(f"Pool {name!r} already exists")
        pool = ResourcePool(self, name, capacity)
        self.pools[name] = pool
        return pool

    def add_observer(self, fn: Observer):
        """Call ``fn(sim)`` after every dispatched event. Observers must not mutate."""
        self._observers.append(fn)

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------
    def activate(self, process: Process, delay: float = 0.0) -> Event:
        """The only way a new process enters the event list."""
        if process.sim is not self:
            raise SchedulingError(f"{process.id} belongs to another simulation", process=process, time=self.now)
        if process.state is not ProcessState.CREATED:
            raise SchedulingError(
                f"{process.id} cannot be activated while {process.state.value}", process=process, time=self.now
            )
        if not process.has_life_cycle:
            raise SchedulingError(f"{process.id} has no life cycle to run", process=process, time=self.now)
        return self._enqueue(process, delay)

    def schedule(self, process: Process, delay: float) -> Event:
        """Resume the running process ``delay`` from now, as a hold does."""
        if process.state is not ProcessState.RUNNING:
            raise SchedulingError(
                f"{process.id} cannot be rescheduled while {process.state.value}", process=process, time=self.now
            )
        return self._enqueue(process, delay)

    def _resume_granted(self, process: Process) -> Event:
        """Wake a process whose queued pool request was just granted."""
        if process.state is not ProcessState.WAITING:
            raise SchedulingError(
                f"{process.id} was granted units while {process.state.value}", process=process, time=self.now
            )
        return self._enqueue(process, 0.0)

    def _enqueue(self, process: Process, delay: float) -> Event:
        ev = self.events.schedule(process, delay)
        process.state = ProcessState.SCHEDULED
        return ev

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def init(self):
        if self._initialised:
            return
        self._initialised = True
        logger.info("Simulation init at t=%.3f (stop_time=%s)", self.now, self.config.stop_time)

    def run(self, until: Optional[float] = None, stop_condition: Optional[StopCondition] = None) -> int:
        """Dispatch events until the list empties or the stop condition holds.

        Parameters
        ----------
        until : float, optional
            Deadline; defaults to config.stop_time. Events due exactly at the
            deadline still run. On a deadline halt the clock moves to it.
        stop_condition : callable, optional
            Predicate checked before each pop; True halts the loop.

        Returns
        -------
        int
            Number of events dispatched by this call.
        """
        if self._finished:
            raise RuntimeError("Simulation already finished")
        self.init()
        if until is None:
            until = self.config.stop_time
        count = 0
        while True:
            if stop_condition is not None and stop_condition(self):
                logger.info("Stop condition met at t=%.3f", self.now)
                break
            nxt = self.events.peek()
            if nxt is None or nxt.time > until:
                if math.isfinite(until) and until > self.now:
                    self.clock.advance_to(until)
                break
            ev = self.events.pop_next()
            self._dispatch(ev.process)
            count += 1
            for fn in self._observers:
                fn(self)
        self.dispatched += count
        return count

    def finish(self) -> List[TraceRecord]:
        """End the run and flush the trace sink, returning its records.

        Suspended processes stay suspended.
        """
        if self._finished:
            return []
        self._finished = True
        suspended = sum(
            1 for p in self.processes if p.state in (ProcessState.SCHEDULED, ProcessState.WAITING)
        )
        logger.info(
            "Simulation finished at t=%.3f: %d events, %d processes left suspended, %d failed",
            self.now, self.dispatched, suspended, len(self.failures),
        )
        return self.trace.flush()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------
    def _dispatch(self, process: Process):
        self.current = process
        process.state = ProcessState.RUNNING
        logger.debug("t=%.3f resume %s", self.now, process.id)
        try:
            self._step(process)
        finally:
            self.current = None

    def _step(self, process: Process):
        pending: Optional[BaseException] = None
        while True:
            try:
                if pending is not None:
                    exc, pending = pending, None
                    command = process.throw(exc)
                else:
                    command = process.resume()
            except StopIteration:
                process.state = ProcessState.TERMINATED
                logger.debug("t=%.3f %s terminated", self.now, process.id)
                return
            except SimulationError as exc:
                self._fail(process, exc)
                return

            try:
                if isinstance(command, Hold):
                    self.schedule(process, command.delay)
                    return
                if isinstance(command, Acquire):
                    if command.pool.acquire(process, command.units):
                        process.state = ProcessState.RUNNING
                        continue
                    return
            except SimulationError as exc:
                # Raise it where the process asked, so it fails in its own frame
                pending = exc
                continue
            pending = SchedulingError(
                f"{process.id} yielded {command!r}; expected hold() or acquire()", process=process, time=self.now
            )

    def _fail(self, process: Process, exc: SimulationError):
        process.state = ProcessState.TERMINATED
        process.error = exc
        if exc.process is None:
            exc.process = process
        if exc.time is None:
            exc.time = self.now
        self.failures.append((process, exc))
        logger.warning("t=%.3f %s terminated by %s: %s", self.now, process.id, type(exc).__name__, exc)
        self.trace.error(self.now, process.id, f"{type(exc).__name__}: {exc}")

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------
    @property
    def suspended(self) -> List[Process]:
        return [p for p in self.processes if p.state in (ProcessState.SCHEDULED, ProcessState.WAITING)]

    def processes_in(self, state: ProcessState) -> List[Process]:
        return [p for p in self.processes if p.state is state]

    def summary(self) -> Dict[str, Any]:
        return {
            "now": self.now,
            "events_dispatched": self.dispatched,
            "processes": len(self.processes),
            "terminated": len(self.processes_in(ProcessState.TERMINATED)),
            "suspended": len(self.suspended),
            "failed": len(self.failures),
            "pools": {name: pool.stats(self.now) for name, pool in self.pools.items()},
        }

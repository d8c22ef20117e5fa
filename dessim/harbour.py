# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# harbour.py
# -----------------------------------------------------------------------------
# Purpose:
#   Example model: the quay of a container terminal with N equal berths.
#   Ships arrive, each needs 1..3 berths depending on its size, waits in the
#   berth pool's queue when the quay is full, unloads, then leaves.
#
# Design notes:
#   - HarbourModel owns the random streams and the berth pool; processes
#     reach them through the model they were created with.
#   - Unloading time is one normal sample (clamped at zero) times the ship
#     size, as in the original quay model.
#   - Config times are in sim.time_unit and converted to clock units here.
#
# Usage:
#   model = HarbourModel(sim, cfg, metrics)
#   model.do_initial_schedules()
# -----------------------------------------------------------------------------

from __future__ import annotations
from typing import Dict, Optional

from .process import Process
from .streams import StreamFactory

DEFAULTS = {
    "num_berths": 8,
    "ship_size": [1, 3],            # berths per ship, inclusive
    "arrival_mean": 3.0,            # mean inter-arrival time
    "service_mean": 1.0,            # unloading time per berth
    "service_stdev": 6.0,
}


class Ship(Process):
    """A container ship: request berths, unload, release, depart."""
    def __init__(self, sim, model: "HarbourModel", name: str = "Ship"):
        super().__init__(sim, name, show_in_trace=model.trace_ships)
        self.model = model
        self.size = model.ship_size()
        self.t_arrived: Optional[float] = None
        self.t_docked: Optional[float] = None
        self.t_departed: Optional[float] = None

    def life_cycle(self):
        model = self.model
        self.t_arrived = self.sim.now
        model.note("arrival", self)
        yield self.acquire(model.berths, self.size)

        self.t_docked = self.sim.now
        model.note("docked", self)
        self.trace_note(f"is docked at {self.size} berth(s) and gets unloaded")
        yield self.hold(model.service_time() * self.size)

        self.release(model.berths, self.size)
        self.t_departed = self.sim.now
        model.note("departure", self)
        self.trace_note("departs for the Baltic Sea")


class ShipGenerator(Process):
    """Process source: creates a ship, activates it, waits for the next one."""
    def __init__(self, sim, model: "HarbourModel", name: str = "ShipGenerator"):
        super().__init__(sim, name)
        self.model = model
        self.generated = 0

    def life_cycle(self):
        while True:
            Ship(self.sim, self.model).activate()
            self.generated += 1
            yield self.hold(self.model.ship_arrival_time())


class HarbourModel:
    """Berth allocation model.

    Parameters
    ----------
    sim : Simulation
        Simulation context; its config supplies seed and time units.
    cfg : dict
        Parsed YAML config; reads the optional ``harbour`` section.
    metrics : Metrics, optional
        Receives note_arrival / note_docked / note_departure callbacks.
    """
    def __init__(self, sim, cfg: Optional[Dict] = None, metrics=None):
        self.sim = sim
        params = dict(DEFAULTS)
        params.update((cfg or {}).get("harbour", {}) or {})
        self.params = params
        self.metrics = metrics
        self.trace_ships = bool(params.get("trace_ships", True))

        exp = sim.config
        lo, hi = params["ship_size"]
        self.size_range = (int(lo), int(hi))
        self.arrival_mean = exp.to_reference(params["arrival_mean"])
        self.service_mean = exp.to_reference(params["service_mean"])
        self.service_stdev = exp.to_reference(params["service_stdev"])
        if self.arrival_mean <= 0:
            raise ValueError(f"arrival_mean must be > 0, got {params['arrival_mean']}")

        streams = StreamFactory(exp.seed)
        self.ship_size_stream = streams.stream("ship size")
        self.ship_arrival_stream = streams.stream("ship arrival")
        self.service_time_stream = streams.stream("service time")

        self.berths = sim.create_pool("Berths", int(params["num_berths"]))
        if metrics is not None:
            metrics.attach_pool(self.berths)

    def ship_size(self) -> int:
        return self.ship_size_stream.sample_uniform_int(*self.size_range)

    def ship_arrival_time(self) -> float:
        return self.ship_arrival_stream.sample_exponential(1.0 / self.arrival_mean)

    def service_time(self) -> float:
        return self.service_time_stream.sample_normal(self.service_mean, self.service_stdev, non_negative=True)

    def note(self, kind: str, ship: Ship):
        if self.metrics is None:
            return
        getattr(self.metrics, f"note_{kind}")(ship, self.sim.now)

    def do_initial_schedules(self) -> ShipGenerator:
        gen = ShipGenerator(self.sim, self)
        gen.activate(self.ship_arrival_time())
        return gen

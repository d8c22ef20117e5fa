# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# simulation.py
# -----------------------------------------------------------------------------
# Purpose:
#   Simulate a single replication of the harbour model: build the context,
#   the berth pool and the ship source, run the event loop up to the stop
#   time, and return metrics.
#
# Design notes:
#   - Replication control (seeds, scenarios, CIs) lives in experiments/.
#   - The progress reporter is an observer; it only reads the clock.
#
# Usage:
#   from dessim.simulation import run_one_replication
#   results = run_one_replication(cfg)
# -----------------------------------------------------------------------------

from __future__ import annotations
import logging
import math
from typing import Dict

from .config import ExperimentConfig
from .errors import ConfigError
from .harbour import HarbourModel
from .metrics import Metrics
from .scheduler import Simulation
from .trace import TraceSink

logger = logging.getLogger(__name__)


class ProgressReporter:
    """Logs a line each time the clock crosses another ``step`` share of stop_time."""
    def __init__(self, stop_time: float, step: float = 0.1):
        self.stop_time = stop_time
        self.step = step
        self._next = step

    def __call__(self, sim: Simulation):
        if not math.isfinite(self.stop_time) or self.stop_time <= 0:
            return
        frac = sim.now / self.stop_time
        if frac < self._next:
            return
        while self._next <= frac:
            self._next += self.step
        logger.info("progress %3.0f%% (t=%.1f of %.1f)", min(frac, 1.0) * 100.0, sim.now, self.stop_time)


def build(cfg: Dict):
    """Create (sim, model, metrics) for one replication without running it."""
    exp = ExperimentConfig.from_dict(cfg)
    if not math.isfinite(exp.stop_time):
        # The ship source never stops on its own
        raise ConfigError("sim.stop_time is required for the harbour model")
    maxlen = cfg.get("sim", {}).get("trace_maxlen")
    sim = Simulation(exp, trace=TraceSink(exp.trace_window, exp.debug_window, maxlen=maxlen))
    warmup = exp.to_reference(cfg.get("sim", {}).get("warmup", 0.0))
    M = Metrics(cfg, warmup=warmup)
    model = HarbourModel(sim, cfg, M)
    if exp.progress_display:
        sim.add_observer(ProgressReporter(exp.stop_time))
    return sim, model, M


def run_one_replication(cfg: Dict) -> Dict:
    sim, model, M = build(cfg)
    sim.init()
    model.do_initial_schedules()
    sim.run()
    sim.finish()
    return M.summary(sim)

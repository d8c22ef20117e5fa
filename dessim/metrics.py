# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# metrics.py
# -----------------------------------------------------------------------------
# Purpose:
#   Collect and summarize KPIs of the harbour model: ship counts, berth
#   waits, time in port, berth pool statistics and an occupancy time series.
#
# Design notes:
#   - Keep side-effect methods (note_*) for instrumentation from the model.
#   - Samples before the warm-up cut-off are only used for the raw time
#     series, never for the KPIs.
#   - Summaries return JSON-serializable dicts for easy tabulation.
#
# Usage:
#   M = Metrics(cfg); M.summary(sim)
# -----------------------------------------------------------------------------

from __future__ import annotations
import math
from typing import Any, Dict, List, Optional


class Metrics:
    def __init__(self, cfg: Optional[dict] = None, warmup: float = 0.0):
        self.cfg = cfg or {}
        self.warmup = warmup
        self.pool = None
        self.arrived = 0
        self.docked = 0
        self.departed = 0
        self.wait_samples: List[float] = []   # berth waits of ships docked after warm-up
        self.port_time_total = 0.0            # arrival -> departure, summed
        self.size_counts: Dict[int, int] = {}
        # Raw (incl. warm-up) occupancy points for plots
        self.time_series: List[Dict[str, float]] = []

    def _active(self, t: float) -> bool:
        """Return True if t is beyond the warm-up period."""
        return t >= self.warmup

    def attach_pool(self, pool):
        self.pool = pool

    def note_arrival(self, ship, t: float):
        self._record_time_series(t)
        if not self._active(t):
            return
        self.arrived += 1
        self.size_counts[ship.size] = self.size_counts.get(ship.size, 0) + 1

    def note_docked(self, ship, t: float):
        self._record_time_series(t)
        if not self._active(t):
            return
        self.docked += 1
        if ship.t_arrived is not None:
            self.wait_samples.append(max(t - ship.t_arrived, 0.0))

    def note_departure(self, ship, t: float):
        self._record_time_series(t)
        if not self._active(t):
            return
        self.departed += 1
        if ship.t_arrived is not None:
            self.port_time_total += max(t - ship.t_arrived, 0.0)

    def _record_time_series(self, t: float):
        if self.pool is None:
            return
        self.time_series.append({
            "time": t,
            "in_use": self.pool.in_use,
            "queue_length": self.pool.queue_length,
        })

    def summary(self, sim=None) -> Dict[str, Any]:
        waits = sorted(self.wait_samples)
        p90 = 0.0
        if waits:
            idx = int(math.ceil(0.9 * len(waits))) - 1
            p90 = waits[max(0, min(idx, len(waits) - 1))]
        out: Dict[str, Any] = {
            "ships_arrived": self.arrived,
            "ships_docked": self.docked,
            "ships_departed": self.departed,
            "avg_berth_wait": sum(waits) / len(waits) if waits else 0.0,
            "max_berth_wait": waits[-1] if waits else 0.0,
            "p90_berth_wait": p90,
            "zero_wait_share": (sum(1 for w in waits if w <= 0.0) / len(waits)) if waits else 0.0,
            "avg_time_in_port": self.port_time_total / self.departed if self.departed else 0.0,
            "ships_by_size": dict(sorted(self.size_counts.items())),
            "time_series": list(self.time_series),
        }
        if self.pool is not None:
            now = sim.now if sim is not None else None
            out["berths"] = self.pool.stats(now)
        if sim is not None:
            out["end_time"] = sim.now
            out["events_dispatched"] = sim.dispatched
            out["failed_processes"] = len(sim.failures)
            out["ships_waiting_at_end"] = self.pool.queue_length if self.pool is not None else 0
        return out

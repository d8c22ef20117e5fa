# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# config.py
# -----------------------------------------------------------------------------
# Purpose:
#   Load the YAML experiment configuration, merge scenario overrides and
#   extract the read-only ExperimentConfig the kernel consumes.
#
# Design notes:
#   - The raw config stays a plain dict (models read their own sections);
#     only the `sim:` section is typed, because the kernel reads it.
#   - Times in YAML are given in `sim.time_unit` and converted once into
#     `sim.reference_unit`, the unit of the simulation clock.
#   - The kernel only interprets stop_time. The windows go to the trace
#     sink and progress_display to the progress reporter.
#
# Usage:
#   cfg = load_cfg()
#   exp = ExperimentConfig.from_dict(cfg)
# -----------------------------------------------------------------------------

from __future__ import annotations
import copy
import math
import os
from dataclasses import dataclass, field
from typing import Dict, Optional

import yaml

from .errors import ConfigError
from .timing import TimeUnit, TimeWindow, to_reference

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
DEFAULT_CONFIG = os.path.join(ROOT, "config", "baseline.yaml")


def load_cfg(path: Optional[str] = None) -> Dict:
    path = path or DEFAULT_CONFIG
    with open(path, "r") as f:
        cfg = yaml.safe_load(f)
    if not isinstance(cfg, dict):
        raise ConfigError(f"{path}: expected a mapping at the top level")
    return cfg


def apply_overrides(cfg: Dict, overrides: Dict) -> Dict:
    """Apply scenario overrides (recursive merge) on top of the base config."""
    new = copy.deepcopy(cfg)

    def _merge(dst: Dict, src: Dict):
        for key, val in src.items():
            if isinstance(val, dict) and isinstance(dst.get(key), dict):
                _merge(dst[key], val)
            else:
                dst[key] = copy.deepcopy(val)

    _merge(new, overrides)
    return new


def _window(raw, unit: TimeUnit, ref: TimeUnit, default: TimeWindow) -> TimeWindow:
    if raw is None:
        return default
    try:
        start, end = raw
    except (TypeError, ValueError):
        raise ConfigError(f"Time window must be a [start, end] pair, got {raw!r}") from None
    end = math.inf if end is None else to_reference(end, unit, ref)
    try:
        return TimeWindow(to_reference(start, unit, ref), end)
    except ValueError as exc:
        raise ConfigError(str(exc)) from None


@dataclass
class ExperimentConfig:
    """Read-only experiment parameters, all times in the reference unit."""
    stop_time: float = math.inf
    trace_window: TimeWindow = field(default_factory=TimeWindow)
    debug_window: TimeWindow = field(default_factory=TimeWindow.never)
    progress_display: bool = False
    seed: int = 0
    time_unit: TimeUnit = TimeUnit.MINUTES
    reference_unit: TimeUnit = TimeUnit.MINUTES

    def __post_init__(self):
        if self.stop_time is None or self.stop_time < 0:
            raise ConfigError(f"stop_time must be >= 0, got {self.stop_time!r}")

    def to_reference(self, value: float) -> float:
        """Convert a YAML time value into clock units."""
        return to_reference(value, self.time_unit, self.reference_unit)

    @classmethod
    def from_dict(cls, cfg: Dict) -> "ExperimentConfig":
        sim = cfg.get("sim", {}) or {}
        try:
            unit = TimeUnit.parse(sim.get("time_unit", "minutes"))
            ref = TimeUnit.parse(sim.get("reference_unit", sim.get("time_unit", "minutes")))
        except ValueError as exc:
            raise ConfigError(str(exc)) from None
        stop = sim.get("stop_time")
        stop_time = math.inf if stop is None else to_reference(stop, unit, ref)
        return cls(
            stop_time=stop_time,
            trace_window=_window(sim.get("trace_window"), unit, ref, TimeWindow()),
            debug_window=_window(sim.get("debug_window"), unit, ref, TimeWindow.never()),
            progress_display=bool(sim.get("progress_display", False)),
            seed=int(sim.get("seed", 0)),
            time_unit=unit,
            reference_unit=ref,
        )

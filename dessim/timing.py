# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# timing.py
# -----------------------------------------------------------------------------
# Purpose:
#   Simulation clock plus the small time helpers used around it: unit
#   conversion into the experiment's reference unit and half-open windows.
#
# Design notes:
#   - Model time is a plain float expressed in the reference unit of the
#     experiment (seconds by default); YAML values may be given in minutes
#     and are converted once, at load time.
#   - The clock only moves forward; the event list is its only writer.
#
# Usage:
#   from dessim.timing import Clock, TimeUnit, TimeWindow
# -----------------------------------------------------------------------------

from __future__ import annotations
import math
from dataclasses import dataclass
from enum import Enum

from .errors import SchedulingError


class TimeUnit(Enum):
    """Time units understood by the config layer, valued in seconds."""
    SECONDS = 1.0
    MINUTES = 60.0
    HOURS = 3600.0

    @classmethod
    def parse(cls, name: str) -> "TimeUnit":
        try:
            return cls[str(name).strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown time unit: {name!r}") from None


def to_reference(value: float, unit: TimeUnit, reference: TimeUnit = TimeUnit.SECONDS) -> float:
    """Convert ``value`` expressed in ``unit`` into ``reference`` units."""
    return float(value) * unit.value / reference.value


class Clock:
    """Current simulation time. Monotonically non-decreasing."""
    __slots__ = ("_now",)

    def __init__(self, start: float = 0.0):
        self._now = float(start)

    @property
    def now(self) -> float:
        return self._now

    def advance_to(self, t: float):
        if not t >= self._now:
            raise SchedulingError(f"Clock cannot move from {self._now} to {t}", time=self._now)
        self._now = float(t)

    def __repr__(self):
        return f"Clock(now={self._now})"


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval [start, end) of simulation time."""
    start: float = 0.0
    end: float = math.inf

    def __post_init__(self):
        if self.end < self.start:
            raise ValueError(f"TimeWindow end {self.end} precedes start {self.start}")

    def contains(self, t: float) -> bool:
        return self.start <= t < self.end

    @classmethod
    def never(cls) -> "TimeWindow":
        return cls(0.0, 0.0)
